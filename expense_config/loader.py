"""
Configuration Loader (``expense_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``expense_config.schema`` dataclasses. Runtime callers go through
``expense_config.get_active_config()`` rather than calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Monetary values are parsed to ``Decimal`` via their string form, never
  kept as ``float``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or ill-typed keys  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from expense_config.schema import (
    AdminDef,
    CategoryRuleDef,
    ExpenseConfiguration,
    PolicyDef,
    ProjectDef,
    SettingsDef,
)
from expense_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str, source: str = "<dict>") -> Decimal:
    """Parse a YAML scalar into a Decimal."""
    if isinstance(value, bool) or value is None:
        raise ConfigurationError(source, f"{name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigurationError(source, f"{name} must be a number, got {value!r}") from exc


def _require(data: dict[str, Any], key: str, source: str) -> Any:
    if key not in data:
        raise ConfigurationError(source, f"missing required key '{key}'")
    return data[key]


def parse_category_rule(data: dict[str, Any], source: str = "<dict>") -> CategoryRuleDef:
    """Parse a CategoryRuleDef from a dict."""
    code = data.get("default_cost_code") or ""
    return CategoryRuleDef(
        category=str(_require(data, "category", source)),
        default_cost_code=str(code),
    )


def parse_settings(data: dict[str, Any], source: str = "<dict>") -> SettingsDef:
    """Parse the settings seed. Per-diem rates default to zero."""
    per_diem = data.get("per_diem") or {}
    projects = tuple(
        ProjectDef(
            number=int(_require(p, "number", source)),
            name=str(_require(p, "name", source)),
        )
        for p in data.get("projects") or ()
    )
    return SettingsDef(
        mileage_rate=parse_decimal(_require(data, "mileage_rate", source), "mileage_rate", source),
        breakfast_rate=parse_decimal(per_diem.get("breakfast", 0), "per_diem.breakfast", source),
        lunch_rate=parse_decimal(per_diem.get("lunch", 0), "per_diem.lunch", source),
        dinner_rate=parse_decimal(per_diem.get("dinner", 0), "per_diem.dinner", source),
        projects=projects,
    )


def parse_policy(data: dict[str, Any], source: str = "<dict>") -> PolicyDef:
    places = data.get("mileage_rounding_places", 0)
    if isinstance(places, bool) or not isinstance(places, int) or places < 0:
        raise ConfigurationError(
            source, f"mileage_rounding_places must be a non-negative integer, got {places!r}"
        )
    return PolicyDef(
        allow_empty_per_diem=bool(data.get("allow_empty_per_diem", False)),
        mileage_rounding_places=places,
    )


def parse_admin(data: dict[str, Any], source: str = "<dict>") -> AdminDef:
    digest = str(_require(data, "password_sha256", source)).lower()
    if len(digest) != 64 or any(c not in "0123456789abcdef" for c in digest):
        raise ConfigurationError(source, "password_sha256 must be a hex SHA-256 digest")
    return AdminDef(password_sha256=digest)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_configuration(data: dict[str, Any], source: str = "<dict>") -> ExpenseConfiguration:
    """
    Parse a full ``ExpenseConfiguration`` from a dict.

    Preconditions:
        - ``data`` contains ``config_id``, ``categories`` and ``settings``.
    Postconditions:
        - Returns a frozen ``ExpenseConfiguration`` with ``checksum`` set.
    Raises:
        ConfigurationError: if required keys are missing or ill-typed.
    """
    categories = _require(data, "categories", source)
    if not isinstance(categories, list):
        raise ConfigurationError(source, "categories must be a list")
    rules = tuple(parse_category_rule(c, source) for c in categories)
    names = [r.category for r in rules]
    if len(names) != len(set(names)):
        raise ConfigurationError(source, "categories must not repeat")

    admin_data = data.get("admin")
    return ExpenseConfiguration(
        config_id=str(_require(data, "config_id", source)),
        version=int(data.get("version", 1)),
        category_rules=rules,
        settings=parse_settings(_require(data, "settings", source), source),
        policy=parse_policy(data.get("policy") or {}, source),
        admin=parse_admin(admin_data, source) if admin_data else None,
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> ExpenseConfiguration:
    """Load and parse one configuration file."""
    return parse_configuration(load_yaml_file(path), source=str(path))
