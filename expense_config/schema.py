"""
ExpenseConfiguration schema.

Defines the human-authored, reviewable configuration for expense report
editing. YAML files are parsed into these types by the loader; the
modules layer turns them into category rules, a settings seed and the
validation policy.

These are declarative definitions only. Enumerated values (categories,
meals) are kept as plain strings here; the modules layer maps them onto
its enums.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


# ---------------------------------------------------------------------------
# Category rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryRuleDef:
    """Default cost code for a category (empty when user-entered)."""

    category: str
    default_cost_code: str = ""


# ---------------------------------------------------------------------------
# Settings seed
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectDef:
    number: int
    name: str


@dataclass(frozen=True)
class SettingsDef:
    """Initial settings for a fresh settings repository."""

    mileage_rate: Decimal
    breakfast_rate: Decimal
    lunch_rate: Decimal
    dinner_rate: Decimal
    projects: tuple[ProjectDef, ...] = ()


# ---------------------------------------------------------------------------
# Policy and admin gate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicyDef:
    """Completeness policy knobs."""

    allow_empty_per_diem: bool = False
    mileage_rounding_places: int = 0


@dataclass(frozen=True)
class AdminDef:
    """Admin gate for settings editing. Only the digest is stored."""

    password_sha256: str


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExpenseConfiguration:
    """A complete, parsed configuration set."""

    config_id: str
    version: int
    category_rules: tuple[CategoryRuleDef, ...]
    settings: SettingsDef
    policy: PolicyDef = field(default_factory=PolicyDef)
    admin: AdminDef | None = None
    checksum: str = ""
