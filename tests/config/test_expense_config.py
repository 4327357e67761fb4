"""
Tests for expense configuration loading (expense_config).

Covers the shipped default set, YAML parsing, schema validation errors and
checksum determinism. All tests are pure: YAML is written to tmp_path.
"""

from decimal import Decimal

import pytest
import yaml

from expense_config import get_active_config
from expense_config.loader import (
    compute_checksum,
    load_configuration,
    parse_configuration,
    parse_decimal,
    parse_policy,
)
from expense_kernel.exceptions import ConfigurationError
from expense_modules.report.categories import CategoryRules
from expense_modules.report.config import EditingSession
from expense_modules.report.models import ExpenseCategory


def _minimal(**overrides):
    data = {
        "config_id": "test",
        "version": 2,
        "categories": [
            {"category": "Mileage", "default_cost_code": "6110"},
            {"category": "Other"},
        ],
        "settings": {
            "mileage_rate": "0.50",
            "per_diem": {"breakfast": "10", "lunch": "11", "dinner": "12"},
            "projects": [{"number": 7, "name": "Depot"}],
        },
    }
    data.update(overrides)
    return data


def _write_set(tmp_path, name, data):
    set_dir = tmp_path / name
    set_dir.mkdir()
    (set_dir / "expense.yaml").write_text(yaml.safe_dump(data))
    return tmp_path


# =============================================================================
# Default set
# =============================================================================


class TestDefaultConfiguration:

    def test_loads(self, config):
        assert config.config_id == "default"
        assert config.settings.mileage_rate == Decimal("0.67")
        assert config.settings.breakfast_rate == Decimal("12.00")
        assert config.policy.allow_empty_per_diem is False
        assert config.policy.mileage_rounding_places == 0

    def test_every_category_configured(self, config):
        names = {r.category for r in config.category_rules}
        assert names == {c.value for c in ExpenseCategory}

    def test_fixed_cost_codes(self, config):
        rules = CategoryRules.from_definitions(config.category_rules)
        assert rules.default_cost_code(ExpenseCategory.MILEAGE_TRIP) == "6110"
        assert rules.default_cost_code(ExpenseCategory.PER_DIEM) == "6120"
        assert rules.default_cost_code(ExpenseCategory.REIMBURSABLE_RECEIPT) == "6130"
        assert rules.default_cost_code(ExpenseCategory.OTHER) == ""

    def test_admin_digest_present(self, config):
        assert config.admin is not None
        assert len(config.admin.password_sha256) == 64

    def test_checksum_set(self, config):
        assert len(config.checksum) == 64

    def test_load_logged(self, captured_logs):
        get_active_config()
        logs = captured_logs()
        loaded = [r for r in logs if r["message"] == "expense_config_loaded"]
        assert loaded
        assert loaded[0]["config_id"] == "default"

    def test_session_from_configuration(self, config):
        session = EditingSession.from_configuration(config)
        assert session.mileage_rate == Decimal("0.67")
        assert session.rules[ExpenseCategory.PER_DIEM].has_fixed_cost_code
        assert [p.name for p in session.settings.projects] == ["Main Office", "Riverside Expansion"]


# =============================================================================
# get_active_config
# =============================================================================


class TestGetActiveConfig:

    def test_custom_directory(self, tmp_path):
        config_dir = _write_set(tmp_path, "alt", _minimal())
        config = get_active_config("alt", config_dir=config_dir)
        assert config.config_id == "test"
        assert config.version == 2
        assert config.settings.projects[0].name == "Depot"

    def test_missing_set_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config("nope", config_dir=tmp_path)

    def test_invalid_yaml_raises(self, tmp_path):
        set_dir = tmp_path / "broken"
        set_dir.mkdir()
        (set_dir / "expense.yaml").write_text("categories: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            get_active_config("broken", config_dir=tmp_path)


# =============================================================================
# Parsing
# =============================================================================


class TestParseConfiguration:

    def test_minimal(self):
        config = parse_configuration(_minimal())
        assert config.settings.dinner_rate == Decimal("12")
        assert config.admin is None
        assert config.policy.allow_empty_per_diem is False

    def test_missing_settings_rejected(self):
        data = _minimal()
        del data["settings"]
        with pytest.raises(ConfigurationError, match="settings"):
            parse_configuration(data)

    def test_missing_mileage_rate_rejected(self):
        data = _minimal(settings={"per_diem": {}})
        with pytest.raises(ConfigurationError, match="mileage_rate"):
            parse_configuration(data)

    def test_per_diem_defaults_to_zero(self):
        config = parse_configuration(_minimal(settings={"mileage_rate": "0.5"}))
        assert config.settings.lunch_rate == Decimal("0")

    def test_categories_must_be_list(self):
        with pytest.raises(ConfigurationError, match="list"):
            parse_configuration(_minimal(categories={"category": "Mileage"}))

    def test_duplicate_category_rejected(self):
        data = _minimal(categories=[{"category": "Other"}, {"category": "Other"}])
        with pytest.raises(ConfigurationError, match="repeat"):
            parse_configuration(data)

    def test_unknown_category_rejected_by_rules(self):
        config = parse_configuration(_minimal(categories=[{"category": "Lodging"}]))
        with pytest.raises(ConfigurationError, match="Lodging"):
            CategoryRules.from_definitions(config.category_rules)

    def test_bad_admin_digest_rejected(self):
        with pytest.raises(ConfigurationError, match="SHA-256"):
            parse_configuration(_minimal(admin={"password_sha256": "not-a-digest"}))

    def test_admin_digest_lowercased(self):
        digest = "AB" * 32
        config = parse_configuration(_minimal(admin={"password_sha256": digest}))
        assert config.admin.password_sha256 == digest.lower()

    def test_load_configuration_uses_path_as_source(self, tmp_path):
        path = tmp_path / "expense.yaml"
        path.write_text(yaml.safe_dump(_minimal(categories="oops")))
        with pytest.raises(ConfigurationError) as excinfo:
            load_configuration(path)
        assert excinfo.value.source == str(path)


class TestParseDecimal:

    def test_string(self):
        assert parse_decimal("0.67", "rate") == Decimal("0.67")

    def test_float_goes_through_str(self):
        assert parse_decimal(0.1, "rate") == Decimal("0.1")

    @pytest.mark.parametrize("value", [True, None, "abc"])
    def test_rejected(self, value):
        with pytest.raises(ConfigurationError, match="rate"):
            parse_decimal(value, "rate")


class TestParsePolicy:

    def test_defaults(self):
        policy = parse_policy({})
        assert policy.allow_empty_per_diem is False
        assert policy.mileage_rounding_places == 0

    @pytest.mark.parametrize("places", [-1, 1.5, True, "2"])
    def test_bad_places_rejected(self, places):
        with pytest.raises(ConfigurationError, match="mileage_rounding_places"):
            parse_policy({"mileage_rounding_places": places})


class TestChecksum:

    def test_deterministic(self):
        assert compute_checksum(_minimal()) == compute_checksum(_minimal())

    def test_key_order_irrelevant(self):
        a = {"x": 1, "y": 2}
        b = {"y": 2, "x": 1}
        assert compute_checksum(a) == compute_checksum(b)

    def test_content_sensitive(self):
        assert compute_checksum(_minimal()) != compute_checksum(_minimal(version=3))
