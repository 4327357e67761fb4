"""Tests for failure and result value objects (expense_kernel/domain/results.py)."""

import pytest

from expense_kernel.domain.results import (
    Failure,
    FailureKind,
    Result,
    ResultUnwrapError,
    ValidationResult,
)
from expense_kernel.exceptions import (
    AdminAuthorizationError,
    DerivedFieldError,
    EndpointUnresolvedError,
    InvalidSettingsError,
    LineItemNotFoundError,
    PersistenceError,
    ProjectNotFoundError,
    ReportNotFoundError,
    RouteNotFoundError,
)


class TestFailureFromException:

    @pytest.mark.parametrize(
        "exc, kind",
        [
            (DerivedFieldError("cost", "Per Diem"), FailureKind.VALIDATION),
            (EndpointUnresolvedError(("to_location",)), FailureKind.ENDPOINT_UNRESOLVED),
            (RouteNotFoundError("a", "b"), FailureKind.PROVIDER),
            (LineItemNotFoundError("li-1"), FailureKind.NOT_FOUND),
            (ProjectNotFoundError("Main Office"), FailureKind.NOT_FOUND),
            (PersistenceError("save_report", "disk full"), FailureKind.PERSISTENCE),
            (ReportNotFoundError("rep-1"), FailureKind.PERSISTENCE),
            (AdminAuthorizationError("save"), FailureKind.AUTHORIZATION),
            (InvalidSettingsError("mileage_rate", "must be positive"), FailureKind.VALIDATION),
        ],
    )
    def test_kind_classification(self, exc, kind):
        assert Failure.from_exception(exc).kind is kind

    def test_code_and_message_carried(self):
        failure = Failure.from_exception(RouteNotFoundError("Home", "Site"))
        assert failure.code == "ROUTE_NOT_FOUND"
        assert "Home" in failure.message
        assert failure.details == {"origin": "Home", "destination": "Site"}

    def test_field_path_becomes_field(self):
        failure = Failure.from_exception(DerivedFieldError("payload.mileage", "Mileage"))
        assert failure.field == "payload.mileage"
        assert failure.details == {"category": "Mileage"}

    def test_settings_field_becomes_field(self):
        failure = Failure.from_exception(InvalidSettingsError("per_diem.lunch", "cannot be negative"))
        assert failure.field == "per_diem.lunch"


class TestFailureFactories:

    def test_validation(self):
        failure = Failure.validation("MISSING_DATE", "Date is required", field="date", line_item_id="x")
        assert failure.kind is FailureKind.VALIDATION
        assert failure.details == {"line_item_id": "x"}

    def test_validation_without_details(self):
        assert Failure.validation("X", "x").details is None

    def test_line_item_not_found(self):
        failure = Failure.from_exception(LineItemNotFoundError("li-1", report_id="r-1"))
        assert failure.kind is FailureKind.NOT_FOUND
        assert failure.code == "LINE_ITEM_NOT_FOUND"
        assert failure.field is None
        assert failure.details == {"line_item_id": "li-1", "report_id": "r-1"}


class TestResult:

    def test_ok(self):
        result = Result.ok(42)
        assert result.is_success
        assert bool(result)
        assert result.unwrap() == 42

    def test_fail(self):
        failure = Failure.validation("X", "bad")
        result = Result.fail(failure)
        assert not result.is_success
        assert not result
        assert result.failure is failure

    def test_unwrap_failure_raises(self):
        result = Result.fail(Failure.validation("X", "bad"))
        with pytest.raises(ResultUnwrapError, match="X: bad") as excinfo:
            result.unwrap()
        assert excinfo.value.failure.code == "X"

    def test_ok_with_falsy_value_is_success(self):
        assert Result.ok(0).is_success


class TestValidationResult:

    def test_success(self):
        result = ValidationResult.success()
        assert result.is_valid
        assert result.errors == ()
        assert bool(result)

    def test_failure(self):
        a = Failure.validation("A", "a")
        b = Failure.validation("B", "b")
        result = ValidationResult.failure(a, b)
        assert not result.is_valid
        assert result.codes == ("A", "B")

    def test_of_empty_list(self):
        assert ValidationResult.of([]).is_valid

    def test_of_errors(self):
        result = ValidationResult.of([Failure.validation("A", "a")])
        assert not result
        assert result.codes == ("A",)
