"""
Expense Report Aggregate (``expense_modules.report.aggregate``).

Responsibility
--------------
Immutable operations over ``ExpenseReport``: adding, replacing and
removing line items, report-level validation and the completeness
predicate used by submission gating.

Invariants enforced
-------------------
* Line item order is preserved by every operation.
* Operations naming an id that is not on the report return a NOT_FOUND
  failure and leave the report unchanged. ``replace_line_item`` and
  ``remove_line_item`` follow the same policy.
* A line item's id never changes: replacing with an item carrying a
  different id is rejected.

Non-goals
---------
* Does NOT persist or submit -- ``is_complete`` is a pure predicate.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal
from uuid import UUID

from expense_kernel.domain.results import Failure, Result, ValidationResult
from expense_kernel.exceptions import LineItemNotFoundError
from expense_kernel.logging_config import get_logger
from expense_modules.report.config import EditingSession
from expense_modules.report.helpers import line_item_failures
from expense_modules.report.line_items import new_line_item
from expense_modules.report.models import ExpenseReport, LineItem, User

logger = get_logger("modules.report.aggregate")


def _not_found(report: ExpenseReport, line_item_id: UUID) -> Failure:
    return Failure.from_exception(
        LineItemNotFoundError(str(line_item_id), report_id=str(report.id))
    )


def new_report(user: User | None = None) -> ExpenseReport:
    return ExpenseReport(user=user or User())


def get_line_item(report: ExpenseReport, line_item_id: UUID) -> Result[LineItem]:
    item = report.find(line_item_id)
    if item is None:
        return Result.fail(_not_found(report, line_item_id))
    return Result.ok(item)


def add_line_item(report: ExpenseReport) -> ExpenseReport:
    """Append a blank line item; the new item is ``line_items[-1]``."""
    item = new_line_item()
    logger.debug(
        "line_item_added",
        extra={"report_id": str(report.id), "line_item_id": str(item.id)},
    )
    return replace(report, line_items=report.line_items + (item,))


def replace_line_item(
    report: ExpenseReport,
    line_item_id: UUID,
    updated: LineItem,
) -> Result[ExpenseReport]:
    """Swap in ``updated`` at the position of ``line_item_id``."""
    if updated.id != line_item_id:
        return Result.fail(Failure.validation(
            "LINE_ITEM_ID_MISMATCH",
            f"Replacement carries id {updated.id}, expected {line_item_id}",
            field="id",
        ))
    items = list(report.line_items)
    for index, item in enumerate(items):
        if item.id == line_item_id:
            items[index] = updated
            return Result.ok(replace(report, line_items=tuple(items)))
    logger.warning(
        "line_item_replace_not_found",
        extra={"report_id": str(report.id), "line_item_id": str(line_item_id)},
    )
    return Result.fail(_not_found(report, line_item_id))


def remove_line_item(report: ExpenseReport, line_item_id: UUID) -> Result[ExpenseReport]:
    if report.find(line_item_id) is None:
        logger.warning(
            "line_item_remove_not_found",
            extra={"report_id": str(report.id), "line_item_id": str(line_item_id)},
        )
        return Result.fail(_not_found(report, line_item_id))
    remaining = tuple(i for i in report.line_items if i.id != line_item_id)
    return Result.ok(replace(report, line_items=remaining))


def report_total(report: ExpenseReport) -> Decimal:
    return sum((item.cost for item in report.line_items), Decimal("0"))


def validate_line_item(item: LineItem, session: EditingSession) -> ValidationResult:
    return ValidationResult.of(
        line_item_failures(item, allow_empty_per_diem=session.policy.allow_empty_per_diem)
    )


def validate_report(
    report: ExpenseReport,
    users: Iterable[User],
    session: EditingSession,
) -> ValidationResult:
    """
    Every failure that keeps ``report`` from being complete.

    Checks the submitting user against the directory, the project (when
    one is set) against the settings, and each line item's required
    fields.
    """
    errors: list[Failure] = []
    known = {u.name for u in users}
    if not report.user.name:
        errors.append(Failure.validation("MISSING_USER", "Select your name", field="user"))
    elif report.user.name not in known:
        errors.append(Failure.validation(
            "UNKNOWN_USER", f"User '{report.user.name}' is not in the directory",
            field="user",
        ))

    if report.project is not None and session.settings.project_named(report.project) is None:
        errors.append(Failure.validation(
            "UNKNOWN_PROJECT", f"Project '{report.project}' is not configured",
            field="project",
        ))

    for item in report.line_items:
        errors.extend(line_item_failures(
            item, allow_empty_per_diem=session.policy.allow_empty_per_diem,
        ))

    result = ValidationResult.of(errors)
    logger.debug(
        "report_validated",
        extra={
            "report_id": str(report.id),
            "line_item_count": len(report.line_items),
            "is_valid": result.is_valid,
            "error_codes": list(result.codes),
        },
    )
    return result


def is_complete(
    report: ExpenseReport,
    users: Iterable[User],
    session: EditingSession,
) -> bool:
    """True iff every line item is complete and the user is recognised."""
    return validate_report(report, users, session).is_valid
