"""
Expense Report Helpers (``expense_modules.report.helpers``).

Responsibility
--------------
Pure calculation and validation functions for line items: distance unit
conversion, mileage cost, per-diem cost, and the per-category
required-field check. Stateless, no I/O.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal`` -- never ``float``.
* Negative miles or rates raise ``ValueError``.
* Validation failures are returned as a list, never silently dropped.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import assert_never

from expense_kernel.domain.results import Failure
from expense_modules.report.categories import payload_shape
from expense_modules.report.models import (
    DescriptionPayload,
    LineItem,
    Meal,
    MileagePayload,
    PayloadShape,
    PerDiemPayload,
    PerDiemRates,
)

METERS_PER_MILE = Decimal("1609.34")
CENT = Decimal("0.01")


def meters_to_miles(meters: Decimal) -> Decimal:
    """Convert a provider distance in meters to miles (two places)."""
    if meters < 0:
        raise ValueError(f"Distance must be non-negative, got {meters}")
    return (meters / METERS_PER_MILE).quantize(CENT, rounding=ROUND_HALF_UP)


def billable_miles(miles: Decimal, round_trip: bool, places: int = 0) -> Decimal:
    """
    Miles used for reimbursement.

    Round trips double the one-way distance; the result is rounded half-up
    to ``places`` decimal places.
    """
    if miles < 0:
        raise ValueError(f"Miles must be non-negative, got {miles}")
    multiplier = 2 if round_trip else 1
    return (miles * multiplier).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def calculate_mileage_cost(
    miles: Decimal,
    round_trip: bool,
    rate_per_mile: Decimal,
    places: int = 0,
) -> Decimal:
    """
    Calculate mileage reimbursement.

    Returns ``billable_miles(miles, round_trip) * rate_per_mile`` rounded
    to cents.

    Raises:
        ValueError: If ``miles`` or ``rate_per_mile`` is negative.
    """
    if rate_per_mile < 0:
        raise ValueError(f"Rate per mile must be non-negative, got {rate_per_mile}")
    billable = billable_miles(miles, round_trip, places)
    return (billable * rate_per_mile).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_per_diem_cost(payload: PerDiemPayload, rates: PerDiemRates) -> Decimal:
    """Sum of the rates of the selected meals."""
    total = Decimal("0")
    for meal in Meal:
        if payload.selected(meal):
            total += rates.rate_for(meal)
    return total


def is_valid_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def line_item_failures(
    item: LineItem,
    allow_empty_per_diem: bool = False,
) -> list[Failure]:
    """
    Required-field check for one line item.

    Postconditions:
        - Returns an empty list when the item is complete.
        - Each failure names the offending field and carries the line id.
    """
    line_id = str(item.id)
    failures: list[Failure] = []

    if not item.date:
        failures.append(Failure.validation(
            "MISSING_DATE", "Date is required", field="date", line_item_id=line_id,
        ))
    elif not is_valid_iso_date(item.date):
        failures.append(Failure.validation(
            "INVALID_DATE", f"Date '{item.date}' is not a calendar date",
            field="date", line_item_id=line_id,
        ))

    if item.category is None:
        failures.append(Failure.validation(
            "MISSING_CATEGORY", "Category is required", field="category", line_item_id=line_id,
        ))
        return failures

    if not item.cost_code.strip():
        failures.append(Failure.validation(
            "MISSING_COST_CODE", "Cost code is required", field="cost_code", line_item_id=line_id,
        ))

    if item.cost < 0:
        failures.append(Failure.validation(
            "NEGATIVE_COST", "Cost cannot be negative", field="cost", line_item_id=line_id,
        ))

    payload = item.payload
    if payload is None or payload.tag is not item.category:
        failures.append(Failure.validation(
            "PAYLOAD_MISMATCH",
            f"Payload does not match category {item.category.value}",
            field="payload", line_item_id=line_id,
        ))
        return failures

    shape = payload_shape(item.category)
    if shape is PayloadShape.MILEAGE:
        assert isinstance(payload, MileagePayload)
        failures.extend(_mileage_failures(payload, line_id))
    elif shape is PayloadShape.PER_DIEM:
        assert isinstance(payload, PerDiemPayload)
        if not payload.any_selected and not allow_empty_per_diem:
            failures.append(Failure.validation(
                "NO_MEALS_SELECTED", "Select at least one meal",
                field="payload.breakfast", line_item_id=line_id,
            ))
    elif shape is PayloadShape.DESCRIPTION:
        assert isinstance(payload, DescriptionPayload)
        if not payload.description.strip() and len(item.attachments) == 0:
            failures.append(Failure.validation(
                "MISSING_DESCRIPTION", "Add a description or attach a receipt",
                field="payload.description", line_item_id=line_id,
            ))
    else:
        assert_never(shape)

    return failures


def _mileage_failures(payload: MileagePayload, line_id: str) -> list[Failure]:
    failures: list[Failure] = []
    if not payload.from_location.query.strip():
        failures.append(Failure.validation(
            "MISSING_FROM_LOCATION", "From location is required",
            field="payload.from_location", line_item_id=line_id,
        ))
    if not payload.to_location.query.strip():
        failures.append(Failure.validation(
            "MISSING_TO_LOCATION", "To location is required",
            field="payload.to_location", line_item_id=line_id,
        ))
    miles = payload.miles
    if miles is None:
        failures.append(Failure.validation(
            "MISSING_MILEAGE", "Mileage has not been calculated or entered",
            field="payload.mileage", line_item_id=line_id,
        ))
    elif miles < 0:
        failures.append(Failure.validation(
            "NEGATIVE_MILEAGE", "Mileage cannot be negative",
            field="payload.mileage", line_item_id=line_id,
        ))
    return failures
