"""
Line Item Editing (``expense_modules.report.line_items``).

Responsibility
--------------
Structural edits of a single ``LineItem``: category switching, field
updates addressed by path, autocomplete place selection, mileage entry
mode switching, and re-derivation of cost after every edit.

Invariants enforced
-------------------
* The payload tag always equals the category. Switching category
  discards the old payload and re-derives the cost code.
* Cost is never written directly on MileageTrip or PerDiem lines; it is
  recomputed from the session's rates after every edit.
* Calculated and manual mileage are exclusive. Switching entry mode
  discards the previous value; changing an endpoint in calculated mode
  resets mileage to unset. Both bump the mileage request generation.

Failure modes
-------------
* Edits return ``Result``; rejected edits carry a validation failure and
  leave the item untouched.

Field paths
-----------
``date``, ``category``, ``cost_code``, ``cost`` and ``payload.<name>``
where ``<name>`` is a field of the current payload variant.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, assert_never
from uuid import uuid4

from expense_kernel.domain.results import Failure, Result
from expense_kernel.exceptions import (
    DerivedFieldError,
    InvalidFieldError,
    LineItemError,
)
from expense_kernel.logging_config import get_logger
from expense_modules.report.categories import default_payload, derives_cost, payload_shape
from expense_modules.report.config import EditingSession
from expense_modules.report.helpers import calculate_mileage_cost, calculate_per_diem_cost
from expense_modules.report.models import (
    DescriptionPayload,
    Endpoint,
    ExpenseCategory,
    LineItem,
    Location,
    ManualMileage,
    ManualPending,
    Meal,
    MileageEntryMode,
    MileagePayload,
    MileageUnset,
    PayloadShape,
    PerDiemPayload,
    TripPurpose,
)

logger = get_logger("modules.report.line_items")

PAYLOAD_PREFIX = "payload."


def new_line_item() -> LineItem:
    """Blank line item: no category, empty cost code, no payload."""
    return LineItem(id=uuid4())


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


def recompute_cost(item: LineItem, session: EditingSession) -> LineItem:
    """Re-derive ``cost`` for categories whose cost comes from rates."""
    if item.category is None or item.payload is None:
        return item

    shape = payload_shape(item.category)
    if shape is PayloadShape.MILEAGE:
        assert isinstance(item.payload, MileagePayload)
        miles = item.payload.miles
        if miles is None or miles < 0:
            cost = Decimal("0")
        else:
            cost = calculate_mileage_cost(
                miles,
                item.payload.round_trip,
                session.settings.mileage_rate,
                session.policy.mileage_rounding_places,
            )
    elif shape is PayloadShape.PER_DIEM:
        assert isinstance(item.payload, PerDiemPayload)
        cost = calculate_per_diem_cost(item.payload, session.settings.per_diem)
    elif shape is PayloadShape.DESCRIPTION:
        return item
    else:
        assert_never(shape)

    if cost == item.cost:
        return item
    return replace(item, cost=cost)


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------


def set_category(
    item: LineItem,
    category: ExpenseCategory,
    session: EditingSession,
) -> LineItem:
    """
    Switch ``item`` to ``category``.

    Postconditions:
        - ``payload`` is the category's default payload.
        - ``cost_code`` is the category's default (empty when user-entered).
        - ``cost`` is re-derived, or reset to zero for typed categories.
        - A new mileage payload starts above every generation the item
          has used, so tickets issued before the switch never apply.
    """
    floor = item.generation_floor
    if isinstance(item.payload, MileagePayload):
        floor = max(floor, item.payload.generation)
    payload = default_payload(category)
    if isinstance(payload, MileagePayload):
        payload = replace(payload, generation=floor + 1)
    updated = replace(
        item,
        category=category,
        payload=payload,
        cost_code=session.rules.default_cost_code(category),
        cost=Decimal("0"),
        generation_floor=floor,
    )
    logger.debug(
        "line_item_category_set",
        extra={
            "line_item_id": str(item.id),
            "previous_category": item.category.value if item.category else None,
            "category": category.value,
            "cost_code": updated.cost_code,
        },
    )
    return recompute_cost(updated, session)


# ---------------------------------------------------------------------------
# Field updates
# ---------------------------------------------------------------------------


def update_field(
    item: LineItem,
    field_path: str,
    value: Any,
    session: EditingSession,
) -> Result[LineItem]:
    """
    Update one field of ``item`` and re-derive cost.

    Rejected writes (unknown path, derived field, bad value) return a
    failed ``Result``; the input item is never modified.
    """
    try:
        updated = _apply_field(item, field_path, value, session)
    except LineItemError as exc:
        logger.warning(
            "line_item_update_rejected",
            extra={
                "line_item_id": str(item.id),
                "field_path": field_path,
                "error_code": exc.code,
            },
        )
        return Result.fail(Failure.from_exception(exc))
    return Result.ok(recompute_cost(updated, session))


def set_entry_mode(
    item: LineItem,
    mode: MileageEntryMode,
    session: EditingSession,
) -> Result[LineItem]:
    """Switch between calculated and manual mileage entry."""
    return update_field(item, PAYLOAD_PREFIX + "entry_mode", mode, session)


def select_place(
    item: LineItem,
    endpoint: Endpoint,
    place: str | None,
    session: EditingSession,
) -> Result[LineItem]:
    """
    Record an autocomplete outcome for one trip endpoint.

    ``place`` is the normalized place string, or None when the query did
    not resolve. Either way calculated mileage goes back to unset.
    """
    if not isinstance(item.payload, MileagePayload):
        exc = InvalidFieldError(endpoint.value, "line item is not a mileage trip")
        return Result.fail(Failure.from_exception(exc))
    current = item.payload.location(endpoint)
    location = Location(query=place or current.query, place=place or None)
    payload = _edit_location(item.payload, endpoint, location)
    return Result.ok(recompute_cost(replace(item, payload=payload), session))


def _apply_field(
    item: LineItem,
    field_path: str,
    value: Any,
    session: EditingSession,
) -> LineItem:
    if field_path == "date":
        return replace(item, date=_as_str(field_path, value).strip())

    if field_path == "category":
        return set_category(item, _as_category(value), session)

    if field_path == "cost_code":
        if item.category is not None and session.rules[item.category].has_fixed_cost_code:
            raise DerivedFieldError(field_path, item.category.value)
        return replace(item, cost_code=_as_str(field_path, value))

    if field_path == "cost":
        if derives_cost(item.category):
            assert item.category is not None
            raise DerivedFieldError(field_path, item.category.value)
        cost = _as_decimal(field_path, value)
        if cost < 0:
            raise InvalidFieldError(field_path, "cost cannot be negative")
        return replace(item, cost=cost)

    if field_path.startswith(PAYLOAD_PREFIX):
        name = field_path[len(PAYLOAD_PREFIX):]
        payload = item.payload
        if payload is None:
            raise InvalidFieldError(field_path, "select a category first")
        if isinstance(payload, MileagePayload):
            return replace(item, payload=_update_mileage(payload, name, value))
        elif isinstance(payload, PerDiemPayload):
            return replace(item, payload=_update_per_diem(payload, name, value))
        elif isinstance(payload, DescriptionPayload):
            if name != "description":
                raise InvalidFieldError(field_path, "unknown description field")
            return replace(item, payload=replace(payload, description=_as_str(field_path, value)))
        else:
            assert_never(payload)

    raise InvalidFieldError(field_path, "unknown field")


def _update_per_diem(payload: PerDiemPayload, name: str, value: Any) -> PerDiemPayload:
    try:
        meal = Meal(name)
    except ValueError:
        raise InvalidFieldError(PAYLOAD_PREFIX + name, "unknown per diem field") from None
    return replace(payload, **{meal.value: _as_bool(PAYLOAD_PREFIX + name, value)})


def _update_mileage(payload: MileagePayload, name: str, value: Any) -> MileagePayload:
    path = PAYLOAD_PREFIX + name
    if name == "purpose":
        try:
            return replace(payload, purpose=TripPurpose(value))
        except ValueError:
            raise InvalidFieldError(path, f"unknown purpose {value!r}") from None

    if name == "round_trip":
        return replace(payload, round_trip=_as_bool(path, value))

    if name in ("from_location", "to_location"):
        # Typing into the box drops any earlier autocomplete selection.
        location = Location(query=_as_str(path, value), place=None)
        return _edit_location(payload, Endpoint(name), location)

    if name == "entry_mode":
        try:
            mode = MileageEntryMode(value)
        except ValueError:
            raise InvalidFieldError(path, f"unknown entry mode {value!r}") from None
        return _switch_entry_mode(payload, mode)

    if name == "mileage":
        if payload.entry_mode is MileageEntryMode.CALCULATED:
            raise DerivedFieldError(path, ExpenseCategory.MILEAGE_TRIP.value)
        if value is None or value == "":
            return replace(payload, mileage=ManualPending())
        miles = _as_decimal(path, value)
        if miles < 0:
            raise InvalidFieldError(path, "mileage cannot be negative")
        return replace(payload, mileage=ManualMileage(miles))

    raise InvalidFieldError(path, "unknown mileage field")


def _edit_location(
    payload: MileagePayload,
    endpoint: Endpoint,
    location: Location,
) -> MileagePayload:
    if payload.location(endpoint) == location:
        return payload
    mileage = payload.mileage
    if payload.entry_mode is MileageEntryMode.CALCULATED:
        mileage = MileageUnset()
    return replace(
        payload,
        mileage=mileage,
        generation=payload.generation + 1,
        **{endpoint.value: location},
    )


def _switch_entry_mode(payload: MileagePayload, mode: MileageEntryMode) -> MileagePayload:
    if payload.entry_mode is mode:
        return payload
    mileage = ManualPending() if mode is MileageEntryMode.MANUAL else MileageUnset()
    return replace(
        payload,
        entry_mode=mode,
        mileage=mileage,
        generation=payload.generation + 1,
    )


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def _as_str(path: str, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidFieldError(path, f"expected text, got {type(value).__name__}")
    return value


def _as_bool(path: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidFieldError(path, f"expected true/false, got {value!r}")
    return value


def _as_decimal(path: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidFieldError(path, f"expected a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidFieldError(path, f"expected a number, got {value!r}") from None
    if not result.is_finite():
        raise InvalidFieldError(path, f"expected a finite number, got {value!r}")
    return result


def _as_category(value: Any) -> ExpenseCategory:
    try:
        return ExpenseCategory(value)
    except ValueError:
        raise InvalidFieldError("category", f"unknown category {value!r}") from None
