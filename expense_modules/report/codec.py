"""
Persisted record codec.

Converts reports and settings to and from plain dicts. A line item becomes
one flat record (``date``, ``costCategory``, ``costCode``, ``cost``,
``description``, ``mileage``, ``purpose``, ``fromLocation``,
``toLocation``, ``roundTrip``, ``breakfast``, ``lunch``, ``dinner``,
``attachments``); fields of other payload variants are omitted. Decimals
are written as strings. Mileage bookkeeping the flat record has no slot
for (entry mode, resolved places) travels under ``mileageEntry``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, assert_never
from uuid import UUID

from expense_modules.report.categories import default_payload
from expense_modules.report.models import (
    Attachment,
    AttachmentSet,
    CategoryPayload,
    ComputedMileage,
    DescriptionPayload,
    ExpenseCategory,
    ExpenseReport,
    FileReference,
    LineItem,
    Location,
    ManualMileage,
    ManualPending,
    MileageEntryMode,
    MileagePayload,
    MileageUnset,
    MileageValue,
    PerDiemPayload,
    PerDiemRates,
    Project,
    SettingsConfiguration,
    TripPurpose,
    User,
)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def report_to_record(report: ExpenseReport) -> dict[str, Any]:
    return {
        "id": str(report.id),
        "user": {"name": report.user.name},
        "project": report.project,
        "expenses": [line_item_to_record(i) for i in report.line_items],
    }


def report_from_record(record: dict[str, Any]) -> ExpenseReport:
    return ExpenseReport(
        id=UUID(record["id"]),
        user=User(name=(record.get("user") or {}).get("name", "")),
        project=record.get("project"),
        line_items=tuple(line_item_from_record(r) for r in record.get("expenses", [])),
    )


def line_item_to_record(item: LineItem) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": str(item.id),
        "date": item.date,
        "costCategory": item.category.value if item.category else "",
        "costCode": item.cost_code,
        "cost": str(item.cost),
        "attachments": [_attachment_to_record(a) for a in item.attachments],
        "generationFloor": item.generation_floor,
    }
    payload = item.payload
    if payload is None:
        return record
    if isinstance(payload, MileagePayload):
        miles = payload.miles
        record.update({
            "purpose": payload.purpose.value,
            "fromLocation": payload.from_location.query,
            "toLocation": payload.to_location.query,
            "roundTrip": payload.round_trip,
            "mileage": str(miles) if miles is not None else None,
            "mileageEntry": {
                "mode": payload.entry_mode.value,
                "state": type(payload.mileage).__name__,
                "fromPlace": payload.from_location.place,
                "toPlace": payload.to_location.place,
                "generation": payload.generation,
            },
        })
    elif isinstance(payload, PerDiemPayload):
        record.update({
            "breakfast": payload.breakfast,
            "lunch": payload.lunch,
            "dinner": payload.dinner,
        })
    elif isinstance(payload, DescriptionPayload):
        record["description"] = payload.description
    else:
        assert_never(payload)
    return record


def line_item_from_record(record: dict[str, Any]) -> LineItem:
    category = ExpenseCategory(record["costCategory"]) if record.get("costCategory") else None
    return LineItem(
        id=UUID(record["id"]),
        date=record.get("date") or "",
        category=category,
        cost_code=record.get("costCode") or "",
        cost=Decimal(str(record.get("cost") or "0")),
        payload=_payload_from_record(category, record) if category else None,
        attachments=AttachmentSet(tuple(
            _attachment_from_record(a) for a in record.get("attachments") or ()
        )),
        generation_floor=int(record.get("generationFloor", 0)),
    )


def _payload_from_record(category: ExpenseCategory, record: dict[str, Any]) -> CategoryPayload:
    payload = default_payload(category)
    if isinstance(payload, MileagePayload):
        entry = record.get("mileageEntry") or {}
        mode = MileageEntryMode(entry.get("mode", MileageEntryMode.CALCULATED.value))
        return MileagePayload(
            purpose=TripPurpose(record.get("purpose") or TripPurpose.BUSINESS.value),
            from_location=Location(record.get("fromLocation") or "", entry.get("fromPlace")),
            to_location=Location(record.get("toLocation") or "", entry.get("toPlace")),
            round_trip=bool(record.get("roundTrip", False)),
            entry_mode=mode,
            mileage=_mileage_value(mode, record.get("mileage"), entry.get("state")),
            generation=int(entry.get("generation", 0)),
        )
    elif isinstance(payload, PerDiemPayload):
        return PerDiemPayload(
            breakfast=bool(record.get("breakfast", False)),
            lunch=bool(record.get("lunch", False)),
            dinner=bool(record.get("dinner", False)),
        )
    elif isinstance(payload, DescriptionPayload):
        return DescriptionPayload(tag=category, description=record.get("description") or "")
    else:
        assert_never(payload)


def _mileage_value(mode: MileageEntryMode, raw: Any, state: str | None) -> MileageValue:
    if raw is None:
        return ManualPending() if mode is MileageEntryMode.MANUAL else MileageUnset()
    miles = Decimal(str(raw))
    if mode is MileageEntryMode.MANUAL or state == ManualMileage.__name__:
        return ManualMileage(miles)
    return ComputedMileage(miles)


def _attachment_to_record(attachment: Attachment) -> dict[str, Any]:
    return {
        "id": str(attachment.id),
        "file": {
            "uri": attachment.file.uri,
            "name": attachment.file.filename,
            "contentType": attachment.file.content_type,
            "size": attachment.file.size,
        },
        "text": attachment.extracted_text,
    }


def _attachment_from_record(record: dict[str, Any]) -> Attachment:
    f = record["file"]
    return Attachment(
        id=UUID(record["id"]),
        file=FileReference(
            uri=f["uri"],
            filename=f.get("name", ""),
            content_type=f.get("contentType"),
            size=f.get("size"),
        ),
        extracted_text=record.get("text"),
    )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def settings_to_record(settings: SettingsConfiguration) -> dict[str, Any]:
    return {
        "mileageRate": str(settings.mileage_rate),
        "perDiem": {
            "breakfast": str(settings.per_diem.breakfast),
            "lunch": str(settings.per_diem.lunch),
            "dinner": str(settings.per_diem.dinner),
        },
        "projects": [{"number": p.number, "name": p.name} for p in settings.projects],
    }


def settings_from_record(record: dict[str, Any]) -> SettingsConfiguration:
    per_diem = record.get("perDiem") or {}
    return SettingsConfiguration(
        mileage_rate=Decimal(str(record["mileageRate"])),
        per_diem=PerDiemRates(
            breakfast=Decimal(str(per_diem.get("breakfast", "0"))),
            lunch=Decimal(str(per_diem.get("lunch", "0"))),
            dinner=Decimal(str(per_diem.get("dinner", "0"))),
        ),
        projects=tuple(
            Project(number=int(p["number"]), name=p["name"])
            for p in record.get("projects") or ()
        ),
    )
