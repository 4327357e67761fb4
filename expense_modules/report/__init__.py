"""
Expense Report Module (``expense_modules.report``).

Responsibility
--------------
Editing of employee expense reports: line items with category-specific
payloads, derived mileage and per-diem costs, asynchronous distance
lookups, attachments, report completeness and the admin-gated settings
that supply the rates.

Architecture position
---------------------
**Modules layer** -- pure editing functions (``line_items``,
``aggregate``, ``attachments``), a distance lookup coordinator
(``mileage``), collaborator protocols (``ports``) and the
``ExpenseReportService`` facade.

Invariants enforced
-------------------
* A line item's payload tag always equals its category.
* Mileage and per-diem costs are always derived from the current rates.
* A distance result is applied only to the trip it was requested for.

Failure modes
-------------
* Edits return ``Result``; a failure leaves the report unchanged.
* Collaborator exceptions are converted to ``Failure`` values by the
  service.
"""

from expense_modules.report.config import EditingSession, ReportPolicy
from expense_modules.report.mileage import MileageCalculator, MileageLookup, MileageOutcome
from expense_modules.report.models import (
    Attachment,
    AttachmentSet,
    ComputedMileage,
    DescriptionPayload,
    Endpoint,
    ExpenseCategory,
    ExpenseReport,
    FileReference,
    LineItem,
    Location,
    ManualMileage,
    ManualPending,
    Meal,
    MileageEntryMode,
    MileagePayload,
    MileageUnset,
    PerDiemPayload,
    PerDiemRates,
    Project,
    SettingsConfiguration,
    TripPurpose,
    UploadedFile,
    User,
)
from expense_modules.report.service import ExpenseReportService
from expense_modules.report.settings import SettingsEditor, SettingsStore

__all__ = [
    "Attachment",
    "AttachmentSet",
    "ComputedMileage",
    "DescriptionPayload",
    "EditingSession",
    "Endpoint",
    "ExpenseCategory",
    "ExpenseReport",
    "ExpenseReportService",
    "FileReference",
    "LineItem",
    "Location",
    "ManualMileage",
    "ManualPending",
    "Meal",
    "MileageCalculator",
    "MileageEntryMode",
    "MileageLookup",
    "MileageOutcome",
    "MileagePayload",
    "MileageUnset",
    "PerDiemPayload",
    "PerDiemRates",
    "Project",
    "ReportPolicy",
    "SettingsConfiguration",
    "SettingsEditor",
    "SettingsStore",
    "TripPurpose",
    "UploadedFile",
    "User",
]
