"""
Expense Report Domain Models.

The nouns of report editing: reports, line items, category payloads,
attachments, users, projects and the settings snapshot.

Every model is a frozen dataclass. Edits produce new instances; nothing
here mutates in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Iterator, TypeAlias
from uuid import UUID, uuid4

from expense_kernel.exceptions import DuplicateProjectError, InvalidSettingsError


class ExpenseCategory(str, Enum):
    """Closed set of line-item categories."""
    MILEAGE_TRIP = "Mileage"
    PER_DIEM = "Per Diem"
    REIMBURSABLE_RECEIPT = "Reimbursable Receipt"
    CLIENT_ENTERTAINMENT = "Client Entertainment"
    JOB_SITE_MATERIAL = "Job Site Material"
    OTHER = "Other"


class PayloadShape(str, Enum):
    """Structure a category contributes to its line items."""
    MILEAGE = "mileage"
    PER_DIEM = "per_diem"
    DESCRIPTION = "description"


class TripPurpose(str, Enum):
    BUSINESS = "Business"
    PERSONAL = "Personal"


class MileageEntryMode(str, Enum):
    CALCULATED = "Calculated"
    MANUAL = "Manual"


class Meal(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class Endpoint(str, Enum):
    """Which end of a mileage trip a location edit applies to."""
    FROM = "from_location"
    TO = "to_location"


# ---------------------------------------------------------------------------
# Mileage value states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MileageUnset:
    """No distance known yet (calculated mode)."""


@dataclass(frozen=True)
class ComputedMileage:
    """One-way distance returned by the distance provider."""
    miles: Decimal


@dataclass(frozen=True)
class ManualPending:
    """Manual mode selected, nothing typed yet."""


@dataclass(frozen=True)
class ManualMileage:
    """One-way distance typed by the user."""
    miles: Decimal


MileageValue: TypeAlias = MileageUnset | ComputedMileage | ManualPending | ManualMileage


# ---------------------------------------------------------------------------
# Category payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Location:
    """Free-text query plus the normalized place picked by autocomplete."""
    query: str = ""
    place: str | None = None

    @property
    def resolved(self) -> bool:
        return bool(self.place)


@dataclass(frozen=True)
class MileagePayload:
    """Mileage trip fields. ``generation`` counts endpoint changes."""
    tag: ClassVar[ExpenseCategory] = ExpenseCategory.MILEAGE_TRIP

    purpose: TripPurpose = TripPurpose.BUSINESS
    from_location: Location = field(default_factory=Location)
    to_location: Location = field(default_factory=Location)
    round_trip: bool = False
    entry_mode: MileageEntryMode = MileageEntryMode.CALCULATED
    mileage: MileageValue = field(default_factory=MileageUnset)
    generation: int = 0

    @property
    def miles(self) -> Decimal | None:
        """One-way miles when known, else None."""
        if isinstance(self.mileage, (ComputedMileage, ManualMileage)):
            return self.mileage.miles
        return None

    def location(self, endpoint: Endpoint) -> Location:
        if endpoint is Endpoint.FROM:
            return self.from_location
        return self.to_location


@dataclass(frozen=True)
class PerDiemPayload:
    """Meals claimed for the day."""
    tag: ClassVar[ExpenseCategory] = ExpenseCategory.PER_DIEM

    breakfast: bool = False
    lunch: bool = False
    dinner: bool = False

    def selected(self, meal: Meal) -> bool:
        return bool(getattr(self, meal.value))

    @property
    def any_selected(self) -> bool:
        return self.breakfast or self.lunch or self.dinner


@dataclass(frozen=True)
class DescriptionPayload:
    """Free-text categories. ``tag`` is the owning category."""
    tag: ExpenseCategory
    description: str = ""


CategoryPayload: TypeAlias = MileagePayload | PerDiemPayload | DescriptionPayload


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileReference:
    """Handle returned by file storage. The core never reads the bytes."""
    uri: str
    filename: str
    content_type: str | None = None
    size: int | None = None


@dataclass(frozen=True)
class UploadedFile:
    """Raw upload handed to file storage."""
    filename: str
    content: bytes
    content_type: str | None = None
    extracted_text: str | None = None


@dataclass(frozen=True)
class Attachment:
    id: UUID
    file: FileReference
    extracted_text: str | None = None


@dataclass(frozen=True)
class AttachmentSet:
    """Ordered attachments, unique by id."""
    entries: tuple[Attachment, ...] = ()

    def __post_init__(self):
        ids = [a.id for a in self.entries]
        if len(ids) != len(set(ids)):
            raise ValueError("attachment ids must be unique within a set")

    def __iter__(self) -> Iterator[Attachment]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, attachment_id: object) -> bool:
        return any(a.id == attachment_id for a in self.entries)

    @property
    def ids(self) -> tuple[UUID, ...]:
        return tuple(a.id for a in self.entries)


# ---------------------------------------------------------------------------
# Line items and reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineItem:
    """A single expense entry on a report."""
    id: UUID = field(default_factory=uuid4)
    date: str = ""  # ISO "YYYY-MM-DD"
    category: ExpenseCategory | None = None
    cost_code: str = ""
    cost: Decimal = Decimal("0")
    payload: CategoryPayload | None = None
    attachments: AttachmentSet = field(default_factory=AttachmentSet)
    # highest mileage generation used by any earlier payload of this item
    generation_floor: int = 0

    @property
    def description(self) -> str | None:
        if isinstance(self.payload, DescriptionPayload):
            return self.payload.description
        return None


@dataclass(frozen=True)
class User:
    name: str = ""


@dataclass(frozen=True)
class Project:
    number: int
    name: str


@dataclass(frozen=True)
class ExpenseReport:
    """An employee expense report being edited."""
    id: UUID = field(default_factory=uuid4)
    user: User = field(default_factory=User)
    project: str | None = None  # project name from settings
    line_items: tuple[LineItem, ...] = ()

    def find(self, line_item_id: UUID) -> LineItem | None:
        for item in self.line_items:
            if item.id == line_item_id:
                return item
        return None


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PerDiemRates:
    """Per-meal allowance amounts."""
    breakfast: Decimal = Decimal("0")
    lunch: Decimal = Decimal("0")
    dinner: Decimal = Decimal("0")

    def __post_init__(self):
        for meal in Meal:
            if getattr(self, meal.value) < 0:
                raise InvalidSettingsError(f"per_diem.{meal.value}", "cannot be negative")

    def rate_for(self, meal: Meal) -> Decimal:
        return getattr(self, meal.value)


@dataclass(frozen=True)
class SettingsConfiguration:
    """Administrator-controlled rates and project list."""
    mileage_rate: Decimal
    per_diem: PerDiemRates = field(default_factory=PerDiemRates)
    projects: tuple[Project, ...] = ()

    def __post_init__(self):
        if self.mileage_rate <= 0:
            raise InvalidSettingsError("mileage_rate", "must be positive")
        seen: set[str] = set()
        for project in self.projects:
            if project.name in seen:
                raise DuplicateProjectError(project.name)
            seen.add(project.name)

    def project_named(self, name: str) -> Project | None:
        for project in self.projects:
            if project.name == name:
                return project
        return None
