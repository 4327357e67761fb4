"""
Collaborator protocols consumed by the report editing core.

Implementations live outside the core (HTTP clients, databases, map
providers). Failures are reported by raising the kernel exceptions named
on each method; the editing service converts them into failure values.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID

from expense_modules.report.models import (
    ExpenseReport,
    FileReference,
    SettingsConfiguration,
    UploadedFile,
    User,
)


@runtime_checkable
class ReportRepository(Protocol):
    """Persistence of expense reports."""

    def load_report(self, report_id: UUID) -> ExpenseReport:
        """Raises ReportNotFoundError or PersistenceError."""
        ...

    def save_report(self, report: ExpenseReport) -> None:
        """Raises PersistenceError."""
        ...


@runtime_checkable
class SettingsRepository(Protocol):
    """Persistence of the settings configuration."""

    def load_settings(self) -> SettingsConfiguration:
        """Raises PersistenceError."""
        ...

    def save_settings(self, settings: SettingsConfiguration) -> None:
        """Raises PersistenceError."""
        ...


@runtime_checkable
class Geocoder(Protocol):
    """Place autocomplete and driving distance."""

    def resolve_place(self, query: str) -> str | None:
        """Normalized place string, or None when the query does not resolve."""
        ...

    def distance_meters(self, origin: str, destination: str) -> Decimal:
        """One-way driving distance. Raises ProviderError."""
        ...


@runtime_checkable
class UserDirectory(Protocol):
    def list_users(self) -> Iterable[User]:
        ...


@runtime_checkable
class FileStorage(Protocol):
    def store(self, upload: UploadedFile) -> FileReference:
        """Persist the bytes and return a reference. Raises PersistenceError."""
        ...
