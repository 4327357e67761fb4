"""
In-process collaborator implementations.

Used for development and tests. Reports and settings are held as
persisted records (see ``codec``) so that what is loaded back is exactly
what a real store would return.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any
from uuid import UUID, uuid4

from expense_kernel.exceptions import PersistenceError, ReportNotFoundError
from expense_modules.report.codec import (
    report_from_record,
    report_to_record,
    settings_from_record,
    settings_to_record,
)
from expense_modules.report.models import (
    ExpenseReport,
    FileReference,
    SettingsConfiguration,
    UploadedFile,
    User,
)


class InMemoryReportRepository:
    def __init__(self):
        self._records: dict[str, dict[str, Any]] = {}

    def load_report(self, report_id: UUID) -> ExpenseReport:
        record = self._records.get(str(report_id))
        if record is None:
            raise ReportNotFoundError(str(report_id))
        return report_from_record(copy.deepcopy(record))

    def save_report(self, report: ExpenseReport) -> None:
        self._records[str(report.id)] = report_to_record(report)

    def record(self, report_id: UUID) -> dict[str, Any]:
        return copy.deepcopy(self._records[str(report_id)])


class InMemorySettingsRepository:
    def __init__(self, initial: SettingsConfiguration | None = None):
        self._record = settings_to_record(initial) if initial is not None else None

    def load_settings(self) -> SettingsConfiguration:
        if self._record is None:
            raise PersistenceError("load_settings", "no settings have been saved")
        return settings_from_record(copy.deepcopy(self._record))

    def save_settings(self, settings: SettingsConfiguration) -> None:
        self._record = settings_to_record(settings)


class StaticUserDirectory:
    def __init__(self, names: Iterable[str]):
        self._users = tuple(User(name=n) for n in names)

    def list_users(self) -> tuple[User, ...]:
        return self._users


class InMemoryFileStorage:
    """Keeps uploaded bytes keyed by a ``memory://`` uri."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}

    def store(self, upload: UploadedFile) -> FileReference:
        uri = f"memory://{uuid4()}/{upload.filename}"
        self._blobs[uri] = upload.content
        return FileReference(
            uri=uri,
            filename=upload.filename,
            content_type=upload.content_type,
            size=len(upload.content),
        )

    def read(self, uri: str) -> bytes:
        return self._blobs[uri]
