"""
Expense Report Service (``expense_modules.report.service``).

Responsibility
--------------
Orchestrates report editing for one session: loading and saving reports,
choosing the user and project, structural line-item edits, place
autocomplete, distance lookups, attachment upload and completeness
checks. Pure computation is delegated to ``aggregate``, ``line_items``,
``attachments`` and ``mileage``; I/O goes through the collaborator
protocols in ``ports``.

Architecture position
---------------------
**Modules layer** -- the sole public entry point for report editing. It
owns no state beyond its collaborators and the ``EditingSession``; every
operation takes a report value and returns a new one.

Invariants enforced
-------------------
* Collaborator exceptions never escape: each public method converts
  ``ExpenseKernelError`` into a ``Failure`` value.
* A failed operation returns the failure and no report; the caller keeps
  its previous value unchanged.
* Distance results are applied only while the line item's generation
  matches the ticket (see ``MileageCalculator.apply``).

Failure modes
-------------
* Unknown line item id -> NOT_FOUND failure.
* Repository or file storage failure -> PERSISTENCE failure.
* Provider failure -> PROVIDER / ENDPOINT_UNRESOLVED failure; mileage
  unchanged.

Audit relevance
---------------
Structured log events are emitted for every public method with the
report and line item ids bound through ``LogContext``.

Usage::

    service = ExpenseReportService(reports, users, files, calculator, session)
    report = service.new_report()
    report = service.add_line_item(report)
    item_id = report.line_items[-1].id
    report = service.change_category(report, item_id, ExpenseCategory.PER_DIEM).unwrap()
    report = service.edit_field(report, item_id, "payload.lunch", True).unwrap()
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import UUID

from expense_kernel.domain.results import Failure, Result, ValidationResult
from expense_kernel.exceptions import ExpenseKernelError, ProviderError
from expense_kernel.logging_config import LogContext, get_logger
from expense_modules.report import aggregate, attachments, line_items
from expense_modules.report.config import EditingSession
from expense_modules.report.mileage import MileageCalculator, MileageLookup, MileageOutcome
from expense_modules.report.models import (
    Endpoint,
    ExpenseCategory,
    ExpenseReport,
    FileReference,
    LineItem,
    MileageEntryMode,
    UploadedFile,
    User,
)
from expense_modules.report.ports import FileStorage, ReportRepository, UserDirectory

logger = get_logger("modules.report.service")


class ExpenseReportService:
    """
    Orchestrates report editing through the pure editing functions and the
    collaborator protocols.

    Contract
    --------
    * Methods that can fail return ``Result``; callers inspect
      ``result.is_success``.
    * ``add_line_item``, ``report_total`` and ``is_complete`` cannot fail
      and return plain values.

    Non-goals
    ---------
    * Does NOT submit or approve reports.
    * Does NOT edit settings (see ``SettingsEditor``).
    """

    def __init__(
        self,
        reports: ReportRepository,
        users: UserDirectory,
        files: FileStorage,
        mileage: MileageCalculator,
        session: EditingSession,
    ):
        self._reports = reports
        self._users = users
        self._files = files
        self._mileage = mileage
        self._session = session

    @property
    def session(self) -> EditingSession:
        return self._session

    def use_session(self, session: EditingSession) -> None:
        """Switch to a new settings snapshot, e.g. after a settings reload."""
        self._session = session
        logger.info(
            "editing_session_replaced",
            extra={"mileage_rate": str(session.settings.mileage_rate)},
        )

    # =========================================================================
    # Reports
    # =========================================================================

    def new_report(self, user: User | None = None) -> ExpenseReport:
        report = aggregate.new_report(user)
        logger.info("report_created", extra={"report_id": str(report.id)})
        return report

    def open_report(self, report_id: UUID) -> Result[ExpenseReport]:
        with LogContext.bind(report_id=str(report_id)):
            try:
                report = self._reports.load_report(report_id)
            except ExpenseKernelError as exc:
                return self._failed("open_report", exc)
            logger.info(
                "report_opened",
                extra={"line_item_count": len(report.line_items)},
            )
            return Result.ok(report)

    def save_report(self, report: ExpenseReport) -> Result[ExpenseReport]:
        with LogContext.bind(report_id=str(report.id)):
            try:
                self._reports.save_report(report)
            except ExpenseKernelError as exc:
                return self._failed("save_report", exc)
            logger.info(
                "report_saved",
                extra={
                    "line_item_count": len(report.line_items),
                    "total": str(aggregate.report_total(report)),
                },
            )
            return Result.ok(report)

    # =========================================================================
    # User and project
    # =========================================================================

    def list_users(self) -> Result[tuple[User, ...]]:
        """Directory users sorted by name."""
        try:
            users = tuple(sorted(self._users.list_users(), key=lambda u: u.name))
        except ExpenseKernelError as exc:
            return self._failed("list_users", exc)
        return Result.ok(users)

    def set_user(self, report: ExpenseReport, name: str) -> Result[ExpenseReport]:
        listed = self.list_users()
        if not listed.is_success:
            return Result.fail(listed.failure)  # type: ignore[arg-type]
        if name not in {u.name for u in listed.unwrap()}:
            return self._rejected("set_user", report, Failure.validation(
                "UNKNOWN_USER", f"User '{name}' is not in the directory", field="user",
            ))
        logger.info("report_user_set", extra={"report_id": str(report.id), "user": name})
        return Result.ok(replace(report, user=User(name=name)))

    def set_project(self, report: ExpenseReport, name: str | None) -> Result[ExpenseReport]:
        """Name the report's project; None clears it."""
        if name is not None and self._session.settings.project_named(name) is None:
            return self._rejected("set_project", report, Failure.validation(
                "UNKNOWN_PROJECT", f"Project '{name}' is not configured", field="project",
            ))
        logger.info("report_project_set", extra={"report_id": str(report.id), "project": name})
        return Result.ok(replace(report, project=name))

    # =========================================================================
    # Line items
    # =========================================================================

    def add_line_item(self, report: ExpenseReport) -> ExpenseReport:
        return aggregate.add_line_item(report)

    def remove_line_item(self, report: ExpenseReport, line_item_id: UUID) -> Result[ExpenseReport]:
        result = aggregate.remove_line_item(report, line_item_id)
        if result.is_success:
            self._mileage.forget(line_item_id)
            logger.info(
                "line_item_removed",
                extra={"report_id": str(report.id), "line_item_id": str(line_item_id)},
            )
        return result

    def change_category(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        category: ExpenseCategory,
    ) -> Result[ExpenseReport]:
        return self._edit_item(
            report, line_item_id,
            lambda item: Result.ok(line_items.set_category(item, category, self._session)),
        )

    def edit_field(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        field_path: str,
        value: Any,
    ) -> Result[ExpenseReport]:
        return self._edit_item(
            report, line_item_id,
            lambda item: line_items.update_field(item, field_path, value, self._session),
        )

    def set_mileage_entry_mode(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        mode: MileageEntryMode,
    ) -> Result[ExpenseReport]:
        return self._edit_item(
            report, line_item_id,
            lambda item: line_items.set_entry_mode(item, mode, self._session),
        )

    def select_place(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        endpoint: Endpoint,
        query: str,
    ) -> Result[ExpenseReport]:
        """
        Type ``query`` into an endpoint and resolve it through autocomplete.

        An unresolved query is kept as text with no place selected; the
        endpoint then blocks distance lookups until a place is chosen.
        """
        def edit(item: LineItem) -> Result[LineItem]:
            typed = line_items.update_field(item, "payload." + endpoint.value, query, self._session)
            if not typed.is_success:
                return typed
            try:
                place = self._mileage.resolve_place(query)
            except ProviderError as exc:
                logger.warning(
                    "place_resolution_failed",
                    extra={"endpoint": endpoint.value, "error_code": exc.code},
                )
                return Result.fail(Failure.from_exception(exc))
            logger.debug(
                "place_resolved",
                extra={"endpoint": endpoint.value, "resolved": place is not None},
            )
            return line_items.select_place(typed.unwrap(), endpoint, place, self._session)

        return self._edit_item(report, line_item_id, edit)

    # =========================================================================
    # Mileage lookups
    # =========================================================================

    def request_mileage(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        *,
        retry: bool = False,
    ) -> Result[MileageLookup]:
        found = aggregate.get_line_item(report, line_item_id)
        if not found.is_success:
            return Result.fail(found.failure)  # type: ignore[arg-type]
        return self._mileage.request(found.unwrap(), retry=retry)

    def apply_mileage(self, report: ExpenseReport, outcome: MileageOutcome) -> Result[ExpenseReport]:
        """Apply a finished lookup to the report as it is now."""
        return self._edit_item(
            report, outcome.lookup.line_item_id,
            lambda item: self._mileage.apply(item, outcome, self._session),
        )

    def refresh_mileage(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        *,
        retry: bool = False,
    ) -> Result[ExpenseReport]:
        """Request, run and apply a distance lookup in one blocking call."""
        issued = self.request_mileage(report, line_item_id, retry=retry)
        if not issued.is_success:
            return Result.fail(issued.failure)  # type: ignore[arg-type]
        return self.apply_mileage(report, self._mileage.lookup(issued.unwrap()))

    # =========================================================================
    # Attachments
    # =========================================================================

    def attach_files(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        uploads: Sequence[UploadedFile],
    ) -> Result[ExpenseReport]:
        """
        Store ``uploads`` and attach the returned references in order.

        All or nothing: when one upload fails, no attachment is added. Files
        already stored by that call are not deleted; their uris are listed
        under ``details["orphaned"]`` of the failure.
        """
        def edit(item: LineItem) -> Result[LineItem]:
            stored: list[tuple[FileReference, str | None]] = []
            for upload in uploads:
                try:
                    stored.append((self._files.store(upload), upload.extracted_text))
                except ExpenseKernelError as exc:
                    orphaned = tuple(ref.uri for ref, _ in stored)
                    logger.warning(
                        "attachment_store_failed",
                        extra={
                            "upload_name": upload.filename,
                            "error_code": exc.code,
                            "orphaned_count": len(orphaned),
                        },
                    )
                    failure = Failure.from_exception(exc)
                    if orphaned:
                        failure = replace(
                            failure, details={**(failure.details or {}), "orphaned": orphaned},
                        )
                    return Result.fail(failure)
            logger.info("attachments_added", extra={"count": len(stored)})
            return Result.ok(replace(item, attachments=attachments.add(item.attachments, stored)))

        return self._edit_item(report, line_item_id, edit)

    def detach_file(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        attachment_id: UUID,
    ) -> Result[ExpenseReport]:
        return self._edit_item(
            report, line_item_id,
            lambda item: Result.ok(
                replace(item, attachments=attachments.remove(item.attachments, attachment_id))
            ),
        )

    # =========================================================================
    # Completeness
    # =========================================================================

    def validate(self, report: ExpenseReport) -> ValidationResult:
        listed = self.list_users()
        if not listed.is_success:
            return ValidationResult.failure(listed.failure)  # type: ignore[arg-type]
        return aggregate.validate_report(report, listed.unwrap(), self._session)

    def is_complete(self, report: ExpenseReport) -> bool:
        return self.validate(report).is_valid

    def report_total(self, report: ExpenseReport) -> Decimal:
        return aggregate.report_total(report)

    # =========================================================================
    # Internals
    # =========================================================================

    def _edit_item(
        self,
        report: ExpenseReport,
        line_item_id: UUID,
        edit: Callable[[LineItem], Result[LineItem]],
    ) -> Result[ExpenseReport]:
        with LogContext.bind(report_id=str(report.id), line_item_id=str(line_item_id)):
            found = aggregate.get_line_item(report, line_item_id)
            if not found.is_success:
                logger.warning("line_item_edit_not_found")
                return Result.fail(found.failure)  # type: ignore[arg-type]
            edited = edit(found.unwrap())
            if not edited.is_success:
                return Result.fail(edited.failure)  # type: ignore[arg-type]
            return aggregate.replace_line_item(report, line_item_id, edited.unwrap())

    def _failed(self, operation: str, exc: ExpenseKernelError) -> Result[Any]:
        logger.warning(
            "report_operation_failed",
            extra={"operation": operation, "error_code": exc.code, "reason": str(exc)},
        )
        return Result.fail(Failure.from_exception(exc))

    def _rejected(self, operation: str, report: ExpenseReport, failure: Failure) -> Result[Any]:
        logger.warning(
            "report_edit_rejected",
            extra={
                "operation": operation,
                "report_id": str(report.id),
                "error_code": failure.code,
            },
        )
        return Result.fail(failure)
