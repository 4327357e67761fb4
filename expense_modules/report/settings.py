"""
Settings Store and Editor (``expense_modules.report.settings``).

Responsibility
--------------
``SettingsStore`` loads the settings configuration once per session and
hands out the snapshot that report editing reads. ``SettingsEditor``
holds an admin-gated working copy that is written back only on an
explicit ``save()``.

Invariants enforced
-------------------
* Report editing never mutates settings; it reads the store snapshot.
* The snapshot changes only on ``reload()``.
* Every editor mutation and ``save()`` require a prior ``unlock()``.
  The admin password is compared by SHA-256 digest in constant time and
  is never logged.
* Project names stay unique; the mileage rate stays positive; meal rates
  stay non-negative.

Failure modes
-------------
* Repository failures -> PERSISTENCE failure values. A stored record
  that decodes to out-of-range settings -> VALIDATION failure value;
  the previous snapshot is kept.
* Locked editor -> AUTHORIZATION failure values.
* Range or uniqueness violations -> VALIDATION failure values; the
  working copy is left unchanged.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Callable
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any

from expense_kernel.domain.results import Failure, Result
from expense_kernel.exceptions import (
    AdminAuthorizationError,
    DuplicateProjectError,
    ExpenseKernelError,
    InvalidSettingsError,
    PersistenceError,
    ProjectNotFoundError,
    SettingsError,
)
from expense_kernel.logging_config import get_logger
from expense_modules.report.models import Meal, Project, SettingsConfiguration
from expense_modules.report.ports import SettingsRepository

logger = get_logger("modules.report.settings")


class SettingsStore:
    """Load-once holder of the session's settings snapshot."""

    def __init__(self, repository: SettingsRepository):
        self._repository = repository
        self._snapshot: SettingsConfiguration | None = None

    @property
    def snapshot(self) -> SettingsConfiguration | None:
        return self._snapshot

    def load(self) -> Result[SettingsConfiguration]:
        """Return the snapshot, loading it on first use."""
        if self._snapshot is not None:
            return Result.ok(self._snapshot)
        return self.reload()

    def reload(self) -> Result[SettingsConfiguration]:
        """Fetch settings from the repository and replace the snapshot."""
        try:
            settings = self._repository.load_settings()
        except ExpenseKernelError as exc:
            logger.warning(
                "settings_load_failed",
                extra={"error_code": exc.code, "reason": str(exc)},
            )
            return Result.fail(Failure.from_exception(exc))
        self._snapshot = settings
        logger.info(
            "settings_loaded",
            extra={
                "mileage_rate": str(settings.mileage_rate),
                "project_count": len(settings.projects),
            },
        )
        return Result.ok(settings)


def password_digest(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class SettingsEditor:
    """
    Admin-gated editing of a settings working copy.

    Usage::

        editor = SettingsEditor(store.snapshot, repository, config.admin.password_sha256)
        if editor.unlock(password):
            editor.set_mileage_rate("0.70")
            editor.save()
    """

    def __init__(
        self,
        settings: SettingsConfiguration,
        repository: SettingsRepository,
        password_sha256: str | None,
    ):
        self._settings = settings
        self._repository = repository
        self._password_sha256 = password_sha256
        self._is_admin = False

    @property
    def settings(self) -> SettingsConfiguration:
        return self._settings

    @property
    def is_admin(self) -> bool:
        return self._is_admin

    def unlock(self, password: str) -> bool:
        """Enable editing when ``password`` matches the configured digest."""
        if self._password_sha256 is None:
            logger.warning("settings_unlock_unconfigured")
            return False
        matched = hmac.compare_digest(password_digest(password), self._password_sha256)
        if matched:
            self._is_admin = True
            logger.info("settings_unlocked")
        else:
            logger.warning("settings_unlock_rejected")
        return matched

    def lock(self) -> None:
        self._is_admin = False

    # -- edits ---------------------------------------------------------------

    def set_mileage_rate(self, value: Any) -> Result[SettingsConfiguration]:
        def edit(s: SettingsConfiguration) -> SettingsConfiguration:
            return replace(s, mileage_rate=_as_rate("mileage_rate", value))
        return self._edit("set_mileage_rate", edit)

    def set_per_diem_rate(self, meal: Meal, value: Any) -> Result[SettingsConfiguration]:
        def edit(s: SettingsConfiguration) -> SettingsConfiguration:
            rate = _as_rate(f"per_diem.{meal.value}", value)
            return replace(s, per_diem=replace(s.per_diem, **{meal.value: rate}))
        return self._edit("set_per_diem_rate", edit)

    def add_project(self, number: int, name: str) -> Result[SettingsConfiguration]:
        def edit(s: SettingsConfiguration) -> SettingsConfiguration:
            if not name.strip():
                raise InvalidSettingsError("projects.name", "cannot be empty")
            if s.project_named(name) is not None:
                raise DuplicateProjectError(name)
            return replace(s, projects=s.projects + (Project(number=number, name=name),))
        return self._edit("add_project", edit)

    def update_project(self, name: str, number: int) -> Result[SettingsConfiguration]:
        """Change the number of the project called ``name``."""
        def edit(s: SettingsConfiguration) -> SettingsConfiguration:
            if s.project_named(name) is None:
                raise ProjectNotFoundError(name)
            projects = tuple(
                Project(number=number, name=p.name) if p.name == name else p
                for p in s.projects
            )
            return replace(s, projects=projects)
        return self._edit("update_project", edit)

    def remove_project(self, name: str) -> Result[SettingsConfiguration]:
        def edit(s: SettingsConfiguration) -> SettingsConfiguration:
            if s.project_named(name) is None:
                raise ProjectNotFoundError(name)
            return replace(s, projects=tuple(p for p in s.projects if p.name != name))
        return self._edit("remove_project", edit)

    def save(self) -> Result[SettingsConfiguration]:
        """Write the working copy through the repository."""
        if not self._is_admin:
            return self._denied("save")
        try:
            self._repository.save_settings(self._settings)
        except PersistenceError as exc:
            logger.warning(
                "settings_save_failed",
                extra={"error_code": exc.code, "reason": exc.reason},
            )
            return Result.fail(Failure.from_exception(exc))
        logger.info(
            "settings_saved",
            extra={
                "mileage_rate": str(self._settings.mileage_rate),
                "project_count": len(self._settings.projects),
            },
        )
        return Result.ok(self._settings)

    def _edit(
        self,
        operation: str,
        edit: Callable[[SettingsConfiguration], SettingsConfiguration],
    ) -> Result[SettingsConfiguration]:
        if not self._is_admin:
            return self._denied(operation)
        try:
            updated = edit(self._settings)
        except SettingsError as exc:
            logger.warning(
                "settings_edit_rejected",
                extra={"operation": operation, "error_code": exc.code},
            )
            return Result.fail(Failure.from_exception(exc))
        self._settings = updated
        logger.info("settings_edited", extra={"operation": operation})
        return Result.ok(updated)

    def _denied(self, operation: str) -> Result[SettingsConfiguration]:
        logger.warning("settings_edit_denied", extra={"operation": operation})
        return Result.fail(Failure.from_exception(AdminAuthorizationError(operation)))


def _as_rate(name: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidSettingsError(name, f"expected a number, got {value!r}")
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise InvalidSettingsError(name, f"expected a number, got {value!r}") from None
    if not rate.is_finite():
        raise InvalidSettingsError(name, f"expected a finite number, got {value!r}")
    return rate
