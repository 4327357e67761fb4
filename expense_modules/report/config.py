"""
Expense Report Configuration Schema.

Defines the completeness policy and the editing session context. Actual
values are loaded from ``expense_config`` at session start:

    session = EditingSession.from_configuration(
        get_active_config(), settings=settings_store.snapshot,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from expense_config.schema import ExpenseConfiguration, SettingsDef
from expense_kernel.logging_config import get_logger
from expense_modules.report.categories import CategoryRules
from expense_modules.report.models import (
    PerDiemRates,
    Project,
    SettingsConfiguration,
)

logger = get_logger("modules.report.config")


@dataclass(frozen=True)
class ReportPolicy:
    """
    Completeness policy.

    ``allow_empty_per_diem`` decides whether a per-diem line with no meal
    selected counts as complete. ``mileage_rounding_places`` is the
    precision billable miles are rounded to before applying the rate.
    """

    allow_empty_per_diem: bool = False
    mileage_rounding_places: int = 0

    def __post_init__(self):
        if self.mileage_rounding_places < 0:
            raise ValueError("mileage_rounding_places cannot be negative")

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()


def settings_from_definition(defn: SettingsDef) -> SettingsConfiguration:
    """Seed settings from configuration."""
    return SettingsConfiguration(
        mileage_rate=defn.mileage_rate,
        per_diem=PerDiemRates(
            breakfast=defn.breakfast_rate,
            lunch=defn.lunch_rate,
            dinner=defn.dinner_rate,
        ),
        projects=tuple(Project(number=p.number, name=p.name) for p in defn.projects),
    )


@dataclass(frozen=True)
class EditingSession:
    """
    Context passed into every computation that needs rates or rules.

    The settings snapshot is fixed for the lifetime of the session; admin
    edits become visible only through an explicit reload that builds a
    new session.
    """

    settings: SettingsConfiguration
    rules: CategoryRules = field(default_factory=CategoryRules)
    policy: ReportPolicy = field(default_factory=ReportPolicy)

    @classmethod
    def from_configuration(
        cls,
        config: ExpenseConfiguration,
        settings: SettingsConfiguration | None = None,
    ) -> Self:
        """Build a session from parsed configuration.

        When ``settings`` is omitted the configured seed values are used.
        """
        session = cls(
            settings=settings or settings_from_definition(config.settings),
            rules=CategoryRules.from_definitions(config.category_rules),
            policy=ReportPolicy(
                allow_empty_per_diem=config.policy.allow_empty_per_diem,
                mileage_rounding_places=config.policy.mileage_rounding_places,
            ),
        )
        logger.info(
            "editing_session_created",
            extra={
                "config_id": config.config_id,
                "mileage_rate": str(session.settings.mileage_rate),
                "allow_empty_per_diem": session.policy.allow_empty_per_diem,
                "project_count": len(session.settings.projects),
            },
        )
        return session

    @property
    def mileage_rate(self) -> Decimal:
        return self.settings.mileage_rate
