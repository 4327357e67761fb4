"""Tests for expense report domain model invariants."""

from decimal import Decimal
from uuid import uuid4

import pytest

from expense_kernel.exceptions import DuplicateProjectError, InvalidSettingsError
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
    MileagePayload,
    PerDiemRates,
    Project,
    SettingsConfiguration,
)


def _attachment(attachment_id=None):
    return Attachment(
        id=attachment_id or uuid4(),
        file=FileReference(uri="memory://x", filename="x.pdf"),
    )


class TestAttachmentSet:

    def test_duplicate_ids_rejected(self):
        a = _attachment()
        with pytest.raises(ValueError, match="unique"):
            AttachmentSet((a, _attachment(a.id)))

    def test_membership_by_id(self):
        a = _attachment()
        attachments = AttachmentSet((a,))
        assert a.id in attachments
        assert uuid4() not in attachments
        assert len(attachments) == 1
        assert attachments.ids == (a.id,)


class TestMileagePayload:

    @pytest.mark.parametrize(
        "value, miles",
        [
            (ComputedMileage(Decimal("4.2")), Decimal("4.2")),
            (ManualMileage(Decimal("7")), Decimal("7")),
            (ManualPending(), None),
        ],
    )
    def test_miles(self, value, miles):
        assert MileagePayload(mileage=value).miles == miles

    def test_location_by_endpoint(self):
        payload = MileagePayload(from_location=Location("a"), to_location=Location("b"))
        assert payload.location(Endpoint.FROM).query == "a"
        assert payload.location(Endpoint.TO).query == "b"

    def test_location_resolved(self):
        assert Location("home", "12 Elm St").resolved
        assert not Location("home").resolved


class TestLineItem:

    def test_description(self):
        item = LineItem(payload=DescriptionPayload(tag=ExpenseCategory.OTHER, description="Tolls"))
        assert item.description == "Tolls"
        assert LineItem(payload=MileagePayload()).description is None

    def test_ids_unique(self):
        assert LineItem().id != LineItem().id


class TestExpenseReport:

    def test_find(self):
        item = LineItem()
        report = ExpenseReport(line_items=(item,))
        assert report.find(item.id) is item
        assert report.find(uuid4()) is None


class TestSettingsConfiguration:

    def test_rate_for(self):
        rates = PerDiemRates(breakfast=Decimal("12"), lunch=Decimal("15"), dinner=Decimal("20"))
        assert rates.rate_for(Meal.LUNCH) == Decimal("15")

    def test_negative_meal_rate_rejected(self):
        with pytest.raises(InvalidSettingsError, match="per_diem.dinner"):
            PerDiemRates(dinner=Decimal("-1"))

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-0.1")])
    def test_non_positive_mileage_rate_rejected(self, rate):
        with pytest.raises(InvalidSettingsError, match="mileage_rate"):
            SettingsConfiguration(mileage_rate=rate)

    def test_duplicate_project_name_rejected(self):
        with pytest.raises(DuplicateProjectError):
            SettingsConfiguration(
                mileage_rate=Decimal("0.67"),
                projects=(Project(1, "Depot"), Project(2, "Depot")),
            )

    def test_project_named(self):
        settings = SettingsConfiguration(
            mileage_rate=Decimal("0.67"), projects=(Project(1, "Depot"),),
        )
        assert settings.project_named("Depot") == Project(1, "Depot")
        assert settings.project_named("Annex") is None
