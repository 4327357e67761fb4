"""Tests for the expense report aggregate (expense_modules/report/aggregate.py)."""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from expense_kernel.domain.results import FailureKind
from expense_modules.report import aggregate
from expense_modules.report.config import ReportPolicy
from expense_modules.report.line_items import set_category, update_field
from expense_modules.report.models import ExpenseCategory, LineItem, User

USERS = (User("Riley Chen"), User("Sam Patel"))


def _complete_per_diem(item, session):
    item = set_category(item, ExpenseCategory.PER_DIEM, session)
    item = update_field(item, "date", "2025-03-04", session).unwrap()
    return update_field(item, "payload.lunch", True, session).unwrap()


@pytest.fixture
def report():
    report = aggregate.new_report(User("Riley Chen"))
    report = aggregate.add_line_item(report)
    return aggregate.add_line_item(report)


class TestAddLineItem:

    def test_new_report_is_empty(self):
        report = aggregate.new_report()
        assert report.line_items == ()
        assert report.user == User()

    def test_appends_blank_item(self, report):
        grown = aggregate.add_line_item(report)
        assert len(grown.line_items) == 3
        assert grown.line_items[:2] == report.line_items
        new = grown.line_items[-1]
        assert new.category is None
        assert new.id not in {i.id for i in report.line_items}


class TestReplaceLineItem:

    def test_replaces_in_place(self, report, session):
        target = report.line_items[0]
        updated = set_category(target, ExpenseCategory.OTHER, session)
        result = aggregate.replace_line_item(report, target.id, updated).unwrap()
        assert result.line_items[0] is updated
        assert result.line_items[1] is report.line_items[1]

    def test_unknown_id(self, report):
        stray = LineItem()
        result = aggregate.replace_line_item(report, stray.id, stray)
        assert result.failure.kind is FailureKind.NOT_FOUND
        assert result.failure.code == "LINE_ITEM_NOT_FOUND"
        assert len(report.line_items) == 2

    def test_id_mismatch(self, report):
        target = report.line_items[0]
        result = aggregate.replace_line_item(report, target.id, LineItem())
        assert result.failure.code == "LINE_ITEM_ID_MISMATCH"


class TestRemoveLineItem:

    def test_removes(self, report):
        first, second = report.line_items
        result = aggregate.remove_line_item(report, first.id).unwrap()
        assert result.line_items == (second,)

    def test_unknown_id(self, report):
        result = aggregate.remove_line_item(report, uuid4())
        assert result.failure.kind is FailureKind.NOT_FOUND


class TestGetLineItem:

    def test_found(self, report):
        item = report.line_items[1]
        assert aggregate.get_line_item(report, item.id).unwrap() is item

    def test_not_found(self, report):
        missing = uuid4()
        failure = aggregate.get_line_item(report, missing).failure
        assert failure.code == "LINE_ITEM_NOT_FOUND"
        assert failure.details == {"line_item_id": str(missing), "report_id": str(report.id)}


class TestReportTotal:

    def test_sums_costs(self, report, session):
        a, b = report.line_items
        a = _complete_per_diem(a, session)
        b = set_category(b, ExpenseCategory.OTHER, session)
        b = update_field(b, "cost", "4.35", session).unwrap()
        report = replace(report, line_items=(a, b))
        assert aggregate.report_total(report) == Decimal("19.35")

    def test_empty(self):
        assert aggregate.report_total(aggregate.new_report()) == Decimal("0")


class TestValidateReport:

    def test_complete(self, report, session):
        items = tuple(_complete_per_diem(i, session) for i in report.line_items)
        report = replace(report, line_items=items)
        assert aggregate.is_complete(report, USERS, session)
        assert aggregate.validate_report(report, USERS, session).errors == ()

    def test_blank_items_listed(self, report, session):
        result = aggregate.validate_report(report, USERS, session)
        assert result.codes.count("MISSING_CATEGORY") == 2
        ids = {f.details["line_item_id"] for f in result.errors}
        assert ids == {str(i.id) for i in report.line_items}

    def test_missing_user(self, session):
        report = aggregate.new_report()
        assert aggregate.validate_report(report, USERS, session).codes == ("MISSING_USER",)

    def test_unknown_user(self, session):
        report = aggregate.new_report(User("Mallory"))
        assert aggregate.validate_report(report, USERS, session).codes == ("UNKNOWN_USER",)

    def test_unknown_project(self, session):
        report = replace(aggregate.new_report(User("Riley Chen")), project="Moon Base")
        assert aggregate.validate_report(report, USERS, session).codes == ("UNKNOWN_PROJECT",)

    def test_known_project(self, session):
        report = replace(aggregate.new_report(User("Riley Chen")), project="Main Office")
        assert aggregate.is_complete(report, USERS, session)

    def test_empty_per_diem_policy(self, session):
        report = aggregate.add_line_item(aggregate.new_report(User("Riley Chen")))
        item = set_category(report.line_items[0], ExpenseCategory.PER_DIEM, session)
        item = update_field(item, "date", "2025-03-04", session).unwrap()
        report = replace(report, line_items=(item,))

        assert not aggregate.is_complete(report, USERS, session)
        lenient = replace(session, policy=ReportPolicy(allow_empty_per_diem=True))
        assert aggregate.is_complete(report, USERS, lenient)

    def test_validate_line_item(self, report, session):
        item = _complete_per_diem(report.line_items[0], session)
        assert aggregate.validate_line_item(item, session).is_valid
        assert not aggregate.validate_line_item(report.line_items[1], session).is_valid
