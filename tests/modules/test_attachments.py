"""Tests for attachment set operations."""

from itertools import chain, repeat
from uuid import uuid4

from expense_modules.report import attachments
from expense_modules.report.models import AttachmentSet, FileReference


def _ref(name: str) -> FileReference:
    return FileReference(uri=f"memory://{name}", filename=name)


class TestAdd:

    def test_appends_in_order(self):
        result = attachments.add(AttachmentSet(), [_ref("a.pdf"), _ref("b.pdf")])
        assert [a.file.filename for a in result] == ["a.pdf", "b.pdf"]
        assert len(set(result.ids)) == 2

    def test_keeps_existing(self):
        first = attachments.add(AttachmentSet(), [_ref("a.pdf")])
        second = attachments.add(first, [_ref("b.pdf")])
        assert second.entries[0] == first.entries[0]
        assert len(second) == 2

    def test_extracted_text(self):
        result = attachments.add(AttachmentSet(), [(_ref("r.png"), "TOTAL 12.40")])
        assert result.entries[0].extracted_text == "TOTAL 12.40"

    def test_empty_list(self):
        existing = attachments.add(AttachmentSet(), [_ref("a.pdf")])
        assert attachments.add(existing, []) == existing

    def test_redraws_colliding_id(self):
        existing = attachments.add(AttachmentSet(), [_ref("a.pdf")])
        taken = existing.ids[0]
        fresh = uuid4()
        ids = chain([taken], repeat(fresh))
        result = attachments.add(existing, [_ref("b.pdf")], id_factory=lambda: next(ids))
        assert result.ids == (taken, fresh)


class TestRemove:

    def test_removes_by_id(self):
        result = attachments.add(AttachmentSet(), [_ref("a.pdf"), _ref("b.pdf")])
        remaining = attachments.remove(result, result.ids[0])
        assert [a.file.filename for a in remaining] == ["b.pdf"]

    def test_unknown_id_is_noop(self):
        result = attachments.add(AttachmentSet(), [_ref("a.pdf")])
        assert attachments.remove(result, uuid4()) is result

    def test_idempotent(self):
        result = attachments.add(AttachmentSet(), [_ref("a.pdf")])
        once = attachments.remove(result, result.ids[0])
        assert attachments.remove(once, result.ids[0]) == once

    def test_add_then_remove_restores(self):
        base = attachments.add(AttachmentSet(), [_ref("a.pdf")])
        grown = attachments.add(base, [_ref("b.pdf")])
        assert attachments.remove(grown, grown.ids[-1]) == base
