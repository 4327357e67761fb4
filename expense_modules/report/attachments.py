"""
Attachment set operations.

``add`` appends one entry per file with a fresh uuid4 (122 random bits)
and re-draws on the off chance of a collision within the set. ``remove``
is total: an unknown id returns the set unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from uuid import UUID, uuid4

from expense_modules.report.models import Attachment, AttachmentSet, FileReference


def add(
    attachments: AttachmentSet,
    files: Sequence[FileReference | tuple[FileReference, str | None]],
    id_factory: Callable[[], UUID] = uuid4,
) -> AttachmentSet:
    """Append ``files``; each item is a reference or (reference, extracted_text)."""
    taken = set(attachments.ids)
    added: list[Attachment] = []
    for entry in files:
        if isinstance(entry, FileReference):
            ref, text = entry, None
        else:
            ref, text = entry
        new_id = id_factory()
        while new_id in taken:
            new_id = id_factory()
        taken.add(new_id)
        added.append(Attachment(id=new_id, file=ref, extracted_text=text))
    return AttachmentSet(attachments.entries + tuple(added))


def remove(attachments: AttachmentSet, attachment_id: UUID) -> AttachmentSet:
    if attachment_id not in attachments:
        return attachments
    return AttachmentSet(tuple(a for a in attachments if a.id != attachment_id))
