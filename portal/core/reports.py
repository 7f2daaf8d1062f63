"""Completed / rejected assignment reports, newest first."""

from __future__ import annotations

from typing import Iterable

from portal.core.errors import ValidationError
from portal.data.models import Assignment, AssignmentStatus, Section


def _sections(section_filter: Iterable[Section | str] | None) -> frozenset[Section]:
    """Parse the filter once. Empty means every section."""
    try:
        return frozenset(Section(s) for s in section_filter or ())
    except ValueError as exc:
        raise ValidationError(f"Unknown section in filter {section_filter!r}", field="section") from exc


def completed(
    assignments: Iterable[Assignment],
    section_filter: Iterable[Section | str] | None = None,
) -> list[Assignment]:
    """Completed assignments, sorted by assigned_at descending."""
    wanted = _sections(section_filter)
    done = [
        a for a in assignments
        if a.status == AssignmentStatus.COMPLETED and (not wanted or a.section in wanted)
    ]
    return sorted(done, key=lambda a: a.assigned_at, reverse=True)


def rejected(
    assignments: Iterable[Assignment],
    section_filter: Iterable[Section | str] | None = None,
) -> list[Assignment]:
    """Rejected assignments, sorted by rejected_at (else assigned_at) descending."""
    wanted = _sections(section_filter)
    declined = [
        a for a in assignments
        if a.status == AssignmentStatus.REJECTED and (not wanted or a.section in wanted)
    ]
    return sorted(declined, key=lambda a: a.rejected_at or a.assigned_at, reverse=True)
