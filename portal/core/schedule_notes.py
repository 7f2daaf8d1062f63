"""Executives' notes on a staffer's weekly class-schedule grid."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from portal.core.errors import NotFoundError, ValidationError
from portal.data.models import ScheduleNote, User
from portal.ports.notification_port import Topic

if TYPE_CHECKING:
    from portal.ports.notification_port import ChangeBus
    from portal.ports.store_port import ScheduleNoteStore

logger = logging.getLogger(__name__)

SEMESTERS = ("1st", "2nd")


class ScheduleNoteService:
    def __init__(
        self,
        store: ScheduleNoteStore,
        bus: ChangeBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self._clock = clock or datetime.now

    def save_note(
        self,
        author: User,
        staffer_id: str,
        day: str,
        time_slot: str,
        notes: str,
        semester: str,
    ) -> ScheduleNote:
        """Write the note for a slot, replacing any note already there."""
        if semester not in SEMESTERS:
            raise ValidationError(f"Unknown semester {semester!r}", field="semester")
        for name, value in (("staffer_id", staffer_id), ("day", day), ("time_slot", time_slot)):
            if not value or not value.strip():
                raise ValidationError(f"{name} is required", field=name)

        existing = self._store.find_slot(staffer_id, day, time_slot, semester)
        if existing is not None:
            note = replace(
                existing,
                notes=notes,
                added_by=author.email,
                added_by_name=author.name,
                added_by_position=author.position or "",
                updated_at=self._clock().isoformat(),
            )
        else:
            note = ScheduleNote(
                id="",
                staffer_id=staffer_id,
                day=day,
                time_slot=time_slot,
                notes=notes,
                semester=semester,
                added_by=author.email,
                added_by_name=author.name,
                added_by_position=author.position or "",
            )
        saved = self._store.save(note)
        if self._bus is not None:
            self._bus.emit(Topic.SCHEDULE_NOTE_CHANGED, saved)
        return saved

    def notes_for(self, staffer_id: str, semester: str | None = None) -> list[ScheduleNote]:
        notes = self._store.list_for(staffer_id)
        if semester:
            notes = [n for n in notes if n.semester == semester]
        return notes

    def delete_note(self, note_id: str) -> None:
        if not self._store.delete(note_id):
            raise NotFoundError("Schedule note", note_id)
        if self._bus is not None:
            self._bus.emit(Topic.SCHEDULE_NOTE_CHANGED, note_id)
