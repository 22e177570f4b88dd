# src/journal.py
import logging
from datetime import date

import dates
import db
from logic import PendingChange, SyncedState
from models import Mood, MoodNote

logger = logging.getLogger(__name__)


class MoodLedger(SyncedState):
    """One mood note per calendar day for a single user."""

    def __init__(self, store):
        super().__init__(store)
        self.notes = []

    def refresh(self):
        self.notes = [MoodNote.from_row(r) for r in self.store.fetch_notes()]
        return self

    def get_note(self, note_id: str):
        return next((n for n in self.notes if n.id == note_id), None)

    def note_for(self, date_key: str):
        return next((n for n in self.notes if n.date == date_key), None)

    def upsert_note(self, date_key: str, mood, note: str = "", today: date = None):
        """Save the entry for `date_key`, updating the existing one for that day if any."""
        today = today or date.today()
        try:
            mood = Mood.parse(mood)
            day = dates.parse_key(date_key)
        except ValueError as e:
            return {"error": str(e)}
        if dates.is_future(day, today):
            return {"error": "Cannot save an entry for a future date."}

        date_key = dates.date_key(day)
        note = note or ""
        existing = self.note_for(date_key)
        try:
            if existing:
                self.store.update_note(existing.id, {"mood": mood.value, "note": note})
            else:
                row = self.store.insert_note(date_key, mood.value, note)
        except db.StoreError:
            return {"error": "Failed to update entry" if existing else "Failed to save entry"}

        if existing:
            existing.mood = mood
            existing.note = note
            return {"success": True, "note": existing, "message": "Entry updated"}
        created = MoodNote.from_row(row)
        self.notes.insert(0, created)
        return {"success": True, "note": created, "message": "Entry saved"}

    def edit_note(self, note_id: str, mood, note: str = ""):
        entry = self.get_note(note_id)
        if entry is None:
            return {"error": "Entry not found."}
        try:
            mood = Mood.parse(mood)
        except ValueError as e:
            return {"error": str(e)}
        note = note or ""
        try:
            self.store.update_note(note_id, {"mood": mood.value, "note": note})
        except db.StoreError:
            return {"error": "Failed to update entry"}
        entry.mood = mood
        entry.note = note
        return {"success": True, "note": entry, "message": "Entry updated"}

    def delete_note(self, note_id: str):
        if self.get_note(note_id) is None:
            return {"error": "Entry not found."}

        def apply():
            self.notes = [n for n in self.notes if n.id != note_id]

        change = PendingChange(apply, lambda: self.store.delete_note(note_id), self.refresh)
        return self._run(note_id, change, "Failed to delete entry", message="Entry deleted")

    def notes_for_month(self, year: int, month: int) -> list:
        return sorted(
            (n for n in self.notes if dates.in_month(n.date, year, month)),
            key=lambda n: n.date,
            reverse=True,
        )

    def recent(self, limit: int = 5) -> list:
        return sorted(self.notes, key=lambda n: n.date, reverse=True)[:limit]
