"""Shared fixtures: an in-memory stand-in for the Supabase store."""

import itertools
from datetime import date, datetime, time

import pytest

import db


class FakeStore:
    """Keeps the four collections in memory.

    `fail` names methods that should raise; `hold` maps a method name to a pair of
    events (entered, release) so a call can be paused mid-write.
    """

    def __init__(self, user_id="user-1"):
        self.user_id = user_id
        self.profile = None
        self.sections = []
        self.habits = []
        self.notes = []
        self.fail = set()
        self.hold = {}
        self.calls = []
        self._ids = itertools.count(1)

    def _check(self, name):
        self.calls.append(name)
        if name in self.hold:
            entered, release = self.hold[name]
            entered.set()
            release.wait(timeout=5)
        if name in self.fail:
            raise db.StoreError(f"{name} failed")

    def _id(self, prefix):
        return f"{prefix}-{next(self._ids)}"

    # profiles
    def get_profile(self):
        self._check("get_profile")
        return dict(self.profile) if self.profile else None

    def upsert_profile(self, name, interests, onboarding_complete=True):
        self._check("upsert_profile")
        self.profile = {"user_id": self.user_id, "name": name, "interests": list(interests),
                        "onboarding_complete": onboarding_complete}
        return dict(self.profile)

    # dividers
    def fetch_sections(self):
        self._check("fetch_sections")
        return [dict(s) for s in self.sections]

    def insert_section(self, name, icon):
        return self.insert_sections([{"name": name, "icon": icon}])[0]

    def insert_sections(self, sections):
        self._check("insert_sections")
        rows = [{"id": self._id("div"), "user_id": self.user_id,
                 "created_at": datetime.now().isoformat(), **s} for s in sections]
        self.sections.extend(rows)
        return [dict(r) for r in rows]

    def delete_section(self, section_id):
        self._check("delete_section")
        self.habits = [h for h in self.habits if h["divider_id"] != section_id]
        self.sections = [s for s in self.sections if s["id"] != section_id]

    # todos
    def fetch_habits(self):
        self._check("fetch_habits")
        return [dict(h, completions=list(h["completions"])) for h in self.habits]

    def insert_habit(self, divider_id, text, icon):
        return self.insert_habits([{"divider_id": divider_id, "text": text, "icon": icon}])[0]

    def insert_habits(self, habits):
        self._check("insert_habits")
        rows = [{"id": self._id("todo"), "user_id": self.user_id, "completions": [],
                 "created_at": datetime.now().isoformat(), **h} for h in habits]
        self.habits.extend(rows)
        return [dict(r) for r in rows]

    def update_habit(self, habit_id, fields):
        self._check("update_habit")
        for h in self.habits:
            if h["id"] == habit_id:
                h.update(fields)

    def delete_habit(self, habit_id):
        self._check("delete_habit")
        self.habits = [h for h in self.habits if h["id"] != habit_id]

    # mood notes
    def fetch_notes(self):
        self._check("fetch_notes")
        return sorted((dict(n) for n in self.notes), key=lambda n: n["date"], reverse=True)

    def insert_note(self, date_key, mood, note):
        self._check("insert_note")
        row = {"id": self._id("note"), "user_id": self.user_id, "date": date_key, "mood": mood,
               "note": note, "created_at": datetime.now().isoformat()}
        self.notes.append(row)
        return dict(row)

    def update_note(self, note_id, fields):
        self._check("update_note")
        for n in self.notes:
            if n["id"] == note_id:
                n.update(fields)

    def delete_note(self, note_id):
        self._check("delete_note")
        self.notes = [n for n in self.notes if n["id"] != note_id]

    # helpers for arranging tests
    def seed_section(self, name="Morning", icon="Sun"):
        return self.insert_sections([{"name": name, "icon": icon}])[0]

    def seed_habit(self, divider_id, text="Stretch", created=None, completions=None):
        row = self.insert_habits([{"divider_id": divider_id, "text": text, "icon": "PersonStanding"}])[0]
        stored = next(h for h in self.habits if h["id"] == row["id"])
        if created is not None:
            stored["created_at"] = datetime.combine(created, time(9, 0)).isoformat()
        if completions is not None:
            stored["completions"] = list(completions)
        self.calls.clear()
        return dict(stored)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def today():
    return date(2024, 3, 15)
