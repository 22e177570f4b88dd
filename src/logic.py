# src/logic.py
import logging
import threading
from datetime import date

import dates
import db
from models import DEFAULT_HABIT_ICON, Habit, Profile, Section

logger = logging.getLogger(__name__)

INTERESTS = [
    "Self Improvement",
    "Business",
    "Health & Fitness",
    "Mindfulness",
    "Productivity",
    "Learning",
    "Creativity",
    "Relationships",
    "Finance",
    "Mental Health",
]

DEFAULT_SECTIONS = [
    ("Morning Routine", "Sun", [("Wake up early", "Sunrise"), ("Meditate 10 mins", "Brain")]),
    ("Health", "Heart", [("Exercise 30 mins", "Dumbbell"), ("Drink 8 glasses of water", "Droplet")]),
    ("Growth", "TrendingUp", [("Read for 20 mins", "BookOpen"), ("Learn something new", "Lightbulb")]),
]


# -------------------------------
# OPTIMISTIC CHANGES
# -------------------------------
class PendingChange:
    """A local delta applied before the remote write that confirms it.

    `apply` mutates local state, `commit` performs the remote write and
    `revert` restores canonical state when the write fails.
    """

    def __init__(self, apply, remote, revert):
        self._apply = apply
        self._remote = remote
        self._revert = revert
        self.applied = False

    def apply(self):
        self._apply()
        self.applied = True

    def commit(self) -> bool:
        try:
            self._remote()
            return True
        except db.StoreError as e:
            logger.warning("Remote write failed, reverting: %s", e)
            self.revert()
            return False

    def revert(self):
        try:
            self._revert()
        except db.StoreError as e:
            logger.error("Could not reload canonical state: %s", e)


class InFlight:
    """Ids with a change in progress, shared by every container in the process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._keys = set()

    def claim(self, key) -> bool:
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key):
        with self._lock:
            self._keys.discard(key)

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._keys


IN_FLIGHT = InFlight()


class SyncedState:
    """Base for containers that mirror remote records and mutate them optimistically."""

    def __init__(self, store, in_flight: InFlight = None):
        self.store = store
        self.in_flight = in_flight or IN_FLIGHT

    def refresh(self):
        raise NotImplementedError

    def _run(self, item_id: str, change: PendingChange, failure: str, **result):
        key = (getattr(self.store, "user_id", None), item_id)
        if not self.in_flight.claim(key):
            return {"error": "Another change to this item is still in progress."}
        try:
            change.apply()
            if not change.commit():
                return {"error": failure}
        finally:
            self.in_flight.release(key)
        return {"success": True, **result}


# -------------------------------
# HABITS & SECTIONS
# -------------------------------
class HabitRegistry(SyncedState):
    """Sections and habits of one user."""

    def __init__(self, store):
        super().__init__(store)
        self.sections = []
        self.habits = []

    def refresh(self):
        self.sections = [Section.from_row(r) for r in self.store.fetch_sections()]
        self.habits = [Habit.from_row(r) for r in self.store.fetch_habits()]
        return self

    def get_habit(self, habit_id: str):
        return next((h for h in self.habits if h.id == habit_id), None)

    def get_section(self, section_id: str):
        return next((s for s in self.sections if s.id == section_id), None)

    def habits_in(self, section_id: str) -> list:
        return [h for h in self.habits if h.section_id == section_id]

    def add_section(self, name: str, icon: str = ""):
        if not name or not name.strip():
            return {"error": "Section name cannot be empty."}
        try:
            row = self.store.insert_section(name.strip(), icon)
        except db.StoreError:
            return {"error": "Failed to add section."}
        section = Section.from_row(row)
        self.sections.append(section)
        return {"success": True, "section": section, "message": "Section added"}

    def add_habit(self, text: str, section_id: str, icon: str = None):
        if not text or not text.strip():
            return {"error": "Habit text cannot be empty."}
        if self.get_section(section_id) is None:
            return {"error": "Section not found."}
        try:
            row = self.store.insert_habit(section_id, text.strip(), icon or DEFAULT_HABIT_ICON)
        except db.StoreError:
            return {"error": "Failed to add habit."}
        habit = Habit.from_row(row)
        self.habits.append(habit)
        return {"success": True, "habit": habit, "message": "Habit added"}

    def rename_habit(self, habit_id: str, text: str):
        habit = self.get_habit(habit_id)
        if habit is None:
            return {"error": "Habit not found."}
        if not text or not text.strip():
            return {"error": "Habit text cannot be empty."}
        text = text.strip()

        def apply():
            habit.text = text

        change = PendingChange(apply, lambda: self.store.update_habit(habit_id, {"text": text}), self.refresh)
        return self._run(habit_id, change, "Failed to update", message="Habit updated")

    def delete_habit(self, habit_id: str):
        if self.get_habit(habit_id) is None:
            return {"error": "Habit not found."}

        def apply():
            self.habits = [h for h in self.habits if h.id != habit_id]

        change = PendingChange(apply, lambda: self.store.delete_habit(habit_id), self.refresh)
        return self._run(habit_id, change, "Failed to delete", message="Habit deleted")

    def delete_section(self, section_id: str):
        if self.get_section(section_id) is None:
            return {"error": "Section not found."}
        removed = [h.id for h in self.habits_in(section_id)]

        def apply():
            self.sections = [s for s in self.sections if s.id != section_id]
            self.habits = [h for h in self.habits if h.section_id != section_id]

        change = PendingChange(apply, lambda: self.store.delete_section(section_id), self.refresh)
        return self._run(
            section_id, change, "Failed to delete section",
            message="Section deleted", removed_habits=removed,
        )

    def toggle_completion(self, habit_id: str, day_index: int, today: date = None):
        habit = self.get_habit(habit_id)
        if habit is None:
            return {"error": "Habit not found."}
        today = today or date.today()
        target = dates.add_days(dates.parse_key(habit.created_at), day_index)
        if dates.is_future(target, today):
            return {"success": False, "skipped": True, "message": "Cannot complete a future day."}

        key = dates.date_key(target)
        if key in habit.completions:
            completions = [d for d in habit.completions if d != key]
        else:
            completions = habit.completions + [key]

        def apply():
            habit.completions = completions

        change = PendingChange(
            apply,
            lambda: self.store.update_habit(habit_id, {"completions": completions}),
            self.refresh,
        )
        return self._run(habit_id, change, "Failed to update", date=key, completed=key in completions)


# -------------------------------
# PROFILE & ONBOARDING
# -------------------------------
def get_profile(store):
    """Return the user's profile, or None if onboarding has not finished."""
    row = store.get_profile()
    if not row or not row.get("onboarding_complete"):
        return None
    return Profile.from_row(row)


def complete_onboarding(store, name: str, interests: list):
    """Save the profile and seed the default sections and habits."""
    if not name or not name.strip():
        return {"error": "Please enter your name"}
    chosen = [i for i in (interests or []) if i in INTERESTS]
    if not chosen:
        return {"error": "Please select at least one interest"}

    try:
        profile = Profile.from_row(store.upsert_profile(name.strip(), chosen, True))
    except db.StoreError:
        return {"error": "Failed to save profile"}

    try:
        rows = store.insert_sections([{"name": n, "icon": icon} for n, icon, _ in DEFAULT_SECTIONS])
        ids = {r["name"]: r["id"] for r in rows}
        seeded = [
            {"divider_id": ids[n], "text": text, "icon": icon}
            for n, _, habits in DEFAULT_SECTIONS if n in ids
            for text, icon in habits
        ]
        store.insert_habits(seeded)
    except db.StoreError:
        # the profile is saved; the user can still add sections by hand
        logger.exception("Seeding default sections failed for %s", profile.user_id)

    return {"success": True, "profile": profile, "message": f"Welcome, {profile.name}! 🎉"}
