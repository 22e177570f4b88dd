# src/db.py
import logging
from supabase import create_client, Client

import config

logger = logging.getLogger(__name__)

_client: Client = None


class StoreError(Exception):
    """A read or write against the remote store failed."""


def get_client() -> Client:
    global _client
    if _client is None:
        if not config.SUPABASE_URL or not config.SUPABASE_KEY:
            raise StoreError("SUPABASE_URL and SUPABASE_KEY must be set")
        _client = create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
    return _client


def _execute(query, action: str):
    try:
        return query.execute()
    except Exception as e:
        logger.error("%s failed: %s", action, e)
        raise StoreError(f"{action} failed: {e}") from e


class SupabaseStore:
    """The four record collections of one user: profiles, dividers, todos, mood_notes."""

    def __init__(self, user_id: str, client: Client = None):
        self.user_id = user_id
        self.client = client or get_client()

    def _table(self, name: str):
        return self.client.table(name)

    def _single(self, resp, action: str) -> dict:
        if not resp.data:
            raise StoreError(f"{action} returned no rows")
        return resp.data[0]

    # -------------------------------
    # PROFILES
    # -------------------------------
    def get_profile(self):
        resp = _execute(
            self._table("profiles").select("*").eq("user_id", self.user_id).limit(1),
            "fetch profile",
        )
        return resp.data[0] if resp.data else None

    def upsert_profile(self, name: str, interests: list, onboarding_complete: bool = True) -> dict:
        resp = _execute(
            self._table("profiles").upsert({
                "user_id": self.user_id,
                "name": name,
                "interests": interests,
                "onboarding_complete": onboarding_complete,
            }, on_conflict="user_id"),
            "upsert profile",
        )
        return self._single(resp, "upsert profile")

    # -------------------------------
    # DIVIDERS (SECTIONS)
    # -------------------------------
    def fetch_sections(self) -> list:
        resp = _execute(
            self._table("dividers").select("*").eq("user_id", self.user_id).order("created_at"),
            "fetch dividers",
        )
        return resp.data or []

    def insert_section(self, name: str, icon: str) -> dict:
        return self.insert_sections([{"name": name, "icon": icon}])[0]

    def insert_sections(self, sections: list) -> list:
        payload = [{"user_id": self.user_id, **s} for s in sections]
        resp = _execute(self._table("dividers").insert(payload), "insert dividers")
        if not resp.data:
            raise StoreError("insert dividers returned no rows")
        return resp.data

    def delete_section(self, section_id: str):
        _execute(
            self._table("todos").delete().eq("divider_id", section_id).eq("user_id", self.user_id),
            "delete divider todos",
        )
        _execute(
            self._table("dividers").delete().eq("id", section_id).eq("user_id", self.user_id),
            "delete divider",
        )

    # -------------------------------
    # TODOS (HABITS)
    # -------------------------------
    def fetch_habits(self) -> list:
        resp = _execute(
            self._table("todos").select("*").eq("user_id", self.user_id).order("created_at"),
            "fetch todos",
        )
        return resp.data or []

    def insert_habit(self, divider_id: str, text: str, icon: str) -> dict:
        return self.insert_habits([{"divider_id": divider_id, "text": text, "icon": icon}])[0]

    def insert_habits(self, habits: list) -> list:
        payload = [{"user_id": self.user_id, "completions": [], **h} for h in habits]
        resp = _execute(self._table("todos").insert(payload), "insert todos")
        if not resp.data:
            raise StoreError("insert todos returned no rows")
        return resp.data

    def update_habit(self, habit_id: str, fields: dict):
        _execute(
            self._table("todos").update(fields).eq("id", habit_id).eq("user_id", self.user_id),
            "update todo",
        )

    def delete_habit(self, habit_id: str):
        _execute(
            self._table("todos").delete().eq("id", habit_id).eq("user_id", self.user_id),
            "delete todo",
        )

    # -------------------------------
    # MOOD NOTES
    # -------------------------------
    def fetch_notes(self) -> list:
        resp = _execute(
            self._table("mood_notes").select("*").eq("user_id", self.user_id).order("date", desc=True),
            "fetch mood notes",
        )
        return resp.data or []

    def insert_note(self, date_key: str, mood: str, note: str) -> dict:
        resp = _execute(
            self._table("mood_notes").insert({
                "user_id": self.user_id,
                "date": date_key,
                "mood": mood,
                "note": note,
            }),
            "insert mood note",
        )
        return self._single(resp, "insert mood note")

    def update_note(self, note_id: str, fields: dict):
        _execute(
            self._table("mood_notes").update(fields).eq("id", note_id).eq("user_id", self.user_id),
            "update mood note",
        )

    def delete_note(self, note_id: str):
        _execute(
            self._table("mood_notes").delete().eq("id", note_id).eq("user_id", self.user_id),
            "delete mood note",
        )
