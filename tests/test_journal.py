"""Tests for the mood note ledger."""

from datetime import timedelta

import pytest

from journal import MoodLedger
from models import Mood


def make_ledger(store):
    return MoodLedger(store).refresh()


def test_upsert_twice_keeps_one_entry(store, today):
    ledger = make_ledger(store)

    first = ledger.upsert_note("2024-01-01", "happy", "x", today=today)
    second = ledger.upsert_note("2024-01-01", "sad", "y", today=today)

    assert first["message"] == "Entry saved"
    assert second["message"] == "Entry updated"
    assert second["note"].id == first["note"].id
    assert len(ledger.notes) == 1
    assert len(store.notes) == 1
    assert store.notes[0]["mood"] == "sad"
    assert store.notes[0]["note"] == "y"


def test_upsert_rejects_future_date(store, today):
    ledger = make_ledger(store)

    result = ledger.upsert_note((today + timedelta(days=1)).isoformat(), "happy", "", today=today)

    assert "error" in result
    assert ledger.notes == []
    assert "insert_note" not in store.calls


def test_upsert_accepts_today(store, today):
    ledger = make_ledger(store)
    assert ledger.upsert_note(today.isoformat(), Mood.NEUTRAL, today=today)["success"]


def test_upsert_rejects_unknown_mood(store, today):
    ledger = make_ledger(store)
    assert "error" in ledger.upsert_note("2024-01-01", "ecstatic", today=today)
    assert ledger.notes == []


@pytest.mark.parametrize("value", ["Super Happy", "super-happy", "SUPER_HAPPY"])
def test_mood_labels_normalise(value):
    assert Mood.parse(value) is Mood.SUPER_HAPPY


def test_edit_note_keeps_date(store, today):
    ledger = make_ledger(store)
    note = ledger.upsert_note("2024-03-01", "happy", "ok", today=today)["note"]

    result = ledger.edit_note(note.id, "depressed", "rough day")

    assert result["success"]
    assert ledger.get_note(note.id).date == "2024-03-01"
    assert ledger.get_note(note.id).mood is Mood.DEPRESSED
    assert store.notes[0]["note"] == "rough day"


def test_edit_failure_leaves_entry(store, today):
    ledger = make_ledger(store)
    note = ledger.upsert_note("2024-03-01", "happy", "ok", today=today)["note"]
    store.fail.add("update_note")

    assert ledger.edit_note(note.id, "sad", "changed") == {"error": "Failed to update entry"}
    assert ledger.get_note(note.id).mood is Mood.HAPPY


def test_delete_note_reverts_on_failure(store, today):
    ledger = make_ledger(store)
    note = ledger.upsert_note("2024-03-01", "happy", "", today=today)["note"]
    store.fail.add("delete_note")

    assert "error" in ledger.delete_note(note.id)
    assert [n.id for n in ledger.notes] == [note.id]

    store.fail.clear()
    assert ledger.delete_note(note.id)["success"]
    assert ledger.notes == []


def test_notes_for_month_and_recent(store, today):
    ledger = make_ledger(store)
    for day in ["2024-02-28", "2024-03-01", "2024-03-05", "2024-03-10", "2024-03-12", "2024-03-14"]:
        ledger.upsert_note(day, "neutral", "", today=today)

    march = ledger.notes_for_month(2024, 3)
    assert [n.date for n in march] == ["2024-03-14", "2024-03-12", "2024-03-10", "2024-03-05", "2024-03-01"]
    assert [n.date for n in ledger.recent(2)] == ["2024-03-14", "2024-03-12"]
