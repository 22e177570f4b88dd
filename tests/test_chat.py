"""Tests for chat context assembly and the upstream fallback."""

import asyncio
import json

import httpx
import pytest

import chat
import config
from models import Habit, Mood, MoodNote, Section


def make_client(statuses, body=b"data: {}\n\n"):
    """Client whose upstream answers with the given statuses in order."""
    seen = []

    def handler(request):
        payload = json.loads(request.content)
        seen.append(payload["model"])
        status = statuses[len(seen) - 1]
        return httpx.Response(status, content=body if status == 200 else b'{"error": "nope"}')

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), seen


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(config, "POLLINATIONS_API_KEY", "test-key")


def test_build_context_groups_by_section():
    context = chat.build_context(
        todos=[
            {"text": "Stretch", "dividerId": "a", "completions": ["2024-01-01", "2024-01-02"]},
            {"text": "Read", "divider_id": "b", "completions": []},
        ],
        dividers=[{"id": "a", "name": "Morning"}, {"id": "b", "name": "Night"}, {"id": "c", "name": "Empty"}],
        notes=[],
    )
    assert "**User's Habits:**" in context
    assert "\nMorning:\n- Stretch (2/7 days completed)\n" in context
    assert "\nNight:\n- Read (0/7 days completed)\n" in context
    assert "Empty" not in context
    assert "Mood Entries" not in context


def test_build_context_caps_recent_notes():
    notes = [{"date": f"2024-01-0{i}", "mood": "happy", "note": "good" if i == 9 else ""} for i in range(1, 10)]
    context = chat.build_context([], [], notes)
    lines = [line for line in context.splitlines() if line.startswith("- ")]
    assert lines[0] == '- 2024-01-09: happy - "good"'
    assert lines[1] == "- 2024-01-08: happy"
    assert len(lines) == 5


def test_build_context_accepts_domain_objects():
    context = chat.build_context(
        [Habit(id="h", text="Walk", section_id="s", created_at="2024-01-01", completions=["2024-01-01"])],
        [Section(id="s", name="Health")],
        [MoodNote(id="n", date="2024-01-02", mood=Mood.SAD)],
    )
    assert "- Walk (1/7 days completed)" in context
    assert "- 2024-01-02: sad" in context


def test_system_prompt_appends_context():
    prompt = chat.system_prompt({"notes": [{"date": "2024-01-01", "mood": "neutral", "note": ""}]})
    assert prompt.startswith(chat.SYSTEM_PROMPT)
    assert prompt.endswith("- 2024-01-01: neutral\n")


def test_open_stream_uses_primary_when_ok(api_key):
    client, seen = make_client([200])
    response = asyncio.run(chat.open_stream(client, [{"role": "user", "content": "hi"}]))
    assert response.status_code == 200
    assert seen == [config.CHAT_PRIMARY_MODEL]


def test_open_stream_falls_back_once(api_key):
    client, seen = make_client([500, 200])
    response = asyncio.run(chat.open_stream(client, []))
    assert response.status_code == 200
    assert seen == [config.CHAT_PRIMARY_MODEL, config.CHAT_FALLBACK_MODEL]


def test_open_stream_reports_both_statuses(api_key):
    client, seen = make_client([429, 503])
    with pytest.raises(chat.ChatUpstreamError) as info:
        asyncio.run(chat.open_stream(client, []))
    assert info.value.statuses == [429, 503]
    assert info.value.rate_limited
    assert len(seen) == 2


def test_open_stream_requires_api_key(monkeypatch):
    monkeypatch.setattr(config, "POLLINATIONS_API_KEY", "")
    client, seen = make_client([200])
    with pytest.raises(chat.ChatConfigError):
        asyncio.run(chat.open_stream(client, []))
    assert seen == []


def test_iter_deltas_reads_event_stream():
    lines = [
        b'data: {"choices": [{"delta": {"content": "Hel"}}]}',
        b"",
        b": keep-alive",
        'data: {"choices": [{"delta": {"content": "lo"}}]}',
        "data: not json",
        "data: [DONE]",
        'data: {"choices": [{"delta": {"content": "ignored"}}]}',
    ]
    assert "".join(chat.iter_deltas(lines)) == "Hello"
