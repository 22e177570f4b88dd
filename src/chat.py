# src/chat.py
"""Chat context assembly and the upstream language-model call with fallback."""

import json
import logging

import httpx

import config

logger = logging.getLogger(__name__)

RECENT_NOTES = 5

SYSTEM_PROMPT = """You are a warm Therapy Guide for a habit tracking and mood journaling app. Your job is to:

1. **Be supportive** - answer with kindness and understanding
2. **Encourage reflection** - ask thoughtful questions about habits and moods
3. **Offer gentle guidance** - share practical tips for building habits and handling emotions
4. **Celebrate progress** - notice wins, however small
5. **Stay brief** - two or three short paragraphs at most

STYLE:
- Talk like a supportive friend, casual and friendly
- Keep sentences short
- Use at most 1-2 emojis per reply
- Never lecture
- End with a follow-up question when it helps the conversation
- When something is hard, acknowledge the feeling first

You can see the user's habits with their completion counts, their recent mood entries with notes, and how their sections are organised.
Use this to make your support personal."""


class ChatConfigError(Exception):
    """The upstream API key is missing."""


class ChatUpstreamError(Exception):
    """Both the primary and the fallback model answered with an error."""

    def __init__(self, statuses: list, detail: str = ""):
        super().__init__(f"AI service error (status {statuses})")
        self.statuses = statuses
        self.detail = detail

    @property
    def rate_limited(self) -> bool:
        return 429 in self.statuses

    @property
    def quota_exceeded(self) -> bool:
        return 402 in self.statuses


# -------------------------------
# CONTEXT
# -------------------------------
def _get(item, *names, default=None):
    if not isinstance(item, dict):
        item = item.to_dict() if hasattr(item, "to_dict") else vars(item)
    for name in names:
        if name in item and item[name] is not None:
            return item[name]
    return default


def build_context(todos, dividers, notes) -> str:
    """Summarise habits per section and the most recent mood notes as plain text."""
    text = ""
    todos = list(todos or [])
    notes = list(notes or [])

    if todos:
        text += "\n\n**User's Habits:**\n"
        for divider in dividers or []:
            divider_id = _get(divider, "id")
            section_todos = [t for t in todos if _get(t, "dividerId", "divider_id", "section_id") == divider_id]
            if not section_todos:
                continue
            text += f"\n{_get(divider, 'name', default='')}:\n"
            for todo in section_todos:
                done = len(_get(todo, "completions", default=[]))
                text += f"- {_get(todo, 'text', default='')} ({done}/7 days completed)\n"

    if notes:
        text += "\n\n**Recent Mood Entries:**\n"
        newest = sorted(notes, key=lambda n: str(_get(n, "date", default="")), reverse=True)
        for note in newest[:RECENT_NOTES]:
            mood = _get(note, "mood", default="")
            mood = getattr(mood, "value", mood)
            line = f"- {_get(note, 'date', default='')}: {mood}"
            body = _get(note, "note", default="")
            if body:
                line += f' - "{body}"'
            text += line + "\n"

    return text


def system_prompt(context: dict = None) -> str:
    context = context or {}
    return SYSTEM_PROMPT + build_context(
        context.get("todos"), context.get("dividers"), context.get("notes")
    )


# -------------------------------
# UPSTREAM
# -------------------------------
async def _send(client: httpx.AsyncClient, model: str, messages: list, system: str, api_key: str):
    request = client.build_request(
        "POST",
        config.CHAT_API_URL,
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        json={
            "model": model,
            "messages": [{"role": "system", "content": system}] + list(messages),
            "stream": True,
        },
    )
    return await client.send(request, stream=True)


async def open_stream(client: httpx.AsyncClient, messages: list, context: dict = None) -> httpx.Response:
    """Open a streamed completion, falling back to the second model once.

    The returned response is still open; the caller relays its body and closes it.
    """
    api_key = config.POLLINATIONS_API_KEY
    if not api_key:
        logger.error("POLLINATIONS_API_KEY is not configured")
        raise ChatConfigError("AI service not configured")

    system = system_prompt(context)
    statuses = []

    logger.info("Calling chat API with model: %s", config.CHAT_PRIMARY_MODEL)
    response = await _send(client, config.CHAT_PRIMARY_MODEL, messages, system, api_key)
    if response.is_success:
        return response
    statuses.append(response.status_code)
    await response.aclose()

    logger.info("Primary model failed (%s), trying fallback: %s",
                response.status_code, config.CHAT_FALLBACK_MODEL)
    response = await _send(client, config.CHAT_FALLBACK_MODEL, messages, system, api_key)
    if response.is_success:
        return response
    statuses.append(response.status_code)
    detail = (await response.aread()).decode("utf-8", errors="replace")
    await response.aclose()

    logger.error("AI API error: %s %s", statuses, detail[:500])
    raise ChatUpstreamError(statuses, detail)


def iter_deltas(lines):
    """Yield the text deltas of an OpenAI-style event stream, given its lines."""
    for line in lines:
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.strip()
        if not line.startswith("data:"):
            continue
        payload = line[len("data:"):].strip()
        if payload == "[DONE]":
            return
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            continue
        for choice in event.get("choices") or []:
            content = (choice.get("delta") or {}).get("content")
            if content:
                yield content
