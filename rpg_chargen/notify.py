"""Notification channel and finish summary rendering.

The session posts to a notifier at transition boundaries only (start,
finish, surfaced errors). Every notifier matches the protocol:

    async def __call__(self, kind: str, content: str) -> None: ...

`kind` is "summary", "info" or "error". Delivery is fire-and-forget: the
session logs and ignores notifier failures.

Two implementations are provided:

    LogNotifier      — writes to the module logger. No storage.
    ChatLogNotifier  — appends a Message to the character's chat log.

The finish summary is an HTML fragment rendered from a Handlebars template
(values are HTML-escaped by the renderer).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

import pybars

from rpg_chargen.errors import ChargenError
from rpg_chargen.models import Message, MessageType
from rpg_chargen.storage import StoredCharacter

logger = logging.getLogger(__name__)

SUMMARY_TEMPLATE = (
    "<h3>Character Generation Finished</h3>\n"
    "<p><b>{{name}}</b> biography:</p>\n"
    "<ul>{{#each bio}}<li>{{this}}</li>{{/each}}</ul>"
)

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class SummaryError(ChargenError):
    """Raised when the summary template fails to compile or render."""


def render_summary(name: str, bio: list[str], template: str = SUMMARY_TEMPLATE) -> str:
    """Render the finish summary. Templates are cached by source string."""
    try:
        compiled = _cache.get(template)
        if compiled is None:
            compiled = _compiler.compile(template)
            _cache[template] = compiled
        return str(compiled({"name": name, "bio": list(bio)}))
    except Exception as e:
        raise SummaryError(f"Template error: {e}") from e


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class Notifier(Protocol):
    async def __call__(self, kind: MessageType, content: str) -> None: ...


# ---------------------------------------------------------------------------
# LogNotifier
# ---------------------------------------------------------------------------

class LogNotifier:
    """Logs notifications; errors at ERROR level, the rest at INFO."""

    async def __call__(self, kind: MessageType, content: str) -> None:
        level = logging.ERROR if kind == "error" else logging.INFO
        logger.log(level, "[%s] %s", kind, content)


# ---------------------------------------------------------------------------
# ChatLogNotifier
# ---------------------------------------------------------------------------

class ChatLogNotifier:
    """Appends each notification to the character's chat log."""

    def __init__(self, character: StoredCharacter) -> None:
        self._character = character

    async def __call__(self, kind: MessageType, content: str) -> None:
        existing = self._character.get_messages()
        seq = max((m.seq for m in existing), default=0) + 1
        msg = Message(
            seq=seq,
            type=kind,
            content=content,
            ts=datetime.now(timezone.utc).isoformat(),
        )
        await self._character.append_messages([msg])


async def post(notifier: Notifier | None, kind: MessageType, content: str) -> None:
    """Deliver without letting a notifier failure escape."""
    if notifier is None:
        return
    try:
        await notifier(kind, content)
    except Exception:
        logger.warning("notifier failed to deliver %s message", kind, exc_info=True)
