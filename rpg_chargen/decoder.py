"""Table result decoder — turns the text of a table row into a Choice.

Row text is authored by hand inside the host's table editor, so it arrives
in several shapes:

    {"choice": {...}, "rewards": [...]}             plain JSON
    <p>{&quot;choice&quot;: ...}</p>                 JSON wrapped in HTML
    Born poor: {"choice": ...} (see p. 12)          JSON inside prose

The decoder recovers the JSON object, validates the two required parts
(`choice.title` and a non-empty `rewards` list) and normalises every reward.
Change entries are left as raw dicts; they are coerced when applied.
"""

from __future__ import annotations

import copy
import html
import json
import logging
import math
import re
from typing import Any

from rpg_chargen.errors import ChargenError
from rpg_chargen.models import Choice, NextTable, Reward, TableRow

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 500

_TAG_RE = re.compile(r"<[^>]*>")
_NEXT_REF_KEYS = ("tableRef", "tableUuid", "table")
_NEXT_ROLLS_KEYS = ("rollsOverride", "rolls")


class DecodeError(ChargenError):
    """Raised when a row's text cannot be decoded into a Choice."""

    def __init__(self, table_name: str, reason: str, preview: str) -> None:
        self.table_name = table_name
        self.reason = reason
        self.preview = preview
        super().__init__(
            f"Invalid JSON in {table_name} result:\n{reason}\n\nText was:\n{preview}"
        )


def row_payload(row: TableRow) -> str:
    """Return the row text that carries the payload: description, text, then name."""
    for candidate in (row.description, row.text, row.name):
        text = (candidate or "").strip()
        if text:
            return text
    return ""


def row_label(row: TableRow) -> str:
    """Plain display text of a row, used by single-row reward draws."""
    for candidate in (row.name, row.text, row.description):
        text = _strip_markup(candidate or "").strip()
        if text:
            return text
    return "Unknown"


def _strip_markup(text: str) -> str:
    if not text.lstrip().startswith("<"):
        return text
    text = _TAG_RE.sub(" ", text)
    return html.unescape(text).replace("\u00a0", " ")


def _extract_json_text(raw: str) -> str:
    text = _strip_markup(raw.strip()).strip()
    if not text.startswith("{"):
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1]
    return text


def _finite_weight(value: Any) -> float:
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return 1.0
    return weight if math.isfinite(weight) else 1.0


def _as_int(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return int(number) if math.isfinite(number) else 0


def normalize_next(raw: Any) -> NextTable | None:
    """Normalise a raw `next` value; None when it names no table."""
    if isinstance(raw, str):
        ref = raw.strip()
        return NextTable(table_ref=ref) if ref else None
    if not isinstance(raw, dict):
        return None

    ref = ""
    for key in _NEXT_REF_KEYS:
        value = raw.get(key)
        if value is not None and str(value).strip():
            ref = str(value).strip()
            break
    if not ref:
        return None

    rolls = 0
    for key in _NEXT_ROLLS_KEYS:
        if key in raw:
            rolls = max(0, _as_int(raw[key]))
            break
    return NextTable(table_ref=ref, rolls_override=rolls)


def normalize_reward(raw: dict[str, Any]) -> Reward:
    data = copy.deepcopy(raw)
    data["weight"] = _finite_weight(data["weight"]) if "weight" in data else 1.0
    changes = data.get("changes")
    data["changes"] = list(changes) if isinstance(changes, list) else []
    data["next"] = normalize_next(data.get("next"))
    return Reward.model_validate(data)


def _tags(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    if isinstance(raw, list):
        return [str(t).strip() for t in raw if t is not None and str(t).strip()]
    return []


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def decode_choice(raw: str | None, table_name: str = "RollTable") -> Choice:
    """Decode one row's text into a validated Choice.

    Raises DecodeError with the table name, the reason, and a preview of
    at most 500 characters of the original text.
    """
    original = str(raw or "")
    preview = original[:PREVIEW_CHARS]

    try:
        data = json.loads(_extract_json_text(original))
    except json.JSONDecodeError as e:
        raise DecodeError(table_name, str(e), preview) from e

    if not isinstance(data, dict):
        raise DecodeError(table_name, "JSON root must be an object.", preview)

    choice = data.get("choice")
    if not isinstance(choice, dict) or not str(choice.get("title") or "").strip():
        raise DecodeError(table_name, "Missing choice.title", preview)

    raw_rewards = data.get("rewards")
    if not isinstance(raw_rewards, list):
        raise DecodeError(table_name, "Missing rewards[]", preview)
    rewards = [normalize_reward(r) for r in raw_rewards if isinstance(r, dict)]
    if not rewards:
        raise DecodeError(table_name, "Missing rewards[]", preview)

    tags = _tags(choice.get("tags")) or _tags(data.get("tags"))
    bio = _optional_text(data.get("bio")) or _optional_text(choice.get("bio"))

    decoded = Choice(
        title=str(choice["title"]).strip(),
        text=_optional_text(choice.get("text")),
        icon=_optional_text(choice.get("icon")),
        tags=tags,
        bio=bio,
        rewards=rewards,
    )
    logger.debug("decoded %r from %s (%d rewards)", decoded.title, table_name, len(rewards))
    return decoded
