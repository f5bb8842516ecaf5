"""Typed attribute access over a character record.

The record is a flat key → string/number map owned by the host. Values
arrive stringly-typed ("12", "", True, None ...); all coercion happens
here, once, so the reward code only ever sees floats and string lists.

Well-known keys:

    Stats_{Characteristic}Dice / Stats_{Characteristic}Mod   stat pair
    Social_Status                                            -2..+2
    Inventory_Money                                          silver
    Contacts / BodilyChanges / MiscRewards / Inventory_Items newline lists
    Biography                                                newline log
"""

from __future__ import annotations

import math
from typing import Any, Protocol

from rpg_chargen.models import ChargenState

MONEY_KEY = "Inventory_Money"
STATUS_KEY = "Social_Status"
CONTACTS_KEY = "Contacts"
BODY_KEY = "BodilyChanges"
MISC_KEY = "MiscRewards"
ITEMS_KEY = "Inventory_Items"
BIOGRAPHY_KEY = "Biography"


def stat_keys(characteristic: str) -> tuple[str, str]:
    """Return the (dice, mod) attribute keys for a characteristic."""
    return f"Stats_{characteristic}Dice", f"Stats_{characteristic}Mod"


class CharacterRecord(Protocol):
    """The host's character, plus the one state blob the flow persists on it."""

    id: str
    name: str

    def read_attribute(self, key: str) -> Any: ...

    async def write_attributes(self, values: dict[str, Any]) -> None: ...

    async def load_state(self) -> ChargenState: ...

    async def save_state(self, state: ChargenState) -> None: ...


def to_number(raw: Any, default: float = 0.0) -> float:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return float(raw)
    try:
        n = float(raw)
    except (TypeError, ValueError):
        return default
    return n if math.isfinite(n) else default


def format_number(n: float) -> str:
    """12.0 → "12", 2.5 → "2.5"."""
    return str(int(n)) if float(n).is_integer() else str(n)


def _store_number(n: float) -> int | float:
    return int(n) if float(n).is_integer() else n


class Sheet:
    """Coercing view over a CharacterRecord."""

    def __init__(self, record: CharacterRecord) -> None:
        self.record = record

    def number(self, key: str, default: float = 0.0) -> float:
        return to_number(self.record.read_attribute(key), default)

    def text(self, key: str) -> str:
        raw = self.record.read_attribute(key)
        return "" if raw is None else str(raw)

    def lines(self, key: str) -> list[str]:
        return [s.strip() for s in self.text(key).split("\n") if s.strip()]

    async def set_numbers(self, values: dict[str, float]) -> None:
        """Write several numeric fields in one record update."""
        await self.record.write_attributes({k: _store_number(v) for k, v in values.items()})

    async def append_line(self, key: str, line: str) -> None:
        line = str(line).strip()
        if not line:
            return
        lines = self.lines(key)
        lines.append(line)
        await self.record.write_attributes({key: "\n".join(lines)})

    async def append_biography(self, line: str) -> None:
        await self.append_line(BIOGRAPHY_KEY, line)
