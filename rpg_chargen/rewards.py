"""Reward application — executes a reward's changes against the character.

Changes are applied strictly in list order; later changes read what
earlier ones wrote. Every applied change emits one biography line, which
goes both to the run's biography log and to the character's Biography
field.

Change types:

    money   {amount}                         Inventory_Money += amount
    contact {professionTable?, regionTable?, connectionTable?}
                                             three draws → Contacts
    body    {tableRef?}                      one draw → BodilyChanges
    misc    {tableRef?}                      one draw → MiscRewards
    item    {tableRef, qty?}                 one draw → Inventory_Items
    stat    {characteristic, steps?}         dice/mod ladder
    stat    {key, delta}                     plain numeric delta (older tables)
    skill   {targetKey, targetLevel, fallback?}
    social  {amount, reason?}                Social_Status, clamped -2..+2
    luck    {on, reason?}                    run.lucky_streak (not on the sheet)

Table refs missing from a contact/body/misc change are taken from the
run's setup. Anything unrecognised or malformed is skipped without error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from rpg_chargen.decoder import row_label
from rpg_chargen.gating import STATUS_MAX, STATUS_MIN
from rpg_chargen.models import Run
from rpg_chargen.sheet import (
    BODY_KEY,
    CONTACTS_KEY,
    ITEMS_KEY,
    MISC_KEY,
    MONEY_KEY,
    STATUS_KEY,
    Sheet,
    format_number,
    stat_keys,
    to_number,
)
from rpg_chargen.skills import SkillProgression, SkillStep
from rpg_chargen.tables import TableProvider, require_table

logger = logging.getLogger(__name__)

DEFAULT_RESERVED_PREFIXES = ("Traits_",)


# ---------------------------------------------------------------------------
# Stat ladder
# ---------------------------------------------------------------------------

def ladder_step(dice: float, mod: float, steps: int) -> tuple[int, int]:
    """Advance (dice, mod) by `steps`: mod runs 0..3, overflow carries into dice."""
    d = max(1, int(dice))
    m = max(0, int(mod))
    for _ in range(max(0, steps)):
        if m < 3:
            m += 1
        else:
            d += 1
            m = 0
    return d, m


def stat_notation(dice: float, mod: float) -> str:
    return f"{format_number(dice)}d6+{format_number(mod)}"


async def advance_stat(sheet: Sheet, characteristic: str, steps: int = 1) -> tuple[int, int]:
    """Advance one characteristic and write dice and mod together."""
    dice_key, mod_key = stat_keys(characteristic)
    dice, mod = ladder_step(sheet.number(dice_key, 1), sheet.number(mod_key, 0), steps)
    await sheet.set_numbers({dice_key: dice, mod_key: mod})
    return dice, mod


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _ref(change: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = change.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def _int(value: Any, default: int = 0) -> int:
    return int(to_number(value, default))


def _skill_step_from_dict(raw: dict[str, Any]) -> SkillStep | None:
    # hosts written against the sheet's JS API answer with camelCase keys
    name = str(raw.get("node_name") or raw.get("nodeName") or "").strip()
    if not name:
        return None
    return SkillStep(node_name=name, node_level=_int(raw.get("node_level", raw.get("nodeLevel"))))


def _reason_suffix(change: dict[str, Any]) -> str:
    reason = str(change.get("reason") or "").strip()
    return f" ({reason})" if reason else ""


# ---------------------------------------------------------------------------
# Applicator
# ---------------------------------------------------------------------------

class RewardApplicator:
    """Applies change lists for one run against one character sheet.

    Args:
        sheet:             typed view of the character record.
        run:               the in-memory run being advanced; biography lines
                           and the lucky streak are written to it.
        tables:            provider used for contact/body/misc/item draws.
        skills:            optional skill progression capability.
        reserved_prefixes: skill names with these prefixes are never granted.
    """

    def __init__(
        self,
        sheet: Sheet,
        run: Run,
        tables: TableProvider,
        skills: SkillProgression | None = None,
        reserved_prefixes: Sequence[str] = DEFAULT_RESERVED_PREFIXES,
    ) -> None:
        self.sheet = sheet
        self.run = run
        self.tables = tables
        self.skills = skills
        self.reserved_prefixes = tuple(reserved_prefixes)
        self._handlers = {
            "money": self._money,
            "contact": self._contact,
            "body": self._body,
            "misc": self._misc,
            "item": self._item,
            "stat": self._stat,
            "skill": self._skill,
            "social": self._social,
            "luck": self._luck,
        }

    async def add_bio(self, line: str) -> None:
        line = str(line or "").strip()
        if not line:
            return
        self.run.biography_log.append(line)
        await self.sheet.append_biography(line)

    async def apply_changes(self, changes: Iterable[Any]) -> None:
        for change in changes:
            await self.apply_change(change)

    async def apply_change(self, change: Any) -> None:
        if not isinstance(change, dict):
            logger.debug("skipping non-object change %r", change)
            return
        handler = self._handlers.get(str(change.get("type") or "").strip().lower())
        if handler is None:
            logger.debug("skipping unknown change type %r", change.get("type"))
            return
        await handler(change)

    async def _draw_label(self, ref: str) -> str:
        table = await require_table(self.tables, ref)
        return row_label(await self.tables.draw_row(table))

    # -- variants -----------------------------------------------------------

    async def _money(self, change: dict[str, Any]) -> None:
        before = self.sheet.number(MONEY_KEY)
        after = before + to_number(change.get("amount"))
        await self.sheet.set_numbers({MONEY_KEY: after})
        await self.add_bio(f"Received {format_number(after - before)} silver")

    async def _contact(self, change: dict[str, Any]) -> None:
        defaults = self.run.contact_table_refs
        refs = [
            _ref(change, "professionTable") or (defaults.profession if defaults else ""),
            _ref(change, "regionTable") or (defaults.region if defaults else ""),
            _ref(change, "connectionTable") or (defaults.connection if defaults else ""),
        ]
        if not all(refs):
            logger.warning("contact change without profession/region/connection tables, skipped")
            return
        profession, region, connection = [await self._draw_label(ref) for ref in refs]
        contact = f"{profession} from {region} ({connection})"
        await self.sheet.append_line(CONTACTS_KEY, contact)
        await self.add_bio(f"Gained a contact: {contact}")

    async def _body(self, change: dict[str, Any]) -> None:
        ref = _ref(change, "tableRef", "tableUuid") or (self.run.body_table_ref or "")
        if not ref:
            logger.warning("body change without a table, skipped")
            return
        text = await self._draw_label(ref)
        await self.sheet.append_line(BODY_KEY, text)
        await self.add_bio(f"Bodily change: {text}")

    async def _misc(self, change: dict[str, Any]) -> None:
        ref = _ref(change, "tableRef", "tableUuid") or (self.run.misc_table_ref or "")
        if not ref:
            logger.warning("misc change without a table, skipped")
            return
        text = await self._draw_label(ref)
        await self.sheet.append_line(MISC_KEY, text)
        await self.add_bio(f"Misc: {text}")

    async def _item(self, change: dict[str, Any]) -> None:
        ref = _ref(change, "tableRef", "tableUuid")
        if not ref:
            logger.warning("item change without a table, skipped")
            return
        qty = max(1, _int(change.get("qty"), 1))
        name = await self._draw_label(ref)
        entry = f"{name} (x{qty})" if qty > 1 else name
        await self.sheet.append_line(ITEMS_KEY, entry)
        await self.add_bio(f"Acquired item: {entry}")

    async def _stat(self, change: dict[str, Any]) -> None:
        characteristic = str(change.get("characteristic") or "").strip()
        if not characteristic and change.get("key"):
            await self._stat_delta(change)
            return
        steps = _int(change.get("steps"), 1)
        if not characteristic or steps <= 0:
            return

        dice_key, mod_key = stat_keys(characteristic)
        before = stat_notation(
            max(1, self.sheet.number(dice_key, 1)), max(0, self.sheet.number(mod_key, 0))
        )
        dice, mod = await advance_stat(self.sheet, characteristic, steps)
        await self.add_bio(f"Improved {characteristic} ({before} → {stat_notation(dice, mod)})")

    async def _stat_delta(self, change: dict[str, Any]) -> None:
        key = str(change["key"]).strip()
        delta = to_number(change.get("delta"))
        if not key or delta == 0:
            return
        before = self.sheet.number(key)
        after = before + delta
        await self.sheet.set_numbers({key: after})
        await self.add_bio(f"Adjusted {key} ({format_number(before)} → {format_number(after)})")

    async def _skill(self, change: dict[str, Any]) -> None:
        target_key = str(change.get("targetKey") or "").strip()
        target_level = _int(change.get("targetLevel"))
        fallback = change.get("fallback")

        step: SkillStep | bool | None = None
        if self.skills is not None and target_key:
            step = self.skills.next_step_toward(self.sheet.record, target_key, target_level)

        if isinstance(step, dict):
            step = _skill_step_from_dict(step)
        if not isinstance(step, SkillStep) or not step.node_name:
            if isinstance(fallback, dict):
                await self.apply_change(fallback)
            return

        if step.node_name.startswith(self.reserved_prefixes):
            logger.info("skill step %s is reserved, not granted", step.node_name)
            return

        current = self.sheet.number(step.node_name)
        level = max(current, step.node_level)
        await self.sheet.set_numbers({step.node_name: level})
        await self.add_bio(f"Learned {step.node_name} {format_number(level)}")

    async def _social(self, change: dict[str, Any]) -> None:
        amount = to_number(change.get("amount"))
        before = max(STATUS_MIN, min(STATUS_MAX, self.sheet.number(STATUS_KEY)))
        after = max(STATUS_MIN, min(STATUS_MAX, before + amount))
        await self.sheet.set_numbers({STATUS_KEY: after})
        await self.add_bio(
            f"Social status {format_number(before)} → {format_number(after)}{_reason_suffix(change)}"
        )

    async def _luck(self, change: dict[str, Any]) -> None:
        on = change.get("on", True)
        if isinstance(on, str):
            on = on.strip().lower() not in ("", "0", "false", "no", "off")
        self.run.lucky_streak = bool(on)
        verb = "begins" if self.run.lucky_streak else "ends"
        await self.add_bio(f"Lucky streak {verb}{_reason_suffix(change)}")
