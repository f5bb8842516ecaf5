"""Run state machine — one character-generation session per character.

States:

    Uninitialized (run is None)
        │ start(setup)
        ▼
    AwaitingChoice ──reroll()──► AwaitingChoice
        │ choose(i)
        ▼
    Advancing ──(next table and budget left)──► AwaitingChoice
        │ (no next table, or budget spent)
        ▼
    Finished            reset() restarts from the stored setup

Every transition works on a deep copy of the persisted run and writes the
whole state blob once at the end, so a failed transition leaves the stored
run as it was. Character attribute writes made by reward changes before a
failure are not rolled back.

Errors raised inside a transition are logged, posted to the notifier as
"error" messages, and re-raised to the caller. ChargenError messages are
posted as-is; anything else is prefixed with its exception type.
"""

from __future__ import annotations

import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from rpg_chargen.config import default_setup
from rpg_chargen.draw import pick_weighted
from rpg_chargen.errors import ChargenError
from rpg_chargen.models import ChargenState, Choice, HistoryEntry, NextTable, Reward, Run, Setup, Table
from rpg_chargen.notify import LogNotifier, Notifier, SummaryError, post, render_summary
from rpg_chargen.offer import assemble_offer
from rpg_chargen.rewards import DEFAULT_RESERVED_PREFIXES, RewardApplicator
from rpg_chargen.sheet import STATUS_KEY, CharacterRecord, Sheet
from rpg_chargen.skills import SkillProgression
from rpg_chargen.tables import TableProvider, require_table

logger = logging.getLogger(__name__)


class ChoiceError(ChargenError):
    """Raised when a chosen card cannot produce a reward."""


def next_table_for(choice: Choice, reward: Reward) -> NextTable | None:
    """The follow-up table: the reward's own `next`, else the first sibling's."""
    if reward.next is not None and reward.next.table_ref.strip():
        return reward.next
    for sibling in choice.rewards:
        if sibling.next is not None and sibling.next.table_ref.strip():
            return sibling.next
    return None


class ChargenSession:
    """Drives start / reroll / choose / finish / reset for one character.

    Args:
        character: the character record; also stores the state blob.
        tables:    table resource provider.
        notifier:  notification channel (optional).
        skills:    skill progression capability (optional).
        config:    app config dict (see rpg_chargen.config).
        rng:       seeded RNG for reproducible sessions.
    """

    def __init__(
        self,
        character: CharacterRecord,
        tables: TableProvider,
        notifier: Notifier | None = None,
        skills: SkillProgression | None = None,
        config: dict[str, Any] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.character = character
        self.sheet = Sheet(character)
        self.tables = tables
        self.notifier = notifier
        self.skills = skills
        self.config = config or {}
        self.rng = rng

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def reserved_prefixes(self) -> tuple[str, ...]:
        return tuple(self.config.get("reserved_skill_prefixes") or DEFAULT_RESERVED_PREFIXES)

    @asynccontextmanager
    async def _surfaced(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except ChargenError as e:
            logger.exception("chargen %s failed for %s", action, self.character.id)
            await post(self.notifier, "error", str(e))
            raise
        except Exception as e:
            logger.exception("unexpected error during chargen %s for %s", action, self.character.id)
            await post(self.notifier, "error", f"Character generation failed: {type(e).__name__}: {e}")
            raise

    async def _offer(self, run: Run, table: Table | None = None) -> None:
        """Replace the run's offered cards with a fresh draw from its table."""
        if table is None:
            table = await require_table(self.tables, run.current_table_ref)
        rows = await self.tables.list_rows(table)
        offer = assemble_offer(
            table,
            rows,
            run.choices_per_draw,
            status=self.sheet.number(STATUS_KEY),
            lucky=run.lucky_streak,
            rng=self.rng,
        )
        run.offered_cards = offer.cards
        run.biography_log.extend(offer.notes)

    async def _announce_finish(self, run: Run) -> None:
        try:
            content = render_summary(self.character.name, run.biography_log)
        except SummaryError:
            logger.exception("summary rendering failed for %s", self.character.id)
            content = "\n".join(run.biography_log)
        await post(self.notifier, "summary", content)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def state(self) -> ChargenState:
        return await self.character.load_state()

    async def start(self, setup: Setup) -> ChargenState:
        """Begin a new run from `setup`, replacing any existing run."""
        async with self._surfaced("start"):
            table_ref = setup.table_ref.strip()
            table = await require_table(self.tables, table_ref)
            run = Run(
                current_table_ref=table_ref,
                choices_per_draw=setup.choices_per_draw,
                remaining_global_rolls=setup.max_rolls,
                remaining_here=setup.max_rolls,
                contact_table_refs=setup.contact_table_refs,
                body_table_ref=setup.body_table_ref,
                misc_table_ref=setup.misc_table_ref,
            )
            await self._offer(run, table)
            state = ChargenState(setup=setup.model_copy(update={"table_ref": table_ref}), run=run)
            await self.character.save_state(state)

        logger.info(
            "chargen started for %s on %s (%d rolls, %d choices)",
            self.character.id, table_ref, setup.max_rolls, setup.choices_per_draw,
        )
        await post(self.notifier, "info", f"Character generation started on {table.name}.")
        return state

    async def reroll(self) -> ChargenState:
        """Draw a fresh card set from the current table. Counters are untouched."""
        state = await self.character.load_state()
        if state.run is None or state.run.status == "finished":
            logger.info("reroll ignored for %s: no active run", self.character.id)
            return state

        async with self._surfaced("reroll"):
            run = state.run.model_copy(deep=True)
            await self._offer(run)
            state = ChargenState(setup=state.setup, run=run)
            await self.character.save_state(state)
        return state

    async def choose(self, index: int) -> ChargenState:
        """Take offered card `index`, apply one weighted reward, then advance or finish."""
        state = await self.character.load_state()
        if state.run is None:
            return state

        current = state.run
        if (
            current.status == "finished"
            or current.remaining_global_rolls <= 0
            or not 0 <= index < len(current.offered_cards)
        ):
            logger.info(
                "choose(%d) for %s ends the run (remaining=%d, offered=%d)",
                index, self.character.id, current.remaining_global_rolls, len(current.offered_cards),
            )
            return await self.finish()

        async with self._surfaced("choose"):
            run = current.model_copy(deep=True)
            choice = run.offered_cards[index].choice
            applicator = RewardApplicator(
                self.sheet, run, self.tables, self.skills, self.reserved_prefixes
            )

            await applicator.add_bio(f"Chose: {choice.title}")
            if choice.bio:
                await applicator.add_bio(choice.bio)

            if not choice.rewards:
                raise ChoiceError("No rewards defined for this choice.")
            reward = pick_weighted(choice.rewards, self.rng)
            if reward is None:
                raise ChoiceError("No valid reward could be selected.")

            await applicator.apply_changes(reward.changes)

            run.remaining_global_rolls = max(0, run.remaining_global_rolls - 1)
            run.remaining_here = max(0, run.remaining_here - 1)
            run.history.append(HistoryEntry(
                table_ref=run.current_table_ref,
                choice_title=choice.title,
                reward_applied=reward,
            ))

            following = next_table_for(choice, reward)
            logger.info(
                "%s chose %r on %s → next=%s remaining=%d",
                self.character.id, choice.title, run.current_table_ref,
                following.table_ref if following else None, run.remaining_global_rolls,
            )

            finished = following is None or run.remaining_global_rolls <= 0
            if finished:
                run.status = "finished"
            else:
                run.current_table_ref = following.table_ref
                if following.rolls_override > 0:
                    run.remaining_here = following.rolls_override
                await self._offer(run)

            state = ChargenState(setup=state.setup, run=run)
            await self.character.save_state(state)

        if finished:
            await self._announce_finish(run)
        return state

    async def finish(self) -> ChargenState:
        """Mark the run finished and post the biography summary.

        History and biography stay in place; clearing them is reset()/clear().
        """
        state = await self.character.load_state()
        if state.run is None:
            return state

        if state.run.status != "finished":
            run = state.run.model_copy(update={"status": "finished"})
            state = ChargenState(setup=state.setup, run=run)
            await self.character.save_state(state)

        logger.info("chargen finished for %s", self.character.id)
        await self._announce_finish(state.run)
        return state

    async def reset(self) -> ChargenState:
        """Discard the run and start again from the stored setup."""
        state = await self.character.load_state()
        if not state.setup.table_ref.strip():
            state = ChargenState(setup=state.setup, run=None)
            await self.character.save_state(state)
            return state
        return await self.start(state.setup)

    async def clear(self) -> ChargenState:
        """Discard the run and return to setup mode with the default setup."""
        state = ChargenState(setup=default_setup(self.config), run=None)
        await self.character.save_state(state)
        logger.info("chargen cleared for %s", self.character.id)
        await post(self.notifier, "info", "Character generation reset.")
        return state


def open_session(
    character: CharacterRecord,
    tables: TableProvider,
    notifier: Notifier | None = None,
    skills: SkillProgression | None = None,
    config: dict[str, Any] | None = None,
    rng: random.Random | None = None,
) -> ChargenSession:
    """Create a session handle for one character. Notifications go to the log by default."""
    if notifier is None:
        notifier = LogNotifier()
    return ChargenSession(character, tables, notifier, skills, config, rng)
