"""Shared stubs for chargen tests: in-memory tables, character, notifier, skill tree."""

import json
import random
from typing import Any

from rpg_chargen.models import ChargenState, Table, TableRow
from rpg_chargen.skills import SkillStep


def card(title: str, rewards: list[dict] | None = None, **choice: Any) -> str:
    """JSON row text for one card. Default reward: nothing, no next table."""
    if rewards is None:
        rewards = [{"changes": []}]
    return json.dumps({"choice": {"title": title, **choice}, "rewards": rewards})


def table_of(ref: str, *texts: str, name: str | None = None, image: str | None = None) -> Table:
    """Table whose rows carry `texts` in their description, ids r0, r1, ..."""
    return Table(
        id=ref,
        name=name or ref.title(),
        image=image,
        rows=[TableRow(id=f"r{i}", description=t) for i, t in enumerate(texts)],
    )


def label_table(ref: str, *labels: str) -> Table:
    """Table of plain-name rows, for contact/body/misc/item draws."""
    return Table(id=ref, name=ref.title(), rows=[TableRow(id=f"r{i}", name=l) for i, l in enumerate(labels)])


class StubTables:
    """In-memory TableProvider. Records resolve calls."""

    def __init__(self, *tables: Table, rng: random.Random | None = None) -> None:
        self.tables = {t.id: t for t in tables}
        self.resolved: list[str] = []
        self._rng = rng or random.Random(0)

    def add(self, table: Table) -> None:
        self.tables[table.id] = table

    async def resolve_table(self, ref: str) -> Table | None:
        self.resolved.append(ref)
        return self.tables.get(ref)

    async def draw_row(self, table: Table) -> TableRow:
        return self._rng.choice(table.rows)

    async def list_rows(self, table: Table) -> list[TableRow]:
        return list(table.rows)


class MemoryCharacter:
    """CharacterRecord backed by a dict; the state blob round-trips through JSON."""

    def __init__(self, name: str = "Aldric", props: dict[str, Any] | None = None) -> None:
        self.id = name.lower()
        self.name = name
        self.props: dict[str, Any] = dict(props or {})
        self.writes: list[dict[str, Any]] = []
        self.saves = 0
        self._state = ChargenState().model_dump_json()

    def read_attribute(self, key: str) -> Any:
        return self.props.get(key)

    async def write_attributes(self, values: dict[str, Any]) -> None:
        self.writes.append(dict(values))
        self.props.update(values)

    async def load_state(self) -> ChargenState:
        return ChargenState.model_validate_json(self._state)

    async def save_state(self, state: ChargenState) -> None:
        self.saves += 1
        self._state = state.model_dump_json()


class RecordingNotifier:
    def __init__(self) -> None:
        self.posted: list[tuple[str, str]] = []

    async def __call__(self, kind: str, content: str) -> None:
        self.posted.append((kind, content))

    def kinds(self) -> list[str]:
        return [k for k, _ in self.posted]


class FailingNotifier:
    async def __call__(self, kind: str, content: str) -> None:
        raise ConnectionError("chat unavailable")


class StubSkillTree:
    """Answers next_step_toward with a fixed result and records the questions."""

    def __init__(self, answer: SkillStep | bool | dict | None) -> None:
        self.answer = answer
        self.asked: list[tuple[str, int]] = []

    def next_step_toward(self, character: Any, target_key: str, target_level: int):
        self.asked.append((target_key, target_level))
        return self.answer
