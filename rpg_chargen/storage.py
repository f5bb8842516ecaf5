"""JSON file storage.

All state is stored in flat JSON files under a configurable base directory.
There is no database or ORM; reads and writes go through plain helper
methods that load and dump JSON.

Directory layout:

    {base}/
      characters/
        {id}.json             ← {"id", "name", "props": {...}, "chargen": {...}}
        {id}/
          messages.json       ← append-only chat log (finish summaries, errors)
      tables/
        {slug(ref)}.json      ← Table (rows with JSON payloads)

The "chargen" key holds the one state blob the generation flow persists:
{"setup": {...}, "run": {...} | null}. It is always replaced whole.
"""

from __future__ import annotations

import json
import re
import unicodedata
from pathlib import Path
from typing import Any

from rpg_chargen.models import ChargenState, Message, Table


def slugify(title: str) -> str:
    """Convert a title or table reference to a filesystem-safe slug.

    "Born Poor" → "born-poor", "Compendium.world.Childhood" → "compendium-world-childhood"
    """
    text = unicodedata.normalize("NFKD", title)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"['\"]", "", text)  # strip apostrophes/quotes before hyphenation
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")
    return text or "untitled"


class TableConflictError(ValueError):
    """Raised when two table ids map to the same file."""


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._char_root = base_path / "characters"
        self._table_root = base_path / "tables"
        self._char_root.mkdir(parents=True, exist_ok=True)
        self._table_root.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _char_file(self, char_id: str) -> Path:
        return self._char_root / f"{char_id}.json"

    def _char_dir(self, char_id: str) -> Path:
        return self._char_root / char_id

    def _table_file(self, ref: str) -> Path:
        return self._table_root / f"{slugify(ref)}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def create_character(self, name: str, props: dict[str, Any] | None = None) -> StoredCharacter:
        """Create a character with a unique slug id and return a handle to it."""
        base = slugify(name)
        char_id = base
        n = 2
        while self._char_file(char_id).exists():
            char_id = f"{base}-{n}"
            n += 1
        self._write_json(self._char_file(char_id), {
            "id": char_id,
            "name": name,
            "props": dict(props or {}),
            "chargen": ChargenState().model_dump(),
        })
        self._char_dir(char_id).mkdir(exist_ok=True)
        return StoredCharacter(self, char_id)

    def get_character(self, char_id: str) -> StoredCharacter | None:
        if not self._char_file(char_id).is_file():
            return None
        return StoredCharacter(self, char_id)

    def list_characters(self) -> list[dict[str, Any]]:
        return [
            {"id": data["id"], "name": data["name"]}
            for data in (self._read_json(p) for p in sorted(self._char_root.glob("*.json")))
        ]

    def read_character(self, char_id: str) -> dict[str, Any]:
        return self._read_json(self._char_file(char_id))

    def update_props(self, char_id: str, values: dict[str, Any]) -> dict[str, Any]:
        """Overwrite the given props fields; other fields are left alone."""
        data = self.read_character(char_id)
        data.setdefault("props", {}).update(values)
        self._write_json(self._char_file(char_id), data)
        return data["props"]

    # ------------------------------------------------------------------
    # Generation state (whole-blob replace)
    # ------------------------------------------------------------------

    def get_chargen_state(self, char_id: str) -> ChargenState:
        raw = self.read_character(char_id).get("chargen")
        if not raw:
            return ChargenState()
        return ChargenState.model_validate(raw)

    def save_chargen_state(self, char_id: str, state: ChargenState) -> None:
        data = self.read_character(char_id)
        data["chargen"] = state.model_dump(mode="json")
        self._write_json(self._char_file(char_id), data)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def save_table(self, table: Table) -> None:
        """Upsert a table by id.

        Raises TableConflictError if a different id already owns the same file.
        """
        path = self._table_file(table.id)
        if path.exists():
            stored_id = self._read_json(path).get("id")
            if stored_id != table.id:
                raise TableConflictError(
                    f"Table id {table.id!r} collides with stored table {stored_id!r}"
                )
        path.write_text(table.model_dump_json(indent=2))

    def get_table(self, ref: str) -> Table | None:
        path = self._table_file(ref)
        if not ref or not path.exists():
            return None
        table = Table.model_validate_json(path.read_text())
        # another ref that slugs the same way is a different table
        return table if table.id == ref else None

    def list_tables(self) -> list[dict[str, str]]:
        tables = [Table.model_validate_json(p.read_text()) for p in sorted(self._table_root.glob("*.json"))]
        return [{"id": t.id, "name": t.name} for t in tables]

    # ------------------------------------------------------------------
    # Messages (append-only)
    # ------------------------------------------------------------------

    def get_messages(self, char_id: str) -> list[Message]:
        path = self._char_dir(char_id) / "messages.json"
        if not path.exists():
            return []
        return [Message.model_validate(m) for m in self._read_json(path)]

    def append_messages(self, char_id: str, messages: list[Message]) -> None:
        existing = self.get_messages(char_id)
        existing.extend(messages)
        self._char_dir(char_id).mkdir(parents=True, exist_ok=True)
        self._write_json(
            self._char_dir(char_id) / "messages.json",
            [m.model_dump() for m in existing],
        )


class StoredCharacter:
    """A character record backed by Storage.

    Props are cached on first read and kept in sync with every write, so
    later reward changes see the values earlier ones wrote.
    """

    def __init__(self, storage: Storage, char_id: str) -> None:
        self._storage = storage
        self.id = char_id
        data = storage.read_character(char_id)
        self.name: str = data.get("name", char_id)
        self._props: dict[str, Any] = dict(data.get("props", {}))

    @property
    def props(self) -> dict[str, Any]:
        return dict(self._props)

    def read_attribute(self, key: str) -> Any:
        return self._props.get(key)

    async def write_attributes(self, values: dict[str, Any]) -> None:
        self._props = self._storage.update_props(self.id, values)

    async def load_state(self) -> ChargenState:
        return self._storage.get_chargen_state(self.id)

    async def save_state(self, state: ChargenState) -> None:
        self._storage.save_chargen_state(self.id, state)

    async def append_messages(self, messages: list[Message]) -> None:
        self._storage.append_messages(self.id, messages)

    def get_messages(self) -> list[Message]:
        return self._storage.get_messages(self.id)
