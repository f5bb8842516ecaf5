"""Core domain models.

Every stage of the generation flow (decoder, offer assembly, reward
application, session) and every storage function operates on these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

MessageType = Literal["summary", "info", "error"]

RunStatus = Literal["awaiting_choice", "finished"]


# ---------------------------------------------------------------------------
# Tables (read-only from the core's point of view)
# ---------------------------------------------------------------------------

class TableRow(BaseModel):
    """One row of a roll table. The payload lives in description/text/name."""

    id: str
    name: str = ""
    description: str = ""
    text: str = ""
    image: str | None = None


class Table(BaseModel):
    id: str
    name: str
    image: str | None = None
    rows: list[TableRow] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Decoded card content
# ---------------------------------------------------------------------------

class NextTable(BaseModel):
    """Follow-up table a reward chains to."""

    table_ref: str
    rolls_override: int = 0


class Reward(BaseModel):
    """One weighted outcome of a choice.

    `changes` stays a list of raw dicts: table content is authored by hand
    and each entry is coerced only when it is applied. Unknown keys on the
    reward itself are kept so history records it verbatim.
    """

    model_config = ConfigDict(extra="allow")

    weight: float = 1.0
    changes: list[Any] = Field(default_factory=list)
    next: NextTable | None = None


class Choice(BaseModel):
    title: str = Field(min_length=1)
    text: str | None = None
    icon: str | None = None
    tags: list[str] = Field(default_factory=list)
    bio: str | None = None  # extra biography line added when chosen
    rewards: list[Reward] = Field(min_length=1)


class Card(BaseModel):
    """A decoded choice offered to the player this round."""

    source_row_id: str
    raw_payload: str
    choice: Choice
    display_image: str = ""


# ---------------------------------------------------------------------------
# Session state (persisted as one blob per character)
# ---------------------------------------------------------------------------

class ContactTableRefs(BaseModel):
    profession: str = ""
    region: str = ""
    connection: str = ""


class HistoryEntry(BaseModel):
    """Append-only audit entry written after every successful choice."""

    table_ref: str
    choice_title: str
    reward_applied: Reward


class Setup(BaseModel):
    table_ref: str = ""
    choices_per_draw: int = Field(default=2, ge=1)
    max_rolls: int = Field(default=10, ge=1)
    contact_table_refs: ContactTableRefs | None = None
    body_table_ref: str | None = None
    misc_table_ref: str | None = None


class Run(BaseModel):
    current_table_ref: str
    choices_per_draw: int = Field(ge=1)
    remaining_global_rolls: int = Field(ge=0)
    remaining_here: int = Field(default=0, ge=0)  # informational, never gates
    biography_log: list[str] = Field(default_factory=list)
    history: list[HistoryEntry] = Field(default_factory=list)
    lucky_streak: bool = False
    offered_cards: list[Card] = Field(default_factory=list)
    contact_table_refs: ContactTableRefs | None = None
    body_table_ref: str | None = None
    misc_table_ref: str | None = None
    status: RunStatus = "awaiting_choice"


class ChargenState(BaseModel):
    """The blob attached to a character. `run is None` means setup-only mode."""

    setup: Setup = Field(default_factory=Setup)
    run: Run | None = None


# ---------------------------------------------------------------------------
# Chat log
# ---------------------------------------------------------------------------

class Message(BaseModel):
    """A single entry in a character's append-only chat log."""

    seq: int
    type: MessageType
    content: str
    ts: str = ""
