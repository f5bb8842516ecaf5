"""Card offer assembly.

Draws rows one at a time, without replacement, until `k` cards are
accepted or the table runs dry:

  1. Pick a random row from the remaining pool.
  2. Decode it. A DecodeError aborts the whole offer.
  3. Status-tagged choices must pass the gate; a rejected card is noted
     and does not count toward `k`.
  4. Accepted choices become Cards.

Fewer than `k` cards is a normal outcome when the pool is exhausted.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from rpg_chargen.decoder import decode_choice, row_payload
from rpg_chargen.draw import pick_distinct
from rpg_chargen.gating import check_status_gate
from rpg_chargen.models import Card, Table, TableRow
from rpg_chargen.tables import TableProviderError

logger = logging.getLogger(__name__)


@dataclass
class Offer:
    cards: list[Card] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)  # gate misses, in draw order


def card_image(row: TableRow, table: Table) -> str:
    return row.image or table.image or ""


def assemble_offer(
    table: Table,
    rows: list[TableRow],
    k: int,
    *,
    status: float = 0,
    lucky: bool = False,
    rng: random.Random | None = None,
) -> Offer:
    """Build up to `k` cards from `rows` (the full pool of `table`)."""
    if not rows:
        raise TableProviderError(f'RollTable "{table.name}" has no results.')

    pool = list(rows)
    offer = Offer()
    while len(offer.cards) < k and pool:
        row = pool.pop(pick_distinct(range(len(pool)), 1, rng)[0])

        raw = row_payload(row)
        choice = decode_choice(raw, table.name)

        gate = check_status_gate(choice, status, lucky, rng)
        if not gate.passed:
            offer.notes.append(gate.note or f"Missed: {choice.title}")
            continue

        offer.cards.append(Card(
            source_row_id=row.id,
            raw_payload=raw,
            choice=choice,
            display_image=card_image(row, table),
        ))

    logger.debug(
        "offer from %s: %d card(s), %d missed, %d row(s) left",
        table.name, len(offer.cards), len(offer.notes), len(pool),
    )
    return offer
