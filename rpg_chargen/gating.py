"""Status gating — probabilistic admission of status-tagged choices.

A choice tagged "status" only makes it into an offer if a d100 roll lands
at or under a threshold derived from the character's social status and
the run's lucky streak:

    p = clamp(0.55 + 0.12 * status + (0.10 if lucky), 0.10, 0.95)
    threshold = floor(p * 100)

status is clamped to -2..+2 before use. A failed roll rejects the card and
produces a "missed" note; offer assembly then keeps drawing.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any

from rpg_chargen.models import Choice

logger = logging.getLogger(__name__)

STATUS_TAG = "status"
STATUS_MIN, STATUS_MAX = -2, 2

BASE_PROBABILITY = 0.55
STEP_PER_STATUS = 0.12
LUCKY_BONUS = 0.10
MIN_PROBABILITY, MAX_PROBABILITY = 0.10, 0.95


@dataclass(frozen=True)
class GateResult:
    passed: bool
    roll: int = 0
    threshold: int = 100
    note: str | None = None  # set only when the card was rejected


def clamp_status(value: float) -> int:
    return int(max(STATUS_MIN, min(STATUS_MAX, math.trunc(value))))


def is_status_gated(choice: Choice) -> bool:
    return any(tag.strip().lower() == STATUS_TAG for tag in choice.tags)


def status_pass_probability(status: float, lucky: bool) -> float:
    p = BASE_PROBABILITY + STEP_PER_STATUS * clamp_status(status)
    if lucky:
        p += LUCKY_BONUS
    return max(MIN_PROBABILITY, min(MAX_PROBABILITY, p))


def pass_threshold(status: float, lucky: bool) -> int:
    # 0.29 * 100 == 28.999999999999996, so round before flooring
    return math.floor(round(status_pass_probability(status, lucky) * 100, 9))


def check_status_gate(
    choice: Choice,
    status: float,
    lucky: bool,
    rng: random.Random | None = None,
) -> GateResult:
    """Roll the gate for one candidate. Untagged choices always pass."""
    if not is_status_gated(choice):
        return GateResult(passed=True)

    source: Any = rng or random
    threshold = pass_threshold(status, lucky)
    roll = source.randint(1, 100)
    if roll <= threshold:
        logger.debug("gate passed %r roll=%d threshold=%d", choice.title, roll, threshold)
        return GateResult(passed=True, roll=roll, threshold=threshold)

    note = (
        f"Missed: {choice.title} (rolled {roll} > {threshold}; "
        f"status {clamp_status(status)}, lucky {'yes' if lucky else 'no'})"
    )
    logger.info(note)
    return GateResult(passed=False, roll=roll, threshold=threshold, note=note)
