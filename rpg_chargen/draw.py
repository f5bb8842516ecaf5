"""Random draw engine — distinct uniform picks and weighted reward picks.

Both helpers accept an optional `random.Random` so tests and callers can
seed them; the module-level RNG is used otherwise.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import Any, TypeVar

T = TypeVar("T")


def pick_distinct(items: Sequence[T], n: int, rng: random.Random | None = None) -> list[T]:
    """Pick up to n distinct items uniformly without replacement.

    Works on a copy of `items`; output is in selection order.
    """
    source: Any = rng or random
    pool = list(items)
    out: list[T] = []
    for _ in range(min(max(n, 0), len(pool))):
        out.append(pool.pop(source.randrange(len(pool))))
    return out


def reward_weight(reward: Any) -> float:
    """Effective weight of a reward model or dict; negatives count as 0."""
    if isinstance(reward, dict):
        raw = reward.get("weight", 1)
    else:
        raw = getattr(reward, "weight", 1)
    try:
        weight = float(raw if raw is not None else 1)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(weight):
        return 0.0
    return max(0.0, weight)


def pick_weighted(rewards: Sequence[T], rng: random.Random | None = None) -> T | None:
    """Pick one reward with probability proportional to its weight.

    All weights <= 0 → the first reward. Empty input → None.
    """
    if not rewards:
        return None
    weights = [reward_weight(r) for r in rewards]
    total = sum(weights)
    if total <= 0:
        return rewards[0]

    source: Any = rng or random
    remainder = source.random() * total
    last_positive = rewards[0]
    for reward, weight in zip(rewards, weights):
        if weight <= 0:
            continue
        last_positive = reward
        remainder -= weight
        if remainder <= 0:
            return reward
    return last_positive
