"""Tests for rpg_chargen.gating — status-tagged choice admission."""

import random
from unittest.mock import MagicMock

import pytest

from rpg_chargen.gating import (
    check_status_gate,
    clamp_status,
    is_status_gated,
    pass_threshold,
    status_pass_probability,
)
from rpg_chargen.models import Choice, Reward


def _choice(*tags: str, title: str = "Court Page") -> Choice:
    return Choice(title=title, tags=list(tags), rewards=[Reward()])


def _fixed_roll(value: int) -> MagicMock:
    rng = MagicMock()
    rng.randint.return_value = value
    return rng


class TestProbability:
    @pytest.mark.parametrize("status,lucky,expected", [
        (0, False, 55),
        (1, False, 67),
        (2, False, 79),
        (-1, False, 43),
        (-2, False, 31),
        (0, True, 65),
        (2, True, 89),
        (-2, True, 41),
    ])
    def test_thresholds(self, status: int, lucky: bool, expected: int) -> None:
        assert pass_threshold(status, lucky) == expected

    def test_status_is_clamped(self) -> None:
        assert pass_threshold(9, False) == pass_threshold(2, False)
        assert pass_threshold(-9, False) == pass_threshold(-2, False)

    def test_probability_bounds(self) -> None:
        for status in range(-5, 6):
            for lucky in (False, True):
                assert 0.10 <= status_pass_probability(status, lucky) <= 0.95

    def test_clamp_status_truncates(self) -> None:
        assert clamp_status(1.9) == 1
        assert clamp_status(-1.9) == -1
        assert clamp_status(5) == 2


class TestTagDetection:
    def test_status_tag_case_insensitive(self) -> None:
        assert is_status_gated(_choice("Status"))
        assert is_status_gated(_choice("noble", " status "))

    def test_untagged(self) -> None:
        assert not is_status_gated(_choice())
        assert not is_status_gated(_choice("noble"))


class TestCheckStatusGate:
    def test_untagged_always_passes_without_rolling(self) -> None:
        rng = _fixed_roll(100)
        result = check_status_gate(_choice(), status=-2, lucky=False, rng=rng)
        assert result.passed
        assert result.note is None
        rng.randint.assert_not_called()

    def test_roll_at_threshold_passes(self) -> None:
        result = check_status_gate(_choice("status"), status=0, lucky=False, rng=_fixed_roll(55))
        assert result.passed
        assert result.roll == 55
        assert result.threshold == 55

    def test_roll_over_threshold_is_rejected_with_note(self) -> None:
        result = check_status_gate(_choice("status"), status=0, lucky=False, rng=_fixed_roll(56))
        assert not result.passed
        assert result.note == "Missed: Court Page (rolled 56 > 55; status 0, lucky no)"

    def test_lucky_note(self) -> None:
        result = check_status_gate(_choice("status"), status=1, lucky=True, rng=_fixed_roll(99))
        assert result.note == "Missed: Court Page (rolled 99 > 77; status 1, lucky yes)"

    def test_pass_rate_tracks_probability(self) -> None:
        rng = random.Random(2024)
        choice = _choice("status")
        passes = sum(check_status_gate(choice, 0, False, rng).passed for _ in range(10_000))
        assert 5300 < passes < 5700
