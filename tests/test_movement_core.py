from __future__ import annotations

import math

import pytest

from maths_sprint.movement import (
    ai_step,
    apply_penalty,
    correct_answer_move,
    find_winner,
    speed_factor,
)
from maths_sprint.race_core import DEFAULT_AI_COMPETITORS, Competitor, RaceConfig, SeededRng


class FixedRng:
    def __init__(self, value: float) -> None:
        self._value = value

    def random(self) -> float:
        return self._value

    def randint(self, a: int, b: int) -> int:
        return a


CFG = RaceConfig()


@pytest.mark.parametrize(
    ("elapsed", "expected"),
    [(0.0, 1.0), (1.0, 1.0), (3.5, 0.5), (6.0, 0.0), (10.0, 0.0)],
)
def test_speed_factor_decays_linearly(elapsed: float, expected: float) -> None:
    assert math.isclose(speed_factor(elapsed, CFG), expected)


def test_speed_bonus_monotonicity() -> None:
    m0 = correct_answer_move(0.0, CFG)
    m3 = correct_answer_move(3.0, CFG)
    m6 = correct_answer_move(6.0, CFG)
    m10 = correct_answer_move(10.0, CFG)

    assert m0 > m3 > m6
    assert m6 == m10 == 8.0
    assert math.isclose(correct_answer_move(0.5, CFG), 13.0)
    assert math.isclose(m3, 8.0 + 0.6 * 5.0)


def test_penalty_is_floored_at_zero() -> None:
    assert apply_penalty(1.0, CFG) == 0.0
    assert apply_penalty(0.0, CFG) == 0.0
    assert math.isclose(apply_penalty(10.0, CFG), 8.5)


def test_ai_step_without_swing_is_base_speed() -> None:
    for competitor in DEFAULT_AI_COMPETITORS:
        assert math.isclose(ai_step(competitor, FixedRng(0.5), CFG), competitor.base_speed)


def test_ai_step_is_clamped() -> None:
    comet = DEFAULT_AI_COMPETITORS[1]  # 2.6 - 1.9 would be 0.7
    assert ai_step(comet, FixedRng(0.0), CFG) == CFG.ai_min_step

    rocket = Competitor("ai-x", "Rocket", base_speed=5.0, speed_variance=1.0)
    assert ai_step(rocket, FixedRng(0.99), CFG) == CFG.ai_max_step


def test_ai_step_random_draws_stay_in_bounds() -> None:
    rng = SeededRng(99)
    for _ in range(1000):
        for competitor in DEFAULT_AI_COMPETITORS:
            step = ai_step(competitor, rng, CFG)
            assert CFG.ai_min_step <= step <= CFG.ai_max_step
            assert abs(step - competitor.base_speed) <= competitor.speed_variance + 1e-9


def test_find_winner_prefers_player_on_tie() -> None:
    order = CFG.racer_ids()
    distances = {"player": 100.0, "ai-1": 103.0, "ai-2": 40.0, "ai-3": 0.0}

    assert find_winner(distances, order, 100.0) == "player"


def test_find_winner_uses_configured_ai_order() -> None:
    order = CFG.racer_ids()
    distances = {"player": 99.9, "ai-1": 50.0, "ai-2": 100.0, "ai-3": 104.0}

    assert find_winner(distances, order, 100.0) == "ai-2"


def test_find_winner_none_before_finish() -> None:
    distances = {rid: 99.99 for rid in CFG.racer_ids()}

    assert find_winner(distances, CFG.racer_ids(), 100.0) is None
