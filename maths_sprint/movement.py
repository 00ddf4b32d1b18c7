"""Movement rules for the race.

Pure functions only: they take the current distances and config and return
new values.  ``RaceEngine`` decides when they apply.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .race_core import Competitor, RaceConfig, RandomSource, clamp, clamp01


def ai_step(competitor: Competitor, rng: RandomSource, config: RaceConfig) -> float:
    """Distance one AI competitor covers in a single tick."""

    swing = (rng.random() - 0.5) * 2.0 * competitor.speed_variance
    return clamp(competitor.base_speed + swing, config.ai_min_step, config.ai_max_step)


def speed_factor(elapsed_s: float, config: RaceConfig) -> float:
    window = config.bonus_zero_s - config.bonus_full_s
    return clamp01((config.bonus_zero_s - elapsed_s) / window)


def correct_answer_move(elapsed_s: float, config: RaceConfig) -> float:
    return config.player_base_move + speed_factor(elapsed_s, config) * config.player_max_bonus


def apply_penalty(distance: float, config: RaceConfig) -> float:
    return max(0.0, distance - config.wrong_answer_penalty)


def find_winner(
    distances: Mapping[str, float],
    order: Iterable[str],
    finish_distance: float,
) -> str | None:
    """Return the first racer in ``order`` at or past the finish, if any.

    The order is the tie-break: when two racers cross in the same step the
    earlier one wins, so listing the player first gives the player precedence.
    """

    for racer_id in order:
        if distances.get(racer_id, 0.0) >= finish_distance:
            return racer_id
    return None
