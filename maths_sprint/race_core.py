"""Shared data types for the Maths Sprint race engine.

Everything in here is plain data or a pure helper.  The engine, the question
generator and the movement rules all import from this module; none of them
touch pygame, so the whole race can be driven headlessly from tests with a
fake clock and a scripted random source.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

PLAYER_ID = "player"


class RacePhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


class Tier(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class StatusTone(str, Enum):
    NEUTRAL = "neutral"
    CORRECT = "correct"
    WRONG = "wrong"


class RandomSource(Protocol):
    """Source of every random draw the race makes."""

    def random(self) -> float:
        """Return a float in [0.0, 1.0)."""
        ...

    def randint(self, a: int, b: int) -> int:
        """Return an int in [a, b] (inclusive)."""
        ...


class SeededRng:
    """Seeded RNG wrapper; ``seed=None`` gives a fresh unpredictable stream."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)


@dataclass(frozen=True, slots=True)
class Competitor:
    competitor_id: str
    display_name: str
    base_speed: float
    speed_variance: float


DEFAULT_AI_COMPETITORS: tuple[Competitor, ...] = (
    Competitor("ai-1", "AI Blaze", base_speed=2.9, speed_variance=1.6),
    Competitor("ai-2", "AI Comet", base_speed=2.6, speed_variance=1.9),
    Competitor("ai-3", "AI Thunder", base_speed=3.0, speed_variance=1.4),
)


@dataclass(frozen=True, slots=True)
class RaceConfig:
    finish_distance: float = 100.0
    tick_interval_s: float = 0.5
    player_name: str = "You"
    player_base_move: float = 8.0
    player_max_bonus: float = 5.0
    wrong_answer_penalty: float = 1.5
    # Full bonus up to bonus_full_s, decaying linearly to nothing at bonus_zero_s.
    bonus_full_s: float = 1.0
    bonus_zero_s: float = 6.0
    ai_min_step: float = 0.8
    ai_max_step: float = 5.2
    ai_competitors: tuple[Competitor, ...] = DEFAULT_AI_COMPETITORS

    def __post_init__(self) -> None:
        if self.finish_distance <= 0:
            raise ValueError("finish_distance must be > 0")
        if self.tick_interval_s <= 0:
            raise ValueError("tick_interval_s must be > 0")
        if self.player_base_move < 0 or self.player_max_bonus < 0:
            raise ValueError("player moves must be >= 0")
        if self.wrong_answer_penalty < 0:
            raise ValueError("wrong_answer_penalty must be >= 0")
        if not (0.0 <= self.bonus_full_s < self.bonus_zero_s):
            raise ValueError("bonus window must satisfy 0 <= bonus_full_s < bonus_zero_s")
        if self.ai_min_step > self.ai_max_step:
            raise ValueError("ai_min_step must be <= ai_max_step")
        ids = [c.competitor_id for c in self.ai_competitors]
        if PLAYER_ID in ids:
            raise ValueError(f"AI competitor cannot use the reserved id {PLAYER_ID!r}")
        if len(set(ids)) != len(ids):
            raise ValueError("AI competitor ids must be unique")

    def racer_ids(self) -> tuple[str, ...]:
        """All racer ids in finish-check order: player first, then AIs as configured."""
        return (PLAYER_ID, *(c.competitor_id for c in self.ai_competitors))

    def display_name(self, competitor_id: str) -> str:
        if competitor_id == PLAYER_ID:
            return self.player_name
        for c in self.ai_competitors:
            if c.competitor_id == competitor_id:
                return c.display_name
        return "AI"


@dataclass(frozen=True, slots=True)
class Question:
    text: str
    correct_answer: int
    tier: Tier
    a: int
    b: int
    operator: str


@dataclass(slots=True)
class RaceState:
    """Mutable state of one race. Owned by exactly one engine."""

    phase: RacePhase = RacePhase.IDLE
    winner_id: str | None = None
    distances: dict[str, float] = field(default_factory=dict)
    current_question: Question | None = None
    question_started_at_s: float | None = None
    last_elapsed_s: float | None = None

    @classmethod
    def fresh(cls, config: RaceConfig) -> "RaceState":
        return cls(distances={rid: 0.0 for rid in config.racer_ids()})

    def progress_pct(self, finish_distance: float) -> float:
        # Uncapped: an overshoot is visible here until finish detection runs.
        return 100.0 * self.distances.get(PLAYER_ID, 0.0) / finish_distance


@dataclass(frozen=True, slots=True)
class AnswerEvent:
    index: int
    question_text: str
    tier: Tier
    correct_answer: int
    submitted: float
    raw: str
    is_correct: bool
    elapsed_s: float
    movement: float  # signed change actually applied to the player


@dataclass(frozen=True, slots=True)
class LaneSnapshot:
    competitor_id: str
    display_name: str
    distance: float
    progress_pct: float  # clamped to [0, 100] for rendering


@dataclass(frozen=True, slots=True)
class RaceSnapshot:
    """View model for the presentation layer (pure data)."""

    phase: RacePhase
    winner_id: str | None
    winner_name: str | None
    lanes: tuple[LaneSnapshot, ...]
    question_text: str | None
    tier: Tier | None
    last_elapsed_s: float | None
    status: str
    status_tone: StatusTone
    start_enabled: bool
    reset_enabled: bool
    answer_enabled: bool

    def distance_of(self, competitor_id: str) -> float:
        for lane in self.lanes:
            if lane.competitor_id == competitor_id:
                return lane.distance
        raise KeyError(competitor_id)


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x <= lo else hi if x >= hi else float(x)


def clamp01(x: float) -> float:
    return clamp(x, 0.0, 1.0)
