"""Deterministic race engine for Maths Sprint.

The engine owns one ``RaceState`` and moves it through

  IDLE -> RUNNING -> FINISHED

with ``reset()`` returning to a fresh IDLE from anywhere.  It has no timer of
its own: ``start()`` hands ``tick`` to an injected ``TickDriver`` (a pygame
timer in the app, a polled ``ClockTicker`` in tests) and the engine cancels it
again on reset or when someone crosses the line.

Commands never raise.  Anything that does not apply to the current phase is
ignored, and the RUNNING guard on ``tick``/``submit_answer`` holds even if a
late timer callback arrives after the race has finished.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass

from .movement import ai_step, apply_penalty, correct_answer_move, find_winner
from .race_core import (
    PLAYER_ID,
    AnswerEvent,
    LaneSnapshot,
    Question,
    RaceConfig,
    RacePhase,
    RaceSnapshot,
    RaceState,
    RandomSource,
    SeededRng,
    StatusTone,
    Tier,
    clamp,
)
from .race_questions import QuestionGenerator, select_difficulty
from .timing import Clock, ClockTicker, TickDriver

logger = logging.getLogger(__name__)

RaceListener = Callable[[RaceSnapshot], None]

RESET_STATUS = "Race reset. Ready when you are."
START_STATUS = "Race on! Solve quickly for speed bonus."
PLAYER_WIN_STATUS = "You win! Incredible sprint!"


@dataclass(frozen=True, slots=True)
class RaceSummary:
    attempted: int
    correct: int
    accuracy: float
    mean_response_time_s: float | None
    winner_id: str | None
    winner_name: str | None
    distances: dict[str, float]


# Plain ASCII decimal literal: no digit separators, no non-ASCII digits, no "nan"/"inf".
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _parse_number(raw: object) -> float | None:
    """Parse a submitted answer, or return None if it is not a number.

    A well-formed literal too large for a float becomes +/-inf: it is still a
    number, just never the right answer.
    """

    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        try:
            return float(raw)
        except OverflowError:
            return math.inf if raw > 0 else -math.inf
    if isinstance(raw, float):
        return None if math.isnan(raw) else raw
    if isinstance(raw, str):
        s = raw.strip()
        if not _NUMBER_RE.fullmatch(s):
            return None
        return float(s)
    return None


class RaceEngine:
    def __init__(
        self,
        *,
        config: RaceConfig,
        clock: Clock,
        rng: RandomSource,
        ticker: TickDriver,
    ) -> None:
        self._config = config
        self._clock = clock
        self._rng = rng
        self._ticker = ticker
        self._generator = QuestionGenerator(rng)

        self._state = RaceState.fresh(config)
        self._ticking = False
        self._events: list[AnswerEvent] = []
        self._status = RESET_STATUS
        self._tone = StatusTone.NEUTRAL
        self._listeners: list[RaceListener] = []

    @property
    def config(self) -> RaceConfig:
        return self._config

    @property
    def state(self) -> RaceState:
        return self._state

    @property
    def phase(self) -> RacePhase:
        return self._state.phase

    @property
    def current_question(self) -> Question | None:
        return self._state.current_question

    @property
    def ticker(self) -> TickDriver:
        return self._ticker

    @property
    def ticking(self) -> bool:
        return self._ticking

    def events(self) -> list[AnswerEvent]:
        return list(self._events)

    def subscribe(self, listener: RaceListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every state change."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- Commands -----------------------------------------------------------
    def start(self) -> None:
        if self._state.phase is not RacePhase.IDLE:
            logger.debug("start ignored in phase %s", self._state.phase.value)
            return
        self._state.phase = RacePhase.RUNNING
        self._set_status(START_STATUS, StatusTone.NEUTRAL)
        self._issue_question()
        self._ticker.start(self._config.tick_interval_s, self.tick)
        self._ticking = True
        logger.info("race started")
        self._notify()

    def reset(self) -> None:
        if self._ticking:
            self._ticker.cancel()
            self._ticking = False
        self._state = RaceState.fresh(self._config)
        self._events.clear()
        self._set_status(RESET_STATUS, StatusTone.NEUTRAL)
        logger.info("race reset")
        self._notify()

    def tick(self) -> None:
        """Advance every AI competitor by one step."""

        if self._state.phase is not RacePhase.RUNNING:
            logger.debug("tick ignored in phase %s", self._state.phase.value)
            return
        distances = self._state.distances
        for competitor in self._config.ai_competitors:
            step = ai_step(competitor, self._rng, self._config)
            distances[competitor.competitor_id] += step
        logger.debug(
            "tick: %s",
            ", ".join(f"{c.competitor_id}={distances[c.competitor_id]:.2f}" for c in self._config.ai_competitors),
        )
        self._check_finish()
        self._notify()

    def submit_answer(self, raw: object) -> bool:
        """Score a submitted answer. Returns True if it was accepted."""

        if self._state.phase is not RacePhase.RUNNING:
            logger.debug("answer ignored in phase %s", self._state.phase.value)
            return False
        question = self._state.current_question
        started_at = self._state.question_started_at_s
        if question is None or started_at is None:
            return False

        value = _parse_number(raw)
        if value is None:
            logger.debug("answer ignored: %r is not a number", raw)
            return False

        elapsed_s = max(0.0, self._clock.now() - started_at)
        before = self._state.distances[PLAYER_ID]
        is_correct = value == question.correct_answer
        cfg = self._config

        if is_correct:
            move = correct_answer_move(elapsed_s, cfg)
            self._state.distances[PLAYER_ID] = before + move
            self._set_status(f"Correct! +{move:.1f} distance", StatusTone.CORRECT)
        else:
            self._state.distances[PLAYER_ID] = apply_penalty(before, cfg)
            self._set_status(
                f"Oops! Correct was {question.correct_answer}. -{cfg.wrong_answer_penalty:g} distance",
                StatusTone.WRONG,
            )

        after = self._state.distances[PLAYER_ID]
        self._state.last_elapsed_s = elapsed_s
        self._events.append(
            AnswerEvent(
                index=len(self._events),
                question_text=question.text,
                tier=question.tier,
                correct_answer=question.correct_answer,
                submitted=value,
                raw=raw if isinstance(raw, str) else f"{value:g}",
                is_correct=is_correct,
                elapsed_s=elapsed_s,
                movement=after - before,
            )
        )
        logger.debug(
            "answer %r to %r: %s in %.2fs, player %.2f -> %.2f",
            raw,
            question.text,
            "correct" if is_correct else "wrong",
            elapsed_s,
            before,
            after,
        )

        if not self._check_finish():
            self._issue_question()
        self._notify()
        return True

    # -- Read model ---------------------------------------------------------
    def snapshot(self) -> RaceSnapshot:
        cfg = self._config
        st = self._state
        lanes = tuple(
            LaneSnapshot(
                competitor_id=rid,
                display_name=cfg.display_name(rid),
                distance=st.distances[rid],
                progress_pct=clamp(100.0 * st.distances[rid] / cfg.finish_distance, 0.0, 100.0),
            )
            for rid in cfg.racer_ids()
        )
        q = st.current_question
        return RaceSnapshot(
            phase=st.phase,
            winner_id=st.winner_id,
            winner_name=None if st.winner_id is None else cfg.display_name(st.winner_id),
            lanes=lanes,
            question_text=None if q is None else q.text,
            tier=None if q is None else q.tier,
            last_elapsed_s=st.last_elapsed_s,
            status=self._status,
            status_tone=self._tone,
            start_enabled=st.phase is RacePhase.IDLE,
            reset_enabled=st.phase is not RacePhase.IDLE,
            answer_enabled=st.phase is RacePhase.RUNNING,
        )

    def summary(self) -> RaceSummary:
        attempted = len(self._events)
        correct = sum(1 for e in self._events if e.is_correct)
        accuracy = 0.0 if attempted == 0 else correct / attempted
        mean_rt = None if attempted == 0 else sum(e.elapsed_s for e in self._events) / attempted
        winner = self._state.winner_id
        return RaceSummary(
            attempted=attempted,
            correct=correct,
            accuracy=accuracy,
            mean_response_time_s=mean_rt,
            winner_id=winner,
            winner_name=None if winner is None else self._config.display_name(winner),
            distances=dict(self._state.distances),
        )

    # -- Internals ----------------------------------------------------------
    def current_tier(self) -> Tier:
        return select_difficulty(self._state.progress_pct(self._config.finish_distance))

    def _issue_question(self) -> None:
        self._state.current_question = self._generator.generate(self.current_tier())
        self._state.question_started_at_s = self._clock.now()

    def _check_finish(self) -> bool:
        winner = find_winner(self._state.distances, self._config.racer_ids(), self._config.finish_distance)
        if winner is None:
            return False
        self._finish(winner)
        return True

    def _finish(self, winner_id: str) -> None:
        self._state.phase = RacePhase.FINISHED
        self._state.winner_id = winner_id
        self._state.current_question = None
        self._state.question_started_at_s = None
        if self._ticking:
            self._ticker.cancel()
            self._ticking = False
        if winner_id == PLAYER_ID:
            self._set_status(PLAYER_WIN_STATUS, StatusTone.CORRECT)
        else:
            self._set_status(f"{self._config.display_name(winner_id)} wins this race. Try again!", StatusTone.WRONG)
        logger.info("race finished: winner %s", winner_id)

    def _set_status(self, message: str, tone: StatusTone) -> None:
        self._status = message
        self._tone = tone

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                # A broken listener must not undo or abort a state change.
                logger.exception("race listener %r failed", listener)


def build_race_engine(
    *,
    clock: Clock,
    seed: int | None = None,
    rng: RandomSource | None = None,
    ticker: TickDriver | None = None,
    config: RaceConfig | None = None,
) -> RaceEngine:
    """Factory for a race engine.

    ``rng`` overrides ``seed`` when both are given.  Without a ``ticker`` the
    engine gets a ``ClockTicker`` on the same clock, which the caller polls.
    """

    return RaceEngine(
        config=config or RaceConfig(),
        clock=clock,
        rng=rng if rng is not None else SeededRng(seed),
        ticker=ticker if ticker is not None else ClockTicker(clock),
    )
