from __future__ import annotations

import itertools

import pytest

from maths_sprint.race_core import SeededRng, Tier
from maths_sprint.race_questions import QuestionGenerator, select_difficulty


class ScriptedRng:
    """Replays fixed float and int sequences, cycling when exhausted."""

    def __init__(self, floats: list[float], ints: list[int]) -> None:
        self._floats = itertools.cycle(floats)
        self._ints = itertools.cycle(ints)

    def random(self) -> float:
        return next(self._floats)

    def randint(self, a: int, b: int) -> int:
        return next(self._ints)


RANGES = {
    # (first operand range, second operand range) per tier/operator family
    (Tier.EASY, "add_sub"): ((1, 20), (1, 20)),
    (Tier.MEDIUM, "add_sub"): ((10, 60), (5, 45)),
    (Tier.HARD, "add_sub"): ((20, 95), (10, 70)),
    (Tier.HARD, "mul"): ((3, 12), (2, 12)),
}


def _within(value: int, bounds: tuple[int, int]) -> bool:
    return bounds[0] <= value <= bounds[1]


@pytest.mark.parametrize(
    ("progress", "expected"),
    [
        (0.0, Tier.EASY),
        (29.9, Tier.EASY),
        (30.0, Tier.MEDIUM),
        (50.0, Tier.MEDIUM),
        (70.0, Tier.MEDIUM),
        (70.1, Tier.HARD),
        (100.0, Tier.HARD),
        (112.5, Tier.HARD),
    ],
)
def test_select_difficulty_boundaries(progress: float, expected: Tier) -> None:
    assert select_difficulty(progress) is expected


def test_select_difficulty_is_monotonic() -> None:
    order = [Tier.EASY, Tier.MEDIUM, Tier.HARD]
    ranks = [order.index(select_difficulty(p / 10.0)) for p in range(0, 1201)]
    assert ranks == sorted(ranks)


@pytest.mark.parametrize("tier", list(Tier))
def test_generated_operands_stay_in_range(tier: Tier) -> None:
    gen = QuestionGenerator(SeededRng(2024))

    for _ in range(500):
        q = gen.generate(tier)
        assert q.tier is tier
        family = "mul" if q.operator == "×" else "add_sub"
        first, second = RANGES[(tier, family)]

        in_order = _within(q.a, first) and _within(q.b, second)
        swapped = q.operator == "-" and _within(q.b, first) and _within(q.a, second)
        assert in_order or swapped, q

        if q.operator == "+":
            assert q.correct_answer == q.a + q.b
        elif q.operator == "-":
            assert q.correct_answer == q.a - q.b
            assert q.correct_answer >= 0
        else:
            assert q.correct_answer == q.a * q.b
        assert q.text == f"{q.a} {q.operator} {q.b} = ?"


def test_multiplication_only_in_hard() -> None:
    gen = QuestionGenerator(SeededRng(7))

    easy_medium_ops = {gen.generate(t).operator for t in (Tier.EASY, Tier.MEDIUM) for _ in range(300)}
    hard_ops = {gen.generate(Tier.HARD).operator for _ in range(300)}

    assert easy_medium_ops == {"+", "-"}
    assert hard_ops == {"+", "-", "×"}


def test_scripted_addition_renders_expected_text() -> None:
    gen = QuestionGenerator(ScriptedRng([0.2], [15, 23]))

    q = gen.generate(Tier.EASY)

    assert q.text == "15 + 23 = ?"
    assert q.correct_answer == 38


def test_subtraction_swaps_operands_to_stay_non_negative() -> None:
    gen = QuestionGenerator(ScriptedRng([0.9], [4, 17]))

    q = gen.generate(Tier.EASY)

    assert q.text == "17 - 4 = ?"
    assert q.correct_answer == 13


def test_medium_operator_threshold() -> None:
    add = QuestionGenerator(ScriptedRng([0.549], [30, 12])).generate(Tier.MEDIUM)
    sub = QuestionGenerator(ScriptedRng([0.55], [30, 12])).generate(Tier.MEDIUM)

    assert add.operator == "+"
    assert sub.operator == "-"
    assert sub.correct_answer == 18


@pytest.mark.parametrize(
    ("roll", "expected_text", "answer"),
    [
        (0.0, "7 + 8 = ?", 15),
        (0.399, "7 + 8 = ?", 15),
        (0.4, "8 - 7 = ?", 1),
        (0.749, "8 - 7 = ?", 1),
        (0.75, "7 × 8 = ?", 56),
        (0.999, "7 × 8 = ?", 56),
    ],
)
def test_hard_single_roll_picks_operator(roll: float, expected_text: str, answer: int) -> None:
    q = QuestionGenerator(ScriptedRng([roll], [7, 8])).generate(Tier.HARD)

    assert q.text == expected_text
    assert q.correct_answer == answer


def test_generator_determinism_same_seed_same_sequence() -> None:
    gen1 = QuestionGenerator(SeededRng(123))
    gen2 = QuestionGenerator(SeededRng(123))
    tiers = [Tier.EASY, Tier.MEDIUM, Tier.HARD] * 20

    assert [gen1.generate(t) for t in tiers] == [gen2.generate(t) for t in tiers]
