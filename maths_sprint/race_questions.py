from __future__ import annotations

from .race_core import Question, RandomSource, Tier

EASY_MAX_PROGRESS = 30.0
MEDIUM_MAX_PROGRESS = 70.0


def select_difficulty(progress_pct: float) -> Tier:
    """Map player progress (percent of the finish distance, uncapped) to a tier."""

    if progress_pct < EASY_MAX_PROGRESS:
        return Tier.EASY
    if progress_pct <= MEDIUM_MAX_PROGRESS:
        return Tier.MEDIUM
    return Tier.HARD


class QuestionGenerator:
    """Generates arithmetic questions for a difficulty tier.

    Easy and Medium mix addition and subtraction over widening operand
    ranges.  Hard adds small-table multiplication.  Subtraction operands are
    ordered so the answer is never negative.
    """

    def __init__(self, rng: RandomSource) -> None:
        self._rng = rng

    def generate(self, tier: Tier) -> Question:
        if tier is Tier.EASY:
            op = "+" if self._rng.random() < 0.5 else "-"
            a = self._rng.randint(1, 20)
            b = self._rng.randint(1, 20)
        elif tier is Tier.MEDIUM:
            op = "+" if self._rng.random() < 0.55 else "-"
            a = self._rng.randint(10, 60)
            b = self._rng.randint(5, 45)
        else:
            roll = self._rng.random()
            op = "+" if roll < 0.4 else "-" if roll < 0.75 else "×"
            if op == "×":
                a = self._rng.randint(3, 12)
                b = self._rng.randint(2, 12)
            else:
                a = self._rng.randint(20, 95)
                b = self._rng.randint(10, 70)

        if op == "-" and b > a:
            a, b = b, a

        if op == "+":
            answer = a + b
        elif op == "-":
            answer = a - b
        else:
            answer = a * b

        return Question(text=f"{a} {op} {b} = ?", correct_answer=answer, tier=tier, a=a, b=b, operator=op)
