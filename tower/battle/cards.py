"""
Arithmetic cards - dealing and problem generation.

A grade record describes which operators appear, how often, and how
hard each (operator, rank) problem is:

    {
        "ops": ["+", "-"],
        "ratios": [0.6, 0.4],
        "problems": {
            "+": {"1": {"a": [1, 9], "b": [1, 9]},
                  "3": {"a": [10, 99], "b": [10, 99]}},
            "-": {"1": {"a": [1, 9], "b": [1, 9]}}
        }
    }

Missing ranks fall back to the operator's rank-1 problem. Generators can
also be registered from Python for anything the range format can't say.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from tower_engine.errors import DataError

ProblemGenerator = Callable[[random.Random], tuple[str, int]]

ADD = "+"
SUBTRACT = "-"
MULTIPLY = "×"
DIVIDE = "÷"
OPERATORS = (ADD, SUBTRACT, MULTIPLY, DIVIDE)

RANK_WEIGHTS = (0.40, 0.30, 0.15, 0.10, 0.05)


@dataclass
class Card:
    """One arithmetic card in the hand."""
    operator: str
    rank: int
    question: str
    answer: int

    def to_dict(self) -> dict[str, Any]:
        return {
            'operator': self.operator,
            'rank': self.rank,
            'question': self.question,
        }


def _bounds(value: Any, default: tuple[int, int]) -> tuple[int, int]:
    if value is None:
        return default
    if isinstance(value, (list, tuple)) and len(value) == 2:
        lo, hi = int(value[0]), int(value[1])
        return (min(lo, hi), max(lo, hi))
    fixed = int(value)
    return (fixed, fixed)


def range_problem(operator: str, ranges: dict[str, Any]) -> ProblemGenerator:
    """
    Build a generator from a {"a": [lo, hi], "b": [lo, hi]} table.

    Subtraction never goes negative; division is always exact
    (the dividend is built as divisor * quotient).
    """
    a_lo, a_hi = _bounds(ranges.get('a'), (1, 9))
    b_lo, b_hi = _bounds(ranges.get('b'), (1, 9))

    if operator not in OPERATORS:
        raise DataError(f"Unknown operator: {operator!r}")

    def generate(rng: random.Random) -> tuple[str, int]:
        a = rng.randint(a_lo, a_hi)
        b = rng.randint(b_lo, b_hi)
        if operator == ADD:
            return f"{a} + {b}", a + b
        if operator == SUBTRACT:
            a, b = max(a, b), min(a, b)
            return f"{a} - {b}", a - b
        if operator == MULTIPLY:
            return f"{a} × {b}", a * b
        divisor = b if b != 0 else 1
        return f"{divisor * a} ÷ {divisor}", a

    return generate


def weighted_pick(weights: Sequence[float], roll: float) -> int:
    """
    Index chosen by a cumulative walk over weights.

    Rolls past the total pick the first index.
    """
    cumulative = 0.0
    for index, weight in enumerate(weights):
        cumulative += weight
        if roll <= cumulative:
            return index
    return 0


class CardDealer:
    """
    Deals cards for one difficulty grade.

    Usage:
        dealer = CardDealer(grade_record, rng)
        hand = dealer.deal_hand(5)
    """

    def __init__(
        self,
        grade: dict[str, Any],
        rng: random.Random,
        rank_weights: Sequence[float] = RANK_WEIGHTS,
    ):
        self.grade = grade
        self.rng = rng
        self.rank_weights = list(rank_weights)
        self.operators: list[str] = list(grade.get('ops') or [])
        if not self.operators:
            raise DataError(f"Grade {grade.get('id')!r} has no operators")
        self.ratios: list[float] = self._ratios(grade.get('ratios'))

        self._generators: dict[tuple[str, int], ProblemGenerator] = {}
        for operator, ranks in (grade.get('problems') or {}).items():
            for rank, ranges in ranks.items():
                self._generators[(operator, int(rank))] = range_problem(operator, ranges)

    def _ratios(self, ratios: Any) -> list[float]:
        if isinstance(ratios, dict):
            return [float(ratios.get(op, 0)) for op in self.operators]
        if isinstance(ratios, list):
            padded = [float(r) for r in ratios] + [0.0] * len(self.operators)
            return padded[:len(self.operators)]
        return [1.0 / len(self.operators)] * len(self.operators)

    def register(self, operator: str, rank: int, generator: ProblemGenerator) -> None:
        """Register a custom problem generator."""
        self._generators[(operator, rank)] = generator

    def generator_for(self, operator: str, rank: int) -> ProblemGenerator:
        generator = self._generators.get((operator, rank)) or self._generators.get((operator, 1))
        if generator is None:
            # No authored problems for this operator: use the default ranges
            generator = range_problem(operator, {})
            self._generators[(operator, 1)] = generator
        return generator

    def draw_operator(self) -> str:
        return self.operators[weighted_pick(self.ratios, self.rng.random())]

    def draw_rank(self) -> int:
        return weighted_pick(self.rank_weights, self.rng.random()) + 1

    def deal(self, operator: Optional[str] = None, rank: Optional[int] = None) -> Card:
        """Deal one card; operator and rank are drawn unless given."""
        operator = operator or self.draw_operator()
        rank = rank or self.draw_rank()
        question, answer = self.generator_for(operator, rank)(self.rng)
        return Card(operator=operator, rank=rank, question=question, answer=answer)

    def deal_hand(self, size: int) -> list[Card]:
        return [self.deal() for _ in range(size)]
