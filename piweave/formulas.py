from enum import Enum
from typing import Callable, Dict, List

from .errors import UnknownFormula
from .model import PartialResult, Range


def leibniz_term(k: int) -> float:
    sign = 1 if k % 2 == 0 else -1
    return 4.0 / ((2 * k + 1) * sign)


def leibniz_range_sum(start: int, end: int) -> float:
    """Sum of the Leibniz terms k = start..end inclusive.

    The sign is seeded from the parity of ``start`` so any chunking of the
    index span reproduces the terms of the sequential series.
    """
    s = 0.0
    sign = 1 if start % 2 == 0 else -1
    for k in range(start, end + 1):
        s += 4.0 / ((2 * k + 1) * sign)
        sign = -sign
    return s


class Formula(Enum):
    LEIBNIZ = "leibniz"

    @property
    def range_sum(self) -> Callable[[int, int], float]:
        return _RANGE_SUMS[self]

    @classmethod
    def choices(cls) -> List[str]:
        return [f.value for f in cls]


_RANGE_SUMS: Dict[Formula, Callable[[int, int], float]] = {
    Formula.LEIBNIZ: leibniz_range_sum,
}


def parse_formula(name) -> Formula:
    key = (name or "").lower().strip()
    for f in Formula:
        if f.value == key:
            return f
    raise UnknownFormula(f"unknown formula: {name!r} (choices: {', '.join(Formula.choices())})")


def evaluate_range(formula: Formula, rng: Range) -> PartialResult:
    return PartialResult(formula.range_sum(rng.start, rng.end), rng)
