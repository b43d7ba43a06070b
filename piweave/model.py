from dataclasses import dataclass

from .errors import InvalidArgument


@dataclass(frozen=True)
class Range:
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0:
            raise InvalidArgument("start must be >= 0")
        if self.end < self.start:
            raise InvalidArgument("end must be >= start")

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class PartialResult:
    value: float
    range: Range


@dataclass(frozen=True)
class CalculationResult:
    approximation: float
    reached_bound: int
