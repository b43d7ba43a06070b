__all__ = [
    "CalculationResult",
    "EvaluationFailure",
    "Formula",
    "InvalidArgument",
    "ParallelAccumulator",
    "PartialResult",
    "Range",
    "UnknownFormula",
    "evaluate_range",
    "leibniz_range_sum",
    "parse_formula",
    "serialize_result",
]

from .accumulator import ParallelAccumulator
from .errors import EvaluationFailure, InvalidArgument, UnknownFormula
from .formats import serialize_result
from .formulas import Formula, evaluate_range, leibniz_range_sum, parse_formula
from .model import CalculationResult, PartialResult, Range
