"""Formula evaluation and compliance classification."""

from .calculator import CalculationEngine
from .classifier import classify
from .errors import (
    CalculationError,
    DivisionByZero,
    FormulaEvaluationError,
    FormulaParseError,
    InvalidInput,
    MissingVariable,
    NotFoundError,
    RemarksRequired,
)
from .result import CalculationInput, CalculationResult

__all__ = [
    "CalculationEngine",
    "classify",
    "CalculationError",
    "InvalidInput",
    "DivisionByZero",
    "MissingVariable",
    "FormulaParseError",
    "FormulaEvaluationError",
    "RemarksRequired",
    "NotFoundError",
    "CalculationInput",
    "CalculationResult",
]
