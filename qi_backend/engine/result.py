"""Immutable input and result structures for a single calculation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from qi_backend.models.enums import BenchmarkStatus, FormulaType


@dataclass(frozen=True)
class CalculationInput:
    """Validated numeric input. Built fresh for every evaluation."""

    numerator: Optional[float] = None
    denominator: Optional[float] = None
    variable_values: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Classification:
    status: BenchmarkStatus
    message: str
    compared_benchmark: Optional[float] = None


@dataclass(frozen=True)
class CalculationResult:
    """Outcome of evaluating one mapping against one input."""

    calculated_percentage: Optional[float]
    benchmark_status: BenchmarkStatus
    message: str
    formula_type: FormulaType
    inputs: CalculationInput
    acceptable_benchmark: Optional[float] = None
    non_compliant_benchmark: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["benchmark_status"] = self.benchmark_status.value
        data["formula_type"] = self.formula_type.value
        return data
