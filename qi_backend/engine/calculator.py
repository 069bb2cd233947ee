"""Core calculation engine.

Takes a mapping definition + raw user input -> produces a CalculationResult
with the percentage and its benchmark verdict. Both the preview and the
submission handlers call this, so what a user sees is what gets stored.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional

# Ensure all formulas are registered on import
import qi_backend.engine.formulas  # noqa: F401
from qi_backend.engine.classifier import classify
from qi_backend.engine.registry import get_formula, missing_formula_types
from qi_backend.engine.result import CalculationInput, CalculationResult
from qi_backend.engine.validation import (
    validate_custom_inputs,
    validate_standard_inputs,
)
from qi_backend.mappings.schema import MappingDefinition
from qi_backend.models.enums import FormulaType

logger = logging.getLogger(__name__)

if missing_formula_types():
    raise RuntimeError(f"Unregistered formula types: {missing_formula_types()}")


class CalculationEngine:
    """Stateless engine that evaluates indicator formulas."""

    def calculate(
        self,
        mapping: MappingDefinition,
        numerator: Any = None,
        denominator: Any = None,
        variable_values: Optional[Mapping[str, Any]] = None,
    ) -> CalculationResult:
        """Validate the raw input, evaluate the formula and classify it.

        Raises a CalculationError subclass on bad input or a bad formula.
        """
        inputs = self.build_input(mapping, numerator, denominator, variable_values)
        percentage = self.evaluate(mapping, inputs)
        verdict = classify(
            percentage,
            mapping.acceptable_benchmark,
            mapping.non_compliant_benchmark,
        )

        logger.debug(
            "Calculated %s (%s): %s -> %s",
            mapping.viroc_id,
            mapping.formula_type.value,
            percentage,
            verdict.status.value,
        )

        return CalculationResult(
            calculated_percentage=percentage,
            benchmark_status=verdict.status,
            message=verdict.message,
            formula_type=mapping.formula_type,
            inputs=inputs,
            acceptable_benchmark=mapping.acceptable_benchmark,
            non_compliant_benchmark=mapping.non_compliant_benchmark,
        )

    @staticmethod
    def build_input(
        mapping: MappingDefinition,
        numerator: Any = None,
        denominator: Any = None,
        variable_values: Optional[Mapping[str, Any]] = None,
    ) -> CalculationInput:
        """Turn raw request values into validated numeric input."""
        if mapping.formula_type == FormulaType.CUSTOM:
            values = validate_custom_inputs(
                mapping.variable_descriptions or {}, variable_values
            )
            return CalculationInput(variable_values=values)

        num, den = validate_standard_inputs(mapping.formula_type, numerator, denominator)
        return CalculationInput(numerator=num, denominator=den)

    @staticmethod
    def evaluate(mapping: MappingDefinition, inputs: CalculationInput) -> Optional[float]:
        """Compute the percentage for validated input.

        A standard formula that overflows yields None; custom formulas raise
        FormulaEvaluationError instead.
        """
        definition = get_formula(mapping.formula_type)
        percentage = definition.formula_fn(inputs, mapping)
        if not math.isfinite(percentage):
            logger.warning(
                "Non-finite result for %s with %s", mapping.viroc_id, inputs
            )
            return None
        return percentage
