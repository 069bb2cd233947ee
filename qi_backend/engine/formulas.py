"""Percentage formulas, one per formula type.

Each function is a pure calculation over already-validated input. Results
keep full float precision and are never clamped to [0, 100].
"""

from qi_backend.engine.expression import compile_formula
from qi_backend.engine.registry import register_formula
from qi_backend.models.enums import FormulaType


@register_formula(
    FormulaType.A_OVER_B,
    label="Numerator / Denominator",
    description="Percentage = (numerator / denominator) * 100.",
)
def calc_a_over_b(inputs, mapping) -> float:
    """(A / B) x 100"""
    return (inputs.numerator / inputs.denominator) * 100


@register_formula(
    FormulaType.B_OVER_A,
    label="Denominator / Numerator",
    description=(
        "Percentage = (denominator / numerator) * 100. Roles are inverted "
        "relative to the field labels."
    ),
)
def calc_b_over_a(inputs, mapping) -> float:
    """(B / A) x 100"""
    return (inputs.denominator / inputs.numerator) * 100


@register_formula(
    FormulaType.DIRECT,
    label="Direct entry",
    description="The numerator is the already-computed percentage.",
)
def calc_direct(inputs, mapping) -> float:
    return inputs.numerator


@register_formula(
    FormulaType.CUSTOM,
    label="Custom formula",
    description="User-authored arithmetic expression over named variables.",
    uses_variables=True,
)
def calc_custom(inputs, mapping) -> float:
    compiled = compile_formula(
        mapping.custom_formula or "", mapping.variable_descriptions or {}
    )
    return compiled.evaluate(inputs.variable_values)
