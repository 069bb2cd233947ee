"""Input validation -- rejects malformed input before any formula runs."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Mapping, Optional

from qi_backend.engine.errors import DivisionByZero, InvalidInput, MissingVariable
from qi_backend.models.enums import FormulaType


def parse_number(raw: Any) -> Optional[float]:
    """Return ``raw`` as a finite float, or None when it is not one.

    Accepts ints, floats, Decimals and numeric strings. Booleans and blank
    strings are rejected rather than coerced.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float, Decimal)):
        try:
            value = float(raw)
        except OverflowError:
            # ints beyond float range
            return None
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def validate_standard_inputs(
    formula_type: FormulaType,
    numerator: Any,
    denominator: Any,
) -> tuple[float, float]:
    """Validate numerator/denominator for A_OVER_B, B_OVER_A and DIRECT."""
    num = parse_number(numerator)
    den = parse_number(denominator)

    invalid = [
        name
        for name, value in (("numerator", num), ("denominator", den))
        if value is None
    ]
    if invalid:
        raise InvalidInput(invalid)

    if formula_type == FormulaType.A_OVER_B and den == 0:
        raise DivisionByZero("denominator")
    if formula_type == FormulaType.B_OVER_A and num == 0:
        raise DivisionByZero("numerator")

    return num, den


def validate_custom_inputs(
    variable_descriptions: Mapping[str, str],
    variable_values: Optional[Mapping[str, Any]],
) -> dict[str, float]:
    """Validate values for every declared variable.

    All missing or non-numeric variables are reported together, in
    declaration order. Values for undeclared names are dropped.
    """
    supplied = variable_values or {}
    validated: dict[str, float] = {}
    offending: list[str] = []

    for name in variable_descriptions:
        value = parse_number(supplied.get(name))
        if value is None:
            offending.append(name)
        else:
            validated[name] = value

    if offending:
        raise MissingVariable(offending)
    return validated
