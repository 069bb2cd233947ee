"""Typed failures raised by the calculation engine and its callers.

Every error is a deterministic function of bad input: callers translate them
into user-facing messages and never retry.
"""

from __future__ import annotations

from typing import Any, Optional


class CalculationError(Exception):
    """Base class for all validation and computation failures."""

    code = "CALCULATION_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class InvalidInput(CalculationError):
    """Numerator or denominator missing, non-numeric or non-finite."""

    code = "INVALID_INPUT"

    def __init__(self, fields: list[str], message: Optional[str] = None) -> None:
        self.fields = list(fields)
        super().__init__(
            message or f"Invalid numeric input for: {', '.join(self.fields)}",
            {"fields": self.fields},
        )


class DivisionByZero(CalculationError):
    code = "DIVISION_BY_ZERO"

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(
            f"{field.capitalize()} cannot be zero for this formula type",
            {"field": field},
        )


class MissingVariable(CalculationError):
    """One or more custom-formula variables are absent or non-numeric."""

    code = "MISSING_VARIABLE"

    def __init__(self, variables: list[str]) -> None:
        self.variables = list(variables)
        super().__init__(
            f"Missing or invalid values for variables: {', '.join(self.variables)}",
            {"variables": self.variables},
        )


class FormulaParseError(CalculationError):
    code = "FORMULA_PARSE_ERROR"

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        self.position = position
        details = {"position": position} if position is not None else {}
        super().__init__(message, details)


class FormulaEvaluationError(CalculationError):
    code = "FORMULA_EVALUATION_ERROR"


class RemarksRequired(CalculationError):
    """A non-compliant submission was made without an explanation."""

    code = "REMARKS_REQUIRED"

    def __init__(self) -> None:
        super().__init__("Remarks are required when the result is non-compliant")


class NotFoundError(Exception):
    code = "NOT_FOUND"

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} '{key}' not found")
        self.kind = kind
        self.key = key
        self.message = str(self)
