from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from qi_backend.models.enums import FormulaType

if TYPE_CHECKING:
    from qi_backend.engine.result import CalculationInput
    from qi_backend.mappings.schema import MappingDefinition

FormulaFn = Callable[["CalculationInput", "MappingDefinition"], float]

# Global registry -- maps FormulaType -> FormulaDefinition
_REGISTRY: dict[FormulaType, FormulaDefinition] = {}


@dataclass(frozen=True)
class FormulaDefinition:
    """One evaluation function per formula kind."""

    formula_type: FormulaType
    label: str
    description: str
    formula_fn: FormulaFn
    uses_variables: bool = False


def register_formula(
    formula_type: FormulaType,
    label: str,
    description: str,
    uses_variables: bool = False,
) -> Callable:
    """Decorator to register the evaluation function for a formula kind."""

    def decorator(fn: FormulaFn) -> FormulaFn:
        if formula_type in _REGISTRY:
            raise ValueError(f"Formula type {formula_type.value} is already registered")
        _REGISTRY[formula_type] = FormulaDefinition(
            formula_type=formula_type,
            label=label,
            description=description,
            formula_fn=fn,
            uses_variables=uses_variables,
        )
        return fn

    return decorator


def get_formula(formula_type: FormulaType) -> FormulaDefinition:
    """Look up the evaluation function for a formula kind.

    The set of kinds is closed, so a missing entry is a programming error.
    """
    try:
        return _REGISTRY[formula_type]
    except KeyError:
        raise LookupError(f"No formula registered for {formula_type.value}") from None


def get_all_formulas() -> dict[FormulaType, FormulaDefinition]:
    """Return the full registry (read-only copy)."""
    return dict(_REGISTRY)


def missing_formula_types() -> list[FormulaType]:
    return [ft for ft in FormulaType if ft not in _REGISTRY]
