"""Edge case tests -- overflow, extreme values, unusual formulas."""

import pytest

from qi_backend.engine.errors import (
    FormulaEvaluationError,
    FormulaParseError,
    MissingVariable,
)
from qi_backend.models.enums import BenchmarkStatus, FormulaType

from conftest import make_mapping


class TestEdgeCases:
    def test_standard_overflow_is_undetermined(self, engine):
        """A ratio that overflows float range yields no percentage, not an error."""
        mapping = make_mapping(non_compliant_benchmark=90)
        result = engine.calculate(mapping, 1e308, 1e-10)
        assert result.calculated_percentage is None
        assert result.benchmark_status == BenchmarkStatus.UNDETERMINED

    def test_custom_overflow_raises(self, engine):
        mapping = make_mapping(
            FormulaType.CUSTOM,
            custom_formula="A * B",
            variable_descriptions={"A": "x", "B": "y"},
        )
        with pytest.raises(FormulaEvaluationError):
            engine.calculate(mapping, variable_values={"A": 1e200, "B": 1e200})

    def test_negative_percentage_passes_through(self, engine):
        result = engine.calculate(make_mapping(non_compliant_benchmark=0), -5, 10)
        assert result.calculated_percentage == pytest.approx(-50.0)
        assert result.benchmark_status == BenchmarkStatus.NON_COMPLIANT

    def test_formula_with_constants_only(self, engine):
        mapping = make_mapping(
            FormulaType.CUSTOM,
            custom_formula="A * 0 + 42",
            variable_descriptions={"A": "unused weight"},
        )
        result = engine.calculate(mapping, variable_values={"A": 7})
        assert result.calculated_percentage == pytest.approx(42.0)

    def test_multi_letter_variable_names(self, engine):
        mapping = make_mapping(
            FormulaType.CUSTOM,
            custom_formula="(used - wasted) / issued * 100",
            variable_descriptions={
                "used": "Units used",
                "wasted": "Units wasted",
                "issued": "Units issued",
            },
        )
        result = engine.calculate(
            mapping, variable_values={"used": 80, "wasted": 5, "issued": 100}
        )
        assert result.calculated_percentage == pytest.approx(75.0)

    def test_variable_names_are_case_sensitive(self, engine):
        mapping = make_mapping(
            FormulaType.CUSTOM,
            custom_formula="a / B * 100",
            variable_descriptions={"A": "x", "B": "y"},
        )
        with pytest.raises(FormulaParseError):
            engine.calculate(mapping, variable_values={"A": 1, "B": 2})

    def test_unicode_operator_rejected(self, engine):
        mapping = make_mapping(
            FormulaType.CUSTOM,
            custom_formula="A × B",
            variable_descriptions={"A": "x", "B": "y"},
        )
        with pytest.raises(FormulaParseError, match="Unexpected character"):
            engine.calculate(mapping, variable_values={"A": 1, "B": 2})

    def test_inputs_validated_before_formula_is_parsed(self, engine):
        """A broken formula with missing inputs reports the inputs first."""
        mapping = make_mapping(
            FormulaType.CUSTOM,
            custom_formula="(A",
            variable_descriptions={"A": "x"},
        )
        with pytest.raises(MissingVariable):
            engine.calculate(mapping, variable_values={})
