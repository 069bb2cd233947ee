"""Shared test fixtures for the quality indicator test suite."""

from datetime import date

import pytest

from qi_backend.engine.calculator import CalculationEngine
from qi_backend.mappings.loader import get_default_catalogue
from qi_backend.mappings.schema import MappingDefinition
from qi_backend.models.enums import BenchmarkStatus, FormulaType
from qi_backend.models.submission import Submission
from qi_backend.services.submissions import SubmissionService
from qi_backend.store import InMemoryStore


def make_mapping(formula_type=FormulaType.A_OVER_B, **overrides) -> MappingDefinition:
    """Helper to create a MappingDefinition with minimal boilerplate."""
    fields = {
        "viroc_id": "QI-T",
        "name": "Test indicator",
        "formula_type": formula_type,
        "numerator_field": "Events",
        "denominator_field": "Opportunities",
    }
    if formula_type == FormulaType.CUSTOM:
        fields.update(
            numerator_field="",
            denominator_field="",
            custom_formula="(A * C) / B * 100",
            variable_descriptions={
                "A": "Blood components used",
                "B": "Total products",
                "C": "Conversion factor",
            },
        )
    fields.update(overrides)
    return MappingDefinition(**fields)


def make_submission(percentage, entry_date=date(2025, 3, 15), **overrides) -> Submission:
    fields = {
        "mapping_id": "map-qi-01",
        "viroc_id": "QI-01",
        "indicator_name": "Hand hygiene compliance",
        "department_id": "dept-nursing",
        "user_id": "user-1",
        "entry_date": entry_date,
        "percentage": percentage,
        "benchmark_status": BenchmarkStatus.NO_BENCHMARK,
    }
    fields.update(overrides)
    return Submission(**fields)


@pytest.fixture
def engine():
    return CalculationEngine()


@pytest.fixture
def catalogue():
    return get_default_catalogue()


@pytest.fixture
def store(catalogue):
    return InMemoryStore.from_catalogue(catalogue)


@pytest.fixture
def service(store):
    return SubmissionService(store)


@pytest.fixture
def ratio_mapping():
    """A_OVER_B with both benchmarks: compliant at >= 90%."""
    return make_mapping(acceptable_benchmark=95, non_compliant_benchmark=90)


@pytest.fixture
def custom_mapping():
    return make_mapping(FormulaType.CUSTOM)
