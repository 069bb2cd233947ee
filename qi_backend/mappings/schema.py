"""Pydantic models for indicator mappings and departments."""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from qi_backend.models.enums import FormulaType, PatientType


class Department(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=1)


class MappingDefinition(BaseModel):
    """A quality indicator formula with its benchmark thresholds.

    Read-only to the calculation engine. The custom expression is not parsed
    here; the engine reports malformed formulas when it evaluates them.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    viroc_id: str = Field(min_length=1, description="Human-facing indicator id")
    name: str = Field(min_length=1)
    formula_type: FormulaType
    numerator_field: str = ""
    denominator_field: str = ""
    custom_formula: Optional[str] = None
    variable_descriptions: Optional[dict[str, str]] = None
    patient_type: PatientType = PatientType.BOTH
    department_id: Optional[str] = None
    acceptable_benchmark: Optional[float] = Field(
        default=None, description="Percentage at or above which a result is acceptable"
    )
    non_compliant_benchmark: Optional[float] = Field(
        default=None, description="Percentage below which a result is non-compliant"
    )
    is_active: bool = True

    @field_validator("variable_descriptions")
    @classmethod
    def variable_names_not_blank(
        cls, v: Optional[dict[str, str]]
    ) -> Optional[dict[str, str]]:
        if v is not None:
            for name in v:
                if not name.strip():
                    raise ValueError("variable names must not be blank")
        return v

    @model_validator(mode="after")
    def custom_fields_match_formula_type(self) -> MappingDefinition:
        if self.formula_type == FormulaType.CUSTOM:
            if not (self.custom_formula and self.custom_formula.strip()):
                raise ValueError("CUSTOM mappings require a custom_formula")
            if not self.variable_descriptions:
                raise ValueError("CUSTOM mappings require variable_descriptions")
        elif self.custom_formula is not None or self.variable_descriptions is not None:
            raise ValueError(
                f"{self.formula_type.value} mappings must not define a custom formula"
            )
        return self

    @property
    def required_variables(self) -> list[str]:
        return list(self.variable_descriptions or {})


class MappingCatalogue(BaseModel):
    """Top-level seed file: departments plus the mappings that reference them."""

    departments: list[Department] = Field(default_factory=list)
    mappings: list[MappingDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def ids_are_unique_and_resolved(self) -> MappingCatalogue:
        viroc_ids = [m.viroc_id for m in self.mappings]
        duplicates = sorted({v for v in viroc_ids if viroc_ids.count(v) > 1})
        if duplicates:
            raise ValueError(f"Duplicate viroc_id values: {duplicates}")

        department_ids = {d.id for d in self.departments}
        for mapping in self.mappings:
            if mapping.department_id and mapping.department_id not in department_ids:
                raise ValueError(
                    f"Mapping {mapping.viroc_id} references unknown department "
                    f"'{mapping.department_id}'"
                )
        return self
