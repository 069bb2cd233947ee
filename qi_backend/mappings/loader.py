"""Load and validate the mapping catalogue from a JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from qi_backend.engine.errors import FormulaParseError
from qi_backend.engine.expression import compile_formula
from qi_backend.mappings.schema import MappingCatalogue
from qi_backend.models.enums import FormulaType

logger = logging.getLogger(__name__)

# Default directory for catalogue files
_CONFIG_DIR = Path(__file__).parent / "configs"
DEFAULT_CATALOGUE = _CONFIG_DIR / "default_mappings.json"


class MappingConfigError(Exception):
    """The catalogue file is missing or contains an invalid mapping."""


def load_catalogue(file_path: Path | None = None) -> MappingCatalogue:
    """Load, validate and pre-compile a mapping catalogue.

    If no path is provided, loads the bundled default catalogue. Every custom
    formula is compiled here so a broken seed file fails at startup rather
    than on the first submission.
    """
    if file_path is None:
        file_path = DEFAULT_CATALOGUE

    if not file_path.exists():
        raise MappingConfigError(f"Mapping catalogue not found: {file_path}")

    with open(file_path, "r") as f:
        raw = json.load(f)

    try:
        catalogue = MappingCatalogue.model_validate(raw)
    except ValidationError as e:
        raise MappingConfigError(f"Invalid mapping catalogue {file_path}: {e}") from e

    for mapping in catalogue.mappings:
        if mapping.formula_type != FormulaType.CUSTOM:
            continue
        try:
            compile_formula(mapping.custom_formula, mapping.required_variables)
        except FormulaParseError as e:
            raise MappingConfigError(
                f"Mapping {mapping.viroc_id} has an invalid formula: {e.message}"
            ) from e

    logger.info(
        "Loaded %d mappings and %d departments from %s",
        len(catalogue.mappings),
        len(catalogue.departments),
        file_path,
    )
    return catalogue


def get_default_catalogue() -> MappingCatalogue:
    return load_catalogue()
