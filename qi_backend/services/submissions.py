"""Preview and submission handlers.

Both paths go through the same CalculationEngine so a preview and the stored
submission can never disagree.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from qi_backend.engine.calculator import CalculationEngine
from qi_backend.engine.errors import RemarksRequired
from qi_backend.engine.result import CalculationResult
from qi_backend.mappings.schema import MappingDefinition
from qi_backend.models.enums import BenchmarkStatus, SortOrder, SubmissionStatus
from qi_backend.models.submission import Submission
from qi_backend.services.pagination import Page, paginate
from qi_backend.store import InMemoryStore

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("created_at", "entry_date", "percentage", "viroc_id")


def require_remarks(result: CalculationResult, remarks: Optional[str]) -> None:
    """Non-compliant results must be explained before they are stored."""
    if result.benchmark_status == BenchmarkStatus.NON_COMPLIANT and not (
        remarks and remarks.strip()
    ):
        raise RemarksRequired()


class SubmissionService:
    def __init__(
        self,
        store: InMemoryStore,
        engine: Optional[CalculationEngine] = None,
    ) -> None:
        self.store = store
        self.engine = engine or CalculationEngine()

    def preview(
        self,
        mapping_id: str,
        numerator: Any = None,
        denominator: Any = None,
        variable_values: Optional[Mapping[str, Any]] = None,
    ) -> tuple[MappingDefinition, CalculationResult]:
        """Calculate without persisting anything."""
        mapping = self.store.get_mapping(mapping_id)
        result = self.engine.calculate(mapping, numerator, denominator, variable_values)
        return mapping, result

    def submit(
        self,
        user_id: str,
        mapping_id: str,
        entry_date: date,
        numerator: Any = None,
        denominator: Any = None,
        variable_values: Optional[Mapping[str, Any]] = None,
        remarks: Optional[str] = None,
    ) -> Submission:
        mapping, result = self.preview(mapping_id, numerator, denominator, variable_values)
        try:
            require_remarks(result, remarks)
        except RemarksRequired:
            logger.warning(
                "Rejected non-compliant submission for %s without remarks", mapping.viroc_id
            )
            raise

        now = datetime.now(tz=timezone.utc)
        submission = Submission(
            mapping_id=mapping.id,
            viroc_id=mapping.viroc_id,
            indicator_name=mapping.name,
            department_id=mapping.department_id,
            user_id=user_id,
            entry_date=entry_date,
            remarks=_clean(remarks),
            status=SubmissionStatus.SUBMITTED,
            submitted_at=now,
            created_at=now,
            updated_at=now,
            **_result_fields(result),
        )
        self.store.save_submission(submission)
        logger.info(
            "Stored submission %s for %s (%s)",
            submission.id,
            mapping.viroc_id,
            result.benchmark_status.value,
        )
        return submission

    def update(self, user_id: str, submission_id: str, changes: Mapping[str, Any]) -> Submission:
        """Apply a partial update and recompute the result.

        Unspecified inputs keep their stored values. Changing the mapping
        re-evaluates the stored inputs against the new formula.
        """
        submission = self._owned(user_id, submission_id)
        mapping = self.store.get_mapping(changes.get("mapping_id") or submission.mapping_id)

        numerator = changes.get("numerator", submission.numerator)
        denominator = changes.get("denominator", submission.denominator)
        variable_values = changes.get("variable_values", submission.custom_values)
        remarks = changes["remarks"] if "remarks" in changes else submission.remarks

        result = self.engine.calculate(mapping, numerator, denominator, variable_values)
        require_remarks(result, remarks)

        # Stored records are swapped whole, never edited in place
        updated = replace(
            submission,
            mapping_id=mapping.id,
            viroc_id=mapping.viroc_id,
            indicator_name=mapping.name,
            department_id=mapping.department_id,
            remarks=_clean(remarks),
            entry_date=changes.get("entry_date") or submission.entry_date,
            updated_at=datetime.now(tz=timezone.utc),
            **_result_fields(result),
        )
        self.store.save_submission(updated)
        logger.info("Updated submission %s", updated.id)
        return updated

    def delete(self, user_id: str, submission_id: str) -> None:
        self._owned(user_id, submission_id)
        self.store.delete_submission(submission_id)
        logger.info("Deleted submission %s", submission_id)

    def list_for_user(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: SortOrder = SortOrder.DESC,
        search: Optional[str] = None,
    ) -> Page[Submission]:
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by '{sort_by}'; expected one of {SORTABLE_FIELDS}")

        submissions = self.store.list_submissions(user_id=user_id)
        if search:
            term = search.strip().lower()
            submissions = [
                s for s in submissions
                if term in s.viroc_id.lower()
                or term in s.indicator_name.lower()
                or term in (s.remarks or "").lower()
            ]

        # None percentages sort after every number in either direction
        present = [s for s in submissions if getattr(s, sort_by) is not None]
        absent = [s for s in submissions if getattr(s, sort_by) is None]
        present.sort(
            key=lambda s: getattr(s, sort_by),
            reverse=sort_order == SortOrder.DESC,
        )
        return paginate(present + absent, page, limit)

    def _owned(self, user_id: str, submission_id: str) -> Submission:
        submission = self.store.get_submission(submission_id)
        if submission.user_id != user_id:
            raise PermissionError(f"Submission {submission_id} belongs to another user")
        return submission


def _result_fields(result: CalculationResult) -> dict[str, Any]:
    inputs = result.inputs
    return {
        "numerator": inputs.numerator,
        "denominator": inputs.denominator,
        "custom_values": dict(inputs.variable_values) or None,
        "percentage": result.calculated_percentage,
        "benchmark_status": result.benchmark_status,
    }


def _clean(remarks: Optional[str]) -> Optional[str]:
    if remarks is None:
        return None
    return remarks.strip() or None
