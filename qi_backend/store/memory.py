"""In-memory repositories for mappings, departments and submissions.

Process-local; a database-backed implementation can replace this behind the
same methods.
"""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from qi_backend.engine.errors import NotFoundError
from qi_backend.mappings.schema import Department, MappingCatalogue, MappingDefinition
from qi_backend.models.submission import Submission


class InMemoryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._mappings: dict[str, MappingDefinition] = {}
        self._departments: dict[str, Department] = {}
        self._submissions: dict[str, Submission] = {}

    @classmethod
    def from_catalogue(cls, catalogue: MappingCatalogue) -> InMemoryStore:
        store = cls()
        for department in catalogue.departments:
            store.add_department(department)
        for mapping in catalogue.mappings:
            store.add_mapping(mapping)
        return store

    # -- mappings -------------------------------------------------------

    def add_mapping(self, mapping: MappingDefinition) -> None:
        with self._lock:
            self._mappings[mapping.id] = mapping

    def get_mapping(self, key: str) -> MappingDefinition:
        """Look up a mapping by its id or its viroc id."""
        mapping = self._mappings.get(key)
        if mapping is None:
            mapping = next(
                (m for m in self._mappings.values() if m.viroc_id == key), None
            )
        if mapping is None:
            raise NotFoundError("Mapping", key)
        return mapping

    def list_mappings(self) -> list[MappingDefinition]:
        return sorted(self._mappings.values(), key=lambda m: m.viroc_id)

    # -- departments ----------------------------------------------------

    def add_department(self, department: Department) -> None:
        with self._lock:
            self._departments[department.id] = department

    def get_department(self, department_id: Optional[str]) -> Optional[Department]:
        if department_id is None:
            return None
        return self._departments.get(department_id)

    def list_departments(self) -> list[Department]:
        return sorted(self._departments.values(), key=lambda d: d.name)

    # -- submissions ----------------------------------------------------

    def save_submission(self, submission: Submission) -> Submission:
        with self._lock:
            self._submissions[submission.id] = submission
        return submission

    def get_submission(self, submission_id: str) -> Submission:
        with self._lock:
            submission = self._submissions.get(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        return submission

    def delete_submission(self, submission_id: str) -> None:
        with self._lock:
            if self._submissions.pop(submission_id, None) is None:
                raise NotFoundError("Submission", submission_id)

    def list_submissions(self, user_id: Optional[str] = None) -> list[Submission]:
        with self._lock:
            submissions: Iterable[Submission] = list(self._submissions.values())
        if user_id is not None:
            submissions = [s for s in submissions if s.user_id == user_id]
        return list(submissions)

    def count_submissions_by_department(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for submission in self._submissions.values():
            if submission.department_id:
                counts[submission.department_id] = (
                    counts.get(submission.department_id, 0) + 1
                )
        return counts
