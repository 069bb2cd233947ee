"""Submission statistics: filtering, per-indicator averages, monthly trend."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from qi_backend.models.submission import Submission
from qi_backend.store import InMemoryStore


@dataclass(frozen=True)
class StatisticsFilters:
    year: Optional[int] = None
    month: Optional[int] = None
    department_id: Optional[str] = None
    viroc_id: Optional[str] = None

    def matches(self, submission: Submission) -> bool:
        if self.year is not None and submission.entry_date.year != self.year:
            return False
        if self.month is not None and submission.entry_date.month != self.month:
            return False
        if self.department_id is not None and submission.department_id != self.department_id:
            return False
        if self.viroc_id is not None and submission.viroc_id != self.viroc_id:
            return False
        return True


@dataclass
class MappingStatistics:
    viroc_id: str
    indicator_name: str
    department: str
    count: int
    average_percentage: Optional[float]
    submissions: list[Submission] = field(default_factory=list)


@dataclass(frozen=True)
class MonthlyData:
    year: int
    month: int
    viroc_id: str
    average_percentage: Optional[float]
    count: int


def filter_submissions(
    submissions: Iterable[Submission], filters: StatisticsFilters
) -> list[Submission]:
    return [s for s in submissions if filters.matches(s)]


def average_percentage(submissions: Iterable[Submission]) -> Optional[float]:
    """Mean of the known percentages, rounded to 2 dp for display.

    Submissions whose percentage could not be determined are left out.
    Returns None when none are known.
    """
    values = [s.percentage for s in submissions if s.percentage is not None]
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def group_by_mapping(
    submissions: Iterable[Submission], store: InMemoryStore
) -> list[MappingStatistics]:
    grouped: dict[str, list[Submission]] = defaultdict(list)
    for submission in submissions:
        grouped[submission.viroc_id].append(submission)

    statistics: list[MappingStatistics] = []
    for viroc_id, subs in grouped.items():
        department = store.get_department(subs[0].department_id)
        statistics.append(
            MappingStatistics(
                viroc_id=viroc_id,
                indicator_name=subs[0].indicator_name,
                department=department.name if department else "",
                count=len(subs),
                average_percentage=average_percentage(subs),
                submissions=subs,
            )
        )
    return sorted(statistics, key=lambda s: s.viroc_id)


def monthly_trend(submissions: Iterable[Submission]) -> list[MonthlyData]:
    grouped: dict[tuple[int, int, str], list[Submission]] = defaultdict(list)
    for submission in submissions:
        key = (submission.entry_date.year, submission.entry_date.month, submission.viroc_id)
        grouped[key].append(submission)

    return [
        MonthlyData(
            year=year,
            month=month,
            viroc_id=viroc_id,
            average_percentage=average_percentage(subs),
            count=len(subs),
        )
        for (year, month, viroc_id), subs in sorted(grouped.items())
    ]
