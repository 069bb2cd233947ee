from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from .enums import BenchmarkStatus, SubmissionStatus


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class Submission:
    """A persisted pairing of raw inputs with their computed result."""

    mapping_id: str
    viroc_id: str
    indicator_name: str
    user_id: str
    entry_date: date
    percentage: Optional[float]
    benchmark_status: BenchmarkStatus
    department_id: Optional[str] = None
    numerator: Optional[float] = None
    denominator: Optional[float] = None
    custom_values: Optional[dict[str, float]] = None
    remarks: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    submitted_at: Optional[datetime] = None

    @property
    def entry_month(self) -> int:
        return self.entry_date.month

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mapping_id": self.mapping_id,
            "viroc_id": self.viroc_id,
            "indicator_name": self.indicator_name,
            "department_id": self.department_id,
            "user_id": self.user_id,
            "numerator": self.numerator,
            "denominator": self.denominator,
            "custom_values": self.custom_values,
            "percentage": self.percentage,
            "benchmark_status": self.benchmark_status.value,
            "remarks": self.remarks,
            "entry_date": self.entry_date.isoformat(),
            "entry_month": self.entry_month,
            "status": self.status.value,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
