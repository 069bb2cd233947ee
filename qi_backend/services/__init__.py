from .statistics import StatisticsFilters
from .submissions import SubmissionService

__all__ = ["StatisticsFilters", "SubmissionService"]
