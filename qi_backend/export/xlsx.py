"""
Excel XLSX export of submission statistics.

Two layouts:
- month-wise: one row per indicator with its average percentage
- yearly: one row per submission
"""

from __future__ import annotations

import io
import logging
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from qi_backend.models.submission import Submission
from qi_backend.services.statistics import StatisticsFilters, group_by_mapping
from qi_backend.store import InMemoryStore

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MONTHLY_HEADERS = [
    "VIROC ID",
    "Indicator Name",
    "Department",
    "Number of Submissions",
    "Average Percentage",
]
YEARLY_HEADERS = [
    "VIROC ID",
    "Indicator Name",
    "Department",
    "Entry Date",
    "Numerator",
    "Denominator",
    "Percentage",
    "Status",
    "Remarks",
]

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")


def _percent(value: Optional[float]) -> str:
    return f"{round(value, 2)}%" if value is not None else "N/A"


def export_filename(filters: StatisticsFilters, month_wise: bool) -> str:
    if month_wise:
        return f"statistics_monthly_{filters.year or 'all'}_{filters.month or 'all'}.xlsx"
    return f"statistics_yearly_{filters.year or 'all'}.xlsx"


class StatisticsXLSXExporter:
    """Builds the statistics workbook as bytes."""

    def __init__(self, store: InMemoryStore, max_column_width: int = 50) -> None:
        self.store = store
        self.max_column_width = max_column_width

    def export(self, submissions: list[Submission], month_wise: bool) -> bytes:
        """
        Render submissions into a single "Statistics" worksheet.

        Args:
            submissions: Already-filtered submissions
            month_wise: Aggregate per indicator instead of one row each

        Returns:
            XLSX file as bytes
        """
        if month_wise:
            headers, rows = MONTHLY_HEADERS, self._monthly_rows(submissions)
        else:
            headers, rows = YEARLY_HEADERS, self._yearly_rows(submissions)

        logger.info(f"Exporting {len(rows)} statistics rows as XLSX")

        wb = Workbook()
        ws = wb.active
        ws.title = "Statistics"

        ws.append(headers)
        for cell in ws[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
        for row in rows:
            ws.append(row)
        ws.freeze_panes = "A2"

        self._auto_size_columns(ws, headers, rows)

        output = io.BytesIO()
        wb.save(output)
        output.seek(0)
        return output.read()

    def _monthly_rows(self, submissions: list[Submission]) -> list[list[Any]]:
        return [
            [
                stat.viroc_id,
                stat.indicator_name,
                stat.department,
                stat.count,
                _percent(stat.average_percentage),
            ]
            for stat in group_by_mapping(submissions, self.store)
        ]

    def _yearly_rows(self, submissions: list[Submission]) -> list[list[Any]]:
        rows = []
        for s in submissions:
            department = self.store.get_department(s.department_id)
            rows.append(
                [
                    s.viroc_id,
                    s.indicator_name,
                    department.name if department else "",
                    s.entry_date.isoformat(),
                    s.numerator,
                    s.denominator,
                    _percent(s.percentage),
                    s.benchmark_status.value,
                    s.remarks or "",
                ]
            )
        return rows

    def _auto_size_columns(self, ws, headers: list[str], rows: list[list[Any]]) -> None:
        for index, header in enumerate(headers):
            longest = max(
                [len(header)]
                + [len(str(row[index])) for row in rows if row[index] is not None]
            )
            width = min(longest + 2, self.max_column_width)
            ws.column_dimensions[get_column_letter(index + 1)].width = width
