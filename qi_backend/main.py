"""FastAPI application for quality indicator data entry -- REST endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from qi_backend.config.settings import Settings
from qi_backend.engine.errors import CalculationError, NotFoundError
from qi_backend.export.xlsx import CONTENT_TYPE, StatisticsXLSXExporter, export_filename
from qi_backend.mappings.loader import load_catalogue
from qi_backend.models.enums import SortOrder
from qi_backend.services.mappings import department_summaries, search_mappings
from qi_backend.services.statistics import (
    StatisticsFilters,
    filter_submissions,
    group_by_mapping,
    monthly_trend,
)
from qi_backend.services.submissions import SubmissionService
from qi_backend.store import InMemoryStore

settings = Settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Quality Indicator API", version="0.1.0")


@app.middleware("http")
async def unexpected_error_middleware(request: Request, call_next):
    """Log unhandled errors and answer with a 500 JSON error body.

    Registered before CORS so error responses still carry CORS headers.
    """
    try:
        return await call_next(request)
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
        )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-memory store seeded from the mapping catalogue (replaced by DB later)
app.state.store = InMemoryStore.from_catalogue(load_catalogue(settings.mappings_file))


class CalculationRequest(BaseModel):
    mapping_id: str
    numerator: Any = None
    denominator: Any = None
    variable_values: Optional[dict[str, Any]] = None


class SubmissionRequest(CalculationRequest):
    entry_date: date
    remarks: Optional[str] = None


class SubmissionUpdateRequest(BaseModel):
    mapping_id: Optional[str] = None
    numerator: Any = None
    denominator: Any = None
    variable_values: Optional[dict[str, Any]] = None
    entry_date: Optional[date] = None
    remarks: Optional[str] = None


def _store(request: Request) -> InMemoryStore:
    return request.app.state.store


def _service(request: Request) -> SubmissionService:
    return SubmissionService(_store(request))


def _require_user(user_id: Optional[str]) -> str:
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id.strip()


def _ok(data: Any, message: str = "", **extra: Any) -> dict[str, Any]:
    return {"success": True, "message": message, "data": data, **extra}


@app.exception_handler(CalculationError)
async def calculation_error_handler(request: Request, exc: CalculationError):
    return JSONResponse(status_code=400, content={"success": False, **exc.to_dict()})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": exc.code, "message": exc.message, "details": {}},
    )


@app.exception_handler(PermissionError)
async def permission_error_handler(request: Request, exc: PermissionError):
    return JSONResponse(
        status_code=403,
        content={"success": False, "error": "FORBIDDEN", "message": str(exc), "details": {}},
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/api/mappings")
async def list_mappings(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=settings.mappings_max_page_size),
    search: Optional[str] = None,
    only_active: bool = False,
):
    """List indicator mappings with optional search."""
    result = search_mappings(_store(request), page, limit, search, only_active)
    return _ok(
        [m.model_dump(mode="json") for m in result.items],
        pagination=result.pagination(),
    )


@app.get("/api/mappings/{mapping_id}")
async def get_mapping(mapping_id: str, request: Request):
    return _ok(_store(request).get_mapping(mapping_id).model_dump(mode="json"))


@app.get("/api/departments")
async def list_departments(request: Request):
    return _ok(department_summaries(_store(request)))


@app.post("/api/forms/calculation")
async def preview_calculation(body: CalculationRequest, request: Request):
    """Calculate the percentage and benchmark status without saving."""
    mapping, result = _service(request).preview(
        body.mapping_id, body.numerator, body.denominator, body.variable_values
    )
    department = _store(request).get_department(mapping.department_id)
    data = {
        **result.to_dict(),
        "viroc_id": mapping.viroc_id,
        "indicator_name": mapping.name,
        "numerator_field": mapping.numerator_field,
        "denominator_field": mapping.denominator_field,
        "custom_formula": mapping.custom_formula,
        "variable_descriptions": mapping.variable_descriptions,
        "patient_type": mapping.patient_type.value,
        "department": department.name if department else None,
    }
    return _ok(data, result.message)


@app.post("/api/forms/simple")
async def create_submission(
    body: SubmissionRequest,
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
):
    """Calculate and store a submission."""
    submission = _service(request).submit(
        user_id=_require_user(x_user_id),
        mapping_id=body.mapping_id,
        entry_date=body.entry_date,
        numerator=body.numerator,
        denominator=body.denominator,
        variable_values=body.variable_values,
        remarks=body.remarks,
    )
    return _ok(submission.to_dict(), "Form submitted successfully")


@app.put("/api/forms/simple/{submission_id}")
async def update_submission(
    submission_id: str,
    body: SubmissionUpdateRequest,
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
):
    submission = _service(request).update(
        _require_user(x_user_id),
        submission_id,
        body.model_dump(exclude_unset=True),
    )
    return _ok(submission.to_dict(), "Submission updated successfully")


@app.delete("/api/forms/{submission_id}")
async def delete_submission(
    submission_id: str,
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
):
    _service(request).delete(_require_user(x_user_id), submission_id)
    return {"success": True, "message": "Submission deleted successfully"}


@app.get("/api/forms/my-submissions")
async def my_submissions(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.submissions_max_page_size),
    sort_by: str = "created_at",
    sort_order: SortOrder = SortOrder.DESC,
    search: Optional[str] = None,
):
    """List the caller's submissions, newest first by default."""
    try:
        result = _service(request).list_for_user(
            _require_user(x_user_id), page, limit, sort_by, sort_order, search
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _ok(
        [s.to_dict() for s in result.items],
        pagination=result.pagination(),
    )


def _filtered(
    request: Request,
    user_id: str,
    filters: StatisticsFilters,
):
    submissions = _store(request).list_submissions(user_id=user_id)
    return filter_submissions(submissions, filters)


@app.get("/api/statistics")
async def statistics(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    year: Optional[int] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    department_id: Optional[str] = None,
    viroc_id: Optional[str] = None,
):
    """Per-indicator counts and average percentages."""
    filters = StatisticsFilters(year, month, department_id, viroc_id)
    submissions = _filtered(request, _require_user(x_user_id), filters)
    stats = group_by_mapping(submissions, _store(request))
    return _ok(
        [
            {
                "viroc_id": s.viroc_id,
                "indicator_name": s.indicator_name,
                "department": s.department,
                "count": s.count,
                "average_percentage": s.average_percentage,
                "submissions": [sub.to_dict() for sub in s.submissions],
            }
            for s in stats
        ]
    )


@app.get("/api/statistics/monthly")
async def statistics_monthly(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    year: Optional[int] = None,
    department_id: Optional[str] = None,
    viroc_id: Optional[str] = None,
):
    filters = StatisticsFilters(year, None, department_id, viroc_id)
    submissions = _filtered(request, _require_user(x_user_id), filters)
    return _ok([vars(m) for m in monthly_trend(submissions)])


@app.get("/api/statistics/export")
async def export_statistics(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    month_wise: bool = False,
    year: Optional[int] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    department_id: Optional[str] = None,
    viroc_id: Optional[str] = None,
):
    """Download statistics as an xlsx workbook."""
    filters = StatisticsFilters(year, month, department_id, viroc_id)
    submissions = _filtered(request, _require_user(x_user_id), filters)
    exporter = StatisticsXLSXExporter(_store(request), settings.export_max_column_width)
    content = exporter.export(submissions, month_wise)
    filename = export_filename(filters, month_wise)
    return Response(
        content=content,
        media_type=CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
