"""Tests for FastAPI endpoints -- preview, submissions, statistics, export, CORS, health."""

import io

import pytest
from httpx import ASGITransport, AsyncClient
from openpyxl import load_workbook

from qi_backend.main import app
from qi_backend.mappings.loader import get_default_catalogue
from qi_backend.store import InMemoryStore

USER = {"X-User-Id": "user-1"}


@pytest.fixture(autouse=True)
def fresh_store():
    """Each test gets its own store seeded from the default catalogue."""
    app.state.store = InMemoryStore.from_catalogue(get_default_catalogue())
    yield app.state.store


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _submit(client, **overrides):
    body = {
        "mapping_id": "QI-01",
        "numerator": 95,
        "denominator": 100,
        "entry_date": "2025-03-15",
    }
    body.update(overrides)
    return await client.post("/api/forms/simple", json=body, headers=USER)


class TestMappingsAPI:
    @pytest.mark.asyncio
    async def test_list_only_active(self):
        async with _client() as client:
            resp = await client.get("/api/mappings", params={"only_active": "true"})
        assert resp.status_code == 200
        body = resp.json()
        viroc_ids = [m["viroc_id"] for m in body["data"]]
        assert "QI-06" not in viroc_ids
        assert body["pagination"]["total"] == len(viroc_ids)

    @pytest.mark.asyncio
    async def test_search(self):
        async with _client() as client:
            resp = await client.get("/api/mappings", params={"search": "blood"})
        assert [m["viroc_id"] for m in resp.json()["data"]] == ["QI-04"]

    @pytest.mark.asyncio
    async def test_get_unknown_mapping_is_404(self):
        async with _client() as client:
            resp = await client.get("/api/mappings/QI-404")
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_departments_with_counts(self):
        async with _client() as client:
            await _submit(client)
            resp = await client.get("/api/departments")
        counts = {d["id"]: d["submission_count"] for d in resp.json()["data"]}
        assert counts["dept-nursing"] == 1
        assert counts["dept-laboratory"] == 0


class TestCalculationAPI:
    @pytest.mark.asyncio
    async def test_preview_compliant(self):
        async with _client() as client:
            resp = await client.post(
                "/api/forms/calculation",
                json={"mapping_id": "QI-01", "numerator": 95, "denominator": 100},
            )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["calculated_percentage"] == pytest.approx(95.0)
        assert data["benchmark_status"] == "COMPLIANT"
        assert data["department"] == "Nursing"
        assert data["non_compliant_benchmark"] == 90

    @pytest.mark.asyncio
    async def test_preview_custom(self):
        async with _client() as client:
            resp = await client.post(
                "/api/forms/calculation",
                json={"mapping_id": "QI-04", "variable_values": {"A": 50, "B": 10, "C": 2}},
            )
        data = resp.json()["data"]
        assert data["calculated_percentage"] == pytest.approx(1000.0)
        assert data["variable_descriptions"]["C"] == "Component conversion factor"

    @pytest.mark.asyncio
    async def test_division_by_zero_is_400(self):
        async with _client() as client:
            resp = await client.post(
                "/api/forms/calculation",
                json={"mapping_id": "QI-01", "numerator": 5, "denominator": 0},
            )
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "DIVISION_BY_ZERO"

    @pytest.mark.asyncio
    async def test_missing_variables_listed(self):
        async with _client() as client:
            resp = await client.post(
                "/api/forms/calculation",
                json={"mapping_id": "QI-04", "variable_values": {"B": 10}},
            )
        assert resp.status_code == 400
        assert resp.json()["details"]["variables"] == ["A", "C"]

    @pytest.mark.asyncio
    async def test_non_numeric_input_is_400(self):
        async with _client() as client:
            resp = await client.post(
                "/api/forms/calculation",
                json={"mapping_id": "QI-01", "numerator": "lots", "denominator": 100},
            )
        assert resp.status_code == 400
        assert resp.json()["details"]["fields"] == ["numerator"]

    @pytest.mark.asyncio
    async def test_oversized_integer_input_is_400(self):
        async with _client() as client:
            standard = await client.post(
                "/api/forms/calculation",
                json={"mapping_id": "QI-01", "numerator": 10**400, "denominator": 100},
            )
            custom = await client.post(
                "/api/forms/calculation",
                json={"mapping_id": "QI-04", "variable_values": {"A": 10**400, "B": 10, "C": 2}},
            )
        assert standard.status_code == 400
        assert standard.json()["error"] == "INVALID_INPUT"
        assert custom.status_code == 400
        assert custom.json()["details"]["variables"] == ["A"]


class TestSubmissionsAPI:
    @pytest.mark.asyncio
    async def test_submit_and_list(self):
        async with _client() as client:
            created = await _submit(client)
            listed = await client.get("/api/forms/my-submissions", headers=USER)
        assert created.status_code == 200
        assert created.json()["data"]["benchmark_status"] == "COMPLIANT"
        body = listed.json()
        assert len(body["data"]) == 1
        assert body["pagination"]["total_pages"] == 1

    @pytest.mark.asyncio
    async def test_missing_user_header_is_401(self):
        async with _client() as client:
            resp = await client.post(
                "/api/forms/simple",
                json={"mapping_id": "QI-01", "numerator": 1, "denominator": 1, "entry_date": "2025-01-01"},
            )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_non_compliant_requires_remarks(self):
        async with _client() as client:
            resp = await _submit(client, numerator=50)
        assert resp.status_code == 400
        assert resp.json()["error"] == "REMARKS_REQUIRED"

    @pytest.mark.asyncio
    async def test_update_and_delete(self):
        async with _client() as client:
            created = await _submit(client)
            submission_id = created.json()["data"]["id"]
            updated = await client.put(
                f"/api/forms/simple/{submission_id}",
                json={"numerator": 97},
                headers=USER,
            )
            forbidden = await client.delete(
                f"/api/forms/{submission_id}", headers={"X-User-Id": "user-2"}
            )
            deleted = await client.delete(f"/api/forms/{submission_id}", headers=USER)
            missing = await client.delete(f"/api/forms/{submission_id}", headers=USER)
        assert updated.json()["data"]["percentage"] == pytest.approx(97.0)
        assert forbidden.status_code == 403
        assert deleted.status_code == 200
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_sort_is_400(self):
        async with _client() as client:
            resp = await client.get(
                "/api/forms/my-submissions", params={"sort_by": "password"}, headers=USER
            )
        assert resp.status_code == 400


class TestStatisticsAPI:
    @pytest.mark.asyncio
    async def test_grouped_statistics(self):
        async with _client() as client:
            await _submit(client, numerator=95)
            await _submit(client, numerator=100)
            await _submit(client, mapping_id="QI-05", numerator=1, denominator=3, entry_date="2024-05-01")
            resp = await client.get("/api/statistics", params={"year": 2025}, headers=USER)
        data = resp.json()["data"]
        assert [s["viroc_id"] for s in data] == ["QI-01"]
        assert data[0]["average_percentage"] == 97.5
        assert data[0]["count"] == 2

    @pytest.mark.asyncio
    async def test_monthly_statistics(self):
        async with _client() as client:
            await _submit(client, entry_date="2025-01-10")
            await _submit(client, entry_date="2025-02-10", numerator=91)
            resp = await client.get("/api/statistics/monthly", headers=USER)
        data = resp.json()["data"]
        assert [(d["year"], d["month"]) for d in data] == [(2025, 1), (2025, 2)]

    @pytest.mark.asyncio
    async def test_export_xlsx(self):
        async with _client() as client:
            await _submit(client)
            resp = await client.get(
                "/api/statistics/export",
                params={"month_wise": "true", "year": 2025, "month": 3},
                headers=USER,
            )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "statistics_monthly_2025_3.xlsx" in resp.headers["content-disposition"]
        ws = load_workbook(io.BytesIO(resp.content)).active
        assert ws["A2"].value == "QI-01"


class TestPlatformAPI:
    @pytest.mark.asyncio
    async def test_cors_allows_localhost_3000(self):
        """OPTIONS request with Origin: http://localhost:3000 is allowed."""
        async with _client() as client:
            resp = await client.options(
                "/api/forms/calculation",
                headers={
                    "Origin": "http://localhost:3000",
                    "Access-Control-Request-Method": "POST",
                },
            )
        assert resp.headers.get("access-control-allow-origin") == "http://localhost:3000"

    @pytest.mark.asyncio
    async def test_health_check_endpoint(self):
        """GET /health returns 200 with status ok."""
        async with _client() as client:
            resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_500_body(self, fresh_store, monkeypatch):
        """An unhandled error becomes a 500 JSON body instead of escaping the app."""

        def broken(key):
            raise RuntimeError("store offline")

        monkeypatch.setattr(fresh_store, "get_mapping", broken)
        async with _client() as client:
            resp = await client.get("/api/mappings/QI-01")
        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": "INTERNAL_ERROR",
            "message": "Internal server error",
            "details": {},
        }
