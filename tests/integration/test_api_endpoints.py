"""API endpoint integration tests.

Drives the FastAPI app end to end over SQLite: measurement, review,
adjustments, disbursement and payroll rebuilds.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

EMPLOYEE_ID = "emp-001"
PERIOD = "2025-03"
PAYROLL_URL = f"/api/v1/employees/{EMPLOYEE_ID}/periods/{PERIOD}/payroll"


async def submit_work(
    client: AsyncClient,
    meters_square: str = "85.5",
    meters_linear: str = "0",
    rate_m2: str = "18",
    rate_mb: str = "0",
    employee_id: str = EMPLOYEE_ID,
) -> dict:
    response = await client.post(
        "/api/v1/work-records",
        json={
            "employee_id": employee_id,
            "period": PERIOD,
            "location_ref": "block-a/unit-4",
            "work_unit": {
                "task_type": "tiling",
                "rate_per_square_meter": rate_m2,
                "rate_per_linear_meter": rate_mb,
            },
            "meters_square": meters_square,
            "meters_linear": meters_linear,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


async def submit_review(client: AsyncClient, work_record_id: str, **payload) -> dict:
    body = {"reviewer_id": "coord-7", "approval_percent": "100", "review_date": "2025-03-20"}
    body.update(payload)
    return await client.post(f"/api/v1/work-records/{work_record_id}/reviews", json=body)


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestWorkRecordEndpoints:
    async def test_create_work_record(self, client: AsyncClient):
        data = await submit_work(client)

        assert data["employee_id"] == EMPLOYEE_ID
        assert Decimal(data["estimated_amount"]) == Decimal("1539.00")
        assert data["superseded"] is False

    async def test_get_work_record(self, client: AsyncClient):
        created = await submit_work(client)

        response = await client.get(f"/api/v1/work-records/{created['work_record_id']}")

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["meters_square"]) == Decimal("85.5")
        assert data["work_unit"]["task_type"] == "tiling"

    async def test_get_unknown_work_record(self, client: AsyncClient):
        response = await client.get(f"/api/v1/work-records/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["code"] == "WorkRecordNotFoundError"

    async def test_negative_measurement(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/work-records",
            json={
                "employee_id": EMPLOYEE_ID,
                "period": PERIOD,
                "location_ref": "hall",
                "work_unit": {"task_type": "tiling", "rate_per_square_meter": "18"},
                "meters_square": "-3",
            },
        )

        assert response.status_code == 422
        assert response.json()["code"] == "InvalidMeasurementError"

    async def test_malformed_period(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/work-records",
            json={
                "employee_id": EMPLOYEE_ID,
                "period": "2025-13",
                "location_ref": "hall",
                "work_unit": {"task_type": "tiling", "rate_per_square_meter": "18"},
                "meters_square": "3",
            },
        )

        assert response.status_code == 422

    async def test_correction_supersedes(self, client: AsyncClient):
        original = await submit_work(client, meters_square="10")

        response = await client.post(
            f"/api/v1/work-records/{original['work_record_id']}/corrections",
            json={"meters_square": "9.5"},
        )
        assert response.status_code == 201, response.text
        corrected = response.json()
        assert corrected["supersedes"] == original["work_record_id"]
        assert Decimal(corrected["estimated_amount"]) == Decimal("171.00")

        old = (await client.get(f"/api/v1/work-records/{original['work_record_id']}")).json()
        assert old["superseded"] is True
        assert old["superseded_by"] == corrected["work_record_id"]

        again = await client.post(
            f"/api/v1/work-records/{original['work_record_id']}/corrections",
            json={"meters_square": "9"},
        )
        assert again.status_code == 409
        assert again.json()["code"] == "RecordSupersededError"


class TestReviewEndpoints:
    async def test_full_approval(self, client: AsyncClient):
        record = await submit_work(client)

        response = await submit_review(client, record["work_record_id"])

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["status"] == "approved"
        assert data["version"] == 1
        assert Decimal(data["approved_amount"]) == Decimal("1539.00")
        assert Decimal(data["pending_amount"]) == Decimal("0")
        assert data["measurement_verified"] is False

    async def test_partial_approval_requires_deadline(self, client: AsyncClient):
        record = await submit_work(client)

        response = await submit_review(
            client,
            record["work_record_id"],
            approval_percent="80",
            corrections_needed="regrout",
        )

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "ValidationError"
        assert data["field"] == "revision_deadline"

    async def test_measurement_dispute(self, client: AsyncClient):
        record = await submit_work(client, meters_square="10")

        response = await submit_review(client, record["work_record_id"], meters_verified="11")

        assert response.status_code == 409
        assert response.json()["code"] == "MeasurementDisputeError"

    async def test_stale_review(self, client: AsyncClient):
        record = await submit_work(client)
        first = await submit_review(client, record["work_record_id"])
        assert first.status_code == 201

        stale = await submit_review(client, record["work_record_id"], reviewer_id="coord-9")

        assert stale.status_code == 409
        assert stale.json()["code"] == "StaleReviewError"

    async def test_re_review_and_history(self, client: AsyncClient):
        record = await submit_work(client)
        first = (await submit_review(client, record["work_record_id"])).json()

        second = await submit_review(
            client,
            record["work_record_id"],
            approval_percent="60",
            corrections_needed="grout lines uneven",
            revision_deadline="2025-03-31",
            supersedes_review_id=first["review_id"],
        )
        assert second.status_code == 201, second.text

        response = await client.get(f"/api/v1/work-records/{record['work_record_id']}/reviews")
        history = response.json()
        assert [r["version"] for r in history] == [1, 2]
        assert history[1]["supersedes_review_id"] == first["review_id"]


class TestPayrollEndpoints:
    async def test_payroll_record(self, client: AsyncClient):
        first = await submit_work(client, meters_square="85.5")
        second = await submit_work(
            client, meters_square="92", meters_linear="24.5", rate_mb="15"
        )
        await submit_review(client, first["work_record_id"])
        await submit_review(
            client,
            second["work_record_id"],
            approval_percent="80",
            corrections_needed="finish skirting",
            revision_deadline="2025-03-31",
        )
        bonus = await client.post(
            f"/api/v1/employees/{EMPLOYEE_ID}/periods/{PERIOD}/bonuses",
            json={"type": "quality", "amount": "300", "description": "Zero defects"},
        )
        deduction = await client.post(
            f"/api/v1/employees/{EMPLOYEE_ID}/periods/{PERIOD}/deductions",
            json={"type": "advance", "amount": "1000"},
        )
        assert bonus.status_code == 201, bonus.text
        assert deduction.status_code == 201, deduction.text

        response = await client.get(PAYROLL_URL)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "processing"
        assert Decimal(data["total_approved"]) == Decimal("3157.80")
        assert Decimal(data["total_pending"]) == Decimal("404.70")
        assert Decimal(data["total_gross"]) == Decimal("2457.80")
        assert data["total_net"] is None
        assert Decimal(data["quality_score"]) == Decimal("90")
        assert len(data["work_items"]) == 2
        assert len(data["fingerprint"]) == 32
        assert data["bonuses"][0]["type"] == "quality"

    async def test_rebuild_is_stable(self, client: AsyncClient):
        await submit_work(client)

        first = (await client.get(PAYROLL_URL)).json()
        second = (await client.get(PAYROLL_URL)).json()

        assert first["fingerprint"] == second["fingerprint"]
        assert first["status"] == "pending"

    async def test_negative_adjustment_rejected(self, client: AsyncClient):
        response = await client.post(
            f"/api/v1/employees/{EMPLOYEE_ID}/periods/{PERIOD}/bonuses",
            json={"type": "quality", "amount": "-5"},
        )

        assert response.status_code == 422
        assert response.json()["field"] == "amount"

    async def test_disbursement_marks_paid(self, client: AsyncClient):
        record = await submit_work(client)
        review = (await submit_review(client, record["work_record_id"])).json()

        response = await client.post(f"/api/v1/reviews/{review['review_id']}/disbursement")
        assert response.status_code == 200, response.text

        data = (await client.get(PAYROLL_URL)).json()
        assert data["status"] == "paid"
        assert data["work_items"][0]["disbursed"] is True

    async def test_disbursing_unknown_review(self, client: AsyncClient):
        response = await client.post(f"/api/v1/reviews/{uuid4()}/disbursement")

        assert response.status_code == 404
        assert response.json()["code"] == "ReviewNotFoundError"

    async def test_disbursing_superseded_review(self, client: AsyncClient):
        record = await submit_work(client)
        first = (await submit_review(client, record["work_record_id"])).json()
        second = await submit_review(
            client,
            record["work_record_id"],
            approval_percent="90",
            corrections_needed="regrout",
            revision_deadline="2025-03-31",
            supersedes_review_id=first["review_id"],
        )
        assert second.status_code == 201, second.text

        response = await client.post(f"/api/v1/reviews/{first['review_id']}/disbursement")

        assert response.status_code == 422
        assert response.json()["code"] == "ValidationError"
        assert response.json()["field"] == "review_id"

    async def test_payroll_run(self, client: AsyncClient):
        record = await submit_work(client)
        await submit_work(client, meters_square="5", employee_id="emp-002")
        await submit_review(client, record["work_record_id"])

        response = await client.post(f"/api/v1/periods/{PERIOD}/payroll-runs")

        assert response.status_code == 200, response.text
        data = response.json()
        assert [r["employee_id"] for r in data["records"]] == ["emp-001", "emp-002"]
        assert data["failures"] == []
        assert data["summary"]["employee_count"] == 2
        assert Decimal(data["summary"]["total_payroll"]) == Decimal("1539.00")
        assert data["summary"]["processing_count"] == 1
        assert data["summary"]["pending_count"] == 1

    async def test_payroll_run_for_selected_employees(self, client: AsyncClient):
        await submit_work(client)
        await submit_work(client, meters_square="5", employee_id="emp-002")

        response = await client.post(
            f"/api/v1/periods/{PERIOD}/payroll-runs", json={"employee_ids": ["emp-002"]}
        )

        assert [r["employee_id"] for r in response.json()["records"]] == ["emp-002"]

    async def test_invalid_period(self, client: AsyncClient):
        response = await client.get(f"/api/v1/employees/{EMPLOYEE_ID}/periods/2025-13/payroll")

        assert response.status_code == 422
