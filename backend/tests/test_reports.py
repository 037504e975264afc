"""
Tests for the staff dashboard reports.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient

from conftest import booking_payload


async def _confirmed_and_cancelled(client: AsyncClient, user_headers: dict, admin_headers: dict, event_id: int):
    ids = []
    for extra in (2, 0):
        response = await client.post("/api/v1/bookings/", json=booking_payload(event_id, extra), headers=user_headers)
        ids.append(response.json()["id"])
    await client.put(f"/api/v1/bookings/{ids[0]}/status", json={"status": "confirmed"}, headers=admin_headers)
    await client.put(f"/api/v1/bookings/{ids[1]}/cancel", headers=user_headers)
    return ids


@pytest.mark.asyncio
async def test_event_booking_stats(client: AsyncClient, auth_headers, admin_headers, test_event):
    await _confirmed_and_cancelled(client, auth_headers, admin_headers, test_event.id)

    response = await client.get(f"/api/v1/reports/bookings/events/{test_event.id}", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_bookings"] == 2
    assert data["total_revenue"] == 3000.0
    by_status = {row["status"]: row for row in data["by_status"]}
    assert by_status["confirmed"]["count"] == 1
    assert by_status["cancelled"]["total_revenue"] == 1000.0


@pytest.mark.asyncio
async def test_booking_overview(client: AsyncClient, auth_headers, admin_headers, test_event):
    await _confirmed_and_cancelled(client, auth_headers, admin_headers, test_event.id)

    response = await client.get("/api/v1/reports/bookings/overview", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_bookings"] == 2
    assert data["confirmed_bookings"] == 1
    assert data["cancelled_bookings"] == 1
    assert data["pending_bookings"] == 0
    assert data["by_status"]["no-show"] == 0
    assert data["total_revenue"] == 3000.0
    assert data["average_booking_value"] == 3000.0


@pytest.mark.asyncio
async def test_revenue_by_date_range(client: AsyncClient, auth_headers, admin_headers, test_event):
    await _confirmed_and_cancelled(client, auth_headers, admin_headers, test_event.id)
    now = datetime.now(timezone.utc)

    response = await client.get(
        "/api/v1/reports/revenue",
        params={"start": (now - timedelta(days=1)).isoformat(), "end": (now + timedelta(days=1)).isoformat()},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_revenue"] == 3000.0
    assert data["total_bookings"] == 1

    response = await client.get(
        "/api/v1/reports/revenue",
        params={"start": now.isoformat(), "end": (now - timedelta(days=1)).isoformat()},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reports_require_staff(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/reports/bookings/overview", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"
