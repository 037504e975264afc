"""
Tests for booking endpoints: creation, the status lifecycle and listings.
"""

from datetime import datetime, timezone, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.models.booking import Booking
from conftest import attendee, booking_payload, make_event


async def _create(client: AsyncClient, headers: dict, event_id: int, extra: int = 0) -> dict:
    response = await client.post("/api/v1/bookings/", json=booking_payload(event_id, extra), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _set_status(client: AsyncClient, headers: dict, booking_id: int, status: str):
    return await client.put(
        f"/api/v1/bookings/{booking_id}/status", json={"status": status}, headers=headers
    )


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, auth_headers, test_event, test_user):
    """A new booking is pending, priced, and does not touch the attendee count."""
    data = await _create(client, auth_headers, test_event.id, extra=2)

    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert data["user_id"] == test_user.id
    assert data["total_attendees"] == 3
    assert data["booking_number"] == f"BK{data['id']:06d}"
    assert data["pricing"] == {
        "base_price": 1000.0,
        "discount": 0.0,
        "final_price": 3000.0,
        "currency": "LKR",
    }
    assert data["check_in_status"]["checked_in"] is False
    assert data["cancellation"] is None

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["current_attendees"] == 0


@pytest.mark.asyncio
async def test_create_booking_with_group_discount(client: AsyncClient, auth_headers, discount_event):
    data = await _create(client, auth_headers, discount_event.id, extra=2)
    assert data["pricing"]["discount"] == 150.0
    assert data["pricing"]["final_price"] == 1350.0


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, test_event):
    response = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id))
    assert response.status_code == 401
    assert response.json()["kind"] == "not_authenticated"


@pytest.mark.asyncio
async def test_book_nonexistent_event(client: AsyncClient, auth_headers, db_session):
    """Booking a missing event returns 404 and stores nothing."""
    response = await client.post("/api/v1/bookings/", json=booking_payload(99999), headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"

    count = (await db_session.execute(select(func.count(Booking.id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_book_full_event(client: AsyncClient, auth_headers, full_event):
    response = await client.post("/api/v1/bookings/", json=booking_payload(full_event.id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["kind"] == "event_full"


@pytest.mark.asyncio
async def test_book_cancelled_event(client: AsyncClient, auth_headers, test_event, db_session):
    test_event.status = "cancelled"
    await db_session.commit()

    response = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["kind"] == "registration_closed"


@pytest.mark.asyncio
async def test_book_past_event(client: AsyncClient, auth_headers, db_session, admin_user):
    past_event = await make_event(
        db_session,
        title="Last Month's Cleanup",
        date=datetime.now(timezone.utc) - timedelta(days=1),
        organizer_id=admin_user.id,
    )

    response = await client.post("/api/v1/bookings/", json=booking_payload(past_event.id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"detail": "This event has already passed", "kind": "event_passed"}


@pytest.mark.asyncio
async def test_book_after_registration_deadline(client: AsyncClient, auth_headers, test_event, db_session):
    test_event.registration_deadline = datetime.now(timezone.utc) - timedelta(hours=1)
    await db_session.commit()

    response = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id), headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"detail": "Registration is closed for this event", "kind": "registration_closed"}

    count = (await db_session.execute(select(func.count(Booking.id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_invalid_attendee_email(client: AsyncClient, auth_headers, test_event):
    payload = booking_payload(test_event.id)
    payload["attendee_details"]["email"] = "not-an-email"
    response = await client.post("/api/v1/bookings/", json=payload, headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["kind"] == "validation_error"


@pytest.mark.asyncio
async def test_confirm_and_cancel_scenario(
    client: AsyncClient, auth_headers, admin_headers, test_event
):
    """Confirming adds the group to the event; cancelling 30 days out refunds in full."""
    booking = await _create(client, auth_headers, test_event.id, extra=2)

    response = await _set_status(client, admin_headers, booking["id"], "confirmed")
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["current_attendees"] == 3
    assert event["available_spots"] == 97

    response = await client.put(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"reason": "Cannot attend"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancellation"]["refund_amount"] == 3000.0
    assert data["cancellation"]["refund_status"] == "pending"
    assert data["cancellation"]["reason"] == "Cannot attend"
    assert data["payment_status"] == "pending"

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["current_attendees"] == 0


@pytest.mark.asyncio
async def test_cancel_already_cancelled(client: AsyncClient, auth_headers, test_event):
    """Double-cancelling returns 409."""
    booking = await _create(client, auth_headers, test_event.id)
    await client.put(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)

    response = await client.put(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["kind"] == "already_cancelled"


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking(client: AsyncClient, auth_headers, other_headers, test_event):
    booking = await _create(client, auth_headers, test_event.id)
    response = await client.put(f"/api/v1/bookings/{booking['id']}/cancel", headers=other_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_when_event_disallows(client: AsyncClient, auth_headers, test_event, db_session):
    booking = await _create(client, auth_headers, test_event.id)
    test_event.allow_cancellation = False
    await db_session.commit()

    response = await client.put(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["kind"] == "cancellation_not_allowed"


@pytest.mark.asyncio
async def test_invalid_status_transition(client: AsyncClient, auth_headers, admin_headers, test_event):
    booking = await _create(client, auth_headers, test_event.id)

    response = await _set_status(client, admin_headers, booking["id"], "completed")
    assert response.status_code == 409
    assert response.json()["kind"] == "invalid_transition"


@pytest.mark.asyncio
async def test_status_update_requires_staff(client: AsyncClient, auth_headers, test_event):
    booking = await _create(client, auth_headers, test_event.id)
    response = await _set_status(client, auth_headers, booking["id"], "confirmed")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_confirm_beyond_capacity(
    client: AsyncClient, auth_headers, admin_headers, test_event, db_session
):
    """Two pending bookings that together overflow the event: the second confirmation is refused."""
    test_event.max_attendees = 4
    await db_session.commit()

    first = await _create(client, auth_headers, test_event.id, extra=2)
    second = await _create(client, auth_headers, test_event.id, extra=1)

    assert (await _set_status(client, admin_headers, first["id"], "confirmed")).status_code == 200
    response = await _set_status(client, admin_headers, second["id"], "confirmed")
    assert response.status_code == 409
    assert response.json()["kind"] == "capacity_exceeded"

    second_now = (await client.get(f"/api/v1/bookings/{second['id']}", headers=auth_headers)).json()
    assert second_now["status"] == "pending"
    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["current_attendees"] == 3


@pytest.mark.asyncio
async def test_price_snapshot_survives_event_price_change(
    client: AsyncClient, auth_headers, admin_headers, test_event
):
    booking = await _create(client, auth_headers, test_event.id, extra=2)

    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"price": 2500}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["price"] == 2500.0

    data = (await client.get(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)).json()
    assert data["pricing"]["base_price"] == 1000.0
    assert data["pricing"]["final_price"] == 3000.0


@pytest.mark.asyncio
async def test_check_in(client: AsyncClient, auth_headers, admin_headers, admin_user, test_event):
    booking = await _create(client, auth_headers, test_event.id)
    await _set_status(client, admin_headers, booking["id"], "confirmed")

    response = await client.put(f"/api/v1/bookings/{booking['id']}/checkin", headers=admin_headers)
    assert response.status_code == 200
    status = response.json()["check_in_status"]
    assert status["checked_in"] is True
    assert status["checked_in_by"] == admin_user.id
    assert status["checked_in_at"] is not None

    response = await client.put(f"/api/v1/bookings/{booking['id']}/checkin", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["kind"] == "already_checked_in"


@pytest.mark.asyncio
async def test_cancelled_booking_cannot_check_in(client: AsyncClient, auth_headers, admin_headers, test_event):
    booking = await _create(client, auth_headers, test_event.id)
    await client.put(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)

    response = await client.put(f"/api/v1/bookings/{booking['id']}/checkin", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["kind"] == "state_conflict"

    data = (await client.get(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)).json()
    assert data["check_in_status"]["checked_in"] is False


@pytest.mark.asyncio
async def test_check_in_by_attendee_is_forbidden(client: AsyncClient, auth_headers, test_event):
    booking = await _create(client, auth_headers, test_event.id)
    response = await client.put(f"/api/v1/bookings/{booking['id']}/checkin", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_delete_confirmed_booking_releases_seats(
    client: AsyncClient, auth_headers, admin_headers, test_event
):
    booking = await _create(client, auth_headers, test_event.id, extra=1)
    await _set_status(client, admin_headers, booking["id"], "confirmed")

    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Booking deleted successfully", "booking_id": booking["id"]}

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    assert event["current_attendees"] == 0
    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_payment_update_settles_refund(
    client: AsyncClient, auth_headers, admin_headers, test_event
):
    booking = await _create(client, auth_headers, test_event.id)
    await client.put(f"/api/v1/bookings/{booking['id']}/cancel", headers=auth_headers)

    response = await client.put(
        f"/api/v1/bookings/{booking['id']}/payment",
        json={"payment_status": "refunded"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["payment_status"] == "refunded"
    assert data["cancellation"]["refund_status"] == "processed"
    assert data["cancellation"]["refund_processed_at"] is not None


@pytest.mark.asyncio
async def test_list_user_bookings(client: AsyncClient, auth_headers, other_headers, admin_headers, test_event):
    """Users see only their own bookings; staff see all of them."""
    await _create(client, auth_headers, test_event.id)
    await _create(client, auth_headers, test_event.id)
    await _create(client, other_headers, test_event.id)

    response = await client.get("/api/v1/bookings/", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data["bookings"]) == 2
    assert data["pagination"]["total_items"] == 2

    response = await client.get("/api/v1/bookings/?limit=2", headers=admin_headers)
    data = response.json()
    assert len(data["bookings"]) == 2
    assert data["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_items": 3,
        "has_next": True,
        "has_prev": False,
    }


@pytest.mark.asyncio
async def test_list_bookings_filter_by_status(client: AsyncClient, auth_headers, test_event):
    first = await _create(client, auth_headers, test_event.id)
    await _create(client, auth_headers, test_event.id)
    await client.put(f"/api/v1/bookings/{first['id']}/cancel", headers=auth_headers)

    response = await client.get("/api/v1/bookings/?status=cancelled", headers=auth_headers)
    bookings = response.json()["bookings"]
    assert [b["id"] for b in bookings] == [first["id"]]


@pytest.mark.asyncio
async def test_list_bookings_bad_status(client: AsyncClient, auth_headers):
    response = await client.get("/api/v1/bookings/?status=bogus", headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_attendee_names_are_normalized(client: AsyncClient, auth_headers, test_event):
    payload = booking_payload(test_event.id)
    payload["attendee_details"] = attendee("  Kamal ", "KAMAL@Example.com")
    response = await client.post("/api/v1/bookings/", json=payload, headers=auth_headers)
    assert response.status_code == 201
    details = response.json()["attendee_details"]
    assert details["first_name"] == "Kamal"
    assert details["email"] == "kamal@example.com"


@pytest.mark.asyncio
async def test_free_event_booking_is_paid(client: AsyncClient, auth_headers, test_event, db_session):
    test_event.price = Decimal("0")
    await db_session.commit()

    data = await _create(client, auth_headers, test_event.id)
    assert data["payment_status"] == "paid"
    assert data["pricing"]["final_price"] == 0.0
    assert data["payment_method"] == "free"
    assert data["payment_details"]["paid_at"] is not None
    assert data["payment_details"]["amount"] == 0.0


@pytest.mark.asyncio
async def test_payment_details_recorded_when_paid(
    client: AsyncClient, auth_headers, admin_headers, test_event
):
    booking = await _create(client, auth_headers, test_event.id)
    assert booking["payment_method"] is None
    assert booking["payment_details"] == {
        "transaction_id": None,
        "payment_gateway": None,
        "paid_at": None,
        "amount": None,
    }

    response = await client.put(
        f"/api/v1/bookings/{booking['id']}/payment",
        json={
            "payment_status": "paid",
            "payment_method": "card",
            "transaction_id": " TX-1001 ",
            "payment_gateway": "payhere",
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["payment_status"] == "paid"
    assert data["payment_method"] == "card"
    details = data["payment_details"]
    assert details["transaction_id"] == "TX-1001"
    assert details["payment_gateway"] == "payhere"
    assert details["amount"] == 1000.0
    paid_at = details["paid_at"]
    assert paid_at is not None

    # A repeated notification keeps the original payment time
    response = await client.put(
        f"/api/v1/bookings/{booking['id']}/payment",
        json={"payment_status": "paid"},
        headers=admin_headers,
    )
    assert response.json()["payment_details"]["paid_at"] == paid_at


@pytest.mark.asyncio
async def test_payment_unknown_method(client: AsyncClient, auth_headers, admin_headers, test_event):
    booking = await _create(client, auth_headers, test_event.id)
    response = await client.put(
        f"/api/v1/bookings/{booking['id']}/payment",
        json={"payment_status": "paid", "payment_method": "cheque"},
        headers=admin_headers,
    )
    assert response.status_code == 422
