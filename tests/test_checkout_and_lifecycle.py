"""
Checkout and Booking Lifecycle Tests.

Exercises the HTTP surface end to end against an in-memory database.
"""

import uuid

from sqlalchemy import select

from carhire.models.admin import AuditLog

CHECKOUT = "/api/v1/checkout"
BOOKINGS = "/api/v1/bookings"


def _request(listing, start="2024-03-01", end="2024-03-04", **extra) -> dict:
    return {"listing_id": str(listing.id), "start_date": start, "end_date": end, **extra}


async def _manual(client, headers, listing, **kwargs):
    response = await client.post(f"{CHECKOUT}/manual", json=_request(listing, **kwargs), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["booking"]


async def test_scenario_overlap_then_payment_blocks(client, auth_headers, renter, other_renter, listing):
    first = await _manual(client, auth_headers(renter), listing)
    assert first["total_amount"] == 1_500_000
    assert first["status"] == "awaiting_payment"
    assert first["booking_number"].startswith("CAR-")

    second = await _manual(
        client, auth_headers(other_renter), listing, start="2024-03-03", end="2024-03-05"
    )
    assert second["status"] == "awaiting_payment"

    proof = await client.post(
        f"{BOOKINGS}/{first['id']}/payment-proof",
        json={"proof_reference": "EFT-20240301"},
        headers=auth_headers(renter),
    )
    assert proof.status_code == 200
    assert proof.json()["status"] == "awaiting_approval"
    assert proof.json()["paid_at"] is not None

    retry = await client.post(
        f"{CHECKOUT}/manual",
        json=_request(listing, start="2024-03-03", end="2024-03-05"),
        headers=auth_headers(other_renter),
    )
    assert retry.status_code == 409
    assert "no longer available" in retry.json()["detail"]

    late_proof = await client.post(
        f"{BOOKINGS}/{second['id']}/payment-proof",
        json={"proof_reference": "EFT-20240303"},
        headers=auth_headers(other_renter),
    )
    assert late_proof.status_code == 409


async def test_quote_does_not_create_booking(client, auth_headers, renter, listing):
    response = await client.post(
        f"{CHECKOUT}/quote",
        json=_request(listing, chauffeur={"enabled": True, "kilometers": 40}),
        headers=auth_headers(renter),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["available"] is True
    assert body["price"]["days"] == 3
    assert body["price"]["addon_amount"] == 40000
    assert body["price"]["total_amount"] == 1_540_000

    listed = await client.get(BOOKINGS, headers=auth_headers(renter))
    assert listed.json()["total"] == 0


async def test_chauffeur_addon_priced_per_km(client, auth_headers, renter, listing):
    booking = await _manual(
        client, auth_headers(renter), listing, chauffeur={"enabled": True, "kilometers": 40}
    )
    assert booking["addon_units"] == 40
    assert booking["addon_rate"] == 1000
    assert booking["total_amount"] == 1_540_000


async def test_chauffeur_enabled_without_distance_rejected(client, auth_headers, renter, listing):
    response = await client.post(
        f"{CHECKOUT}/manual",
        json=_request(listing, chauffeur={"enabled": True, "kilometers": 0}),
        headers=auth_headers(renter),
    )
    assert response.status_code == 422


async def test_invalid_ranges_rejected(client, auth_headers, renter, listing):
    headers = auth_headers(renter)

    empty = await client.post(
        f"{CHECKOUT}/manual", json=_request(listing, end="2024-03-01"), headers=headers
    )
    too_long = await client.post(
        f"{CHECKOUT}/manual", json=_request(listing, end="2024-04-15"), headers=headers
    )
    unknown_field = await client.post(
        f"{CHECKOUT}/manual", json=_request(listing, promo="FREE"), headers=headers
    )

    assert empty.status_code == 422
    assert too_long.status_code == 422
    assert unknown_field.status_code == 422


async def test_unknown_listing_not_available(client, auth_headers, renter):
    response = await client.post(
        f"{CHECKOUT}/manual",
        json={"listing_id": str(uuid.uuid4()), "start_date": "2024-03-01", "end_date": "2024-03-02"},
        headers=auth_headers(renter),
    )
    assert response.status_code == 400


async def test_card_checkout_creates_session(client, auth_headers, renter, listing, fake_gateway):
    response = await client.post(f"{CHECKOUT}/session", json=_request(listing), headers=auth_headers(renter))

    assert response.status_code == 201
    body = response.json()
    booking = body["booking"]
    assert body["session_id"] == "cs_test_1"
    assert body["redirect_url"].endswith("cs_test_1")
    assert booking["card_session_id"] == "cs_test_1"
    assert booking["payment_method"] == "card"

    call = fake_gateway.calls[0]
    item = call["line_items"][0]
    assert item.quantity == 3
    assert item.unit_amount == 500000
    assert item.description == "Car booking (3 days)"
    assert call["metadata"]["booking_id"] == booking["id"]
    assert call["idempotency_key"] == f"booking-{booking['id']}"
    assert call["success_url"].endswith(
        f"/bookings/{booking['id']}?checkout=success&session_id={{CHECKOUT_SESSION_ID}}"
    )
    assert call["cancel_url"].endswith(f"/checkout/{listing.id}?checkout=cancelled")


async def test_card_checkout_failure_cancels_booking(client, auth_headers, renter, listing, fake_gateway):
    fake_gateway.fail_with = "card network unavailable"

    response = await client.post(f"{CHECKOUT}/session", json=_request(listing), headers=auth_headers(renter))
    assert response.status_code == 402

    listed = await client.get(BOOKINGS, headers=auth_headers(renter))
    [booking] = listed.json()["bookings"]
    assert booking["status"] == "cancelled"
    assert booking["cancellation_reason"] == "payment_session_failed"
    assert booking["cancelled_by"] == "system"


async def test_card_booking_rejects_manual_proof(client, auth_headers, renter, listing):
    created = await client.post(f"{CHECKOUT}/session", json=_request(listing), headers=auth_headers(renter))
    booking_id = created.json()["booking"]["id"]

    response = await client.post(
        f"{BOOKINGS}/{booking_id}/payment-proof",
        json={"proof_reference": "EFT-1"},
        headers=auth_headers(renter),
    )
    assert response.status_code == 422


async def test_host_cannot_submit_proof(client, auth_headers, renter, owner, listing):
    booking = await _manual(client, auth_headers(renter), listing)

    response = await client.post(
        f"{BOOKINGS}/{booking['id']}/payment-proof",
        json={"proof_reference": "EFT-1"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 403


async def test_approval_flow(client, auth_headers, renter, admin, listing, session_factory):
    booking = await _manual(client, auth_headers(renter), listing)
    url = f"{BOOKINGS}/{booking['id']}"

    renter_approve = await client.post(f"{url}/approve", headers=auth_headers(renter))
    assert renter_approve.status_code == 403

    unpaid_approve = await client.post(f"{url}/approve", headers=auth_headers(admin))
    assert unpaid_approve.status_code == 409
    assert "awaiting_payment" in unpaid_approve.json()["detail"]

    paid = await client.post(
        f"{url}/mark-paid", json={"payment_reference": "BANK-778"}, headers=auth_headers(admin)
    )
    assert paid.status_code == 200
    assert paid.json()["status"] == "awaiting_approval"
    assert paid.json()["payment_reference"] == "BANK-778"

    approved = await client.post(f"{url}/approve", headers=auth_headers(admin))
    assert approved.status_code == 200
    assert approved.json()["status"] == "confirmed"
    assert approved.json()["approved_by"] == str(admin.id)

    async with session_factory() as session:
        result = await session.execute(
            select(AuditLog.action).where(AuditLog.resource_id == uuid.UUID(booking["id"]))
        )
        assert set(result.scalars().all()) == {"booking_mark_paid", "booking_approve"}


async def test_confirmed_booking_cannot_be_cancelled(client, auth_headers, renter, admin, listing):
    booking = await _manual(client, auth_headers(renter), listing)
    url = f"{BOOKINGS}/{booking['id']}"
    await client.post(f"{url}/mark-paid", json={}, headers=auth_headers(admin))
    await client.post(f"{url}/approve", headers=auth_headers(admin))

    response = await client.post(f"{url}/cancel", json={"reason": "late"}, headers=auth_headers(admin))

    assert response.status_code == 409
    assert "confirmed" in response.json()["detail"]


async def test_renter_cancels_unpaid_booking(client, auth_headers, renter, listing):
    booking = await _manual(client, auth_headers(renter), listing)
    url = f"{BOOKINGS}/{booking['id']}/cancel"

    response = await client.post(url, json={"reason": "found another car"}, headers=auth_headers(renter))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancelled_by"] == "renter"

    again = await client.post(url, json={}, headers=auth_headers(renter))
    assert again.status_code == 409


async def test_renter_cannot_cancel_paid_booking(client, auth_headers, renter, listing):
    booking = await _manual(client, auth_headers(renter), listing)
    url = f"{BOOKINGS}/{booking['id']}"
    await client.post(f"{url}/payment-proof", json={"proof_reference": "EFT-1"}, headers=auth_headers(renter))

    response = await client.post(f"{url}/cancel", json={}, headers=auth_headers(renter))
    assert response.status_code == 403


async def test_operator_cancel_frees_dates(client, auth_headers, renter, other_renter, admin, listing):
    booking = await _manual(client, auth_headers(renter), listing)
    url = f"{BOOKINGS}/{booking['id']}"
    await client.post(f"{url}/payment-proof", json={"proof_reference": "EFT-1"}, headers=auth_headers(renter))

    cancelled = await client.post(f"{url}/cancel", json={"reason": "fraud check"}, headers=auth_headers(admin))
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelled_by"] == "admin"

    rebooked = await _manual(client, auth_headers(other_renter), listing)
    proof = await client.post(
        f"{BOOKINGS}/{rebooked['id']}/payment-proof",
        json={"proof_reference": "EFT-2"},
        headers=auth_headers(other_renter),
    )
    assert proof.status_code == 200


async def test_booking_visibility(client, auth_headers, renter, other_renter, owner, admin, listing):
    booking = await _manual(client, auth_headers(renter), listing)
    url = f"{BOOKINGS}/{booking['id']}"

    assert (await client.get(url, headers=auth_headers(renter))).status_code == 200
    assert (await client.get(url, headers=auth_headers(owner))).status_code == 200
    assert (await client.get(url, headers=auth_headers(admin))).status_code == 200
    assert (await client.get(url, headers=auth_headers(other_renter))).status_code == 403
    assert (await client.get(url)).status_code == 401

    owner_list = await client.get(BOOKINGS, headers=auth_headers(owner))
    assert owner_list.json()["total"] == 1


async def test_status_change_events(client, auth_headers, renter, owner, admin, listing):
    booking = await _manual(client, auth_headers(renter), listing)
    url = f"{BOOKINGS}/{booking['id']}"
    await client.post(f"{url}/mark-paid", json={}, headers=auth_headers(admin))
    await client.post(f"{url}/approve", headers=auth_headers(admin))

    response = await client.get(
        f"{BOOKINGS}/events", params={"to_status": "confirmed"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    [fact] = response.json()
    assert fact["booking_id"] == booking["id"]
    assert fact["from_status"] == "awaiting_approval"
    assert fact["actor_role"] == "admin"

    history = await client.get(f"{BOOKINGS}/events", headers=auth_headers(admin))
    assert [e["to_status"] for e in history.json()] == [
        "awaiting_payment",
        "awaiting_approval",
        "confirmed",
    ]

    forbidden = await client.get(f"{BOOKINGS}/events", headers=auth_headers(renter))
    assert forbidden.status_code == 403

    host_forbidden = await client.get(f"{BOOKINGS}/events", headers=auth_headers(owner))
    assert host_forbidden.status_code == 403


async def test_listing_sync_requires_internal_key(client, owner):
    listing_id = uuid.uuid4()
    body = {
        "owner_id": str(owner.id),
        "title": "2021 VW Polo",
        "daily_rate": 45000,
        "currency": "zar",
        "is_active": True,
        "is_approved": True,
    }

    denied = await client.put(
        f"/api/v1/internal/listings/{listing_id}", json=body, headers={"X-Internal-Key": "wrong"}
    )
    assert denied.status_code == 401

    created = await client.put(
        f"/api/v1/internal/listings/{listing_id}",
        json=body,
        headers={"X-Internal-Key": "test-internal-key"},
    )
    assert created.status_code == 200
    assert created.json()["currency"] == "ZAR"

    body["daily_rate"] = 50000
    updated = await client.put(
        f"/api/v1/internal/listings/{listing_id}",
        json=body,
        headers={"X-Internal-Key": "test-internal-key"},
    )
    assert updated.json()["daily_rate"] == 50000


async def test_manual_checkout_returns_transfer_instructions(client, auth_headers, renter, listing):
    response = await client.post(
        f"{CHECKOUT}/manual",
        json=_request(listing, chauffeur={"enabled": True, "kilometers": 10}),
        headers=auth_headers(renter),
    )

    body = response.json()
    instructions = body["instructions"]
    assert instructions["type"] == "bank_transfer"
    assert instructions["amount"] == body["booking"]["total_amount"] == 1_510_000
    assert instructions["reference"] == body["booking"]["booking_number"]
