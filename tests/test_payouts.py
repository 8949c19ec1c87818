"""
Host Payout Ledger Tests.
"""

import uuid

from sqlalchemy import select

from carhire.models.admin import AuditLog

PAYOUTS = "/api/v1/payouts"


async def _create(client, headers, owner_id, amount=200000, **extra):
    return await client.post(
        PAYOUTS, json={"owner_id": str(owner_id), "amount": amount, **extra}, headers=headers
    )


async def test_payout_lifecycle(client, auth_headers, admin, owner):
    created = await _create(client, auth_headers(admin), owner.id, note="March rentals")
    assert created.status_code == 201
    payout = created.json()
    assert payout["status"] == "pending"
    assert payout["currency"] == "ZAR"
    assert payout["created_by"] == str(admin.id)
    assert payout["processed_at"] is None

    url = f"{PAYOUTS}/{payout['id']}/status"
    paid = await client.post(url, json={"status": "paid"}, headers=auth_headers(admin))
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert paid.json()["processed_at"] is not None

    reverted = await client.post(url, json={"status": "failed"}, headers=auth_headers(admin))
    assert reverted.status_code == 409
    assert "paid" in reverted.json()["detail"]


async def test_pending_to_pending_rejected(client, auth_headers, admin, owner):
    payout = (await _create(client, auth_headers(admin), owner.id)).json()

    response = await client.post(
        f"{PAYOUTS}/{payout['id']}/status", json={"status": "pending"}, headers=auth_headers(admin)
    )
    assert response.status_code == 409


async def test_payout_validation(client, auth_headers, admin, owner):
    headers = auth_headers(admin)

    zero = await _create(client, headers, owner.id, amount=0)
    negative = await _create(client, headers, owner.id, amount=-10)
    reversed_period = await _create(
        client, headers, owner.id, period_start="2024-03-31", period_end="2024-03-01"
    )
    bad_currency = await _create(client, headers, owner.id, currency="12$")

    assert zero.status_code == 422
    assert negative.status_code == 422
    assert reversed_period.status_code == 422
    assert bad_currency.status_code == 422


async def test_currency_normalized(client, auth_headers, admin, owner):
    response = await _create(client, auth_headers(admin), owner.id, currency=" usd ")

    assert response.status_code == 201
    assert response.json()["currency"] == "USD"


async def test_only_operators_record_payouts(client, auth_headers, renter, owner):
    as_renter = await _create(client, auth_headers(renter), owner.id)
    as_owner = await _create(client, auth_headers(owner), owner.id)

    assert as_renter.status_code == 403
    assert as_owner.status_code == 403


async def test_hosts_see_only_their_payouts(client, auth_headers, admin, owner, renter):
    someone_else = uuid.uuid4()
    mine = (await _create(client, auth_headers(admin), owner.id, amount=1000)).json()
    theirs = (await _create(client, auth_headers(admin), someone_else, amount=2000)).json()

    listed = await client.get(PAYOUTS, headers=auth_headers(owner))
    assert listed.status_code == 200
    assert [p["id"] for p in listed.json()["payouts"]] == [mine["id"]]

    # owner_id is ignored for hosts
    spoofed = await client.get(
        PAYOUTS, params={"owner_id": str(someone_else)}, headers=auth_headers(owner)
    )
    assert spoofed.json()["total"] == 1

    hidden = await client.get(f"{PAYOUTS}/{theirs['id']}", headers=auth_headers(owner))
    assert hidden.status_code == 404

    own = await client.get(f"{PAYOUTS}/{mine['id']}", headers=auth_headers(owner))
    assert own.status_code == 200

    forbidden = await client.get(PAYOUTS, headers=auth_headers(renter))
    assert forbidden.status_code == 403


async def test_operator_filters_by_owner(client, auth_headers, admin, owner):
    other_owner = uuid.uuid4()
    await _create(client, auth_headers(admin), owner.id)
    await _create(client, auth_headers(admin), other_owner)

    everything = await client.get(PAYOUTS, headers=auth_headers(admin))
    filtered = await client.get(
        PAYOUTS, params={"owner_id": str(other_owner)}, headers=auth_headers(admin)
    )

    assert everything.json()["total"] == 2
    assert filtered.json()["total"] == 1
    assert filtered.json()["payouts"][0]["owner_id"] == str(other_owner)


async def test_payout_actions_audited(client, auth_headers, admin, owner, session_factory):
    payout = (await _create(client, auth_headers(admin), owner.id, amount=4200)).json()
    await client.post(
        f"{PAYOUTS}/{payout['id']}/status", json={"status": "failed"}, headers=auth_headers(admin)
    )

    async with session_factory() as session:
        result = await session.execute(
            select(AuditLog)
            .where(AuditLog.resource_id == uuid.UUID(payout["id"]))
            .order_by(AuditLog.created_at)
        )
        entries = result.scalars().all()

    assert [e.action for e in entries] == ["payout_create", "payout_mark_failed"]
    assert all(e.user_id == admin.id for e in entries)
    assert entries[1].old_values["status"] == "pending"
    assert entries[1].new_values["status"] == "failed"
