#!/usr/bin/env python3
"""
Manual-payment booking flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py --start 2026-04-01 --end 2026-04-04
    python scripts/flow_book_and_pay.py --listing-id <UUID> --start 2026-05-01 --end 2026-05-05 --chauffeur-km 40

Flow:
    1. Sync a listing snapshot (internal key)
    2. Quote the rental
    3. Create a manual booking as the renter
    4. Submit payment proof as the renter
    5. Approve the booking as an operator
"""

import argparse
import json
import sys
import uuid

import httpx

from carhire.config import settings
from carhire.core.security import create_actor_token

BASE_URL = "http://localhost:8000"


def api_request(
    token: str | None,
    method: str,
    endpoint: str,
    data: dict | None = None,
    headers: dict | None = None,
) -> dict:
    """Make an API request, authenticated when a token is given."""
    headers = dict(headers or {})
    if token:
        headers["Authorization"] = f"Bearer {token}"

    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        headers=headers,
        json=data,
        timeout=10.0,
        follow_redirects=True,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Manual-payment booking flow")
    parser.add_argument("--listing-id", default=None, help="Listing UUID (created if omitted)")
    parser.add_argument("--start", required=True, help="First rental day (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="Return day, exclusive (YYYY-MM-DD)")
    parser.add_argument("--daily-rate", type=int, default=50000, help="Daily rate in cents")
    parser.add_argument("--chauffeur-km", type=int, default=0, help="Chauffeur distance in km")
    args = parser.parse_args()

    listing_id = args.listing_id or str(uuid.uuid4())
    owner_id = str(uuid.uuid4())
    renter_token = create_actor_token(str(uuid.uuid4()), "renter")
    admin_token = create_actor_token(str(uuid.uuid4()), "admin")

    # Step 1: Sync listing
    print_step(1, "Sync listing snapshot")
    listing_result = api_request(
        None,
        "PUT",
        f"/api/v1/internal/listings/{listing_id}",
        {
            "owner_id": owner_id,
            "title": "Flow script hatchback",
            "daily_rate": args.daily_rate,
            "currency": settings.default_currency,
            "is_active": True,
            "is_approved": True,
        },
        headers={"X-Internal-Key": settings.internal_api_key},
    )
    if not print_result(listing_result, ["id", "daily_rate", "currency"]):
        sys.exit(1)

    chauffeur = {"enabled": args.chauffeur_km > 0, "kilometers": args.chauffeur_km}
    booking_request = {
        "listing_id": listing_id,
        "start_date": args.start,
        "end_date": args.end,
        "chauffeur": chauffeur,
    }

    # Step 2: Quote
    print_step(2, "Quote rental")
    quote_result = api_request(renter_token, "POST", "/api/v1/checkout/quote", booking_request)
    if not print_result(quote_result):
        sys.exit(1)
    if not quote_result["data"].get("available"):
        print(f"ERROR: {quote_result['data'].get('unavailable_reason')}")
        sys.exit(1)

    price = quote_result["data"]["price"]
    print(f"\nTotal: {price['total_amount']:,} cents ({price['total_amount']/100:,.2f} {price['currency']})")

    # Step 3: Create manual booking
    print_step(3, "Create manual booking")
    booking_result = api_request(renter_token, "POST", "/api/v1/checkout/manual", booking_request)
    if not print_result(booking_result):
        sys.exit(1)

    booking = booking_result["data"]["booking"]
    booking_id = booking["id"]
    print(f"\nBooking created: {booking['booking_number']} ({booking['status']})")

    # Step 4: Submit payment proof
    print_step(4, "Submit payment proof")
    proof_result = api_request(
        renter_token,
        "POST",
        f"/api/v1/bookings/{booking_id}/payment-proof",
        {"proof_reference": f"EFT-{booking['booking_number']}"},
    )
    if not print_result(proof_result, ["id", "status", "paid_at", "payment_proof_ref"]):
        sys.exit(1)

    # Step 5: Approve
    print_step(5, "Approve booking (operator)")
    approve_result = api_request(admin_token, "POST", f"/api/v1/bookings/{booking_id}/approve")
    if not print_result(approve_result, ["id", "booking_number", "status", "approved_at"]):
        sys.exit(1)

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
