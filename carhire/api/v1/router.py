"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from carhire.api.v1 import bookings, checkout, internal, payouts, webhooks

api_router = APIRouter()

# Checkout
api_router.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Payouts
api_router.include_router(payouts.router, prefix="/payouts", tags=["Payouts"])

# Webhooks
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])

# Internal
api_router.include_router(internal.router, prefix="/internal", tags=["Internal"])
