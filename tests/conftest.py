"""
Centralized Test Configuration.
"""

import os

# Settings are read at import time, so the environment is fixed before carhire loads
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_fake"

import hashlib
import hmac
import json
import time
import uuid
from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from carhire.api.deps import get_gateway_service
from carhire.core.permissions import Actor, UserRole
from carhire.core.security import create_actor_token
from carhire.database import Base, get_db
from carhire.gateways.base import CheckoutResult, GatewayType
from carhire.gateways.manual import ManualGateway
from carhire.gateways.stripe_gateway import StripeGateway
from carhire.main import app
from carhire.models.listing import Listing
from carhire.services.gateway_service import GatewayService

TEST_DATABASE_URL = "sqlite+aiosqlite://"
WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
DAILY_RATE = 500000


class FakeCardGateway(StripeGateway):
    """Stripe adapter with checkout creation stubbed out.

    Webhook verification is the real Stripe implementation.
    """

    def __init__(self):
        super().__init__(secret_key="sk_test_fake", webhook_secret=WEBHOOK_SECRET)
        self.calls: list[dict] = []
        self.fail_with: str | None = None

    async def create_checkout_session(
        self, currency, line_items, success_url, cancel_url, metadata, idempotency_key
    ) -> CheckoutResult:
        self.calls.append(
            {
                "currency": currency,
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
            }
        )
        if self.fail_with:
            return CheckoutResult(success=False, error_message=self.fail_with)
        session_id = f"cs_test_{len(self.calls)}"
        return CheckoutResult(
            success=True,
            session_id=session_id,
            redirect_url=f"https://checkout.stripe.test/{session_id}",
        )


# Setup In-Memory Test Database, one per test
@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db_session(session_factory):
    """Session for fixture data and service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_gateway() -> FakeCardGateway:
    return FakeCardGateway()


@pytest.fixture
def gateway_service(fake_gateway) -> GatewayService:
    return GatewayService(
        gateways={
            GatewayType.STRIPE: fake_gateway,
            GatewayType.MANUAL: ManualGateway(),
        }
    )


@pytest.fixture
async def client(session_factory, gateway_service):
    """Async client with the database and gateways overridden."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway_service] = lambda: gateway_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


# ==================== ACTORS ====================


@pytest.fixture
def renter() -> Actor:
    return Actor(id=uuid.uuid4(), role=UserRole.RENTER)


@pytest.fixture
def other_renter() -> Actor:
    return Actor(id=uuid.uuid4(), role=UserRole.RENTER)


@pytest.fixture
def owner() -> Actor:
    return Actor(id=uuid.uuid4(), role=UserRole.HOST)


@pytest.fixture
def admin() -> Actor:
    return Actor(id=uuid.uuid4(), role=UserRole.ADMIN)


@pytest.fixture
def auth_headers():
    """Build bearer headers for an actor."""

    def _headers(actor: Actor) -> dict[str, str]:
        token = create_actor_token(str(actor.id), actor.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ==================== CATALOG ====================


@pytest.fixture
async def listing(db_session, owner) -> Listing:
    car = Listing(
        owner_id=owner.id,
        title="2022 Toyota Corolla",
        daily_rate=DAILY_RATE,
        currency="ZAR",
        is_active=True,
        is_approved=True,
    )
    db_session.add(car)
    await db_session.commit()
    return car


@pytest.fixture
def rental_range():
    return date(2024, 3, 1), date(2024, 3, 4)


# ==================== WEBHOOKS ====================


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header using the v1 HMAC-SHA256 scheme."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def checkout_event():
    """Build a Stripe checkout event payload."""

    def _event(
        booking_id=None,
        session_id: str = "cs_test_1",
        event_id: str | None = None,
        event_type: str = "checkout.session.completed",
        payment_status: str = "paid",
        payment_intent: str = "pi_test_123",
    ) -> bytes:
        metadata = {"booking_id": str(booking_id)} if booking_id else {}
        body = {
            "id": event_id or f"evt_{uuid.uuid4().hex}",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "payment_status": payment_status,
                    "payment_intent": payment_intent,
                    "metadata": metadata,
                }
            },
        }
        return json.dumps(body).encode("utf-8")

    return _event


@pytest.fixture
def deliver_webhook(client):
    """POST a signed payload to the Stripe webhook endpoint."""

    async def _deliver(payload: bytes, signature: str | None = None):
        headers = {"Content-Type": "application/json"}
        headers["Stripe-Signature"] = signature if signature is not None else sign_payload(payload)
        return await client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)

    return _deliver


@pytest.fixture
def sign_webhook():
    return sign_payload
