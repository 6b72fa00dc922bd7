"""Shared test fixtures."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import init_db, make_engine, make_session_factory
from app.engine.callback import CallbackIngestor
from app.engine.initiator import PaymentInitiator
from app.engine.poller import StatusPoller
from app.engine.webhook import WebhookIngestor
from app.models.order import Order, OrderStatus
from app.providers.mock_provider import MockGateway
from app.providers.signing import SignatureService
from tests.factories import PG_KEY


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        gateway_base_url="https://gateway.test/erp",
        pg_key=PG_KEY,
        pg_api_key="test-api-key",
        school_id="school-001",
        app_url="http://api.test/",
        frontend_url="http://frontend.test",
    )


@pytest_asyncio.fixture
async def session_factory(settings):
    """Fresh in-memory database for each test."""
    engine = make_engine(settings.database_url)
    await init_db(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def signer(settings) -> SignatureService:
    return SignatureService(settings)


@pytest.fixture
def gateway() -> MockGateway:
    return MockGateway()


@pytest.fixture
def poller(gateway, signer, settings) -> StatusPoller:
    return StatusPoller(gateway, signer, settings)


@pytest.fixture
def initiator(gateway, signer, settings) -> PaymentInitiator:
    return PaymentInitiator(gateway, signer, settings)


@pytest.fixture
def callback_ingestor(poller, settings) -> CallbackIngestor:
    return CallbackIngestor(poller, settings)


@pytest.fixture
def webhook_ingestor(signer) -> WebhookIngestor:
    return WebhookIngestor(signer)


@pytest_asyncio.fixture
async def pending_order(db_session: AsyncSession):
    """An Order with a pending OrderStatus keyed "abc123"."""
    order = Order(
        id="order-abc123",
        school_id="school-001",
        trustee_id="trustee-1",
        student_name="Asha",
        student_id="STU-1",
        student_email="asha@example.com",
        gateway_name="Edviron",
        amount=1000.0,
        currency="INR",
        status="pending",
    )
    db_session.add(order)
    db_session.add(OrderStatus(
        collect_id="abc123",
        order_id=order.id,
        order_amount=1000.0,
        status="pending",
    ))
    await db_session.commit()
    return order


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """A file-backed database seeded with a pending "abc123", one connection per session."""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'payments.db'}")
    await init_db(engine)
    factory = make_session_factory(engine)
    async with factory() as session:
        session.add(Order(
            id="order-abc123",
            school_id="school-001",
            trustee_id="trustee-1",
            student_name="Asha",
            gateway_name="Edviron",
            amount=1000.0,
        ))
        session.add(OrderStatus(collect_id="abc123", order_id="order-abc123", order_amount=1000.0))
        await session.commit()
    yield factory
    await engine.dispose()
