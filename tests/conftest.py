import pytest
import pytest_asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payment_service.database import get_session
from payment_service.main import app
from payment_service.models import Base, Payment, PaymentStatus, new_id


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent sessions get separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'payments.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def count_rows(session_factory):
    async def _count(model):
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    return _count


@pytest.fixture
def seed_payment(session_factory):
    async def _seed(status=PaymentStatus.SUCCESS, created_at=None, **overrides):
        payment = Payment(
            payment_id=new_id(),
            order_id=overrides.pop("order_id", "order-seed"),
            amount=overrides.pop("amount", Decimal("100.00")),
            currency=overrides.pop("currency", "INR"),
            status=status,
            payment_method=overrides.pop("payment_method", "CARD"),
            idempotency_key=overrides.pop("idempotency_key", f"seed-{new_id()}"),
            created_at=created_at or datetime.now(timezone.utc),
        )
        async with session_factory() as session:
            session.add(payment)
            await session.commit()
        return payment

    return _seed


@pytest.fixture
def minutes_ago():
    now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    return lambda n: now - timedelta(minutes=n)
