"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.core.database import Base, get_db
from backoffice.core.security import get_password_hash
from backoffice.main import app
from backoffice.models import (
    Invoice,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
    Shop,
    User,
    UserRole,
)
from backoffice.services.allocation import derive_status


# In-memory SQLite, one database per test
TEST_DATABASE_URL = "sqlite+aiosqlite://"

BASE_TIME = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


def _make_client(db_session: AsyncSession) -> AsyncClient:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database session override."""
    async with _make_client(db_session) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, role: UserRole) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash("testpassword123"),
        full_name=email.split("@")[0].title(),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin user."""
    return await _create_user(db_session, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def sales_user(db_session: AsyncSession) -> User:
    """Create a sales user."""
    return await _create_user(db_session, "sales@example.com", UserRole.SALES)


async def _login(client: AsyncClient, email: str) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": "testpassword123"},
    )
    token = response.json()["access_token"]
    client.headers["Authorization"] = f"Bearer {token}"


@pytest.fixture
async def auth_client(client: AsyncClient, admin_user: User) -> AsyncClient:
    """Client authenticated as the admin user."""
    await _login(client, admin_user.email)
    return client


@pytest.fixture
async def sales_client(
    db_session: AsyncSession,
    sales_user: User,
) -> AsyncGenerator[AsyncClient, None]:
    """Separate client authenticated as the sales user."""
    async with _make_client(db_session) as ac:
        await _login(ac, sales_user.email)
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def shop(db_session: AsyncSession, admin_user: User) -> Shop:
    """A shop with an email address."""
    shop = Shop(
        name="Corner Market",
        owner_name="Dana Reyes",
        email="corner@example.com",
        city="Austin",
        state="TX",
        created_by=admin_user.id,
    )
    db_session.add(shop)
    await db_session.commit()
    await db_session.refresh(shop)
    return shop


@pytest.fixture
async def products(db_session: AsyncSession) -> list[Product]:
    """Two active products with stock."""
    items = [
        Product(name="Rice 5kg", category="Grocery", price=Decimal("12.50"), stock_quantity=40),
        Product(name="Olive Oil 1L", category="Grocery", price=Decimal("8.00"), stock_quantity=3),
    ]
    db_session.add_all(items)
    await db_session.commit()
    for product in items:
        await db_session.refresh(product)
    return items


@pytest.fixture
def make_invoice(db_session: AsyncSession, admin_user: User):
    """
    Factory persisting an invoice with optional prior payments.

    ``age_days`` places the invoice that many days after ``BASE_TIME``;
    its status is derived from the payments unless ``status`` is given.
    """
    numbers = count(1)

    async def _make(
        shop: Shop,
        total: str,
        age_days: int = 0,
        paid: list[str] | None = None,
        status: PaymentStatus | None = None,
        created_by: int | None = None,
    ) -> Invoice:
        amounts = [Decimal(a) for a in paid or []]
        invoice = Invoice(
            shop_id=shop.id,
            invoice_number=f"TEST-{next(numbers):05d}",
            total_amount=Decimal(total),
            discount_amount=Decimal("0.00"),
            payment_status=status or derive_status(Decimal(total), amounts),
            created_by=created_by or admin_user.id,
            created_at=BASE_TIME + timedelta(days=age_days),
        )
        db_session.add(invoice)
        await db_session.flush()
        for amount in amounts:
            db_session.add(Payment(
                invoice_id=invoice.id,
                amount=amount,
                payment_method=PaymentMethod.CASH,
                created_by=admin_user.id,
            ))
        await db_session.commit()
        await db_session.refresh(invoice)
        return invoice

    return _make
