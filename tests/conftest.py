# Shared pytest configuration and fixtures for all test types
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import AsyncMock, patch
from datetime import datetime, timezone, timedelta

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.db.session import get_db
from common.db.base import Base
from common.providers.caching.memory_cache import MemoryCache
from packages.users.models.database.user import UserEntity
from packages.teams.models.database.team import TeamEntity, TeamMemberEntity
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.dependencies import get_current_active_user
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.database.usage import UsageLogEntity
from packages.billing.models.domain.enums import (
    BillingInterval,
    SubscriptionStatus,
    SubscriptionTier,
    PaymentProvider,
    UsageAction,
)
from packages.billing.models.domain.subscription import Subscription

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)
    monkeypatch.setattr(
        "common.db.scoped.AsyncSessionLocalReadonly", test_session_factory
    )


@pytest_asyncio.fixture(scope="function", autouse=True)
async def memory_cache(monkeypatch):
    """Fresh in-process cache per test instead of Redis."""
    cache = MemoryCache()
    monkeypatch.setattr("common.providers.caching.factory._cache_provider", cache)
    return cache


@pytest_asyncio.fixture(scope="function", autouse=True)
async def notification_transport():
    """Record notifications instead of delivering them."""
    transport = AsyncMock()
    transport.deliver = AsyncMock(return_value=True)
    with patch(
        "packages.notifications.services.notification_service.get_notification_transport",
        return_value=transport,
    ):
        yield transport


@pytest_asyncio.fixture(scope="function")
async def sample_user_entity(test_db: AsyncSession):
    """Create a sample user."""
    user = UserEntity(
        email="user@example.com",
        full_name="Test User",
        is_active=True,
        is_admin=False,
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def second_user_entity(test_db: AsyncSession):
    user = UserEntity(
        email="second@example.com",
        full_name="Second User",
        is_active=True,
        is_admin=False,
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def admin_user_entity(test_db: AsyncSession):
    user = UserEntity(
        email="admin@example.com",
        full_name="Admin User",
        is_active=True,
        is_admin=True,
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(sample_user_entity):
    """Create a test authenticated user."""
    return AuthenticatedUser(
        user_id=sample_user_entity.id,
        email=sample_user_entity.email,
        is_admin=False,
    )


@pytest_asyncio.fixture(scope="function")
async def admin_user(admin_user_entity):
    return AuthenticatedUser(
        user_id=admin_user_entity.id,
        email=admin_user_entity.email,
        is_admin=True,
    )


async def _make_client(test_db: AsyncSession, user: AuthenticatedUser):
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    def override_get_current_active_user():
        return user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_active_user] = override_get_current_active_user

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession, test_user):
    """Create a test client authenticated as test_user."""
    async for ac in _make_client(test_db, test_user):
        yield ac


@pytest_asyncio.fixture(scope="function")
async def admin_client(test_db: AsyncSession, admin_user):
    """Create a test client authenticated as an administrator."""
    async for ac in _make_client(test_db, admin_user):
        yield ac


@pytest_asyncio.fixture(scope="function")
async def anonymous_client():
    """Client without any dependency overrides (public endpoints, webhooks)."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def sample_subscription(test_db: AsyncSession, sample_user_entity):
    """Create a sample active STARTER subscription."""
    subscription_entity = SubscriptionEntity(
        owner_user_id=sample_user_entity.id,
        tier=SubscriptionTier.STARTER.value,
        status=SubscriptionStatus.ACTIVE.value,
        billing_interval=BillingInterval.MONTHLY.value,
        payment_provider=PaymentProvider.STRIPE.value,
        current_period_start=datetime.now(timezone.utc),
        current_period_end=datetime.now(timezone.utc) + timedelta(days=30),
        stripe_customer_id="cus_test123",
        stripe_subscription_id="sub_test123",
    )
    test_db.add(subscription_entity)
    await test_db.commit()
    await test_db.refresh(subscription_entity)
    return Subscription.model_validate(subscription_entity)


@pytest_asyncio.fixture(scope="function")
async def subscription_factory(test_db: AsyncSession):
    """Create a subscription row for any user with the given tier and status."""

    async def _create(
        user_id: int,
        tier: SubscriptionTier,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        stripe_subscription_id: str = None,
        stripe_customer_id: str = None,
    ) -> Subscription:
        entity = SubscriptionEntity(
            owner_user_id=user_id,
            tier=tier.value,
            status=status.value,
            billing_interval=BillingInterval.MONTHLY.value,
            payment_provider=PaymentProvider.STRIPE.value,
            current_period_start=datetime.now(timezone.utc),
            current_period_end=datetime.now(timezone.utc) + timedelta(days=30),
            stripe_customer_id=stripe_customer_id or f"cus_{user_id}",
            stripe_subscription_id=stripe_subscription_id or f"sub_{user_id}",
        )
        test_db.add(entity)
        await test_db.commit()
        await test_db.refresh(entity)
        return Subscription.model_validate(entity)

    return _create


@pytest_asyncio.fixture(scope="function")
async def sample_team(test_db: AsyncSession, sample_user_entity, second_user_entity):
    """Team owned by the sample user with the second user as a member."""
    team = TeamEntity(name="Test Team", owner_user_id=sample_user_entity.id)
    test_db.add(team)
    await test_db.commit()
    await test_db.refresh(team)

    member = TeamMemberEntity(team_id=team.id, user_id=second_user_entity.id)
    test_db.add(member)
    await test_db.commit()
    return team


@pytest_asyncio.fixture(scope="function")
async def usage_log_factory(test_db: AsyncSession):
    """Insert `count` ledger entries directly, optionally back-dated."""

    async def _create(
        action: UsageAction,
        count: int = 1,
        user_id: int = None,
        team_id: int = None,
        created_at: datetime = None,
        storage_bytes: int = None,
    ) -> None:
        for _ in range(count):
            test_db.add(
                UsageLogEntity(
                    user_id=user_id,
                    team_id=team_id,
                    action=action.value,
                    event_metadata={},
                    storage_bytes=storage_bytes,
                    created_at=created_at or datetime.now(timezone.utc),
                )
            )
        await test_db.commit()

    return _create
