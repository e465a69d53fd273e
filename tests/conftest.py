import os

os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from atelier.db.base import Base
from atelier.db.models import Product, ProductCategory, User, UserRole


DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    engine = create_async_engine(DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def admin_user(db_session):
    user = User(email="admin@atelier7x.com", name="Gallery Admin", role=UserRole.ADMIN)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def category(db_session):
    category = ProductCategory(name="Paintings", description="Original works on canvas")
    db_session.add(category)
    await db_session.commit()
    await db_session.refresh(category)
    return category


@pytest.fixture
def make_product(db_session):
    counter = {"n": 0}

    async def _make(**kwargs):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "name": f"Artwork {n}",
            "slug": f"artwork-{n}",
            "sku": f"ART-{n:03d}",
            "price": Decimal("100.00"),
            "stock_quantity": 5,
            "low_stock_threshold": 5,
            "medium": "Oil on canvas",
            "size": "60 x 80 cm",
        }
        data.update(kwargs)
        product = Product(**data)
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _make


@pytest.fixture
async def client(engine):
    from atelier.db.session import get_db
    from atelier.main import app
    from atelier.services.settings import create_settings_cache

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.settings_cache = create_settings_cache()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def as_admin(admin_user):
    from atelier.api.dependencies import get_current_admin
    from atelier.main import app

    app.dependency_overrides[get_current_admin] = lambda: admin_user
    yield admin_user
    app.dependency_overrides.pop(get_current_admin, None)
