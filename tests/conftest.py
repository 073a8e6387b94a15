"""
Shared fixtures: in-memory SQLite database, auth context and car factory.
"""

import os

# Point the application at SQLite before amber_drive reads its settings
os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_FORMAT", "console")

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import amber_drive.models  # noqa: F401
from amber_drive.database.base import Base
from amber_drive.models.car import Car, CarCategory, CarStatus
from amber_drive.services.auth_service import AuthContext
from amber_drive.utils.storage import ImageStorage


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def auth():
    """Signed-in admin."""
    return AuthContext(user_id=1, username="admin", email="admin@amberdrive.test")


@pytest.fixture
def storage(tmp_path):
    return ImageStorage(root=tmp_path / "uploads", max_file_size_mb=1)


@pytest.fixture
def make_car(session):
    """Factory that persists a car with sensible defaults."""
    async def _make(**overrides) -> Car:
        fields = {
            "name": "Model",
            "brand": "Porsche",
            "category": CarCategory.COUPE,
            "default_price": Decimal("500"),
            "default_km": 200,
            "default_extra_km": Decimal("2.50"),
            "default_deposit": Decimal("3000"),
            "status": CarStatus.ACTIVE,
        }
        fields.update(overrides)
        car = Car(**fields)
        session.add(car)
        await session.flush()
        return car

    return _make
