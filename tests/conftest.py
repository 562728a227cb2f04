"""
Test Suite Configuration
"""
from typing import AsyncGenerator

import polars as pl
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecom_portfolio.analytics.reports import create_sales_kpi_view
from ecom_portfolio.config import Settings
from ecom_portfolio.database.connection import build_engine
from ecom_portfolio.database.models import Base
from ecom_portfolio.ingestion.seed_db import (
    assign_user_cities,
    initialize_database,
    seed_reporting_orders,
)
from ecom_portfolio.migrations.schema_evolution import evolve_schema

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(APP_ENV="testing")


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with the base schema"""
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def seeded_db(test_db) -> AsyncSession:
    """Database after the initializer stage"""
    await initialize_database(test_db)
    return test_db


@pytest.fixture
async def reporting_db(seeded_db) -> AsyncSession:
    """Database after the reporter's schema evolution and data load"""
    await evolve_schema(seeded_db)
    await assign_user_cities(seeded_db)
    await seed_reporting_orders(seeded_db)
    await create_sales_kpi_view(seeded_db)
    return seeded_db


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Product rows as they are validated before insert"""
    return pl.DataFrame({
        "name": ["Wireless Mouse", "USB Keyboard", "Monitor Stand"],
        "price": [34.99, 49.99, 39.99],
        "description": ["Ergonomic wireless mouse", None, "Adjustable stand"],
    })


@pytest.fixture
def sample_order_items_df() -> pl.DataFrame:
    """Order item rows as they are validated before insert"""
    return pl.DataFrame({
        "order_id": [1, 1, 2],
        "product_id": [1, 5, 6],
        "quantity": [1, 3, 1],
        "unit_price": [89.99, 19.99, 129.99],
    })
