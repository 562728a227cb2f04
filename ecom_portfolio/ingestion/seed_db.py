"""
Schema Initializer and Sample Data Loader

Recreates the store schema from a known-empty state and loads the literal
seed datasets. Each batch is validated before insert and committed on its
own; there is no transaction spanning the whole load.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Type

import polars as pl
import structlog
from sqlalchemy import insert, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from ecom_portfolio.database.constructs import DropView
from ecom_portfolio.database.models import (
    Base,
    Order,
    OrderItem,
    Product,
    SALES_KPI_VIEW,
    User,
    users_with_city,
)
from ecom_portfolio.ingestion.seed_data import (
    REPORTING_ORDERS,
    SEED_ORDER_ITEMS,
    SEED_ORDERS,
    SEED_PRODUCTS,
    SEED_USERS,
    USER_CITIES,
)
from ecom_portfolio.quality.validators import (
    DataValidator,
    ValidationResult,
    ValidationStatus,
    create_order_items_validator,
    create_orders_validator,
    create_products_validator,
    create_users_validator,
)

logger = structlog.get_logger(__name__)


class SeedValidationError(ValueError):
    """A seed batch failed ERROR-severity validation"""

    def __init__(self, table: str, result: ValidationResult):
        self.table = table
        self.result = result
        failed = ", ".join(c.name for c in result.failures)
        super().__init__(f"Seed batch for '{table}' failed validation: {failed}")


@dataclass
class InitializationResult:
    """Rows written by the initializer, per table"""
    users: int
    products: int
    orders: int
    order_items: int


def _records_frame(records: List[Dict[str, Any]]) -> pl.DataFrame:
    """Build a validation frame; Decimals become floats and enums their values"""
    def plain(value):
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, Enum):
            return value.value
        return value

    return pl.DataFrame([{k: plain(v) for k, v in r.items()} for r in records])


def validate_batch(table: str, records: List[Dict[str, Any]], validator: DataValidator) -> ValidationResult:
    """Run a validator over a batch; raise SeedValidationError on failure"""
    result = validator.validate(_records_frame(records))
    if result.status == ValidationStatus.FAILED:
        raise SeedValidationError(table, result)
    return result


async def execute_batch_insert(db: AsyncSession, model: Type[Base], records: List[Dict[str, Any]]) -> int:
    """Helper to insert a batch of records using Core Insert"""
    if not records:
        return 0

    chunk_size = 1000
    for i in range(0, len(records), chunk_size):
        chunk = records[i:i + chunk_size]
        await db.execute(insert(model).values(chunk))
    await db.commit()

    logger.info("Inserted records", table=model.__tablename__, rows=len(records))
    return len(records)


async def _existing_keys(db: AsyncSession, key_column) -> List[int]:
    result = await db.execute(select(key_column))
    return list(result.scalars().all())


async def reset_schema(db: AsyncSession) -> None:
    """
    Drop and recreate every table (and the KPI view that depends on orders).
    """
    conn = await db.connection()
    await conn.execute(DropView(SALES_KPI_VIEW))
    await conn.run_sync(Base.metadata.drop_all)
    await conn.run_sync(Base.metadata.create_all)
    await db.commit()
    logger.info("Schema recreated", tables=sorted(Base.metadata.tables))


async def seed_users(db: AsyncSession) -> int:
    """Load the seed users"""
    validate_batch("users", SEED_USERS, create_users_validator())
    return await execute_batch_insert(db, User, SEED_USERS)


async def seed_products(db: AsyncSession) -> int:
    """Load the seed product catalog"""
    validate_batch("products", SEED_PRODUCTS, create_products_validator())
    return await execute_batch_insert(db, Product, SEED_PRODUCTS)


async def seed_orders(db: AsyncSession) -> int:
    """Load the seed orders"""
    user_ids = await _existing_keys(db, User.user_id)
    validate_batch("orders", SEED_ORDERS, create_orders_validator(user_ids))
    return await execute_batch_insert(db, Order, SEED_ORDERS)


async def seed_order_items(db: AsyncSession) -> int:
    """Load the seed order lines"""
    order_ids = await _existing_keys(db, Order.order_id)
    product_ids = await _existing_keys(db, Product.product_id)
    validate_batch(
        "order_items",
        SEED_ORDER_ITEMS,
        create_order_items_validator(order_ids, product_ids),
    )
    return await execute_batch_insert(db, OrderItem, SEED_ORDER_ITEMS)


async def initialize_database(db: AsyncSession) -> InitializationResult:
    """
    Recreate the schema and load the full seed dataset.

    Returns:
        InitializationResult with per-table inserted row counts
    """
    logger.info("Starting schema initialization")
    await reset_schema(db)

    result = InitializationResult(
        users=await seed_users(db),
        products=await seed_products(db),
        orders=await seed_orders(db),
        order_items=await seed_order_items(db),
    )

    logger.info(
        "Schema initialization completed",
        users=result.users,
        products=result.products,
        orders=result.orders,
        order_items=result.order_items,
    )
    return result


# =============================================================================
# REPORTING DATA
# =============================================================================

async def assign_user_cities(db: AsyncSession) -> int:
    """
    Set each seeded user's city. Requires the city column to exist.

    Returns:
        Number of users updated
    """
    updated = 0
    for user_id, city in USER_CITIES.items():
        result = await db.execute(
            update(users_with_city)
            .where(users_with_city.c.user_id == user_id)
            .values(city=city)
        )
        updated += result.rowcount
    await db.commit()

    logger.info("User cities assigned", users=updated)
    return updated


async def seed_reporting_orders(db: AsyncSession) -> int:
    """
    Load the January/February time-series orders used by the reports.

    Not idempotent: every call appends the whole batch again.
    """
    user_ids = await _existing_keys(db, User.user_id)
    validate_batch("orders", REPORTING_ORDERS, create_orders_validator(user_ids))
    return await execute_batch_insert(db, Order, REPORTING_ORDERS)


async def analyze_orders(db: AsyncSession) -> None:
    """Refresh the planner's statistics for the orders table"""
    await db.execute(text(f"ANALYZE {Order.__tablename__}"))
    await db.commit()
    logger.debug("Optimizer statistics refreshed", table=Order.__tablename__)
