"""
Post-Seed Verification Queries

Read-only sanity checks run after the initializer: row counts, join
correctness, a full-text search smoke test and a few simple aggregates.
They are diagnostics; nothing here changes state.
"""

from typing import List, Optional

import structlog
from sqlalchemy import distinct, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from ecom_portfolio.analytics.reports import money
from ecom_portfolio.analytics.schemas import (
    DatabaseSummary,
    OrderItemDetail,
    OrderReconciliation,
    OrderWithUser,
    ProductSales,
    ProductSearchHit,
    TableCount,
    UserSalesTotal,
)
from ecom_portfolio.config import get_settings
from ecom_portfolio.database.models import Order, OrderItem, Product, User

logger = structlog.get_logger(__name__)
settings = get_settings()


async def table_counts(db: AsyncSession) -> List[TableCount]:
    """Row counts per table plus distinct foreign-key coverage"""
    metrics = [
        ("Total Users", select(func.count()).select_from(User)),
        ("Total Products", select(func.count()).select_from(Product)),
        ("Total Orders", select(func.count()).select_from(Order)),
        ("Total Order Items", select(func.count()).select_from(OrderItem)),
        ("Orders with Users", select(func.count(distinct(Order.user_id)))),
        ("Order Items with Products", select(func.count(distinct(OrderItem.product_id)))),
    ]
    counts = []
    for metric, stmt in metrics:
        counts.append(TableCount(metric=metric, count=(await db.execute(stmt)).scalar_one()))
    return counts


async def orders_with_users(db: AsyncSession) -> List[OrderWithUser]:
    """Orders joined to their owners, newest first"""
    stmt = (
        select(Order.order_id, User.username, Order.order_date, Order.status, Order.amount)
        .join(User, Order.user_id == User.user_id)
        .order_by(Order.order_date.desc(), Order.order_id.desc())
    )
    result = await db.execute(stmt)
    return [
        OrderWithUser(
            order_id=r.order_id,
            username=r.username,
            order_date=r.order_date,
            status=r.status.value,
            amount=money(r.amount),
        )
        for r in result
    ]


async def order_item_details(db: AsyncSession) -> List[OrderItemDetail]:
    """Order lines with user and product names and line subtotal"""
    subtotal = OrderItem.quantity * OrderItem.unit_price
    stmt = (
        select(
            Order.order_id,
            User.username,
            Product.name.label("product_name"),
            OrderItem.quantity,
            OrderItem.unit_price,
            subtotal.label("subtotal"),
        )
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.order_id)
        .join(User, Order.user_id == User.user_id)
        .join(Product, OrderItem.product_id == Product.product_id)
        .order_by(Order.order_id.desc(), OrderItem.order_item_id)
    )
    result = await db.execute(stmt)
    return [
        OrderItemDetail(
            order_id=r.order_id,
            username=r.username,
            product_name=r.product_name,
            quantity=r.quantity,
            unit_price=money(r.unit_price),
            subtotal=money(r.subtotal),
        )
        for r in result
    ]


async def search_products(db: AsyncSession, term: Optional[str] = None) -> List[ProductSearchHit]:
    """
    Search product descriptions.

    PostgreSQL uses full-text matching (backed by idx_desc); other engines
    fall back to a case-insensitive substring match.
    """
    if term is None:
        term = settings.reporting.search_term
    conn = await db.connection()

    if conn.dialect.name == "postgresql":
        config = settings.reporting.text_search_config
        document = func.to_tsvector(config, func.coalesce(Product.description, ""))
        predicate = document.bool_op("@@")(func.plainto_tsquery(config, term))
    else:
        predicate = func.lower(Product.description).contains(term.lower(), autoescape=True)

    stmt = select(Product).where(predicate).order_by(Product.product_id)
    result = await db.execute(stmt)
    hits = [
        ProductSearchHit(
            product_id=p.product_id,
            name=p.name,
            price=money(p.price),
            description=p.description,
        )
        for p in result.scalars()
    ]
    logger.info("Product search", term=term, hits=len(hits), dialect=conn.dialect.name)
    return hits


async def sales_by_user(db: AsyncSession) -> List[UserSalesTotal]:
    """Order count and total amount per user across all statuses"""
    total_spent = func.coalesce(func.sum(Order.amount), 0)
    stmt = (
        select(
            User.user_id,
            User.username,
            func.count(distinct(Order.order_id)).label("total_orders"),
            total_spent.label("total_spent"),
        )
        .select_from(User)
        .outerjoin(Order, Order.user_id == User.user_id)
        .group_by(User.user_id, User.username)
        .order_by(total_spent.desc(), User.user_id)
    )
    result = await db.execute(stmt)
    return [
        UserSalesTotal(
            user_id=r.user_id,
            username=r.username,
            total_orders=r.total_orders,
            total_spent=money(r.total_spent),
        )
        for r in result
    ]


async def top_selling_products(db: AsyncSession) -> List[ProductSales]:
    """Units sold and line revenue per product, best first"""
    revenue = func.sum(OrderItem.quantity * OrderItem.unit_price)
    stmt = (
        select(
            Product.product_id,
            Product.name,
            Product.price,
            func.sum(OrderItem.quantity).label("total_quantity_sold"),
            revenue.label("total_revenue"),
        )
        .join(OrderItem, OrderItem.product_id == Product.product_id)
        .group_by(Product.product_id, Product.name, Product.price)
        .order_by(revenue.desc(), Product.product_id)
    )
    result = await db.execute(stmt)
    return [
        ProductSales(
            product_id=r.product_id,
            name=r.name,
            price=money(r.price),
            total_quantity_sold=r.total_quantity_sold,
            total_revenue=money(r.total_revenue),
        )
        for r in result
    ]


async def reconcile_order_totals(db: AsyncSession) -> List[OrderReconciliation]:
    """
    Compare each order's stored amount with the sum of its line totals.

    The two are entered independently, so differences are expected and
    reported as-is.
    """
    line_totals = (
        select(
            OrderItem.order_id,
            func.sum(OrderItem.quantity * OrderItem.unit_price).label("line_total"),
        )
        .group_by(OrderItem.order_id)
        .subquery("line_totals")
    )
    stmt = (
        select(Order.order_id, Order.amount, line_totals.c.line_total)
        .join(line_totals, line_totals.c.order_id == Order.order_id)
        .order_by(Order.order_id)
    )
    result = await db.execute(stmt)

    rows = []
    for r in result:
        amount = money(r.amount)
        line_total = money(r.line_total)
        difference = None if amount is None else round(amount - line_total, 2)
        rows.append(
            OrderReconciliation(
                order_id=r.order_id,
                amount=amount,
                line_total=line_total,
                difference=difference,
                is_consistent=difference == 0,
            )
        )

    mismatched = sum(1 for r in rows if not r.is_consistent)
    if mismatched:
        logger.info("Order amounts differ from line totals", orders=mismatched, checked=len(rows))
    return rows


async def database_summary(db: AsyncSession) -> DatabaseSummary:
    """Engine name, server version, server time and catalog contents"""
    conn = await db.connection()
    now = (await db.execute(select(func.current_timestamp()))).scalar_one()

    def read_catalog(sync_conn):
        inspector = inspect(sync_conn)
        return sorted(inspector.get_table_names()), sorted(inspector.get_view_names())

    tables, views = await conn.run_sync(read_catalog)
    version_info = conn.dialect.server_version_info
    return DatabaseSummary(
        dialect=conn.dialect.name,
        server_version=".".join(str(v) for v in version_info) if version_info else None,
        current_time=now,
        tables=tables,
        views=views,
    )
