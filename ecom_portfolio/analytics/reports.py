"""
Analytics Reports

Read-only analytical queries over the store, built as SQLAlchemy Core
expressions (CTEs and window functions) so the same code runs on every
supported engine. Each report is self-contained; the KPI view is the only
shared side effect.

Reports that reference users.city expect the analytics schema evolution to
have run.
"""

from datetime import date, datetime, time
from typing import List, Optional

import structlog
from sqlalchemy import (
    Date,
    DateTime,
    Integer,
    Numeric,
    case,
    cast,
    column,
    distinct,
    extract,
    func,
    inspect,
    literal_column,
    select,
    table,
)
from sqlalchemy.ext.asyncio import AsyncSession

from ecom_portfolio.analytics.schemas import (
    CitySpenderRank,
    CumulativeRevenuePoint,
    DailySalesKpi,
    IndexInfo,
    MonthlyRevenueComparison,
    MovingAveragePoint,
    OrderGap,
    PerformanceSummary,
    QueryPlanComparison,
    SpendPercentile,
    YearFilterResult,
)
from ecom_portfolio.config import get_settings
from ecom_portfolio.database.constructs import CreateView, DropView, Explain, days_between
from ecom_portfolio.database.models import (
    Order,
    OrderStatus,
    Product,
    SALES_KPI_VIEW,
    User,
    users_with_city,
)

logger = structlog.get_logger(__name__)
settings = get_settings()

sales_kpi_view = table(
    SALES_KPI_VIEW,
    column("report_date", Date),
    column("total_daily_orders", Integer),
    column("total_revenue", Numeric(12, 2)),
    column("average_order_value", Numeric(12, 2)),
)


def money(value) -> Optional[float]:
    """Round a monetary aggregate to cents"""
    if value is None:
        return None
    return round(float(value), 2)


def _require_positive(name: str, value: int) -> None:
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")


def _completed():
    return Order.status == OrderStatus.COMPLETED


def _order_day():
    return func.date(Order.order_date, type_=Date)


def _daily_revenue(since: Optional[datetime] = None):
    """Completed revenue per calendar day"""
    day = _order_day()
    stmt = (
        select(
            day.label("report_date"),
            func.sum(Order.amount).label("daily_revenue"),
        )
        .where(_completed())
        .group_by(day)
    )
    if since is not None:
        stmt = stmt.where(Order.order_date >= since)
    return stmt.cte("daily_sales")


def _completed_spend_by_user():
    u = users_with_city
    return (
        select(
            u.c.user_id,
            u.c.username,
            u.c.city,
            func.sum(Order.amount).label("total_spent"),
        )
        .select_from(u)
        .join(Order, Order.user_id == u.c.user_id)
        .where(_completed())
        .group_by(u.c.user_id, u.c.username, u.c.city)
    )


# =============================================================================
# RANKING
# =============================================================================

async def top_spenders_per_city(db: AsyncSession, limit: Optional[int] = None) -> List[CitySpenderRank]:
    """
    Top spenders per city by total completed spend.

    Dense rank: tied users share a rank and every user whose rank is within
    ``limit`` is returned, so a city can contribute more than ``limit`` rows.
    """
    if limit is None:
        limit = settings.reporting.top_spenders_per_city
    _require_positive("limit", limit)

    user_spending = _completed_spend_by_user().cte("user_spending")
    ranked = select(
        *user_spending.c,
        func.dense_rank().over(
            partition_by=user_spending.c.city,
            order_by=user_spending.c.total_spent.desc(),
        ).label("spend_rank"),
    ).cte("ranked_spending")

    stmt = (
        select(ranked.c.city, ranked.c.username, ranked.c.total_spent, ranked.c.spend_rank)
        .where(ranked.c.spend_rank <= limit)
        .order_by(ranked.c.city, ranked.c.spend_rank, ranked.c.username)
    )
    result = await db.execute(stmt)
    rows = [
        CitySpenderRank(
            city=r.city,
            username=r.username,
            total_spent=money(r.total_spent),
            spend_rank=r.spend_rank,
        )
        for r in result
    ]
    logger.info("Top spenders per city computed", rows=len(rows), limit=limit)
    return rows


async def spend_percentiles(db: AsyncSession, buckets: Optional[int] = None) -> List[SpendPercentile]:
    """Percent rank and n-tile bucket of each user's completed spend within their city"""
    if buckets is None:
        buckets = settings.reporting.percentile_buckets
    _require_positive("buckets", buckets)

    u = users_with_city
    city_spending = (
        select(u.c.city, u.c.username, func.sum(Order.amount).label("total_spent"))
        .select_from(u)
        .join(Order, Order.user_id == u.c.user_id)
        .where(_completed())
        .group_by(u.c.city, u.c.username)
        .cte("city_spending")
    )
    window = {
        "partition_by": city_spending.c.city,
        "order_by": city_spending.c.total_spent,
    }
    stmt = select(
        city_spending.c.city,
        city_spending.c.username,
        city_spending.c.total_spent,
        func.percent_rank().over(**window).label("percentile_rank"),
        func.ntile(literal_column(str(int(buckets)))).over(**window).label("quartile"),
    ).order_by(city_spending.c.city, city_spending.c.total_spent.desc())

    result = await db.execute(stmt)
    return [
        SpendPercentile(
            city=r.city,
            username=r.username,
            total_spent=money(r.total_spent),
            percentile_rank=float(r.percentile_rank),
            quartile=r.quartile,
        )
        for r in result
    ]


# =============================================================================
# QUERY OPTIMIZATION CASE STUDY
# =============================================================================

async def _explain(db: AsyncSession, statement) -> List[str]:
    conn = await db.connection()
    result = await conn.execute(Explain(statement))
    return [str(row[-1]) for row in result]


async def compare_year_filters(db: AsyncSession, year: Optional[int] = None) -> QueryPlanComparison:
    """
    Count and sum completed orders of one year, twice.

    The first filter wraps the indexed column in a function, which keeps
    the planner from using idx_order_date. The second is the equivalent
    half-open range, which can use it. Both must agree.
    """
    if year is None:
        year = settings.reporting.optimization_year
    orders = Order.__table__

    by_function = extract("year", orders.c.order_date) == year
    by_range = (orders.c.order_date >= datetime(year, 1, 1)) & (orders.c.order_date < datetime(year + 1, 1, 1))

    def totals(predicate):
        return select(
            func.count(orders.c.order_id).label("total_orders"),
            func.sum(orders.c.amount).label("total_revenue"),
        ).where(predicate, _completed())

    filters = {}
    for name, predicate, plan_stmt in (
        ("function", by_function, select(orders).where(by_function)),
        ("range", by_range, select(orders.c.order_id, orders.c.user_id, orders.c.status).where(by_range)),
    ):
        row = (await db.execute(totals(predicate))).one()
        filters[name] = YearFilterResult(
            predicate=str(predicate),
            total_orders=row.total_orders,
            total_revenue=money(row.total_revenue),
            plan=await _explain(db, plan_stmt),
        )

    comparison = QueryPlanComparison(
        year=year,
        function_filter=filters["function"],
        range_filter=filters["range"],
    )
    if not comparison.results_match:
        logger.warning(
            "Year filters disagree",
            function=filters["function"].model_dump(exclude={"plan"}),
            range=filters["range"].model_dump(exclude={"plan"}),
        )
    return comparison


# =============================================================================
# KPI VIEW
# =============================================================================

def sales_kpi_select():
    """Per-day completed order count, revenue and average order value"""
    day = _order_day()
    return (
        select(
            day.label("report_date"),
            func.count(Order.order_id).label("total_daily_orders"),
            func.sum(Order.amount).label("total_revenue"),
            func.avg(Order.amount).label("average_order_value"),
        )
        .where(_completed())
        .group_by(day)
    )


async def create_sales_kpi_view(db: AsyncSession) -> None:
    """Drop and recreate v_sales_kpi_summary"""
    conn = await db.connection()
    await conn.execute(DropView(SALES_KPI_VIEW))
    await conn.execute(CreateView(SALES_KPI_VIEW, sales_kpi_select()))
    await db.commit()
    logger.info("View created", view=SALES_KPI_VIEW)


async def daily_sales_kpis(db: AsyncSession) -> List[DailySalesKpi]:
    """Read the KPI view; it recomputes from orders on every read"""
    v = sales_kpi_view
    result = await db.execute(select(v).order_by(v.c.report_date))
    return [
        DailySalesKpi(
            report_date=r.report_date,
            total_daily_orders=r.total_daily_orders,
            total_revenue=money(r.total_revenue),
            average_order_value=money(r.average_order_value),
        )
        for r in result
    ]


# =============================================================================
# TIME SERIES
# =============================================================================

async def moving_average_revenue(db: AsyncSession, window_days: Optional[int] = None) -> List[MovingAveragePoint]:
    """
    Trailing average of daily completed revenue.

    The frame is the current row plus ``window_days - 1`` preceding rows;
    early rows average over the rows that exist.
    """
    if window_days is None:
        window_days = settings.reporting.moving_average_days
    _require_positive("window_days", window_days)
    daily = _daily_revenue()

    stmt = select(
        daily.c.report_date,
        daily.c.daily_revenue,
        func.avg(daily.c.daily_revenue).over(
            order_by=daily.c.report_date,
            rows=(-(window_days - 1), 0),
        ).label("moving_avg"),
    ).order_by(daily.c.report_date)

    result = await db.execute(stmt)
    return [
        MovingAveragePoint(
            report_date=r.report_date,
            daily_revenue=money(r.daily_revenue),
            moving_avg=money(r.moving_avg),
        )
        for r in result
    ]


async def year_over_year_revenue(db: AsyncSession) -> List[MonthlyRevenueComparison]:
    """Each calendar month's revenue in its latest year against the previous year present"""
    year = cast(extract("year", Order.order_date), Integer)
    month = cast(extract("month", Order.order_date), Integer)

    yearly = (
        select(
            year.label("year"),
            month.label("month"),
            func.sum(Order.amount).label("monthly_revenue"),
        )
        .where(_completed())
        .group_by(year, month)
        .cte("yearly_sales")
    )
    ranked = select(
        *yearly.c,
        func.row_number().over(
            partition_by=yearly.c.month,
            order_by=yearly.c.year.desc(),
        ).label("year_rank"),
    ).cte("ranked_years")

    current = func.max(case((ranked.c.year_rank == 1, ranked.c.monthly_revenue)))
    previous = func.max(case((ranked.c.year_rank == 2, ranked.c.monthly_revenue)))

    stmt = (
        select(
            ranked.c.month,
            current.label("current_year"),
            previous.label("previous_year"),
            (current - previous).label("revenue_growth"),
        )
        .group_by(ranked.c.month)
        .order_by(ranked.c.month)
    )
    result = await db.execute(stmt)
    return [
        MonthlyRevenueComparison(
            month=r.month,
            current_year=money(r.current_year),
            previous_year=money(r.previous_year),
            revenue_growth=money(r.revenue_growth),
        )
        for r in result
    ]


async def cumulative_revenue(db: AsyncSession, since: Optional[date] = None) -> List[CumulativeRevenuePoint]:
    """Running total of daily completed revenue from ``since`` onwards"""
    if since is None:
        since = settings.reporting.cumulative_since
    daily = _daily_revenue(since=datetime.combine(since, time.min))

    stmt = select(
        daily.c.report_date,
        daily.c.daily_revenue,
        func.sum(daily.c.daily_revenue).over(
            order_by=daily.c.report_date,
            rows=(None, 0),
        ).label("cumulative_revenue"),
    ).order_by(daily.c.report_date)

    result = await db.execute(stmt)
    return [
        CumulativeRevenuePoint(
            report_date=r.report_date,
            daily_revenue=money(r.daily_revenue),
            cumulative_revenue=money(r.cumulative_revenue),
        )
        for r in result
    ]


async def order_gaps(db: AsyncSession) -> List[OrderGap]:
    """
    Each completed order against the same user's previous completed order.

    Sequence and lag are computed over all completed orders first, then the
    first order of every user (which has no predecessor) is filtered out.
    """
    per_user = {"partition_by": Order.user_id, "order_by": Order.order_date}

    user_orders = (
        select(
            Order.user_id,
            Order.order_id,
            Order.order_date,
            Order.amount,
            func.row_number().over(**per_user).label("order_sequence"),
            func.lag(Order.amount, 1, type_=Numeric(10, 2)).over(**per_user).label("previous_order_amount"),
            func.lag(Order.order_date, 1, type_=DateTime).over(**per_user).label("previous_order_date"),
        )
        .where(_completed())
        .cte("user_orders")
    )
    uo = user_orders.c
    stmt = (
        select(
            uo.user_id,
            uo.order_id,
            uo.order_sequence,
            uo.order_date,
            uo.amount,
            uo.previous_order_amount,
            uo.previous_order_date,
            days_between(uo.order_date, uo.previous_order_date).label("days_since_last_order"),
        )
        .where(uo.order_sequence > 1)
        .order_by(uo.user_id, uo.order_date)
    )
    result = await db.execute(stmt)
    return [
        OrderGap(
            user_id=r.user_id,
            order_id=r.order_id,
            order_sequence=r.order_sequence,
            order_date=r.order_date,
            current_order_amount=money(r.amount),
            previous_order_amount=money(r.previous_order_amount),
            previous_order_date=r.previous_order_date,
            days_since_last_order=r.days_since_last_order,
        )
        for r in result
    ]


# =============================================================================
# SUMMARY
# =============================================================================

async def performance_summary(db: AsyncSession) -> PerformanceSummary:
    """Store-wide counts and completed revenue"""
    def scalar(stmt):
        return stmt.scalar_subquery()

    stmt = select(
        scalar(select(func.count()).select_from(User)).label("total_users"),
        scalar(select(func.count()).select_from(Product)).label("total_products"),
        scalar(select(func.count()).select_from(Order)).label("total_orders"),
        scalar(select(func.count(distinct(users_with_city.c.city)))).label("total_cities"),
        scalar(select(func.sum(Order.amount)).where(_completed())).label("total_revenue"),
        scalar(select(func.avg(Order.amount)).where(_completed())).label("avg_order_value"),
    )
    r = (await db.execute(stmt)).one()
    return PerformanceSummary(
        total_users=r.total_users,
        total_products=r.total_products,
        total_orders=r.total_orders,
        total_cities=r.total_cities,
        total_revenue=money(r.total_revenue),
        avg_order_value=money(r.avg_order_value),
    )


async def order_indexes(db: AsyncSession) -> List[IndexInfo]:
    """Indexes currently defined on orders"""
    conn = await db.connection()

    def read(sync_conn):
        return inspect(sync_conn).get_indexes(Order.__tablename__)

    indexes = await conn.run_sync(read)
    return [
        IndexInfo(name=ix["name"], columns=list(ix["column_names"]), unique=bool(ix.get("unique")))
        for ix in sorted(indexes, key=lambda ix: ix["name"])
    ]
