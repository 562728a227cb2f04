"""
Analytics Row Models

Typed rows returned by the verification queries and the reports.
Monetary values are floats rounded to cents.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# VERIFICATION
# =============================================================================

class TableCount(BaseModel):
    """Row count for one integrity metric"""
    metric: str
    count: int


class OrderWithUser(BaseModel):
    """Order joined to its owner"""
    order_id: int
    username: str
    order_date: datetime
    status: str
    amount: Optional[float]


class OrderItemDetail(BaseModel):
    """Order line with user and product context"""
    order_id: int
    username: str
    product_name: str
    quantity: int
    unit_price: float
    subtotal: float


class ProductSearchHit(BaseModel):
    """Product matched by description search"""
    product_id: int
    name: str
    price: float
    description: Optional[str]


class UserSalesTotal(BaseModel):
    """Order count and spend per user, all statuses"""
    user_id: int
    username: str
    total_orders: int
    total_spent: float


class ProductSales(BaseModel):
    """Units and line revenue per product"""
    product_id: int
    name: str
    price: float
    total_quantity_sold: int
    total_revenue: float


class OrderReconciliation(BaseModel):
    """Stored order amount against the sum of its line totals"""
    order_id: int
    amount: Optional[float]
    line_total: float
    difference: Optional[float]
    is_consistent: bool


class DatabaseSummary(BaseModel):
    """Engine and catalog overview"""
    dialect: str
    server_version: Optional[str]
    current_time: Optional[datetime]
    tables: List[str]
    views: List[str]


# =============================================================================
# REPORTS
# =============================================================================

class CitySpenderRank(BaseModel):
    """User spend ranked within their city"""
    city: Optional[str]
    username: str
    total_spent: float
    spend_rank: int


class YearFilterResult(BaseModel):
    """Aggregate and plan for one way of filtering orders by year"""
    predicate: str
    total_orders: int
    total_revenue: Optional[float]
    plan: List[str] = Field(default_factory=list)


class QueryPlanComparison(BaseModel):
    """Function-on-column filter against the equivalent range filter"""
    year: int
    function_filter: YearFilterResult
    range_filter: YearFilterResult

    @property
    def results_match(self) -> bool:
        return (
            self.function_filter.total_orders == self.range_filter.total_orders
            and self.function_filter.total_revenue == self.range_filter.total_revenue
        )


class DailySalesKpi(BaseModel):
    """One row of v_sales_kpi_summary"""
    report_date: date
    total_daily_orders: int
    total_revenue: float
    average_order_value: float


class MovingAveragePoint(BaseModel):
    """Daily revenue with trailing average"""
    report_date: date
    daily_revenue: float
    moving_avg: float


class MonthlyRevenueComparison(BaseModel):
    """Calendar month revenue, latest year against the one before"""
    month: int
    current_year: Optional[float]
    previous_year: Optional[float]
    revenue_growth: Optional[float]


class CumulativeRevenuePoint(BaseModel):
    """Daily revenue with running total"""
    report_date: date
    daily_revenue: float
    cumulative_revenue: float


class SpendPercentile(BaseModel):
    """User spend position within their city"""
    city: Optional[str]
    username: str
    total_spent: float
    percentile_rank: float
    quartile: int


class OrderGap(BaseModel):
    """A completed order compared with the same user's previous one"""
    user_id: int
    order_id: int
    order_sequence: int
    order_date: datetime
    current_order_amount: float
    previous_order_amount: Optional[float]
    previous_order_date: Optional[datetime]
    days_since_last_order: Optional[int]


class PerformanceSummary(BaseModel):
    """Store-wide totals"""
    total_users: int
    total_products: int
    total_orders: int
    total_cities: int
    total_revenue: Optional[float]
    avg_order_value: Optional[float]


class IndexInfo(BaseModel):
    """An index on a table"""
    name: str
    columns: List[str]
    unique: bool = False


# =============================================================================
# STAGE REPORTS
# =============================================================================

class InitializationReport(BaseModel):
    """Everything the initializer stage produced"""
    inserted: Dict[str, int]
    table_counts: List[TableCount]
    orders_with_users: List[OrderWithUser]
    order_item_details: List[OrderItemDetail]
    search_hits: List[ProductSearchHit]
    sales_by_user: List[UserSalesTotal]
    top_selling_products: List[ProductSales]
    order_reconciliation: List[OrderReconciliation]
    database_summary: DatabaseSummary


class AnalyticsReport(BaseModel):
    """Everything the reporter stage produced"""
    schema_changes: List[str]
    reporting_orders_loaded: int
    top_spenders: List[CitySpenderRank]
    year_filter_comparison: QueryPlanComparison
    daily_kpis: List[DailySalesKpi]
    moving_average: List[MovingAveragePoint]
    year_over_year: List[MonthlyRevenueComparison]
    cumulative_revenue: List[CumulativeRevenuePoint]
    spend_percentiles: List[SpendPercentile]
    order_gaps: List[OrderGap]
    performance_summary: PerformanceSummary
    order_indexes: List[IndexInfo]
