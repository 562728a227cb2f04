"""
Analytics Module
"""
from .reports import (
    compare_year_filters,
    create_sales_kpi_view,
    cumulative_revenue,
    daily_sales_kpis,
    moving_average_revenue,
    order_gaps,
    spend_percentiles,
    top_spenders_per_city,
    year_over_year_revenue,
)
from .schemas import AnalyticsReport, InitializationReport

__all__ = [
    "AnalyticsReport",
    "InitializationReport",
    "compare_year_filters",
    "create_sales_kpi_view",
    "cumulative_revenue",
    "daily_sales_kpis",
    "moving_average_revenue",
    "order_gaps",
    "spend_percentiles",
    "top_spenders_per_city",
    "year_over_year_revenue",
]
