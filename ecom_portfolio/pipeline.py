"""
Pipeline Entry Point

Runs the two stages in order against one database:

1. Initializer: recreate schema, seed, verify
2. Reporter: evolve schema, load time-series orders, build the KPI view,
   run every analytic report

Usage:
    ecom-portfolio                       # both stages
    ecom-portfolio --stage init          # initializer only
    ecom-portfolio --stage report        # reporter only (schema must exist)
    ecom-portfolio --database-url sqlite+aiosqlite:///portfolio.db
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Dict, Optional

import polars as pl
import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ecom_portfolio.analytics import reports, verification
from ecom_portfolio.analytics.schemas import AnalyticsReport, InitializationReport
from ecom_portfolio.config.logging import configure_logging
from ecom_portfolio.database.connection import close_database, get_db, init_database
from ecom_portfolio.ingestion.seed_db import (
    analyze_orders,
    assign_user_cities,
    initialize_database,
    seed_reporting_orders,
)
from ecom_portfolio.migrations.schema_evolution import evolve_schema

logger = structlog.get_logger(__name__)

STAGES = ("all", "init", "report")


@dataclass
class PipelineResult:
    """Reports produced by the stages that ran"""
    initialization: Optional[InitializationReport] = None
    analytics: Optional[AnalyticsReport] = None


async def run_initializer(db: AsyncSession) -> InitializationReport:
    """Recreate and seed the schema, then run the verification queries"""
    inserted = await initialize_database(db)

    return InitializationReport(
        inserted={
            "users": inserted.users,
            "products": inserted.products,
            "orders": inserted.orders,
            "order_items": inserted.order_items,
        },
        table_counts=await verification.table_counts(db),
        orders_with_users=await verification.orders_with_users(db),
        order_item_details=await verification.order_item_details(db),
        search_hits=await verification.search_products(db),
        sales_by_user=await verification.sales_by_user(db),
        top_selling_products=await verification.top_selling_products(db),
        order_reconciliation=await verification.reconcile_order_totals(db),
        database_summary=await verification.database_summary(db),
    )


async def run_reporter(db: AsyncSession) -> AnalyticsReport:
    """Evolve the schema, load reporting data and run every report"""
    migration = await evolve_schema(db)
    await assign_user_cities(db)
    loaded = await seed_reporting_orders(db)
    await analyze_orders(db)
    await reports.create_sales_kpi_view(db)

    report = AnalyticsReport(
        schema_changes=[f"{c.kind.value}:{c.table}.{c.name}" for c in migration.applied],
        reporting_orders_loaded=loaded,
        top_spenders=await reports.top_spenders_per_city(db),
        year_filter_comparison=await reports.compare_year_filters(db),
        daily_kpis=await reports.daily_sales_kpis(db),
        moving_average=await reports.moving_average_revenue(db),
        year_over_year=await reports.year_over_year_revenue(db),
        cumulative_revenue=await reports.cumulative_revenue(db),
        spend_percentiles=await reports.spend_percentiles(db),
        order_gaps=await reports.order_gaps(db),
        performance_summary=await reports.performance_summary(db),
        order_indexes=await reports.order_indexes(db),
    )
    logger.info(
        "Analytics completed",
        schema_changes=len(report.schema_changes),
        reporting_orders=loaded,
        year_filters_match=report.year_filter_comparison.results_match,
    )
    return report


async def run_pipeline(url: Optional[str] = None, stage: str = "all") -> PipelineResult:
    """
    Run the requested stage(s) against the database at ``url``.

    The engine is opened for the run and disposed afterwards.
    """
    if stage not in STAGES:
        raise ValueError(f"Stage must be one of: {STAGES}")

    result = PipelineResult()
    await init_database(url)
    try:
        if stage in ("all", "init"):
            async with get_db() as db:
                result.initialization = await run_initializer(db)
        if stage in ("all", "report"):
            async with get_db() as db:
                result.analytics = await run_reporter(db)
    finally:
        await close_database()
    return result


# =============================================================================
# RENDERING
# =============================================================================

def _frame(value) -> pl.DataFrame:
    if isinstance(value, BaseModel):
        return pl.DataFrame([value.model_dump()], infer_schema_length=None)
    if isinstance(value, list):
        rows = [v.model_dump() if isinstance(v, BaseModel) else {"value": v} for v in value]
        return pl.DataFrame(rows, infer_schema_length=None)
    if isinstance(value, dict):
        return pl.DataFrame({"name": list(value), "value": list(value.values())})
    return pl.DataFrame({"value": [value]})


def report_frames(report: BaseModel) -> Dict[str, pl.DataFrame]:
    """One DataFrame per report section, keyed by section name"""
    frames: Dict[str, pl.DataFrame] = {}
    for name in type(report).model_fields:
        value = getattr(report, name)
        if name == "year_filter_comparison":
            frames[name] = pl.DataFrame(
                [
                    {"filter": "function", **value.function_filter.model_dump(exclude={"plan"})},
                    {"filter": "range", **value.range_filter.model_dump(exclude={"plan"})},
                ]
            )
            frames[f"{name}_plans"] = pl.DataFrame(
                {
                    "filter": ["function"] * len(value.function_filter.plan)
                    + ["range"] * len(value.range_filter.plan),
                    "plan": value.function_filter.plan + value.range_filter.plan,
                }
            )
            continue
        frames[name] = _frame(value)
    return frames


def render_report(report: BaseModel, out=None) -> None:
    """Print every section of a stage report as a table"""
    out = out or sys.stdout
    with pl.Config(tbl_rows=-1, tbl_cols=-1, fmt_str_lengths=120):
        for name, frame in report_frames(report).items():
            title = name.replace("_", " ").title()
            print(f"=== {title} ===", file=out)
            print(frame, file=out)
            print(file=out)


# =============================================================================
# CLI
# =============================================================================

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="E-commerce portfolio schema and analytics")
    parser.add_argument("--stage", choices=STAGES, default="all", help="Stage(s) to run")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (overrides settings)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        result = asyncio.run(run_pipeline(args.database_url, args.stage))
    except Exception as e:
        logger.exception("Pipeline failed", error_type=type(e).__name__)
        return 1

    for report in (result.initialization, result.analytics):
        if report is not None:
            render_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
