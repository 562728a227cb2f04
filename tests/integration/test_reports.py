"""
Integration Tests - Schema Evolution and Analytics Reports
"""
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import insert, select, text, update

from ecom_portfolio.analytics import reports
from ecom_portfolio.database.models import Order, OrderStatus, User, users_with_city
from ecom_portfolio.ingestion.seed_db import seed_reporting_orders
from ecom_portfolio.migrations.schema_evolution import ChangeKind, evolve_schema


class TestSchemaEvolution:
    """Tests for evolve_schema against a live catalog"""

    async def test_first_run_applies_changes(self, seeded_db):
        result = await evolve_schema(seeded_db)

        assert result.changed
        assert [(c.kind, c.name) for c in result.applied] == [
            (ChangeKind.ADD_COLUMN, "city"),
            (ChangeKind.CREATE_INDEX, "idx_order_date"),
        ]

        cities = (await seeded_db.execute(select(users_with_city.c.city))).scalars().all()
        assert cities == ["Unknown"] * 5

    async def test_second_run_is_a_no_op(self, seeded_db):
        await evolve_schema(seeded_db)

        result = await evolve_schema(seeded_db)

        assert result.planned == []
        assert not result.changed

    async def test_wrong_index_definition_is_replaced(self, seeded_db):
        await seeded_db.execute(text("CREATE INDEX idx_order_date ON orders (user_id)"))
        await seeded_db.commit()

        result = await evolve_schema(seeded_db)

        assert [c.kind for c in result.applied] == [
            ChangeKind.ADD_COLUMN,
            ChangeKind.DROP_INDEX,
            ChangeKind.CREATE_INDEX,
        ]
        indexes = {ix.name: ix.columns for ix in await reports.order_indexes(seeded_db)}
        assert indexes["idx_order_date"] == ["order_date"]


class TestRanking:
    """Tests for the dense-rank and percentile reports"""

    async def test_top_spenders_per_city(self, reporting_db):
        rows = await reports.top_spenders_per_city(reporting_db)

        assert [(r.city, r.username, r.spend_rank) for r in rows] == [
            ("Chicago", "sarah_jones", 1),
            ("Los Angeles", "jane_smith", 1),
            ("Los Angeles", "david_brown", 2),
            ("New York", "john_doe", 1),
            ("New York", "mike_wilson", 2),
        ]
        assert rows[0].total_spent == pytest.approx(1169.91)
        assert rows[3].total_spent == pytest.approx(1084.91)

    async def test_tied_spenders_share_a_rank(self, test_db):
        await evolve_schema(test_db)
        await test_db.execute(
            insert(User).values([
                {"username": "ann", "email": "ann@example.com"},
                {"username": "ben", "email": "ben@example.com"},
                {"username": "cy", "email": "cy@example.com"},
            ])
        )
        await test_db.execute(update(users_with_city).values(city="Boston"))
        await test_db.execute(
            insert(Order).values([
                {"user_id": 1, "status": OrderStatus.COMPLETED, "amount": Decimal("100.00")},
                {"user_id": 2, "status": OrderStatus.COMPLETED, "amount": Decimal("100.00")},
                {"user_id": 3, "status": OrderStatus.COMPLETED, "amount": Decimal("50.00")},
                {"user_id": 3, "status": OrderStatus.PENDING, "amount": Decimal("500.00")},
            ])
        )
        await test_db.commit()

        rows = await reports.top_spenders_per_city(test_db, limit=2)
        assert [(r.username, r.spend_rank) for r in rows] == [("ann", 1), ("ben", 1), ("cy", 2)]

        rows = await reports.top_spenders_per_city(test_db, limit=1)
        assert [r.username for r in rows] == ["ann", "ben"]

    async def test_spend_percentiles(self, reporting_db):
        rows = await reports.spend_percentiles(reporting_db)

        assert [(r.city, r.username, r.percentile_rank, r.quartile) for r in rows] == [
            ("Chicago", "sarah_jones", 0.0, 1),
            ("Los Angeles", "jane_smith", 1.0, 2),
            ("Los Angeles", "david_brown", 0.0, 1),
            ("New York", "john_doe", 1.0, 2),
            ("New York", "mike_wilson", 0.0, 1),
        ]


    async def test_zero_limit_rejected(self, reporting_db):
        """An explicit zero is not replaced by the configured cutoff"""
        with pytest.raises(ValueError, match="limit"):
            await reports.top_spenders_per_city(reporting_db, limit=0)

    async def test_zero_buckets_rejected(self, reporting_db):
        with pytest.raises(ValueError, match="buckets"):
            await reports.spend_percentiles(reporting_db, buckets=0)

    async def test_explicit_limit_used(self, reporting_db):
        rows = await reports.top_spenders_per_city(reporting_db, limit=1)

        assert all(r.spend_rank == 1 for r in rows)
        assert len(rows) == 3


class TestYearFilters:
    """Tests for the function-versus-range filter comparison"""

    async def test_filters_agree(self, reporting_db):
        comparison = await reports.compare_year_filters(reporting_db, 2026)

        assert comparison.results_match
        assert comparison.function_filter.total_orders == 26
        assert comparison.range_filter.total_revenue == pytest.approx(4189.65)

    async def test_plans_differ_in_index_use(self, reporting_db):
        comparison = await reports.compare_year_filters(reporting_db, 2026)

        assert any("SCAN" in line for line in comparison.function_filter.plan)
        assert any("idx_order_date" in line for line in comparison.range_filter.plan)

    async def test_year_without_orders(self, reporting_db):
        comparison = await reports.compare_year_filters(reporting_db, 2025)

        assert comparison.results_match
        assert comparison.function_filter.total_orders == 0
        assert comparison.function_filter.total_revenue is None


class TestSalesKpiView:
    """Tests for v_sales_kpi_summary"""

    async def test_daily_kpis(self, reporting_db):
        rows = {r.report_date: r for r in await reports.daily_sales_kpis(reporting_db)}

        busiest = rows[date(2026, 1, 14)]
        assert busiest.total_daily_orders == 3
        assert busiest.total_revenue == pytest.approx(299.95)
        assert busiest.average_order_value == pytest.approx(99.98)
        assert date(2026, 1, 7) not in rows

    async def test_view_recomputes_on_read(self, reporting_db):
        await reporting_db.execute(
            insert(Order).values(
                user_id=4,
                order_date=datetime(2026, 3, 1, 12, 0),
                status=OrderStatus.COMPLETED,
                amount=Decimal("10.00"),
            )
        )
        await reporting_db.commit()

        rows = await reports.daily_sales_kpis(reporting_db)

        assert rows[-1].report_date == date(2026, 3, 1)
        assert rows[-1].total_daily_orders == 1

    async def test_view_can_be_recreated(self, reporting_db):
        await reports.create_sales_kpi_view(reporting_db)

        assert len(await reports.daily_sales_kpis(reporting_db)) > 0


class TestTimeSeries:
    """Tests for moving average, year-over-year and cumulative reports"""

    async def test_moving_average(self, reporting_db):
        rows = await reports.moving_average_revenue(reporting_db)

        assert rows[0].report_date == date(2026, 1, 1)
        assert rows[0].moving_avg == pytest.approx(159.99)
        assert rows[6].moving_avg == pytest.approx(154.99, abs=0.01)
        assert rows[7].report_date == date(2026, 1, 10)
        assert rows[7].moving_avg == pytest.approx(146.42, abs=0.01)

    async def test_zero_window_rejected(self, reporting_db):
        with pytest.raises(ValueError, match="window_days"):
            await reports.moving_average_revenue(reporting_db, window_days=0)

    async def test_single_day_window(self, reporting_db):
        rows = await reports.moving_average_revenue(reporting_db, window_days=1)

        assert all(r.moving_avg == r.daily_revenue for r in rows)

    async def test_year_over_year_without_history(self, reporting_db):
        rows = await reports.year_over_year_revenue(reporting_db)

        assert [r.month for r in rows] == [1, 2]
        assert rows[0].current_year == pytest.approx(2569.76)
        assert rows[1].current_year == pytest.approx(1619.89)
        assert all(r.previous_year is None and r.revenue_growth is None for r in rows)

    async def test_cumulative_revenue(self, reporting_db):
        rows = await reports.cumulative_revenue(reporting_db)

        assert rows[0].cumulative_revenue == pytest.approx(159.99)
        assert rows[-1].cumulative_revenue == pytest.approx(4189.65)
        totals = [r.cumulative_revenue for r in rows]
        assert totals == sorted(totals)

    async def test_cumulative_revenue_since(self, reporting_db):
        rows = await reports.cumulative_revenue(reporting_db, since=date(2026, 2, 1))

        assert rows[0].report_date == date(2026, 2, 1)
        assert rows[0].cumulative_revenue == pytest.approx(239.98)
        assert rows[-1].cumulative_revenue == pytest.approx(1619.89)

    async def test_order_gaps(self, reporting_db):
        rows = await reports.order_gaps(reporting_db)

        assert len(rows) == 21
        assert all(r.order_sequence > 1 for r in rows)
        assert all(r.previous_order_amount is not None for r in rows)

        john = [r for r in rows if r.user_id == 1]
        assert len(john) == 5
        assert john[0].order_date == datetime(2026, 1, 6, 13, 20)
        assert john[0].previous_order_amount == pytest.approx(159.99)
        assert john[0].days_since_last_order == 5
        assert john[1].order_id == 1
        assert john[1].days_since_last_order == 8


class TestSummary:
    """Tests for performance_summary and order_indexes"""

    async def test_performance_summary(self, reporting_db):
        summary = await reports.performance_summary(reporting_db)

        assert summary.total_users == 5
        assert summary.total_products == 10
        assert summary.total_orders == 33
        assert summary.total_cities == 3
        assert summary.total_revenue == pytest.approx(4189.65)
        assert summary.avg_order_value == pytest.approx(161.14)

    async def test_reporting_batch_appends(self, reporting_db):
        """Loading the reporting batch again duplicates it"""
        await seed_reporting_orders(reporting_db)

        summary = await reports.performance_summary(reporting_db)
        assert summary.total_orders == 58

    async def test_order_indexes(self, reporting_db):
        names = [ix.name for ix in await reports.order_indexes(reporting_db)]

        assert names == ["idx_order_date", "idx_user_order"]
