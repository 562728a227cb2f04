"""
Unit Tests - Custom SQL Constructs
"""
from sqlalchemy import DateTime, Integer, String, column, select, table
from sqlalchemy.dialects import mysql, postgresql, sqlite

from ecom_portfolio.analytics.reports import sales_kpi_select
from ecom_portfolio.database.constructs import CreateView, DropView, Explain, days_between

events = table(
    "events",
    column("event_id", Integer),
    column("kind", String),
    column("happened_at", DateTime),
    column("previous_at", DateTime),
)


def compiled(element, dialect) -> str:
    return str(element.compile(dialect=dialect))


class TestViews:
    """Tests for CreateView and DropView"""

    def test_create_view_inlines_parameters(self):
        """View bodies cannot carry bound parameters"""
        stmt = select(events.c.event_id).where(events.c.kind == "click")

        sql = compiled(CreateView("v_clicks", stmt), sqlite.dialect())

        assert sql.startswith("CREATE VIEW v_clicks AS SELECT")
        assert "'click'" in sql

    def test_kpi_view_filters_completed(self):
        sql = compiled(CreateView("v_sales_kpi_summary", sales_kpi_select()), postgresql.dialect())

        assert "'completed'" in sql
        assert "GROUP BY" in sql

    def test_drop_view_if_exists(self):
        assert compiled(DropView("v_clicks"), sqlite.dialect()) == "DROP VIEW IF EXISTS v_clicks"
        assert compiled(DropView("v_clicks", if_exists=False), sqlite.dialect()) == "DROP VIEW v_clicks"


class TestExplain:
    """Tests for Explain"""

    def test_sqlite_uses_query_plan(self):
        stmt = select(events.c.event_id).where(events.c.event_id == 5)

        sql = compiled(Explain(stmt), sqlite.dialect())

        assert sql.startswith("EXPLAIN QUERY PLAN SELECT")
        assert "?" in sql

    def test_postgresql_renders_literals(self):
        stmt = select(events.c.event_id).where(events.c.event_id == 5)

        sql = compiled(Explain(stmt), postgresql.dialect())

        assert sql.startswith("EXPLAIN SELECT")
        assert "= 5" in sql


class TestDaysBetween:
    """Tests for days_between per dialect"""

    def test_postgresql_subtracts_dates(self):
        sql = compiled(days_between(events.c.happened_at, events.c.previous_at), postgresql.dialect())

        assert sql == "(CAST(events.happened_at AS DATE) - CAST(events.previous_at AS DATE))"

    def test_sqlite_uses_julianday(self):
        sql = compiled(days_between(events.c.happened_at, events.c.previous_at), sqlite.dialect())

        assert sql == (
            "CAST(julianday(date(events.happened_at)) - "
            "julianday(date(events.previous_at)) AS INTEGER)"
        )

    def test_mysql_uses_datediff(self):
        sql = compiled(days_between(events.c.happened_at, events.c.previous_at), mysql.dialect())

        assert sql == "DATEDIFF(events.happened_at, events.previous_at)"

    def test_result_type_is_integer(self):
        assert isinstance(days_between(events.c.happened_at, events.c.previous_at).type, Integer)
