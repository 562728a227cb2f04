"""
Custom SQL Constructs

Dialect-aware building blocks that SQLAlchemy Core does not ship:

- CreateView / DropView: DDL for plain (non-materialized) views
- Explain: wraps any SELECT in the dialect's plan-inspection statement
- days_between: whole calendar days between two timestamps
"""

from sqlalchemy import Integer
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.schema import DDLElement
from sqlalchemy.sql.expression import ClauseElement, Executable, FunctionElement


# =============================================================================
# VIEWS
# =============================================================================

class CreateView(DDLElement):
    """CREATE VIEW <name> AS <select>"""

    inherit_cache = False

    def __init__(self, name: str, selectable):
        self.name = name
        self.selectable = selectable


class DropView(DDLElement):
    """DROP VIEW [IF EXISTS] <name>"""

    inherit_cache = False

    def __init__(self, name: str, if_exists: bool = True):
        self.name = name
        self.if_exists = if_exists


@compiles(CreateView)
def _compile_create_view(element, compiler, **kw):
    body = compiler.sql_compiler.process(element.selectable, literal_binds=True)
    return f"CREATE VIEW {compiler.preparer.quote(element.name)} AS {body}"


@compiles(DropView)
def _compile_drop_view(element, compiler, **kw):
    guard = "IF EXISTS " if element.if_exists else ""
    return f"DROP VIEW {guard}{compiler.preparer.quote(element.name)}"


# =============================================================================
# QUERY PLANS
# =============================================================================

class Explain(Executable, ClauseElement):
    """Plan inspection for a statement; rows are the engine's plan output"""

    inherit_cache = False

    def __init__(self, statement):
        self.statement = statement


@compiles(Explain)
def _compile_explain(element, compiler, **kw):
    # server-side EXPLAIN cannot always take bound parameters
    kw["literal_binds"] = True
    return "EXPLAIN " + compiler.process(element.statement, **kw)


@compiles(Explain, "sqlite")
def _compile_explain_sqlite(element, compiler, **kw):
    return "EXPLAIN QUERY PLAN " + compiler.process(element.statement, **kw)


# =============================================================================
# DATE ARITHMETIC
# =============================================================================

class days_between(FunctionElement):
    """Whole days from ``start`` to ``end``, time of day ignored"""

    type = Integer()
    name = "days_between"
    inherit_cache = True

    def __init__(self, end, start):
        super().__init__(end, start)


@compiles(days_between)
def _compile_days_between(element, compiler, **kw):
    end, start = list(element.clauses)
    return "(CAST({} AS DATE) - CAST({} AS DATE))".format(
        compiler.process(end, **kw), compiler.process(start, **kw)
    )


@compiles(days_between, "sqlite")
def _compile_days_between_sqlite(element, compiler, **kw):
    end, start = list(element.clauses)
    return "CAST(julianday(date({})) - julianday(date({})) AS INTEGER)".format(
        compiler.process(end, **kw), compiler.process(start, **kw)
    )


@compiles(days_between, "mysql")
def _compile_days_between_mysql(element, compiler, **kw):
    end, start = list(element.clauses)
    return "DATEDIFF({}, {})".format(
        compiler.process(end, **kw), compiler.process(start, **kw)
    )
