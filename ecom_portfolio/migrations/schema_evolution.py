"""
Guarded Schema Evolution

Brings the live schema up to the shape the analytics reports need:

- users.city VARCHAR(50) DEFAULT 'Unknown'
- idx_order_date ON orders(order_date)

The step is declarative: the desired state is compared with the state read
from the catalog through the SQLAlchemy inspector, and only the difference is
applied. Running it against an already-evolved schema plans nothing.

The existence check and the DDL are not atomic. The step assumes it is the
only writer, which holds for the one-shot pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger(__name__)


class ChangeKind(str, Enum):
    """Kinds of schema change the planner can emit"""
    ADD_COLUMN = "add_column"
    DROP_INDEX = "drop_index"
    CREATE_INDEX = "create_index"


@dataclass(frozen=True)
class ColumnSpec:
    """A column that must exist"""
    table: str
    name: str
    ddl_type: str
    default: Optional[str] = None

    def add_sql(self) -> str:
        sql = f"ALTER TABLE {self.table} ADD COLUMN {self.name} {self.ddl_type}"
        if self.default is not None:
            sql += " DEFAULT '{}'".format(self.default.replace("'", "''"))
        return sql


@dataclass(frozen=True)
class IndexSpec:
    """An index that must exist with exactly these columns"""
    table: str
    name: str
    columns: Tuple[str, ...]

    def create_sql(self) -> str:
        return f"CREATE INDEX {self.name} ON {self.table} ({', '.join(self.columns)})"


@dataclass(frozen=True)
class SchemaChange:
    """One planned DDL action"""
    kind: ChangeKind
    table: str
    name: str
    sql: str


@dataclass
class SchemaState:
    """Columns and indexes per table, as introspected"""
    columns: Dict[str, List[str]] = field(default_factory=dict)
    indexes: Dict[str, Dict[str, Tuple[str, ...]]] = field(default_factory=dict)


@dataclass
class MigrationResult:
    """Outcome of one evolution run"""
    planned: List[SchemaChange]
    applied: List[SchemaChange]

    @property
    def changed(self) -> bool:
        return bool(self.applied)


DESIRED_COLUMNS: List[ColumnSpec] = [
    ColumnSpec(table="users", name="city", ddl_type="VARCHAR(50)", default="Unknown"),
]

DESIRED_INDEXES: List[IndexSpec] = [
    IndexSpec(table="orders", name="idx_order_date", columns=("order_date",)),
]


def _drop_index_sql(dialect_name: str, index: IndexSpec) -> str:
    if dialect_name in ("mysql", "mariadb"):
        return f"DROP INDEX {index.name} ON {index.table}"
    return f"DROP INDEX {index.name}"


def plan_schema_changes(
    actual: SchemaState,
    columns: List[ColumnSpec] = DESIRED_COLUMNS,
    indexes: List[IndexSpec] = DESIRED_INDEXES,
    dialect_name: str = "postgresql",
) -> List[SchemaChange]:
    """
    Diff the desired schema against the actual one.

    Missing columns are added. Missing indexes are created; an index whose
    name exists with a different column list is dropped and recreated.
    """
    changes: List[SchemaChange] = []

    for col in columns:
        if col.name not in actual.columns.get(col.table, []):
            changes.append(SchemaChange(ChangeKind.ADD_COLUMN, col.table, col.name, col.add_sql()))

    for idx in indexes:
        existing = actual.indexes.get(idx.table, {}).get(idx.name)
        if existing == idx.columns:
            continue
        if existing is not None:
            changes.append(
                SchemaChange(ChangeKind.DROP_INDEX, idx.table, idx.name, _drop_index_sql(dialect_name, idx))
            )
        changes.append(SchemaChange(ChangeKind.CREATE_INDEX, idx.table, idx.name, idx.create_sql()))

    return changes


def _read_schema_state(sync_conn, tables: List[str]) -> SchemaState:
    inspector = inspect(sync_conn)
    state = SchemaState()
    for table in tables:
        state.columns[table] = [c["name"] for c in inspector.get_columns(table)]
        state.indexes[table] = {
            ix["name"]: tuple(ix["column_names"]) for ix in inspector.get_indexes(table)
        }
    return state


async def inspect_schema(db: AsyncSession, tables: Optional[List[str]] = None) -> SchemaState:
    """Read columns and indexes of the given tables from the catalog"""
    if tables is None:
        tables = sorted({c.table for c in DESIRED_COLUMNS} | {i.table for i in DESIRED_INDEXES})
    conn = await db.connection()
    return await conn.run_sync(_read_schema_state, tables)


async def evolve_schema(db: AsyncSession) -> MigrationResult:
    """
    Apply the difference between the desired and the live schema.

    Returns:
        MigrationResult with the planned and applied changes
    """
    conn = await db.connection()
    actual = await inspect_schema(db)
    planned = plan_schema_changes(actual, dialect_name=conn.dialect.name)

    applied: List[SchemaChange] = []
    for change in planned:
        await db.execute(text(change.sql))
        applied.append(change)
        logger.info("Schema change applied", kind=change.kind.value, table=change.table, name=change.name)
    await db.commit()

    if not applied:
        logger.info("Schema already up to date")
    return MigrationResult(planned=planned, applied=applied)
