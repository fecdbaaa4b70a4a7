"""Store access: the executor protocol, SQL compilation, and the SQLite backend."""

from __future__ import annotations

import sqlite3
from typing import Any, Iterable, Protocol, runtime_checkable
from urllib.parse import quote

from ledgerpager.classifier import Window
from ledgerpager.errors import StoreExecutionError, StoreUnavailable
from ledgerpager.filters import FilterPredicate, Interval
from ledgerpager.plan import SubPlan
from ledgerpager.schema import EntitySchema


@runtime_checkable
class QueryExecutor(Protocol):
    """Executes one sub-plan and returns its rows in the sub-plan's order."""

    def execute(self, subplan: SubPlan) -> list[dict[str, Any]]: ...


def _quote(identifier: str) -> str:
    return f'"{identifier}"'


def _compile_interval(column: str, interval: Interval, params: list[Any]) -> list[str]:
    """Compile a key-column interval to SQL conditions."""
    col = _quote(column)
    if interval.is_point and interval.lower is not None:
        params.append(interval.lower.value)
        return [f"{col} = ?"]
    conditions = []
    if interval.lower is not None:
        params.append(interval.lower.value)
        conditions.append(f"{col} {'>=' if interval.lower.inclusive else '>'} ?")
    if interval.upper is not None:
        params.append(interval.upper.value)
        conditions.append(f"{col} {'<=' if interval.upper.inclusive else '<'} ?")
    return conditions


def _compile_window(window: Window, params: list[Any]) -> list[str]:
    conditions: list[str] = []
    for column, interval in window.intervals:
        conditions.extend(_compile_interval(column, interval, params))
    return conditions


def _compile_side_filter(pred: FilterPredicate, params: list[Any]) -> str:
    col = _quote(pred.column)
    if pred.op == "in":
        placeholders = ", ".join("?" for _ in pred.value)
        params.extend(pred.value)
        return f"{col} IN ({placeholders})"
    if pred.op == "eq":
        params.append(pred.value)
        return f"{col} = ?"
    raise ValueError(f"Unsupported side filter operator: {pred.op}")


def compile_subplan(subplan: SubPlan) -> tuple[str, list[Any]]:
    """Compile a sub-plan into a parameterized SELECT.

    Identifiers come from the schema only; every value is a bound parameter.
    """
    schema = subplan.schema
    params: list[Any] = []
    conditions: list[str] = []

    for column, value in subplan.equality.items():
        params.append(value)
        conditions.append(f"{_quote(column)} = ?")

    if len(subplan.windows) == 1:
        conditions.extend(_compile_window(subplan.windows[0], params))
    elif not subplan.windows:
        conditions.append("1 = 0")
    else:
        parts = []
        for window in subplan.windows:
            window_conditions = _compile_window(window, params)
            parts.append(f"({' AND '.join(window_conditions) or '1 = 1'})")
        conditions.append(f"({' OR '.join(parts)})")

    for pred in subplan.side_filters:
        conditions.append(_compile_side_filter(pred, params))

    columns = ", ".join(_quote(c) for c in schema.column_names)
    sql = f"SELECT {columns} FROM {_quote(schema.table)}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    order = ", ".join(f"{_quote(c)} {d.upper()}" for c, d in subplan.order_by)
    sql += f" ORDER BY {order} LIMIT ?"
    params.append(subplan.limit)
    return sql, params


class SqliteQueryExecutor:
    """SQLite-backed executor.

    Opens a connection per sub-plan and closes it before returning, on
    success and failure alike, so no connection outlives one execution and
    sub-plans may run on separate threads.
    """

    def __init__(self, db_path: str, *, timeout: float = 5.0) -> None:
        self.db_path = db_path
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        uri = f"file:{quote(self.db_path)}?mode=rw"
        try:
            conn = sqlite3.connect(uri, uri=True, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StoreUnavailable("connect", str(e)) from e
        conn.row_factory = sqlite3.Row
        return conn

    def execute(self, subplan: SubPlan) -> list[dict[str, Any]]:
        sql, params = compile_subplan(subplan)
        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreExecutionError("execute", str(e)) from e
        finally:
            conn.close()
        return [dict(r) for r in rows]

    def explain(self, subplan: SubPlan) -> list[str]:
        """Return SQLite's query plan details for a sub-plan."""
        sql, params = compile_subplan(subplan)
        conn = self._connect()
        try:
            rows = conn.execute(f"EXPLAIN QUERY PLAN {sql}", params).fetchall()
        except sqlite3.Error as e:
            raise StoreExecutionError("explain", str(e)) from e
        finally:
            conn.close()
        return [r["detail"] for r in rows]


def _open(db_path: str, operation: str) -> sqlite3.Connection:
    try:
        return sqlite3.connect(db_path)
    except sqlite3.Error as e:
        raise StoreUnavailable(operation, str(e)) from e


def initialize_store(db_path: str, schemas: Iterable[EntitySchema]) -> list[str]:
    """Create tables and listing indexes; returns the table names."""
    conn = _open(db_path, "initialize")
    try:
        tables = []
        for schema in schemas:
            for statement in schema.ddl():
                conn.execute(statement)
            tables.append(schema.table)
        conn.commit()
    except sqlite3.Error as e:
        raise StoreExecutionError("initialize", str(e)) from e
    finally:
        conn.close()
    return tables


def insert_rows(db_path: str, schema: EntitySchema, rows: Iterable[dict[str, Any]]) -> int:
    """Insert rows into a schema's table; returns the number inserted."""
    columns = schema.column_names
    sql = (
        f"INSERT INTO {_quote(schema.table)} ({', '.join(_quote(c) for c in columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)})"
    )
    values = [tuple(row.get(c) for c in columns) for row in rows]
    conn = _open(db_path, "insert")
    try:
        conn.executemany(sql, values)
        conn.commit()
    except sqlite3.Error as e:
        raise StoreExecutionError("insert", str(e)) from e
    finally:
        conn.close()
    return len(values)
