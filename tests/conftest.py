"""Shared test fixtures for ledgerpager tests."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from ledgerpager import PagerConfig, default_schemas
from ledgerpager.errors import StoreExecutionError
from ledgerpager.filters import FilterPredicate
from ledgerpager.plan import SubPlan
from ledgerpager.storage import initialize_store, insert_rows

# --- In-memory executors ---


def _side_match(row: dict[str, Any], pred: FilterPredicate) -> bool:
    if pred.op == "in":
        return row[pred.column] in pred.value
    return row[pred.column] == pred.value


class MemoryExecutor:
    """Evaluates sub-plans over rows held in memory, keyed by table name."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.tables = tables or {}
        self.calls: list[SubPlan] = []
        self._lock = threading.Lock()

    def execute(self, subplan: SubPlan) -> list[dict[str, Any]]:
        with self._lock:
            self.calls.append(subplan)
        schema = subplan.schema
        out = [
            row
            for row in self.tables.get(schema.table, [])
            if all(row[c] == v for c, v in subplan.equality.items())
            and any(w.contains(row) for w in subplan.windows)
            and all(_side_match(row, p) for p in subplan.side_filters)
        ]
        out.sort(key=schema.key_of, reverse=subplan.direction == "desc")
        return [dict(r) for r in out[: subplan.limit]]


class FailingExecutor(MemoryExecutor):
    """Fails on the sub-plan with the given index."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None, fail_index: int = 0):
        super().__init__(tables)
        self.fail_index = fail_index

    def execute(self, subplan: SubPlan) -> list[dict[str, Any]]:
        if subplan.index == self.fail_index:
            with self._lock:
                self.calls.append(subplan)
            raise StoreExecutionError("execute", "connection reset")
        return super().execute(subplan)


# --- Row factories ---


def nft_rows(account_id: int = 100, tokens: int = 5, serials: int = 6) -> list[dict[str, Any]]:
    """NFT rows for ``tokens`` token ids, each with serial numbers 1..``serials``."""
    rows = []
    for token_id in range(1, tokens + 1):
        for serial in range(1, serials + 1):
            rows.append(
                {
                    "account_id": account_id,
                    "token_id": token_id,
                    "serial_number": serial,
                    "spender": 200 + serial % 3 if serial % 2 else None,
                    "created_timestamp": 1_700_000_000 + token_id * 100 + serial,
                    "metadata": f"ipfs://{token_id}/{serial}",
                }
            )
    return rows


# --- Fixtures ---


@pytest.fixture
def schemas():
    return default_schemas()


@pytest.fixture
def nfts(schemas):
    return schemas["nfts"]


@pytest.fixture
def allowances(schemas):
    return schemas["allowances"]


@pytest.fixture
def blocks(schemas):
    return schemas["blocks"]


@pytest.fixture
def config():
    return PagerConfig()


@pytest.fixture
def nft_table():
    """Rows for two accounts so equality filtering is exercised."""
    return nft_rows(account_id=100) + nft_rows(account_id=101, tokens=2, serials=2)


@pytest.fixture
def memory_executor(nft_table):
    return MemoryExecutor({"nft": nft_table})


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite database path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def store(tmp_db, schemas):
    """An initialized SQLite store with every listing table and no rows."""
    initialize_store(tmp_db, schemas.values())
    return tmp_db


@pytest.fixture
def nft_store(store, nfts, nft_table):
    """An initialized SQLite store seeded with NFT rows."""
    insert_rows(store, nfts, nft_table)
    return store


@pytest.fixture
def make_executor():
    """Factory for in-memory executors: ``make_executor(tables, fail_index=None)``."""

    def _make(tables=None, fail_index=None):
        if fail_index is None:
            return MemoryExecutor(tables)
        return FailingExecutor(tables, fail_index=fail_index)

    return _make


@pytest.fixture
def make_nft_rows():
    return nft_rows
