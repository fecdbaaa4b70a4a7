"""Tests for the SQLite store."""

from __future__ import annotations

import sqlite3

import pytest

from ledgerpager.classifier import classify
from ledgerpager.errors import StoreExecutionError, StoreUnavailable
from ledgerpager.filters import build_filter_set, parse_filter_param
from ledgerpager.plan import build_subplans
from ledgerpager.storage import QueryExecutor, SqliteQueryExecutor, initialize_store

OWNER = {"account.id": "100"}


def subplans_for(schema, *pairs, **kwargs):
    kwargs.setdefault("equality", OWNER)
    fs = build_filter_set(schema, [parse_filter_param(k, v) for k, v in pairs], **kwargs)
    return build_subplans(fs, classify(fs))


def test_executor_satisfies_protocol(tmp_db):
    assert isinstance(SqliteQueryExecutor(tmp_db), QueryExecutor)


def test_initialize_store_is_idempotent(tmp_db, schemas):
    first = initialize_store(tmp_db, schemas.values())
    second = initialize_store(tmp_db, schemas.values())
    assert first == second
    assert "nft" in first and "record_file" in first

    conn = sqlite3.connect(tmp_db)
    try:
        names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")}
    finally:
        conn.close()
    assert "idx_nft_listing" in names


def test_execute_returns_rows_in_key_order(nft_store, nfts):
    (subplan,) = subplans_for(nfts, ("serialnumber", "gt:4"), limit=3)
    rows = SqliteQueryExecutor(nft_store).execute(subplan)
    assert [(r["token_id"], r["serial_number"]) for r in rows] == [(1, 5), (1, 6), (2, 5), (2, 6)]
    assert rows[0]["metadata"] == "ipfs://1/5"


def test_execute_applies_side_filters(nft_store, nfts):
    (subplan,) = subplans_for(nfts, ("token.id", "1"), ("spender.id", "in:201,202"))
    rows = SqliteQueryExecutor(nft_store).execute(subplan)
    assert [r["serial_number"] for r in rows] == [1, 5]


def test_missing_database_is_unavailable(tmp_path, nfts):
    (subplan,) = subplans_for(nfts)
    executor = SqliteQueryExecutor(str(tmp_path / "missing.db"))
    with pytest.raises(StoreUnavailable) as exc:
        executor.execute(subplan)
    assert exc.value.http_status == 503
    assert not (tmp_path / "missing.db").exists()


def test_missing_table_is_execution_error(tmp_db, nfts):
    sqlite3.connect(tmp_db).close()
    (subplan,) = subplans_for(nfts)
    with pytest.raises(StoreExecutionError) as exc:
        SqliteQueryExecutor(tmp_db).execute(subplan)
    assert exc.value.operation == "execute"
    assert exc.value.http_status == 500


def test_explain_uses_listing_index(nft_store, nfts):
    (subplan,) = subplans_for(nfts, ("token.id", "2"), ("serialnumber", "gt:3"))
    details = SqliteQueryExecutor(nft_store).explain(subplan)
    assert any("idx_nft_listing" in d for d in details)
