"""End-to-end pagination against SQLite: cursor hops reconstruct the full result."""

from __future__ import annotations

import random

import pytest

from ledgerpager import ListingService, PagerConfig
from ledgerpager.classifier import classify
from ledgerpager.filters import build_filter_set, parse_filter_param
from ledgerpager.storage import SqliteQueryExecutor, insert_rows


def block_rows(count):
    return [
        {
            "index": i,
            "consensus_start": 1_000 + i * 2,
            "consensus_end": 1_001 + i * 2,
            "count": i % 4,
            "hash": f"{i:064x}",
            "name": f"2024-06-11T00_00_{i:02d}.000000000Z.rcd.gz",
        }
        for i in range(count)
    ]


def walk(service, entity, params, *, equality=None, max_pages=100):
    """Follow next cursors until the last page; returns the list of pages."""
    pages = []
    cursor = None
    for _ in range(max_pages):
        call = list(params) + ([("cursor", cursor)] if cursor else [])
        page = service.page(entity, call, equality=equality)
        pages.append(page)
        cursor = page.next_cursor
        if cursor is None:
            return pages
    raise AssertionError("pagination did not terminate")


def test_seven_rows_in_three_pages(store, blocks):
    insert_rows(store, blocks, block_rows(7))
    service = ListingService(SqliteQueryExecutor(store))

    pages = walk(service, "blocks", [("limit", "3"), ("order", "asc")])

    assert [len(p.rows) for p in pages] == [3, 3, 1]
    assert [p.has_more for p in pages] == [True, True, False]
    indexes = [r["index"] for p in pages for r in p.rows]
    assert indexes == list(range(7))


def test_blocks_default_to_desc(store, blocks):
    insert_rows(store, blocks, block_rows(7))
    service = ListingService(SqliteQueryExecutor(store))

    pages = walk(service, "blocks", [("limit", "3")])

    indexes = [r["index"] for p in pages for r in p.rows]
    assert indexes == list(reversed(range(7)))


def test_limit_dividing_rows_evenly_ends_without_empty_page(store, blocks):
    insert_rows(store, blocks, block_rows(6))
    service = ListingService(SqliteQueryExecutor(store))

    pages = walk(service, "blocks", [("limit", "3"), ("order", "asc")])

    assert [len(p.rows) for p in pages] == [3, 3]


FILTER_SHAPES = [
    [],
    [("serialnumber", "gt:2"), ("serialnumber", "lt:5")],
    [("token.id", "gte:2"), ("token.id", "lte:4"), ("serialnumber", "gt:3")],
    [("token.id", "gte:2"), ("token.id", "lte:4"), ("serialnumber", "lt:3")],
    [("token.id", "gte:1"), ("token.id", "lte:5"), ("serialnumber", "gt:5"), ("serialnumber", "lt:2")],
    [("token.id", "gt:1"), ("token.id", "lt:4")],
    [("token.id", "3"), ("serialnumber", "gte:2")],
    [("spender.id", "in:201,202")],
]


@pytest.mark.parametrize("direction", ["asc", "desc"])
def test_cursor_hops_are_complete_and_disjoint(nft_store, nfts, nft_table, direction):
    rng = random.Random(7)
    service = ListingService(SqliteQueryExecutor(nft_store), config=PagerConfig(max_limit=10))
    equality = {"account.id": 100}

    for shape in FILTER_SHAPES:
        limit = rng.randint(1, 7)
        params = shape + [("limit", str(limit)), ("order", direction)]
        fs = build_filter_set(
            nfts, [parse_filter_param(k, v) for k, v in shape], equality=equality, direction=direction
        )
        windows = classify(fs)
        expected = sorted(
            (
                r
                for r in nft_table
                if r["account_id"] == 100
                and any(w.contains(r) for w in windows)
                and all(
                    r[p.column] in p.value if p.op == "in" else r[p.column] == p.value
                    for p in fs.side_filters
                )
            ),
            key=nfts.key_of,
            reverse=direction == "desc",
        )

        pages = walk(service, "nfts", params, equality=equality)
        seen = [nfts.key_of(r) for p in pages for r in p.rows]

        assert seen == [nfts.key_of(r) for r in expected], shape
        assert len(set(seen)) == len(seen)
        assert all(len(p.rows) <= limit for p in pages)
        assert pages[-1].has_more is False
        for prev, nxt in zip(pages, pages[1:]):
            boundary = tuple(prev.cursor.values)
            first = nfts.key_of(nxt.rows[0])
            assert first > boundary if direction == "asc" else first < boundary


def test_concurrent_subplans_against_sqlite(nft_store):
    params = [("token.id", "gte:2"), ("token.id", "lte:4"), ("serialnumber", "gt:3"), ("limit", "4")]
    equality = {"account.id": 100}
    sequential = ListingService(SqliteQueryExecutor(nft_store))
    concurrent = ListingService(
        SqliteQueryExecutor(nft_store), config=PagerConfig(concurrent_subplans=True)
    )
    assert walk(concurrent, "nfts", params, equality=equality) == walk(
        sequential, "nfts", params, equality=equality
    )
