"""Example 02: Error Handling.

This example demonstrates the error types raised for bad requests:
- InvalidFilterCombination for unsupported or conflicting filters
- TooManyFilterCombinations when a request repeats a filter too often
- InvalidCursor for tampered or mismatched continuation tokens
- StoreUnavailable when the database cannot be opened
- Mapping errors to HTTP status codes
"""

import tempfile
from pathlib import Path

from ledgerpager import (
    LedgerPagerError,
    ListingService,
    PagerConfig,
    SqliteQueryExecutor,
)

CASES = [
    ("ne operator", [("serialnumber", "ne:3")]),
    ("conflicting eq", [("token.id", "1"), ("token.id", "2")]),
    ("range on a side column", [("spender.id", "gt:5")]),
    ("exclusive lead bound", [("token.id", "gt:1"), ("serialnumber", "gt:3")]),
    ("repeated filter", [("serialnumber", f"gt:{i}") for i in range(5)]),
    ("tampered cursor", [("cursor", "eyJub3QiOiAiYSBjdXJzb3IifQ")]),
    ("bad limit", [("limit", "-3")]),
]


def main():
    print("=" * 70)
    print("Example 02: Error Handling")
    print("=" * 70)

    with tempfile.TemporaryDirectory() as tmp:
        missing_db = str(Path(tmp) / "missing.db")
        service = ListingService(
            SqliteQueryExecutor(missing_db),
            config=PagerConfig(max_repeated_predicates=3),
        )
        equality = {"account.id": 1001}

        print("\n1. Rejected requests")
        print("-" * 70)
        for label, params in CASES:
            try:
                service.page("nfts", params, equality=equality)
            except LedgerPagerError as e:
                print(f"  {label:<24} {e.http_status} {type(e).__name__}: {e}")

        print("\n2. Store failures")
        print("-" * 70)
        try:
            service.page("nfts", [], equality=equality)
        except LedgerPagerError as e:
            print(f"  {e.http_status} {type(e).__name__}: {e}")

    print("\n" + "=" * 70)
    print("Example complete!")
    print("=" * 70)


if __name__ == "__main__":
    main()
