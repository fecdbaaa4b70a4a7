"""Example 01: Paging Through an Account's NFTs.

This example demonstrates keyset pagination over a composite key:
- Creating the listing tables with initialize_store()
- Loading rows with insert_rows()
- Listing NFTs ordered by (token_id, serial_number)
- Falling back to the listing's default order (newest first for NFTs)
- Following next links until the last page
- Inspecting the disjoint windows a tuple range is split into
"""

import tempfile
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

from ledgerpager import ListingService, PagerConfig, SqliteQueryExecutor, default_schemas
from ledgerpager.storage import compile_subplan, initialize_store, insert_rows

ACCOUNT = 1001


def setup_sample_data(db_path: str) -> None:
    """Create 4 tokens with 5 serials each, owned by one account."""
    schemas = default_schemas()
    initialize_store(db_path, schemas.values())

    rows = []
    for token_id in range(2001, 2005):
        for serial in range(1, 6):
            rows.append(
                {
                    "account_id": ACCOUNT,
                    "token_id": token_id,
                    "serial_number": serial,
                    "spender": None,
                    "created_timestamp": 1_700_000_000 + token_id + serial,
                    "metadata": f"ipfs://collection-{token_id}/{serial}",
                }
            )
    insert_rows(db_path, schemas["nfts"], rows)


def main():
    print("=" * 70)
    print("Example 01: Paging Through an Account's NFTs")
    print("=" * 70)

    with tempfile.TemporaryDirectory() as tmp:
        db_path = str(Path(tmp) / "ledger.db")
        setup_sample_data(db_path)

        service = ListingService(
            SqliteQueryExecutor(db_path),
            config=PagerConfig(link_prefix="https://mirror.example"),
        )
        equality = {"account.id": ACCOUNT}

        # Step 1: A tuple range. Starting from (2001, 3) up to token 2003
        # inclusive means the rest of token 2001 plus all of 2002 and 2003.
        params = [
            ("token.id", "gte:2001"),
            ("token.id", "lte:2003"),
            ("serialnumber", "gt:3"),
            ("limit", "4"),
            ("order", "asc"),
        ]

        print("\n1. Windows for token.id in [2001, 2003] after serial 3")
        print("-" * 70)
        filter_set = service.filter_set("nfts", params, equality=equality)
        for subplan in service.composer.plan(filter_set):
            sql, sql_params = compile_subplan(subplan)
            print(f"  [{subplan.index}] {subplan.window.kind}")
            print(f"      {sql}")
            print(f"      params={sql_params}")

        # Step 2: Follow next links until the last page
        print("\n2. Pages of 4")
        print("-" * 70)
        page_number = 1
        query = params
        while True:
            body = service.list("nfts", query, equality=equality)
            keys = [(r["token_id"], r["serial_number"]) for r in body["nfts"]]
            print(f"  page {page_number}: {keys}")
            next_link = body["links"]["next"]
            if next_link is None:
                break
            print(f"    next: {next_link}")
            query = parse_qsl(urlsplit(next_link).query)
            page_number += 1

        # Step 3: Without an order parameter NFTs list in descending order
        print("\n3. Default order (desc), first page")
        print("-" * 70)
        page = service.page("nfts", params[:-1], equality=equality)
        print(f"  {[(r['token_id'], r['serial_number']) for r in page.rows]}")
        print(f"  has_more={page.has_more}")

    print("\n" + "=" * 70)
    print("Example complete!")
    print("=" * 70)


if __name__ == "__main__":
    main()
