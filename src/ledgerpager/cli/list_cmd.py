"""ledgerpager list: fetch one page of a listing."""

from __future__ import annotations

from typing import Optional

import typer

from ledgerpager.cli import _exitcodes as ec
from ledgerpager.cli._output import print_error, print_object, print_rows
from ledgerpager.cli._params import parse_cli_equality, parse_cli_params
from ledgerpager.cli._storage import open_listing_service
from ledgerpager.errors import LedgerPagerError, StoreError


def list_cmd(
    entity: str = typer.Argument(..., help="Listing name, e.g. nfts or allowances"),
    param_args: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Filter as KEY=[OP:]VALUE, e.g. serialnumber=gt:10 (repeatable)"
    ),
    eq_args: Optional[list[str]] = typer.Option(
        None, "--eq", help="Path equality as COLUMN=VALUE, e.g. account.id=1001 (repeatable)"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Page size"),
    order: Optional[str] = typer.Option(None, "--order", help="asc or desc"),
    cursor: Optional[str] = typer.Option(None, "--cursor", help="Cursor from a previous page"),
) -> None:
    """List one page of rows for a listing."""
    from ledgerpager.cli import state

    json_mode = state.json_output

    try:
        params = parse_cli_params(param_args)
        equality = parse_cli_equality(eq_args)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    if limit is not None:
        params.append(("limit", str(limit)))
    if order is not None:
        params.append(("order", order))
    if cursor is not None:
        params.append(("cursor", cursor))

    service = open_listing_service()
    try:
        schema = service.schema(entity)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        page = service.page(entity, params, equality=equality)
        link = service.next_link(entity, params, page, equality=equality)
    except StoreError as e:
        print_error(str(e))
        raise typer.Exit(ec.EXECUTION_FAILURE)
    except LedgerPagerError as e:
        print_error(str(e))
        raise typer.Exit(ec.INVALID_REQUEST)

    if json_mode:
        print_object(
            {entity: page.rows, "links": {"next": link}, "cursor": page.next_cursor},
            json_mode=True,
        )
        return

    print_rows(schema.column_names, page.rows)
    if not page.rows:
        print("No rows.")
    if page.next_cursor:
        print(f"\nnext cursor: {page.next_cursor}")
        print(f"next link: {link}")
