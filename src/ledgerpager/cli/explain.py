"""ledgerpager explain: show the windows and SQL a listing call compiles to."""

from __future__ import annotations

import json
from typing import Any, Optional

import typer
import yaml

from ledgerpager.cli import _exitcodes as ec
from ledgerpager.cli._output import print_error
from ledgerpager.cli._params import parse_cli_equality, parse_cli_params
from ledgerpager.cli._storage import open_listing_service
from ledgerpager.classifier import Window
from ledgerpager.errors import LedgerPagerError, StoreError
from ledgerpager.filters import Interval
from ledgerpager.storage import SqliteQueryExecutor, compile_subplan

_FORMATS = ("text", "json", "yaml")


def describe_interval(column: str, interval: Interval) -> str:
    """Render an interval as a readable condition, e.g. ``3 < token_id <= 9``."""
    if interval.is_point and interval.lower is not None:
        return f"{column} = {interval.lower.value!r}"
    lower = interval.lower
    upper = interval.upper
    left = f"{lower.value!r} {'<=' if lower.inclusive else '<'} " if lower else ""
    right = f" {'<=' if upper.inclusive else '<'} {upper.value!r}" if upper else ""
    if not left and not right:
        return f"{column} unbounded"
    return f"{left}{column}{right}"


def describe_window(window: Window) -> dict[str, Any]:
    return {
        "kind": window.kind,
        "conditions": [describe_interval(c, iv) for c, iv in window.intervals],
    }


def explain_cmd(
    entity: str = typer.Argument(..., help="Listing name, e.g. nfts or allowances"),
    param_args: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Filter as KEY=[OP:]VALUE (repeatable)"
    ),
    eq_args: Optional[list[str]] = typer.Option(
        None, "--eq", help="Path equality as COLUMN=VALUE (repeatable)"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Page size"),
    order: Optional[str] = typer.Option(None, "--order", help="asc or desc"),
    cursor: Optional[str] = typer.Option(None, "--cursor", help="Cursor from a previous page"),
    fmt: str = typer.Option("text", "--format", "-f", help="Output format: text, json, or yaml"),
    analyze: bool = typer.Option(
        False, "--analyze", help="Include SQLite's query plan for each sub-plan"
    ),
) -> None:
    """Show the disjoint windows and compiled sub-plans without fetching rows."""
    from ledgerpager.cli import state

    if state.json_output:
        fmt = "json"
    if fmt not in _FORMATS:
        print_error(f"Unknown format '{fmt}'. Valid formats: {', '.join(_FORMATS)}")
        raise typer.Exit(ec.USAGE_ERROR)

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
        service.schema(entity)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        filter_set = service.filter_set(entity, params, equality=equality)
        subplans = service.composer.plan(filter_set)
        executor = SqliteQueryExecutor(state.db) if analyze else None
        plans = []
        for subplan in subplans:
            sql, sql_params = compile_subplan(subplan)
            entry: dict[str, Any] = {
                "index": subplan.index,
                "window": describe_window(subplan.window),
                "sql": sql,
                "params": sql_params,
            }
            if executor is not None:
                entry["query_plan"] = executor.explain(subplan)
            plans.append(entry)
    except StoreError as e:
        print_error(str(e))
        raise typer.Exit(ec.EXECUTION_FAILURE)
    except LedgerPagerError as e:
        print_error(str(e))
        raise typer.Exit(ec.INVALID_REQUEST)

    data = {
        "entity": entity,
        "direction": filter_set.direction,
        "limit": filter_set.limit,
        "subplans": plans,
    }

    if fmt == "json":
        print(json.dumps(data, indent=2, default=str))
    elif fmt == "yaml":
        print(yaml.safe_dump(data, sort_keys=False), end="")
    else:
        _print_text(data)


def _print_text(data: dict[str, Any]) -> None:
    print(f"Listing: {data['entity']} ({data['direction']}, limit {data['limit']})")
    if not data["subplans"]:
        print("No windows: the filters select no rows.")
        return
    for plan in data["subplans"]:
        window = plan["window"]
        conditions = " AND ".join(window["conditions"]) or "(no key bounds)"
        print(f"\n[{plan['index']}] {window['kind']}: {conditions}")
        print(f"  SQL:    {plan['sql']}")
        print(f"  Params: {plan['params']}")
        for detail in plan.get("query_plan", []):
            print(f"  Plan:   {detail}")
