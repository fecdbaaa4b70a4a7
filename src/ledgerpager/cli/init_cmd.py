"""ledgerpager init: create listing tables and optionally seed them."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
import yaml

from ledgerpager.cli import _exitcodes as ec
from ledgerpager.cli._output import print_error, print_object
from ledgerpager.schema import default_schemas
from ledgerpager.storage import initialize_store, insert_rows


def _load_seed(path: str) -> dict[str, list[dict[str, Any]]]:
    """Load ``{listing: [row, ...]}`` from a YAML (or JSON) file."""
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return {}
    if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
        raise ValueError("Seed file must map listing names to lists of rows")
    return data


def init_cmd(
    entities: Optional[list[str]] = typer.Option(
        None, "--entity", "-e", help="Listing to initialize (repeatable, default: all)"
    ),
    seed: Optional[str] = typer.Option(
        None, "--seed", help="YAML file mapping listing names to rows to insert"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the DDL without executing it"),
) -> None:
    """Create the tables and listing indexes in the selected database."""
    from ledgerpager.cli import state

    json_mode = state.json_output
    schemas = default_schemas()

    selected = entities or sorted(schemas)
    unknown = [e for e in selected if e not in schemas]
    if unknown:
        print_error(
            f"Unknown listing(s): {', '.join(unknown)}. Known listings: {', '.join(sorted(schemas))}"
        )
        raise typer.Exit(ec.USAGE_ERROR)

    if dry_run:
        statements = [stmt for name in selected for stmt in schemas[name].ddl()]
        if json_mode:
            print_object({"db_path": state.db, "status": "dry_run", "ddl": statements}, json_mode=True)
        else:
            for stmt in statements:
                print(f"{stmt};")
        return

    try:
        seed_rows = _load_seed(seed) if seed else {}
    except (OSError, ValueError, yaml.YAMLError) as e:
        print_error(f"Failed to load seed file: {e}")
        raise typer.Exit(ec.USAGE_ERROR)

    for name in seed_rows:
        if name not in selected:
            print_error(f"Seed file references listing '{name}' that is not being initialized")
            raise typer.Exit(ec.USAGE_ERROR)

    try:
        tables = initialize_store(state.db, [schemas[name] for name in selected])
        inserted = {
            name: insert_rows(state.db, schemas[name], rows) for name, rows in seed_rows.items()
        }
    except Exception as e:
        print_error(str(e))
        raise typer.Exit(ec.EXECUTION_FAILURE)

    data: dict[str, Any] = {"db_path": state.db, "status": "initialized", "tables": tables}
    if inserted:
        data["inserted"] = inserted
    print_object(data, json_mode=json_mode)
