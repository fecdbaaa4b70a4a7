"""ledgerpager CLI: browse ledger listings page by page and inspect query plans."""

from __future__ import annotations

from typing import Optional

import typer

from ledgerpager.cli import explain, init_cmd, list_cmd

app = typer.Typer(
    name="ledgerpager",
    help="ledgerpager CLI: page through ledger listings and inspect their query plans.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    db: str = "ledger.db"
    json_output: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        try:
            from importlib.metadata import version

            v = version("ledgerpager")
        except Exception:
            v = "unknown"
        print(f"ledgerpager {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None,
        "--db",
        envvar="LEDGERPAGER_DB",
        help="SQLite database file path (default: ledger.db)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all ledgerpager commands."""
    state.db = db or "ledger.db"
    state.json_output = json_output
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.command(name="init")(init_cmd.init_cmd)
app.command(name="list")(list_cmd.list_cmd)
app.command(name="explain")(explain.explain_cmd)


def main() -> None:
    """Entry point for the ledgerpager CLI."""
    app()
