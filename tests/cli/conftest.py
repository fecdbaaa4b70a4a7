"""Shared fixtures for CLI tests."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from ledgerpager import default_schemas
from ledgerpager.cli import app
from ledgerpager.storage import initialize_store, insert_rows


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_db(tmp_path):
    """A temp DB path for the CLI; nothing is created yet."""
    return str(tmp_path / "cli_test.db")


@pytest.fixture
def seeded_db(cli_db, make_nft_rows):
    """A DB with every listing table and NFTs for account 100."""
    schemas = default_schemas()
    initialize_store(cli_db, schemas.values())
    insert_rows(cli_db, schemas["nfts"], make_nft_rows(account_id=100, tokens=3, serials=4))
    return cli_db


@pytest.fixture
def invoke(runner):
    """Invoke the CLI with ``--db`` injected before the subcommand."""

    def _invoke(args, db_path=None):
        if db_path:
            args = ["--db", db_path] + args
        return runner.invoke(app, args, catch_exceptions=False)

    return _invoke
