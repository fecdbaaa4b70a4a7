"""CLI helpers for config and executor construction."""

from __future__ import annotations

import os

from ledgerpager.config import PagerConfig
from ledgerpager.listing import ListingService
from ledgerpager.storage import SqliteQueryExecutor


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    return default if raw is None or raw == "" else int(raw)


def _config_from_env() -> PagerConfig:
    """Build engine config from LEDGERPAGER_* environment variables."""
    defaults = PagerConfig()
    return PagerConfig(
        default_limit=_int_env("LEDGERPAGER_DEFAULT_LIMIT", defaults.default_limit),
        max_limit=_int_env("LEDGERPAGER_MAX_LIMIT", defaults.max_limit),
        max_repeated_predicates=_int_env(
            "LEDGERPAGER_MAX_REPEATED_PREDICATES", defaults.max_repeated_predicates
        ),
        max_windows=_int_env("LEDGERPAGER_MAX_WINDOWS", defaults.max_windows),
        concurrent_subplans=os.getenv("LEDGERPAGER_CONCURRENT", "").lower() in ("1", "true", "yes"),
        max_workers=_int_env("LEDGERPAGER_MAX_WORKERS", defaults.max_workers),
        link_prefix=os.getenv("LEDGERPAGER_LINK_PREFIX", defaults.link_prefix),
    )


def open_executor() -> SqliteQueryExecutor:
    """Open the executor for the database selected by global CLI options."""
    from ledgerpager.cli import state

    return SqliteQueryExecutor(state.db)


def open_listing_service() -> ListingService:
    return ListingService(open_executor(), config=_config_from_env())
