"""Configuration for the ledgerpager engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PagerConfig:
    """Configuration for filter validation and page composition."""

    default_limit: int = 25
    max_limit: int = 100
    max_repeated_predicates: int = 100
    max_windows: int = 8
    concurrent_subplans: bool = False
    max_workers: int = 4
    link_prefix: str = ""
