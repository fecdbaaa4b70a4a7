"""Structured logging for filter classification and page composition.

Each helper emits one named event with its fields attached through
``extra`` so log handlers can render them as structured records.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def log_filter_set_built(
    *,
    entity: str,
    predicate_count: int,
    direction: str,
    limit: int,
    has_cursor: bool,
) -> None:
    """Log creation of a validated FilterSet."""
    logger.debug(
        "filter_set_built",
        extra={
            "entity": entity,
            "predicate_count": predicate_count,
            "direction": direction,
            "limit": limit,
            "has_cursor": has_cursor,
        },
    )


def log_windows_classified(*, entity: str, window_count: int, kinds: list[str]) -> None:
    """Log the disjoint windows a request was partitioned into."""
    logger.debug(
        "windows_classified",
        extra={"entity": entity, "window_count": window_count, "kinds": kinds},
    )


def log_subplan_executed(
    *,
    entity: str,
    subplan_index: int,
    rows: int,
    latency_ms: float,
) -> None:
    """Log completion of a single sub-plan.

    Args:
        entity: Listing name
        subplan_index: Zero-based index of the sub-plan within the page
        rows: Number of rows the store returned
        latency_ms: Execution latency in milliseconds
    """
    logger.debug(
        "subplan_executed",
        extra={
            "entity": entity,
            "subplan_index": subplan_index,
            "rows": rows,
            "latency_ms": latency_ms,
        },
    )


def log_subplan_failed(
    *,
    entity: str,
    subplan_index: int,
    error_type: str,
    error_message: str,
) -> None:
    """Log a sub-plan execution error; the page request is aborted."""
    logger.error(
        "subplan_failed",
        extra={
            "entity": entity,
            "subplan_index": subplan_index,
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_page_built(
    *,
    entity: str,
    subplans: int,
    rows: int,
    has_more: bool,
    total_latency_ms: float | None = None,
) -> None:
    """Log a composed page."""
    logger.info(
        "page_built",
        extra={
            "entity": entity,
            "subplans": subplans,
            "rows": rows,
            "has_more": has_more,
            "total_latency_ms": total_latency_ms,
        },
    )
