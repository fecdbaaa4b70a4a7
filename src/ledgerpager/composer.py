"""Execute sub-plans and merge them into one ordered, limited page."""

from __future__ import annotations

import heapq
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any

from ledgerpager.classifier import classify
from ledgerpager.config import PagerConfig
from ledgerpager.cursor import Cursor, encode_cursor
from ledgerpager.filters import FilterSet
from ledgerpager.plan import SubPlan, build_reference_plan, build_subplans
from ledgerpager.storage import QueryExecutor
from ledgerpager.telemetry import log_page_built, log_subplan_executed, log_subplan_failed


@dataclass(frozen=True)
class Page:
    """One page of rows in scan order."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    has_more: bool = False
    cursor: Cursor | None = None

    @property
    def next_cursor(self) -> str | None:
        """Opaque token for the next page, or None on the last page."""
        if not self.has_more or self.cursor is None:
            return None
        return self.cursor.to_token()


def merge_rows(
    results: list[list[dict[str, Any]]], key: tuple[str, ...], direction: str
) -> list[dict[str, Any]]:
    """K-way merge of row lists already sorted by ``key`` in ``direction``."""
    return list(
        heapq.merge(
            *results,
            key=lambda row: tuple(row[c] for c in key),
            reverse=direction == "desc",
        )
    )


class PlanComposer:
    """Plans, executes, and merges the sub-plans of a FilterSet.

    Windows are disjoint, so concatenating every sub-plan's rows, merging
    by the composite key, and truncating to the limit is equivalent to one
    unsplit scan with the same order and limit.
    """

    def __init__(self, executor: QueryExecutor, config: PagerConfig | None = None) -> None:
        self._executor = executor
        self._config = config or PagerConfig()

    def plan(self, filter_set: FilterSet) -> list[SubPlan]:
        return build_subplans(filter_set, classify(filter_set, self._config))

    def build_page(self, filter_set: FilterSet) -> Page:
        """Build one page. Store errors abort the whole page."""
        start = perf_counter()
        schema = filter_set.schema
        subplans = self.plan(filter_set)

        if not subplans:
            log_page_built(entity=schema.name, subplans=0, rows=0, has_more=False)
            return Page()

        results = self._execute_all(subplans)
        merged = merge_rows(results, schema.key, filter_set.direction)
        has_more = len(merged) > filter_set.limit
        rows = merged[: filter_set.limit]
        cursor = encode_cursor(rows[-1], schema, filter_set.direction) if rows else None

        log_page_built(
            entity=schema.name,
            subplans=len(subplans),
            rows=len(rows),
            has_more=has_more,
            total_latency_ms=(perf_counter() - start) * 1000.0,
        )
        return Page(rows=rows, has_more=has_more, cursor=cursor)

    def execute_reference(self, filter_set: FilterSet) -> list[dict[str, Any]]:
        """Run the unsplit predicate as a single statement."""
        windows = classify(filter_set, self._config)
        if not windows:
            return []
        return self._execute_one(build_reference_plan(filter_set, windows))

    def _execute_all(self, subplans: list[SubPlan]) -> list[list[dict[str, Any]]]:
        if self._config.concurrent_subplans and len(subplans) > 1:
            return self._execute_concurrently(subplans)
        return [self._execute_one(p) for p in subplans]

    def _execute_concurrently(self, subplans: list[SubPlan]) -> list[list[dict[str, Any]]]:
        workers = max(1, min(len(subplans), self._config.max_workers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ledgerpager") as pool:
            futures = [pool.submit(self._execute_one, p) for p in subplans]
            try:
                return [f.result() for f in futures]
            except BaseException:
                for f in futures:
                    f.cancel()
                raise

    def _execute_one(self, subplan: SubPlan) -> list[dict[str, Any]]:
        start = perf_counter()
        try:
            rows = self._executor.execute(subplan)
        except Exception as e:
            log_subplan_failed(
                entity=subplan.schema.name,
                subplan_index=subplan.index,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise
        log_subplan_executed(
            entity=subplan.schema.name,
            subplan_index=subplan.index,
            rows=len(rows),
            latency_ms=(perf_counter() - start) * 1000.0,
        )
        return rows
