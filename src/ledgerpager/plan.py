"""Bounded, ordered, limited retrieval plans, one per window."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ledgerpager.classifier import Window
from ledgerpager.filters import FilterPredicate, FilterSet
from ledgerpager.schema import EntitySchema


@dataclass(frozen=True)
class SubPlan:
    """One retrieval against the store.

    A regular sub-plan holds exactly one window. A reference plan holds every
    window of a request OR'd together and exists only to check that splitting
    did not change the result.
    """

    schema: EntitySchema
    windows: tuple[Window, ...]
    direction: str
    limit: int
    equality: dict[str, Any] = field(default_factory=dict)
    side_filters: tuple[FilterPredicate, ...] = ()
    index: int = 0

    @property
    def window(self) -> Window:
        if len(self.windows) != 1:
            raise ValueError("Reference plans do not have a single window")
        return self.windows[0]

    @property
    def is_reference(self) -> bool:
        return len(self.windows) != 1

    @property
    def order_by(self) -> tuple[tuple[str, str], ...]:
        return tuple((c, self.direction) for c in self.schema.key)


def build_subplans(filter_set: FilterSet, windows: list[Window]) -> list[SubPlan]:
    """Build one sub-plan per window.

    Each sub-plan fetches one row past the page limit so the composer can
    tell whether more rows exist beyond the page.
    """
    return [
        SubPlan(
            schema=filter_set.schema,
            windows=(window,),
            equality=dict(filter_set.equality),
            side_filters=filter_set.side_filters,
            direction=filter_set.direction,
            limit=filter_set.limit + 1,
            index=i,
        )
        for i, window in enumerate(windows)
    ]


def build_reference_plan(filter_set: FilterSet, windows: list[Window]) -> SubPlan:
    """Build the unsplit plan: all windows OR'd under one ORDER BY and LIMIT."""
    return SubPlan(
        schema=filter_set.schema,
        windows=tuple(windows),
        equality=dict(filter_set.equality),
        side_filters=filter_set.side_filters,
        direction=filter_set.direction,
        limit=filter_set.limit + 1,
    )
