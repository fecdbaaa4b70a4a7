"""Partition key-column ranges into disjoint, independently scannable windows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ledgerpager.config import PagerConfig
from ledgerpager.errors import TooManyFilterCombinations
from ledgerpager.filters import Bound, FilterSet, Interval
from ledgerpager.telemetry import log_windows_classified

_UNBOUNDED = Interval()


@dataclass(frozen=True)
class Window:
    """A conjunction of one interval per constrained key column.

    A window never carries an OR, so the store can satisfy it with a single
    index range scan on (equality columns, key columns).
    """

    intervals: tuple[tuple[str, Interval], ...] = ()

    @classmethod
    def of(cls, key: tuple[str, ...], ranges: Mapping[str, Interval]) -> Window:
        return cls(tuple((c, ranges[c]) for c in key if c in ranges))

    def interval(self, column: str) -> Interval:
        for c, iv in self.intervals:
            if c == column:
                return iv
        return _UNBOUNDED

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(c for c, _ in self.intervals)

    @property
    def kind(self) -> str:
        """Kind of the innermost ranged column; ``closed`` when every column is pinned."""
        ranged = [iv for _, iv in self.intervals if not iv.is_point]
        if ranged:
            return ranged[-1].kind
        return "closed" if self.intervals else "unbounded"

    def is_empty(self) -> bool:
        return any(iv.is_empty() for _, iv in self.intervals)

    def intersect(self, other: Window, key: tuple[str, ...]) -> Window:
        merged: dict[str, Interval] = {}
        for column in key:
            mine, theirs = self.interval(column), other.interval(column)
            if column in self.columns or column in other.columns:
                merged[column] = mine.intersect(theirs)
        return Window.of(key, merged)

    def contains(self, row: Mapping[str, Any]) -> bool:
        return all(iv.contains(row[c]) for c, iv in self.intervals)


def windows_disjoint(a: Window, b: Window) -> bool:
    """Two windows are disjoint iff their intervals are disjoint on some column."""
    for column in {*a.columns, *b.columns}:
        if a.interval(column).intersect(b.interval(column)).is_empty():
            return True
    return False


def _split(key: tuple[str, ...], ranges: Mapping[str, Interval]) -> list[Window]:
    """Split a two-column tuple range into lower, inner, and upper windows.

    ``k1 >= L AND k2 > s`` over the composite key means ``(k1, k2) > (L, s)``,
    which is ``(k1 = L AND k2 > s) OR (k1 > L)``. The upper side mirrors it.
    """
    if len(key) < 2:
        return [Window.of(key, ranges)]
    lead_col, second_col = key[0], key[1]
    lead, second = ranges.get(lead_col), ranges.get(second_col)
    if lead is None or second is None or lead.is_point or second.is_point:
        return [Window.of(key, ranges)]
    if lead.is_empty():
        return []

    # The two sides of the second column bound different lead values, so
    # lower > upper on the second column is not a contradiction here.
    rest = {c: iv for c, iv in ranges.items() if c not in (lead_col, second_col)}
    windows: list[Window] = []
    # lead bounds that the second column refines; the others pass through to the inner window
    lower = lead.lower if second.lower is not None else None
    upper = lead.upper if second.upper is not None else None

    if lower is not None:
        windows.append(
            Window.of(
                key,
                {lead_col: Interval.point(lower.value), second_col: Interval(second.lower), **rest},
            )
        )

    inner = Interval(
        Bound(lower.value, False) if lower is not None else lead.lower,
        Bound(upper.value, False) if upper is not None else lead.upper,
    )
    windows.append(Window.of(key, {lead_col: inner, **rest}))

    if upper is not None:
        windows.append(
            Window.of(
                key,
                {
                    lead_col: Interval.point(upper.value),
                    second_col: Interval(upper=second.upper),
                    **rest,
                },
            )
        )
    return windows


def _scan_order(window: Window, key: tuple[str, ...]) -> tuple[Any, ...]:
    # Ascending order of lower bounds; disjoint windows reverse cleanly for desc.
    parts: list[Any] = []
    for column in key:
        b = window.interval(column).lower
        parts.append((0,) if b is None else (1, b.value, 0 if b.inclusive else 1))
    return tuple(parts)


def classify(filter_set: FilterSet, config: PagerConfig | None = None) -> list[Window]:
    """Compute the minimal disjoint windows for a FilterSet, in scan order.

    An empty list means the predicates are contradictory and no store
    access is needed.

    Raises:
        TooManyFilterCombinations: more windows than ``config.max_windows``
    """
    config = config or PagerConfig()
    key = filter_set.schema.key

    windows = _split(key, filter_set.ranges)

    if filter_set.cursor is not None:
        chain = filter_set.cursor.chain(key)
        windows = [w.intersect(c, key) for w in windows for c in chain]

    windows = [w for w in windows if not w.is_empty()]
    if len(windows) > config.max_windows:
        raise TooManyFilterCombinations("filter windows", len(windows), config.max_windows)

    windows.sort(key=lambda w: _scan_order(w, key), reverse=filter_set.direction == "desc")
    log_windows_classified(
        entity=filter_set.schema.name,
        window_count=len(windows),
        kinds=[w.kind for w in windows],
    )
    return windows
