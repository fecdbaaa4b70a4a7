"""Filter predicates, key-column intervals, and FilterSet construction."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from ledgerpager.config import PagerConfig
from ledgerpager.errors import InvalidCursor, InvalidFilterCombination, TooManyFilterCombinations
from ledgerpager.schema import EntitySchema
from ledgerpager.telemetry import log_filter_set_built

if TYPE_CHECKING:
    from ledgerpager.cursor import Cursor

RANGE_OPS = ("gt", "gte", "lt", "lte")
DIRECTIONS = ("asc", "desc")

# Map operator tokens (including synonyms) to canonical operators
_OP_MAP: dict[str, str] = {
    "eq": "eq",
    "gt": "gt",
    "gte": "gte",
    "ge": "gte",
    "lt": "lt",
    "lte": "lte",
    "le": "lte",
    "in": "in",
}


def normalize_operator(token: str) -> str:
    """Return the canonical operator for a query-string operator token."""
    op = token.strip().lower()
    if op == "ne":
        raise InvalidFilterCombination("Not equals (ne) comparison operator is not supported")
    canonical = _OP_MAP.get(op)
    if canonical is None:
        raise InvalidFilterCombination(
            f"Unknown filter operator '{token}'. "
            f"Valid operators: {', '.join(sorted(set(_OP_MAP)))}"
        )
    return canonical


@dataclass(frozen=True)
class FilterPredicate:
    """A single ``column op value`` predicate; ``in`` carries a tuple of values."""

    column: str
    op: str
    value: Any = None


def parse_filter_param(key: str, raw: str) -> FilterPredicate:
    """Parse a query parameter such as ``serialnumber=gt:10``.

    A value without an operator prefix means ``eq``; ``in`` values are
    comma separated.
    """
    op_token, sep, value = raw.partition(":")
    if not sep:
        op_token, value = "eq", raw
    op = normalize_operator(op_token)
    if value == "":
        raise InvalidFilterCombination(f"Missing value for filter '{key}'", column=key)
    if op == "in":
        values = tuple(v.strip() for v in value.split(","))
        if any(v == "" for v in values):
            raise InvalidFilterCombination(f"Empty value in IN list for '{key}'", column=key)
        return FilterPredicate(key, op, values)
    return FilterPredicate(key, op, value)


# --- Bounds and intervals ---


@dataclass(frozen=True)
class Bound:
    value: Any
    inclusive: bool


def _weaker_lower(a: Bound, b: Bound) -> Bound:
    if a.value != b.value:
        return a if a.value < b.value else b
    return a if a.inclusive else b


def _weaker_upper(a: Bound, b: Bound) -> Bound:
    if a.value != b.value:
        return a if a.value > b.value else b
    return a if a.inclusive else b


def _stronger_lower(a: Bound | None, b: Bound | None) -> Bound | None:
    if a is None or b is None:
        return a or b
    if a.value != b.value:
        return a if a.value > b.value else b
    return b if a.inclusive else a


def _stronger_upper(a: Bound | None, b: Bound | None) -> Bound | None:
    if a is None or b is None:
        return a or b
    if a.value != b.value:
        return a if a.value < b.value else b
    return b if a.inclusive else a


@dataclass(frozen=True)
class Interval:
    """A range over one key column; missing bounds are unbounded."""

    lower: Bound | None = None
    upper: Bound | None = None

    @classmethod
    def point(cls, value: Any) -> Interval:
        return cls(Bound(value, True), Bound(value, True))

    @classmethod
    def from_op(cls, op: str, value: Any) -> Interval:
        if op == "gt":
            return cls(lower=Bound(value, False))
        if op == "gte":
            return cls(lower=Bound(value, True))
        if op == "lt":
            return cls(upper=Bound(value, False))
        if op == "lte":
            return cls(upper=Bound(value, True))
        if op == "eq":
            return cls.point(value)
        raise ValueError(f"Operator '{op}' does not describe an interval")

    @property
    def kind(self) -> str:
        if self.lower is not None and self.upper is not None:
            return "closed"
        if self.lower is not None:
            return "open-lower"
        if self.upper is not None:
            return "open-upper"
        return "unbounded"

    @property
    def is_point(self) -> bool:
        return (
            self.lower is not None
            and self.upper is not None
            and self.lower.inclusive
            and self.upper.inclusive
            and self.lower.value == self.upper.value
        )

    def is_empty(self) -> bool:
        if self.lower is None or self.upper is None:
            return False
        if self.lower.value > self.upper.value:
            return True
        if self.lower.value == self.upper.value:
            return not (self.lower.inclusive and self.upper.inclusive)
        return False

    def intersect(self, other: Interval) -> Interval:
        return Interval(
            _stronger_lower(self.lower, other.lower),
            _stronger_upper(self.upper, other.upper),
        )

    def contains(self, value: Any) -> bool:
        if self.lower is not None:
            if value < self.lower.value or (value == self.lower.value and not self.lower.inclusive):
                return False
        if self.upper is not None:
            if value > self.upper.value or (value == self.upper.value and not self.upper.inclusive):
                return False
        return True


# --- FilterSet ---


@dataclass(frozen=True)
class FilterSet:
    """Normalized predicates for one listing request.

    ``ranges`` holds at most one interval per key column, in key order.
    Repeated same-direction bounds have already collapsed to the weakest one.
    """

    schema: EntitySchema
    direction: str
    limit: int
    equality: dict[str, Any] = field(default_factory=dict)
    ranges: dict[str, Interval] = field(default_factory=dict)
    side_filters: tuple[FilterPredicate, ...] = ()
    cursor: Cursor | None = None


def _resolve_limit(limit: Any, config: PagerConfig) -> int:
    if limit is None:
        return config.default_limit
    if isinstance(limit, bool):
        raise InvalidFilterCombination(f"Invalid limit {limit!r}", column="limit")
    try:
        value = int(limit)
    except (TypeError, ValueError) as e:
        raise InvalidFilterCombination(f"Invalid limit {limit!r}", column="limit") from e
    if value <= 0:
        raise InvalidFilterCombination(f"Limit must be positive, got {value}", column="limit")
    return min(value, config.max_limit)


def resolve_direction(direction: str) -> str:
    value = direction.strip().lower()
    if value not in DIRECTIONS:
        raise InvalidFilterCombination(
            f"Invalid order '{direction}': must be one of {', '.join(DIRECTIONS)}", column="order"
        )
    return value


def _set_once(target: dict[str, Any], column: str, value: Any) -> None:
    if column in target and target[column] != value:
        raise InvalidFilterCombination(
            f"Conflicting eq values for '{column}': {target[column]!r} and {value!r}",
            column=column,
        )
    target[column] = value


def build_filter_set(
    schema: EntitySchema,
    predicates: Iterable[FilterPredicate],
    *,
    equality: Mapping[str, Any] | None = None,
    direction: str = "asc",
    limit: Any = None,
    cursor: Cursor | None = None,
    config: PagerConfig | None = None,
) -> FilterSet:
    """Validate caller predicates against a schema and normalize them.

    Raises:
        InvalidFilterCombination: conflicting, misplaced, or malformed filters
        TooManyFilterCombinations: a column repeated beyond the configured maximum
        InvalidCursor: the cursor belongs to another listing or order
    """
    config = config or PagerConfig()
    direction = resolve_direction(direction)
    resolved_limit = _resolve_limit(limit, config)

    resolved = [
        FilterPredicate(schema.resolve(p.column), normalize_operator(p.op), p.value)
        for p in predicates
    ]
    for column, count in Counter(p.column for p in resolved).items():
        if count > config.max_repeated_predicates:
            raise TooManyFilterCombinations(
                f"filters on '{column}'", count, config.max_repeated_predicates
            )

    eq_values: dict[str, Any] = {}
    for column, value in (equality or {}).items():
        column = schema.resolve(column)
        if column not in schema.equality:
            raise InvalidFilterCombination(
                f"'{column}' is not an equality column of {schema.name}", column=column
            )
        _set_once(eq_values, column, schema.coerce(column, value))

    key_points: dict[str, Any] = {}
    side_eq: dict[str, Any] = {}
    lowers: dict[str, Bound] = {}
    uppers: dict[str, Bound] = {}
    side_filters: list[FilterPredicate] = []

    for pred in resolved:
        column, op = pred.column, pred.op
        if op == "in":
            if column not in schema.side:
                raise InvalidFilterCombination(
                    f"The in operator is not supported on '{column}'", column=column
                )
            values = pred.value if isinstance(pred.value, (list, tuple)) else (pred.value,)
            if not values:
                raise InvalidFilterCombination(f"Empty IN list for '{column}'", column=column)
            if len(values) > config.max_repeated_predicates:
                raise TooManyFilterCombinations(
                    f"values in IN list for '{column}'", len(values), config.max_repeated_predicates
                )
            coerced = tuple(dict.fromkeys(schema.coerce(column, v) for v in values))
            side_filters.append(FilterPredicate(column, "in", coerced))
        elif op == "eq":
            value = schema.coerce(column, pred.value)
            if column in schema.key:
                _set_once(key_points, column, value)
            elif column in schema.equality:
                _set_once(eq_values, column, value)
            elif column in schema.side:
                _set_once(side_eq, column, value)
            else:
                raise InvalidFilterCombination(
                    f"Filtering on '{column}' is not supported for {schema.name}", column=column
                )
        else:
            if column not in schema.key:
                raise InvalidFilterCombination(
                    f"Range operator '{op}' is not supported on '{column}'", column=column
                )
            bound = Interval.from_op(op, schema.coerce(column, pred.value))
            if bound.lower is not None:
                prev = lowers.get(column)
                lowers[column] = bound.lower if prev is None else _weaker_lower(prev, bound.lower)
            elif bound.upper is not None:
                prev = uppers.get(column)
                uppers[column] = bound.upper if prev is None else _weaker_upper(prev, bound.upper)

    ranges: dict[str, Interval] = {}
    for index, column in enumerate(schema.key):
        has_range = column in lowers or column in uppers
        if column in key_points:
            if has_range:
                raise InvalidFilterCombination(
                    f"Cannot combine eq with a range filter on '{column}'", column=column
                )
            ranges[column] = Interval.point(key_points[column])
        elif has_range:
            if index >= 2:
                raise InvalidFilterCombination(
                    f"Range filters are only supported on the first two key columns, not '{column}'",
                    column=column,
                )
            ranges[column] = Interval(lowers.get(column), uppers.get(column))

    _validate_secondary_range(schema, ranges)

    for column in schema.equality:
        if column not in eq_values:
            raise InvalidFilterCombination(f"Missing required filter '{column}'", column=column)

    side_filters = [FilterPredicate(c, "eq", v) for c, v in side_eq.items()] + side_filters

    if cursor is not None:
        if cursor.entity != schema.name:
            raise InvalidCursor(f"cursor was issued for '{cursor.entity}', not '{schema.name}'")
        if cursor.direction != direction:
            raise InvalidCursor(f"cursor was issued for '{cursor.direction}' order")

    filter_set = FilterSet(
        schema=schema,
        equality=eq_values,
        ranges=ranges,
        side_filters=tuple(side_filters),
        direction=direction,
        limit=resolved_limit,
        cursor=cursor,
    )
    log_filter_set_built(
        entity=schema.name,
        predicate_count=len(resolved),
        direction=direction,
        limit=resolved_limit,
        has_cursor=cursor is not None,
    )
    return filter_set


def _validate_secondary_range(schema: EntitySchema, ranges: Mapping[str, Interval]) -> None:
    """A bound on the second key column needs an inclusive leading bound on the same side."""
    if len(schema.key) < 2:
        return
    lead_col, second_col = schema.key[0], schema.key[1]
    lead, second = ranges.get(lead_col), ranges.get(second_col)
    if lead is None or second is None or lead.is_point or second.is_point:
        return
    if second.lower is not None and (lead.lower is None or not lead.lower.inclusive):
        raise InvalidFilterCombination(
            f"A lower bound {second_col} filter requires an inclusive lower bound {lead_col} filter",
            column=second_col,
        )
    if second.upper is not None and (lead.upper is None or not lead.upper.inclusive):
        raise InvalidFilterCombination(
            f"An upper bound {second_col} filter requires an inclusive upper bound {lead_col} filter",
            column=second_col,
        )
