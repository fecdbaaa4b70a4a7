"""Listing endpoints: query parameters in, response envelope with next link out."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping
from urllib.parse import urlencode

from ledgerpager.composer import Page, PlanComposer
from ledgerpager.config import PagerConfig
from ledgerpager.cursor import decode_cursor
from ledgerpager.errors import InvalidFilterCombination
from ledgerpager.filters import (
    FilterPredicate,
    FilterSet,
    build_filter_set,
    parse_filter_param,
    resolve_direction,
)
from ledgerpager.schema import EntitySchema, default_schemas
from ledgerpager.storage import QueryExecutor

LIMIT = "limit"
ORDER = "order"
CURSOR = "cursor"
_RESERVED = (LIMIT, ORDER, CURSOR)


@dataclass
class ListingRequest:
    """Query parameters of one listing call, split into filters and paging controls."""

    predicates: list[FilterPredicate] = field(default_factory=list)
    limit: str | None = None
    order: str | None = None
    cursor: str | None = None


def _paging_value(key: str, raw: str) -> str:
    # limit and order accept a bare value or an explicit eq: prefix
    op, sep, value = raw.partition(":")
    if sep:
        if op.strip().lower() != "eq":
            raise InvalidFilterCombination(f"Only eq is supported for '{key}'", column=key)
        return value
    return raw


def parse_query_params(pairs: Iterable[tuple[str, str]]) -> ListingRequest:
    """Parse ``(key, value)`` query pairs; repeated keys become repeated predicates."""
    request = ListingRequest()
    for key, raw in pairs:
        key = key.strip()
        if key in _RESERVED:
            if getattr(request, key) is not None:
                raise InvalidFilterCombination(
                    f"Multiple '{key}' parameters are not allowed", column=key
                )
            setattr(request, key, raw if key == CURSOR else _paging_value(key, raw))
            continue
        request.predicates.append(parse_filter_param(key, raw))
    return request


class ListingService:
    """Serves paginated listings for a set of entity schemas."""

    def __init__(
        self,
        executor: QueryExecutor,
        *,
        schemas: Mapping[str, EntitySchema] | None = None,
        config: PagerConfig | None = None,
    ) -> None:
        self._config = config or PagerConfig()
        self._schemas = dict(schemas) if schemas is not None else default_schemas()
        self._composer = PlanComposer(executor, self._config)

    def schema(self, entity: str) -> EntitySchema:
        try:
            return self._schemas[entity]
        except KeyError:
            raise ValueError(
                f"Unknown listing '{entity}'. Known listings: {', '.join(sorted(self._schemas))}"
            ) from None

    @property
    def composer(self) -> PlanComposer:
        return self._composer

    def filter_set(
        self,
        entity: str,
        params: Iterable[tuple[str, str]],
        *,
        equality: Mapping[str, Any] | None = None,
    ) -> FilterSet:
        """Validate a listing call's parameters without touching the store."""
        schema = self.schema(entity)
        request = parse_query_params(params)
        direction = resolve_direction(request.order or schema.default_order)
        cursor = decode_cursor(request.cursor, schema, direction) if request.cursor else None
        return build_filter_set(
            schema,
            request.predicates,
            equality=equality,
            direction=direction,
            limit=request.limit,
            cursor=cursor,
            config=self._config,
        )

    def page(
        self,
        entity: str,
        params: Iterable[tuple[str, str]],
        *,
        equality: Mapping[str, Any] | None = None,
    ) -> Page:
        return self._composer.build_page(self.filter_set(entity, params, equality=equality))

    def list(
        self,
        entity: str,
        params: Iterable[tuple[str, str]],
        *,
        equality: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Return ``{entity: rows, "links": {"next": url | None}}``."""
        params = list(params)
        page = self.page(entity, params, equality=equality)
        return {
            entity: page.rows,
            "links": {"next": self.next_link(entity, params, page, equality=equality)},
        }

    def next_link(
        self,
        entity: str,
        params: Iterable[tuple[str, str]],
        page: Page,
        *,
        equality: Mapping[str, Any] | None = None,
    ) -> str | None:
        token = page.next_cursor
        if token is None:
            return None
        schema = self.schema(entity)
        params = list(params)
        path_values = {schema.resolve(k): v for k, v in (equality or {}).items()}
        # equality columns may also arrive as query parameters
        for key, raw in params:
            if key in _RESERVED:
                continue
            pred = parse_filter_param(key, raw)
            column = schema.resolve(pred.column)
            if pred.op == "eq" and column in schema.equality:
                path_values.setdefault(column, pred.value)
        path = schema.path.format(**path_values) if schema.path else f"/{entity}"
        query = [(k, v) for k, v in params if k != CURSOR]
        query.append((CURSOR, token))
        return f"{self._config.link_prefix}{path}?{urlencode(query)}"
