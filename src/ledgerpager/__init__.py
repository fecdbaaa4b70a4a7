"""ledgerpager: partitioned keyset pagination for ledger listings."""

__version__ = "0.1.0"

from ledgerpager.classifier import Window, classify, windows_disjoint
from ledgerpager.composer import Page, PlanComposer
from ledgerpager.config import PagerConfig
from ledgerpager.cursor import Cursor, decode_cursor, encode_cursor
from ledgerpager.errors import (
    InvalidCursor,
    InvalidFilterCombination,
    LedgerPagerError,
    StoreExecutionError,
    StoreUnavailable,
    TooManyFilterCombinations,
)
from ledgerpager.filters import FilterPredicate, FilterSet, build_filter_set, parse_filter_param
from ledgerpager.listing import ListingService, parse_query_params
from ledgerpager.plan import SubPlan, build_subplans
from ledgerpager.schema import Column, EntitySchema, default_schemas
from ledgerpager.storage import QueryExecutor, SqliteQueryExecutor, initialize_store

__all__ = [
    "__version__",
    "PagerConfig",
    "Column",
    "EntitySchema",
    "default_schemas",
    "FilterPredicate",
    "FilterSet",
    "build_filter_set",
    "parse_filter_param",
    "Window",
    "classify",
    "windows_disjoint",
    "SubPlan",
    "build_subplans",
    "Page",
    "PlanComposer",
    "Cursor",
    "encode_cursor",
    "decode_cursor",
    "QueryExecutor",
    "SqliteQueryExecutor",
    "initialize_store",
    "ListingService",
    "parse_query_params",
    "LedgerPagerError",
    "InvalidFilterCombination",
    "TooManyFilterCombinations",
    "InvalidCursor",
    "StoreUnavailable",
    "StoreExecutionError",
]
