"""Structured error types for ledgerpager."""

from __future__ import annotations


class LedgerPagerError(Exception):
    """Base error for all ledgerpager errors."""

    http_status = 500


class InvalidFilterCombination(LedgerPagerError):
    """Raised when request filters conflict, are malformed, or target the wrong column."""

    http_status = 400

    def __init__(self, message: str, column: str | None = None) -> None:
        self.column = column
        super().__init__(message)


class TooManyFilterCombinations(LedgerPagerError):
    """Raised when a request would need more predicates or windows than allowed."""

    http_status = 400

    def __init__(self, what: str, count: int, limit: int) -> None:
        self.what = what
        self.count = count
        self.limit = limit
        super().__init__(f"Too many {what}: {count} exceeds the maximum of {limit}")


class InvalidCursor(LedgerPagerError):
    """Raised when a continuation token cannot be decoded for the requested listing."""

    http_status = 400

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Invalid cursor: {detail}")


class StoreError(LedgerPagerError):
    """Raised when the backing store fails; never retried here."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store error during {operation}: {detail}")


class StoreUnavailable(StoreError):
    """Raised when a connection to the store cannot be opened."""

    http_status = 503


class StoreExecutionError(StoreError):
    """Raised when a statement fails against an open connection."""

    http_status = 500
