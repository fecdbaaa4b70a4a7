"""Opaque continuation tokens for keyset pagination."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from ledgerpager.classifier import Window
from ledgerpager.errors import InvalidCursor, InvalidFilterCombination
from ledgerpager.filters import Bound, Interval
from ledgerpager.schema import EntitySchema


class _CursorPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entity: StrictStr
    direction: Literal["asc", "desc"]
    values: list[Union[StrictInt, StrictFloat, StrictStr]] = Field(min_length=1)


@dataclass(frozen=True)
class Cursor:
    """Key values of the last row of a page, plus the order they were read in."""

    entity: str
    values: tuple[Any, ...]
    direction: str = "asc"

    def to_token(self) -> str:
        payload = _CursorPayload(
            entity=self.entity, direction=self.direction, values=list(self.values)  # type: ignore[arg-type]
        )
        raw = payload.model_dump_json().encode()
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    def chain(self, key: tuple[str, ...]) -> list[Window]:
        """Disjoint windows covering every row strictly beyond this cursor.

        For key ``(k1, k2)`` and ascending order this is
        ``(k1 = v1 AND k2 > v2) OR (k1 > v1)``, one window per clause.
        """
        windows: list[Window] = []
        for i, column in enumerate(key):
            ranges = {key[j]: Interval.point(self.values[j]) for j in range(i)}
            bound = Bound(self.values[i], False)
            ranges[column] = Interval(lower=bound) if self.direction == "asc" else Interval(upper=bound)
            windows.append(Window.of(key, ranges))
        return windows


def encode_cursor(row: Mapping[str, Any], schema: EntitySchema, direction: str) -> Cursor:
    """Build the cursor for the last row of a page."""
    missing = [c for c in schema.key if c not in row]
    if missing:
        raise ValueError(f"Row is missing key column(s) {missing} for {schema.name}")
    return Cursor(schema.name, schema.key_of(row), direction)


def decode_cursor(token: str, schema: EntitySchema, direction: str) -> Cursor:
    """Decode a token issued by ``Cursor.to_token`` for the same listing and order.

    Raises:
        InvalidCursor: the token is tampered, truncated, or issued for another
            listing, key, or order
    """
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise InvalidCursor("token is not valid base64") from e

    try:
        payload = _CursorPayload.model_validate_json(raw)
    except PydanticValidationError as e:
        raise InvalidCursor("malformed token payload") from e

    if payload.entity != schema.name:
        raise InvalidCursor(f"token was issued for '{payload.entity}', not '{schema.name}'")
    if payload.direction != direction:
        raise InvalidCursor(f"token was issued for '{payload.direction}' order")
    if len(payload.values) != len(schema.key):
        raise InvalidCursor(
            f"token carries {len(payload.values)} key value(s), expected {len(schema.key)}"
        )

    try:
        values = tuple(schema.coerce(c, v) for c, v in zip(schema.key, payload.values))
    except InvalidFilterCombination as e:
        raise InvalidCursor(str(e)) from e
    return Cursor(schema.name, values, payload.direction)
