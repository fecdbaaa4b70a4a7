"""Tests for continuation tokens."""

from __future__ import annotations

import base64
import json

import pytest

from ledgerpager.cursor import Cursor, decode_cursor, encode_cursor
from ledgerpager.errors import InvalidCursor


def raw_token(payload) -> str:
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")


class TestCursorToken:
    def test_round_trip(self, nfts):
        cursor = Cursor("nfts", (3, 17), "desc")
        assert decode_cursor(cursor.to_token(), nfts, "desc") == cursor

    def test_token_is_url_safe(self, nfts):
        token = Cursor("nfts", (2**40, 2**41)).to_token()
        assert "=" not in token
        assert "+" not in token and "/" not in token

    def test_encode_from_row(self, nfts):
        row = {"account_id": 100, "token_id": 4, "serial_number": 9, "metadata": "x"}
        assert encode_cursor(row, nfts, "asc") == Cursor("nfts", (4, 9), "asc")

    def test_encode_requires_key_columns(self, nfts):
        with pytest.raises(ValueError, match="missing key column"):
            encode_cursor({"token_id": 4}, nfts, "asc")


class TestDecodeRejects:
    def test_garbage(self, nfts):
        with pytest.raises(InvalidCursor):
            decode_cursor("not a token!", nfts, "asc")

    def test_non_json_payload(self, nfts):
        token = base64.urlsafe_b64encode(b"token_id=4").decode()
        with pytest.raises(InvalidCursor, match="malformed"):
            decode_cursor(token, nfts, "asc")

    def test_unknown_field(self, nfts):
        token = raw_token({"entity": "nfts", "direction": "asc", "values": [1, 2], "x": 1})
        with pytest.raises(InvalidCursor, match="malformed"):
            decode_cursor(token, nfts, "asc")

    def test_empty_values(self, nfts):
        token = raw_token({"entity": "nfts", "direction": "asc", "values": []})
        with pytest.raises(InvalidCursor):
            decode_cursor(token, nfts, "asc")

    def test_other_listing(self, nfts, allowances):
        token = Cursor("allowances", (1, 2)).to_token()
        with pytest.raises(InvalidCursor, match="allowances"):
            decode_cursor(token, nfts, "asc")

    def test_other_direction(self, nfts):
        token = Cursor("nfts", (1, 2), "asc").to_token()
        with pytest.raises(InvalidCursor, match="order"):
            decode_cursor(token, nfts, "desc")

    def test_wrong_arity(self, nfts):
        token = Cursor("nfts", (1,)).to_token()
        with pytest.raises(InvalidCursor, match="expected 2"):
            decode_cursor(token, nfts, "asc")

    def test_value_of_wrong_type(self, nfts):
        token = raw_token({"entity": "nfts", "direction": "asc", "values": [1, "abc"]})
        with pytest.raises(InvalidCursor):
            decode_cursor(token, nfts, "asc")

    def test_invalid_cursor_is_client_error(self, nfts):
        with pytest.raises(InvalidCursor) as exc:
            decode_cursor("", nfts, "asc")
        assert exc.value.http_status == 400
