"""CLI parameter parsing: KEY=OP:VALUE options into query pairs."""

from __future__ import annotations


def parse_cli_params(items: list[str] | None) -> list[tuple[str, str]]:
    """Split repeatable ``KEY=OP:VALUE`` options into ``(key, value)`` pairs.

    Raises ValueError when an item has no ``=``.
    """
    pairs: list[tuple[str, str]] = []
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid parameter '{item}': expected KEY=[OP:]VALUE")
        pairs.append((key.strip(), value.strip()))
    return pairs


def parse_cli_equality(items: list[str] | None) -> dict[str, str]:
    """Split repeatable ``COLUMN=VALUE`` options into a mapping."""
    equality: dict[str, str] = {}
    for key, value in parse_cli_params(items):
        if key in equality and equality[key] != value:
            raise ValueError(f"Conflicting values for '{key}'")
        equality[key] = value
    return equality
