"""Entity schema descriptors for paginated listings."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ledgerpager.errors import InvalidFilterCombination

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

_SQL_TYPES: dict[type, str] = {
    int: "INTEGER",
    str: "TEXT",
    bool: "BOOLEAN",
    float: "REAL",
}


def _validate_identifier(name: str) -> None:
    if not _IDENT_RE.match(name):
        raise ValueError(f"Invalid identifier '{name}': must match [a-z_][a-z0-9_]*")


@functools.lru_cache(maxsize=None)
def _adapter(tp: type) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


@dataclass(frozen=True)
class Column:
    """A stored column and the Python type its filter values coerce to."""

    name: str
    type: type = int
    nullable: bool = False

    def __post_init__(self) -> None:
        _validate_identifier(self.name)
        if self.type not in _SQL_TYPES:
            raise ValueError(f"Unsupported column type {self.type!r} for '{self.name}'")

    @property
    def sql_type(self) -> str:
        return _SQL_TYPES[self.type]


@dataclass(frozen=True)
class EntitySchema:
    """Immutable description of one listing.

    ``key`` is the composite sort key and must totally order the rows.
    ``equality`` lists the columns every request must pin (e.g. the owner
    account), ``side`` the non-key columns that accept eq/in filters.
    ``aliases`` maps public filter keys (``token.id``) to column names.
    ``default_order`` is the scan direction when a request names none.
    """

    name: str
    table: str
    columns: tuple[Column, ...]
    key: tuple[str, ...]
    equality: tuple[str, ...] = ()
    side: tuple[str, ...] = ()
    aliases: tuple[tuple[str, str], ...] = ()
    path: str = ""
    default_order: str = "asc"

    def __post_init__(self) -> None:
        _validate_identifier(self.table)
        if self.default_order not in ("asc", "desc"):
            raise ValueError(
                f"Schema '{self.name}' default_order must be asc or desc, got '{self.default_order}'"
            )
        if not self.key:
            raise ValueError(f"Schema '{self.name}' must declare a non-empty key")
        names = {c.name for c in self.columns}
        for col in (*self.key, *self.equality, *self.side):
            if col not in names:
                raise ValueError(f"Schema '{self.name}' references unknown column '{col}'")
        groups = [set(self.key), set(self.equality), set(self.side)]
        for i, a in enumerate(groups):
            for b in groups[i + 1 :]:
                if a & b:
                    raise ValueError(
                        f"Schema '{self.name}' uses column(s) {sorted(a & b)} in more than one role"
                    )
        for _, target in self.aliases:
            if target not in names:
                raise ValueError(f"Schema '{self.name}' alias targets unknown column '{target}'")

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def column(self, name: str) -> Column:
        for c in self.columns:
            if c.name == name:
                return c
        raise InvalidFilterCombination(
            f"Unknown filter column '{name}' for {self.name}", column=name
        )

    def resolve(self, key: str) -> str:
        """Map a public filter key or column name to a column name."""
        for alias, target in self.aliases:
            if alias == key:
                return target
        return self.column(key).name

    def coerce(self, column: str, raw: Any) -> Any:
        """Coerce a raw filter value to the column's declared type."""
        col = self.column(column)
        try:
            return _adapter(col.type).validate_python(raw)
        except PydanticValidationError as e:
            raise InvalidFilterCombination(
                f"Invalid value {raw!r} for column '{column}'", column=column
            ) from e

    def key_of(self, row: Mapping[str, Any]) -> tuple[Any, ...]:
        return tuple(row[c] for c in self.key)

    def ddl(self) -> list[str]:
        """CREATE statements for the table and its listing index."""
        cols = []
        for c in self.columns:
            null = "" if c.nullable else " NOT NULL"
            cols.append(f'"{c.name}" {c.sql_type}{null}')
        index_cols = ", ".join(f'"{c}"' for c in (*self.equality, *self.key))
        return [
            f'CREATE TABLE IF NOT EXISTS "{self.table}" ({", ".join(cols)})',
            f'CREATE UNIQUE INDEX IF NOT EXISTS "idx_{self.table}_listing" '
            f'ON "{self.table}" ({index_cols})',
        ]


def default_schemas() -> dict[str, EntitySchema]:
    """Build the descriptors for the built-in ledger listings."""
    nfts = EntitySchema(
        name="nfts",
        table="nft",
        columns=(
            Column("account_id"),
            Column("token_id"),
            Column("serial_number"),
            Column("spender", nullable=True),
            Column("created_timestamp"),
            Column("metadata", str, nullable=True),
        ),
        key=("token_id", "serial_number"),
        equality=("account_id",),
        side=("spender",),
        aliases=(
            ("account.id", "account_id"),
            ("token.id", "token_id"),
            ("serialnumber", "serial_number"),
            ("spender.id", "spender"),
        ),
        path="/api/v1/accounts/{account_id}/nfts",
        default_order="desc",
    )
    token_allowances = EntitySchema(
        name="allowances",
        table="token_allowance",
        columns=(
            Column("owner"),
            Column("spender"),
            Column("token_id"),
            Column("amount"),
            Column("timestamp_range_lower"),
        ),
        key=("spender", "token_id"),
        equality=("owner",),
        aliases=(("spender.id", "spender"), ("token.id", "token_id")),
        path="/api/v1/accounts/{owner}/allowances/tokens",
    )
    nft_allowances = EntitySchema(
        name="nft_allowances",
        table="nft_allowance",
        columns=(
            Column("owner"),
            Column("spender"),
            Column("token_id"),
            Column("approved_for_all", bool),
            Column("timestamp_range_lower"),
        ),
        key=("spender", "token_id"),
        equality=("owner",),
        side=("approved_for_all",),
        aliases=(("spender.id", "spender"), ("token.id", "token_id")),
        path="/api/v1/accounts/{owner}/allowances/nfts",
        default_order="desc",
    )
    tokens = EntitySchema(
        name="tokens",
        table="token_account",
        columns=(
            Column("account_id"),
            Column("token_id"),
            Column("balance"),
            Column("automatic_association", bool),
            Column("freeze_status"),
            Column("kyc_status"),
        ),
        key=("token_id",),
        equality=("account_id",),
        side=("freeze_status", "kyc_status"),
        aliases=(("token.id", "token_id"),),
        path="/api/v1/accounts/{account_id}/tokens",
    )
    staking_rewards = EntitySchema(
        name="rewards",
        table="staking_reward_transfer",
        columns=(
            Column("account_id"),
            Column("consensus_timestamp"),
            Column("amount"),
            Column("payer_account_id"),
        ),
        key=("consensus_timestamp",),
        equality=("account_id",),
        aliases=(("timestamp", "consensus_timestamp"),),
        path="/api/v1/accounts/{account_id}/rewards",
        default_order="desc",
    )
    blocks = EntitySchema(
        name="blocks",
        table="record_file",
        columns=(
            Column("index"),
            Column("consensus_start"),
            Column("consensus_end"),
            Column("count"),
            Column("hash", str),
            Column("name", str),
        ),
        key=("index",),
        aliases=(("block.number", "index"),),
        path="/api/v1/blocks",
        default_order="desc",
    )
    transactions = EntitySchema(
        name="transactions",
        table="transaction",
        columns=(
            Column("consensus_timestamp"),
            Column("payer_account_id"),
            Column("type"),
            Column("result"),
            Column("entity_id", nullable=True),
            Column("charged_tx_fee"),
        ),
        key=("consensus_timestamp",),
        side=("payer_account_id", "type", "result"),
        aliases=(
            ("timestamp", "consensus_timestamp"),
            ("account.id", "payer_account_id"),
            ("transactiontype", "type"),
        ),
        path="/api/v1/transactions",
        default_order="desc",
    )
    return {
        s.name: s
        for s in (nfts, token_allowances, nft_allowances, tokens, staking_rewards, blocks, transactions)
    }
