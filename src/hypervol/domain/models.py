from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any
from .value_types import Address, DecodeFailureKind, PageStatus, Topic


@dataclass(slots=True, frozen=True)
class WatchedAddress:
    raw: Address      # 0x + 40 hex, lowercase
    topic: Topic      # 0x + 24 zero hex + 40 hex

    def __str__(self) -> str: return self.raw


# ──────────────────────────────
# Query
# ──────────────────────────────

@dataclass(slots=True, frozen=True)
class LogFilter:
    """Emitter addresses plus ordered topic slots; an empty slot matches anything."""
    address: tuple[Address, ...]
    topics: tuple[tuple[str, ...], ...]


@dataclass(slots=True, frozen=True)
class TransactionFilter:
    from_: tuple[Address, ...] = ()
    to: tuple[Address, ...] = ()


@dataclass(slots=True, frozen=True)
class FieldSelection:
    log: tuple[str, ...]
    transaction: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class QuerySpec:
    from_block: int                       # inclusive
    to_block: int | None                  # exclusive, None = up to archive height
    logs: tuple[LogFilter, ...]
    transactions: tuple[TransactionFilter, ...]
    field_selection: FieldSelection

    def at(self, cursor: int) -> "QuerySpec":
        return replace(self, from_block=cursor)


# ──────────────────────────────
# Raw records / page
# ──────────────────────────────

@dataclass(slots=True, frozen=True)
class RawLog:
    block_number: int
    log_index: int
    transaction_index: int
    transaction_hash: str
    data: str                          # 0x-prefixed hex
    address: Address
    topics: tuple[str, ...]            # topic0 first, lowercased


@dataclass(slots=True, frozen=True)
class RawTransaction:
    block_number: int
    transaction_index: int
    hash: str
    from_: Address
    to: Address | None                 # None for contract creation
    value: int                         # wei
    input: str = "0x"


@dataclass(slots=True, frozen=True)
class QueryResponsePage:
    logs: tuple[RawLog, ...]
    transactions: tuple[RawTransaction, ...]
    next_block: int
    archive_height: int


# ──────────────────────────────
# Decoding
# ──────────────────────────────

@dataclass(slots=True, frozen=True)
class DecodedParam:
    name: str
    abi_type: str
    value: Any


@dataclass(slots=True, frozen=True)
class DecodedLog:
    log: RawLog
    event: str
    indexed: tuple[DecodedParam, ...]
    body: tuple[DecodedParam, ...]


@dataclass(slots=True, frozen=True)
class DecodeFailure:
    log: RawLog
    kind: DecodeFailureKind
    reason: str


@dataclass(slots=True, frozen=True)
class TokenTransfer:
    from_: Address
    to: Address
    amount: int


# ──────────────────────────────
# Run bookkeeping
# ──────────────────────────────

@dataclass(slots=True, frozen=True)
class PageRecord:
    from_block: int
    next_block: int
    archive_height: int
    status: PageStatus = "merged"
    logs: int = 0
    transactions: int = 0
    decoded: int = 0
    decode_failures: int = 0
    error: str | None = None
    updated_at: float = 0.0
