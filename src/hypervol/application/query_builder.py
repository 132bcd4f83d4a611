from __future__ import annotations
from typing import Sequence

from ..domain.errors import ConfigurationError
from ..domain.models import FieldSelection, LogFilter, QuerySpec, TransactionFilter, WatchedAddress
from ..domain.value_types import Address, EventSignature

# Column names agreed with the query service.
LOG_FIELDS: tuple[str, ...] = (
    "block_number",
    "log_index",
    "transaction_index",
    "transaction_hash",
    "data",
    "address",
    "topic0",
    "topic1",
    "topic2",
)
TRANSACTION_FIELDS: tuple[str, ...] = (
    "block_number",
    "transaction_index",
    "hash",
    "from",
    "to",
    "value",
    "input",
)
FIELD_SELECTION = FieldSelection(log=LOG_FIELDS, transaction=TRANSACTION_FIELDS)


def build_query(
    watched: Sequence[WatchedAddress],
    event_signatures: Sequence[EventSignature],
    token_addresses: Sequence[Address],
    from_block: int,
    to_block: int | None = None,
) -> QuerySpec:
    """
    Build the retrieval request for a block range.

    A transfer log carries one address in the `from` slot and one in the `to`
    slot, so watched addresses are matched with two clauses (slot 2 fixed, then
    slot 1 fixed) rather than one clause constraining both. Transactions get the
    same treatment with a from-clause and a to-clause.
    """
    if not watched:
        raise ConfigurationError("at least one watched address is required")
    if not event_signatures:
        raise ConfigurationError("at least one event signature is required")
    if from_block < 0:
        raise ConfigurationError(f"from_block must be >= 0, got {from_block}")
    if to_block is not None and to_block <= from_block:
        raise ConfigurationError(f"to_block ({to_block}) must be > from_block ({from_block})")

    sigs = tuple(s.lower() for s in event_signatures)
    tokens = tuple(token_addresses)
    topics = tuple(w.topic for w in watched)
    raws = tuple(w.raw for w in watched)

    logs = (
        LogFilter(address=tokens, topics=(sigs, (), topics)),   # watched as receiver
        LogFilter(address=tokens, topics=(sigs, topics, ())),   # watched as sender
    )
    transactions = (TransactionFilter(from_=raws), TransactionFilter(to=raws))
    return QuerySpec(
        from_block=from_block,
        to_block=to_block,
        logs=logs,
        transactions=transactions,
        field_selection=FIELD_SELECTION,
    )
