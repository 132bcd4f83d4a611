"""
Running per-address volume totals.

Both asset classes count "volume touched": a transfer of n credits n to the
sender and n to the receiver. Totals only ever grow; zero-valued transfers
leave the books untouched (no zero entries are created).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Mapping

from .errors import DecodeTypeMismatch
from .models import DecodedLog, TokenTransfer
from .value_types import Address


class VolumeBook(Mapping[str, int]):
    """address -> running total. Indexing a missing address raises KeyError; use total() for zero on miss."""

    __slots__ = ("_totals",)

    def __init__(self) -> None:
        self._totals: dict[str, int] = {}

    def __getitem__(self, address: str) -> int:
        return self._totals[address]

    def __iter__(self) -> Iterator[str]:
        return iter(self._totals)

    def __len__(self) -> int:
        return len(self._totals)

    def total(self, address: str) -> int:
        return self._totals.get(address, 0)

    def credit(self, address: str, amount: int) -> None:
        self._totals[address] = self._totals.get(address, 0) + amount

    def __repr__(self) -> str:
        return f"VolumeBook({self._totals!r})"


@dataclass(slots=True)
class AggregateState:
    token: VolumeBook = field(default_factory=VolumeBook)
    native: VolumeBook = field(default_factory=VolumeBook)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be an int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")


def _credit_both(book: VolumeBook, from_: str | None, to: str | None, amount: int) -> None:
    _check_amount(amount)
    if amount == 0:
        return
    # self-transfers land on the same key once per role
    if from_ is not None: book.credit(from_, amount)
    if to is not None: book.credit(to, amount)


def add_token_transfer(state: AggregateState, from_: str, to: str, amount: int) -> AggregateState:
    _credit_both(state.token, from_, to, amount)
    return state


def add_native_transfer(state: AggregateState, from_: str, to: str | None, amount: int) -> AggregateState:
    """`to` is None for contract creations; only the sender is credited then."""
    _credit_both(state.native, from_, to, amount)
    return state


def transfer_from_decoded(decoded: DecodedLog) -> TokenTransfer:
    """Read (from, to, amount) positionally: indexed[0], indexed[1], body[0]."""
    if len(decoded.indexed) < 2 or len(decoded.body) < 1:
        raise DecodeTypeMismatch(
            f"{decoded.event} has {len(decoded.indexed)} indexed / {len(decoded.body)} body params, "
            "expected a transfer shape"
        )
    frm, to, amount = decoded.indexed[0].value, decoded.indexed[1].value, decoded.body[0].value
    if not isinstance(frm, str) or not isinstance(to, str):
        raise DecodeTypeMismatch(f"{decoded.event}: indexed from/to are not addresses")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise DecodeTypeMismatch(f"{decoded.event}: body[0] is not an unsigned integer")
    return TokenTransfer(from_=Address(frm.lower()), to=Address(to.lower()), amount=amount)
