"""Builders for raw records and an in-memory retrieval port."""
from __future__ import annotations

from hypervol.config import TRANSFER_TOPIC0, USDC
from hypervol.domain.addresses import normalize_address
from hypervol.domain.models import QueryResponsePage, QuerySpec, RawLog, RawTransaction

TOKEN = USDC.lower()
AAA = "0x" + "a" * 40
BBB = "0x" + "b" * 40
CCC = "0x" + "c" * 40
APPROVAL_TOPIC0 = "0x8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"


def topic(addr: str) -> str:
    return normalize_address(addr).topic


def word(n: int) -> str:
    return n.to_bytes(32, "big").hex()


def transfer_log(frm: str, to: str, amount: int, *, address: str = TOKEN, block: int = 15_000_000,
                 log_index: int = 0, topic0: str = TRANSFER_TOPIC0) -> RawLog:
    return RawLog(
        block_number=block,
        log_index=log_index,
        transaction_index=0,
        transaction_hash="0x" + f"{block:x}{log_index:x}".rjust(64, "0"),
        data="0x" + word(amount),
        address=address,
        topics=(topic0, topic(frm), topic(to)),
    )


def tx(frm: str, to: str | None, value: int, *, block: int = 15_000_000, index: int = 0) -> RawTransaction:
    return RawTransaction(
        block_number=block,
        transaction_index=index,
        hash="0x" + f"{block:x}{index:x}".rjust(64, "1"),
        from_=frm,
        to=to,
        value=value,
    )


def page(next_block: int, archive_height: int, logs=(), txs=()) -> QueryResponsePage:
    return QueryResponsePage(logs=tuple(logs), transactions=tuple(txs),
                             next_block=next_block, archive_height=archive_height)


class ScriptedRetrieval:
    """Replays canned pages (or raises canned errors) and records every query."""

    def __init__(self, pages, height: int = 0) -> None:
        self.pages = list(pages)
        self.height = height
        self.queries: list[QuerySpec] = []

    async def fetch_page(self, query: QuerySpec) -> QueryResponsePage:
        self.queries.append(query)
        if not self.pages:
            raise AssertionError(f"unexpected request from block {query.from_block}")
        item = self.pages.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def archive_height(self) -> int:
        return self.height

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    @property
    def from_blocks(self) -> list[int]:
        return [q.from_block for q in self.queries]
