"""
Sequential page driver.

    IDLE -> REQUESTING -> MERGING -> (REQUESTING | DONE)

Each request starts where the previous response said to continue
(`next_block`). A page is decoded in full, then merged, before the next one is
requested; the cursor must move forward on every page that does not finish the
range, which bounds the loop for any finite range.
"""
from __future__ import annotations

import asyncio, logging, time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..domain.aggregation import AggregateState, add_native_transfer, add_token_transfer, transfer_from_decoded
from ..domain.errors import DecodeTypeMismatch, InvalidQuantityFormat, RetrievalError, RunCancelled
from ..domain.models import DecodeFailure, PageRecord, QueryResponsePage, QuerySpec
from ..ports.retrieval import Retrieval
from ..ports.storage import PageJournal
from .decoder import LogDecoderAdapter

log = logging.getLogger(__name__)


class DriverState(Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    MERGING = "merging"
    DONE = "done"


@dataclass(slots=True)
class RunResult:
    final_cursor: int
    archive_height: int
    pages: int
    aggregates: AggregateState
    decode_failures: dict[str, int] = field(default_factory=dict)


class PaginationDriver:
    def __init__(
        self,
        retrieval: Retrieval,
        decoder: LogDecoderAdapter,
        query: QuerySpec,
        *,
        state: AggregateState | None = None,
        journal: PageJournal | None = None,
        cancel_event: asyncio.Event | None = None,
        on_page: Callable[[PageRecord], None] | None = None,
    ) -> None:
        self.retrieval = retrieval
        self.decoder = decoder
        self.query = query
        self.aggregates = state if state is not None else AggregateState()
        self.journal = journal
        self.cancel_event = cancel_event
        self.on_page = on_page

        self.state = DriverState.IDLE
        self.cursor = query.from_block
        self.archive_height = 0
        self.pages = 0
        self.failures: Counter[str] = Counter()
        self._signatures = frozenset(s for f in query.logs for s in (f.topics[0] if f.topics else ()))

    def _exhausted(self, cursor: int, archive_height: int) -> bool:
        if self.query.to_block is not None and cursor >= self.query.to_block:
            return True
        return cursor >= archive_height

    async def _record_failure(self, from_block: int, err: Exception) -> None:
        if self.journal is not None:
            await self.journal.append(PageRecord(
                from_block=from_block, next_block=from_block, archive_height=self.archive_height,
                status="failed", error=str(err), updated_at=time.time(),
            ))

    async def _request(self, from_block: int) -> QueryResponsePage:
        try:
            page = await self.retrieval.fetch_page(self.query.at(from_block))
        except RetrievalError as e:
            await self._record_failure(from_block, e)
            if e.cursor is None:
                raise RetrievalError(str(e), cursor=from_block) from e
            raise
        except InvalidQuantityFormat as e:
            await self._record_failure(from_block, e)
            raise RetrievalError(f"unparseable response: {e}", cursor=from_block) from e
        except RunCancelled:
            raise
        except Exception as e:
            # CancelledError is a BaseException and passes through untouched
            await self._record_failure(from_block, e)
            raise RetrievalError(f"{type(e).__name__}: {e}", cursor=from_block) from e

        if page.next_block < from_block:
            err = RetrievalError(f"cursor regression: next_block {page.next_block} < from_block {from_block}",
                                 cursor=from_block)
            await self._record_failure(from_block, err)
            raise err
        if page.next_block == from_block and not self._exhausted(from_block, page.archive_height):
            err = RetrievalError(f"no progress at block {from_block} (archive height {page.archive_height})",
                                 cursor=from_block)
            await self._record_failure(from_block, err)
            raise err
        return page

    async def _merge(self, from_block: int, page: QueryResponsePage) -> PageRecord:
        batch = await self.decoder.decode_page(page.logs)

        merged = 0
        for d in batch.decoded:
            if d.log.topics[0] not in self._signatures:
                log.debug("ignoring %s log %s#%d", d.event, d.log.transaction_hash, d.log.log_index)
                continue
            try:
                t = transfer_from_decoded(d)
            except DecodeTypeMismatch as e:
                log.warning("skipped log %s#%d: %s", d.log.transaction_hash, d.log.log_index, e)
                batch.failures.append(DecodeFailure(d.log, "DecodeTypeMismatch", str(e)))
                continue
            add_token_transfer(self.aggregates, t.from_, t.to, t.amount)
            merged += 1

        for tx in page.transactions:
            add_native_transfer(self.aggregates, tx.from_, tx.to, tx.value)

        self.failures.update(batch.failure_counts())
        return PageRecord(
            from_block=from_block,
            next_block=page.next_block,
            archive_height=page.archive_height,
            logs=len(page.logs),
            transactions=len(page.transactions),
            decoded=merged,
            decode_failures=len(batch.failures),
            updated_at=time.time(),
        )

    async def run(self) -> RunResult:
        if self.state is not DriverState.IDLE:
            raise RuntimeError(f"driver already used (state={self.state.value})")

        self.state = DriverState.REQUESTING
        while self.state is DriverState.REQUESTING:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise RunCancelled(self.cursor)

            from_block = self.cursor
            page = await self._request(from_block)

            self.state = DriverState.MERGING
            rec = await self._merge(from_block, page)
            self.cursor = page.next_block
            self.archive_height = page.archive_height
            self.pages += 1
            log.info("page %d merged: blocks [%d, %d) logs=%d txs=%d decode_failures=%d",
                     self.pages, from_block, page.next_block, rec.logs, rec.transactions, rec.decode_failures)
            if self.journal is not None:
                await self.journal.append(rec)
            if self.on_page is not None:
                self.on_page(rec)

            self.state = DriverState.DONE if self._exhausted(self.cursor, page.archive_height) else DriverState.REQUESTING

        return RunResult(
            final_cursor=self.cursor,
            archive_height=self.archive_height,
            pages=self.pages,
            aggregates=self.aggregates,
            decode_failures=dict(self.failures),
        )
