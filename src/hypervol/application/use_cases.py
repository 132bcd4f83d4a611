from __future__ import annotations
import asyncio
from typing import Callable

from ..adapters.abi_ethabi import EthAbiDecoder, default_erc20_abi, load_abi_definition
from ..adapters.journal_jsonl import JSONLPageJournal
from ..config import ValidatedConfig
from ..domain.models import PageRecord
from ..ports.decoding import DecodingCapability
from ..ports.retrieval import Retrieval
from ..ports.storage import PageJournal
from .decoder import LogDecoderAdapter
from .pagination import PaginationDriver, RunResult
from .query_builder import build_query


def build_decoder(cfg: ValidatedConfig, capability: DecodingCapability | None = None) -> LogDecoderAdapter:
    """One ABI definition shared by every configured token address."""
    path = cfg.config.abi_path
    abi = load_abi_definition(path) if path is not None else default_erc20_abi()
    return LogDecoderAdapter({t: abi for t in cfg.tokens}, capability or EthAbiDecoder())


async def scan_volumes(
    *,
    retrieval: Retrieval,
    cfg: ValidatedConfig,
    decoder: LogDecoderAdapter | None = None,
    journal: PageJournal | None = None,
    cancel_event: asyncio.Event | None = None,
    on_page: Callable[[PageRecord], None] | None = None,
) -> RunResult:
    """Page through [start_block, end_block or archive height) and total both volumes."""
    query = build_query(
        cfg.watched, cfg.event_signatures, cfg.tokens,
        from_block=cfg.config.start_block, to_block=cfg.config.end_block,
    )
    if journal is None and cfg.config.journal_path is not None:
        journal = JSONLPageJournal(str(cfg.config.journal_path))
    driver = PaginationDriver(
        retrieval, decoder or build_decoder(cfg), query,
        journal=journal, cancel_event=cancel_event, on_page=on_page,
    )
    return await driver.run()
