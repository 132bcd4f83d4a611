from __future__ import annotations
import asyncio, json, logging
from typing import Any, Iterable
import httpx
from eth_utils import is_hex_address

from ..domain.errors import RetrievalError
from ..domain.models import (
    LogFilter, QueryResponsePage, QuerySpec, RawLog, RawTransaction, TransactionFilter,
)
from ..domain.quantities import parse_quantity
from ..domain.value_types import Address
from ..ports.retrieval import Retrieval

log = logging.getLogger(__name__)

DEFAULT_URL = "https://eth.hypersync.xyz"
_TOPIC_KEYS = ("topic0", "topic1", "topic2", "topic3")


# ──────────────────────────────
# QuerySpec → wire JSON
# ──────────────────────────────

def _log_filter_json(f: LogFilter) -> dict[str, Any]:
    return {"address": list(f.address), "topics": [list(slot) for slot in f.topics]}

def _tx_filter_json(f: TransactionFilter) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if f.from_: out["from"] = list(f.from_)
    if f.to: out["to"] = list(f.to)
    return out

def query_payload(q: QuerySpec) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "from_block": q.from_block,
        "logs": [_log_filter_json(f) for f in q.logs],
        "transactions": [_tx_filter_json(f) for f in q.transactions],
        "field_selection": {
            "log": list(q.field_selection.log),
            "transaction": list(q.field_selection.transaction),
        },
    }
    if q.to_block is not None:
        payload["to_block"] = q.to_block
    return payload


# ──────────────────────────────
# wire JSON → page
# ──────────────────────────────

def _lower_hex(v: Any) -> str:
    return str(v or "0x").lower()

def _topics(rl: dict[str, Any]) -> tuple[str, ...]:
    if isinstance(rl.get("topics"), list):
        raw = rl["topics"]
    else:
        raw = [rl.get(k) for k in _TOPIC_KEYS]
    out: list[str] = []
    for t in raw:
        if t is None: break       # topics are positional; stop at the first gap
        out.append(str(t).lower())
    return tuple(out)

def _address(v: Any, field: str) -> Address:
    if not isinstance(v, str) or not is_hex_address(v):
        raise RetrievalError(f"{field} is not a 20-byte address: {v!r}")
    return Address(v.lower())

def _parse_log(rl: dict[str, Any]) -> RawLog:
    return RawLog(
        block_number=parse_quantity(rl["block_number"], "log.block_number"),
        log_index=parse_quantity(rl["log_index"], "log.log_index"),
        transaction_index=parse_quantity(rl.get("transaction_index", 0), "log.transaction_index"),
        transaction_hash=_lower_hex(rl.get("transaction_hash")),
        data=str(rl.get("data") or "0x"),
        address=_address(rl["address"], "log.address"),
        topics=_topics(rl),
    )

def _parse_tx(rt: dict[str, Any]) -> RawTransaction:
    to = rt.get("to")
    return RawTransaction(
        block_number=parse_quantity(rt["block_number"], "transaction.block_number"),
        transaction_index=parse_quantity(rt.get("transaction_index", 0), "transaction.transaction_index"),
        hash=_lower_hex(rt.get("hash")),
        from_=_address(rt.get("from"), "transaction.from"),
        to=_address(to, "transaction.to") if to else None,
        value=parse_quantity(rt.get("value", 0), "transaction.value"),
        input=str(rt.get("input") or "0x"),
    )

def _batches(data: Any) -> Iterable[dict[str, Any]]:
    if data is None: return []
    if isinstance(data, dict): return [data]
    if isinstance(data, list): return [d for d in data if isinstance(d, dict)]
    raise RetrievalError(f"unexpected 'data' type {type(data).__name__}")

def parse_page(body: dict[str, Any]) -> QueryResponsePage:
    """Parse a /query response. Missing fields raise RetrievalError; bad quantities raise InvalidQuantityFormat."""
    try:
        logs: list[RawLog] = []
        txs: list[RawTransaction] = []
        for batch in _batches(body.get("data")):
            logs.extend(_parse_log(rl) for rl in batch.get("logs") or [])
            txs.extend(_parse_tx(rt) for rt in batch.get("transactions") or [])
        next_block = parse_quantity(body["next_block"], "next_block")
        archive_height = parse_quantity(body["archive_height"], "archive_height")
    except (KeyError, TypeError, AttributeError) as e:
        raise RetrievalError(f"malformed query response: {type(e).__name__}: {e}") from e
    return QueryResponsePage(
        logs=tuple(logs), transactions=tuple(txs),
        next_block=next_block, archive_height=archive_height,
    )


# ──────────────────────────────
# client
# ──────────────────────────────

class HttpxHypersync(Retrieval):
    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        api_token: str | None = None,
        timeout_s: float = 60,
        max_conn: int = 8,
        max_attempts: int = 3,
        backoff_s: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.backoff_s = backoff_s
        self.client = client or httpx.AsyncClient(
            http2=True,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn // 2)),
        )
        if api_token:
            self.client.headers["Authorization"] = f"Bearer {api_token}"

    async def __aenter__(self) -> "HttpxHypersync":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kw: Any) -> Any:
        # retry on 429 only; everything else is the caller's problem
        for attempt in range(self.max_attempts):
            try:
                r = await self.client.request(method, f"{self.url}{path}", **kw)
            except httpx.HTTPError as e:
                raise RetrievalError(f"{method} {path} failed: {type(e).__name__}: {e}") from e
            if r.status_code == 429:
                ra = r.headers.get("Retry-After")
                delay = float(ra) if ra and ra.isdigit() else self.backoff_s * (2 ** attempt)
                log.warning("rate limited on %s (attempt %d/%d), sleeping %.1fs",
                            path, attempt + 1, self.max_attempts, delay)
                await asyncio.sleep(delay)
                continue
            if r.is_error:
                raise RetrievalError(f"{method} {path} returned HTTP {r.status_code}: {r.text[:200]}")
            try:
                return r.json()
            except json.JSONDecodeError as e:
                raise RetrievalError(f"{method} {path} returned invalid JSON: {e}") from e
        raise RetrievalError(f"retries exhausted for {method} {path}")

    async def fetch_page(self, query: QuerySpec) -> QueryResponsePage:
        body = await self._request("POST", "/query", json=query_payload(query))
        if not isinstance(body, dict):
            raise RetrievalError("query response is not a JSON object")
        page = parse_page(body)
        log.debug("page from=%d next=%d height=%d logs=%d txs=%d", query.from_block,
                  page.next_block, page.archive_height, len(page.logs), len(page.transactions))
        return page

    async def archive_height(self) -> int:
        body = await self._request("GET", "/height")
        try:
            return parse_quantity(body["height"], "height")
        except (KeyError, TypeError) as e:
            raise RetrievalError(f"malformed height response: {body!r}") from e
