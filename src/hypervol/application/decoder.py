from __future__ import annotations
import asyncio, logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from ..domain.abi import AbiDefinition
from ..domain.addresses import normalize_address
from ..domain.errors import DecodeTypeMismatch
from ..domain.models import DecodedLog, DecodeFailure, RawLog
from ..ports.decoding import DecodingCapability

log = logging.getLogger(__name__)


@dataclass(slots=True)
class DecodedBatch:
    decoded: list[DecodedLog] = field(default_factory=list)
    failures: list[DecodeFailure] = field(default_factory=list)

    def failure_counts(self) -> dict[str, int]:
        return dict(Counter(f.kind for f in self.failures))


class LogDecoderAdapter:
    """Decodes a page of logs against the ABI registered for each emitter address."""

    def __init__(self, abis: Mapping[str, AbiDefinition], capability: DecodingCapability) -> None:
        self._abis = {normalize_address(a).raw: d for a, d in abis.items()}
        self._capability = capability

    @property
    def addresses(self) -> tuple[str, ...]:
        return tuple(self._abis)

    def decode_batch(self, logs: Sequence[RawLog]) -> DecodedBatch:
        out = DecodedBatch()
        for rl in logs:
            abi = self._abis.get(rl.address.lower())
            if abi is None:
                out.failures.append(DecodeFailure(rl, "NoAbiForAddress", f"no ABI registered for {rl.address}"))
                continue
            try:
                out.decoded.append(self._capability.decode(abi, rl))
            except DecodeTypeMismatch as e:
                out.failures.append(DecodeFailure(rl, "DecodeTypeMismatch", str(e)))
        for f in out.failures:
            log.warning("skipped log %s#%d from %s: %s (%s)",
                        f.log.transaction_hash, f.log.log_index, f.log.address, f.kind, f.reason)
        return out

    async def decode_page(self, logs: Sequence[RawLog]) -> DecodedBatch:
        """Same as decode_batch, on a worker thread so the event loop stays free."""
        if not logs:
            return DecodedBatch()
        return await asyncio.to_thread(self.decode_batch, logs)
