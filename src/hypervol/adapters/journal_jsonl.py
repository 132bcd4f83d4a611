from __future__ import annotations
import os, json, asyncio
from dataclasses import asdict
from ..ports.storage import PageJournal
from ..domain.models import PageRecord

class JSONLPageJournal(PageJournal):
    """Append-only page log. Written for observability; nothing reads it back to resume."""

    def __init__(self, path: str) -> None:
        self.path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._lock = asyncio.Lock()

    async def append(self, rec: PageRecord) -> None:
        line = json.dumps(asdict(rec), separators=(",", ":")) + "\n"
        async with self._lock:
            await asyncio.to_thread(self._write_line, self.path, line)

    @staticmethod
    def _write_line(path: str, line: str) -> None:
        with open(path, "a") as f:
            f.write(line); f.flush(); os.fsync(f.fileno())
