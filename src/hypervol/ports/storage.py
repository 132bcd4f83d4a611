# hypervol/ports/storage.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import PageRecord


class PageJournal(Protocol):
    """Port for appending one status record per processed page (e.g., JSONL)."""

    async def append(self, rec: PageRecord) -> None:
        """Append a record; callers guarantee page order."""
