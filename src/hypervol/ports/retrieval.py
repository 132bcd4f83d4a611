# hypervol/ports/retrieval.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import QuerySpec, QueryResponsePage


class Retrieval(Protocol):
    """Port defining the contract for a paginated chain-indexing query service."""

    async def fetch_page(self, query: QuerySpec) -> QueryResponsePage:
        """Run one query from query.from_block; the service decides how far the page reaches.
        Transport/service failures raise RetrievalError."""

    async def archive_height(self) -> int:
        """Return the highest block currently served."""
