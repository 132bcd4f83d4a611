# hypervol/ports/decoding.py
from __future__ import annotations

from typing import Protocol
from ..domain.abi import AbiDefinition
from ..domain.models import DecodedLog, RawLog


class DecodingCapability(Protocol):
    """Port for turning one raw log into typed values against a contract ABI."""

    def decode(self, abi: AbiDefinition, log: RawLog) -> DecodedLog:
        """Return indexed/body params in ABI declaration order.
        Raise DecodeTypeMismatch when the log does not fit the ABI."""
