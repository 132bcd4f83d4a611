from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .adapters.hypersync_httpx import DEFAULT_URL
from .domain.addresses import normalize_addresses
from .domain.errors import ConfigurationError
from .domain.models import WatchedAddress
from .domain.value_types import Address, EventSignature

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
TRANSFER_TOPIC0 = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
DEFAULT_WATCHED = "0x48c04ed5691981C42154C6167398f95e8f38a7fF"
DEFAULT_START_BLOCK = 15_000_000


@dataclass(frozen=True)
class RunConfig:
    """Static configuration for one volume scan."""

    url: str = DEFAULT_URL
    token_addresses: tuple[str, ...] = (USDC,)
    event_signatures: tuple[str, ...] = (TRANSFER_TOPIC0,)
    watched_addresses: tuple[str, ...] = (DEFAULT_WATCHED,)
    start_block: int = DEFAULT_START_BLOCK
    end_block: int | None = None          # exclusive
    abi_path: Path | None = None          # None = bundled ERC-20 ABI
    api_token: str | None = field(default=None, repr=False)
    timeout_s: float = 60
    journal_path: Path | None = None


@dataclass(frozen=True)
class ValidatedConfig:
    """RunConfig with addresses and signatures normalized once, up front."""

    config: RunConfig
    watched: tuple[WatchedAddress, ...]
    tokens: tuple[Address, ...]
    event_signatures: tuple[EventSignature, ...]


def _check_signature(s: str) -> EventSignature:
    t = s.strip().lower()
    body = t[2:]
    if not (t.startswith("0x") and len(body) == 64 and all(c in "0123456789abcdef" for c in body)):
        raise ConfigurationError(f"invalid event signature {s!r}: expected 0x + 64 hex chars")
    return EventSignature(t)


def validate(config: RunConfig) -> ValidatedConfig:
    """Raises InvalidAddressFormat / ConfigurationError before anything touches the network."""
    watched = normalize_addresses(config.watched_addresses)
    tokens = tuple(w.raw for w in normalize_addresses(config.token_addresses))
    if not watched:
        raise ConfigurationError("no watched addresses configured")
    if not tokens:
        raise ConfigurationError("no token addresses configured")
    sigs = tuple(_check_signature(s) for s in config.event_signatures)
    if not sigs:
        raise ConfigurationError("no event signatures configured")
    if config.start_block < 0:
        raise ConfigurationError(f"start block must be >= 0, got {config.start_block}")
    if config.end_block is not None and config.end_block <= config.start_block:
        raise ConfigurationError(f"end block ({config.end_block}) must be > start block ({config.start_block})")
    return ValidatedConfig(config=config, watched=watched, tokens=tokens, event_signatures=sigs)
