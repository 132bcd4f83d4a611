from __future__ import annotations
from typing import Iterable
from eth_utils import is_hex, remove_0x_prefix

from .errors import InvalidAddressFormat
from .models import WatchedAddress
from .value_types import Address, Topic

_TOPIC_PAD = "0" * 24   # 12 zero bytes


def normalize_address(value: str) -> WatchedAddress:
    """Lower-case an address and derive its 32-byte topic form."""
    if not isinstance(value, str):
        raise InvalidAddressFormat(value, "not a string")
    s = value.strip()
    if not s[:2].lower() == "0x":
        raise InvalidAddressFormat(value, "missing 0x prefix")
    body = remove_0x_prefix(s.lower())
    if len(body) != 40:
        raise InvalidAddressFormat(value, f"expected 20 bytes, got {len(body) / 2:g}")
    if not is_hex(body):
        raise InvalidAddressFormat(value, "not hex")
    return WatchedAddress(raw=Address("0x" + body), topic=Topic("0x" + _TOPIC_PAD + body))


def normalize_addresses(values: Iterable[str]) -> tuple[WatchedAddress, ...]:
    """Normalize a set of addresses, dropping duplicates but keeping first-seen order."""
    out: list[WatchedAddress] = []
    seen: set[str] = set()
    for v in values:
        wa = normalize_address(v)
        if wa.raw in seen: continue
        seen.add(wa.raw)
        out.append(wa)
    return tuple(out)


def address_from_topic(topic: str) -> Address:
    """Recover a raw address from a left-zero-padded 32-byte topic."""
    h = remove_0x_prefix(topic.strip().lower())
    if len(h) != 64 or not is_hex(h) or h[:24] != _TOPIC_PAD:
        raise InvalidAddressFormat(topic, "not an address topic")
    return Address("0x" + h[24:])
