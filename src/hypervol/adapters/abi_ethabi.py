from __future__ import annotations
import json
from pathlib import Path
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_abi.grammar import parse as parse_abi_type
from eth_utils import remove_0x_prefix

from ..domain.abi import AbiDefinition, AbiParam
from ..domain.errors import AbiLoadError, DecodeTypeMismatch
from ..domain.models import DecodedLog, DecodedParam, RawLog
from ..ports.decoding import DecodingCapability

BUNDLED_ERC20_ABI = Path(__file__).resolve().parent.parent / "abi" / "erc20.abi.json"


def load_abi_definition(path: str | Path) -> AbiDefinition:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except (OSError, ValueError) as e:  # ValueError covers JSONDecodeError and UnicodeDecodeError
        raise AbiLoadError(f"cannot read ABI from {path}: {e}") from e
    return AbiDefinition.from_json(obj)


def default_erc20_abi() -> AbiDefinition:
    return load_abi_definition(BUNDLED_ERC20_ABI)


def _hex_bytes(h: str) -> bytes:
    s = remove_0x_prefix(h)
    if len(s) % 2: s = "0" + s
    return bytes.fromhex(s)


def _normalize(abi_type: str, v: Any) -> Any:
    # eth-abi hands back checksummed addresses; aggregation keys are lowercase
    if abi_type == "address" and isinstance(v, str):
        return v.lower()
    if abi_type.startswith("address[") and isinstance(v, (list, tuple)):
        return tuple(x.lower() for x in v)
    return v


def _decode_indexed(p: AbiParam, topic: str) -> Any:
    raw = _hex_bytes(topic)
    if len(raw) != 32:
        raise DecodeTypeMismatch(f"topic for {p.name} is {len(raw)} bytes")
    # dynamic indexed values are stored as their keccak hash
    if parse_abi_type(p.abi_type).is_dynamic:
        return "0x" + raw.hex()
    (v,) = abi_decode([p.abi_type], raw)
    return _normalize(p.abi_type, v)


class EthAbiDecoder(DecodingCapability):
    """Strict eth-abi decoding; anything that does not fit raises DecodeTypeMismatch."""

    def decode(self, abi: AbiDefinition, log: RawLog) -> DecodedLog:
        if not log.topics:
            raise DecodeTypeMismatch("log has no topic0")
        ev = abi.event_for(log.topics[0])
        if ev is None:
            raise DecodeTypeMismatch(f"topic0 {log.topics[0]} is not an event of this ABI")

        indexed_params = ev.indexed
        if len(log.topics) - 1 != len(indexed_params):
            raise DecodeTypeMismatch(
                f"{ev.name} expects {len(indexed_params)} indexed topics, log has {len(log.topics) - 1}"
            )
        body_params = ev.body
        try:
            indexed = tuple(
                DecodedParam(p.name, p.abi_type, _decode_indexed(p, t))
                for p, t in zip(indexed_params, log.topics[1:])
            )
            values = abi_decode([p.abi_type for p in body_params], _hex_bytes(log.data)) if body_params else ()
        except (DecodingError, ValueError, OverflowError) as e:
            raise DecodeTypeMismatch(f"{ev.name}: {type(e).__name__}: {e}") from e

        body = tuple(DecodedParam(p.name, p.abi_type, _normalize(p.abi_type, v)) for p, v in zip(body_params, values))
        return DecodedLog(log=log, event=ev.name, indexed=indexed, body=body)
