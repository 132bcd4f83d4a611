from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence
from eth_utils import keccak

from .errors import AbiLoadError


@dataclass(slots=True, frozen=True)
class AbiParam:
    name: str
    abi_type: str        # canonical, tuples expanded: "(address,uint256)[]"
    indexed: bool


@dataclass(slots=True, frozen=True)
class AbiEvent:
    name: str
    inputs: tuple[AbiParam, ...]
    topic0: str          # 0x-prefixed lowercase keccak of the signature

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.abi_type for p in self.inputs)})"

    @property
    def indexed(self) -> tuple[AbiParam, ...]:
        return tuple(p for p in self.inputs if p.indexed)

    @property
    def body(self) -> tuple[AbiParam, ...]:
        return tuple(p for p in self.inputs if not p.indexed)


def _canonical_type(param: Mapping[str, Any]) -> str:
    t = str(param["type"])
    if t.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){t[len('tuple'):]}"
    return t


def event_topic0(signature: str) -> str:
    return "0x" + keccak(text=signature).hex()


@dataclass(slots=True, frozen=True)
class AbiDefinition:
    """Events of one contract interface, keyed by topic0."""
    events: Mapping[str, AbiEvent]

    def event_for(self, topic0: str) -> AbiEvent | None:
        return self.events.get(topic0.lower())

    @classmethod
    def from_json(cls, obj: Any) -> "AbiDefinition":
        """Accept a raw ABI list or an artifact object carrying an `abi` key."""
        entries = obj.get("abi") if isinstance(obj, dict) else obj
        if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
            raise AbiLoadError("ABI must be a JSON list of entries")
        events: dict[str, AbiEvent] = {}
        try:
            for e in entries:
                if not isinstance(e, dict) or e.get("type") != "event" or e.get("anonymous"):
                    continue
                inputs = tuple(
                    AbiParam(name=str(p.get("name") or f"arg{i}"),
                             abi_type=_canonical_type(p),
                             indexed=bool(p.get("indexed")))
                    for i, p in enumerate(e.get("inputs", []))
                )
                name = str(e["name"])
                sig = f"{name}({','.join(p.abi_type for p in inputs)})"
                ev = AbiEvent(name=name, inputs=inputs, topic0=event_topic0(sig))
                events[ev.topic0] = ev
        except (KeyError, TypeError, AttributeError) as exc:
            raise AbiLoadError(f"malformed ABI entry: {exc}") from exc
        return cls(events=events)
