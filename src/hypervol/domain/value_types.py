from __future__ import annotations
from typing import NewType, Literal

Address = NewType("Address", str)           # 0x-prefixed, lowercase, 20 bytes
Topic = NewType("Topic", str)               # 0x-prefixed, lowercase, 32 bytes
EventSignature = NewType("EventSignature", str)  # topic0 hash
DecodeFailureKind = Literal["NoAbiForAddress", "DecodeTypeMismatch"]
PageStatus = Literal["merged", "failed"]
