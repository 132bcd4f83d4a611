from __future__ import annotations


class HypervolError(Exception):
    """Base class for every error raised by hypervol."""


class ConfigurationError(HypervolError):
    """Static run configuration is unusable; raised before any retrieval."""


class InvalidAddressFormat(ConfigurationError):
    def __init__(self, value: object, reason: str = "expected 20 bytes of hex") -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"invalid address {value!r}: {reason}")


class AbiLoadError(ConfigurationError):
    pass


class InvalidQuantityFormat(HypervolError):
    def __init__(self, value: object, field: str = "quantity") -> None:
        self.value = value
        self.field = field
        super().__init__(f"invalid {field} {value!r}: expected a non-negative integer")


class RetrievalError(HypervolError):
    """A page request failed. `cursor` is the block the failed request started from."""

    def __init__(self, message: str, *, cursor: int | None = None) -> None:
        self.cursor = cursor
        if cursor is not None:
            message = f"{message} (cursor={cursor})"
        super().__init__(message)


class RunCancelled(HypervolError):
    def __init__(self, cursor: int) -> None:
        self.cursor = cursor
        super().__init__(f"run cancelled before requesting block {cursor}")


class DecodeError(HypervolError):
    kind: str = "DecodeError"


class NoAbiForAddress(DecodeError):
    kind = "NoAbiForAddress"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"no ABI registered for {address}")


class DecodeTypeMismatch(DecodeError):
    kind = "DecodeTypeMismatch"
