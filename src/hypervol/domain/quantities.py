from __future__ import annotations
from .errors import InvalidQuantityFormat


def parse_quantity(value: object, field: str = "quantity") -> int:
    """
    Parse a wire quantity into an int.

    Accepts native ints, 0x-prefixed hex strings and decimal strings.
    Anything else (floats, bools, None, negative numbers, junk) raises
    InvalidQuantityFormat instead of being coerced.
    """
    if isinstance(value, bool):
        raise InvalidQuantityFormat(value, field)
    if isinstance(value, int):
        n = value
    elif isinstance(value, str):
        s = value.strip().lower()
        try:
            if s.startswith("0x"):
                n = int(s[2:], 16) if len(s) > 2 else 0
            elif s.isdigit():
                n = int(s, 10)
            else:
                raise InvalidQuantityFormat(value, field)
        except ValueError as e:
            raise InvalidQuantityFormat(value, field) from e
    else:
        raise InvalidQuantityFormat(value, field)
    if n < 0:
        raise InvalidQuantityFormat(value, field)
    return n
