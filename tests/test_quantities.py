import pytest

from hypervol.domain.errors import InvalidQuantityFormat
from hypervol.domain.quantities import parse_quantity


@pytest.mark.parametrize("raw, expected", [
    (0, 0),
    (10, 10),
    ("0x0", 0),
    ("0x", 0),
    ("0xde0b6b3a7640000", 10**18),
    ("0XFF", 255),
    ("12345", 12345),
    ("0x" + "f" * 64, 2**256 - 1),
])
def test_parses(raw, expected):
    assert parse_quantity(raw) == expected


@pytest.mark.parametrize("raw", [None, 1.5, True, -1, "-1", "0x-1", "abc", "1e18", "", b"\x01", [1]])
def test_rejects(raw):
    with pytest.raises(InvalidQuantityFormat):
        parse_quantity(raw, "value")


def test_error_names_the_field():
    with pytest.raises(InvalidQuantityFormat, match="transaction.value"):
        parse_quantity("ten", "transaction.value")
