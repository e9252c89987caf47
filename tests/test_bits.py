from enum import Enum

import pytest

from uarchsim.bits import bitmask, lg2, splice_bits, to_underlying


def test_bitmask_twelve_bits():
    assert bitmask(12) == 0xFFF


def test_bitmask_zero_width_is_empty():
    assert bitmask(0) == 0


@pytest.mark.parametrize("width", [1, 5, 12, 32, 64])
def test_bitmask_has_width_bits_set(width):
    mask = bitmask(width)
    assert mask.bit_length() == width
    assert mask + 1 == 1 << width


def test_bitmask_rejects_negative_width():
    with pytest.raises(ValueError):
        bitmask(-1)


@pytest.mark.parametrize("k", [0, 1, 6, 12, 40, 63])
def test_lg2_of_power_of_two(k):
    assert lg2(1 << k) == k


@pytest.mark.parametrize("k", [2, 6, 12])
def test_lg2_rounds_down(k):
    assert lg2((1 << k) + 1) == k
    assert lg2((1 << (k + 1)) - 1) == k


@pytest.mark.parametrize("n", [0, -4])
def test_lg2_rejects_non_positive(n):
    with pytest.raises(ValueError):
        lg2(n)


def test_splice_bits_takes_low_bits_from_lower():
    upper = 0xDEADBEEF0000
    lower = 0x1234
    result = splice_bits(upper, lower, 12)
    assert result & bitmask(12) == lower & bitmask(12)
    assert result >> 12 == upper >> 12


def test_splice_bits_with_zero_bits_keeps_upper():
    assert splice_bits(0xCAFEBABE, 0xFFFF, 0) == 0xCAFEBABE


def test_to_underlying_returns_value():
    class Colour(Enum):
        RED = 3
        BLUE = 9

    assert to_underlying(Colour.BLUE) == 9