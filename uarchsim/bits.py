"""Bit manipulation helpers used for address arithmetic."""

from __future__ import annotations

from enum import Enum
from typing import Any


def bitmask(width: int) -> int:
    """Return an integer with the low ``width`` bits set."""
    if width < 0:
        raise ValueError(f"bitmask width must be non-negative, got {width}")
    return (1 << width) - 1


def lg2(n: int) -> int:
    """Return the floor of the base-2 logarithm of a positive integer."""
    if n <= 0:
        raise ValueError(f"lg2 is undefined for {n}")
    return n.bit_length() - 1


def splice_bits(upper: int, lower: int, bits: int) -> int:
    """Combine the high bits of ``upper`` with the low ``bits`` bits of ``lower``."""
    mask = bitmask(bits)
    return (upper & ~mask) | (lower & mask)


def to_underlying(e: Enum) -> Any:
    """Return the underlying value of an enumeration member."""
    return e.value