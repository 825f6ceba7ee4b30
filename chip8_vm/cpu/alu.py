"""
CHIP-8 VM - 8-bit ALU

Each function returns (result, flag). The caller writes the result to
VX first and the flag to VF second, so when X is F the flag is what
remains in VF, matching the original instruction semantics.

Flag meanings:
  add8    carry out of bit 7
  sub8    1 when no borrow (a >= b)
  shr8    bit shifted out of bit 0
  shl8    bit shifted out of bit 7
"""

from typing import Tuple


def add8(a: int, b: int) -> Tuple[int, int]:
    """VX + VY. Flag = carry."""
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def add8_nocarry(a: int, b: int) -> int:
    """7XNN: wrapping add that never touches VF."""
    return (a + b) & 0xFF


def sub8(a: int, b: int) -> Tuple[int, int]:
    """a - b. Flag = NOT borrow. Used by 8XY5 (VX-VY) and 8XY7 (VY-VX)."""
    return ((a - b) & 0xFF, 1 if a >= b else 0)


def shr8(value: int) -> Tuple[int, int]:
    return ((value >> 1) & 0xFF, value & 0x01)


def shl8(value: int) -> Tuple[int, int]:
    return ((value << 1) & 0xFF, (value >> 7) & 0x01)


def bcd(value: int) -> Tuple[int, int, int]:
    """FX33: hundreds, tens, units of an 8-bit value."""
    value &= 0xFF
    return (value // 100, (value // 10) % 10, value % 10)
