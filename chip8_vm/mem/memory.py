"""
CHIP-8 VM - 4K Memory

Memory map:
  $000-$04F  Font glyphs (16 x 5 bytes)
  $050-$1FF  Reserved for the interpreter (unused here, reads as $00)
  $200-$FFF  Program image + working data

Every access is masked to 12 bits. Address arithmetic that runs past
$FFF (I + offset in FX55/FX65/DXYN, for instance) wraps to the bottom
of memory rather than raising: out-of-range addresses are a loader
problem, never a runtime fault.
"""

import logging
from ..config import (
    ADDRESS_MASK, FONT_START, MEMORY_SIZE, PROGRAM_CAPACITY, PROGRAM_START,
)
from ..faults import LoadFault
from .font import FONTSET

log = logging.getLogger('chip8.mem')


class Memory:
    """Flat 4096-byte store, font pre-loaded at FONT_START."""

    def __init__(self):
        self._mem = bytearray(MEMORY_SIZE)
        self.program_size = 0
        self.load_font()

    def __len__(self) -> int:
        return MEMORY_SIZE

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        return self._mem[addr & ADDRESS_MASK]

    def write8(self, addr: int, value: int):
        self._mem[addr & ADDRESS_MASK] = value & 0xFF

    def read16(self, addr: int) -> int:
        """Read a big-endian word (instruction fetch byte order)."""
        hi = self.read8(addr)
        lo = self.read8(addr + 1)
        return (hi << 8) | lo

    def read_block(self, addr: int, length: int) -> bytes:
        """Read `length` bytes starting at addr, wrapping past $FFF."""
        return bytes(self.read8(addr + i) for i in range(length))

    def write_block(self, addr: int, data: bytes):
        for i, byte in enumerate(data):
            self.write8(addr + i, byte)

    # --- Loading ---

    def load_font(self):
        self._mem[FONT_START:FONT_START + len(FONTSET)] = FONTSET

    def load_program(self, data: bytes):
        """Copy a raw program image to $200.

        Raises LoadFault if the image does not fit in $200-$FFF. Nothing
        is written when the image is rejected.
        """
        data = bytes(data)
        if len(data) > PROGRAM_CAPACITY:
            raise LoadFault(
                f"Program is {len(data)} bytes, only {PROGRAM_CAPACITY} "
                f"fit above ${PROGRAM_START:03X}",
                size=len(data), capacity=PROGRAM_CAPACITY,
            )
        end = PROGRAM_START + len(data)
        self._mem[PROGRAM_START:end] = data
        self._mem[end:] = bytes(MEMORY_SIZE - end)
        self.program_size = len(data)
        log.info("Loaded %d-byte program at $%03X", len(data), PROGRAM_START)

    def clear(self):
        """Zero everything and reload the font."""
        self._mem[:] = bytes(MEMORY_SIZE)
        self.program_size = 0
        self.load_font()

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 256) -> str:
        """Produce a hex dump of memory for debugging."""
        lines = []
        for offset in range(0, length, 16):
            addr = (start + offset) & ADDRESS_MASK
            row = [self.read8(addr + i) for i in range(16)]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr:03X}  {hex_bytes}  {ascii_bytes}')
        return '\n'.join(lines)
