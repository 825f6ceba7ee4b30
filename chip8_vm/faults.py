"""
CHIP-8 VM - Machine Fault Types

Fatal conditions the interpreter core can raise. None of these are
recovered from inside the core: the emulator halts and hands the fault
to the host, which decides how to report it.

  DecodeFault  - instruction word matches no known opcode pattern
  StackFault   - CALL past depth 16, or RET with an empty stack
  LoadFault    - program image larger than the space above $200
"""

from typing import Optional


class MachineFault(Exception):
    """Base class for every fatal machine condition.

    Carries the offending instruction word and the address it was
    fetched from, when known.
    """

    def __init__(self, message: str, word: Optional[int] = None,
                 pc: Optional[int] = None):
        self.message = message
        self.word = word
        self.pc = pc
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.word is not None:
            where.append(f"word=${self.word:04X}")
        if self.pc is not None:
            where.append(f"pc=${self.pc:03X}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message


class DecodeFault(MachineFault):
    """Instruction word does not decode to any CHIP-8 instruction."""


class StackFault(MachineFault):
    """Call stack overflow or underflow."""


class LoadFault(MachineFault):
    """Program image does not fit in memory."""

    def __init__(self, message: str, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(message)
