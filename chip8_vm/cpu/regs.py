"""
CHIP-8 VM - Register File

Register model:
  V0-VF  16 x 8-bit general registers. VF is also the flag output of
         8XY4-8XYE (carry / NOT borrow / shifted-out bit) and DXYN
         (collision). Flag writes always land after the primary result.
  I      16-bit index register, 12 significant bits in practice
  PC     program counter, advances by 2 per fetched instruction
  DT     8-bit delay timer, counts down at 60 Hz, clamps at 0
  ST     8-bit sound timer, counts down at 60 Hz, tone while nonzero
"""

from ..config import FLAG_REGISTER, NUM_REGISTERS, PROGRAM_START


class Registers:
    """CHIP-8 register file."""

    __slots__ = ('V', 'I', 'PC', 'DT', 'ST')

    def __init__(self):
        self.V = bytearray(NUM_REGISTERS)   # bytearray: stores are range-checked 0-255
        self.I: int = 0
        self.PC: int = PROGRAM_START
        self.DT: int = 0
        self.ST: int = 0

    @property
    def VF(self) -> int:
        return self.V[FLAG_REGISTER]

    @VF.setter
    def VF(self, value: int):
        self.V[FLAG_REGISTER] = value & 0xFF

    @property
    def sound_on(self) -> bool:
        """True while the sound timer is nonzero (the audio signal)."""
        return self.ST != 0

    def tick_timers(self):
        """Decrement DT and ST by one, each clamped at zero."""
        if self.DT > 0:
            self.DT -= 1
        if self.ST > 0:
            self.ST -= 1

    def display(self) -> str:
        """Format register state for logs and --dump."""
        regs = ' '.join(f"V{i:X}={v:02X}" for i, v in enumerate(self.V))
        return (f"PC={self.PC:03X} I={self.I:03X} DT={self.DT:02X} "
                f"ST={self.ST:02X} {regs}")

    def reset(self):
        """Power-on state: everything zero, PC at the program start."""
        self.V[:] = bytes(NUM_REGISTERS)
        self.I = 0
        self.PC = PROGRAM_START
        self.DT = 0
        self.ST = 0
