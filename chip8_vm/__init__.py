"""
CHIP-8 Virtual Machine
======================
An interpreter for the CHIP-8 instruction set: 4K memory, sixteen 8-bit
registers, a 16-deep call stack, a 64x32 monochrome display, a 16-key
hex keypad and two 60 Hz countdown timers.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────────────────────────┐
    │ ROM file │───>│  Memory  │───>│ Chip8Emulator.step()         │
    │ (.ch8)   │    │ ($200..) │    │ fetch → decode → execute     │
    └──────────┘    └──────────┘    └──────────────┬───────────────┘
                                                   │ regs / stack / display / keypad
    ┌──────────┐    ┌──────────────────────┐       │
    │ HostLoop │───>│ TimerTicker (60 Hz)  │<──────┘
    └──────────┘    └──────────────────────┘

    - mem/:       memory map, font table
    - cpu/:       registers, call stack, ALU helpers, decoder
    - periph/:    display buffer, keypad, timers
    - emu.py:     the machine aggregate and instruction handlers
    - host.py:    fixed-timestep driver + collaborator protocols
    - render.py:  rich terminal renderer, bell audio, scripted input
"""

__version__ = "0.2.0"

from .config import EmulatorConfig
from .emu import Chip8Emulator, StopReason
from .faults import DecodeFault, LoadFault, MachineFault, StackFault
from .host import HostLoop


def load_rom(path_or_data, config: EmulatorConfig = None) -> Chip8Emulator:
    """Create an emulator with a program image loaded at $200.

    Raises LoadFault if the image does not fit.
    """
    emu = Chip8Emulator(config)
    emu.load_program(path_or_data)
    return emu
