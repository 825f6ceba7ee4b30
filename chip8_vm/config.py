"""
CHIP-8 VM - Machine Constants and Runtime Configuration

The fixed facts of the target machine live here as module constants.
Host-tunable values (how many instructions to run per frame, how fast
frames are paced, RNG seed, logging) are grouped in EmulatorConfig,
which the command line driver fills from argparse.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# =============================================================================
#  MEMORY MAP
# =============================================================================
MEMORY_SIZE = 0x1000        # 4 KiB, 12-bit address space
ADDRESS_MASK = 0x0FFF
FONT_START = 0x000          # glyph table, inside the reserved low region
RESERVED_END = 0x1FF        # $000-$1FF reserved for interpreter data
PROGRAM_START = 0x200
PROGRAM_CAPACITY = MEMORY_SIZE - PROGRAM_START   # 3584 bytes


# =============================================================================
#  MACHINE SHAPE
# =============================================================================
NUM_REGISTERS = 16
FLAG_REGISTER = 0xF         # VF: carry / borrow / collision
STACK_DEPTH = 16
NUM_KEYS = 16
SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
SPRITE_WIDTH = 8


# =============================================================================
#  TIMING
# =============================================================================
TIMER_HZ = 60
DEFAULT_FRAME_HZ = 60
DEFAULT_CYCLES_PER_FRAME = 10   # ~600 instructions/s at 60 frames/s
DEFAULT_MAX_TIMER_CATCHUP = 1   # extra timer ticks a late frame may recover


@dataclass
class EmulatorConfig:
    """Host-side tunables. Machine facts are the module constants above."""

    cycles_per_frame: int = DEFAULT_CYCLES_PER_FRAME
    frame_hz: float = DEFAULT_FRAME_HZ
    timer_hz: float = TIMER_HZ
    max_timer_catchup: int = DEFAULT_MAX_TIMER_CATCHUP
    seed: Optional[int] = None
    trace: bool = False
    log_level: int = logging.WARNING
    log_dir: Optional[Path] = None

    def __post_init__(self):
        if self.cycles_per_frame < 1:
            raise ValueError(
                f"cycles_per_frame must be >= 1, got {self.cycles_per_frame}")
        if self.frame_hz <= 0:
            raise ValueError(f"frame_hz must be positive, got {self.frame_hz}")
        if self.timer_hz <= 0:
            raise ValueError(f"timer_hz must be positive, got {self.timer_hz}")
        if self.max_timer_catchup < 0:
            raise ValueError(
                f"max_timer_catchup must be >= 0, got {self.max_timer_catchup}")

    @property
    def timer_interval(self) -> float:
        """Seconds between two timer ticks."""
        return 1.0 / self.timer_hz

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.frame_hz

    @property
    def timer_ticks_per_frame(self) -> int:
        """Most timer ticks one host frame may run.

        A frame normally spans timer_hz / frame_hz ticks (two at 30 Hz
        frames); max_timer_catchup more are allowed so a frame that
        overran can pay back the time it lost.
        """
        nominal = max(1, math.ceil(self.timer_hz / self.frame_hz))
        return nominal + self.max_timer_catchup

    @classmethod
    def from_args(cls, args) -> "EmulatorConfig":
        """Build a config from an argparse namespace (see chip8run.py)."""
        log_dir = getattr(args, 'log_dir', None)
        return cls(
            cycles_per_frame=args.cycles_per_frame,
            frame_hz=args.frame_hz,
            seed=args.seed,
            trace=args.trace,
            log_level=logging.DEBUG if args.verbose else logging.WARNING,
            log_dir=Path(log_dir) if log_dir else None,
        )
