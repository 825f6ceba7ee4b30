"""
CHIP-8 VM - Delay / Sound Timer Ticker

Both timers count down toward zero at 60 Hz of wall-clock time, no
matter how fast the CPU is stepped. tick() performs one decrement; the
host decides when a tick is due. advance(elapsed) implements the usual
fixed-timestep accumulator on top of it: elapsed seconds are banked,
and each full timer interval in the bank becomes one tick.

The sound timer being nonzero is the only audio signal the machine
produces; the audio collaborator watches `sound_on`.
"""

import logging

from ..config import DEFAULT_MAX_TIMER_CATCHUP, TIMER_HZ

log = logging.getLogger('chip8.timer')


class TimerTicker:
    """Fixed-rate decrementer for the register file's DT and ST."""

    def __init__(self, regs, hz: float = TIMER_HZ,
                 max_catchup: int = 1 + DEFAULT_MAX_TIMER_CATCHUP):
        self.regs = regs
        self.interval = 1.0 / hz
        self.max_catchup = max_catchup
        self._accumulator = 0.0
        self.ticks = 0

    def tick(self):
        """One 60 Hz decrement of DT and ST, each clamped at zero."""
        self.regs.tick_timers()
        self.ticks += 1

    def advance(self, elapsed: float) -> int:
        """Bank `elapsed` seconds and run the ticks that are due.

        At most max_catchup ticks run per call (the host passes
        EmulatorConfig.timer_ticks_per_frame); the rest stay banked for
        later calls. The bank is capped so that a long host stall does
        not turn into a burst of ticks afterwards.

        Returns the number of ticks performed.
        """
        if elapsed > 0:
            self._accumulator += elapsed
        due = int(self._accumulator // self.interval)
        ticks = min(due, self.max_catchup)
        for _ in range(ticks):
            self.tick()
        self._accumulator -= ticks * self.interval
        limit = self.max_catchup * self.interval * 4
        if self._accumulator > limit:
            log.debug("Timer backlog %.4fs dropped to %.4fs",
                      self._accumulator, limit)
            self._accumulator = limit
        return ticks

    @property
    def sound_on(self) -> bool:
        return self.regs.sound_on

    @property
    def pending(self) -> float:
        """Banked seconds not yet converted to ticks."""
        return self._accumulator

    def reset(self):
        self._accumulator = 0.0
        self.ticks = 0
