"""
CHIP-8 VM - Host Loop (fixed-timestep driver)

The interpreter has no notion of time. This module is the one place
that maps wall-clock time onto it:

  per frame:
    1. let the input collaborator update the keypad
    2. run cycles_per_frame emulator steps (stop early on a fault)
    3. bank the real time since the last frame, tick the timers for
       every full 1/60 s in the bank (capped per frame)
    4. tell the audio collaborator when ST crosses zero
    5. hand the renderer a snapshot if the display changed

Collaborators are plain objects satisfying the small protocols below;
any of them may be omitted.
"""

import logging
import time
from typing import Callable, Optional, Protocol, Tuple

from .config import EmulatorConfig
from .emu import Chip8Emulator, StopReason
from .periph.keypad import Keypad

log = logging.getLogger('chip8.host')

Snapshot = Tuple[Tuple[int, ...], ...]


class Renderer(Protocol):
    def render(self, snapshot: Snapshot) -> None: ...


class AudioSink(Protocol):
    def set_tone(self, on: bool) -> None: ...


class InputSource(Protocol):
    def poll(self, keypad: Keypad, frame: int) -> None: ...


class HostLoop:
    """Drives one emulator at a fixed frame rate."""

    def __init__(self, emu: Chip8Emulator,
                 config: Optional[EmulatorConfig] = None,
                 renderer: Optional[Renderer] = None,
                 audio: Optional[AudioSink] = None,
                 input_source: Optional[InputSource] = None,
                 clock: Optional[Callable[[], float]] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        self.emu = emu
        self.config = config or emu.config
        self.renderer = renderer
        self.audio = audio
        self.input_source = input_source
        self.clock = clock or time.monotonic
        self.sleep = sleep or time.sleep

        self.frame = 0
        self._last_time: Optional[float] = None
        self._tone = False

    def run_frame(self) -> Optional[StopReason]:
        """Run one host frame. Returns the StopReason if the machine halted."""
        emu = self.emu

        if self.input_source is not None:
            self.input_source.poll(emu.keypad, self.frame)

        reason = None
        for _ in range(self.config.cycles_per_frame):
            reason = emu.step()
            if reason is not None:
                break

        now = self.clock()
        if self._last_time is None:
            elapsed = 0.0
        else:
            elapsed = now - self._last_time
        self._last_time = now
        emu.timer.advance(elapsed)

        self._update_audio()

        if self.renderer is not None and emu.display.dirty:
            self.renderer.render(emu.display.snapshot())
            emu.display.dirty = False

        self.frame += 1
        return reason

    def run(self, frames: Optional[int] = None) -> StopReason:
        """Run frames until the budget is spent or the machine halts.

        frames=None runs until the machine halts. Each frame is paced to
        frame_hz using the injected clock/sleep.
        """
        interval = self.config.frame_interval
        log.info("Host loop: %s frames, %d cycles/frame, %.1f Hz",
                 'unbounded' if frames is None else frames,
                 self.config.cycles_per_frame, self.config.frame_hz)
        try:
            while frames is None or self.frame < frames:
                start = self.clock()
                reason = self.run_frame()
                if reason is not None:
                    return reason
                remaining = interval - (self.clock() - start)
                if remaining > 0:
                    self.sleep(remaining)
            return StopReason.TIMEOUT
        finally:
            if self._tone and self.audio is not None:
                self.audio.set_tone(False)
                self._tone = False

    def _update_audio(self):
        on = self.emu.sound_on
        if on != self._tone:
            self._tone = on
            if self.audio is not None:
                self.audio.set_tone(on)
