"""
CHIP-8 VM - Terminal Collaborators

Console implementations of the host protocols in host.py:

  TerminalRenderer  draws the 64x32 framebuffer with rich, two pixel
                    rows per text line using half-block characters
  BellAudio         logs tone on/off and rings the terminal bell
  ScriptedInput     replays key presses at given frame numbers
                    (headless runs, --press on the command line)
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .periph.keypad import Keypad

log = logging.getLogger('chip8.render')

# (upper pixel, lower pixel) -> character
_HALF_BLOCKS = {
    (0, 0): ' ',
    (1, 0): '▀',   # upper half block
    (0, 1): '▄',   # lower half block
    (1, 1): '█',   # full block
}


def framebuffer_text(snapshot, style: str = "bold orange1") -> Text:
    """Convert a display snapshot to a rich Text, two rows per line."""
    rows = list(snapshot)
    if len(rows) % 2:
        rows.append(tuple(0 for _ in rows[0]))
    lines = [
        ''.join(_HALF_BLOCKS[(t, b)] for t, b in zip(top, bottom))
        for top, bottom in zip(rows[0::2], rows[1::2])
    ]
    return Text('\n'.join(lines), style=style)


class TerminalRenderer:
    """Renderer that prints each frame it is given to a rich Console."""

    def __init__(self, console: Optional[Console] = None, title: str = "CHIP-8"):
        self.console = console or Console()
        self.title = title
        self.frames_drawn = 0

    def render(self, snapshot) -> None:
        self.console.print(Panel(framebuffer_text(snapshot), title=self.title,
                                 expand=False))
        self.frames_drawn += 1


class BellAudio:
    """Audio sink for terminals: a bell when the tone starts."""

    def __init__(self, console: Optional[Console] = None, ring: bool = True):
        self.console = console or Console()
        self.ring = ring
        self.tone_on = False

    def set_tone(self, on: bool) -> None:
        self.tone_on = on
        log.info("Tone %s", "on" if on else "off")
        if on and self.ring:
            self.console.bell()


class ScriptedInput:
    """Replays (frame, key, pressed) events. Keys are 0x0-0xF.

    A key pressed by a script stays down for `hold` frames, then is
    released automatically unless an explicit release is scripted.
    """

    def __init__(self, events: Iterable[Tuple[int, int, bool]] = (), hold: int = 1):
        self.hold = hold
        self._events: Dict[int, List[Tuple[int, bool]]] = {}
        for frame, key, pressed in events:
            self.add(frame, key, pressed)

    def add(self, frame: int, key: int, pressed: bool = True):
        self._events.setdefault(frame, []).append((key, pressed))
        if pressed and self.hold > 0:
            self._events.setdefault(frame + self.hold, []).append((key, False))

    def poll(self, keypad: Keypad, frame: int) -> None:
        for key, pressed in self._events.pop(frame, ()):
            keypad.set_key(key, pressed)


def parse_press(value: str) -> Tuple[int, int]:
    """Parse a FRAME:KEY command line value, KEY in hex ('12:a' -> (12, 10))."""
    try:
        frame_text, key_text = value.split(':', 1)
        frame = int(frame_text, 0)
        key = int(key_text, 16)
    except ValueError:
        raise ValueError(f"Expected FRAME:KEY (e.g. 30:A), got {value!r}") from None
    if frame < 0 or not 0 <= key <= 0xF:
        raise ValueError(f"Frame must be >= 0 and key 0-F, got {value!r}")
    return frame, key
