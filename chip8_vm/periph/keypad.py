"""
CHIP-8 VM - Hex Keypad (Input State)

Sixteen keys, 0x0-0xF. The host is the only writer: it calls press()
and release() (or set_key()) once per input poll. Instructions only
read: EX9E/EXA1 through is_pressed(), FX0A through take_press().

take_press() reports keys that went from released to pressed. Edges
are recorded only while armed (the engine arms the keypad when FX0A
starts waiting), so a key that was already down when the wait began
does not satisfy it.
"""

import logging
from collections import deque
from typing import Deque, List, Optional

from ..config import NUM_KEYS

log = logging.getLogger('chip8.keypad')


class Keypad:

    def __init__(self):
        self._down = [False] * NUM_KEYS
        self._presses: Deque[int] = deque()
        self._armed = False

    @staticmethod
    def _check(key: int) -> int:
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key must be 0x0-0xF, got {key!r}")
        return key

    # --- Host side ---

    def set_key(self, key: int, pressed: bool):
        key = self._check(key)
        was_down = self._down[key]
        self._down[key] = pressed
        if pressed and not was_down and self._armed:
            self._presses.append(key)

    def press(self, key: int):
        self.set_key(key, True)

    def release(self, key: int):
        self.set_key(key, False)

    # --- Machine side ---

    def is_pressed(self, key: int) -> bool:
        """EX9E/EXA1 query. Only the low nibble of the register is used."""
        return self._down[key & 0x0F]

    def arm(self):
        """Start recording press edges for a pending FX0A."""
        self._presses.clear()
        self._armed = True

    def take_press(self) -> Optional[int]:
        """First key that transitioned to pressed since arm(), or None.

        Consumes the edge and disarms the keypad when one is returned.
        """
        if not self._presses:
            return None
        key = self._presses.popleft()
        self._presses.clear()
        self._armed = False
        return key

    @property
    def armed(self) -> bool:
        return self._armed

    def pressed_keys(self) -> List[int]:
        return [k for k in range(NUM_KEYS) if self._down[k]]

    def reset(self):
        self._down = [False] * NUM_KEYS
        self._presses.clear()
        self._armed = False
