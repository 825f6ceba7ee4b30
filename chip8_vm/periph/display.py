"""
CHIP-8 VM - Monochrome Display Buffer

64 x 32 single-bit pixels, row-major. Sprites are XOR-composited: a set
sprite bit flips the pixel under it, and clearing a lit pixel counts as
a collision.

Coordinate policy:
  - the sprite's start position wraps (x mod 64, y mod 32)
  - the sprite body clips: columns past x=63 and rows past y=31 are not
    drawn and do not wrap to the other side
"""

from typing import Iterable, List, Tuple

from ..config import SCREEN_HEIGHT, SCREEN_WIDTH, SPRITE_WIDTH


class DisplayBuffer:

    def __init__(self, width: int = SCREEN_WIDTH, height: int = SCREEN_HEIGHT):
        self.width = width
        self.height = height
        self._pixels = bytearray(width * height)
        # Set by clear/draw, cleared by the host after it renders.
        self.dirty = False

    def clear(self):
        self._pixels[:] = bytes(self.width * self.height)
        self.dirty = True

    def get(self, x: int, y: int) -> int:
        return self._pixels[(y % self.height) * self.width + (x % self.width)]

    def draw(self, x: int, y: int, sprite: Iterable[int]) -> bool:
        """XOR an 8-pixel-wide sprite at (x, y).

        Returns True if any lit pixel was turned off. The whole sprite is
        composited before returning, so a caller never sees a partial draw.
        """
        x0 = x % self.width
        y0 = y % self.height
        collision = False
        for row, bits in enumerate(sprite):
            py = y0 + row
            if py >= self.height:
                break
            base = py * self.width
            for col in range(SPRITE_WIDTH):
                px = x0 + col
                if px >= self.width:
                    break
                if bits & (0x80 >> col):
                    idx = base + px
                    if self._pixels[idx]:
                        collision = True
                    self._pixels[idx] ^= 1
        self.dirty = True
        return collision

    # --- Read-only views for the rendering collaborator ---

    def snapshot(self) -> Tuple[Tuple[int, ...], ...]:
        """Immutable copy of the framebuffer, indexed [row][column]."""
        w = self.width
        return tuple(
            tuple(self._pixels[r * w:(r + 1) * w]) for r in range(self.height)
        )

    def lit_pixels(self) -> List[Tuple[int, int]]:
        """(x, y) of every lit pixel."""
        w = self.width
        return [(i % w, i // w) for i, p in enumerate(self._pixels) if p]

    def to_text(self, on: str = '#', off: str = '.') -> str:
        return '\n'.join(
            ''.join(on if p else off for p in row) for row in self.snapshot()
        )

    def reset(self):
        self.clear()
        self.dirty = False
