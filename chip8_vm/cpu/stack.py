"""
CHIP-8 VM - Call Stack

Sixteen return addresses, separate from memory. 2NNN pushes, 00EE pops.
A 17th nested call and a return with nothing pushed both raise
StackFault; the engine turns that into a halt.
"""

from typing import List

from ..config import STACK_DEPTH
from ..faults import StackFault


class CallStack:

    def __init__(self, depth: int = STACK_DEPTH):
        self.depth = depth
        self._frames: List[int] = []

    def __len__(self) -> int:
        return len(self._frames)

    def push(self, addr: int):
        if len(self._frames) >= self.depth:
            raise StackFault(f"Stack overflow: more than {self.depth} nested calls")
        self._frames.append(addr)

    def pop(self) -> int:
        if not self._frames:
            raise StackFault("Stack underflow: return with empty stack")
        return self._frames.pop()

    def peek(self) -> int:
        if not self._frames:
            raise StackFault("Stack underflow: peek on empty stack")
        return self._frames[-1]

    def frames(self) -> List[int]:
        """Copy of the stack, bottom first."""
        return list(self._frames)

    def reset(self):
        self._frames.clear()
