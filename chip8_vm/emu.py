"""
CHIP-8 VM - Main Emulator Class

This is the Machine aggregate plus the Execution Engine. It owns:
  - register file (cpu/regs.py)
  - call stack (cpu/stack.py)
  - 4K memory with the font pre-loaded (mem/memory.py)
  - display buffer (periph/display.py)
  - keypad (periph/keypad.py)
  - delay/sound timer ticker (periph/timer.py)

Execution model, one step():
  1. If FX0A is waiting, poll the keypad instead of fetching
  2. Fetch the big-endian word at PC
  3. Decode it (cpu/decoder.py)
  4. PC += 2, before the instruction runs, so jumps simply overwrite it
  5. Execute the handler for the decoded instruction

Timers are not advanced by step(). The host ticks them from wall-clock
time (see host.py), which keeps 60 Hz independent of the CPU rate.

Termination reasons:
  - TIMEOUT:   run() used up its step budget
  - ILLEGAL:   instruction word did not decode
  - STACK:     call stack overflow/underflow
  - WAIT_KEY:  run(stop_on_wait=True) reached an FX0A wait
  - HALT:      host called halt()
"""

import logging
import random
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config import EmulatorConfig, FLAG_REGISTER, FONT_START
from .cpu import alu
from .cpu.decoder import Instruction, fetch_decode
from .cpu.regs import Registers
from .cpu.stack import CallStack
from .faults import DecodeFault, MachineFault, StackFault
from .mem.font import glyph_address
from .mem.memory import Memory
from .periph.display import DisplayBuffer
from .periph.keypad import Keypad
from .periph.timer import TimerTicker

log = logging.getLogger('chip8.emu')


class StopReason(Enum):
    TIMEOUT = 'TIMEOUT'
    ILLEGAL = 'ILLEGAL'
    STACK = 'STACK'
    WAIT_KEY = 'WAIT_KEY'
    HALT = 'HALT'


class Chip8Emulator:
    """CHIP-8 virtual machine.

    Usage:
        emu = Chip8Emulator()
        emu.load_program('roms/pong.ch8')
        while emu.step() is None:
            ...                 # host ticks timers / renders as it likes
        print(emu.fault)
    """

    DEFAULT_MAX_STEPS = 1_000_000

    def __init__(self, config: Optional[EmulatorConfig] = None):
        self.config = config or EmulatorConfig()

        self.regs = Registers()
        self.stack = CallStack()
        self.mem = Memory()
        self.display = DisplayBuffer()
        self.keypad = Keypad()
        self.timer = TimerTicker(self.regs, hz=self.config.timer_hz,
                                 max_catchup=self.config.timer_ticks_per_frame)

        self.rng = random.Random(self.config.seed)

        # FX0A target register while waiting for a key, else None
        self.wait_register: Optional[int] = None

        self.halted = False
        self.stop_reason: Optional[StopReason] = None
        self.fault: Optional[MachineFault] = None
        self.steps = 0

        self._trace = self.config.trace
        self._trace_output: List[str] = []

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_program(self, path_or_data):
        """Reset the machine and load a raw program image at $200.

        Accepts a path (str / Path) or the image bytes. Raises LoadFault
        if the image is too large; the machine is left freshly reset and
        empty in that case, never half-loaded.
        """
        if isinstance(path_or_data, (str, Path)):
            data = Path(path_or_data).read_bytes()
        else:
            data = bytes(path_or_data)
        self.reset()
        self.mem.load_program(data)

    def load_words(self, words):
        """Load a program given as 16-bit instruction words (tests, demos)."""
        data = bytearray()
        for word in words:
            data += bytes([(word >> 8) & 0xFF, word & 0xFF])
        self.load_program(bytes(data))

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if halted, else None.

        While FX0A is waiting the step only polls the keypad: PC does not
        move until a key goes down, and the step that sees the press just
        stores it, so the next instruction runs on the following step.
        """
        if self.halted:
            return self.stop_reason

        if self.wait_register is not None:
            key = self.keypad.take_press()
            if key is not None:
                self.regs.V[self.wait_register] = key
                log.debug("Key $%X pressed, V%X set, resuming at $%03X",
                          key, self.wait_register, self.regs.PC)
                self.wait_register = None
            return None

        pc = self.regs.PC
        try:
            ins = fetch_decode(self.mem, pc)
        except DecodeFault as fault:
            return self._halt(StopReason.ILLEGAL, fault)

        if self._trace:
            line = f"${pc:03X}: {ins.word:04X} {str(ins):20s} {self.regs.display()}"
            self._trace_output.append(line)
            log.debug(line)

        self.regs.PC = (pc + 2) & 0xFFF

        try:
            self._dispatch[ins.key](ins)
        except StackFault as fault:
            return self._halt(
                StopReason.STACK, StackFault(fault.message, word=ins.word, pc=pc))

        self.steps += 1
        return None

    def run(self, max_steps: int = None,
            stop_on_wait: bool = False) -> StopReason:
        """Step until a fault, a halt, or max_steps.

        Args:
            max_steps: step budget before TIMEOUT
            stop_on_wait: return WAIT_KEY as soon as FX0A starts waiting
        """
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS

        for _ in range(max_steps):
            reason = self.step()
            if reason is not None:
                return reason
            if stop_on_wait and self.waiting_for_key:
                return StopReason.WAIT_KEY

        return StopReason.TIMEOUT

    def tick_timers(self):
        """One 60 Hz timer tick. Runs even while halted on FX0A."""
        self.timer.tick()

    def halt(self):
        """Stop the machine on host request."""
        if not self.halted:
            self.halted = True
            self.stop_reason = StopReason.HALT

    def _halt(self, reason: StopReason, fault: MachineFault) -> StopReason:
        self.halted = True
        self.stop_reason = reason
        self.fault = fault
        log.error("Machine halted (%s): %s", reason.value, fault)
        return reason

    @property
    def waiting_for_key(self) -> bool:
        return self.wait_register is not None

    @property
    def sound_on(self) -> bool:
        return self.regs.sound_on

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ins). PC already points past ins.

    def _build_dispatch(self) -> Dict[str, Callable[[Instruction], None]]:
        return {
            # ── Screen / flow ──
            'CLS':       self._op_cls,
            'RET':       self._op_ret,
            'JP':        self._op_jp,
            'CALL':      self._op_call,
            'SE_IMM':    self._op_se_imm,
            'SNE_IMM':   self._op_sne_imm,
            'SE_REG':    self._op_se_reg,
            'SNE_REG':   self._op_sne_reg,

            # ── Loads / ALU ──
            'LD_IMM':    self._op_ld_imm,
            'ADD_IMM':   self._op_add_imm,
            'LD_REG':    self._op_ld_reg,
            'OR':        self._op_or,
            'AND':       self._op_and,
            'XOR':       self._op_xor,
            'ADD_REG':   self._op_add_reg,
            'SUB':       self._op_sub,
            'SHR':       self._op_shr,
            'SUBN':      self._op_subn,
            'SHL':       self._op_shl,

            # ── Index / jump / random / draw ──
            'LD_I':      self._op_ld_i,
            'JP_V0':     self._op_jp_v0,
            'RND':       self._op_rnd,
            'DRW':       self._op_drw,

            # ── Keypad ──
            'SKP':       self._op_skp,
            'SKNP':      self._op_sknp,
            'LD_VX_K':   self._op_ld_vx_k,

            # ── Timers ──
            'LD_VX_DT':  self._op_ld_vx_dt,
            'LD_DT_VX':  self._op_ld_dt_vx,
            'LD_ST_VX':  self._op_ld_st_vx,

            # ── Index arithmetic / memory ──
            'ADD_I_VX':  self._op_add_i_vx,
            'LD_F_VX':   self._op_ld_f_vx,
            'LD_B_VX':   self._op_ld_b_vx,
            'LD_MEM_VX': self._op_ld_mem_vx,
            'LD_VX_MEM': self._op_ld_vx_mem,
        }

    def _skip_if(self, condition: bool):
        if condition:
            self.regs.PC = (self.regs.PC + 2) & 0xFFF

    def _set_with_flag(self, x: int, result: int, flag: int):
        # Result first, then VF: for X=F the flag is what survives.
        self.regs.V[x] = result
        self.regs.V[FLAG_REGISTER] = flag

    # ── Screen / flow handlers ──

    def _op_cls(self, ins):
        self.display.clear()

    def _op_ret(self, ins):
        self.regs.PC = self.stack.pop()

    def _op_jp(self, ins):
        self.regs.PC = ins.nnn

    def _op_call(self, ins):
        self.stack.push(self.regs.PC)
        self.regs.PC = ins.nnn

    def _op_se_imm(self, ins):
        self._skip_if(self.regs.V[ins.x] == ins.nn)

    def _op_sne_imm(self, ins):
        self._skip_if(self.regs.V[ins.x] != ins.nn)

    def _op_se_reg(self, ins):
        self._skip_if(self.regs.V[ins.x] == self.regs.V[ins.y])

    def _op_sne_reg(self, ins):
        self._skip_if(self.regs.V[ins.x] != self.regs.V[ins.y])

    # ── Load / ALU handlers ──

    def _op_ld_imm(self, ins):
        self.regs.V[ins.x] = ins.nn

    def _op_add_imm(self, ins):
        self.regs.V[ins.x] = alu.add8_nocarry(self.regs.V[ins.x], ins.nn)

    def _op_ld_reg(self, ins):
        self.regs.V[ins.x] = self.regs.V[ins.y]

    def _op_or(self, ins):
        self.regs.V[ins.x] |= self.regs.V[ins.y]

    def _op_and(self, ins):
        self.regs.V[ins.x] &= self.regs.V[ins.y]

    def _op_xor(self, ins):
        self.regs.V[ins.x] ^= self.regs.V[ins.y]

    def _op_add_reg(self, ins):
        result, carry = alu.add8(self.regs.V[ins.x], self.regs.V[ins.y])
        self._set_with_flag(ins.x, result, carry)

    def _op_sub(self, ins):
        result, no_borrow = alu.sub8(self.regs.V[ins.x], self.regs.V[ins.y])
        self._set_with_flag(ins.x, result, no_borrow)

    def _op_subn(self, ins):
        result, no_borrow = alu.sub8(self.regs.V[ins.y], self.regs.V[ins.x])
        self._set_with_flag(ins.x, result, no_borrow)

    def _op_shr(self, ins):
        result, bit = alu.shr8(self.regs.V[ins.y])
        self._set_with_flag(ins.x, result, bit)

    def _op_shl(self, ins):
        result, bit = alu.shl8(self.regs.V[ins.y])
        self._set_with_flag(ins.x, result, bit)

    # ── Index / jump / random / draw handlers ──

    def _op_ld_i(self, ins):
        self.regs.I = ins.nnn

    def _op_jp_v0(self, ins):
        self.regs.PC = (ins.nnn + self.regs.V[0]) & 0xFFF

    def _op_rnd(self, ins):
        self.regs.V[ins.x] = self.rng.randrange(256) & ins.nn

    def _op_drw(self, ins):
        sprite = self.mem.read_block(self.regs.I, ins.n)
        collision = self.display.draw(self.regs.V[ins.x], self.regs.V[ins.y], sprite)
        self.regs.V[FLAG_REGISTER] = 1 if collision else 0

    # ── Keypad handlers ──

    def _op_skp(self, ins):
        self._skip_if(self.keypad.is_pressed(self.regs.V[ins.x]))

    def _op_sknp(self, ins):
        self._skip_if(not self.keypad.is_pressed(self.regs.V[ins.x]))

    def _op_ld_vx_k(self, ins):
        self.wait_register = ins.x
        self.keypad.arm()
        log.debug("Waiting for key into V%X at $%03X",
                  ins.x, (self.regs.PC - 2) & 0xFFF)

    # ── Timer handlers ──

    def _op_ld_vx_dt(self, ins):
        self.regs.V[ins.x] = self.regs.DT

    def _op_ld_dt_vx(self, ins):
        self.regs.DT = self.regs.V[ins.x]

    def _op_ld_st_vx(self, ins):
        self.regs.ST = self.regs.V[ins.x]

    # ── Index arithmetic / memory handlers ──

    def _op_add_i_vx(self, ins):
        self.regs.I = (self.regs.I + self.regs.V[ins.x]) & 0xFFF

    def _op_ld_f_vx(self, ins):
        self.regs.I = glyph_address(self.regs.V[ins.x], FONT_START)

    def _op_ld_b_vx(self, ins):
        self.mem.write_block(self.regs.I, bytes(alu.bcd(self.regs.V[ins.x])))

    def _op_ld_mem_vx(self, ins):
        self.mem.write_block(self.regs.I, bytes(self.regs.V[:ins.x + 1]))

    def _op_ld_vx_mem(self, ins):
        self.regs.V[:ins.x + 1] = self.mem.read_block(self.regs.I, ins.x + 1)

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record every executed instruction (and log it at DEBUG)."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Power-on state with an empty program area."""
        self.regs.reset()
        self.stack.reset()
        self.mem.clear()
        self.display.reset()
        self.keypad.reset()
        self.timer.reset()
        self.wait_register = None
        self.halted = False
        self.stop_reason = None
        self.fault = None
        self.steps = 0
        self._trace_output.clear()
