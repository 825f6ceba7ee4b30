"""
CHIP-8 VM - Instruction Decoder

Maps a 16-bit instruction word to one of the 35 CHIP-8 instructions.

Every instruction is identified by (mask, match): word & mask == match.
The leading nibble picks the family; families 0, 8, E and F need the
low nibble or low byte as well. Any word that matches no pattern is a
DecodeFault: 0NNN machine-code calls are part of the COSMAC VIP
firmware interface and are not interpreted.

Operand fields (all extracted for every word, each instruction uses a
subset):
  X    bits 11-8   register index
  Y    bits 7-4    register index
  N    bits 3-0    4-bit immediate (sprite height)
  NN   bits 7-0    8-bit immediate
  NNN  bits 11-0   12-bit address
"""

from typing import Dict, List, NamedTuple, Tuple

from ..faults import DecodeFault


class Instruction(NamedTuple):
    """A decoded instruction word."""
    word: int
    key: str        # dispatch key, unique per instruction
    x: int
    y: int
    n: int
    nn: int
    nnn: int

    @property
    def mnemonic(self) -> str:
        return OPCODE_INFO[self.key][0]

    def __str__(self) -> str:
        return disassemble_instruction(self)


# ──────────────────────────────────────────────
# Opcode table
# ──────────────────────────────────────────────
# Format: key -> (mask, match, mnemonic, operand template)
# Templates are filled with str.format(x=, y=, n=, nn=, nnn=).

OPCODES: Dict[str, Tuple[int, int, str, str]] = {
    # ── Family 0: screen / subroutine return ──
    'CLS':        (0xFFFF, 0x00E0, 'CLS',  ''),
    'RET':        (0xFFFF, 0x00EE, 'RET',  ''),

    # ── Flow control ──
    'JP':         (0xF000, 0x1000, 'JP',   '${nnn:03X}'),
    'CALL':       (0xF000, 0x2000, 'CALL', '${nnn:03X}'),
    'SE_IMM':     (0xF000, 0x3000, 'SE',   'V{x:X}, #${nn:02X}'),
    'SNE_IMM':    (0xF000, 0x4000, 'SNE',  'V{x:X}, #${nn:02X}'),
    'SE_REG':     (0xF00F, 0x5000, 'SE',   'V{x:X}, V{y:X}'),

    # ── Immediate loads ──
    'LD_IMM':     (0xF000, 0x6000, 'LD',   'V{x:X}, #${nn:02X}'),
    'ADD_IMM':    (0xF000, 0x7000, 'ADD',  'V{x:X}, #${nn:02X}'),

    # ── Family 8: register ALU ──
    'LD_REG':     (0xF00F, 0x8000, 'LD',   'V{x:X}, V{y:X}'),
    'OR':         (0xF00F, 0x8001, 'OR',   'V{x:X}, V{y:X}'),
    'AND':        (0xF00F, 0x8002, 'AND',  'V{x:X}, V{y:X}'),
    'XOR':        (0xF00F, 0x8003, 'XOR',  'V{x:X}, V{y:X}'),
    'ADD_REG':    (0xF00F, 0x8004, 'ADD',  'V{x:X}, V{y:X}'),
    'SUB':        (0xF00F, 0x8005, 'SUB',  'V{x:X}, V{y:X}'),
    'SHR':        (0xF00F, 0x8006, 'SHR',  'V{x:X}, V{y:X}'),
    'SUBN':       (0xF00F, 0x8007, 'SUBN', 'V{x:X}, V{y:X}'),
    'SHL':        (0xF00F, 0x800E, 'SHL',  'V{x:X}, V{y:X}'),

    'SNE_REG':    (0xF00F, 0x9000, 'SNE',  'V{x:X}, V{y:X}'),

    # ── Index / jump / random / draw ──
    'LD_I':       (0xF000, 0xA000, 'LD',   'I, ${nnn:03X}'),
    'JP_V0':      (0xF000, 0xB000, 'JP',   'V0, ${nnn:03X}'),
    'RND':        (0xF000, 0xC000, 'RND',  'V{x:X}, #${nn:02X}'),
    'DRW':        (0xF000, 0xD000, 'DRW',  'V{x:X}, V{y:X}, {n}'),

    # ── Family E: keypad ──
    'SKP':        (0xF0FF, 0xE09E, 'SKP',  'V{x:X}'),
    'SKNP':       (0xF0FF, 0xE0A1, 'SKNP', 'V{x:X}'),

    # ── Family F: timers, keypad wait, index, memory ──
    'LD_VX_DT':   (0xF0FF, 0xF007, 'LD',   'V{x:X}, DT'),
    'LD_VX_K':    (0xF0FF, 0xF00A, 'LD',   'V{x:X}, K'),
    'LD_DT_VX':   (0xF0FF, 0xF015, 'LD',   'DT, V{x:X}'),
    'LD_ST_VX':   (0xF0FF, 0xF018, 'LD',   'ST, V{x:X}'),
    'ADD_I_VX':   (0xF0FF, 0xF01E, 'ADD',  'I, V{x:X}'),
    'LD_F_VX':    (0xF0FF, 0xF029, 'LD',   'F, V{x:X}'),
    'LD_B_VX':    (0xF0FF, 0xF033, 'LD',   'B, V{x:X}'),
    'LD_MEM_VX':  (0xF0FF, 0xF055, 'LD',   '[I], V{x:X}'),
    'LD_VX_MEM':  (0xF0FF, 0xF065, 'LD',   'V{x:X}, [I]'),
}

# key -> (mnemonic, template)
OPCODE_INFO: Dict[str, Tuple[str, str]] = {
    key: (mnem, tmpl) for key, (_, _, mnem, tmpl) in OPCODES.items()
}

# Leading nibble -> candidate patterns, so decode only scans its family.
_BY_FAMILY: Dict[int, List[Tuple[int, int, str]]] = {}
for _key, (_mask, _match, _, _) in OPCODES.items():
    _BY_FAMILY.setdefault(_match >> 12, []).append((_mask, _match, _key))


def decode(word: int, pc: int = None) -> Instruction:
    """Decode a 16-bit instruction word.

    Raises:
        DecodeFault: word matches no instruction. `pc` is only used to
        annotate the fault.
    """
    word &= 0xFFFF
    for mask, match, key in _BY_FAMILY.get(word >> 12, ()):
        if word & mask == match:
            return Instruction(
                word=word,
                key=key,
                x=(word >> 8) & 0xF,
                y=(word >> 4) & 0xF,
                n=word & 0xF,
                nn=word & 0xFF,
                nnn=word & 0xFFF,
            )
    raise DecodeFault("Unknown instruction", word=word, pc=pc)


def fetch_decode(memory, pc: int) -> Instruction:
    """Fetch the big-endian word at pc and decode it."""
    return decode(memory.read16(pc), pc)


def disassemble_instruction(ins: Instruction) -> str:
    mnem, tmpl = OPCODE_INFO[ins.key]
    operands = tmpl.format(x=ins.x, y=ins.y, n=ins.n, nn=ins.nn, nnn=ins.nnn)
    return f"{mnem:5s}{operands}".rstrip()


def disassemble(data: bytes, base_addr: int = 0x200) -> List[str]:
    """Linear disassembly of a program image, two bytes per line.

    Words that do not decode (sprite data, padding) are shown as
    data directives instead of stopping the listing.
    """
    lines = []
    for offset in range(0, len(data) - 1, 2):
        word = (data[offset] << 8) | data[offset + 1]
        try:
            text = disassemble_instruction(decode(word))
        except DecodeFault:
            text = f"DW   ${word:04X}"
        lines.append(f"{base_addr + offset:03X}: {word:04X}  {text}")
    if len(data) % 2:
        addr = base_addr + len(data) - 1
        lines.append(f"{addr:03X}: {data[-1]:02X}    DB   ${data[-1]:02X}")
    return lines
