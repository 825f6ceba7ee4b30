"""
CHIP-8 VM - Decoder and Disassembler Tests

Every one of the 35 instructions is decoded from a hand-picked word and
checked for its dispatch key and operand fields.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_vm.cpu.decoder import OPCODES, decode, disassemble
from chip8_vm.faults import DecodeFault


class TestDecodeTable:

    def test_table_has_35_instructions(self):
        assert len(OPCODES) == 35

    @pytest.mark.parametrize("word, key", [
        (0x00E0, 'CLS'), (0x00EE, 'RET'), (0x1ABC, 'JP'), (0x2ABC, 'CALL'),
        (0x3A12, 'SE_IMM'), (0x4A12, 'SNE_IMM'), (0x5AB0, 'SE_REG'),
        (0x6A12, 'LD_IMM'), (0x7A12, 'ADD_IMM'),
        (0x8AB0, 'LD_REG'), (0x8AB1, 'OR'), (0x8AB2, 'AND'), (0x8AB3, 'XOR'),
        (0x8AB4, 'ADD_REG'), (0x8AB5, 'SUB'), (0x8AB6, 'SHR'),
        (0x8AB7, 'SUBN'), (0x8ABE, 'SHL'), (0x9AB0, 'SNE_REG'),
        (0xAABC, 'LD_I'), (0xBABC, 'JP_V0'), (0xCA12, 'RND'), (0xDAB5, 'DRW'),
        (0xEA9E, 'SKP'), (0xEAA1, 'SKNP'),
        (0xFA07, 'LD_VX_DT'), (0xFA0A, 'LD_VX_K'), (0xFA15, 'LD_DT_VX'),
        (0xFA18, 'LD_ST_VX'), (0xFA1E, 'ADD_I_VX'), (0xFA29, 'LD_F_VX'),
        (0xFA33, 'LD_B_VX'), (0xFA55, 'LD_MEM_VX'), (0xFA65, 'LD_VX_MEM'),
    ])
    def test_decode_key(self, word, key):
        assert decode(word).key == key

    def test_operand_fields(self):
        ins = decode(0xDAB5)
        assert (ins.x, ins.y, ins.n) == (0xA, 0xB, 5)
        assert ins.nn == 0xB5
        assert ins.nnn == 0xAB5
        assert ins.word == 0xDAB5

    def test_every_leading_nibble_has_instructions(self):
        families = {match >> 12 for _, match, _, _ in OPCODES.values()}
        assert families == set(range(16))

    def test_patterns_do_not_overlap(self):
        for word in range(0x10000):
            hits = [k for k, (mask, match, _, _) in OPCODES.items()
                    if word & mask == match]
            assert len(hits) <= 1, f"{word:04X} matches {hits}"

    def test_unknown_word_raises_with_pc(self):
        with pytest.raises(DecodeFault) as info:
            decode(0x0123, pc=0x2F0)
        assert info.value.word == 0x0123
        assert info.value.pc == 0x2F0


class TestDisassembler:

    @pytest.mark.parametrize("word, text", [
        (0x00E0, "CLS"),
        (0x1228, "JP   $228"),
        (0x6A05, "LD   VA, #$05"),
        (0x8124, "ADD  V1, V2"),
        (0xA2F0, "LD   I, $2F0"),
        (0xB300, "JP   V0, $300"),
        (0xD125, "DRW  V1, V2, 5"),
        (0xF40A, "LD   V4, K"),
        (0xF355, "LD   [I], V3"),
    ])
    def test_instruction_text(self, word, text):
        assert str(decode(word)) == text

    def test_mnemonic(self):
        assert decode(0x8AB6).mnemonic == 'SHR'

    def test_listing(self):
        lines = disassemble(bytes([0x00, 0xE0, 0x12, 0x00]))
        assert lines == [
            "200: 00E0  CLS",
            "202: 1200  JP   $200",
        ]

    def test_listing_shows_data_words(self):
        lines = disassemble(bytes([0xF0, 0x90, 0x60]))
        assert lines[0] == "200: F090  DW   $F090"
        assert lines[1] == "202: 60    DB   $60"
