#!/usr/bin/env python3
"""
chip8run - CHIP-8 Virtual Machine CLI

Usage:
    python chip8run.py <rom> [--frames N] [--cycles-per-frame N] [--frame-hz HZ]
                             [--seed S] [--press FRAME:KEY ...] [--trace]
                             [--no-render] [--dump] [--verbose] [--log-dir DIR]
    python chip8run.py --list [DIR]
    python chip8run.py <rom> --disasm

Examples:
    python chip8run.py --list                        # ROMs in ./roms
    python chip8run.py roms/ibm_logo.ch8 --frames 60
    python chip8run.py roms/keypad.ch8 --press 10:5 --press 40:a
    python chip8run.py roms/pong.ch8 --disasm

Exit codes:
    0  ran to the end of the frame budget (or listing/disassembly done)
    1  machine fault (illegal instruction, stack overflow/underflow)
    2  load fault, unreadable ROM, or bad arguments
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from chip8_vm import __version__
from chip8_vm.config import DEFAULT_CYCLES_PER_FRAME, DEFAULT_FRAME_HZ, EmulatorConfig
from chip8_vm.cpu.decoder import disassemble
from chip8_vm.emu import Chip8Emulator, StopReason
from chip8_vm.faults import LoadFault
from chip8_vm.host import HostLoop
from chip8_vm.log_setup import setup_logging
from chip8_vm.render import BellAudio, ScriptedInput, TerminalRenderer, framebuffer_text, parse_press

log = logging.getLogger('chip8.cli')

DEFAULT_ROM_DIR = "roms"


def list_roms(rom_dir: Path):
    """ROM files in a directory, sorted by name."""
    return sorted(p.name for p in rom_dir.iterdir() if p.is_file())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8run",
        description="CHIP-8 virtual machine",
    )
    parser.add_argument("rom", nargs="?", help="Raw CHIP-8 program image")
    parser.add_argument("--list", nargs="?", const=DEFAULT_ROM_DIR, metavar="DIR",
                        help=f"List ROM files in DIR (default: {DEFAULT_ROM_DIR}) and exit")
    parser.add_argument("--disasm", action="store_true",
                        help="Print a disassembly of the ROM and exit")
    parser.add_argument("--frames", type=int, default=None,
                        help="Stop after N host frames (default: run until a fault)")
    parser.add_argument("--cycles-per-frame", type=int, default=DEFAULT_CYCLES_PER_FRAME,
                        help=f"Instructions per frame (default: {DEFAULT_CYCLES_PER_FRAME})")
    parser.add_argument("--frame-hz", type=float, default=DEFAULT_FRAME_HZ,
                        help=f"Host frame rate (default: {DEFAULT_FRAME_HZ})")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the RND instruction")
    parser.add_argument("--press", action="append", default=[], metavar="FRAME:KEY",
                        help="Press hex KEY at FRAME (repeatable)")
    parser.add_argument("--no-render", action="store_true",
                        help="Do not draw frames while running")
    parser.add_argument("--dump", action="store_true",
                        help="Print registers and program memory at exit")
    parser.add_argument("--trace", action="store_true",
                        help="Log every executed instruction (needs --verbose to show)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging on the console")
    parser.add_argument("--log-dir", default=None,
                        help="Also write a timestamped log file here")
    parser.add_argument("--version", action="version",
                        version=f"chip8run {__version__}")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()

    if args.list is not None:
        rom_dir = Path(args.list)
        if not rom_dir.is_dir():
            print(f"Error: No ROM directory: {rom_dir}", file=sys.stderr)
            return 2
        for name in list_roms(rom_dir):
            print(name)
        return 0

    if not args.rom:
        parser.print_usage(sys.stderr)
        print("Error: a ROM path is required", file=sys.stderr)
        return 2

    try:
        config = EmulatorConfig.from_args(args)
        events = [(*parse_press(p), True) for p in args.press]
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging("chip8", console_level=config.log_level, log_dir=config.log_dir)

    try:
        data = Path(args.rom).read_bytes()
    except FileNotFoundError:
        print(f"Error: File not found: {args.rom}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"Error reading {args.rom}: {e}", file=sys.stderr)
        return 2

    if args.disasm:
        for line in disassemble(data):
            print(line)
        return 0

    emu = Chip8Emulator(config)
    try:
        emu.load_program(data)
    except LoadFault as e:
        print(f"Load error: {e}", file=sys.stderr)
        return 2

    renderer = None if args.no_render else TerminalRenderer(console, title=Path(args.rom).name)
    host = HostLoop(emu, config, renderer=renderer, audio=BellAudio(console),
                    input_source=ScriptedInput(events))

    try:
        reason = host.run(args.frames)
    except KeyboardInterrupt:
        emu.halt()
        reason = StopReason.HALT

    if args.no_render:
        console.print(framebuffer_text(emu.display.snapshot()))
    if args.dump:
        print(emu.regs.display())
        print(f"Stack: {' '.join(f'{a:03X}' for a in emu.stack.frames()) or '(empty)'}")
        print(emu.mem.hexdump(0x200, max(16, emu.mem.program_size)))

    if emu.fault is not None:
        print(f"Machine fault: {emu.fault}", file=sys.stderr)
        return 1
    log.info("Stopped: %s after %d frames, %d steps", reason.value, host.frame, emu.steps)
    return 0


if __name__ == "__main__":
    sys.exit(main())
