"""
CHIP-8 VM - Host Loop Tests

The host loop is driven with a fake clock so wall-clock behavior
(timer pacing, frame pacing) is deterministic.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest
from rich.console import Console

from chip8_vm import HostLoop, StopReason, load_rom
from chip8_vm.config import EmulatorConfig
from chip8_vm.emu import Chip8Emulator
from chip8_vm.render import BellAudio, ScriptedInput, TerminalRenderer, framebuffer_text, parse_press


def words_to_bytes(*words):
    return b''.join(bytes([w >> 8, w & 0xFF]) for w in words)


class FakeClock:
    """Clock that only moves when the test (or the fake sleep) moves it."""

    def __init__(self):
        self.now = 0.0
        self.slept = []

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def sleep(self, seconds):
        self.slept.append(seconds)
        self.now += seconds


class RecordingRenderer:
    def __init__(self):
        self.frames = []

    def render(self, snapshot):
        self.frames.append(snapshot)


class RecordingAudio:
    def __init__(self):
        self.calls = []

    def set_tone(self, on):
        self.calls.append(on)


def make_host(*words, cycles=10, hz=64, timer_hz=None, **kwargs):
    config = EmulatorConfig(cycles_per_frame=cycles, frame_hz=hz,
                            timer_hz=timer_hz or hz)
    emu = load_rom(words_to_bytes(*words), config)
    clock = FakeClock()
    host = HostLoop(emu, config, clock=clock, sleep=clock.sleep, **kwargs)
    return emu, host, clock


class TestFrames:

    def test_runs_cycles_per_frame_steps(self):
        emu, host, clock = make_host(0x7001, 0x1200, cycles=6)
        host.run_frame()
        assert emu.steps == 6
        assert emu.regs.V[0] == 3

    def test_fault_stops_frame_early(self):
        emu, host, clock = make_host(0x6001, 0x0000, cycles=10)
        assert host.run_frame() == StopReason.ILLEGAL
        assert emu.steps == 1

    def test_run_returns_timeout_after_budget(self):
        emu, host, clock = make_host(0x1200)
        assert host.run(frames=5) == StopReason.TIMEOUT
        assert host.frame == 5

    def test_run_returns_fault_reason(self):
        emu, host, clock = make_host(0x00EE)
        assert host.run(frames=5) == StopReason.STACK
        assert host.frame == 1

    def test_run_paces_frames(self):
        emu, host, clock = make_host(0x1200, hz=64)
        host.run(frames=3)
        assert clock.slept == [1 / 64] * 3


class TestTimerPacing:

    def test_timer_follows_wall_clock_not_steps(self):
        # 1000 instructions per frame; DT must still fall once per 1/64 s.
        emu, host, clock = make_host(0x6010, 0xF015, 0x1204, cycles=1000)
        host.run_frame()
        assert emu.regs.DT == 0x10
        for _ in range(4):
            clock.advance(1 / 64)
            host.run_frame()
        assert emu.regs.DT == 0x10 - 4

    def test_timer_keeps_rate_when_frames_are_slower(self):
        # 32 frames/s against a 64 Hz timer: two ticks are due every frame.
        emu, host, clock = make_host(0x60C8, 0xF015, 0x1204, hz=32, timer_hz=64)
        host.run(frames=31)
        assert clock.now == 31 / 32
        assert emu.regs.DT == 200 - 60

    def test_late_frame_is_paid_back(self):
        emu, host, clock = make_host(0x6050, 0xF015, 0x1204)
        host.run_frame()
        clock.advance(2 / 64)          # one frame overran by a whole tick
        host.run_frame()
        assert emu.regs.DT == 0x50 - 2
        clock.advance(1 / 64)
        host.run_frame()
        assert emu.regs.DT == 0x50 - 3

    def test_no_tick_without_elapsed_time(self):
        emu, host, clock = make_host(0x6010, 0xF015, 0x1204)
        for _ in range(10):
            host.run_frame()
        assert emu.regs.DT == 0x10

    def test_timers_tick_while_waiting_for_key(self):
        emu, host, clock = make_host(0x6005, 0xF015, 0xF00A, cycles=3)
        host.run_frame()
        assert emu.waiting_for_key
        for _ in range(3):
            clock.advance(1 / 64)
            host.run_frame()
        assert emu.regs.DT == 2
        assert emu.regs.PC == 0x206


class TestCollaborators:

    def test_renders_only_when_dirty(self):
        renderer = RecordingRenderer()
        emu, host, clock = make_host(0xA000, 0xD005, 0x1204, cycles=3,
                                     renderer=renderer)
        host.run_frame()
        host.run_frame()
        assert len(renderer.frames) == 1
        assert renderer.frames[0][0][:4] == (1, 1, 1, 1)

    def test_audio_follows_sound_timer(self):
        audio = RecordingAudio()
        emu, host, clock = make_host(0x6002, 0xF018, 0x1204, cycles=2,
                                     audio=audio)
        host.run_frame()
        assert audio.calls == [True]
        clock.advance(1 / 64)
        host.run_frame()
        assert audio.calls == [True]
        clock.advance(1 / 64)
        host.run_frame()
        assert audio.calls == [True, False]

    def test_tone_stopped_when_loop_ends(self):
        audio = RecordingAudio()
        emu, host, clock = make_host(0x60FF, 0xF018, 0x1204, cycles=2,
                                     audio=audio)
        host.run(frames=2)
        assert audio.calls == [True, False]

    def test_scripted_input_satisfies_key_wait(self):
        script = ScriptedInput([(3, 0xC, True)])
        emu, host, clock = make_host(0xF20A, 0x1202, cycles=2,
                                     input_source=script)
        for _ in range(3):
            host.run_frame()
        assert emu.waiting_for_key
        host.run_frame()
        assert not emu.waiting_for_key
        assert emu.regs.V[2] == 0xC
        host.run_frame()
        assert not emu.keypad.is_pressed(0xC)


class TestTerminalCollaborators:

    def test_framebuffer_text_half_blocks(self):
        snapshot = ((1, 0, 1, 0), (1, 1, 0, 0))
        assert framebuffer_text(snapshot).plain == "█▄▀ "

    def test_terminal_renderer_prints_panel(self):
        console = Console(record=True, width=80)
        renderer = TerminalRenderer(console, title="test.ch8")
        emu = Chip8Emulator()
        emu.load_words([0xA000, 0xD005])
        emu.run(max_steps=2)
        renderer.render(emu.display.snapshot())
        out = console.export_text()
        assert "test.ch8" in out
        assert "▀▀▀▀" in out
        assert renderer.frames_drawn == 1

    def test_bell_audio_logs(self, caplog):
        console = Console(record=True)
        audio = BellAudio(console, ring=False)
        with caplog.at_level(logging.INFO, logger='chip8.render'):
            audio.set_tone(True)
        assert audio.tone_on
        assert "Tone on" in caplog.text

    @pytest.mark.parametrize("text, expected", [
        ("0:0", (0, 0)), ("12:a", (12, 10)), ("30:F", (30, 15)),
    ])
    def test_parse_press(self, text, expected):
        assert parse_press(text) == expected

    @pytest.mark.parametrize("text", ["12", "x:1", "5:10", "-1:2"])
    def test_parse_press_rejects(self, text):
        with pytest.raises(ValueError):
            parse_press(text)
