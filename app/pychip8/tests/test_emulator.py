from typing import List, Optional

import numpy as np
import pytest
from returns.result import Failure, Success

from pychip8.emulator import TIMER_PERIOD, Emulator
from pychip8.exception import ControlFlowError, LoadError
from pychip8.state import SystemState

FRAME = 1.0 / 60


class MockOpcodeRunner:
    def __init__(self) -> None:
        self.last_opcode: Optional[int] = None

    def run(self, system: SystemState, opcode: int) -> None:
        self.last_opcode = opcode


class RecordingTone:
    def __init__(self) -> None:
        self.events: List[str] = []

    def start_tone(self) -> None:
        self.events.append("start")

    def stop_tone(self) -> None:
        self.events.append("stop")


@pytest.fixture
def tone() -> RecordingTone:
    return RecordingTone()


@pytest.fixture
def emulator(tone) -> Emulator:
    return Emulator(tone=tone)


def test_execute_cycle_fetches_in_order_and_ticks():
    runner = MockOpcodeRunner()
    emulator = Emulator(opcode_runner=runner)
    emulator.load(bytes([0x01, 0x02, 0x03, 0x04]))
    emulator.system.delay_timer = 10

    emulator.execute_cycle(0.017)
    assert runner.last_opcode == 0x0102
    assert emulator.system.delay_timer == 9

    emulator.execute_cycle(0.017)
    assert runner.last_opcode == 0x0304
    assert emulator.system.delay_timer == 8


def test_timers_decay_at_60hz_regardless_of_call_rate():
    runner = MockOpcodeRunner()
    emulator = Emulator(opcode_runner=runner)
    emulator.load(bytes(64))
    emulator.system.delay_timer = 100

    # ten cycles per timer period
    for _ in range(10):
        emulator.execute_cycle(TIMER_PERIOD / 10 + 1e-9)
    assert emulator.system.delay_timer == 99

    # one slow call covering three periods
    emulator.system.program_counter = 0x200
    emulator.execute_cycle(TIMER_PERIOD * 3 + 1e-9)
    assert emulator.system.delay_timer == 96


def test_long_pause_empties_timers():
    emulator = Emulator(opcode_runner=MockOpcodeRunner())
    emulator.load(bytes(64))
    emulator.system.delay_timer = 0xFF
    emulator.system.sound_timer = 0x80

    # a year asleep
    emulator.execute_cycle(365 * 24 * 3600.0)
    assert emulator.system.delay_timer == 0
    assert emulator.system.sound_timer == 0

    emulator.system.delay_timer = 10
    emulator.execute_cycle(TIMER_PERIOD / 2)
    assert emulator.system.delay_timer in (9, 10)


def test_load_failure_leaves_fresh_state(emulator):
    result = emulator.load(bytes(3897))
    assert isinstance(result, Failure)
    assert isinstance(result.failure(), LoadError)
    assert not emulator.loaded
    assert np.array_equal(emulator.system.memory, SystemState().memory)

    assert isinstance(emulator.load(bytes(3584)), Success)
    assert emulator.loaded


def test_double_load_is_a_programmer_error(emulator):
    emulator.load(bytes([0x12, 0x00]))
    with pytest.raises(AssertionError):
        emulator.load(bytes([0x12, 0x00]))
    emulator.reset()
    assert isinstance(emulator.load(bytes([0x12, 0x00])), Success)


def test_execute_without_program_is_a_programmer_error(emulator):
    with pytest.raises(AssertionError):
        emulator.execute_cycle(FRAME)


@pytest.mark.parametrize("key", [-1, 16])
def test_key_out_of_range_is_a_programmer_error(emulator, key):
    with pytest.raises(AssertionError):
        emulator.key_down(key)
    with pytest.raises(AssertionError):
        emulator.key_up(key)


def test_fetch_order_matches_program():
    runner = MockOpcodeRunner()
    emulator = Emulator(opcode_runner=runner)
    program = bytes(range(0, 40))
    emulator.load(program)
    for offset in range(0, len(program), 2):
        emulator.execute_cycle(0)
        assert runner.last_opcode == (program[offset] << 8) | program[offset + 1]


def test_end_to_end_loop(emulator):
    # CLS; LD V0, 0x0A; JP 0x200
    emulator.load(bytes([0x00, 0xE0, 0x60, 0x0A, 0x12, 0x00]))
    for _ in range(1000):
        emulator.execute_cycle(FRAME)
        assert emulator.system.registers[0] in (0x00, 0x0A)
    assert emulator.system.registers[0] == 0x0A
    assert not emulator.frame.any()


def test_drawing_loop_runs():
    program = bytes(
        [
            0x60, 0x00, 0x61, 0x00, 0x6E, 0x1E, 0x8E, 0x17, 0x4F, 0x01, 0x12, 0x12, 0xD0, 0x15, 0x71,
            0x05, 0x12, 0x04, 0x60, 0x05, 0x61, 0x00, 0x41, 0x1E, 0x12, 0x20, 0xD0, 0x15, 0x71, 0x05,
            0x12, 0x16, 0x60, 0x0A, 0x61, 0x00, 0x6E, 0x1E, 0x8E, 0x17, 0x4F, 0x01, 0x12, 0x32, 0xD0,
            0x15, 0x71, 0x05, 0x12, 0x24, 0x60, 0x0F, 0x61, 0x00, 0x41, 0x1E, 0x12, 0x40, 0xD0, 0x15,
            0x71, 0x05, 0x12, 0x36, 0x60, 0x14, 0x61, 0x00, 0x41, 0x19, 0x12, 0x56, 0xD0, 0x15, 0x71,
            0x05, 0x62, 0x05, 0x72, 0xFF, 0x32, 0x00, 0x12, 0x4E, 0x12, 0x44, 0xD0, 0x15, 0x12, 0x58,
        ]
    )
    emulator = Emulator()
    emulator.load(program).unwrap()
    for _ in range(200):
        emulator.execute_cycle(0.017)
    assert emulator.frame.any()


def test_wait_for_key(emulator):
    # LD V3, K; JP 0x202
    emulator.load(bytes([0xF3, 0x0A, 0x12, 0x02]))

    emulator.execute_cycle(FRAME)
    assert emulator.system.program_counter == 0x200
    assert emulator.system.waiting_for_key
    assert emulator.system.registers[3] == 0

    # nothing is fetched while waiting
    emulator.execute_cycle(FRAME)
    emulator.execute_cycle(FRAME)
    assert emulator.system.program_counter == 0x200
    assert emulator.system.waiting_for_key

    emulator.key_down(5)
    assert not emulator.system.waiting_for_key
    assert emulator.system.pending_keypress == 5
    assert emulator.system.registers[3] == 0

    emulator.execute_cycle(FRAME)
    assert emulator.system.registers[3] == 5
    assert emulator.system.program_counter == 0x202
    assert emulator.system.pending_keypress is None
    assert not emulator.system.waiting_for_key


def test_timers_tick_while_waiting(emulator):
    emulator.load(bytes([0xF0, 0x0A]))
    emulator.execute_cycle(0)
    emulator.system.delay_timer = 3
    for _ in range(5):
        emulator.execute_cycle(FRAME + 1e-9)
    assert emulator.system.delay_timer == 0
    assert emulator.system.waiting_for_key


def test_key_down_while_running_is_not_captured(emulator):
    emulator.load(bytes([0x12, 0x00]))
    emulator.key_down(7)
    assert emulator.system.keys[7]
    assert emulator.system.pending_keypress is None
    emulator.key_up(7)
    assert not emulator.system.keys[7]


def test_second_key_does_not_replace_capture(emulator):
    emulator.load(bytes([0xF3, 0x0A]))
    emulator.execute_cycle(0)
    emulator.key_down(5)
    emulator.key_down(9)
    assert emulator.system.pending_keypress == 5


def test_tone_edges(emulator, tone):
    # LD V1, 3; LD ST, V1; JP 0x204
    emulator.load(bytes([0x61, 0x03, 0xF1, 0x18, 0x12, 0x04]))

    emulator.execute_cycle(0)
    assert tone.events == []

    emulator.execute_cycle(0)
    assert tone.events == ["start"]
    assert emulator.tone_playing

    emulator.execute_cycle(FRAME + 1e-9)
    emulator.execute_cycle(FRAME + 1e-9)
    assert tone.events == ["start"]

    emulator.execute_cycle(FRAME + 1e-9)
    assert emulator.system.sound_timer == 0
    assert tone.events == ["start", "stop"]

    emulator.execute_cycle(FRAME)
    assert tone.events == ["start", "stop"]


def test_reset_silences_tone(emulator, tone):
    emulator.load(bytes([0x61, 0x10, 0xF1, 0x18, 0x12, 0x04]))
    emulator.execute_cycle(0)
    emulator.execute_cycle(0)
    assert tone.events == ["start"]

    emulator.reset()
    assert tone.events == ["start", "stop"]
    assert not emulator.loaded
    assert emulator.system.sound_timer == 0
    assert emulator.system.program_counter == 0


def test_reset_restores_fresh_state(emulator):
    emulator.load(bytes([0xF3, 0x0A]))
    emulator.execute_cycle(0)
    emulator.key_down(2)
    emulator.reset()
    fresh = SystemState()
    assert not emulator.system.waiting_for_key
    assert emulator.system.pending_keypress is None
    assert not emulator.system.keys.any()
    assert np.array_equal(emulator.system.memory, fresh.memory)


def test_call_return_round_trip(emulator):
    # 0x200: CALL 0x300 ... 0x300: RET
    program = bytearray(0x102)
    program[0:2] = bytes([0x23, 0x00])
    program[0x100:0x102] = bytes([0x00, 0xEE])
    emulator.load(bytes(program))

    emulator.execute_cycle(0)
    assert emulator.system.program_counter == 0x300
    emulator.execute_cycle(0)
    assert emulator.system.program_counter == 0x202


def test_error_aborts_cycle(emulator):
    emulator.load(bytes([0x00, 0xEE]))
    with pytest.raises(ControlFlowError):
        emulator.execute_cycle(0)
    # the instruction is consumed
    assert emulator.system.program_counter == 0x202


def test_frame_is_a_read_only_snapshot(emulator):
    emulator.load(bytes([0x12, 0x00]))
    frame = emulator.frame
    assert frame.shape == (32, 64)
    with pytest.raises(ValueError):
        frame[0, 0] = True
    emulator.system.display[0, 0] = True
    assert not frame[0, 0]


def test_events_and_tracelog(emulator):
    emulator.load(bytes([0x60, 0x0A, 0x12, 0x00]))
    emulator.debug.Logging = True
    seen: List[str] = []
    after: List[int] = []

    @emulator.on("tracelogger")
    def _trace(line: str) -> None:
        seen.append(line)

    @emulator.on("after_cycle")
    def _after(pc: int) -> None:
        after.append(pc)

    emulator.execute_cycle(0)
    emulator.execute_cycle(0)
    assert len(seen) == 2
    assert seen[0].startswith("0200: opcode: 600A LD V0, 0x0A")
    assert "JP 0x200" in seen[1]
    assert after == [0x202, 0x200]
    assert list(emulator.tracelog) == seen
