from collections import deque
from dataclasses import dataclass
from string import Template
from typing import Any, Callable, Dict, Final, Optional, Protocol

import numpy as np
from numpy.typing import NDArray
from returns.result import Result, Success

from pychip8.decoder import Instruction
from pychip8.exception import LoadError
from pychip8.logger import log as _logger
from pychip8.opcodes import IOpcodeRunner, OpcodeRunner
from pychip8.state import KEY_COUNT, SystemState

TIMER_HZ: Final[int] = 60
TIMER_PERIOD: Final[float] = 1.0 / TIMER_HZ
MAX_TIMER_TICKS: Final[int] = 0xFF

TEMPLATE: Final[Template] = Template(
    "${PC}: opcode: ${OP} ${MN} | I: ${I} | SP: ${SP} | DT: ${DT} | ST: ${ST} | V: ${V}"
)


class ToneSink(Protocol):
    """Something that can play the single CHIP-8 tone."""

    def start_tone(self) -> None: ...

    def stop_tone(self) -> None: ...


@dataclass
class Debug:
    Logging: bool = False


class Emulator:
    """
    Drives a CHIP-8 SystemState one instruction at a time.

    The caller owns the clock: every ``execute_cycle`` gets the wall-clock
    time since the previous call and the delay/sound timers decay at 60 Hz
    from those deltas, however often the method is called. Nothing here
    sleeps or blocks, so the emulator can sit inside any render loop.

    Keys come in through ``key_down``/``key_up``, the display is read back
    with ``frame`` and the tone is switched on and off through the optional
    ``tone`` sink, only on edges.
    """

    def __init__(
        self,
        tone: Optional[ToneSink] = None,
        opcode_runner: Optional[IOpcodeRunner] = None,
    ) -> None:
        self.system: SystemState = SystemState()
        self.opcode_runner: IOpcodeRunner = opcode_runner if opcode_runner is not None else OpcodeRunner()
        self.tone: Optional[ToneSink] = tone
        self.debug: Debug = Debug()
        self.tracelog: deque[str] = deque(maxlen=2024)
        self._events: Dict[str, deque[Callable[..., Any]]] = {}
        self._loaded: bool = False
        self._timer_accumulator: float = 0.0
        self._tone_playing: bool = False

    def on(self, event_name: str):
        def decorator(func: Callable):
            self._events.setdefault(event_name, deque()).append(func)
            return func

        return decorator

    def _emit(self, event_name: str, *args: Any, **kwargs: Any) -> None:
        """Emit an event to all registered callbacks."""
        callbacks = self._events.get(event_name)
        if not callbacks:
            return

        for callback in callbacks:
            callback(*args, **kwargs)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def tone_playing(self) -> bool:
        return self._tone_playing

    @property
    def frame(self) -> NDArray[np.bool_]:
        """Read-only snapshot of the 32x64 display."""
        snapshot = self.system.display.copy()
        snapshot.flags.writeable = False
        return snapshot

    def load(self, program: bytes) -> Result[int, LoadError]:
        """
        Load a program at 0x200.

        Must not be called twice without a ``reset`` in between.
        """
        assert not self._loaded, "a program is already loaded, reset() first"
        result = self.system.load_program(program)
        if isinstance(result, Success):
            self._loaded = True
            _logger.info(f"Loaded program: {result.unwrap()} bytes")
        else:
            _logger.warning(f"Failed to load program: {result.failure()}")
        return result

    def reset(self) -> None:
        """Return to the freshly constructed state and silence the tone."""
        _logger.info("Resetting emulator...")
        self._set_tone(False)
        self.system = SystemState()
        self.tracelog.clear()
        self._loaded = False
        self._timer_accumulator = 0.0

    def key_down(self, key: int) -> None:
        assert 0 <= key < KEY_COUNT, f"invalid key: {key}"
        self.system.keys[key] = 1
        if self.system.waiting_for_key and self.system.pending_keypress is None:
            self.system.pending_keypress = key
            self.system.waiting_for_key = False
            _logger.debug(f"Captured key 0x{key:X}")

    def key_up(self, key: int) -> None:
        assert 0 <= key < KEY_COUNT, f"invalid key: {key}"
        self.system.keys[key] = 0

    def execute_cycle(self, delta_time: float) -> None:
        """
        Advance the timers by ``delta_time`` seconds and run one instruction.

        No instruction runs while waiting for a key. Any Chip8Error raised by
        the instruction propagates; the instruction counts as consumed.
        """
        assert self._loaded, "load a program before executing cycles"
        assert delta_time >= 0, "delta_time must not be negative"

        self._emit("before_cycle", self.system.program_counter)

        ticks, self._timer_accumulator = divmod(self._timer_accumulator + delta_time, TIMER_PERIOD)
        # an 8-bit timer is empty after 255 ticks
        for _ in range(min(int(ticks), MAX_TIMER_TICKS)):
            self.system.tick_timers()

        if not self.system.waiting_for_key:
            opcode = self.system.next_opcode()
            if self.debug.Logging:
                self._tracelogger(opcode)
                self._emit("tracelogger", self.tracelog[-1])
            self.opcode_runner.run(self.system, opcode)

        self._set_tone(self.system.sound_timer > 0)
        self._emit("after_cycle", self.system.program_counter)

    def _set_tone(self, playing: bool) -> None:
        if playing == self._tone_playing:
            return
        self._tone_playing = playing
        _logger.debug("Tone start" if playing else "Tone stop")
        if self.tone is None:
            return
        if playing:
            self.tone.start_tone()
        else:
            self.tone.stop_tone()

    def _tracelogger(self, opcode: int) -> None:
        line = TEMPLATE.substitute(
            PC=f"{self.system.program_counter - 2:04X}",
            OP=f"{opcode:04X}",
            MN=f"{Instruction.decode(opcode).mnemonic:<16}",
            I=f"{self.system.address_register:04X}",
            SP=f"{self.system.stack_pointer:02X}",
            DT=f"{self.system.delay_timer:02X}",
            ST=f"{self.system.sound_timer:02X}",
            V=" ".join(f"{v:02X}" for v in self.system.register_snapshot()),
        )

        self.tracelog.append(line)
