from dataclasses import dataclass, field
from typing import Final, Optional

import numpy as np
from bitarray import bitarray  # type: ignore
from numpy.typing import NDArray
from returns.result import Failure, Result, Success

from pychip8.exception import InputValidationError, LoadError, MemoryAccessError
from pychip8.fonts import GLYPH_SIZE, HEX_DIGITS

MEMORY_SIZE: Final[int] = 0x1000
PROGRAM_START: Final[int] = 0x200
MAX_PROGRAM_SIZE: Final[int] = MEMORY_SIZE - PROGRAM_START
REGISTER_COUNT: Final[int] = 16
STACK_SIZE: Final[int] = 16
KEY_COUNT: Final[int] = 16
DISPLAY_WIDTH: Final[int] = 64
DISPLAY_HEIGHT: Final[int] = 32


def _new_keys() -> bitarray:
    keys = bitarray(KEY_COUNT)
    keys.setall(0)
    return keys


def _new_memory() -> NDArray[np.uint8]:
    memory = np.zeros(MEMORY_SIZE, dtype=np.uint8)
    memory[: len(HEX_DIGITS)] = HEX_DIGITS
    return memory


@dataclass
class SystemState:
    """
    The whole CHIP-8 machine: memory, registers, stack, timers, display and keypad.

    The font table is loaded at 0x000 on construction; everything else
    starts zeroed. VF (``registers[0xF]``) is an ordinary register that some
    instructions also use as their flag output.
    """

    memory: NDArray[np.uint8] = field(default_factory=_new_memory)
    registers: NDArray[np.uint8] = field(default_factory=lambda: np.zeros(REGISTER_COUNT, dtype=np.uint8))
    address_register: int = 0
    delay_timer: int = 0
    sound_timer: int = 0
    program_counter: int = 0
    stack_pointer: int = 0
    stack: NDArray[np.uint16] = field(default_factory=lambda: np.zeros(STACK_SIZE, dtype=np.uint16))
    display: NDArray[np.bool_] = field(
        default_factory=lambda: np.zeros((DISPLAY_HEIGHT, DISPLAY_WIDTH), dtype=np.bool_)
    )
    keys: bitarray = field(default_factory=_new_keys)
    waiting_for_key: bool = False
    pending_keypress: Optional[int] = None

    def load_program(self, program: bytes) -> Result[int, LoadError]:
        """
        Copy ``program`` to 0x200 and point the program counter at it.

        Returns:
            Success with the number of bytes loaded, or Failure with a
            LoadError when the program does not fit. State is untouched on
            failure.
        """
        if len(program) > MAX_PROGRAM_SIZE:
            return Failure(LoadError(f"program too long: {len(program)} bytes, maximum {MAX_PROGRAM_SIZE}"))

        data = np.frombuffer(bytes(program), dtype=np.uint8)
        self.memory[PROGRAM_START : PROGRAM_START + len(data)] = data
        self.program_counter = PROGRAM_START
        return Success(len(data))

    def next_opcode(self) -> int:
        """Fetch the big-endian word at the program counter and advance it by 2."""
        addr = self.program_counter
        if addr + 1 >= len(self.memory):
            raise MemoryAccessError(f"program counter out of memory: 0x{addr:04X}")
        opcode = (int(self.memory[addr]) << 8) | int(self.memory[addr + 1])
        self.program_counter = (addr + 2) & 0xFFFF
        return opcode

    def tick_timers(self) -> None:
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def get_sprite_location(self, digit: int) -> int:
        if digit > 0xF:
            raise InputValidationError(f"invalid sprite digit: {digit}")
        return digit * GLYPH_SIZE

    def register_snapshot(self) -> tuple[int, ...]:
        return tuple(int(v) for v in self.registers)
