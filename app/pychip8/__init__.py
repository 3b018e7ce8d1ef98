"""PyChip8: a CHIP-8 virtual machine."""

from pychip8.emulator import Emulator, ToneSink
from pychip8.exception import (
    Chip8Error,
    ControlFlowError,
    DecodeError,
    InputValidationError,
    LoadError,
    MemoryAccessError,
)
from pychip8.opcodes import OpcodeRunner
from pychip8.rom import Rom
from pychip8.state import SystemState

__all__ = [
    "Chip8Error",
    "ControlFlowError",
    "DecodeError",
    "Emulator",
    "InputValidationError",
    "LoadError",
    "MemoryAccessError",
    "OpcodeRunner",
    "Rom",
    "SystemState",
    "ToneSink",
]
