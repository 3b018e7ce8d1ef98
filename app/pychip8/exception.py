from typing import Final, Sequence


class Chip8Error(Exception):
    """Base exception for all PyChip8 related errors."""

    pass


class LoadError(Chip8Error):
    """The program does not fit into memory."""

    pass


class DecodeError(Chip8Error):
    """An instruction word that matches no known instruction.

    CHIP-8 programs carry no symbols, so the error keeps the opcode, the
    program counter and a copy of the registers for diagnosis.
    """

    def __init__(self, opcode: int, program_counter: int, registers: Sequence[int]):
        self.opcode: Final[int] = opcode
        self.program_counter: Final[int] = program_counter
        self.registers: Final[tuple[int, ...]] = tuple(int(v) for v in registers)
        super().__init__(
            f"unknown opcode: 0x{opcode:04X}; pc=0x{program_counter:04X}, "
            f"registers=[{', '.join(f'{v:02X}' for v in self.registers)}]"
        )


class ControlFlowError(Chip8Error):
    """Return from an empty stack, stack overflow or a bad jump/call target."""

    pass


class MemoryAccessError(Chip8Error):
    """An instruction touched memory outside the valid range."""

    pass


class InputValidationError(Chip8Error):
    """A key index or sprite digit outside its range."""

    pass


class ExitException(BaseException):
    """Exception to signal the application to exit."""

    pass
