from dataclasses import dataclass
from typing import Final, Iterator, Tuple

UNKNOWN_MNEMONIC: Final[str] = "???"


def nibbles(opcode: int) -> Tuple[int, int, int, int]:
    """Split a 16-bit word into its four nibbles, most significant first."""
    return (
        (opcode & 0xF000) >> 12,
        (opcode & 0x0F00) >> 8,
        (opcode & 0x00F0) >> 4,
        opcode & 0x000F,
    )


def nnn(a: int, b: int, c: int) -> int:
    return ((a & 0xF) << 8) | nn(b, c)


def nn(a: int, b: int) -> int:
    return ((a & 0xF) << 4) | (b & 0xF)


def bcd(val: int) -> Tuple[int, int, int]:
    return ((val // 100) % 10, (val // 10) % 10, val % 10)


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction word and its operand fields."""

    opcode: int
    op: int
    a: int
    b: int
    c: int

    @classmethod
    def decode(cls, opcode: int) -> "Instruction":
        op, a, b, c = nibbles(opcode)
        return cls(opcode & 0xFFFF, op, a, b, c)

    @property
    def x(self) -> int:
        return self.a

    @property
    def y(self) -> int:
        return self.b

    @property
    def n(self) -> int:
        return self.c

    @property
    def nnn(self) -> int:
        return nnn(self.a, self.b, self.c)

    @property
    def nn(self) -> int:
        return nn(self.b, self.c)

    @property
    def mnemonic(self) -> str:
        return mnemonic(self.opcode)


def mnemonic(opcode: int) -> str:
    """Render an instruction word as assembly text, or ``???`` if it does not decode."""
    i = Instruction.decode(opcode)
    x, y = i.x, i.y
    match (i.op, i.a, i.b, i.c):
        case (0x0, 0x0, 0xE, 0x0):
            return "CLS"
        case (0x0, 0x0, 0xE, 0xE):
            return "RET"
        case (0x0, _, _, _):
            return f"SYS 0x{i.nnn:03X}"
        case (0x1, _, _, _):
            return f"JP 0x{i.nnn:03X}"
        case (0x2, _, _, _):
            return f"CALL 0x{i.nnn:03X}"
        case (0x3, _, _, _):
            return f"SE V{x:X}, 0x{i.nn:02X}"
        case (0x4, _, _, _):
            return f"SNE V{x:X}, 0x{i.nn:02X}"
        case (0x5, _, _, 0x0):
            return f"SE V{x:X}, V{y:X}"
        case (0x6, _, _, _):
            return f"LD V{x:X}, 0x{i.nn:02X}"
        case (0x7, _, _, _):
            return f"ADD V{x:X}, 0x{i.nn:02X}"
        case (0x8, _, _, 0x0):
            return f"LD V{x:X}, V{y:X}"
        case (0x8, _, _, 0x1):
            return f"OR V{x:X}, V{y:X}"
        case (0x8, _, _, 0x2):
            return f"AND V{x:X}, V{y:X}"
        case (0x8, _, _, 0x3):
            return f"XOR V{x:X}, V{y:X}"
        case (0x8, _, _, 0x4):
            return f"ADD V{x:X}, V{y:X}"
        case (0x8, _, _, 0x5):
            return f"SUB V{x:X}, V{y:X}"
        case (0x8, _, _, 0x6):
            return f"SHR V{x:X}, V{y:X}"
        case (0x8, _, _, 0x7):
            return f"SUBN V{x:X}, V{y:X}"
        case (0x8, _, _, 0xE):
            return f"SHL V{x:X}, V{y:X}"
        case (0x9, _, _, 0x0):
            return f"SNE V{x:X}, V{y:X}"
        case (0xA, _, _, _):
            return f"LD I, 0x{i.nnn:03X}"
        case (0xB, _, _, _):
            return f"JP V0, 0x{i.nnn:03X}"
        case (0xC, _, _, _):
            return f"RND V{x:X}, 0x{i.nn:02X}"
        case (0xD, _, _, _):
            return f"DRW V{x:X}, V{y:X}, {i.n}"
        case (0xE, _, 0x9, 0xE):
            return f"SKP V{x:X}"
        case (0xE, _, 0xA, 0x1):
            return f"SKNP V{x:X}"
        case (0xF, _, 0x0, 0x7):
            return f"LD V{x:X}, DT"
        case (0xF, _, 0x0, 0xA):
            return f"LD V{x:X}, K"
        case (0xF, _, 0x1, 0x5):
            return f"LD DT, V{x:X}"
        case (0xF, _, 0x1, 0x8):
            return f"LD ST, V{x:X}"
        case (0xF, _, 0x1, 0xE):
            return f"ADD I, V{x:X}"
        case (0xF, _, 0x2, 0x9):
            return f"LD F, V{x:X}"
        case (0xF, _, 0x3, 0x3):
            return f"LD B, V{x:X}"
        case (0xF, _, 0x5, 0x5):
            return f"LD [I], V{x:X}"
        case (0xF, _, 0x6, 0x5):
            return f"LD V{x:X}, [I]"
        case _:
            return UNKNOWN_MNEMONIC


def disassemble(program: bytes, origin: int = 0x200) -> Iterator[Tuple[int, int, str]]:
    """
    Walk ``program`` two bytes at a time.

    Yields:
        (address, word, text) for every full word. A trailing odd byte is skipped.
    """
    for offset in range(0, len(program) - 1, 2):
        word = (int(program[offset]) << 8) | int(program[offset + 1])
        yield origin + offset, word, Instruction.decode(word).mnemonic
