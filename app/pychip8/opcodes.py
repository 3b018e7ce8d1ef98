from typing import Optional, Protocol, Type

import numpy as np

from pychip8.decoder import bcd, nibbles, nn, nnn
from pychip8.exception import (
    Chip8Error,
    ControlFlowError,
    DecodeError,
    InputValidationError,
    MemoryAccessError,
)
from pychip8.logger import log as _logger
from pychip8.state import PROGRAM_START, SystemState


class IOpcodeRunner(Protocol):
    def run(self, system: SystemState, opcode: int) -> None: ...


class OpcodeRunner:
    """Decodes an instruction word and executes it against a SystemState."""

    def __init__(self, rng: Optional[np.random.Generator] = None) -> None:
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()

    def run(self, system: SystemState, opcode: int) -> None:
        match nibbles(opcode):
            case (0x0, 0x0, 0xE, 0x0):
                op_cls(system)
            case (0x0, 0x0, 0xE, 0xE):
                op_ret(system)
            case (0x0, _, _, _):
                noop()  # machine call, disabled
            case (0x1, a, b, c):
                op_jp(system, nnn(a, b, c))
            case (0x2, a, b, c):
                op_call(system, nnn(a, b, c))
            case (0x3, a, b, c):
                op_se_reg_byte(system, a, nn(b, c))
            case (0x4, a, b, c):
                op_sne_reg_byte(system, a, nn(b, c))
            case (0x5, a, b, 0x0):
                op_se_reg_reg(system, a, b)
            case (0x6, a, b, c):
                op_ld_reg_byte(system, a, nn(b, c))
            case (0x7, a, b, c):
                op_add_reg_byte(system, a, nn(b, c))
            case (0x8, a, b, 0x0):
                op_ld_reg_reg(system, a, b)
            case (0x8, a, b, 0x1):
                op_or(system, a, b)
            case (0x8, a, b, 0x2):
                op_and(system, a, b)
            case (0x8, a, b, 0x3):
                op_xor(system, a, b)
            case (0x8, a, b, 0x4):
                op_add_reg_reg(system, a, b)
            case (0x8, a, b, 0x5):
                op_sub_reg_reg(system, a, b)
            case (0x8, a, b, 0x6):
                op_shr(system, a, b)
            case (0x8, a, b, 0x7):
                op_subn(system, a, b)
            case (0x8, a, b, 0xE):
                op_shl(system, a, b)
            case (0x9, a, b, 0x0):
                op_sne_reg_reg(system, a, b)
            case (0xA, a, b, c):
                op_ld_i(system, nnn(a, b, c))
            case (0xB, a, b, c):
                op_jp_v0_addr(system, nnn(a, b, c))
            case (0xC, a, b, c):
                op_rnd_reg_byte(system, a, nn(b, c), self.rng)
            case (0xD, a, b, c):
                op_drw(system, a, b, c)
            case (0xE, a, 0x9, 0xE):
                op_skp(system, a)
            case (0xE, a, 0xA, 0x1):
                op_sknp(system, a)
            case (0xF, a, 0x0, 0x7):
                op_ld_reg_dt(system, a)
            case (0xF, a, 0x0, 0xA):
                op_ld_k(system, a)
            case (0xF, a, 0x1, 0x5):
                op_ld_dt_reg(system, a)
            case (0xF, a, 0x1, 0x8):
                op_ld_st(system, a)
            case (0xF, a, 0x1, 0xE):
                op_add_i(system, a)
            case (0xF, a, 0x2, 0x9):
                op_ld_f(system, a)
            case (0xF, a, 0x3, 0x3):
                op_ld_b(system, a)
            case (0xF, a, 0x5, 0x5):
                op_store_regs(system, a)
            case (0xF, a, 0x6, 0x5):
                op_load_regs(system, a)
            case _:
                _logger.debug(f"Unknown OpCode: ${opcode:04X} at PC=${system.program_counter:04X}")
                raise DecodeError(opcode, system.program_counter, system.register_snapshot())


def sanitize_addr(
    system: SystemState,
    addr: int,
    length: int,
    error: Type[Chip8Error] = MemoryAccessError,
) -> int:
    """Return ``addr`` if [addr, addr + length] lies inside program memory, else raise ``error``."""
    if addr < PROGRAM_START or addr + length >= len(system.memory):
        raise error(f"invalid address: 0x{addr:04X} (length {length})")
    return addr


def _skip(system: SystemState) -> None:
    system.program_counter = (system.program_counter + 2) & 0xFFFF


def noop() -> None:
    pass


def op_cls(system: SystemState) -> None:
    system.display[:, :] = False


def op_ret(system: SystemState) -> None:
    if system.stack_pointer == 0:
        raise ControlFlowError("can't return from empty call stack")
    system.stack_pointer -= 1
    system.program_counter = int(system.stack[system.stack_pointer])


def op_jp(system: SystemState, address: int) -> None:
    system.program_counter = address


def op_call(system: SystemState, address: int) -> None:
    if system.stack_pointer + 1 > len(system.stack):
        raise ControlFlowError("stack overflow")
    address = sanitize_addr(system, address, 1, ControlFlowError)
    system.stack[system.stack_pointer] = system.program_counter
    system.stack_pointer += 1
    system.program_counter = address


def op_se_reg_byte(system: SystemState, x: int, byte: int) -> None:
    if system.registers[x] == byte:
        _skip(system)


def op_sne_reg_byte(system: SystemState, x: int, byte: int) -> None:
    if system.registers[x] != byte:
        _skip(system)


def op_se_reg_reg(system: SystemState, x: int, y: int) -> None:
    if system.registers[x] == system.registers[y]:
        _skip(system)


def op_sne_reg_reg(system: SystemState, x: int, y: int) -> None:
    if system.registers[x] != system.registers[y]:
        _skip(system)


def op_ld_reg_byte(system: SystemState, x: int, byte: int) -> None:
    system.registers[x] = byte


def op_add_reg_byte(system: SystemState, x: int, byte: int) -> None:
    # Silently overflow, unlike 8xy4 which sets VF.
    system.registers[x] = (int(system.registers[x]) + byte) & 0xFF


def op_ld_reg_reg(system: SystemState, x: int, y: int) -> None:
    system.registers[x] = system.registers[y]


def op_or(system: SystemState, x: int, y: int) -> None:
    system.registers[x] |= system.registers[y]


def op_and(system: SystemState, x: int, y: int) -> None:
    system.registers[x] &= system.registers[y]


def op_xor(system: SystemState, x: int, y: int) -> None:
    system.registers[x] ^= system.registers[y]


def op_add_reg_reg(system: SystemState, x: int, y: int) -> None:
    total = int(system.registers[x]) + int(system.registers[y])
    system.registers[x] = total & 0xFF
    system.registers[0xF] = 0 if total > 0xFF else 1  # VF = NOT overflow


def op_sub_reg_reg(system: SystemState, x: int, y: int) -> None:
    vx, vy = int(system.registers[x]), int(system.registers[y])
    system.registers[x] = (vx - vy) & 0xFF
    system.registers[0xF] = 0 if vy > vx else 1  # VF = NOT borrow


def op_shr(system: SystemState, x: int, y: int) -> None:
    vy = int(system.registers[y])
    system.registers[x] = vy >> 1
    system.registers[0xF] = vy & 0x01


def op_subn(system: SystemState, x: int, y: int) -> None:
    vx, vy = int(system.registers[x]), int(system.registers[y])
    system.registers[x] = (vy - vx) & 0xFF
    system.registers[0xF] = 1 if vx > vy else 0


def op_shl(system: SystemState, x: int, y: int) -> None:
    vy = int(system.registers[y])
    system.registers[x] = (vy << 1) & 0xFF
    system.registers[0xF] = (vy >> 7) & 0x01


def op_ld_i(system: SystemState, addr: int) -> None:
    system.address_register = addr & 0xFFF


def op_jp_v0_addr(system: SystemState, addr: int) -> None:
    target = addr + int(system.registers[0])
    if target > 0xFFFF:
        raise ControlFlowError("invalid address")
    system.program_counter = sanitize_addr(system, target, 2, ControlFlowError)


def op_rnd_reg_byte(system: SystemState, x: int, byte: int, rng: np.random.Generator) -> None:
    system.registers[x] = int(rng.integers(0, 0x100)) & byte


def op_drw(system: SystemState, x: int, y: int, n: int) -> None:
    vx = int(system.registers[x])
    vy = int(system.registers[y])

    i = system.address_register
    if i + n > len(system.memory):
        raise MemoryAccessError("invalid address")

    height, width = system.display.shape
    collide = False
    for idx, byte in enumerate(system.memory[i : i + n]):
        iy = (vy + idx) % height
        for bit in range(8):
            ix = (vx + bit) % width
            on = bool(byte & (0x80 >> bit))
            collide = collide or (on and bool(system.display[iy, ix]))
            system.display[iy, ix] ^= on
    system.registers[0xF] = 1 if collide else 0


def _key_value(system: SystemState, x: int) -> int:
    vx = int(system.registers[x])
    if vx > 0xF:
        raise InputValidationError(f"invalid key value: {vx}")
    return vx


def op_skp(system: SystemState, x: int) -> None:
    if system.keys[_key_value(system, x)]:
        _skip(system)


def op_sknp(system: SystemState, x: int) -> None:
    if not system.keys[_key_value(system, x)]:
        _skip(system)


def op_ld_reg_dt(system: SystemState, x: int) -> None:
    system.registers[x] = system.delay_timer


def op_ld_k(system: SystemState, x: int) -> None:
    if system.pending_keypress is not None:
        key, system.pending_keypress = system.pending_keypress, None
        system.waiting_for_key = False
        system.registers[x] = key
    else:
        # Rewind so this instruction runs again once a key has been captured.
        system.waiting_for_key = True
        system.program_counter = (system.program_counter - 2) & 0xFFFF


def op_ld_dt_reg(system: SystemState, x: int) -> None:
    system.delay_timer = int(system.registers[x])


def op_ld_st(system: SystemState, x: int) -> None:
    system.sound_timer = int(system.registers[x])


def op_add_i(system: SystemState, x: int) -> None:
    system.address_register = (system.address_register + int(system.registers[x])) & 0xFFFF


def op_ld_f(system: SystemState, x: int) -> None:
    system.address_register = system.get_sprite_location(int(system.registers[x]))


def op_ld_b(system: SystemState, x: int) -> None:
    i = sanitize_addr(system, system.address_register, 3)
    system.memory[i : i + 3] = bcd(int(system.registers[x]))


def op_store_regs(system: SystemState, x: int) -> None:
    i = sanitize_addr(system, system.address_register, x + 1)
    system.memory[i : i + x + 1] = system.registers[: x + 1]
    system.address_register = i + x + 1


def op_load_regs(system: SystemState, x: int) -> None:
    i = sanitize_addr(system, system.address_register, x)
    system.registers[: x + 1] = system.memory[i : i + x + 1]
    system.address_register = i + x + 1
