#!/usr/bin/env python3
import argparse
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
import pygame
from returns.result import Failure

from pychip8.config import Config, load_config
from pychip8.decoder import disassemble
from pychip8.emulator import TIMER_HZ, Emulator
from pychip8.exception import Chip8Error, ExitException
from pychip8.frontend import Keypad, SquareTone, Window
from pychip8.logger import console, setup_logging
from pychip8.logger import log as _log
from pychip8.resources import log_root
from pychip8.rom import Rom


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pychip8", description="CHIP-8 virtual machine")
    parser.add_argument("rom", type=Path, help="path to a CHIP-8 ROM")
    parser.add_argument("--config", type=Path, default=None, help="TOML config file")
    parser.add_argument("--debug", action="store_true", help="debug logging")
    parser.add_argument("--trace", action="store_true", help="log every executed instruction")
    parser.add_argument("--cycles-per-second", type=int, default=None)
    parser.add_argument("--scale", type=int, default=None)
    parser.add_argument("--mute", action="store_true", help="disable the tone")
    parser.add_argument("--no-log-file", action="store_true", help="log to the console only")
    parser.add_argument("--disassemble", action="store_true", help="print the ROM as assembly and exit")
    return parser.parse_args(argv)


def _apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    if args.cycles_per_second is not None:
        config["general"]["cycles_per_second"] = max(1, args.cycles_per_second)
    if args.scale is not None:
        config["general"]["scale"] = max(1, args.scale)
    if args.mute:
        config["audio"]["enable"] = False
    if args.trace:
        config["debug"]["trace"] = True
    return config


def _print_disassembly(rom: Rom) -> None:
    for address, word, text in disassemble(rom.data):
        console.print(f"[cyan]{address:04X}[/]  {word:04X}  {text}")


def run(rom: Rom, config: Config) -> int:
    pygame.init()
    tone: Optional[SquareTone] = None
    try:
        if config["audio"]["enable"]:
            try:
                tone = SquareTone(config["audio"]["frequency"], config["audio"]["volume"])
            except pygame.error as e:
                _log.warning(f"Audio disabled: {e}")

        window = Window(
            config["general"]["scale"],
            config["colors"]["foreground"],
            config["colors"]["background"],
            title=f"PyChip8 - {rom.name}",
        )
        keypad = Keypad(config["keyboard"])
        emulator = Emulator(tone=tone)
        emulator.debug.Logging = config["debug"]["trace"]

        @emulator.on("tracelogger")
        def _trace(line: str) -> None:
            _log.debug(line)

        emulator.load(rom.to_bytes()).unwrap()

        cycles_per_frame = max(1, config["general"]["cycles_per_second"] // TIMER_HZ)
        clock = pygame.time.Clock()

        while True:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    raise ExitException()
                if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    raise ExitException()
                if event.type == pygame.KEYDOWN and event.key == pygame.K_F5:
                    emulator.reset()
                    emulator.load(rom.to_bytes()).unwrap()
                    continue
                keypad.handle(event, emulator)

            delta = clock.tick(TIMER_HZ) / 1000.0
            for _ in range(cycles_per_frame):
                emulator.execute_cycle(delta / cycles_per_frame)
            window.present(emulator.frame)

    except ExitException:
        _log.info("Exiting")
        return 0
    except Chip8Error as e:
        _log.error(f"Emulation stopped: {e}", exc_info=(type(e), e, e.__traceback__))
        return 1
    finally:
        if tone is not None:
            tone.close()
        pygame.quit()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(debug=args.debug or args.trace, log_dir=None if args.no_log_file else log_root)
    config = _apply_overrides(load_config(args.config), args)

    result = Rom.from_file(args.rom)
    if isinstance(result, Failure):
        _log.error(result.failure())
        return 1
    rom = result.unwrap()
    _log.info(f"Loaded {rom!r}")

    if args.disassemble:
        _print_disassembly(rom)
        return 0

    return run(rom, config)


if __name__ == "__main__":
    sys.exit(main())
