from typing import Dict, Mapping

import pygame

from pychip8.emulator import Emulator
from pychip8.logger import log as _log


class Keypad:
    """Translates pygame key events into CHIP-8 key presses."""

    def __init__(self, bindings: Mapping[str, str]) -> None:
        self.mapping: Dict[int, int] = {}
        for chip8_key, key_name in bindings.items():
            try:
                code = pygame.key.key_code(key_name)
            except ValueError:
                _log.warning(f"Unknown key name {key_name!r} for CHIP-8 key {chip8_key}, ignored")
                continue
            self.mapping[code] = int(chip8_key, 16)

    def handle(self, event: pygame.event.Event, emulator: Emulator) -> bool:
        """Forward a KEYDOWN/KEYUP to ``emulator``. Returns True if the key is bound."""
        if event.type not in (pygame.KEYDOWN, pygame.KEYUP):
            return False
        key = self.mapping.get(event.key)
        if key is None:
            return False
        if event.type == pygame.KEYDOWN:
            emulator.key_down(key)
        else:
            emulator.key_up(key)
        return True
