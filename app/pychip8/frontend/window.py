from typing import Tuple

import numpy as np
import pygame
from numpy.typing import NDArray

from pychip8.state import DISPLAY_HEIGHT, DISPLAY_WIDTH


def parse_color(value: str) -> Tuple[int, int, int]:
    """'#RRGGBB' to an RGB tuple."""
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


class Window:
    """Scales the 64x32 monochrome display up into a pygame window."""

    def __init__(self, scale: int, foreground: str, background: str, title: str = "PyChip8") -> None:
        self.scale = scale
        self.foreground = np.array(parse_color(foreground), dtype=np.uint8)
        self.background = np.array(parse_color(background), dtype=np.uint8)
        self.screen = pygame.display.set_mode((DISPLAY_WIDTH * scale, DISPLAY_HEIGHT * scale))
        self._surface = pygame.Surface((DISPLAY_WIDTH, DISPLAY_HEIGHT))
        pygame.display.set_caption(title)

    def to_rgb(self, frame: NDArray[np.bool_]) -> NDArray[np.uint8]:
        # surfarray is indexed [x][y], the display is [row][column]
        return np.where(frame.T[..., None], self.foreground, self.background).astype(np.uint8)

    def present(self, frame: NDArray[np.bool_]) -> None:
        pygame.surfarray.blit_array(self._surface, self.to_rgb(frame))
        pygame.transform.scale(self._surface, self.screen.get_size(), self.screen)
        pygame.display.flip()
