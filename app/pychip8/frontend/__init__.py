from pychip8.frontend.audio import SquareTone
from pychip8.frontend.keypad import Keypad
from pychip8.frontend.window import Window

__all__ = ["Keypad", "SquareTone", "Window"]
