from typing import Final

import numpy as np
from numpy.typing import NDArray
from pygame import mixer, sndarray

from pychip8.logger import log as _log

# Number of whole square wave periods in the looped buffer.
PERIODS: Final[int] = 32


def square_wave(frequency: float, sample_rate: int, volume: float) -> NDArray[np.int16]:
    """A whole number of periods of a 50% duty square wave, signed 16-bit."""
    period = max(2, int(round(sample_rate / frequency)))
    t = np.arange(period * PERIODS)
    amplitude = int(volume * np.iinfo(np.int16).max)
    return np.where((t % period) < period // 2, amplitude, -amplitude).astype(np.int16)


class SquareTone:
    """Plays the CHIP-8 buzzer through the pygame mixer while the sound timer runs."""

    def __init__(self, frequency: float = 440.0, volume: float = 0.25, sample_rate: int = 44100) -> None:
        if not mixer.get_init():
            mixer.init(frequency=sample_rate, size=-16, channels=1, buffer=512)

        actual_rate, _, channels = mixer.get_init()
        wave = square_wave(frequency, actual_rate, volume)
        if channels > 1:
            wave = np.repeat(wave[:, None], channels, axis=1)
        self._sound = sndarray.make_sound(np.ascontiguousarray(wave))
        self.playing: bool = False
        _log.debug(f"Tone ready: {frequency} Hz at {actual_rate} Hz, {channels} channel(s)")

    def start_tone(self) -> None:
        if not self.playing:
            self._sound.play(loops=-1)
            self.playing = True

    def stop_tone(self) -> None:
        if self.playing:
            self._sound.stop()
            self.playing = False

    def close(self) -> None:
        self.stop_tone()
        if mixer.get_init():
            mixer.quit()
