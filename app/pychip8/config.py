from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, TypedDict

import tomllib

from pychip8.logger import log as _log
from pychip8.resources import config_file


class GeneralConfig(TypedDict):
    cycles_per_second: int
    scale: int


class AudioConfig(TypedDict):
    enable: bool
    frequency: float
    volume: float


class ColorsConfig(TypedDict):
    foreground: str
    background: str


class DebugConfig(TypedDict):
    trace: bool


class Config(TypedDict):
    general: GeneralConfig
    audio: AudioConfig
    colors: ColorsConfig
    keyboard: dict[str, str]
    debug: DebugConfig


# COSMAC VIP keypad laid over the left side of a QWERTY keyboard:
#   1 2 3 C      1 2 3 4
#   4 5 6 D  ->  Q W E R
#   7 8 9 E      A S D F
#   A 0 B F      Z X C V
DEFAULT_CONFIG: Config = {
    "general": {"cycles_per_second": 700, "scale": 10},
    "audio": {"enable": True, "frequency": 440.0, "volume": 0.25},
    "colors": {"foreground": "#E0E0E0", "background": "#101010"},
    "keyboard": {
        "1": "1",
        "2": "2",
        "3": "3",
        "C": "4",
        "4": "q",
        "5": "w",
        "6": "e",
        "D": "r",
        "7": "a",
        "8": "s",
        "9": "d",
        "E": "f",
        "A": "z",
        "0": "x",
        "B": "c",
        "F": "v",
    },
    "debug": {"trace": False},
}


def _deep_merge(
    target: MutableMapping[str, Any],
    overrides: Mapping[str, Any],
) -> MutableMapping[str, Any]:
    for key, value in overrides.items():
        if isinstance(target.get(key), dict) and isinstance(value, dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def _validate_config(cfg: Config) -> None:
    for section in DEFAULT_CONFIG:
        if not isinstance(cfg.get(section), dict):
            raise ValueError(f"[{section}] must be a table")

    cps =cfg["general"]["cycles_per_second"]
    if not isinstance(cps, int) or isinstance(cps, bool) or cps <= 0:
        raise ValueError("general.cycles_per_second must be a positive integer")

    scale = cfg["general"]["scale"]
    if not isinstance(scale, int) or isinstance(scale, bool) or scale <= 0:
        raise ValueError("general.scale must be a positive integer")

    if not isinstance(cfg["audio"]["enable"], bool):
        raise ValueError("audio.enable must be a boolean")

    if not isinstance(cfg["audio"]["frequency"], (int, float)) or cfg["audio"]["frequency"] <= 0:
        raise ValueError("audio.frequency must be a positive number")

    volume = cfg["audio"]["volume"]
    if not isinstance(volume, (int, float)) or not 0.0 <= volume <= 1.0:
        raise ValueError("audio.volume must be between 0.0 and 1.0")

    for name in ("foreground", "background"):
        color = cfg["colors"][name]
        if not isinstance(color, str) or len(color) != 7 or not color.startswith("#"):
            raise ValueError(f"colors.{name} must be a '#RRGGBB' string")
        int(color[1:], 16)

    for key, binding in cfg["keyboard"].items():
        if len(key) != 1 or key.upper() not in "0123456789ABCDEF":
            raise ValueError(f"keyboard.{key} is not a CHIP-8 key (0-F)")
        if not isinstance(binding, str) or not binding:
            raise ValueError(f"keyboard.{key} must be a key name")

    if not isinstance(cfg["debug"]["trace"], bool):
        raise ValueError("debug.trace must be a boolean")


def load_config(path: Optional[Path] = None) -> Config:
    """Read the TOML config at ``path`` merged over the defaults.

    A missing file gives the defaults. A broken file is logged and also
    gives the defaults.
    """
    path = config_file if path is None else path
    if not path.exists():
        return deepcopy(DEFAULT_CONFIG)

    config = deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)

        _deep_merge(config, data)
        _validate_config(config)

    except (OSError, tomllib.TOMLDecodeError, ValueError, TypeError) as e:
        _log.error(f"Failed to load config: {e}", exc_info=(type(e), e, e.__traceback__))
        return deepcopy(DEFAULT_CONFIG)

    return config
