from pathlib import Path
from typing import Final, Union

import numpy as np
from numpy.typing import NDArray
from returns.result import Failure, Result, Success

from pychip8.logger import log
from pychip8.state import MAX_PROGRAM_SIZE


class Rom:
    """
    A CHIP-8 program image as read from disk.

    CHIP-8 ROMs are raw bytecode: no header, no checksum. The only check is
    that the image fits between 0x200 and the end of memory.
    """

    MAX_SIZE: Final[int] = MAX_PROGRAM_SIZE

    def __init__(self) -> None:
        self.file: str = ""
        self.data: NDArray[np.uint8] = np.zeros(0, dtype=np.uint8)

    def __repr__(self) -> str:
        return f"<Rom file={self.file!r} size={len(self.data)} bytes>"

    def __len__(self) -> int:
        return len(self.data)

    def to_bytes(self) -> bytes:
        return self.data.tobytes()

    @property
    def name(self) -> str:
        return Path(self.file).stem if self.file else "untitled"

    @classmethod
    def from_bytes(cls, data: bytes) -> Result["Rom", str]:
        """
        Validate raw program bytes.

        Returns:
            Result containing either a Rom instance or an error string.
        """
        if not isinstance(data, (bytes, bytearray)):
            return Failure(f"Expected bytes or bytearray, got {type(data).__name__}")

        if len(data) == 0:
            return Failure("ROM is empty")

        if len(data) > cls.MAX_SIZE:
            return Failure(f"ROM too long: {len(data)} bytes, maximum {cls.MAX_SIZE}")

        if len(data) % 2:
            log.warning("ROM has an odd length, last byte is never fetched as an instruction")

        obj = cls()
        obj.data = np.frombuffer(data, dtype=np.uint8).copy()
        return Success(obj)

    @classmethod
    def from_file(cls, filepath: Union[Path, str]) -> Result["Rom", str]:
        try:
            with open(filepath, "rb") as f:
                data = f.read()
        except OSError as e:
            return Failure(f"Failed to read file {filepath}: {e}")

        def attach_file(rom: "Rom") -> "Rom":
            rom.file = str(filepath)
            return rom

        return cls.from_bytes(data).map(attach_file)
