import logging
from datetime import datetime
from pathlib import Path
from typing import Final, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from pychip8.resources import log_root

console: Final[Console] = Console()

time_format: Final[str] = "%Y-%m-%d %H:%M:%S"
log: Final[logging.Logger] = logging.getLogger("PyChip8")


class Chip8FileHandler(logging.Handler):
    """Appends records to a log file.

    Records that fail to write are held back and retried, in order, the
    next time a record is emitted.
    """

    def __init__(self, file_name: Union[str, Path]):
        super().__init__()
        self._file_name = Path(file_name)
        self._log_hold: list[tuple[logging.LogRecord, Exception]] = []

    def _write_log_entry(self, log_entry: str) -> None:
        with open(self._file_name, "a", encoding="utf-8") as f:
            f.write(log_entry + "\n")

    def emit(self, record: logging.LogRecord) -> None:
        log_entry = self.format(record)

        self.acquire()
        try:
            if self._log_hold:
                still_failed = []
                for old_record, _ in self._log_hold:
                    try:
                        self._write_log_entry(self.format(old_record))
                    except OSError as e:
                        still_failed.append((old_record, e))
                self._log_hold = still_failed

            try:
                self._write_log_entry(log_entry)
            except OSError as e:
                self._log_hold.append((record, e))
        finally:
            self.release()

    @property
    def pending(self) -> int:
        return len(self._log_hold)


def get_time() -> str:
    return datetime.now().strftime("%Y-%m-%d_%H-%M-%S")


def setup_logging(debug: bool = False, log_dir: Optional[Path] = log_root) -> None:
    """Install the console handler and, when ``log_dir`` is given, a file handler."""
    handlers: list[logging.Handler] = [
        RichHandler(
            rich_tracebacks=True,
            show_path=True,
            enable_link_path=True,
            tracebacks_show_locals=debug,
            show_level=False,
            console=console,
        )
    ]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(Chip8FileHandler(log_dir / f"pychip8_{get_time()}.log"))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt=time_format,
        handlers=handlers,
        force=True,
    )
