import logging
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DailyFileHandler(logging.handlers.BaseRotatingHandler):
    """Write to <log_dir>/YYYY-MM-DD.log and switch files when the UTC date changes.

    The date is checked on every record, not fixed at startup.
    """

    def __init__(
        self,
        log_dir: str | Path,
        clock: Optional[Callable[[], datetime]] = None,
        encoding: str = "utf-8",
    ) -> None:
        self.log_dir = Path(log_dir)
        self._clock = clock or _utc_now
        self.day = self._day()
        super().__init__(str(self.log_dir / f"{self.day}.log"), mode="a", encoding=encoding)

    def _day(self) -> str:
        return self._clock().strftime("%Y-%m-%d")

    @property
    def path(self) -> Path:
        return Path(self.baseFilename)

    def shouldRollover(self, record: logging.LogRecord) -> bool:
        return self._day() != self.day

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None
        self.day = self._day()
        self.baseFilename = os.path.abspath(self.log_dir / f"{self.day}.log")
        self.stream = self._open()


def setup_logging(
    level: str = "INFO",
    component: str = "sync",
    subdir: str = "default",
    base_dir: str | Path = "logs",
    clock: Optional[Callable[[], datetime]] = None,
) -> Path:
    """
    Configure logging:
      - Console (stderr)
      - Daily log file in logs/<component>/<subdir>/YYYY-MM-DD.log (UTC date),
        moving to a new file at UTC midnight

    Returns:
      Path to the "current" daily log file.
    """

    log_dir = Path(base_dir) / component / subdir
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(LOG_FORMAT)
    fh = DailyFileHandler(log_dir, clock=clock)
    fh.setFormatter(fmt)
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(fh)
    root.addHandler(sh)
    return fh.path
