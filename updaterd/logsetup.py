"""
Logging and crash output redirection.

A service launched by init has nowhere useful to print to, so the `run`
command sends log records to a rotating file next to the executable and
appends fatal errors (uncaught exceptions and faulthandler dumps) to a
dated crash file.
"""

import faulthandler
import logging
import sys
import traceback
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_crash_file = None


def configure_logging(log_path: Path | None = None, level: str | None = None):
    """Configure the root logger: console always, rotating file when a path is given."""
    log_formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_formatter)
    handlers = [console_handler]

    if log_path is not None:
        # Rotating file handler (auto-compaction)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(log_formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=(level or config.log_level).upper(),
        handlers=handlers,
        force=True,
    )


def crash_file_path(base_dir: Path, name: str, when: datetime | None = None) -> Path:
    """Dated crash file, e.g. updaterd_crash_20240131.log."""
    when = when or datetime.now()
    return Path(base_dir) / f"{name}_crash_{when:%Y%m%d}.log"


def redirect_crashes(path: Path):
    """Append fatal errors of this process to `path`."""
    global _crash_file

    if _crash_file is not None:
        _crash_file.close()
    _crash_file = open(path, "a")
    faulthandler.enable(file=_crash_file)

    def excepthook(exc_type, exc, tb):
        _crash_file.write(f"[{datetime.now().isoformat()}] uncaught exception\n")
        _crash_file.write("".join(traceback.format_exception(exc_type, exc, tb)))
        _crash_file.flush()
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = excepthook
