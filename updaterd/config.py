"""
Configuration for the updater service.

Loads settings from environment variables with sensible defaults. The
durable daemon list (update.json), the pinned CA bundle and the log files
all live next to the updaterd executable unless UPDATER_HOME says otherwise.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "updaterd"
APP_DESCRIPTION = "auto keep&update daemon service"


def executable_path() -> Path:
    """Absolute path of the running program."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    return Path(sys.argv[0]).resolve()


def executable_folder() -> Path:
    """Directory containing the running program."""
    return executable_path().parent


@dataclass
class Config:
    """Updater configuration."""

    # Paths
    base_dir: Path = None
    config_file: str = os.environ.get("UPDATER_CONFIG_FILE", "update.json")
    config_path: Path = None
    ca_file: Path = None
    log_path: Path = None

    # Logging
    log_level: str = os.environ.get("UPDATER_LOG_LEVEL", "INFO")
    log_max_bytes: int = int(os.environ.get("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
    log_backup_count: int = int(os.environ.get("LOG_BACKUP_COUNT", "5"))

    # Reconcile loop
    interval: float = float(os.environ.get("UPDATER_INTERVAL", "60"))
    stop_grace: float = float(os.environ.get("UPDATER_STOP_GRACE", "5"))

    # HTTP
    connect_timeout: float = float(os.environ.get("UPDATER_CONNECT_TIMEOUT", "20"))
    read_timeout: float = float(os.environ.get("UPDATER_READ_TIMEOUT", "20"))
    request_timeout: float = float(os.environ.get("UPDATER_REQUEST_TIMEOUT", "120"))

    def __post_init__(self):
        """Initialize derived paths."""
        if self.base_dir is None:
            home = os.environ.get("UPDATER_HOME")
            self.base_dir = Path(home) if home else executable_folder()
        self.base_dir = Path(self.base_dir)
        self.config_path = self.base_dir / self.config_file
        if self.ca_file is None:
            ca_file = os.environ.get("UPDATER_CA_FILE")
            self.ca_file = Path(ca_file) if ca_file else self.base_dir / "ca.pem"
        self.log_path = self.base_dir / f"{APP_NAME}.log"


config = Config()
