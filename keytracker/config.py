"""Tracker configuration from the environment (and an optional .env file)."""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".keytracker"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


@dataclass
class TrackerConfig:
    """Settings for one tracker process."""
    data_dir: Path = DEFAULT_DATA_DIR
    backup_interval: int = 3600
    backup_retention: int = 24
    status_cache_ttl: float = 0.15
    log_level: str = "INFO"
    identity: Optional[int] = None

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / "backups"

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        """Read KEYTRACKER_* variables, keeping defaults for anything unset."""
        data_dir = os.getenv("KEYTRACKER_DATA_DIR")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            backup_interval=_env_int("KEYTRACKER_BACKUP_INTERVAL", 3600),
            backup_retention=_env_int("KEYTRACKER_BACKUP_RETENTION", 24),
            status_cache_ttl=_env_float("KEYTRACKER_STATUS_CACHE_TTL", 0.15),
            log_level=os.getenv("KEYTRACKER_LOG_LEVEL", "INFO").upper(),
            identity=_env_int("KEYTRACKER_IDENTITY", None),
        )


def configure_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Route package logs through rich."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    package_logger = logging.getLogger("keytracker")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False


def set_log_level(level: str | int) -> None:
    logging.getLogger("keytracker").setLevel(level)
