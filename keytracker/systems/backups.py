"""Backup rotation - timestamped snapshots of state files with bounded retention.

Snapshot names embed a sortable timestamp, so listing and retention work on
names alone:

    keytracker_backup_<identity|generic>_<YYYYmmdd_HHMMSS, UTC>[_NN].json
"""

from __future__ import annotations
import logging
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "keytracker_backup"
DEFAULT_INTERVAL = 3600
DEFAULT_RETENTION = 24


def identity_tag(identity: Optional[int]) -> str:
    if identity is None or identity <= 0:
        return "generic"
    return str(identity)


def backup_prefix(identity: Optional[int]) -> str:
    return f"{BACKUP_PREFIX}_{identity_tag(identity)}_"


class BackupRotator:
    """Copies the durable state file into a backup directory on an interval."""

    def __init__(
        self,
        backup_dir: Path,
        interval: int = DEFAULT_INTERVAL,
        retention: int = DEFAULT_RETENTION,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.backup_dir = Path(backup_dir)
        self.interval = interval
        self.retention = max(1, retention)
        self._clock = clock
        self._monotonic = monotonic
        self._last_backup_at = monotonic()

    def backup_name(self, identity: Optional[int]) -> str:
        """A fresh, unused snapshot name for identity."""
        stamp = datetime.fromtimestamp(self._clock(), tz=timezone.utc).strftime("%Y%m%d_%H%M%S")
        base = f"{backup_prefix(identity)}{stamp}"
        name = f"{base}.json"
        counter = 1
        while (self.backup_dir / name).exists() and counter < 100:
            name = f"{base}_{counter:02d}.json"
            counter += 1
        return name

    def is_due(self) -> bool:
        return self._monotonic() - self._last_backup_at >= self.interval

    def maybe_backup(self, source: Path, identity: Optional[int]) -> Optional[Path]:
        """Snapshot source if the backup interval has elapsed."""
        if not self.is_due():
            return None
        return self.create_backup(source, identity)

    def create_backup(self, source: Path, identity: Optional[int]) -> Optional[Path]:
        """Snapshot source now. Failures are logged and return None."""
        source = Path(source)
        if not source.exists():
            logger.warning("No state file to back up at %s", source)
            return None

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            target = self.backup_dir / self.backup_name(identity)
            shutil.copyfile(source, target)
        except OSError as e:
            logger.error("Backup of %s failed: %s", source, e)
            return None

        self._last_backup_at = self._monotonic()
        logger.info("Created backup %s", target.name)
        self.enforce_retention(identity)
        return target

    def list_backups(self, identity: Optional[int] = None) -> list[str]:
        """Backup names, newest first. Limited to one identity when given."""
        if not self.backup_dir.is_dir():
            return []
        prefix = backup_prefix(identity) if identity is not None else f"{BACKUP_PREFIX}_"
        names = [
            p.name for p in self.backup_dir.iterdir()
            if p.is_file() and p.name.startswith(prefix) and p.suffix == ".json"
        ]
        return sorted(names, reverse=True)

    def enforce_retention(self, identity: Optional[int]) -> list[str]:
        """Delete the oldest snapshots beyond the retention count."""
        names = sorted(self.list_backups(identity if identity is not None else 0))
        excess = names[: max(0, len(names) - self.retention)]
        deleted = []
        for name in excess:
            try:
                (self.backup_dir / name).unlink()
                deleted.append(name)
            except OSError as e:
                logger.error("Could not delete old backup %s: %s", name, e)
        if deleted:
            logger.debug("Deleted %d old backups", len(deleted))
        return deleted

    def resolve(self, name: str) -> Optional[Path]:
        """Path of a backup by bare file name, None if unknown or outside the backup dir."""
        if not name or Path(name).name != name or not name.startswith(f"{BACKUP_PREFIX}_"):
            return None
        path = self.backup_dir / name
        return path if path.is_file() else None

    def restore(self, name: str, target: Path, identity: Optional[int]) -> bool:
        """Copy a backup over target, snapshotting the current target first."""
        path = self.resolve(name)
        if path is None:
            logger.error("Backup not found: %s", name)
            return False

        try:
            content = path.read_bytes()
        except OSError as e:
            logger.error("Could not read backup %s: %s", name, e)
            return False

        target = Path(target)
        if target.exists() and self.create_backup(target, identity) is None:
            logger.warning("Safety backup before restore failed - continuing with restore")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            logger.error("Restore of %s into %s failed: %s", name, target, e)
            return False

        logger.info("Restored %s into %s", name, target.name)
        return True
