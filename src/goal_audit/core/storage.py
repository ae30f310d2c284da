"""JSON storage for the goal database with atomic whole-file writes."""

import json
import logging
import os
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from goal_audit.core.database import Database
from goal_audit.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_NBLCK if exclusive else msvcrt.LK_NBRLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way.

    Args:
        file_obj: File object to unlock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


class StorageManager:
    """Saves and loads the whole database as one JSON document."""

    def __init__(self, data_file: Optional[Path] = None):
        """Initialize storage manager.

        Args:
            data_file: Database file. Defaults to ~/.goal-audit/goals.json
        """
        if data_file is None:
            data_file = Path.home() / ".goal-audit" / "goals.json"

        self.data_file = Path(data_file).expanduser()
        self.backup_dir = self.data_file.parent / "backups"

    def exists(self) -> bool:
        """Check whether a database file has been written."""
        return self.data_file.exists()

    def load(self) -> Database:
        """Load the database, or return a fresh one if no file exists yet.

        Returns:
            Loaded database

        Raises:
            PersistenceError: If the file cannot be read or decoded
        """
        if not self.data_file.exists():
            logger.info(f"No database at {self.data_file}, starting fresh")
            return Database()

        try:
            with open(self.data_file, encoding="utf-8") as f:
                _lock_file(f, exclusive=False)
                try:
                    data = json.load(f)
                finally:
                    _unlock_file(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.data_file}: {e}")
            raise PersistenceError(f"Failed to read {self.data_file}: {e}") from e

        try:
            database = Database.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed database in {self.data_file}: {e}")
            raise PersistenceError(f"Malformed database in {self.data_file}: {e}") from e

        logger.debug(f"Loaded {len(database)} entries from {self.data_file}")
        return database

    def save(self, database: Database) -> None:
        """Write the whole database atomically.

        Holds the database lock for the duration so that a save never
        interleaves with a mutation or another save.

        Args:
            database: Database to write

        Raises:
            PersistenceError: If the file cannot be written
        """
        with database.lock:
            payload = {"version": FORMAT_VERSION, **database.to_dict()}
            self._write_json_atomic(self.data_file, payload)
        logger.debug(f"Saved {len(database)} entries to {self.data_file}")

    def _write_json_atomic(self, file_path: Path, payload: dict[str, Any]) -> None:
        """Write JSON atomically using temporary file and rename.

        Args:
            file_path: Target file path
            payload: Document to write
        """
        temp_file = file_path.with_suffix(".tmp")

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                _lock_file(f, exclusive=True)

                json.dump(payload, f, indent=2)

                f.flush()
                os.fsync(f.fileno())

                _unlock_file(f)

            temp_file.replace(file_path)

        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            logger.error(f"Failed to write {file_path}: {e}")
            raise PersistenceError(f"Failed to write {file_path}: {e}") from e

    def backup(self, label: Optional[str] = None) -> Path:
        """Copy the database file into the backup directory.

        Args:
            label: Optional label for backup. Defaults to timestamp

        Returns:
            Path to the backup file

        Raises:
            PersistenceError: If there is nothing to back up or the copy fails
        """
        if label is None:
            label = datetime.now().strftime("%Y%m%d_%H%M%S")

        if not self.data_file.exists():
            raise PersistenceError(f"Nothing to back up: {self.data_file} does not exist")

        backup_path = self.backup_dir / f"{self.data_file.stem}_{label}{self.data_file.suffix}"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.data_file, backup_path)
        except OSError as e:
            raise PersistenceError(f"Failed to back up {self.data_file}: {e}") from e

        logger.info(f"Backed up database to {backup_path}")
        return backup_path
