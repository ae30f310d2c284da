"""Tests for storage manager."""

import json
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest  # type: ignore[import-not-found]

from goal_audit.core.database import Database
from goal_audit.core.exceptions import PersistenceError
from goal_audit.core.models import ActiveTimer, Status
from goal_audit.core.storage import FORMAT_VERSION, StorageManager


@pytest.fixture
def populated() -> Database:
    """Database with entries, a deleted id and a running timer."""
    database = Database()
    now = datetime(2025, 11, 16, 9, 0, 0)
    report = database.create_entry("Work", "Write report", 2, now=now)
    report.add_time(90)
    report.set_status(Status.ON_THE_MOVE)
    report.touch(datetime(2025, 11, 16, 9, 1, 30))
    done = database.create_entry("Home", "Taxes", "1.5", now=now)
    done.mark_complete()
    gone = database.create_entry("Home", "Gone", now=now)
    database.delete(gone.id)
    database.active_timer = ActiveTimer(started_at=datetime(2025, 11, 16, 9, 5), entry_id=report.id)
    return database


class TestStorageManager:
    """Test StorageManager."""

    def test_load_missing_file_returns_fresh_database(self, storage: StorageManager) -> None:
        """Test that a missing file starts an empty database."""
        assert not storage.exists()

        database = storage.load()

        assert database == Database()
        assert not storage.exists()

    def test_round_trip(self, storage: StorageManager, populated: Database) -> None:
        """Test that load(save(db)) reproduces the database."""
        storage.save(populated)

        loaded = storage.load()

        assert loaded == populated
        assert loaded.next_id == 4
        assert loaded.active_timer == populated.active_timer
        assert loaded.query() == populated.query()

    def test_file_format(self, storage: StorageManager, populated: Database) -> None:
        """Test the written JSON document."""
        storage.save(populated)

        with open(storage.data_file, encoding="utf-8") as f:
            data = json.load(f)

        assert data["version"] == FORMAT_VERSION
        assert data["next_id"] == 4
        assert [row["goal"] for row in data["entries"]] == ["Write report", "Taxes"]
        assert data["active_timer"]["entry_id"] == 1

    def test_save_overwrites_whole_file(self, storage: StorageManager, populated: Database) -> None:
        """Test that saving replaces previous contents."""
        storage.save(populated)
        storage.save(Database())

        assert storage.load() == Database()

    def test_save_leaves_no_temp_file(self, storage: StorageManager, populated: Database) -> None:
        """Test that the temporary file is renamed away."""
        storage.save(populated)

        assert not storage.data_file.with_suffix(".tmp").exists()

    def test_save_creates_parent_directory(self, tmp_path: Path) -> None:
        """Test saving into a directory that does not exist yet."""
        storage = StorageManager(tmp_path / "nested" / "dir" / "goals.json")

        storage.save(Database())

        assert storage.exists()

    def test_save_failure_raises_persistence_error(
        self, storage: StorageManager, populated: Database
    ) -> None:
        """Test that write errors surface as PersistenceError."""
        storage.save(populated)

        with patch("goal_audit.core.storage.os.fsync", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                storage.save(Database())

        # The previous file is untouched and no temp file is left behind
        assert storage.load() == populated
        assert not storage.data_file.with_suffix(".tmp").exists()

    def test_load_corrupt_json(self, storage: StorageManager) -> None:
        """Test that undecodable files raise PersistenceError."""
        storage.data_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError, match="Failed to read"):
            storage.load()

    def test_load_malformed_document(self, storage: StorageManager) -> None:
        """Test that structurally wrong documents raise PersistenceError."""
        storage.data_file.write_text(
            json.dumps({"next_id": 2, "entries": [{"goal": "No category"}]}), encoding="utf-8"
        )

        with pytest.raises(PersistenceError, match="Malformed database"):
            storage.load()

    def test_backup(self, storage: StorageManager, populated: Database) -> None:
        """Test copying the database file into the backup directory."""
        storage.save(populated)

        backup_path = storage.backup("before-edit")

        assert backup_path.parent == storage.backup_dir
        assert backup_path.name == "goals_before-edit.json"
        assert StorageManager(backup_path).load() == populated

    def test_backup_without_file(self, storage: StorageManager) -> None:
        """Test that there is nothing to back up before the first save."""
        with pytest.raises(PersistenceError, match="Nothing to back up"):
            storage.backup()

    def test_default_location(self) -> None:
        """Test default database path."""
        storage = StorageManager()

        assert storage.data_file == Path.home() / ".goal-audit" / "goals.json"
