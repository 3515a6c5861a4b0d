"""Unit tests for FileBackupManager and BackupService."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from dataorbit.adapters.outbound import FileBackupManager
from dataorbit.application import BackupService
from dataorbit.infrastructure.config import BackupPolicy
from dataorbit.ports.inbound.errors import NotFoundError, SaveError


@pytest.mark.unit
class TestFileBackupManager:
    """Tests for FileBackupManager."""

    @pytest.fixture
    def source(self, temp_dir: Path) -> Path:
        """Create a file to back up."""
        path = temp_dir / "store.db"
        path.write_bytes(b"ciphertext")
        return path

    @pytest.fixture
    def manager(self, temp_dir: Path) -> FileBackupManager:
        return FileBackupManager(temp_dir / "store.db_backups")

    def test_backup_copies_bytes(self, manager: FileBackupManager, source: Path) -> None:
        """A backup is a verbatim copy named '<ms>_backup.json'."""
        backup = manager.backup(source)

        assert backup.parent == manager.backup_dir
        assert backup.name.endswith("_backup.json")
        assert backup.name.split("_")[0].isdigit()
        assert backup.read_bytes() == b"ciphertext"

    def test_backups_never_overwrite(self, manager: FileBackupManager, source: Path) -> None:
        """Backups taken in quick succession get distinct names."""
        first = manager.backup(source)
        source.write_bytes(b"newer")
        second = manager.backup(source)
        third = manager.backup(source)

        assert len({first, second, third}) == 3
        assert manager.list_backups() == [first, second, third]
        assert first.read_bytes() == b"ciphertext"

    def test_missing_source(self, manager: FileBackupManager, temp_dir: Path) -> None:
        """Backing up a missing file raises NotFoundError."""
        with pytest.raises(NotFoundError):
            manager.backup(temp_dir / "nothing.db")

    def test_unwritable_directory(self, temp_dir: Path, source: Path) -> None:
        """A backup directory that cannot be created raises SaveError."""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")
        manager = FileBackupManager(blocker / "backups")

        with pytest.raises(SaveError):
            manager.backup(source)

    def test_list_without_directory(self, manager: FileBackupManager) -> None:
        """No directory means no backups."""
        assert manager.list_backups() == []


@pytest.mark.unit
class TestBackupService:
    """Tests for BackupService."""

    def test_runs_every_policy(self) -> None:
        """Each policy fires on its own timer until stopped."""
        fired = threading.Event()
        calls: list[int] = []

        def backup() -> Path:
            calls.append(1)
            if len(calls) >= 3:
                fired.set()
            return Path("backup.json")

        service = BackupService(
            backup, [BackupPolicy(interval=1), BackupPolicy(interval=2)], seconds_per_unit=0.01
        )
        service.start()
        try:
            assert fired.wait(timeout=5)
            assert service.is_running
        finally:
            service.stop()

        assert not service.is_running
        assert len(calls) >= 3
        assert service.completed >= 1

    def test_failures_are_counted_and_rescheduled(self) -> None:
        """A failing backup is logged and retried at the next interval."""
        attempts = threading.Event()
        calls: list[int] = []

        def backup() -> Path:
            calls.append(1)
            if len(calls) >= 2:
                attempts.set()
            raise SaveError("disk full")

        service = BackupService(backup, [BackupPolicy(interval=1)], seconds_per_unit=0.01)
        service.start()
        try:
            assert attempts.wait(timeout=5)
        finally:
            service.stop()

        assert len(calls) >= 2
        assert service.failed >= 1
        assert service.completed == 0

    def test_unexpected_errors_keep_the_schedule(self) -> None:
        """Errors outside the store's hierarchy are counted and rescheduled too."""
        attempts = threading.Event()
        calls: list[int] = []

        def backup() -> Path:
            calls.append(1)
            if len(calls) >= 2:
                attempts.set()
            raise RuntimeError("dictionary changed size during iteration")

        service = BackupService(backup, [BackupPolicy(interval=1)], seconds_per_unit=0.01)
        service.start()
        try:
            assert attempts.wait(timeout=5)
        finally:
            service.stop()

        assert service.failed >= 1
        assert service.completed == 0

    def test_nothing_to_copy_is_skipped(self) -> None:
        """A run that finds no data file is counted as skipped."""
        skipped = threading.Event()
        calls: list[int] = []

        def backup() -> None:
            calls.append(1)
            if len(calls) >= 2:
                skipped.set()
            return None

        service = BackupService(backup, [BackupPolicy(interval=1)], seconds_per_unit=0.01)
        service.start()
        try:
            assert skipped.wait(timeout=5)
        finally:
            service.stop()

        assert service.skipped >= 1
        assert service.failed == 0
        assert service.completed == 0

    def test_stop_before_first_run(self) -> None:
        """Stopping cancels pending timers."""
        calls: list[int] = []
        service = BackupService(lambda: calls.append(1), [BackupPolicy(interval=1)])
        service.start()
        service.stop()

        assert calls == []
        assert not service.is_running
