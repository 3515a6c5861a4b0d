"""Outbound ports - dependencies on the filesystem."""

from dataorbit.ports.outbound.snapshot_store import BackupStore, SnapshotStore

__all__ = ["BackupStore", "SnapshotStore"]
