"""Snapshot Driver: portable export and per-item import of a fiscal year."""

from budget_duplication.snapshot.codec import dumps, loads, snapshot_from_dict, snapshot_to_dict
from budget_duplication.snapshot.exporter import EXPORT_FORMAT_VERSION, SnapshotExporter
from budget_duplication.snapshot.importer import SnapshotImporter, SnapshotSource
from budget_duplication.snapshot.types import (
    ImportItemError,
    ImportResult,
    Snapshot,
    SnapshotMetadata,
    SnapshotNode,
)

__all__ = [
    "EXPORT_FORMAT_VERSION",
    "ImportItemError",
    "ImportResult",
    "Snapshot",
    "SnapshotExporter",
    "SnapshotImporter",
    "SnapshotMetadata",
    "SnapshotNode",
    "SnapshotSource",
    "dumps",
    "loads",
    "snapshot_from_dict",
    "snapshot_to_dict",
]
