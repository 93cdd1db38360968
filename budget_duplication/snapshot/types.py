"""
Snapshot value objects.

A Snapshot is the portable, self-contained form of one fiscal-year
aggregate: metadata plus, per top-level kind, a tuple of SnapshotNode trees.
Binary payloads travel inside the attachment records, so a snapshot has no
external references.  All objects are frozen; nothing is shared with the
store they were read from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping
from uuid import UUID

from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.domain.records import EntityRecord
from budget_duplication.engine import ImportItemError


@dataclass(frozen=True)
class SnapshotNode:
    """
    One record of the snapshot plus its owned children.

    ``record.id`` is always None: snapshot nodes are not store rows.
    ``ref`` is the identifier the exporting store used (if any); other
    nodes may point at it, e.g. a spending item's procurementItemRef.
    """

    record: EntityRecord
    children: tuple[SnapshotNode, ...] = ()
    ref: str | None = None

    @property
    def kind(self) -> EntityKind:
        return self.record.kind

    def children_of(self, kind: EntityKind) -> tuple[SnapshotNode, ...]:
        return tuple(child for child in self.children if child.kind == kind)


@dataclass(frozen=True)
class SnapshotMetadata:
    version: str
    exported_by: str | None = None
    exported_at: datetime | None = None
    source_rc_id: str | None = None
    source_rc_name: str | None = None
    source_fy_id: str | None = None
    source_fy_name: str | None = None
    counts_by_kind: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "counts_by_kind", MappingProxyType(dict(self.counts_by_kind))
        )


@dataclass(frozen=True)
class Snapshot:
    metadata: SnapshotMetadata
    sections: Mapping[EntityKind, tuple[SnapshotNode, ...]] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "sections",
            MappingProxyType({k: tuple(v) for k, v in self.sections.items()}),
        )

    def nodes(self, kind: EntityKind) -> tuple[SnapshotNode, ...]:
        """Top-level nodes of ``kind``; an absent section is empty."""
        return self.sections.get(kind, ())


@dataclass(frozen=True)
class ImportResult:
    """
    Outcome of one snapshot import.

    ``imported`` counts successful creations per kind (top-level and
    nested); ``attempted`` counts top-level units tried per kind;
    ``skipped`` counts attachments left out because they had no content.
    For every top-level kind, imported == attempted - errors of that kind.
    """

    target_fiscal_year_id: UUID
    imported: Mapping[EntityKind, int] = field(default_factory=dict)
    attempted: Mapping[EntityKind, int] = field(default_factory=dict)
    skipped: Mapping[EntityKind, int] = field(default_factory=dict)
    errors: tuple[ImportItemError, ...] = ()

    def __post_init__(self) -> None:
        for name in ("imported", "attempted", "skipped"):
            object.__setattr__(
                self, name, MappingProxyType(dict(getattr(self, name)))
            )

    def imported_count(self, kind: EntityKind) -> int:
        return self.imported.get(kind, 0)

    @property
    def total_attempted(self) -> int:
        return sum(self.attempted.values())

    @property
    def total_imported(self) -> int:
        return sum(self.imported.get(kind, 0) for kind in self.attempted)

    @property
    def is_complete(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        return f"{self.total_imported} of {self.total_attempted} items imported"


__all__ = [
    "ImportItemError",
    "ImportResult",
    "Snapshot",
    "SnapshotMetadata",
    "SnapshotNode",
]
