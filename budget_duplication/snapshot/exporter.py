"""
Module: budget_duplication.snapshot.exporter
Responsibility: Snapshot Driver, export half -- read a fiscal-year
    aggregate into a self-contained Snapshot.
Architecture position: Duplication core.  Reads through the kernel
    repositories only; never creates, updates or flushes anything.

Invariants enforced:
    - Read-only: exporting leaves every source row unchanged.
    - Cross-references are written by natural key (money code, category
      name) or exported id (procurement item), never by raw foreign key
      alone, so the snapshot can be imported into another store.
    - A failure to read one attachment's payload degrades that file to
      ``base64Content: null`` (logged as export_file_content_unavailable);
      the export itself continues.

Failure modes:
    - FiscalYearNotFoundError: fiscal year missing (fatal).
    - StorageError from any non-payload read (fatal).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.aggregate import EntityKind, ReferenceSpec, child_kinds, spec_for
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.records import EntityRecord
from budget_kernel.exceptions import FiscalYearNotFoundError, StorageError
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.models import ResponsibilityCentre
from budget_kernel.services.repositories import RepositoryRegistry
from budget_duplication.snapshot.types import Snapshot, SnapshotMetadata, SnapshotNode

logger = get_logger("duplication.export")

EXPORT_FORMAT_VERSION = "1.0.0"


class SnapshotExporter:
    def __init__(
        self,
        session: Session,
        registry: RepositoryRegistry | None = None,
        clock: Clock | None = None,
        format_version: str = EXPORT_FORMAT_VERSION,
    ):
        self.session = session
        self.registry = registry or RepositoryRegistry(session)
        self.clock = clock or SystemClock()
        self.format_version = format_version

    def export(self, fiscal_year_id: UUID, exported_by: str | None = None) -> Snapshot:
        """Snapshot of the fiscal year ``fiscal_year_id`` and everything it owns."""
        fiscal_year = self.registry.get(EntityKind.FISCAL_YEAR).find_by_id(fiscal_year_id)
        if fiscal_year is None:
            raise FiscalYearNotFoundError(str(fiscal_year_id))
        centre = self.session.get(ResponsibilityCentre, fiscal_year.parent_id)

        with LogContext.bind(
            producer="export",
            fiscal_year_id=fiscal_year_id,
            responsibility_centre_id=fiscal_year.parent_id,
        ):
            logger.info("export_started", extra={"fiscal_year_name": fiscal_year.get("name")})

            counts: Counter[EntityKind] = Counter()
            lookups: dict[tuple[EntityKind, UUID], Any] = {}
            sections = {
                kind: tuple(
                    self._node(record, counts, lookups)
                    for record in self.registry.get(kind).find_children_of(fiscal_year_id)
                )
                for kind in child_kinds(EntityKind.FISCAL_YEAR)
            }

            metadata = SnapshotMetadata(
                version=self.format_version,
                exported_by=exported_by,
                exported_at=self.clock.now_utc(),
                source_rc_id=str(fiscal_year.parent_id),
                source_rc_name=centre.name if centre is not None else None,
                source_fy_id=str(fiscal_year_id),
                source_fy_name=fiscal_year.get("name"),
                counts_by_kind={
                    kind.camel_name: counts[kind]
                    for kind in spec_kinds_below_fiscal_year()
                },
            )
            logger.info(
                "export_completed",
                extra={"counts_by_kind": dict(metadata.counts_by_kind)},
            )
        return Snapshot(metadata=metadata, sections=sections)

    def _node(
        self,
        record: EntityRecord,
        counts: Counter[EntityKind],
        lookups: dict[tuple[EntityKind, UUID], Any],
    ) -> SnapshotNode:
        spec = spec_for(record.kind)
        counts[record.kind] += 1

        references = {
            ref.field: self._reference_key(ref, record.references.get(ref.field), lookups)
            for ref in spec.references
        }
        content = self._content(record) if spec.has_payload else None

        children = tuple(
            self._node(child, counts, lookups)
            for kind in child_kinds(record.kind)
            for child in self.registry.get(kind).find_children_of(record.id)
        )
        snapshot_record = replace(
            record, id=None, parent_id=None, references=references, content=content
        )
        return SnapshotNode(record=snapshot_record, children=children, ref=str(record.id))

    def _reference_key(
        self,
        ref: ReferenceSpec,
        target_id: UUID | None,
        lookups: dict[tuple[EntityKind, UUID], Any],
    ) -> Any:
        if target_id is None:
            return None
        if ref.natural_field is None:
            return str(target_id)
        cache_key = (ref.kind, target_id)
        if cache_key not in lookups:
            target = self.registry.get(ref.kind).find_by_id(target_id)
            lookups[cache_key] = None if target is None else target.get(ref.natural_field)
        return lookups[cache_key]

    def _content(self, record: EntityRecord) -> bytes | None:
        repository = self.registry.attachments(record.kind)
        try:
            # A failed read must not poison the surrounding read transaction.
            with self.session.begin_nested():
                return repository.read_content(record.id)
        except StorageError as exc:
            logger.warning(
                "export_file_content_unavailable",
                extra={
                    "kind": record.kind.value,
                    "file_id": str(record.id),
                    "file_name": record.get("name"),
                    "error_code": exc.code,
                    "error_msg": str(exc),
                },
            )
            return None


def spec_kinds_below_fiscal_year() -> tuple[EntityKind, ...]:
    """Every kind owned (directly or transitively) by a fiscal year."""
    kinds: list[EntityKind] = []
    pending = list(child_kinds(EntityKind.FISCAL_YEAR))
    while pending:
        kind = pending.pop(0)
        kinds.append(kind)
        pending.extend(child_kinds(kind))
    return tuple(kinds)
