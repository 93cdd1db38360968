"""
Module: budget_duplication.snapshot.importer
Responsibility: Snapshot Driver, import half -- rebuild a snapshot as live
    records under an existing fiscal year.
Architecture position: Duplication core.  Uses the generic walk with a
    SnapshotSource and the PerItemPolicy.

Invariants enforced:
    - The target fiscal year must exist and belong to the target centre
      before anything is created (fatal precondition).
    - Each top-level snapshot node (reference-data entry or line item) and
      its whole subtree is one unit of work in its own SAVEPOINT.  A failing
      unit is rolled back and recorded; units before and after it stand.
    - Counts in the result reflect committed units only.
    - Reference data already present in the target (same money code or
      category name) is reused, never duplicated.
    - At most one default money type per fiscal year: an incoming default
      is written as non-default when the target already has one.
    - An integer procurement reference prefers the exported id over the
      list position and fails the item when both match.
    - Attachments whose snapshot payload is null are skipped with a
      warning, never created empty.

Failure modes:
    - FiscalYearNotFoundError: target fiscal year missing or owned by
      another centre (fatal).
    - SnapshotFormatError: unsupported snapshot version (fatal).
    - Everything else is per item, reported in ImportResult.errors.
"""

from __future__ import annotations

from typing import Hashable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.aggregate import (
    EntityKind,
    ReferenceSpec,
    child_kinds,
    dependency_order,
    reference_data_kinds,
    spec_for,
)
from budget_kernel.domain.records import EntityRecord
from budget_kernel.exceptions import (
    AmbiguousReferenceError,
    FiscalYearNotFoundError,
    SnapshotFormatError,
)
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.services.repositories import RepositoryRegistry
from budget_duplication.engine import DuplicationWalk, NodeSource, PerItemPolicy
from budget_duplication.remap import RemapMode, RemapTable
from budget_duplication.snapshot.types import ImportResult, Snapshot, SnapshotNode

logger = get_logger("duplication.import")

DEFAULT_ACCEPTED_VERSIONS = ("1.0.0",)


def _natural_keyed_kinds() -> dict[EntityKind, str]:
    """Kinds other records point at by natural key, and that key's field."""
    fields: dict[EntityKind, str] = {}
    for kind in dependency_order():
        for ref in spec_for(kind).references:
            if ref.natural_field is not None:
                fields[ref.kind] = ref.natural_field
    return fields


def _id_keyed_kinds() -> frozenset[EntityKind]:
    """Kinds other records point at by exported id."""
    return frozenset(
        ref.kind
        for kind in dependency_order()
        for ref in spec_for(kind).references
        if ref.natural_field is None
    )


class SnapshotSource(NodeSource):
    """
    Reads nodes from a decoded snapshot.

    A node is registered under its position path in the snapshot (e.g.
    ``("procurementItems", 2, "quotes", 0)``), plus the key other records
    use to reach it: the natural key for money types and categories, and
    for procurement items the exported id, or the list index when the item
    was exported without an id.

    An integer reference to a procurement item means its exported id when
    one matches, its list index otherwise.  When both an id and an id-less
    item at that index match, the reference is ambiguous and the referring
    item fails.
    """

    def __init__(self, snapshot: Snapshot):
        self._paths: dict[int, tuple[Hashable, ...]] = {}
        self._natural_fields = _natural_keyed_kinds()
        self._id_keyed = _id_keyed_kinds()
        self._exported_ids: dict[EntityKind, tuple[str | None, ...]] = {
            kind: tuple(node.ref for node in snapshot.nodes(kind))
            for kind in self._id_keyed
        }

    def top_level(self, node: SnapshotNode, index: int) -> SnapshotNode:
        self._paths[id(node)] = (spec_for(node.kind).collection, index)
        return node

    def record(self, node: SnapshotNode) -> EntityRecord:
        return node.record

    def children(self, node: SnapshotNode, kind: EntityKind) -> Sequence[SnapshotNode]:
        children = node.children_of(kind)
        parent_path = self._paths[id(node)]
        collection = spec_for(kind).collection
        for index, child in enumerate(children):
            self._paths[id(child)] = parent_path + (collection, index)
        return children

    def keys(self, node: SnapshotNode) -> tuple[Hashable, ...]:
        path = self._paths[id(node)]
        keys: list[Hashable] = [path]
        natural_field = self._natural_fields.get(node.kind)
        if natural_field is not None and node.record.get(natural_field) is not None:
            keys.append(node.record.get(natural_field))
        if node.kind in self._id_keyed and len(path) == 2:
            keys.append(path[1] if node.ref is None else node.ref)
        return tuple(keys)

    def content(self, node: SnapshotNode) -> bytes | None:
        return node.record.content

    def reference_key(
        self, record: EntityRecord, ref: ReferenceSpec, key: Hashable
    ) -> Hashable:
        if ref.kind not in self._id_keyed or not isinstance(key, int):
            return key
        exported_ids = self._exported_ids[ref.kind]
        by_id = str(key) in exported_ids
        by_position = 0 <= key < len(exported_ids) and exported_ids[key] is None
        if by_id and by_position:
            raise AmbiguousReferenceError(
                record.kind.value, ref.field, ref.kind.value, key
            )
        return str(key) if by_id else key


class SnapshotImporter:
    """
    Import of a snapshot into an existing fiscal year.

    Contract:
        Flushes within the caller's transaction.  Successful units are
        released to the caller's transaction; the caller commits.
    """

    def __init__(
        self,
        session: Session,
        registry: RepositoryRegistry | None = None,
        accepted_versions: Sequence[str] = DEFAULT_ACCEPTED_VERSIONS,
    ):
        self.session = session
        self.registry = registry or RepositoryRegistry(session)
        self.accepted_versions = tuple(accepted_versions)

    def import_snapshot(
        self,
        target_rc_id: UUID,
        target_fiscal_year_id: UUID,
        snapshot: Snapshot,
        actor_id: UUID,
    ) -> ImportResult:
        fiscal_year = self.registry.get(EntityKind.FISCAL_YEAR).find_by_id(
            target_fiscal_year_id
        )
        if fiscal_year is None or fiscal_year.parent_id != target_rc_id:
            raise FiscalYearNotFoundError(str(target_fiscal_year_id), str(target_rc_id))
        if snapshot.metadata.version not in self.accepted_versions:
            raise SnapshotFormatError(
                f"unsupported snapshot version {snapshot.metadata.version!r}; "
                f"accepted: {', '.join(self.accepted_versions)}",
                "metadata.version",
            )

        with LogContext.bind(
            producer="import",
            actor_id=actor_id,
            fiscal_year_id=target_fiscal_year_id,
            responsibility_centre_id=target_rc_id,
        ):
            logger.info(
                "import_started",
                extra={
                    "snapshot_version": snapshot.metadata.version,
                    "source_fiscal_year_id": snapshot.metadata.source_fy_id,
                    "source_fiscal_year_name": snapshot.metadata.source_fy_name,
                },
            )

            remap = RemapTable(RemapMode.IMPORT)
            self._seed_reference_data(target_fiscal_year_id, remap)

            source = SnapshotSource(snapshot)
            policy = PerItemPolicy()
            walk = DuplicationWalk(
                self.session, self.registry, remap, source, policy, actor_id
            )
            attempted: dict[EntityKind, int] = {}
            reference_kinds = set(reference_data_kinds())
            has_default = self._has_default_money_type(target_fiscal_year_id)

            for kind in child_kinds(EntityKind.FISCAL_YEAR):
                for index, node in enumerate(snapshot.nodes(kind)):
                    source.top_level(node, index)
                    if kind in reference_kinds and self._already_present(
                        node, remap, source
                    ):
                        continue
                    attempted[kind] = attempted.get(kind, 0) + 1
                    overrides = {}
                    incoming_default = (
                        kind is EntityKind.MONEY_TYPE and node.record.get("is_default")
                    )
                    if incoming_default and has_default:
                        # one default money type per fiscal year
                        overrides["is_default"] = False
                        logger.warning(
                            "import_default_money_type_demoted",
                            extra={"code": node.record.get("code"), "position": index},
                        )
                    new_id = walk.copy_unit(
                        node, target_fiscal_year_id, position=index, **overrides
                    )
                    if incoming_default and new_id is not None:
                        has_default = True

            result = ImportResult(
                target_fiscal_year_id=target_fiscal_year_id,
                imported=dict(walk.created),
                attempted=attempted,
                skipped=dict(walk.skipped),
                errors=tuple(policy.errors),
            )
            log = logger.info if result.is_complete else logger.warning
            log(
                "import_completed",
                extra={
                    "summary": result.summary(),
                    "imported": result.total_imported,
                    "attempted": result.total_attempted,
                    "error_count": len(result.errors),
                    "skipped_files": sum(result.skipped.values()),
                },
            )
        return result

    def _seed_reference_data(self, fiscal_year_id: UUID, remap: RemapTable) -> None:
        for kind in reference_data_kinds():
            key_field = spec_for(kind).natural_key[0]
            for record in self.registry.get(kind).find_children_of(fiscal_year_id):
                remap.register(kind, record.get(key_field), record.id)

    def _has_default_money_type(self, fiscal_year_id: UUID) -> bool:
        return any(
            record.get("is_default")
            for record in self.registry.get(EntityKind.MONEY_TYPE).find_children_of(
                fiscal_year_id
            )
        )

    def _already_present(
        self, node: SnapshotNode, remap: RemapTable, source: SnapshotSource
    ) -> bool:
        key_field = spec_for(node.kind).natural_key[0]
        existing = remap.resolve(node.kind, node.record.get(key_field))
        if existing is None:
            return False
        for key in source.keys(node):
            remap.register(node.kind, key, existing)
        logger.info(
            "import_reference_data_reused",
            extra={
                "kind": node.kind.value,
                "key": str(node.record.get(key_field)),
                "record_id": str(existing),
            },
        )
        return True
