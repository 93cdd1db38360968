"""
Module: budget_duplication.engine
Responsibility: The one remap-and-create walk shared by clone and import.
    For each node: rewrite its cross-references through the remap table,
    create the copy under the new parent, register the copy's id, then
    recurse into the node's children in dependency order.
Architecture position: Duplication core.  Depends on the aggregate model,
    the remap table and the kernel repositories.

The walk has exactly two variation points:

    NodeSource     where node data comes from (the live store for clone,
                   a decoded snapshot for import), including binary content
                   and the keys a created node is registered under.
    FailurePolicy  what a failing unit of work does: AtomicPolicy lets the
                   error escape (clone is all-or-nothing); PerItemPolicy
                   rolls the unit back to its SAVEPOINT, records an
                   ImportItemError and carries on.

Invariants enforced:
    - A parent is created, and its new id known, before any of its
      children are visited.
    - A required reference that does not resolve raises
      UnresolvedReferenceError; an optional one is written as unset.
      Neither ever falls back to the source id.
    - Counts and remap entries of a failed unit are discarded with it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, replace
from typing import Any, Callable, Hashable, Sequence, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.aggregate import (
    EntityKind,
    ReferenceSpec,
    child_kinds,
    spec_for,
)
from budget_kernel.domain.records import EntityRecord
from budget_kernel.logging_config import get_logger
from budget_kernel.services.repositories import RepositoryRegistry
from budget_duplication.remap import RemapTable

logger = get_logger("duplication.engine")

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Node sources
# ---------------------------------------------------------------------------


class NodeSource(ABC):
    """Where the walk reads nodes from."""

    @abstractmethod
    def record(self, node: Any) -> EntityRecord:
        """The node's data as a record (references still in source terms)."""

    @abstractmethod
    def children(self, node: Any, kind: EntityKind) -> Sequence[Any]:
        """Direct children of ``node`` of the given kind, in stable order."""

    @abstractmethod
    def keys(self, node: Any) -> tuple[Hashable, ...]:
        """Keys the created copy of ``node`` is registered under."""

    @abstractmethod
    def content(self, node: Any) -> bytes | None:
        """Binary payload of an attachment node, or None if absent."""

    def reference_key(
        self, record: EntityRecord, ref: ReferenceSpec, key: Hashable
    ) -> Hashable:
        """The remap key a cross-reference value stands for."""
        return key


class StoreSource(NodeSource):
    """Reads the source aggregate from the live store (clone)."""

    def __init__(self, registry: RepositoryRegistry):
        self.registry = registry

    def record(self, node: EntityRecord) -> EntityRecord:
        return node

    def children(self, node: EntityRecord, kind: EntityKind) -> list[EntityRecord]:
        return self.registry.get(kind).find_children_of(node.id)

    def keys(self, node: EntityRecord) -> tuple[Hashable, ...]:
        return (node.id,)

    def content(self, node: EntityRecord) -> bytes:
        return self.registry.attachments(node.kind).read_content(node.id)


# ---------------------------------------------------------------------------
# Failure policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImportItemError:
    """One top-level unit that could not be imported, and why."""

    kind: EntityKind
    position: int | None
    label: str
    code: str
    message: str


class FailurePolicy(ABC):
    @abstractmethod
    def run_unit(
        self,
        session: Session,
        unit: Callable[[], T],
        *,
        kind: EntityKind,
        position: int | None,
        label: str,
    ) -> T | None:
        """Run one unit of work; return its result, or None if it was abandoned."""


class AtomicPolicy(FailurePolicy):
    """Every error is fatal; the caller's transaction rolls everything back."""

    def run_unit(self, session, unit, *, kind, position, label):
        return unit()


class PerItemPolicy(FailurePolicy):
    """
    One SAVEPOINT per unit; a failing unit is rolled back and recorded.

    Earlier units stay committed to their savepoints, so one bad item never
    undoes items imported before it.
    """

    def __init__(self):
        self.errors: list[ImportItemError] = []

    def run_unit(self, session, unit, *, kind, position, label):
        savepoint = session.begin_nested()
        try:
            result = unit()
        except Exception as exc:
            savepoint.rollback()
            error = ImportItemError(
                kind=kind,
                position=position,
                label=label,
                code=getattr(exc, "code", "UNEXPECTED_ERROR"),
                message=str(exc),
            )
            self.errors.append(error)
            logger.warning(
                "import_item_failed",
                extra={
                    "kind": kind.value,
                    "position": position,
                    "label": label,
                    "error_code": error.code,
                    "error_msg": error.message,
                },
            )
            return None
        savepoint.commit()
        return result


# ---------------------------------------------------------------------------
# The walk
# ---------------------------------------------------------------------------


class DuplicationWalk:
    """
    Generic remap-and-create procedure.

    ``created`` and ``skipped`` accumulate per-kind counts of committed
    units only.  ``skipped`` counts attachments left out because their
    source had no content.
    """

    def __init__(
        self,
        session: Session,
        registry: RepositoryRegistry,
        remap: RemapTable,
        source: NodeSource,
        policy: FailurePolicy,
        actor_id: UUID,
    ):
        self.session = session
        self.registry = registry
        self.remap = remap
        self.source = source
        self.policy = policy
        self.actor_id = actor_id
        self.created: Counter[EntityKind] = Counter()
        self.skipped: Counter[EntityKind] = Counter()

    def copy_unit(
        self,
        node: Any,
        new_parent_id: UUID,
        *,
        position: int | None = None,
        **overrides: Any,
    ) -> UUID | None:
        """
        Copy ``node`` and its whole subtree under ``new_parent_id`` as one unit.

        ``overrides`` replace plain values on the top node only (clone uses
        it for the new fiscal-year name).  Returns the new id, or None when
        the failure policy abandoned the unit.
        """
        record = self.source.record(node)
        created: Counter[EntityKind] = Counter()
        skipped: Counter[EntityKind] = Counter()

        def unit() -> UUID | None:
            with self.remap.staged():
                return self._copy(node, new_parent_id, created, skipped, overrides)

        new_id = self.policy.run_unit(
            self.session,
            unit,
            kind=record.kind,
            position=position,
            label=record.label,
        )
        if new_id is not None:
            self.created.update(created)
            self.skipped.update(skipped)
        return new_id

    def _copy(
        self,
        node: Any,
        new_parent_id: UUID,
        created: Counter[EntityKind],
        skipped: Counter[EntityKind],
        overrides: dict[str, Any],
    ) -> UUID | None:
        record = self.source.record(node)
        spec = spec_for(record.kind)

        content = None
        if spec.has_payload:
            content = self.source.content(node)
            if content is None:
                skipped[record.kind] += 1
                logger.warning(
                    "attachment_content_missing",
                    extra={"kind": record.kind.value, "file_name": record.label},
                )
                return None

        copy = record.copy_for(
            new_parent_id, self._resolve_references(record), **overrides
        )
        if content is not None:
            copy = replace(copy, content=content)

        new_id = self.registry.get(record.kind).create(copy, self.actor_id)
        for key in self.source.keys(node):
            self.remap.register(record.kind, key, new_id)
        created[record.kind] += 1

        for kind in child_kinds(record.kind):
            for child in self.source.children(node, kind):
                self._copy(child, new_id, created, skipped, {})
        return new_id

    def _resolve_references(self, record: EntityRecord) -> dict[str, UUID | None]:
        resolved: dict[str, UUID | None] = {}
        for ref in spec_for(record.kind).references:
            key = record.references.get(ref.field)
            if key is None:
                resolved[ref.field] = None
                continue
            key = self.source.reference_key(record, ref, key)
            if ref.required:
                resolved[ref.field] = self.remap.require(
                    ref.kind, key, record.kind, ref.field
                )
            else:
                new_id = self.remap.resolve(ref.kind, key)
                if new_id is None:
                    logger.warning(
                        "reference_unresolved",
                        extra={
                            "kind": record.kind.value,
                            "field": ref.field,
                            "referenced_kind": ref.kind.value,
                            "key": str(key),
                        },
                    )
                resolved[ref.field] = new_id
        return resolved
