"""
Identifier remap table.

Records, per entity kind, which identifier the newly created copy of a node
received.  In CLONE mode the key is the source row's id, so a source
cross-reference translates to the copy's reference by lookup.  In IMPORT
mode there is no source id to trust; nodes are keyed by their position in
the snapshot and by the natural key other records use to point at them
(money code, category name, exported procurement ref).

A table lives for exactly one clone or import call.  Lookups of keys that
were never registered return None; they never fall back to another id.
"""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from enum import Enum
from typing import Hashable, Iterator
from uuid import UUID

from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.exceptions import UnresolvedReferenceError


class RemapMode(str, Enum):
    CLONE = "clone"
    IMPORT = "import"


class RemapTable:
    def __init__(self, mode: RemapMode):
        self.mode = mode
        self._tables: dict[EntityKind, dict[Hashable, UUID]] = defaultdict(dict)
        self._frames: list[list[tuple[EntityKind, Hashable]]] = []

    def register(self, kind: EntityKind, key: Hashable, new_id: UUID) -> None:
        """
        Remember that ``key`` of ``kind`` now lives at ``new_id``.

        Raises:
            TypeError: A non-UUID key in CLONE mode.
            ValueError: ``key`` is None, or already mapped to another id.
        """
        if key is None:
            raise ValueError(f"Cannot register a None key for {kind.value}")
        if self.mode is RemapMode.CLONE and not isinstance(key, UUID):
            raise TypeError(
                f"Clone remap keys must be source ids, got {type(key).__name__}"
            )
        table = self._tables[kind]
        existing = table.get(key)
        if existing is not None:
            if existing == new_id:
                return
            raise ValueError(
                f"{kind.value} key {key!r} is already mapped to {existing}"
            )
        table[key] = new_id
        if self._frames:
            self._frames[-1].append((kind, key))

    def resolve(self, kind: EntityKind, key: Hashable | None) -> UUID | None:
        """New id for ``key``, or None when it was never registered."""
        if key is None:
            return None
        return self._tables[kind].get(key)

    def require(
        self,
        kind: EntityKind,
        key: Hashable,
        referencing_kind: EntityKind,
        field: str,
    ) -> UUID:
        new_id = self.resolve(kind, key)
        if new_id is None:
            raise UnresolvedReferenceError(
                referencing_kind.value, field, kind.value, str(key)
            )
        return new_id

    def count(self, kind: EntityKind) -> int:
        """Number of distinct new ids registered for ``kind``."""
        return len(set(self._tables[kind].values()))

    def new_ids(self, kind: EntityKind) -> frozenset[UUID]:
        return frozenset(self._tables[kind].values())

    @contextmanager
    def staged(self) -> Iterator[RemapTable]:
        """
        Scope registrations to a unit of work.

        If the block raises, every key registered inside it is forgotten
        before the exception propagates, so a rolled-back item leaves no
        mapping to a row that no longer exists.
        """
        frame: list[tuple[EntityKind, Hashable]] = []
        self._frames.append(frame)
        try:
            yield self
        except Exception:
            self._frames.pop()
            for kind, key in frame:
                self._tables[kind].pop(key, None)
            raise
        self._frames.pop()
        if self._frames:
            self._frames[-1].extend(frame)
