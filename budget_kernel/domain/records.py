"""
Records -- immutable values exchanged between the store and the drivers.

An EntityRecord is the store-neutral form of one row of the aggregate: its
kind, its identity, its parent link, its plain field values, its
cross-references and (for attachments) its binary payload.  Drivers never
touch ORM instances; they read records, build new records, and hand them to
a repository.

``references`` holds identifiers for records read from a store and natural
keys (money code, category name, procurement ref) for records decoded from
a snapshot.  Either way the remap table translates them before create().
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID

from budget_kernel.domain.aggregate import EntityKind, spec_for


@dataclass(frozen=True)
class EntityRecord:
    kind: EntityKind
    id: UUID | None
    parent_id: UUID | None
    values: Mapping[str, Any] = field(default_factory=dict)
    references: Mapping[str, Any] = field(default_factory=dict)
    content: bytes | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        # Copy into read-only views so no two records share a mutable dict.
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(
            self, "references", MappingProxyType(dict(self.references))
        )
        if self.content is not None and not isinstance(self.content, bytes):
            object.__setattr__(self, "content", bytes(self.content))

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    @property
    def label(self) -> str:
        """Human-readable identification for logs and import errors."""
        label_field = spec_for(self.kind).label_field
        if label_field is not None and self.values.get(label_field) is not None:
            return str(self.values[label_field])
        return self.kind.value

    def copy_for(
        self,
        parent_id: UUID | None,
        references: Mapping[str, Any],
        **overrides: Any,
    ) -> EntityRecord:
        """
        New unsaved record under ``parent_id`` with rewritten references.

        Plain values are carried over unchanged except where ``overrides``
        names a field; the id is cleared so the store assigns a fresh one.
        """
        values = dict(self.values)
        values.update(overrides)
        return replace(
            self,
            id=None,
            parent_id=parent_id,
            values=values,
            references=references,
        )
