"""
Repositories -- the per-kind storage collaborator used by the drivers.

Responsibility:
    Translate between immutable EntityRecord values and ORM rows for every
    entity kind of the aggregate.  Offers exactly the operations the
    duplication drivers need: create, find-by-id and find-children-of, plus
    read_content for attachment payloads.

Architecture position:
    Kernel > Services.  Imports models/ and domain/.  Flushes within the
    caller's transaction; never commits.

Invariants enforced:
    - create() refuses a record whose parent row does not exist
      (ParentNotFoundError) and a record whose natural key is already used
      under the same parent (DuplicateNameError).
    - Allocation amounts are non-negative (InvalidAllocationError).
    - An attachment's declared size equals its payload length and does not
      exceed the configured limit.
    - find_children_of() orders siblings by the kind's order_by fields and
      then by id, so two reads in one call agree.  A dotted order_by entry
      ("money_type_id.code") orders by a column of the referenced record.
    - Every SQLAlchemyError is re-raised as StorageError (or
      ContentUnavailableError for payload reads).

Failure modes:
    - ValueError when a record of another kind is handed to a repository,
      or a record names a field the kind does not declare.  Both are
      programming errors, not data errors.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from budget_kernel.domain.aggregate import EntityKind, spec_for
from budget_kernel.domain.records import EntityRecord
from budget_kernel.exceptions import (
    AttachmentSizeMismatchError,
    AttachmentTooLargeError,
    ContentUnavailableError,
    DuplicateNameError,
    InvalidAllocationError,
    InvalidNameError,
    ParentNotFoundError,
    RecordNotFoundError,
    StorageError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.models import MODEL_BY_KIND, ResponsibilityCentre

logger = get_logger("services.repositories")

DEFAULT_MAX_ATTACHMENT_BYTES = 52_428_800

_RESPONSIBILITY_CENTRE = "responsibility_centre"


def _detail(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class Repository:
    """
    Storage collaborator for one entity kind.

    Contract:
        Stateless apart from the session; safe to reuse for the whole call.
    """

    def __init__(self, session: Session, kind: EntityKind):
        self.session = session
        self.kind = kind
        self.spec = spec_for(kind)
        self.model = MODEL_BY_KIND[kind]
        if self.spec.parent_kind is None:
            self._parent_model = ResponsibilityCentre
            self._parent_name = _RESPONSIBILITY_CENTRE
        else:
            self._parent_model = MODEL_BY_KIND[self.spec.parent_kind]
            self._parent_name = self.spec.parent_kind.value

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, record: EntityRecord, actor_id: UUID) -> UUID:
        """
        Insert ``record`` under ``record.parent_id`` and return the new id.

        Raises:
            ParentNotFoundError: Parent row missing.
            InvalidNameError / DuplicateNameError: Natural key blank or taken.
            InvalidAllocationError: Negative amount on an allocation.
            StorageError: The store rejected the insert.
        """
        if record.kind != self.kind:
            raise ValueError(
                f"{type(self).__name__} for {self.kind.value} cannot store "
                f"a {record.kind.value} record"
            )
        self._validate(record)

        try:
            if record.parent_id is None or self.session.get(
                self._parent_model, record.parent_id
            ) is None:
                raise ParentNotFoundError(
                    self.kind.value, self._parent_name, str(record.parent_id)
                )
            self._check_natural_key(record)

            row = self.model(**self._columns(record), created_by_id=actor_id)
            self.session.add(row)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StorageError("create", self.kind.value, _detail(exc)) from exc

        logger.debug(
            "record_created",
            extra={
                "kind": self.kind.value,
                "record_id": str(row.id),
                "parent_id": str(record.parent_id),
            },
        )
        return row.id

    def _validate(self, record: EntityRecord) -> None:
        for name in self.spec.natural_key:
            value = record.values.get(name)
            if value is None or not str(value).strip():
                raise InvalidNameError(self.kind.value, value)
        negative = [
            name
            for name in self.spec.non_negative
            if record.values.get(name) is not None
            and Decimal(record.values[name]) < 0
        ]
        if negative:
            raise InvalidAllocationError(
                self.kind.value,
                str(record.values.get("cap_amount")),
                str(record.values.get("om_amount")),
            )

    def _check_natural_key(self, record: EntityRecord) -> None:
        if not self.spec.natural_key:
            return
        key = tuple(record.values[name] for name in self.spec.natural_key)
        if self.find_by_natural_key(record.parent_id, key) is not None:
            raise DuplicateNameError(
                self.kind.value,
                ",".join(self.spec.natural_key),
                ",".join(str(part) for part in key),
                str(record.parent_id),
            )

    def _columns(self, record: EntityRecord) -> dict[str, Any]:
        unknown = set(record.values) - set(self.spec.field_names)
        unknown |= set(record.references) - {r.field for r in self.spec.references}
        if unknown:
            raise ValueError(
                f"{self.kind.value} does not declare fields {sorted(unknown)}"
            )
        columns = {name: _column_value(v) for name, v in record.values.items()}
        columns.update(record.references)
        columns[self.spec.parent_field] = record.parent_id
        return columns

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, record_id: UUID) -> EntityRecord | None:
        try:
            row = self.session.get(self.model, record_id)
        except SQLAlchemyError as exc:
            raise StorageError("find_by_id", self.kind.value, _detail(exc)) from exc
        return None if row is None else self.to_record(row)

    def get(self, record_id: UUID) -> EntityRecord:
        """Like find_by_id() but raises RecordNotFoundError on a miss."""
        record = self.find_by_id(record_id)
        if record is None:
            raise RecordNotFoundError(self.kind.value, str(record_id))
        return record

    def find_children_of(self, parent_id: UUID) -> list[EntityRecord]:
        parent_column = getattr(self.model, self.spec.parent_field)
        stmt = select(self.model).where(parent_column == parent_id)
        ordering = []
        for name in self.spec.order_by:
            field, _, target_field = name.partition(".")
            if not target_field:
                ordering.append(getattr(self.model, field))
                continue
            # "money_type_id.code": order by a column of the referenced row
            target = aliased(MODEL_BY_KIND[self.spec.reference(field).kind])
            stmt = stmt.outerjoin(target, getattr(self.model, field) == target.id)
            ordering.append(getattr(target, target_field))
        stmt = stmt.order_by(*ordering, self.model.id)
        try:
            rows = self.session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageError(
                "find_children_of", self.kind.value, _detail(exc)
            ) from exc
        return [self.to_record(row) for row in rows]

    def find_by_natural_key(
        self, parent_id: UUID, key: tuple[Any, ...]
    ) -> EntityRecord | None:
        """Sibling under ``parent_id`` whose natural key equals ``key``."""
        if len(key) != len(self.spec.natural_key):
            raise ValueError(
                f"{self.kind.value} natural key is {self.spec.natural_key}, got {key!r}"
            )
        stmt = select(self.model).where(
            getattr(self.model, self.spec.parent_field) == parent_id
        )
        for name, value in zip(self.spec.natural_key, key):
            stmt = stmt.where(getattr(self.model, name) == _column_value(value))
        try:
            row = self.session.scalars(stmt.limit(1)).first()
        except SQLAlchemyError as exc:
            raise StorageError(
                "find_by_natural_key", self.kind.value, _detail(exc)
            ) from exc
        return None if row is None else self.to_record(row)

    def count_children_of(self, parent_id: UUID) -> int:
        stmt = select(func.count()).select_from(self.model).where(
            getattr(self.model, self.spec.parent_field) == parent_id
        )
        try:
            return self.session.scalar(stmt) or 0
        except SQLAlchemyError as exc:
            raise StorageError("count", self.kind.value, _detail(exc)) from exc

    def to_record(self, row: Any) -> EntityRecord:
        return EntityRecord(
            kind=self.kind,
            id=row.id,
            parent_id=getattr(row, self.spec.parent_field),
            values={name: getattr(row, name) for name in self.spec.field_names},
            references={ref.field: getattr(row, ref.field) for ref in self.spec.references},
        )


class AttachmentRepository(Repository):
    """
    Repository for file kinds.

    Records returned by the find methods never carry ``content``; the
    payload is fetched separately with read_content().
    """

    def __init__(
        self,
        session: Session,
        kind: EntityKind,
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
    ):
        super().__init__(session, kind)
        if not self.spec.has_payload:
            raise ValueError(f"{kind.value} does not carry a binary payload")
        self.max_attachment_bytes = max_attachment_bytes

    def _validate(self, record: EntityRecord) -> None:
        super()._validate(record)
        name = str(record.values.get("name"))
        content = record.content if record.content is not None else b""
        declared = record.values.get("size")
        if declared is None or int(declared) != len(content):
            raise AttachmentSizeMismatchError(
                name, -1 if declared is None else int(declared), len(content)
            )
        if len(content) > self.max_attachment_bytes:
            raise AttachmentTooLargeError(name, len(content), self.max_attachment_bytes)

    def _columns(self, record: EntityRecord) -> dict[str, Any]:
        columns = super()._columns(record)
        columns["content"] = record.content if record.content is not None else b""
        return columns

    def read_content(self, file_id: UUID) -> bytes:
        """
        Return the exact stored payload of one attachment.

        Raises:
            RecordNotFoundError: No such attachment.
            ContentUnavailableError: The payload could not be read.
        """
        stmt = select(self.model.content).where(self.model.id == file_id)
        try:
            result = self.session.execute(stmt).first()
        except SQLAlchemyError as exc:
            raise ContentUnavailableError(
                self.kind.value, str(file_id), _detail(exc)
            ) from exc
        if result is None:
            raise RecordNotFoundError(self.kind.value, str(file_id))
        if result[0] is None:
            raise ContentUnavailableError(
                self.kind.value, str(file_id), "no payload stored"
            )
        return bytes(result[0])


class RepositoryRegistry:
    """Hands out one repository per kind for the lifetime of a session."""

    def __init__(
        self,
        session: Session,
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
    ):
        self.session = session
        self.max_attachment_bytes = max_attachment_bytes
        self._repositories: dict[EntityKind, Repository] = {}

    def get(self, kind: EntityKind) -> Repository:
        repository = self._repositories.get(kind)
        if repository is None:
            if spec_for(kind).has_payload:
                repository = AttachmentRepository(
                    self.session, kind, self.max_attachment_bytes
                )
            else:
                repository = Repository(self.session, kind)
            self._repositories[kind] = repository
        return repository

    __getitem__ = get

    def attachments(self, kind: EntityKind) -> AttachmentRepository:
        repository = self.get(kind)
        if not isinstance(repository, AttachmentRepository):
            raise ValueError(f"{kind.value} does not carry a binary payload")
        return repository
