"""
FiscalYearService -- ordinary create/read operations on centres and years.

Responsibility:
    Creates responsibility centres and fiscal years and resolves them by id
    with the not-found semantics the duplication entry points rely on.

Architecture position:
    Kernel > Services.  Flushes, never commits.

Failure modes:
    - InvalidNameError for a blank name.
    - DuplicateNameError for a centre name already in use, or a fiscal year
      name already used in the same centre.
    - ResponsibilityCentreNotFoundError / FiscalYearNotFoundError on lookup
      misses, including a fiscal year that exists but belongs to another
      centre.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.domain.records import EntityRecord
from budget_kernel.exceptions import (
    DuplicateNameError,
    FiscalYearNotFoundError,
    InvalidNameError,
    ResponsibilityCentreNotFoundError,
    StorageError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.models import ResponsibilityCentre
from budget_kernel.services.base import BaseService
from budget_kernel.services.repositories import RepositoryRegistry

logger = get_logger("services.fiscal_year")


class FiscalYearService(BaseService):
    def __init__(self, session, registry: RepositoryRegistry | None = None):
        super().__init__(session)
        self.registry = registry or RepositoryRegistry(session)

    # ------------------------------------------------------------------
    # Responsibility centres
    # ------------------------------------------------------------------

    def create_responsibility_centre(
        self,
        name: str,
        actor_id: UUID,
        description: str | None = None,
    ) -> ResponsibilityCentre:
        """Create a centre; names are unique across the whole store."""
        if name is None or not name.strip():
            raise InvalidNameError("responsibility_centre", name)
        name = name.strip()
        if self.find_responsibility_centre_by_name(name) is not None:
            raise DuplicateNameError("responsibility_centre", "name", name, None)

        centre = ResponsibilityCentre(
            name=name,
            description=description,
            created_by_id=actor_id,
        )
        try:
            self.session.add(centre)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StorageError("create", "responsibility_centre", str(exc)) from exc

        logger.info(
            "responsibility_centre_created",
            extra={"responsibility_centre_id": str(centre.id), "centre_name": name},
        )
        return centre

    def get_responsibility_centre(self, rc_id: UUID) -> ResponsibilityCentre:
        centre = self.session.get(ResponsibilityCentre, rc_id)
        if centre is None:
            raise ResponsibilityCentreNotFoundError(str(rc_id))
        return centre

    def find_responsibility_centre_by_name(
        self, name: str
    ) -> ResponsibilityCentre | None:
        stmt = select(ResponsibilityCentre).where(ResponsibilityCentre.name == name)
        return self.session.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Fiscal years
    # ------------------------------------------------------------------

    def create_fiscal_year(
        self,
        rc_id: UUID,
        name: str,
        actor_id: UUID,
        **settings: Any,
    ) -> EntityRecord:
        """
        Create a fiscal year under ``rc_id``.

        ``settings`` may carry any fiscal-year field (description, active,
        display toggles, on-target bounds); omitted fields take the
        column defaults.
        """
        self.get_responsibility_centre(rc_id)
        values = dict(settings)
        values["name"] = name.strip() if isinstance(name, str) else name
        record = EntityRecord(EntityKind.FISCAL_YEAR, None, rc_id, values)
        repository = self.registry.get(EntityKind.FISCAL_YEAR)
        new_id = repository.create(record, actor_id)
        logger.info(
            "fiscal_year_created",
            extra={
                "fiscal_year_id": str(new_id),
                "responsibility_centre_id": str(rc_id),
                "fiscal_year_name": values["name"],
            },
        )
        return repository.get(new_id)

    def get_fiscal_year(
        self,
        fiscal_year_id: UUID,
        rc_id: UUID | None = None,
    ) -> EntityRecord:
        """
        Fiscal year by id, optionally required to belong to ``rc_id``.

        Raises:
            FiscalYearNotFoundError: Missing, or owned by another centre.
        """
        record = self.registry.get(EntityKind.FISCAL_YEAR).find_by_id(fiscal_year_id)
        if record is None or (rc_id is not None and record.parent_id != rc_id):
            raise FiscalYearNotFoundError(
                str(fiscal_year_id), None if rc_id is None else str(rc_id)
            )
        return record

    def list_fiscal_years(self, rc_id: UUID) -> list[EntityRecord]:
        self.get_responsibility_centre(rc_id)
        return self.registry.get(EntityKind.FISCAL_YEAR).find_children_of(rc_id)
