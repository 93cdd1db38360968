"""
Module: budget_duplication.clone
Responsibility: Clone Driver -- duplicate a whole fiscal-year aggregate into
    the same store under a (possibly different) responsibility centre.
Architecture position: Duplication core.  Uses the generic walk with a
    StoreSource and the AtomicPolicy.

Invariants enforced:
    - All-or-nothing: the copy is built inside one SAVEPOINT; any error
      rolls it back and propagates, so no partial graph is ever reachable
      from a new fiscal year.
    - The new fiscal year has the same count of records per kind as the
      source, and every reference in it points inside the new graph.
    - The source aggregate is only read, never written.
    - Names are never improvised: a taken name fails the clone.

Failure modes:
    - FiscalYearNotFoundError: source fiscal year missing.
    - ResponsibilityCentreNotFoundError: target centre missing.
    - InvalidNameError / DuplicateNameError: bad or taken new name.
    - UnresolvedReferenceError, StorageError, ContentUnavailableError:
      the first failure while copying is surfaced unchanged.
"""

from __future__ import annotations

from typing import Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.aggregate import EntityKind, dependency_order
from budget_kernel.domain.records import EntityRecord
from budget_kernel.exceptions import (
    BudgetKernelError,
    FiscalYearNotFoundError,
    ResponsibilityCentreNotFoundError,
)
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.models import ResponsibilityCentre
from budget_kernel.services.repositories import RepositoryRegistry
from budget_duplication.engine import AtomicPolicy, DuplicationWalk, StoreSource
from budget_duplication.remap import RemapMode, RemapTable

logger = get_logger("duplication.clone")


class CloneDriver:
    """
    Same-store duplication of a fiscal year.

    Contract:
        Flushes within the caller's transaction.  On success the caller
        commits; on failure the driver has already rolled back its own
        savepoint and the caller may continue using the session.
    """

    def __init__(self, session: Session, registry: RepositoryRegistry | None = None):
        self.session = session
        self.registry = registry or RepositoryRegistry(session)
        self.last_counts: Mapping[EntityKind, int] = {}

    def clone(
        self,
        source_fiscal_year_id: UUID,
        new_name: str,
        target_rc_id: UUID,
        actor_id: UUID,
    ) -> EntityRecord:
        """
        Copy the fiscal year ``source_fiscal_year_id`` as ``new_name`` under
        ``target_rc_id`` and return the new fiscal year.
        """
        fiscal_years = self.registry.get(EntityKind.FISCAL_YEAR)
        source = fiscal_years.find_by_id(source_fiscal_year_id)
        if source is None:
            raise FiscalYearNotFoundError(str(source_fiscal_year_id))
        if self.session.get(ResponsibilityCentre, target_rc_id) is None:
            raise ResponsibilityCentreNotFoundError(str(target_rc_id))

        with LogContext.bind(
            producer="clone",
            actor_id=actor_id,
            fiscal_year_id=source_fiscal_year_id,
            responsibility_centre_id=target_rc_id,
        ):
            logger.info(
                "clone_started",
                extra={
                    "source_fiscal_year_id": str(source_fiscal_year_id),
                    "source_name": source.get("name"),
                    "new_name": new_name,
                },
            )

            walk = DuplicationWalk(
                self.session,
                self.registry,
                RemapTable(RemapMode.CLONE),
                StoreSource(self.registry),
                AtomicPolicy(),
                actor_id,
            )
            try:
                with self.session.begin_nested():
                    new_id = walk.copy_unit(source, target_rc_id, name=new_name)
            except BudgetKernelError:
                logger.error("clone_failed", exc_info=True)
                raise

            self.last_counts = dict(walk.created)
            for kind in dependency_order():
                if walk.created[kind]:
                    logger.info(
                        "clone_kind_completed",
                        extra={"kind": kind.value, "count": walk.created[kind]},
                    )
            logger.info(
                "clone_completed",
                extra={
                    "new_fiscal_year_id": str(new_id),
                    "total_records": sum(walk.created.values()),
                },
            )

        return fiscal_years.get(new_id)
