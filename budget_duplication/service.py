"""
DuplicationService -- caller-facing entry points of the duplication core.

Responsibility:
    Checks the preconditions a caller would otherwise have to repeat (the
    fiscal year belongs to the named centre, the target exists, the new
    name is usable) and hands off to the Clone Driver or the Snapshot
    Driver.  Authorization is the caller's job and is not repeated here.

Architecture position:
    Duplication > Services.  Flushes, never commits; the caller owns the
    transaction (see BaseService).
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from budget_kernel.config import KernelSettings
from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.domain.clock import Clock
from budget_kernel.domain.records import EntityRecord
from budget_kernel.exceptions import DuplicateNameError, InvalidNameError
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.models import ResponsibilityCentre
from budget_kernel.services.base import BaseService
from budget_kernel.services.fiscal_year_service import FiscalYearService
from budget_kernel.services.repositories import RepositoryRegistry
from budget_duplication.clone import CloneDriver
from budget_duplication.snapshot.exporter import SnapshotExporter
from budget_duplication.snapshot.importer import SnapshotImporter
from budget_duplication.snapshot.types import ImportResult, Snapshot

logger = get_logger("duplication.service")


class DuplicationService(BaseService):
    def __init__(
        self,
        session: Session,
        settings: KernelSettings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self.settings = settings or KernelSettings()
        self.clock = clock
        self.registry = RepositoryRegistry(
            session, max_attachment_bytes=self.settings.max_attachment_bytes
        )
        self.fiscal_years = FiscalYearService(session, self.registry)

    def clone_fiscal_year(
        self,
        rc_id: UUID,
        fiscal_year_id: UUID,
        new_name: str,
        actor_id: UUID,
        target_rc_id: UUID | None = None,
    ) -> EntityRecord:
        """
        Clone fiscal year ``fiscal_year_id`` of centre ``rc_id`` as ``new_name``.

        The copy lands in ``target_rc_id`` when given, otherwise next to
        the source.

        Raises:
            FiscalYearNotFoundError: Not in ``rc_id``.
            ResponsibilityCentreNotFoundError: Target centre missing.
            InvalidNameError: Blank new name.
            DuplicateNameError: ``new_name`` already used in the target centre.
        """
        target_rc_id = target_rc_id or rc_id
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=actor_id):
            self.fiscal_years.get_fiscal_year(fiscal_year_id, rc_id)
            self.fiscal_years.get_responsibility_centre(target_rc_id)
            new_name = self._usable_name(target_rc_id, new_name)
            return CloneDriver(self.session, self.registry).clone(
                fiscal_year_id, new_name, target_rc_id, actor_id
            )

    def clone_responsibility_centre(
        self,
        source_rc_id: UUID,
        new_name: str,
        actor_id: UUID,
    ) -> ResponsibilityCentre:
        """
        Copy a centre and every fiscal year it owns, keeping the year names.

        All-or-nothing: a failure in any fiscal year leaves no new centre.
        """
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=actor_id):
            source = self.fiscal_years.get_responsibility_centre(source_rc_id)
            logger.info(
                "centre_clone_started",
                extra={"source_rc_id": str(source_rc_id), "new_name": new_name},
            )
            with self.session.begin_nested():
                centre = self.fiscal_years.create_responsibility_centre(
                    new_name, actor_id, description=source.description
                )
                driver = CloneDriver(self.session, self.registry)
                fiscal_years = self.fiscal_years.list_fiscal_years(source_rc_id)
                for fiscal_year in fiscal_years:
                    driver.clone(fiscal_year.id, fiscal_year.get("name"), centre.id, actor_id)
            logger.info(
                "centre_clone_completed",
                extra={
                    "new_rc_id": str(centre.id),
                    "fiscal_year_count": len(fiscal_years),
                },
            )
            return centre

    def export_fiscal_year(
        self,
        fiscal_year_id: UUID,
        exported_by: str | None = None,
    ) -> Snapshot:
        with LogContext.bind(correlation_id=str(uuid4())):
            exporter = SnapshotExporter(
                self.session,
                self.registry,
                clock=self.clock,
                format_version=self.settings.snapshot_format_version,
            )
            return exporter.export(fiscal_year_id, exported_by)

    def import_snapshot(
        self,
        rc_id: UUID,
        fiscal_year_id: UUID,
        snapshot: Snapshot,
        actor_id: UUID,
    ) -> ImportResult:
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=actor_id):
            importer = SnapshotImporter(
                self.session,
                self.registry,
                accepted_versions=self.settings.accepted_snapshot_versions,
            )
            return importer.import_snapshot(rc_id, fiscal_year_id, snapshot, actor_id)

    def _usable_name(self, rc_id: UUID, name: str | None) -> str:
        if name is None or not name.strip():
            raise InvalidNameError(EntityKind.FISCAL_YEAR.value, name)
        name = name.strip()
        taken = self.registry.get(EntityKind.FISCAL_YEAR).find_by_natural_key(
            rc_id, (name,)
        )
        if taken is not None:
            raise DuplicateNameError(
                EntityKind.FISCAL_YEAR.value, "name", name, str(rc_id)
            )
        return name
