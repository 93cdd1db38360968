"""
Module: budget_kernel.models.organization
Responsibility: ORM persistence for responsibility centres and the fiscal
    years they own.  A fiscal year is the root of the duplicated aggregate.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/ or outer packages.

Invariants enforced:
    - Responsibility centre names are globally unique (uq_rc_name).
    - Fiscal year names are unique within a centre (uq_fiscal_year_rc_name).
      Clone never improvises names, so a collision fails the clone.
    - Deleting a fiscal year deletes everything it owns (ON DELETE CASCADE
      on every child foreign key); a copy and its source share no rows.

Failure modes:
    - IntegrityError on a duplicate name (surfaced as StorageError by the
      repository layer, which checks DuplicateNameError first).
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase


class ResponsibilityCentre(TrackedBase):
    """
    Organizational unit that owns fiscal years.

    Not part of the aggregate: clone and import receive the target centre
    from their caller and never copy centre rows, except through
    FiscalYearService.clone_responsibility_centre.
    """

    __tablename__ = "responsibility_centres"

    __table_args__ = (UniqueConstraint("name", name="uq_rc_name"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ResponsibilityCentre {self.name}>"


class FiscalYear(TrackedBase):
    """
    Root of the duplicated aggregate.

    Display settings (search box, category filter, grouping and the
    on-target threshold bounds) are copied by every duplication.
    """

    __tablename__ = "fiscal_years"

    __table_args__ = (
        UniqueConstraint(
            "responsibility_centre_id", "name", name="uq_fiscal_year_rc_name"
        ),
    )

    responsibility_centre_id: Mapped[UUID] = mapped_column(
        ForeignKey("responsibility_centres.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    show_search_box: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    show_category_filter: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    group_by_category: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Percentage band within which spending counts as "on target"
    on_target_min: Mapped[int] = mapped_column(Integer, nullable=False, default=-2)

    on_target_max: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    def __repr__(self) -> str:
        return f"<FiscalYear {self.name}>"
