"""
Module: budget_kernel.models.reference_data
Responsibility: ORM persistence for per-fiscal-year reference data -- money
    types (funding envelopes), categories and spending categories.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - Money type codes are unique within a fiscal year (uq_money_type_fy_code).
    - Category and spending-category names are unique within a fiscal year.
    - Snapshot import matches existing reference data by these natural keys.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase
from budget_kernel.domain.values import FundingType


class MoneyType(TrackedBase):
    """Named funding envelope (e.g. AB, OA, WCF) scoped to one fiscal year."""

    __tablename__ = "money_types"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "code", name="uq_money_type_fy_code"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Exactly one money type per fiscal year should be the default
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<MoneyType {self.code}>"


class Category(TrackedBase):
    """Classification bucket for line items, restricted by funding type."""

    __tablename__ = "categories"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "name", name="uq_category_fy_name"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    funding_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FundingType.BOTH.value
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class SpendingCategory(TrackedBase):
    """Classification bucket used by spending reports."""

    __tablename__ = "spending_categories"

    __table_args__ = (
        UniqueConstraint(
            "fiscal_year_id", "name", name="uq_spending_category_fy_name"
        ),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    funding_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FundingType.BOTH.value
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<SpendingCategory {self.name}>"
