"""
Module: budget_kernel.models.line_items
Responsibility: ORM persistence for funding, spending, training and travel
    items, their money allocations, and the spending-side event log,
    invoices and invoice files.  (Procurement lives in models/procurement.py.)
Architecture position: Kernel > Models.  May import from db/base.py,
    domain/values.py and models/mixins.py only.

Invariants enforced:
    - Line-item names are unique within a fiscal year (one constraint per
      table).
    - Every allocation references a money type; the repository layer checks
      the amounts are non-negative.
    - A spending item may reference a procurement item of the same fiscal
      year; deleting that procurement item leaves the spending item unlinked.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase
from budget_kernel.domain.values import (
    Currency,
    FundingItemStatus,
    PlannedItemStatus,
    SpendingEventType,
    SpendingItemStatus,
    TrainingType,
    TravelType,
)
from budget_kernel.models.mixins import AllocationColumns, AttachmentColumns

# ---------------------------------------------------------------------------
# Funding
# ---------------------------------------------------------------------------


class FundingItem(TrackedBase):
    """Money coming into the fiscal year, split across money types."""

    __tablename__ = "funding_items"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "name", name="uq_funding_item_fy_name"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    source: Mapped[str | None] = mapped_column(String(50), nullable=True)

    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FundingItemStatus.DRAFT.value
    )

    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<FundingItem {self.name}>"


class FundingAllocation(AllocationColumns, TrackedBase):
    __tablename__ = "funding_allocations"

    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("funding_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


# ---------------------------------------------------------------------------
# Spending
# ---------------------------------------------------------------------------


class SpendingItem(TrackedBase):
    """Money going out of the fiscal year."""

    __tablename__ = "spending_items"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "name", name="uq_spending_item_fy_name"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    procurement_item_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("procurement_items.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SpendingItemStatus.DRAFT.value
    )

    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<SpendingItem {self.name}>"


class SpendingAllocation(AllocationColumns, TrackedBase):
    __tablename__ = "spending_allocations"

    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("spending_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class SpendingEvent(TrackedBase):
    """Approval-log entry for a spending item (no attachments)."""

    __tablename__ = "spending_events"

    spending_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("spending_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    event_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=SpendingEventType.PENDING.value
    )

    event_date: Mapped[date] = mapped_column(Date, nullable=False)

    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    recorded_by: Mapped[str | None] = mapped_column(String(100), nullable=True)


class SpendingInvoice(TrackedBase):
    __tablename__ = "spending_invoices"

    spending_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("spending_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date_received: Mapped[date | None] = mapped_column(Date, nullable=True)

    date_processed: Mapped[date | None] = mapped_column(Date, nullable=True)

    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Amount converted to the reporting currency
    amount_cad: Mapped[Decimal | None] = mapped_column(nullable=True)


class SpendingInvoiceFile(AttachmentColumns, TrackedBase):
    __tablename__ = "spending_invoice_files"

    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("spending_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


# ---------------------------------------------------------------------------
# Training and travel
# ---------------------------------------------------------------------------


class TrainingItem(TrackedBase):
    __tablename__ = "training_items"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "name", name="uq_training_item_fy_name"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    provider: Mapped[str | None] = mapped_column(String(255), nullable=True)

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    estimated_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    actual_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlannedItemStatus.PLANNED.value
    )

    training_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TrainingType.OTHER.value
    )

    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    employee_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    number_of_participants: Mapped[int | None] = mapped_column(Integer, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class TrainingAllocation(AllocationColumns, TrackedBase):
    __tablename__ = "training_allocations"

    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("training_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class TravelItem(TrackedBase):
    __tablename__ = "travel_items"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "name", name="uq_travel_item_fy_name"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    travel_authorization_number: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    destination: Mapped[str | None] = mapped_column(String(255), nullable=True)

    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)

    estimated_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    actual_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlannedItemStatus.PLANNED.value
    )

    travel_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TravelType.OTHER.value
    )

    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    departure_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    return_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    traveller_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    number_of_travellers: Mapped[int | None] = mapped_column(Integer, nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class TravelAllocation(AllocationColumns, TrackedBase):
    __tablename__ = "travel_allocations"

    item_id: Mapped[UUID] = mapped_column(
        ForeignKey("travel_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
