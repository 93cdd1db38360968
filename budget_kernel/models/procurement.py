"""
Module: budget_kernel.models.procurement
Responsibility: ORM persistence for procurement items, their vendor quotes,
    their status-change events, and the files attached to quotes and events.
Architecture position: Kernel > Models.  May import from db/base.py,
    domain/values.py and models/mixins.py only.

Invariants enforced:
    - Procurement item names are unique within a fiscal year.
    - Quotes and events belong to exactly one procurement item; files belong
      to exactly one quote or event.  Every owner link cascades on delete.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase
from budget_kernel.domain.values import (
    Currency,
    ProcurementEventType,
    ProcurementItemStatus,
    QuoteStatus,
)
from budget_kernel.models.mixins import AttachmentColumns


class ProcurementItem(TrackedBase):
    """A purchase tracked from requisition through contract award."""

    __tablename__ = "procurement_items"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "name", name="uq_procurement_item_fy_name"),
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

    purchase_requisition: Mapped[str | None] = mapped_column(String(100), nullable=True)

    purchase_order: Mapped[str | None] = mapped_column(String(100), nullable=True)

    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)

    contract_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    contract_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    contract_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ProcurementItemStatus.DRAFT.value
    )

    quoted_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    quoted_price_currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    final_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    final_price_currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    procurement_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    procurement_completed_date: Mapped[date | None] = mapped_column(
        Date, nullable=True
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ProcurementItem {self.name} ({self.status})>"


class ProcurementQuote(TrackedBase):
    """Vendor quote received for a procurement item."""

    __tablename__ = "procurement_quotes"

    procurement_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("procurement_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)

    vendor_contact: Mapped[str | None] = mapped_column(String(255), nullable=True)

    quote_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    amount_cap: Mapped[Decimal | None] = mapped_column(nullable=True)

    amount_om: Mapped[Decimal | None] = mapped_column(nullable=True)

    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.CAD.value
    )

    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    received_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=QuoteStatus.PENDING.value
    )

    selected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ProcurementQuoteFile(AttachmentColumns, TrackedBase):
    __tablename__ = "procurement_quote_files"

    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("procurement_quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class ProcurementEvent(TrackedBase):
    """Timestamped status-change entry in a procurement item's log."""

    __tablename__ = "procurement_events"

    procurement_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("procurement_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    event_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ProcurementEventType.NOT_STARTED.value
    )

    event_date: Mapped[date] = mapped_column(Date, nullable=False)

    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    old_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    new_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Display name of whoever logged the event (kept verbatim on copy)
    recorded_by: Mapped[str | None] = mapped_column(String(100), nullable=True)


class ProcurementEventFile(AttachmentColumns, TrackedBase):
    __tablename__ = "procurement_event_files"

    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("procurement_events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
