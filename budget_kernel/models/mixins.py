"""
Module: budget_kernel.models.mixins
Responsibility: Column groups shared by several tables -- money allocations
    (one table per owning line-item kind) and file attachments (one table per
    owning record kind).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Allocation amounts are Numeric(38, 9) and default to zero.
    - Attachment payloads are deferred: listing attachments never loads blobs.
      The payload is only read through AttachmentRepository.read_content().
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column


class AllocationColumns:
    """Capital / operating split against one money type of the same fiscal year."""

    money_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("money_types.id"),
        nullable=False,
        index=True,
    )

    cap_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    om_amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )


class AttachmentColumns:
    """File metadata plus binary payload; declared size must equal len(content)."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    content: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
        deferred=True,
    )
