"""
Values -- enumerations shared by the budget models and the snapshot codec.

Enum members are persisted and exported by value (the upper-case name), so
a snapshot written by one store reads back unchanged in another.
"""

from enum import Enum


class FundingType(str, Enum):
    """Which side of the budget a category accepts."""

    CAP_ONLY = "CAP_ONLY"
    OM_ONLY = "OM_ONLY"
    BOTH = "BOTH"


class Currency(str, Enum):
    """Currencies a line item may be priced in (CAD is the reporting currency)."""

    CAD = "CAD"
    GBP = "GBP"
    AUD = "AUD"
    NZD = "NZD"
    USD = "USD"
    EUR = "EUR"


class FundingSource(str, Enum):
    BUSINESS_PLAN = "BUSINESS_PLAN"
    ON_RAMP = "ON_RAMP"
    APPROVED_DEFICIT = "APPROVED_DEFICIT"


class FundingItemStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class SpendingItemStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    COMMITTED = "COMMITTED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class ProcurementItemStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_QUOTES = "PENDING_QUOTES"
    QUOTES_RECEIVED = "QUOTES_RECEIVED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    PO_ISSUED = "PO_ISSUED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class QuoteStatus(str, Enum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    SELECTED = "SELECTED"
    REJECTED = "REJECTED"


class ProcurementEventType(str, Enum):
    """Entries of the procurement status-change log."""

    NOT_STARTED = "NOT_STARTED"
    QUOTE = "QUOTE"
    SAM_ACKNOWLEDGEMENT_REQUESTED = "SAM_ACKNOWLEDGEMENT_REQUESTED"
    SAM_ACKNOWLEDGEMENT_RECEIVED = "SAM_ACKNOWLEDGEMENT_RECEIVED"
    PACKAGE_SENT_TO_PROCUREMENT = "PACKAGE_SENT_TO_PROCUREMENT"
    ACKNOWLEDGED_BY_PROCUREMENT = "ACKNOWLEDGED_BY_PROCUREMENT"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    CONTRACT_AWARDED = "CONTRACT_AWARDED"
    GOODS_RECEIVED = "GOODS_RECEIVED"
    FULL_INVOICE_RECEIVED = "FULL_INVOICE_RECEIVED"
    PARTIAL_INVOICE_RECEIVED = "PARTIAL_INVOICE_RECEIVED"
    MONTHLY_INVOICE_RECEIVED = "MONTHLY_INVOICE_RECEIVED"
    FULL_INVOICE_SIGNED = "FULL_INVOICE_SIGNED"
    PARTIAL_INVOICE_SIGNED = "PARTIAL_INVOICE_SIGNED"
    MONTHLY_INVOICE_SIGNED = "MONTHLY_INVOICE_SIGNED"
    CONTRACT_AMENDED = "CONTRACT_AMENDED"


class SpendingEventType(str, Enum):
    """Entries of the spending approval log."""

    PENDING = "PENDING"
    ECO_REQUESTED = "ECO_REQUESTED"
    ECO_RECEIVED = "ECO_RECEIVED"
    EXTERNAL_APPROVAL_REQUESTED = "EXTERNAL_APPROVAL_REQUESTED"
    EXTERNAL_APPROVAL_RECEIVED = "EXTERNAL_APPROVAL_RECEIVED"
    RECEIVED_GOODS_SERVICES = "RECEIVED_GOODS_SERVICES"
    CREDIT_CARD_CLEARED = "CREDIT_CARD_CLEARED"
    CANCELLED = "CANCELLED"
    ON_HOLD = "ON_HOLD"


class PlannedItemStatus(str, Enum):
    """Lifecycle shared by training and travel items."""

    PLANNED = "PLANNED"
    APPROVED = "APPROVED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TrainingType(str, Enum):
    COURSE = "COURSE"
    CONFERENCE = "CONFERENCE"
    CERTIFICATION = "CERTIFICATION"
    WORKSHOP = "WORKSHOP"
    SEMINAR = "SEMINAR"
    ONLINE = "ONLINE"
    OTHER = "OTHER"


class TravelType(str, Enum):
    DOMESTIC = "DOMESTIC"
    INTERNATIONAL = "INTERNATIONAL"
    LOCAL = "LOCAL"
    CONFERENCE = "CONFERENCE"
    TRAINING = "TRAINING"
    OTHER = "OTHER"
