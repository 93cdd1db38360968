"""ORM models for the budget kernel."""

from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.models.line_items import (
    FundingAllocation,
    FundingItem,
    SpendingAllocation,
    SpendingEvent,
    SpendingInvoice,
    SpendingInvoiceFile,
    SpendingItem,
    TrainingAllocation,
    TrainingItem,
    TravelAllocation,
    TravelItem,
)
from budget_kernel.models.organization import FiscalYear, ResponsibilityCentre
from budget_kernel.models.procurement import (
    ProcurementEvent,
    ProcurementEventFile,
    ProcurementItem,
    ProcurementQuote,
    ProcurementQuoteFile,
)
from budget_kernel.models.reference_data import Category, MoneyType, SpendingCategory

# One table per entity kind of the aggregate.
MODEL_BY_KIND: dict[EntityKind, type] = {
    EntityKind.FISCAL_YEAR: FiscalYear,
    EntityKind.MONEY_TYPE: MoneyType,
    EntityKind.CATEGORY: Category,
    EntityKind.SPENDING_CATEGORY: SpendingCategory,
    EntityKind.PROCUREMENT_ITEM: ProcurementItem,
    EntityKind.PROCUREMENT_QUOTE: ProcurementQuote,
    EntityKind.PROCUREMENT_QUOTE_FILE: ProcurementQuoteFile,
    EntityKind.PROCUREMENT_EVENT: ProcurementEvent,
    EntityKind.PROCUREMENT_EVENT_FILE: ProcurementEventFile,
    EntityKind.FUNDING_ITEM: FundingItem,
    EntityKind.FUNDING_ALLOCATION: FundingAllocation,
    EntityKind.SPENDING_ITEM: SpendingItem,
    EntityKind.SPENDING_ALLOCATION: SpendingAllocation,
    EntityKind.SPENDING_EVENT: SpendingEvent,
    EntityKind.SPENDING_INVOICE: SpendingInvoice,
    EntityKind.SPENDING_INVOICE_FILE: SpendingInvoiceFile,
    EntityKind.TRAINING_ITEM: TrainingItem,
    EntityKind.TRAINING_ALLOCATION: TrainingAllocation,
    EntityKind.TRAVEL_ITEM: TravelItem,
    EntityKind.TRAVEL_ALLOCATION: TravelAllocation,
}

__all__ = [
    "MODEL_BY_KIND",
    "ResponsibilityCentre",
    "FiscalYear",
    "MoneyType",
    "Category",
    "SpendingCategory",
    "ProcurementItem",
    "ProcurementQuote",
    "ProcurementQuoteFile",
    "ProcurementEvent",
    "ProcurementEventFile",
    "FundingItem",
    "FundingAllocation",
    "SpendingItem",
    "SpendingAllocation",
    "SpendingEvent",
    "SpendingInvoice",
    "SpendingInvoiceFile",
    "TrainingItem",
    "TrainingAllocation",
    "TravelItem",
    "TravelAllocation",
]
