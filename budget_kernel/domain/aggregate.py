"""
Aggregate -- typed description of the fiscal-year aggregate.

Responsibility:
    Declares, for every entity kind in a fiscal year, its parent kind, its
    scalar fields, its cross-reference fields and how it appears inside a
    snapshot document.  Both duplication drivers consume this table, so the
    traversal order and the set of references to rewrite are defined once.

Architecture position:
    Kernel > Domain -- pure metadata, zero I/O.  Imported by the storage
    layer (to map records to rows) and by ``budget_duplication``.

Invariants enforced:
    - DEPENDENCY_ORDER lists every kind exactly once, each parent before its
      children and each referenced kind before the kinds that reference it.
      Checked at import time; a violation raises RuntimeError.
    - ProcurementItem precedes SpendingItem because a spending item may point
      at a procurement item of the same fiscal year.

Failure modes:
    - KeyError from spec_for() for a kind that is not registered.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from budget_kernel.domain.values import (
    Currency,
    FundingSource,
    FundingItemStatus,
    FundingType,
    PlannedItemStatus,
    ProcurementEventType,
    ProcurementItemStatus,
    QuoteStatus,
    SpendingEventType,
    SpendingItemStatus,
    TrainingType,
    TravelType,
)


class EntityKind(str, Enum):
    """Every record type that belongs to a fiscal-year aggregate."""

    FISCAL_YEAR = "fiscal_year"
    MONEY_TYPE = "money_type"
    CATEGORY = "category"
    SPENDING_CATEGORY = "spending_category"
    PROCUREMENT_ITEM = "procurement_item"
    PROCUREMENT_QUOTE = "procurement_quote"
    PROCUREMENT_QUOTE_FILE = "procurement_quote_file"
    PROCUREMENT_EVENT = "procurement_event"
    PROCUREMENT_EVENT_FILE = "procurement_event_file"
    FUNDING_ITEM = "funding_item"
    FUNDING_ALLOCATION = "funding_allocation"
    SPENDING_ITEM = "spending_item"
    SPENDING_ALLOCATION = "spending_allocation"
    SPENDING_EVENT = "spending_event"
    SPENDING_INVOICE = "spending_invoice"
    SPENDING_INVOICE_FILE = "spending_invoice_file"
    TRAINING_ITEM = "training_item"
    TRAINING_ALLOCATION = "training_allocation"
    TRAVEL_ITEM = "travel_item"
    TRAVEL_ALLOCATION = "travel_allocation"

    @property
    def camel_name(self) -> str:
        """``funding_item`` -> ``fundingItem`` (snapshot count keys)."""
        head, *rest = self.value.split("_")
        return head + "".join(part.capitalize() for part in rest)


class FieldType(str, Enum):
    STRING = "string"
    TEXT = "text"
    DECIMAL = "decimal"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"


@dataclass(frozen=True)
class FieldSpec:
    """A plain data field copied verbatim by every duplication."""

    name: str
    field_type: FieldType
    enum_type: type[Enum] | None = None


@dataclass(frozen=True)
class ReferenceSpec:
    """
    A cross-reference field that must be rewritten into the new graph.

    ``snapshot_key`` is the document key carrying the reference in a
    snapshot; ``natural_field`` is the field of the referenced record whose
    value is written there (None means the referenced record's id).
    """

    field: str
    kind: EntityKind
    required: bool
    snapshot_key: str
    natural_field: str | None = None


@dataclass(frozen=True)
class KindSpec:
    """
    Everything the drivers need to know about one entity kind.

    Guarantees:
        - parent_kind is None only for FISCAL_YEAR (whose parent is a
          responsibility centre, outside the aggregate).
        - natural_key fields are unique among siblings under one parent.
        - order_by gives a stable sibling order (the record id breaks ties).
          A dotted entry names a column of the record a reference points
          at, so allocations list in money-type order.
    """

    kind: EntityKind
    parent_kind: EntityKind | None
    parent_field: str
    fields: tuple[FieldSpec, ...]
    collection: str
    wrapper: str | None = None
    references: tuple[ReferenceSpec, ...] = ()
    natural_key: tuple[str, ...] = ()
    order_by: tuple[str, ...] = ()
    has_payload: bool = False
    non_negative: tuple[str, ...] = ()
    label_field: str | None = "name"

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.kind.value} has no field {name!r}")

    def reference(self, field: str) -> ReferenceSpec:
        for ref in self.references:
            if ref.field == field:
                return ref
        raise KeyError(f"{self.kind.value} has no reference {field!r}")


# ---------------------------------------------------------------------------
# Field building blocks
# ---------------------------------------------------------------------------

_STR, _TEXT, _DEC, _INT, _BOOL, _DATE, _ENUM = (
    FieldType.STRING,
    FieldType.TEXT,
    FieldType.DECIMAL,
    FieldType.INTEGER,
    FieldType.BOOLEAN,
    FieldType.DATE,
    FieldType.ENUM,
)


def _f(name: str, field_type: FieldType, enum_type: type[Enum] | None = None) -> FieldSpec:
    return FieldSpec(name, field_type, enum_type)


_CATEGORY_REF = ReferenceSpec(
    "category_id", EntityKind.CATEGORY, False, "categoryName", "name"
)
_MONEY_REF = ReferenceSpec(
    "money_type_id", EntityKind.MONEY_TYPE, True, "moneyCode", "code"
)

_CLASSIFIER_FIELDS = (
    _f("name", _STR),
    _f("description", _TEXT),
    _f("is_default", _BOOL),
    _f("display_order", _INT),
    _f("funding_type", _ENUM, FundingType),
    _f("active", _BOOL),
)

_FILE_FIELDS = (
    _f("name", _STR),
    _f("content_type", _STR),
    _f("size", _INT),
    _f("description", _TEXT),
)

_ALLOCATION_FIELDS = (_f("cap_amount", _DEC), _f("om_amount", _DEC))


def _allocation(kind: EntityKind, owner: EntityKind) -> KindSpec:
    return KindSpec(
        kind=kind,
        parent_kind=owner,
        parent_field="item_id",
        fields=_ALLOCATION_FIELDS,
        collection="moneyAllocations",
        references=(_MONEY_REF,),
        order_by=("money_type_id.display_order", "money_type_id.code"),
        non_negative=("cap_amount", "om_amount"),
        label_field=None,
    )


def _attachment(kind: EntityKind, owner: EntityKind) -> KindSpec:
    return KindSpec(
        kind=kind,
        parent_kind=owner,
        parent_field="owner_id",
        fields=_FILE_FIELDS,
        collection="files",
        order_by=("name",),
        has_payload=True,
    )


# ---------------------------------------------------------------------------
# Kind table
# ---------------------------------------------------------------------------

_SPECS: tuple[KindSpec, ...] = (
    KindSpec(
        kind=EntityKind.FISCAL_YEAR,
        parent_kind=None,
        parent_field="responsibility_centre_id",
        fields=(
            _f("name", _STR),
            _f("description", _TEXT),
            _f("active", _BOOL),
            _f("show_search_box", _BOOL),
            _f("show_category_filter", _BOOL),
            _f("group_by_category", _BOOL),
            _f("on_target_min", _INT),
            _f("on_target_max", _INT),
        ),
        collection="fiscalYears",
        natural_key=("name",),
        order_by=("name",),
    ),
    KindSpec(
        kind=EntityKind.MONEY_TYPE,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=(
            _f("code", _STR),
            _f("name", _STR),
            _f("description", _TEXT),
            _f("is_default", _BOOL),
            _f("display_order", _INT),
            _f("active", _BOOL),
        ),
        collection="moneyTypes",
        natural_key=("code",),
        order_by=("display_order", "code"),
        label_field="code",
    ),
    KindSpec(
        kind=EntityKind.CATEGORY,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=_CLASSIFIER_FIELDS,
        collection="categories",
        natural_key=("name",),
        order_by=("display_order", "name"),
    ),
    KindSpec(
        kind=EntityKind.SPENDING_CATEGORY,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=_CLASSIFIER_FIELDS,
        collection="spendingCategories",
        natural_key=("name",),
        order_by=("display_order", "name"),
    ),
    KindSpec(
        kind=EntityKind.PROCUREMENT_ITEM,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=(
            _f("name", _STR),
            _f("description", _TEXT),
            _f("purchase_requisition", _STR),
            _f("purchase_order", _STR),
            _f("vendor", _STR),
            _f("contract_number", _STR),
            _f("contract_start_date", _DATE),
            _f("contract_end_date", _DATE),
            _f("status", _ENUM, ProcurementItemStatus),
            _f("quoted_price", _DEC),
            _f("quoted_price_currency", _ENUM, Currency),
            _f("final_price", _DEC),
            _f("final_price_currency", _ENUM, Currency),
            _f("procurement_completed", _BOOL),
            _f("procurement_completed_date", _DATE),
            _f("active", _BOOL),
        ),
        collection="procurementItems",
        wrapper="item",
        references=(_CATEGORY_REF,),
        natural_key=("name",),
        order_by=("name",),
    ),
    KindSpec(
        kind=EntityKind.PROCUREMENT_QUOTE,
        parent_kind=EntityKind.PROCUREMENT_ITEM,
        parent_field="procurement_item_id",
        fields=(
            _f("vendor_name", _STR),
            _f("vendor_contact", _STR),
            _f("quote_reference", _STR),
            _f("amount", _DEC),
            _f("amount_cap", _DEC),
            _f("amount_om", _DEC),
            _f("currency", _ENUM, Currency),
            _f("exchange_rate", _DEC),
            _f("received_date", _DATE),
            _f("expiry_date", _DATE),
            _f("notes", _TEXT),
            _f("status", _ENUM, QuoteStatus),
            _f("selected", _BOOL),
        ),
        collection="quotes",
        wrapper="quote",
        order_by=("vendor_name",),
        label_field="vendor_name",
    ),
    _attachment(EntityKind.PROCUREMENT_QUOTE_FILE, EntityKind.PROCUREMENT_QUOTE),
    KindSpec(
        kind=EntityKind.PROCUREMENT_EVENT,
        parent_kind=EntityKind.PROCUREMENT_ITEM,
        parent_field="procurement_item_id",
        fields=(
            _f("event_type", _ENUM, ProcurementEventType),
            _f("event_date", _DATE),
            _f("comment", _TEXT),
            _f("old_status", _STR),
            _f("new_status", _STR),
            _f("recorded_by", _STR),
        ),
        collection="events",
        wrapper="event",
        order_by=("event_date",),
        label_field="event_type",
    ),
    _attachment(EntityKind.PROCUREMENT_EVENT_FILE, EntityKind.PROCUREMENT_EVENT),
    KindSpec(
        kind=EntityKind.FUNDING_ITEM,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=(
            _f("name", _STR),
            _f("description", _TEXT),
            _f("source", _ENUM, FundingSource),
            _f("comments", _TEXT),
            _f("status", _ENUM, FundingItemStatus),
            _f("currency", _ENUM, Currency),
            _f("exchange_rate", _DEC),
            _f("active", _BOOL),
        ),
        collection="fundingItems",
        wrapper="item",
        references=(_CATEGORY_REF,),
        natural_key=("name",),
        order_by=("name",),
    ),
    _allocation(EntityKind.FUNDING_ALLOCATION, EntityKind.FUNDING_ITEM),
    KindSpec(
        kind=EntityKind.SPENDING_ITEM,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=(
            _f("name", _STR),
            _f("description", _TEXT),
            _f("vendor", _STR),
            _f("reference_number", _STR),
            _f("amount", _DEC),
            _f("status", _ENUM, SpendingItemStatus),
            _f("currency", _ENUM, Currency),
            _f("exchange_rate", _DEC),
            _f("active", _BOOL),
        ),
        collection="spendingItems",
        wrapper="item",
        references=(
            _CATEGORY_REF,
            ReferenceSpec(
                "procurement_item_id",
                EntityKind.PROCUREMENT_ITEM,
                False,
                "procurementItemRef",
            ),
        ),
        natural_key=("name",),
        order_by=("name",),
    ),
    _allocation(EntityKind.SPENDING_ALLOCATION, EntityKind.SPENDING_ITEM),
    KindSpec(
        kind=EntityKind.SPENDING_EVENT,
        parent_kind=EntityKind.SPENDING_ITEM,
        parent_field="spending_item_id",
        fields=(
            _f("event_type", _ENUM, SpendingEventType),
            _f("event_date", _DATE),
            _f("comment", _TEXT),
            _f("recorded_by", _STR),
        ),
        collection="events",
        order_by=("event_date",),
        label_field="event_type",
    ),
    KindSpec(
        kind=EntityKind.SPENDING_INVOICE,
        parent_kind=EntityKind.SPENDING_ITEM,
        parent_field="spending_item_id",
        fields=(
            _f("date_received", _DATE),
            _f("date_processed", _DATE),
            _f("comments", _TEXT),
            _f("amount", _DEC),
            _f("currency", _ENUM, Currency),
            _f("exchange_rate", _DEC),
            _f("amount_cad", _DEC),
        ),
        collection="invoices",
        wrapper="invoice",
        order_by=("date_received",),
        label_field=None,
    ),
    _attachment(EntityKind.SPENDING_INVOICE_FILE, EntityKind.SPENDING_INVOICE),
    KindSpec(
        kind=EntityKind.TRAINING_ITEM,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=(
            _f("name", _STR),
            _f("description", _TEXT),
            _f("provider", _STR),
            _f("reference_number", _STR),
            _f("estimated_cost", _DEC),
            _f("actual_cost", _DEC),
            _f("status", _ENUM, PlannedItemStatus),
            _f("training_type", _ENUM, TrainingType),
            _f("currency", _ENUM, Currency),
            _f("exchange_rate", _DEC),
            _f("start_date", _DATE),
            _f("end_date", _DATE),
            _f("location", _STR),
            _f("employee_name", _STR),
            _f("number_of_participants", _INT),
            _f("active", _BOOL),
        ),
        collection="trainingItems",
        wrapper="item",
        references=(_CATEGORY_REF,),
        natural_key=("name",),
        order_by=("name",),
    ),
    _allocation(EntityKind.TRAINING_ALLOCATION, EntityKind.TRAINING_ITEM),
    KindSpec(
        kind=EntityKind.TRAVEL_ITEM,
        parent_kind=EntityKind.FISCAL_YEAR,
        parent_field="fiscal_year_id",
        fields=(
            _f("name", _STR),
            _f("description", _TEXT),
            _f("travel_authorization_number", _STR),
            _f("reference_number", _STR),
            _f("destination", _STR),
            _f("purpose", _TEXT),
            _f("estimated_cost", _DEC),
            _f("actual_cost", _DEC),
            _f("status", _ENUM, PlannedItemStatus),
            _f("travel_type", _ENUM, TravelType),
            _f("currency", _ENUM, Currency),
            _f("exchange_rate", _DEC),
            _f("departure_date", _DATE),
            _f("return_date", _DATE),
            _f("traveller_name", _STR),
            _f("number_of_travellers", _INT),
            _f("active", _BOOL),
        ),
        collection="travelItems",
        wrapper="item",
        references=(_CATEGORY_REF,),
        natural_key=("name",),
        order_by=("name",),
    ),
    _allocation(EntityKind.TRAVEL_ALLOCATION, EntityKind.TRAVEL_ITEM),
)

DEPENDENCY_ORDER: tuple[EntityKind, ...] = tuple(spec.kind for spec in _SPECS)

_BY_KIND: dict[EntityKind, KindSpec] = {spec.kind: spec for spec in _SPECS}

_LINE_ITEM_KINDS = (
    EntityKind.FUNDING_ITEM,
    EntityKind.SPENDING_ITEM,
    EntityKind.PROCUREMENT_ITEM,
    EntityKind.TRAINING_ITEM,
    EntityKind.TRAVEL_ITEM,
)


def spec_for(kind: EntityKind) -> KindSpec:
    """Return the KindSpec registered for ``kind``."""
    return _BY_KIND[kind]


def dependency_order() -> tuple[EntityKind, ...]:
    """Every kind, parents and referenced kinds first."""
    return DEPENDENCY_ORDER


def child_kinds(kind: EntityKind) -> tuple[EntityKind, ...]:
    """Direct child kinds of ``kind``, in dependency order."""
    return tuple(k for k in DEPENDENCY_ORDER if _BY_KIND[k].parent_kind == kind)


def cross_references(kind: EntityKind) -> tuple[ReferenceSpec, ...]:
    """Cross-reference fields of ``kind`` (the parent link is not included)."""
    return _BY_KIND[kind].references


def line_item_kinds() -> tuple[EntityKind, ...]:
    """Line-item kinds, in dependency order."""
    return tuple(k for k in DEPENDENCY_ORDER if k in _LINE_ITEM_KINDS)


def reference_data_kinds() -> tuple[EntityKind, ...]:
    """Fiscal-year children that are not line items (money types, categories)."""
    return tuple(
        k for k in child_kinds(EntityKind.FISCAL_YEAR) if k not in _LINE_ITEM_KINDS
    )


def _check_order() -> None:
    seen: set[EntityKind] = set()
    for kind in DEPENDENCY_ORDER:
        spec = _BY_KIND[kind]
        if spec.parent_kind is not None and spec.parent_kind not in seen:
            raise RuntimeError(f"{kind.value} is ordered before its parent")
        for ref in spec.references:
            if ref.kind not in seen:
                raise RuntimeError(
                    f"{kind.value}.{ref.field} is ordered before {ref.kind.value}"
                )
        seen.add(kind)
    if seen != set(EntityKind):
        missing = sorted(k.value for k in set(EntityKind) - seen)
        raise RuntimeError(f"Kinds missing from dependency order: {missing}")


_check_order()
