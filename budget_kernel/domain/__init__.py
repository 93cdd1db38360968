"""
Pure domain layer.

Aggregate metadata, enumerations, immutable records and the clock.  Nothing
here touches the ORM or the database.
"""

from budget_kernel.domain.aggregate import (
    DEPENDENCY_ORDER,
    EntityKind,
    FieldSpec,
    FieldType,
    KindSpec,
    ReferenceSpec,
    child_kinds,
    cross_references,
    dependency_order,
    line_item_kinds,
    reference_data_kinds,
    spec_for,
)
from budget_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from budget_kernel.domain.records import EntityRecord

__all__ = [
    "DEPENDENCY_ORDER",
    "Clock",
    "DeterministicClock",
    "EntityKind",
    "EntityRecord",
    "FieldSpec",
    "FieldType",
    "KindSpec",
    "ReferenceSpec",
    "SystemClock",
    "child_kinds",
    "cross_references",
    "dependency_order",
    "line_item_kinds",
    "reference_data_kinds",
    "spec_for",
]
