"""
Fiscal-year aggregate duplication.

Clone a fiscal year inside one store, or export it to a self-contained
snapshot and import that snapshot elsewhere.  Both paths share one
remap-and-create walk (``engine``) and differ only in where node data comes
from and how a failing unit is handled.
"""

from budget_duplication.clone import CloneDriver
from budget_duplication.engine import (
    AtomicPolicy,
    DuplicationWalk,
    FailurePolicy,
    ImportItemError,
    NodeSource,
    PerItemPolicy,
    StoreSource,
)
from budget_duplication.remap import RemapMode, RemapTable
from budget_duplication.service import DuplicationService

__all__ = [
    "AtomicPolicy",
    "CloneDriver",
    "DuplicationService",
    "DuplicationWalk",
    "FailurePolicy",
    "ImportItemError",
    "NodeSource",
    "PerItemPolicy",
    "RemapMode",
    "RemapTable",
    "StoreSource",
]
