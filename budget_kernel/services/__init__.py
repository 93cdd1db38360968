"""Kernel services: storage collaborator and fiscal-year CRUD."""

from budget_kernel.services.base import BaseService
from budget_kernel.services.fiscal_year_service import FiscalYearService
from budget_kernel.services.repositories import (
    DEFAULT_MAX_ATTACHMENT_BYTES,
    AttachmentRepository,
    Repository,
    RepositoryRegistry,
)

__all__ = [
    "BaseService",
    "FiscalYearService",
    "Repository",
    "AttachmentRepository",
    "RepositoryRegistry",
    "DEFAULT_MAX_ATTACHMENT_BYTES",
]
