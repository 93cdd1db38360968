"""
Typed Exception Hierarchy for the Budget Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Duplication callers must tell apart "the fiscal year does not exist",
"an item name is already taken" and "the database failed" without parsing
message strings:
  - Every error has a TYPED exception class (catch by type, not message)
  - Every exception has a CODE attribute (machine-readable, API-safe)
  - Exceptions carry structured DATA (ids, kinds, names), not just a message

Example:
    try:
        driver.clone(source_fy_id, "FY 2026-2027", target_rc_id, actor_id)
    except DuplicateNameError as e:
        api_response(code=e.code, field=e.field, value=e.value)
    except StorageError as e:
        log.error("clone_failed", extra={"code": e.code})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BudgetKernelError (base)
    |
    +-- NotFoundError
    |   +-- ResponsibilityCentreNotFoundError
    |   +-- FiscalYearNotFoundError
    |   +-- ParentNotFoundError
    |   +-- RecordNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidNameError
    |   +-- DuplicateNameError
    |   +-- InvalidAllocationError
    |   +-- UnresolvedReferenceError
    |   +-- AmbiguousReferenceError
    |   +-- AttachmentSizeMismatchError
    |   +-- AttachmentTooLargeError
    |   +-- SnapshotFormatError
    |
    +-- StorageError
    |   +-- ContentUnavailableError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                        | When Raised
------------|-----------------------------|-----------------------------------------
Not found   | RESPONSIBILITY_CENTRE_NOT_FOUND | Centre id doesn't exist
            | FISCAL_YEAR_NOT_FOUND       | Source or target fiscal year missing
            | PARENT_NOT_FOUND            | Parent row missing when creating a child
            | RECORD_NOT_FOUND            | Generic lookup miss
------------|-----------------------------|-----------------------------------------
Validation  | INVALID_NAME                | Blank name
            | DUPLICATE_NAME              | Natural key already used in the parent
            | INVALID_ALLOCATION          | Negative cap/O&M amount
            | UNRESOLVED_REFERENCE        | Required cross-reference has no target
            | AMBIGUOUS_REFERENCE         | Snapshot reference matches two targets
            | ATTACHMENT_SIZE_MISMATCH    | Declared size != payload length
            | ATTACHMENT_TOO_LARGE        | Payload above configured limit
            | SNAPSHOT_FORMAT_ERROR       | Malformed or unsupported snapshot
------------|-----------------------------|-----------------------------------------
Storage     | STORAGE_FAILURE             | Store reported an error
            | CONTENT_UNAVAILABLE         | Binary payload could not be read
------------|-----------------------------|-----------------------------------------
Config      | CONFIGURATION_ERROR         | Settings file/environment invalid

===============================================================================
"""


class BudgetKernelError(Exception):
    """
    Base exception for all budget kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BUDGET_KERNEL_ERROR"


# Not-found errors


class NotFoundError(BudgetKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ResponsibilityCentreNotFoundError(NotFoundError):
    """Responsibility centre with given ID was not found."""

    code: str = "RESPONSIBILITY_CENTRE_NOT_FOUND"

    def __init__(self, responsibility_centre_id: str):
        self.responsibility_centre_id = responsibility_centre_id
        super().__init__(
            f"Responsibility centre not found: {responsibility_centre_id}"
        )


class FiscalYearNotFoundError(NotFoundError):
    """Fiscal year with given ID was not found (or not in the expected centre)."""

    code: str = "FISCAL_YEAR_NOT_FOUND"

    def __init__(self, fiscal_year_id: str, responsibility_centre_id: str | None = None):
        self.fiscal_year_id = fiscal_year_id
        self.responsibility_centre_id = responsibility_centre_id
        if responsibility_centre_id is None:
            message = f"Fiscal year not found: {fiscal_year_id}"
        else:
            message = (
                f"Fiscal year {fiscal_year_id} not found in responsibility "
                f"centre {responsibility_centre_id}"
            )
        super().__init__(message)


class ParentNotFoundError(NotFoundError):
    """The parent row a new child must attach to does not exist."""

    code: str = "PARENT_NOT_FOUND"

    def __init__(self, kind: str, parent_kind: str, parent_id: str):
        self.kind = kind
        self.parent_kind = parent_kind
        self.parent_id = parent_id
        super().__init__(
            f"Cannot create {kind}: parent {parent_kind} {parent_id} not found"
        )


class RecordNotFoundError(NotFoundError):
    """Record of the given kind and ID was not found."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


# Validation errors


class ValidationError(BudgetKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_FAILED"


class InvalidNameError(ValidationError):
    """A required name is missing or blank."""

    code: str = "INVALID_NAME"

    def __init__(self, kind: str, value: str | None):
        self.kind = kind
        self.value = value
        super().__init__(f"A non-blank name is required for {kind}")


class DuplicateNameError(ValidationError):
    """A record with the same natural key already exists under the parent."""

    code: str = "DUPLICATE_NAME"

    def __init__(self, kind: str, field: str, value: str, parent_id: str | None):
        self.kind = kind
        self.field = field
        self.value = value
        self.parent_id = parent_id
        super().__init__(
            f"A {kind} with {field} '{value}' already exists in {parent_id}"
        )


class InvalidAllocationError(ValidationError):
    """Money allocation amounts are negative."""

    code: str = "INVALID_ALLOCATION"

    def __init__(self, kind: str, cap_amount: str, om_amount: str):
        self.kind = kind
        self.cap_amount = cap_amount
        self.om_amount = om_amount
        super().__init__(
            f"{kind} amounts must be non-negative (cap={cap_amount}, om={om_amount})"
        )


class UnresolvedReferenceError(ValidationError):
    """A required cross-reference could not be resolved in the new graph."""

    code: str = "UNRESOLVED_REFERENCE"

    def __init__(self, kind: str, field: str, referenced_kind: str, key: str):
        self.kind = kind
        self.field = field
        self.referenced_kind = referenced_kind
        self.key = key
        super().__init__(
            f"{kind}.{field} references {referenced_kind} '{key}' "
            f"which does not exist in the target graph"
        )


class AmbiguousReferenceError(ValidationError):
    """A snapshot reference reads both as an exported id and as a list position."""

    code: str = "AMBIGUOUS_REFERENCE"

    def __init__(self, kind: str, field: str, referenced_kind: str, key: int):
        self.kind = kind
        self.field = field
        self.referenced_kind = referenced_kind
        self.key = key
        super().__init__(
            f"{kind}.{field} value {key} matches both the {referenced_kind} "
            f"exported with id '{key}' and the one at position {key}"
        )


class AttachmentSizeMismatchError(ValidationError):
    """Declared file size does not match the payload length."""

    code: str = "ATTACHMENT_SIZE_MISMATCH"

    def __init__(self, file_name: str, declared_size: int, actual_size: int):
        self.file_name = file_name
        self.declared_size = declared_size
        self.actual_size = actual_size
        super().__init__(
            f"File '{file_name}' declares {declared_size} bytes "
            f"but carries {actual_size}"
        )


class AttachmentTooLargeError(ValidationError):
    """Payload exceeds the configured attachment limit."""

    code: str = "ATTACHMENT_TOO_LARGE"

    def __init__(self, file_name: str, size: int, limit: int):
        self.file_name = file_name
        self.size = size
        self.limit = limit
        super().__init__(f"File '{file_name}' is {size} bytes; limit is {limit}")


class SnapshotFormatError(ValidationError):
    """Snapshot document is malformed or of an unsupported version."""

    code: str = "SNAPSHOT_FORMAT_ERROR"

    def __init__(self, reason: str, path: str | None = None):
        self.reason = reason
        self.path = path
        where = f" at {path}" if path else ""
        super().__init__(f"Invalid snapshot{where}: {reason}")


# Storage errors


class StorageError(BudgetKernelError):
    """The underlying store reported an error (network, constraint, I/O)."""

    code: str = "STORAGE_FAILURE"

    def __init__(self, operation: str, kind: str, detail: str):
        self.operation = operation
        self.kind = kind
        self.detail = detail
        super().__init__(f"Storage failure during {operation} of {kind}: {detail}")


class ContentUnavailableError(StorageError):
    """Binary content of an attachment could not be retrieved."""

    code: str = "CONTENT_UNAVAILABLE"

    def __init__(self, kind: str, file_id: str, detail: str):
        self.file_id = file_id
        super().__init__("read_content", kind, detail)


# Configuration errors


class ConfigurationError(BudgetKernelError):
    """Settings could not be loaded or failed validation."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message)
