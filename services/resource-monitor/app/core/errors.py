"""
Resource Monitor — Error taxonomy

Every failure a resource operation can report is an exception tagged with an
ErrorKind, so callers branch on the kind instead of comparing sentinel strings.
"Not found" on a single-resource read is NOT an error: get_by_id returns None.
"""
from enum import Enum as PyEnum


class ErrorKind(str, PyEnum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORAGE_FAULT = "storage_fault"


class ResourceError(Exception):
    kind: ErrorKind = ErrorKind.STORAGE_FAULT
    code: str = "RESOURCE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ── Invalid input (nothing touched storage) ────────────────────────────────────
class InvalidInput(ResourceError):
    kind = ErrorKind.INVALID_INPUT
    code = "INVALID_INPUT"


class MissingField(InvalidInput):
    code = "MISSING_FIELD"


class InvalidQuantity(InvalidInput):
    code = "INVALID_QUANTITY"


class InvalidCategory(InvalidInput):
    code = "INVALID_CATEGORY"


# ── Not found ──────────────────────────────────────────────────────────────────
class NotFound(ResourceError):
    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"


class ResourceNotFound(NotFound):
    code = "RESOURCE_NOT_FOUND"


class TypeNotFound(NotFound):
    code = "RESOURCE_TYPE_NOT_FOUND"


# ── Conflict ───────────────────────────────────────────────────────────────────
class Conflict(ResourceError):
    kind = ErrorKind.CONFLICT
    code = "CONFLICT"


class AlreadyExists(Conflict):
    code = "RESOURCE_ALREADY_EXISTS"


# ── Storage ────────────────────────────────────────────────────────────────────
class StorageFault(ResourceError):
    """The transactional store failed; any partial write was rolled back."""
    kind = ErrorKind.STORAGE_FAULT
    code = "STORAGE_FAULT"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORAGE_FAULT: 500,
}
