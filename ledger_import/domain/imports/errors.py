"""
Domain exceptions raised by the bulk import engine.

Row-level problems never raise; they are collected as ``FieldError`` values.
These exceptions cover structural failures of a whole upload and misuse of
the correction workflow.
"""
from typing import List, Optional


class ImportStructureError(Exception):
    """The uploaded table cannot be processed at all (empty file, no header row)."""

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        self.message = message or reason
        super().__init__(self.message)


class HeaderMappingError(ImportStructureError):
    """None of the schema's required fields could be matched to a header."""

    def __init__(self, entity_kind: str, missing: List[str], required: List[str]):
        self.entity_kind = entity_kind
        self.missing = list(missing)
        self.required = list(required)
        message = (
            f"Missing required headers: {', '.join(self.missing)}. "
            f"Required headers: {', '.join(self.required)}"
        )
        super().__init__("missing_required_headers", message)


class UnknownEntityError(Exception):
    def __init__(self, entity_kind: str, message: Optional[str] = None):
        self.entity_kind = entity_kind
        self.message = message or f"Unknown import entity '{entity_kind}'"
        super().__init__(self.message)


class InvalidTransitionError(Exception):
    """A correction candidate was asked to do something its current state forbids."""

    def __init__(self, row_number: int, state: str, action: str, message: Optional[str] = None):
        self.row_number = row_number
        self.state = state
        self.action = action
        self.message = message or f"Cannot {action} row {row_number} while it is {state}"
        super().__init__(self.message)


class CandidateNotFoundError(Exception):
    def __init__(self, row_number: int, message: Optional[str] = None):
        self.row_number = row_number
        self.message = message or f"No correction candidate for row {row_number}"
        super().__init__(self.message)


class UnknownFieldError(Exception):
    def __init__(self, entity_kind: str, field: str, message: Optional[str] = None):
        self.entity_kind = entity_kind
        self.field = field
        self.message = message or f"'{field}' is not a field of {entity_kind} imports"
        super().__init__(self.message)


class BatchTimeoutError(Exception):
    """A batch transaction exceeded its time bound and was rolled back."""

    def __init__(self, elapsed_seconds: float, timeout_seconds: float, message: Optional[str] = None):
        self.elapsed_seconds = elapsed_seconds
        self.timeout_seconds = timeout_seconds
        self.message = message or (
            f"Transaction timed out after {elapsed_seconds:.1f}s (limit {timeout_seconds:.1f}s)"
        )
        super().__init__(self.message)
