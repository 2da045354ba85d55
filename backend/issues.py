"""
Structured validation errors.

Validators never raise for bad input; they return lists of ValidationIssue.
Only ingestion failures (unreadable file, unsupported type) are exceptions.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ErrorKind(str, Enum):
    FIELD = "field"                # single attribute fails a rule
    CROSS_FIELD = "cross_field"    # geo flags / date ordering
    REFERENCE = "reference"        # dangling survey or parent reference
    STRUCTURAL = "structural"      # table syntax, child-mapping conflicts


class ValidationIssue(BaseModel):
    field: str
    message: str
    value: Any = ""
    kind: ErrorKind = ErrorKind.FIELD
    row: Optional[int] = None
    sheet: Optional[str] = None

    def at(self, row: int, sheet: str) -> "ValidationIssue":
        """Copy of this issue tagged with a spreadsheet position."""
        return self.model_copy(update={"row": row, "sheet": sheet})


class ValidationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    is_valid: bool
    errors: List[ValidationIssue] = []

    @classmethod
    def of(cls, errors: List[ValidationIssue]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=errors)


class BulkSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    total_rows: int
    error_rows: int
    total_errors: int


class BulkReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    is_valid: bool
    summary: BulkSummary
    errors: List[ValidationIssue] = []


class IngestError(Exception):
    """Raised when an uploaded file cannot be read as survey sheets."""
    pass


def issue(field: str, message: str, value: Any = "", kind: ErrorKind = ErrorKind.FIELD) -> ValidationIssue:
    if value is None:
        value = ""
    return ValidationIssue(field=field, message=message, value=value, kind=kind)
