# Row-level validation of whole Survey Master / Question Master sheets
from __future__ import annotations
import logging
from collections.abc import Mapping
from typing import Dict, Iterable, List

from issues import BulkReport, BulkSummary, ValidationIssue
from spreadsheet import QUESTION_SHEET, SURVEY_SHEET, normalize_question_row, normalize_survey_row
from validation import validate_question, validate_survey
from workbook import SheetRow

logger = logging.getLogger(__name__)

SCHEMAS = ("survey", "question", "both")


def _sheet_rows(rows: Iterable, sheet: str) -> List[SheetRow]:
    out = []
    for index, row in enumerate(rows):
        if isinstance(row, SheetRow):
            out.append(row)
        else:
            out.append(SheetRow(number=index + 2, sheet=sheet, record=dict(row)))
    return out


def validate_bulk_surveys(rows: Iterable, sheet: str = SURVEY_SHEET) -> List[ValidationIssue]:
    """Validate every survey row; errors carry the row number and sheet name.

    Rows may be plain records (numbered from 2 in order) or SheetRow objects
    that already know their spreadsheet row.
    """
    errors: List[ValidationIssue] = []
    for row in _sheet_rows(rows, sheet):
        for err in validate_survey(row.record).errors:
            errors.append(err.at(row.number, row.sheet))
    return errors


def validate_bulk_questions(rows: Iterable, surveys: Iterable[Mapping] = (),
                            sheet: str = QUESTION_SHEET) -> List[ValidationIssue]:
    """Validate every question row against the surveys and all rows of the same sheet."""
    wrapped = _sheet_rows(rows, sheet)
    surveys = list(surveys)
    snapshot = [row.record for row in wrapped]
    errors: List[ValidationIssue] = []
    for row in wrapped:
        for err in validate_question(row.record, surveys, snapshot).errors:
            errors.append(err.at(row.number, row.sheet))
    return errors


def summarize(errors: List[ValidationIssue], total_rows: int) -> BulkSummary:
    error_rows = {(err.sheet, err.row) for err in errors}
    return BulkSummary(total_rows=total_rows, error_rows=len(error_rows), total_errors=len(errors))


def normalize_sheets(sheets: Mapping[str, List[SheetRow]]) -> Dict[str, List[SheetRow]]:
    """Rewrite uploaded rows to record keys (see spreadsheet.normalize_*_row)."""
    out: Dict[str, List[SheetRow]] = {}
    for sheet, normalize in ((SURVEY_SHEET, normalize_survey_row), (QUESTION_SHEET, normalize_question_row)):
        if sheet in sheets:
            out[sheet] = [SheetRow(r.number, r.sheet, normalize(r.record)) for r in sheets[sheet]]
    return out


def validate_upload(sheets: Mapping[str, List[SheetRow]], existing_surveys: Iterable[Mapping] = (),
                    schema: str = "both") -> BulkReport:
    """Validate an ingested upload.

    Args:
        sheets (Mapping): normalized rows per canonical sheet name.
        existing_surveys (Iterable[Mapping]): stored survey records.
        schema (str): "survey", "question" or "both".

    Returns:
        BulkReport: question rows are checked against the stored surveys plus
        the upload's own survey rows.

    Raises:
        ValueError: unknown schema.
    """
    if schema not in SCHEMAS:
        raise ValueError(f"schema must be one of: {', '.join(SCHEMAS)}")
    survey_rows = sheets.get(SURVEY_SHEET, [])
    question_rows = sheets.get(QUESTION_SHEET, [])

    errors: List[ValidationIssue] = []
    total = 0
    if schema in ("survey", "both"):
        errors.extend(validate_bulk_surveys(survey_rows))
        total += len(survey_rows)
    if schema in ("question", "both"):
        surveys = list(existing_surveys) + [row.record for row in survey_rows]
        errors.extend(validate_bulk_questions(question_rows, surveys))
        total += len(question_rows)

    summary = summarize(errors, total)
    logger.info("Validated %d rows (%s): %d errors in %d rows",
                total, schema, summary.total_errors, summary.error_rows)
    return BulkReport(is_valid=not errors, summary=summary, errors=errors)
