"""
Reading uploaded survey spreadsheets and writing export files.

Uploads are parsed with pandas (xlsx/xls/csv); exports are written with
openpyxl so the header row can be styled.
"""
from __future__ import annotations
import io
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from issues import IngestError
from spreadsheet import QUESTION_HEADER_MAP, QUESTION_SHEET, SURVEY_HEADER_MAP, SURVEY_SHEET

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xls")
CSV_EXTENSIONS = (".csv",)

_SHEET_KINDS = {
    "surveymaster": SURVEY_SHEET,
    "survey": SURVEY_SHEET,
    "questionmaster": QUESTION_SHEET,
    "question": QUESTION_SHEET,
}


@dataclass
class SheetRow:
    """One data row of an uploaded sheet; `number` is the spreadsheet row (header is row 1)."""
    number: int
    sheet: str
    record: Dict[str, object] = field(default_factory=dict)


def sheet_kind(name: str):
    """Canonical sheet name for an uploaded sheet title, or None if it is not a survey sheet."""
    return _SHEET_KINDS.get(str(name).lower().replace(" ", ""))


def _frame_rows(df: pd.DataFrame, sheet: str) -> List[SheetRow]:
    rows = []
    for index, record in enumerate(df.to_dict(orient="records")):
        if all(pd.isna(v) or str(v).strip() == "" for v in record.values()):
            continue
        rows.append(SheetRow(number=index + 2, sheet=sheet, record=record))
    return rows


def _csv_kind(columns) -> str:
    names = {str(c).strip() for c in columns}
    if any(QUESTION_HEADER_MAP.get(n) == "questionId" for n in names):
        return QUESTION_SHEET
    if any(SURVEY_HEADER_MAP.get(n) in ("surveyId", "surveyName") for n in names):
        return SURVEY_SHEET
    raise IngestError("CSV file has neither Survey ID nor Question ID columns")


def read_upload(filename: str, content: bytes) -> Dict[str, List[SheetRow]]:
    """Parse an uploaded workbook or CSV into rows per canonical sheet.

    Args:
        filename (str): Original upload name; the extension selects the reader.
        content (bytes): Raw file bytes.

    Returns:
        dict: {"Survey Master": [SheetRow], "Question Master": [SheetRow]}, only
        the sheets that were found. Fully blank rows are dropped but the
        remaining rows keep their spreadsheet row numbers.

    Raises:
        IngestError: unsupported extension, unreadable bytes, or no survey sheets.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in EXCEL_EXTENSIONS:
        try:
            frames = pd.read_excel(io.BytesIO(content), sheet_name=None, dtype=str, keep_default_na=False)
        except Exception as exc:
            raise IngestError(f"Could not read Excel file: {exc}") from exc
        sheets: Dict[str, List[SheetRow]] = {}
        for name, df in frames.items():
            kind = sheet_kind(name)
            if kind is None:
                logger.debug("Ignoring sheet %r in %s", name, filename)
                continue
            sheets.setdefault(kind, []).extend(_frame_rows(df, kind))
        if not sheets:
            raise IngestError("No Survey Master or Question Master sheet found")
        return sheets

    if ext in CSV_EXTENSIONS:
        try:
            df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False,
                             skip_blank_lines=False, encoding="utf-8-sig")
        except Exception as exc:
            raise IngestError(f"Could not read CSV file: {exc}") from exc
        kind = _csv_kind(df.columns)
        return {kind: _frame_rows(df, kind)}

    raise IngestError("Unsupported file type. Upload an .xlsx, .xls or .csv file")


# ------------------------
# Export
# ------------------------
_HEADER_FILL = PatternFill(start_color="1B3A5C", end_color="1B3A5C", fill_type="solid")
_HEADER_FONT = Font(bold=True, color="FFFFFF")


def build_workbook(sheets: Mapping[str, Tuple[Sequence[str], Sequence[Sequence]]]) -> bytes:
    """Write one worksheet per entry of `sheets` ({title: (headers, rows)}) and return xlsx bytes."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, (headers, rows) in sheets.items():
        ws = wb.create_sheet(title=title)
        ws.append(list(headers))
        for cell in ws[1]:
            cell.fill = _HEADER_FILL
            cell.font = _HEADER_FONT
            cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        for row in rows:
            ws.append(list(row))
        for i, header in enumerate(headers, start=1):
            width = min(max(len(str(header)) + 2, 12), 40)
            ws.column_dimensions[get_column_letter(i)].width = width

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def build_csv(headers: Sequence[str], rows: Sequence[Sequence]) -> bytes:
    df = pd.DataFrame([list(r) for r in rows], columns=list(headers))
    return df.to_csv(index=False).encode("utf-8")
