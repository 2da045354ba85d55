"""
Canonical survey/question records <-> flat "Survey Master" / "Question Master" rows.

Export expands each question into one row per medium (translation); import
groups rows by (survey id, question id, question type) back into one question
with a translations map. Column order and headers are fixed by the downstream
survey platform.
"""
from __future__ import annotations
import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple

from registry import OPTION_SLOTS, medium_name, native_script
from rules import split_csv
from schemas import Option, Question, Survey, Translation, yes_no

logger = logging.getLogger(__name__)

SURVEY_SHEET = "Survey Master"
QUESTION_SHEET = "Question Master"

SURVEY_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("Survey ID", "surveyId"),
    ("Survey Name", "surveyName"),
    ("Survey Description", "surveyDescription"),
    ("available_mediums", "availableMediums"),
    ("Hierarchical Access Level", "hierarchicalAccessLevel"),
    ("Public", "public"),
    ("In School", "inSchool"),
    ("Accept multiple Entries", "acceptMultipleEntries"),
    ("Launch Date", "launchDate"),
    ("Close Date", "closeDate"),
    ("Mode", "mode"),
    ("visible_on_report_bot", "visibleOnReportBot"),
    ("Is Active?", "isActive"),
    ("Download_response", "downloadResponse"),
    ("Geo Fencing", "geoFencing"),
    ("Geo Tagging", "geoTagging"),
    ("Test Survey", "testSurvey"),
)

_LEADING_QUESTION_COLUMNS = (
    ("Survey ID", "surveyId"),
    ("Medium", "medium"),
    ("Medium_in_english", "mediumInEnglish"),
    ("Question_ID", "questionId"),
    ("Question Type", "questionType"),
    ("IsDynamic", "isDynamic"),
    ("Question_Description_Optional", "questionDescriptionOptional"),
    ("Max_Value", "maxValue"),
    ("Min_Value", "minValue"),
    ("Is Mandatory", "isMandatory"),
    ("Table_Header_value", "tableHeaderValue"),
    ("Table_Question_value", "tableQuestionValue"),
    ("Source_Question", "sourceQuestion"),
    ("Text_input_type", "textInputType"),
    ("text_limit_characters", "textLimitCharacters"),
    ("Mode", "mode"),
    ("Question_Media_Link", "questionMediaLink"),
    ("Question_Media_Type", "questionMediaType"),
    ("Question Description", "questionDescription"),
    ("Question Description", "questionDescriptionDuplicate"),
)
_TRAILING_QUESTION_COLUMNS = (
    ("Correct_Answer_Optional", "correctAnswerOptional"),
    ("Children Questions", "childrenQuestions"),
    ("Outcome Description", "outcomeDescription"),
)


def _slot_columns() -> Tuple[Tuple[str, str], ...]:
    cols = []
    for i in range(1, OPTION_SLOTS + 1):
        cols.append((f"Option_{i}", f"option{i}"))
        cols.append((f"Option_{i}_in_English", f"option{i}InEnglish"))
        cols.append((f"Option{i}Children", f"option{i}Children"))
    return tuple(cols)


QUESTION_COLUMNS = _LEADING_QUESTION_COLUMNS + _slot_columns() + _TRAILING_QUESTION_COLUMNS

SURVEY_HEADERS = [header for header, _ in SURVEY_COLUMNS]
QUESTION_HEADERS = [header for header, _ in QUESTION_COLUMNS]

# ------------------------
# Header normalisation (display labels, underscore labels, camelCase keys)
# ------------------------
_SURVEY_ALIASES = {
    "Available Mediums": "availableMediums",
    "Hierarchial Access Level": "hierarchicalAccessLevel",
    "Accept Multiple Entries": "acceptMultipleEntries",
    "Visible on Report Bot": "visibleOnReportBot",
    "Is Active": "isActive",
    "Download Response": "downloadResponse",
    "survey_id": "surveyId",
    "survey_name": "surveyName",
    "survey_description": "surveyDescription",
    "hierarchical_access_level": "hierarchicalAccessLevel",
    "launch_date": "launchDate",
    "close_date": "closeDate",
    "geo_fencing": "geoFencing",
    "geo_tagging": "geoTagging",
    "test_survey": "testSurvey",
}
_QUESTION_ALIASES = {
    "Question ID": "questionId",
    "Question Description.1": "questionDescriptionDuplicate",
    "Medium in English": "mediumInEnglish",
    "Text Input Type": "textInputType",
    "Is_Mandatory": "isMandatory",
    "Is Dynamic": "isDynamic",
    "Options": "options",
    "Source Question": "sourceQuestion",
    "Table Header Value": "tableHeaderValue",
    "Table Question Value": "tableQuestionValue",
    "Question Media Type": "questionMediaType",
    "Question Media Link": "questionMediaLink",
    "Max Value": "maxValue",
    "Min Value": "minValue",
    "Text Limit Characters": "textLimitCharacters",
    "Correct Answer Optional": "correctAnswerOptional",
    "survey_id": "surveyId",
    "question_id": "questionId",
    "question_type": "questionType",
    "source_question": "sourceQuestion",
}
for _i in range(1, OPTION_SLOTS + 1):
    _QUESTION_ALIASES[f"Option_{_i}Children"] = f"option{_i}Children"
    _QUESTION_ALIASES[f"Option {_i}"] = f"option{_i}"
    _QUESTION_ALIASES[f"Option {_i} in English"] = f"option{_i}InEnglish"


def _header_map(columns, aliases) -> Dict[str, str]:
    mapping = {header: key for header, key in columns}
    mapping.update({key: key for _, key in columns})
    mapping.update(aliases)
    return mapping


SURVEY_HEADER_MAP = _header_map(SURVEY_COLUMNS, _SURVEY_ALIASES)
QUESTION_HEADER_MAP = _header_map(QUESTION_COLUMNS[:19] + QUESTION_COLUMNS[20:], _QUESTION_ALIASES)
QUESTION_HEADER_MAP["questionDescriptionDuplicate"] = "questionDescriptionDuplicate"


def _clean(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN from pandas
        return ""
    if isinstance(value, (list, tuple)):
        return list(value)
    return str(value).strip()


def _rename(raw: Mapping, header_map: Mapping) -> dict:
    out = {}
    for key, value in raw.items():
        name = str(key).strip()
        out[header_map.get(name, name)] = _clean(value)
    return out


def normalize_survey_row(raw: Mapping) -> dict:
    """Map a Survey Master row's headers to record keys; unknown headers pass through."""
    return _rename(raw, SURVEY_HEADER_MAP)


def normalize_question_row(raw: Mapping) -> dict:
    """Map a Question Master row to a flat question record.

    Native-script medium labels become English names, option slot columns are
    collapsed into an `options` list, and a flat `Options` column is split on
    commas.
    """
    record = _rename(raw, QUESTION_HEADER_MAP)
    record.pop("questionDescriptionDuplicate", None)
    record["medium"] = row_medium(record)

    slot_keys = [k for k in record if _SLOT_KEY_RE.fullmatch(k)]
    if slot_keys:
        record["options"] = parse_option_slots(record)
        for key in slot_keys:
            del record[key]
    elif isinstance(record.get("options"), str):
        record["options"] = split_csv(record["options"])
    return record


def row_medium(record: Mapping) -> str:
    """English medium name for a row: Medium column, else Medium_in_english, else English."""
    medium = str(record.get("medium") or "").strip()
    if medium:
        return medium_name(medium)
    return str(record.get("mediumInEnglish") or "").strip() or "English"


_SLOT_KEY_RE = re.compile(r"option\d+(InEnglish|Children)?", re.ASCII)


def parse_option_slots(record: Mapping) -> List[dict]:
    """Options from the fixed slot columns, keeping only slots with text."""
    options = []
    for i in range(1, OPTION_SLOTS + 1):
        text = str(record.get(f"option{i}") or "").strip()
        if not text:
            continue
        options.append({
            "text": text,
            "textInEnglish": str(record.get(f"option{i}InEnglish") or "").strip() or text,
            "children": str(record.get(f"option{i}Children") or "").strip(),
        })
    return options


# ------------------------
# Table sub-formats
# ------------------------
_TABLE_QUESTIONS_RE = re.compile(r"[a-z]:.+(?:\n[a-z]:.+)*")
_TABLE_LINE_RE = re.compile(r"([a-z]):(.+)")


def split_table_header(value: Any) -> List[str]:
    """Split a table header into its segments (comma, or legacy pipe separator)."""
    text = str(value or "")
    separator = "|" if "," not in text and "|" in text else ","
    return [part.strip() for part in text.split(separator)]


def _table_text(value: Any) -> str:
    return str(value or "").replace("\r\n", "\n")


def is_valid_table_questions(value: Any) -> bool:
    return bool(_TABLE_QUESTIONS_RE.fullmatch(_table_text(value)))


def parse_table_questions(value: Any) -> List[Tuple[str, str]]:
    rows = []
    for line in _table_text(value).split("\n"):
        m = _TABLE_LINE_RE.fullmatch(line)
        if m:
            rows.append((m.group(1), m.group(2).strip()))
    return rows


def format_table_questions(texts: Iterable[str]) -> str:
    """Join row texts as `a:first\\nb:second`, letters assigned by position."""
    return "\n".join(f"{chr(ord('a') + i)}:{text}" for i, text in enumerate(texts))


# ------------------------
# Export
# ------------------------
def _number(value: Optional[float]) -> str:
    if value is None:
        return ""
    return str(int(value)) if float(value).is_integer() else str(value)


def survey_row(survey: Survey) -> List[str]:
    values = {
        "surveyId": survey.survey_id,
        "surveyName": survey.survey_name,
        "surveyDescription": survey.survey_description,
        "availableMediums": ",".join(survey.available_mediums),
        "hierarchicalAccessLevel": ",".join(str(level) for level in survey.hierarchical_access_level),
        "public": yes_no(survey.public),
        "inSchool": yes_no(survey.in_school),
        "acceptMultipleEntries": yes_no(survey.accept_multiple_entries),
        "launchDate": survey.launch_date,
        "closeDate": survey.close_date,
        "mode": survey.mode.value,
        "visibleOnReportBot": yes_no(survey.visible_on_report_bot),
        "isActive": yes_no(survey.is_active),
        "downloadResponse": yes_no(survey.download_response),
        "geoFencing": yes_no(survey.geo_fencing),
        "geoTagging": yes_no(survey.geo_tagging),
        "testSurvey": yes_no(survey.test_survey),
    }
    return [values[key] for _, key in SURVEY_COLUMNS]


def _legacy_translation(question: Question) -> Translation:
    return Translation(
        question_description=question.question_description,
        question_description_optional=question.question_description_optional,
        options=question.options,
        table_header_value=question.table_header_value,
        table_question_value=question.table_question_value,
    )


def _option_cells(options: List[Option], question_id: str) -> dict:
    if len(options) > OPTION_SLOTS:
        logger.warning("Question %s has %d options; only the first %d are exported",
                       question_id, len(options), OPTION_SLOTS)
    cells = {}
    for i in range(1, OPTION_SLOTS + 1):
        opt = options[i - 1] if i <= len(options) else None
        cells[f"option{i}"] = opt.text if opt else ""
        cells[f"option{i}InEnglish"] = opt.english if opt else ""
        cells[f"option{i}Children"] = ",".join(opt.children) if opt else ""
    return cells


def _question_row(survey: Survey, question: Question, medium: str, t: Translation) -> List[str]:
    description = t.question_description or question.question_description
    media_type = question.question_media_type.value
    values = {
        "surveyId": survey.survey_id or question.survey_id,
        "medium": native_script(medium),
        "mediumInEnglish": medium,
        "questionId": question.question_id,
        "questionType": question.question_type.value,
        "isDynamic": yes_no(question.is_dynamic),
        "questionDescriptionOptional": t.question_description_optional or question.question_description_optional,
        "maxValue": _number(question.max_value),
        "minValue": _number(question.min_value),
        "isMandatory": yes_no(question.is_mandatory),
        "tableHeaderValue": t.table_header_value or question.table_header_value,
        "tableQuestionValue": t.table_question_value or question.table_question_value,
        "sourceQuestion": question.source_question,
        "textInputType": question.text_input_type.value,
        "textLimitCharacters": "" if question.text_limit_characters is None else str(question.text_limit_characters),
        "mode": question.mode.value,
        "questionMediaLink": "" if media_type == "None" else question.question_media_link,
        "questionMediaType": media_type,
        "questionDescription": description,
        "questionDescriptionDuplicate": description,
        "correctAnswerOptional": question.correct_answer_optional,
        "childrenQuestions": question.children_questions,
        "outcomeDescription": question.outcome_description,
    }
    values.update(_option_cells(t.options or question.options, question.question_id))
    return [values[key] for _, key in QUESTION_COLUMNS]


def question_rows(survey: Survey, question: Question) -> List[List[str]]:
    """One row per translation; without translations, one row per survey medium."""
    if question.translations:
        bundles = list(question.translations.items())
    else:
        legacy = _legacy_translation(question)
        bundles = [(medium, legacy) for medium in survey.available_mediums]
    return [_question_row(survey, question, medium, t) for medium, t in bundles]


def to_rows(survey: Survey, questions: Iterable[Question]) -> Dict[str, List[List[str]]]:
    """Both sheets for one survey, keyed by sheet name, rows aligned to the sheet headers."""
    rows: List[List[str]] = []
    for question in questions:
        rows.extend(question_rows(survey, question))
    return {SURVEY_SHEET: [survey_row(survey)], QUESTION_SHEET: rows}


# ------------------------
# Import
# ------------------------
_SHARED_FIELDS = (
    "surveyId", "questionId", "questionType", "isDynamic", "isMandatory", "sourceQuestion",
    "textInputType", "textLimitCharacters", "maxValue", "minValue", "tableHeaderValue",
    "tableQuestionValue", "questionMediaLink", "questionMediaType", "mode",
    "correctAnswerOptional", "childrenQuestions", "outcomeDescription",
)


def _row_options(row: Mapping) -> list:
    options = row.get("options")
    if isinstance(options, list):
        return options
    return parse_option_slots(row)


def group_rows(rows: Iterable[Mapping]) -> List[dict]:
    """Collapse per-medium question rows into one record per question.

    Rows are grouped by (surveyId, questionId, questionType); shared fields
    come from the first row of each group and every row contributes one
    translation keyed by its English medium name. Rows with neither a survey id
    and question id are skipped.
    """
    groups: Dict[tuple, dict] = {}
    for row in rows:
        survey_id, question_id = row.get("surveyId"), row.get("questionId")
        if not survey_id and not question_id:
            continue
        key = (survey_id, question_id, row.get("questionType"))
        medium = row_medium(row)
        if key not in groups:
            seed = {field: row.get(field, "") for field in _SHARED_FIELDS}
            seed["medium"] = medium
            seed["translations"] = {}
            groups[key] = seed
        groups[key]["translations"][medium] = {
            "questionDescription": row.get("questionDescription", ""),
            "questionDescriptionOptional": row.get("questionDescriptionOptional", ""),
            "options": _row_options(row),
            "tableHeaderValue": row.get("tableHeaderValue", ""),
            "tableQuestionValue": row.get("tableQuestionValue", ""),
        }
    return list(groups.values())


def from_rows(rows: Iterable[Mapping]) -> List[Question]:
    """Typed questions from normalized Question Master rows (expects validated rows)."""
    return [Question.model_validate(record) for record in group_rows(rows)]
