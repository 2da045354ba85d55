# Survey and question record validation
from __future__ import annotations
import math
import re
from collections.abc import Mapping
from typing import Iterable, List

from issues import ErrorKind, ValidationIssue, ValidationResult, issue
from question_graph import (
    child_mapping_issues, find_question, options_for_question, parent_type_issues,
)
from registry import MAX_OPTION_LENGTH, MAX_OPTIONS, OPTION_TYPES, TABULAR_TYPES, get_constants
from rules import QUESTION_RULES, SURVEY_RULES, parse_date, split_csv, validate_fields
from spreadsheet import is_valid_table_questions, split_table_header

YOUTUBE_RE = re.compile(r"(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+")

# Flat fields that imported records keep only inside their translations
_TRANSLATED_FIELDS = ("questionDescription", "tableHeaderValue", "tableQuestionValue")


def validate_survey(record: Mapping) -> ValidationResult:
    """Validate one survey record.

    Args:
        record (Mapping): camelCase survey attributes, Yes/No flags as strings.

    Returns:
        ValidationResult: every field and cross-field error found.
    """
    errors = validate_fields(record, SURVEY_RULES)

    if record.get("geoFencing") == "Yes" and record.get("geoTagging") != "Yes":
        errors.append(issue(
            "geoTagging", 'Geo Tagging must be "Yes" when Geo Fencing is "Yes"',
            record.get("geoTagging"), ErrorKind.CROSS_FIELD,
        ))

    launch = parse_date(record.get("launchDate"))
    close = parse_date(record.get("closeDate"))
    if launch is not None and close is not None and close < launch:
        errors.append(issue(
            "closeDate", "Close Date must be greater than or equal to Launch Date",
            record.get("closeDate"), ErrorKind.CROSS_FIELD,
        ))

    return ValidationResult.of(errors)


def validate_question(record: Mapping, surveys: Iterable[Mapping] = (),
                      all_questions: Iterable[Mapping] = ()) -> ValidationResult:
    """Validate one question record against its survey and sibling questions.

    Args:
        record (Mapping): camelCase question attributes (flat or with `translations`).
        surveys (Iterable[Mapping]): known survey records; reference checks are
            skipped when empty.
        all_questions (Iterable[Mapping]): snapshot of the survey's questions;
            parent checks are skipped when empty.

    Returns:
        ValidationResult
    """
    surveys = list(surveys)
    all_questions = list(all_questions)
    effective = _effective_record(record)

    errors = validate_fields(effective, QUESTION_RULES)
    errors.extend(_survey_reference_issues(effective, surveys))
    errors.extend(_source_question_issues(effective, all_questions))
    errors.extend(parent_type_issues(effective, all_questions))
    errors.extend(child_mapping_issues(effective, all_questions))
    if effective.get("questionType"):
        errors.extend(_type_issues(effective))
    errors.extend(_range_issues(effective))

    return ValidationResult.of(errors)


def _effective_record(record: Mapping) -> dict:
    out = dict(record)
    translations = record.get("translations")
    if isinstance(translations, Mapping) and translations:
        first = next(iter(translations.values()))
        if isinstance(first, Mapping):
            for key in _TRANSLATED_FIELDS:
                if not out.get(key) and first.get(key):
                    out[key] = first[key]
        if not out.get("medium"):
            out["medium"] = next(iter(translations))
    out["options"] = options_for_question(record)
    return out


def _survey_reference_issues(record: Mapping, surveys: List[Mapping]) -> List[ValidationIssue]:
    survey_id = record.get("surveyId")
    if not survey_id or not surveys:
        return []
    survey = next((s for s in surveys if s.get("surveyId") == survey_id), None)
    if survey is None:
        return [issue("surveyId", "Survey ID does not exist", survey_id, ErrorKind.REFERENCE)]
    medium = record.get("medium")
    mediums = split_csv(survey.get("availableMediums"))
    if medium and medium not in mediums:
        return [issue(
            "medium", f"Medium must match survey's available mediums: {', '.join(mediums)}",
            medium, ErrorKind.REFERENCE,
        )]
    return []


def _source_question_issues(record: Mapping, all_questions: List[Mapping]) -> List[ValidationIssue]:
    question_id = str(record.get("questionId") or "")
    if "." not in question_id:
        return []
    source = record.get("sourceQuestion")
    if not source:
        return [issue("sourceQuestion", "Child questions must have a Source Question", "", ErrorKind.REFERENCE)]
    if all_questions and find_question(all_questions, record.get("surveyId"), source) is None:
        return [issue("sourceQuestion", "Source Question (parent) does not exist", source, ErrorKind.REFERENCE)]
    return []


def _option_text(option) -> str:
    if isinstance(option, Mapping):
        return str(option.get("text") or "")
    return str(option or "")


def _type_issues(record: Mapping) -> List[ValidationIssue]:
    errors: List[ValidationIssue] = []
    question_type = record.get("questionType")
    options = record.get("options") or []

    if question_type in OPTION_TYPES:
        if not options:
            errors.append(issue("options", f"{question_type} requires at least one option"))
        else:
            if len(options) > MAX_OPTIONS:
                errors.append(issue("options", f"Maximum {MAX_OPTIONS} options allowed", len(options)))
            for idx, opt in enumerate(options, start=1):
                raw = opt.get("text") if isinstance(opt, Mapping) else opt
                if not isinstance(raw, str) or not raw.strip():
                    errors.append(issue(
                        "options", f"Option {idx} must have non-empty text", raw, ErrorKind.STRUCTURAL,
                    ))
                    continue
                text = _option_text(opt)
                if len(text) > MAX_OPTION_LENGTH:
                    errors.append(issue("options", f"Option {idx} exceeds {MAX_OPTION_LENGTH} characters", text))

    if question_type in TABULAR_TYPES:
        header = record.get("tableHeaderValue")
        if not header:
            errors.append(issue("tableHeaderValue", "Table Header Value is required for tabular questions"))
        else:
            segments = split_table_header(header)
            if len(segments) != 2 or not all(segments):
                errors.append(issue(
                    "tableHeaderValue", "Table Header Value must be exactly 2 comma-separated values",
                    header, ErrorKind.STRUCTURAL,
                ))
        rows = record.get("tableQuestionValue")
        if not rows:
            errors.append(issue("tableQuestionValue", "Table Question Value is required for tabular questions"))
        elif not is_valid_table_questions(rows):
            errors.append(issue(
                "tableQuestionValue", "Table Question Value must be in format: a:Question 1\\nb:Question 2",
                rows, ErrorKind.STRUCTURAL,
            ))

    media_type = record.get("questionMediaType")
    if media_type and media_type != "None":
        link = record.get("questionMediaLink")
        if not link:
            errors.append(issue(
                "questionMediaLink", 'Question Media Link is required when Question Media Type is not "None"',
            ))
        elif media_type == "Video" and not YOUTUBE_RE.fullmatch(str(link)):
            errors.append(issue("questionMediaLink", "Video must be a valid YouTube URL", link))

    return errors


def _range_issues(record: Mapping) -> List[ValidationIssue]:
    try:
        low = float(str(record.get("minValue")).strip())
        high = float(str(record.get("maxValue")).strip())
    except ValueError:
        return []
    if not (math.isfinite(low) and math.isfinite(high)):
        return []
    if low > high:
        return [issue(
            "maxValue", "Max Value must be greater than or equal to Min Value",
            record.get("maxValue"), ErrorKind.CROSS_FIELD,
        )]
    return []


def get_schema() -> dict:
    """Rule descriptors and enumerations, for clients that validate before submitting."""
    return {
        "survey": {field: rule.describe() for field, rule in SURVEY_RULES.items()},
        "question": {field: rule.describe() for field, rule in QUESTION_RULES.items()},
        "constants": get_constants(),
    }
