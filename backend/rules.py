# Generic per-field rule evaluation and the survey/question rule sets
from __future__ import annotations
import math
import re
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, List, Optional

from issues import ValidationIssue, issue
from registry import (
    MAX_ACCESS_LEVEL, MEDIA_TYPES, MEDIUMS, MIN_ACCESS_LEVEL, MODES,
    QUESTION_TYPES, TEXT_INPUT_TYPES, YES_NO,
)

SURVEY_ID_RE = re.compile(r"[A-Za-z0-9_]+")
QUESTION_ID_RE = re.compile(r"Q\d+(\.\d+)*", re.ASCII)
_DATE_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4})(?: (\d{2}):(\d{2}):(\d{2}))?", re.ASCII)
_DIGITS_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class FieldRule:
    """Declarative checks for one record attribute.

    `choices` accepts a list or a comma-separated string and checks every
    element; `values` checks the whole value against a single-choice set.
    """
    label: str
    required: bool = False
    pattern: Optional[re.Pattern] = None
    max_length: Optional[int] = None
    choices: Optional[tuple] = None
    values: Optional[tuple] = None
    date_format: bool = False
    custom: Optional[str] = None
    message: str = ""

    def describe(self) -> dict:
        out = {"label": self.label, "required": self.required}
        if self.pattern is not None:
            out["pattern"] = self.pattern.pattern
        if self.max_length:
            out["maxLength"] = self.max_length
        if self.choices:
            out["enum"] = list(self.choices)
        if self.values:
            out["values"] = list(self.values)
        if self.date_format:
            out["format"] = "DD/MM/YYYY HH:MM:SS"
        if self.custom:
            out["custom"] = self.custom
        if self.message:
            out["message"] = self.message
        return out


def split_csv(value: Any) -> List[str]:
    """Split a comma-separated string (or pass a list through), dropping blanks."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        parts = str(value).split(",")
    return [p.strip() for p in parts if p.strip()]


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


# ------------------------
# Dates
# ------------------------
def parse_date(text: Any) -> Optional[datetime]:
    """Parse DD/MM/YYYY or DD/MM/YYYY HH:MM:SS; None when malformed or out of range.

    Calendar-impossible days (31/04, 29/02 outside leap years) are rejected too.
    """
    if not isinstance(text, str):
        return None
    m = _DATE_RE.fullmatch(text)
    if not m:
        return None
    day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    hour, minute, second = (int(g) if g else 0 for g in m.group(4, 5, 6))
    if not (1 <= month <= 12 and 1 <= day <= 31 and year >= 1900):
        return None
    if hour > 23 or minute > 59 or second > 59:
        return None
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def is_valid_date(text: Any) -> bool:
    return parse_date(text) is not None


# ------------------------
# Custom checks (return a message or None)
# ------------------------
def hierarchy_level_problem(value: Any) -> Optional[str]:
    levels = split_csv(value)
    for level in levels:
        if not _DIGITS_RE.fullmatch(level):
            return "Hierarchical Access Level must contain only numeric values"
        if not MIN_ACCESS_LEVEL <= int(level) <= MAX_ACCESS_LEVEL:
            return f"Hierarchical Access Level values must be between {MIN_ACCESS_LEVEL} and {MAX_ACCESS_LEVEL}"
    if len({int(level) for level in levels}) != len(levels):
        return "Hierarchical Access Level must not contain duplicate values"
    return None


def number_problem(value: Any) -> Optional[str]:
    try:
        number = float(str(value).strip())
    except ValueError:
        return "must be a number"
    if not math.isfinite(number):
        return "must be a finite number"
    return None


def positive_int_problem(value: Any) -> Optional[str]:
    text = str(value).strip()
    if not _DIGITS_RE.fullmatch(text) or int(text) < 1:
        return "must be a positive whole number"
    return None


_CUSTOM_CHECKS = MappingProxyType({
    "hierarchyLevel": hierarchy_level_problem,
    "number": number_problem,
    "positiveInt": positive_int_problem,
})


def validate_field(field: str, value: Any, rule: FieldRule) -> List[ValidationIssue]:
    """Evaluate one rule descriptor against one raw value.

    A missing required value yields a single error and stops there; an empty
    optional value is skipped entirely. Otherwise every check applies.
    """
    if is_empty(value):
        if rule.required:
            return [issue(field, f"{rule.label} is required", value)]
        return []

    errors: List[ValidationIssue] = []
    text = value if isinstance(value, str) else str(value)

    if rule.pattern is not None and not isinstance(value, (list, tuple)):
        if not rule.pattern.fullmatch(text):
            errors.append(issue(field, rule.message, value))

    if rule.max_length and len(text) > rule.max_length:
        errors.append(issue(field, f"{rule.label} must not exceed {rule.max_length} characters", value))

    if rule.choices:
        items = [str(v).strip() for v in value] if isinstance(value, (list, tuple)) else [v.strip() for v in text.split(",")]
        for item in items:
            if item not in rule.choices:
                errors.append(issue(field, rule.message, item))

    if rule.values and text not in rule.values:
        errors.append(issue(field, rule.message, value))

    if rule.date_format and not is_valid_date(value):
        errors.append(issue(field, rule.message, value))

    if rule.custom:
        problem = _CUSTOM_CHECKS[rule.custom](value)
        if problem:
            message = problem if rule.custom == "hierarchyLevel" else f"{rule.label} {problem}"
            errors.append(issue(field, message, value))

    return errors


def validate_fields(record, rules) -> List[ValidationIssue]:
    errors: List[ValidationIssue] = []
    for field, rule in rules.items():
        errors.extend(validate_field(field, record.get(field), rule))
    return errors


# ------------------------
# Rule sets
# ------------------------
def _yes_no(label: str) -> FieldRule:
    return FieldRule(label=label, values=YES_NO, message=f'{label} must be "Yes" or "No"')


def _date(label: str) -> FieldRule:
    return FieldRule(label=label, date_format=True,
                     message=f"{label} must be in DD/MM/YYYY HH:MM:SS or DD/MM/YYYY format")


SURVEY_RULES = MappingProxyType({
    "surveyId": FieldRule(
        label="Survey ID", required=True, pattern=SURVEY_ID_RE,
        message="Survey ID must contain only alphanumeric characters and underscores (no spaces)",
    ),
    "surveyName": FieldRule(label="Survey Name", required=True, max_length=99),
    "surveyDescription": FieldRule(label="Survey Description", required=True, max_length=256),
    "availableMediums": FieldRule(
        label="Available Mediums", required=True, choices=MEDIUMS,
        message=f"Available Mediums must be from: {', '.join(MEDIUMS)}",
    ),
    "hierarchicalAccessLevel": FieldRule(
        label="Hierarchical Access Level", custom="hierarchyLevel",
        message="Hierarchical Access Level must be numeric values (1-7), comma-separated, no duplicates",
    ),
    "public": _yes_no("Public"),
    "inSchool": _yes_no("In School"),
    "acceptMultipleEntries": _yes_no("Accept Multiple Entries"),
    "isActive": _yes_no("Is Active"),
    "downloadResponse": _yes_no("Download Response"),
    "geoFencing": _yes_no("Geo Fencing"),
    "geoTagging": _yes_no("Geo Tagging"),
    "testSurvey": _yes_no("Test Survey"),
    "visibleOnReportBot": _yes_no("Visible on Report Bot"),
    "launchDate": _date("Launch Date"),
    "closeDate": _date("Close Date"),
    "mode": FieldRule(label="Mode", values=MODES, message=f"Mode must be one of: {', '.join(MODES)}"),
})

QUESTION_RULES = MappingProxyType({
    "questionId": FieldRule(
        label="Question ID", required=True, pattern=QUESTION_ID_RE,
        message="Question ID must be in format Q1, Q1.1, Q5.2, etc.",
    ),
    "surveyId": FieldRule(label="Survey ID", required=True),
    "medium": FieldRule(
        label="Medium", required=True, values=MEDIUMS,
        message="Medium is required and must match survey available mediums",
    ),
    "questionType": FieldRule(
        label="Question Type", required=True, values=QUESTION_TYPES,
        message=f"Question Type must be one of: {', '.join(QUESTION_TYPES)}",
    ),
    "questionDescription": FieldRule(label="Question Description", required=True, max_length=1024),
    "isMandatory": _yes_no("Is Mandatory"),
    "isDynamic": _yes_no("Is Dynamic"),
    "textInputType": FieldRule(
        label="Text Input Type", values=TEXT_INPUT_TYPES,
        message=f"Text Input Type must be one of: {', '.join(TEXT_INPUT_TYPES)}",
    ),
    "questionMediaType": FieldRule(
        label="Question Media Type", values=MEDIA_TYPES,
        message=f"Question Media Type must be one of: {', '.join(MEDIA_TYPES)}",
    ),
    "mode": FieldRule(label="Mode", values=MODES, message=f"Mode must be one of: {', '.join(MODES)}"),
    "maxValue": FieldRule(label="Max Value", custom="number"),
    "minValue": FieldRule(label="Min Value", custom="number"),
    "textLimitCharacters": FieldRule(label="Text Limit Characters", custom="positiveInt"),
})
