# Question-id normalization and parent/child consistency across a survey
from __future__ import annotations
import re
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional

from issues import ErrorKind, ValidationIssue, issue
from registry import PARENT_TYPE

_DOTTED_DIGITS = re.compile(r"\d+(\.\d+)*", re.ASCII)
_TOP_LEVEL = re.compile(r"Q(\d+)(?:\.\d+)*", re.ASCII)


def normalize_question_id(value: Any) -> str:
    """Canonicalize `q1.2` / `1.2` to `Q1.2`; anything else is returned stripped."""
    if value is None:
        return ""
    text = str(value).strip()
    if not text:
        return ""
    if text[0] in "qQ":
        return "Q" + text[1:]
    if _DOTTED_DIGITS.fullmatch(text):
        return "Q" + text
    return text


def parse_child_list(value: Any) -> List[str]:
    if not value:
        return []
    parts = value if isinstance(value, (list, tuple)) else str(value).split(",")
    return [qid for qid in (normalize_question_id(p) for p in parts) if qid]


def options_for_question(record: Mapping) -> list:
    """Options from the flat field, else from the first translation that has any."""
    options = record.get("options")
    if isinstance(options, (list, tuple)) and options:
        return list(options)
    translations = record.get("translations")
    if isinstance(translations, Mapping) and translations:
        first = next(iter(translations.values()))
        if isinstance(first, Mapping) and isinstance(first.get("options"), list):
            return first["options"]
    return []


def _option_children(option: Any) -> List[str]:
    if isinstance(option, Mapping):
        return parse_child_list(option.get("children"))
    return []


def find_question(all_questions: Iterable[Mapping], survey_id: Any, question_id: Any) -> Optional[Mapping]:
    target = normalize_question_id(question_id)
    for q in all_questions:
        if q.get("surveyId") == survey_id and normalize_question_id(q.get("questionId")) == target:
            return q
    return None


def parent_type_issues(record: Mapping, all_questions: Iterable[Mapping]) -> List[ValidationIssue]:
    parent_id = normalize_question_id(record.get("sourceQuestion"))
    if not parent_id:
        return []
    parent = find_question(all_questions, record.get("surveyId"), parent_id)
    if parent is not None and parent.get("questionType") != PARENT_TYPE:
        return [issue(
            "sourceQuestion",
            f"Only {PARENT_TYPE} questions can have child questions. Change the Question ID or parent.",
            record.get("sourceQuestion"),
            ErrorKind.STRUCTURAL,
        )]
    return []


def child_mapping_issues(record: Mapping, all_questions: Iterable[Mapping]) -> List[ValidationIssue]:
    """Every child id may be owned by exactly one (question, option) slot in a survey.

    The record under validation replaces its own stored version. All
    conflicting ids are reported together in one `options` error.
    """
    survey_id = record.get("surveyId")
    if not survey_id:
        return []
    own_id = normalize_question_id(record.get("questionId"))
    questions = [
        q for q in all_questions
        if q.get("surveyId") == survey_id and normalize_question_id(q.get("questionId")) != own_id
    ]
    questions.append(record)

    owners: dict = {}
    conflicts: dict = {}
    for question in questions:
        qid = normalize_question_id(question.get("questionId"))
        for index, option in enumerate(options_for_question(question)):
            for child in dict.fromkeys(_option_children(option)):
                owner = owners.get(child)
                if owner is not None and owner != (qid, index):
                    conflicts[child] = None
                else:
                    owners[child] = (qid, index)

    if not conflicts:
        return []
    return [issue(
        "options",
        f"Child question IDs cannot be mapped to multiple options/questions: {', '.join(conflicts)}",
        "",
        ErrorKind.STRUCTURAL,
    )]


def next_question_id(question_ids: Iterable[Any]) -> str:
    """Next free top-level id (`Q<max + 1>`) among the given ids."""
    highest = 0
    for qid in question_ids:
        m = _TOP_LEVEL.fullmatch(normalize_question_id(qid))
        if m:
            highest = max(highest, int(m.group(1)))
    return f"Q{highest + 1}"


def build_question_tree(questions: Iterable[Mapping]) -> dict:
    """Map each parent question id to the ids of questions naming it as source."""
    tree: dict = {}
    for q in questions:
        parent = normalize_question_id(q.get("sourceQuestion"))
        if parent:
            tree.setdefault(parent, []).append(normalize_question_id(q.get("questionId")))
    return tree
