# schemas.py
from __future__ import annotations
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from question_graph import parse_child_list
from rules import split_csv
from registry import MediaType, Mode, QuestionType, TextInputType


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("yes", "true", "1")


def _blank_to_none(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", coerce_numbers_to_str=True,
    )

    def to_record(self) -> dict:
        """Dump to the external camelCase record shape (Yes/No strings, plain enum values)."""
        return self.model_dump(by_alias=True, mode="json")


# ------------------------
# Canonical records
# ------------------------
class Option(CamelModel):
    text: str
    text_in_english: str = ""
    children: List[str] = []

    @field_validator("children", mode="before")
    @classmethod
    def _children(cls, v):
        return parse_child_list(v)

    @property
    def english(self) -> str:
        return self.text_in_english or self.text


class Translation(CamelModel):
    question_description: str = ""
    question_description_optional: str = ""
    options: List[Option] = []
    table_header_value: str = ""
    table_question_value: str = ""

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, v):
        return coerce_options(v)


def coerce_options(value: Any) -> list:
    """Accept option dicts, Option models, or bare strings (flat `Options` column)."""
    if not value:
        return []
    out = []
    for opt in value:
        if isinstance(opt, str):
            if opt.strip():
                out.append({"text": opt.strip()})
        elif opt is not None:
            out.append(opt)
    return out


class Survey(CamelModel):
    survey_id: str
    survey_name: str
    survey_description: str = ""
    available_mediums: List[str] = ["English"]
    hierarchical_access_level: List[int] = []
    public: bool = False
    in_school: bool = False
    accept_multiple_entries: bool = False
    launch_date: str = ""
    close_date: str = ""
    mode: Mode = Mode.NONE
    visible_on_report_bot: bool = False
    is_active: bool = False
    download_response: bool = False
    geo_fencing: bool = False
    geo_tagging: bool = False
    test_survey: bool = False

    @field_validator("available_mediums", mode="before")
    @classmethod
    def _mediums(cls, v):
        return split_csv(v) or ["English"]

    @field_validator("hierarchical_access_level", mode="before")
    @classmethod
    def _levels(cls, v):
        return [int(x) for x in split_csv(v)]

    @field_validator("public", "in_school", "accept_multiple_entries", "visible_on_report_bot",
                     "is_active", "download_response", "geo_fencing", "geo_tagging", "test_survey",
                     mode="before")
    @classmethod
    def _flags(cls, v):
        return _to_bool(v)

    @field_validator("mode", mode="before")
    @classmethod
    def _mode(cls, v):
        return v or Mode.NONE

    @field_serializer("public", "in_school", "accept_multiple_entries", "visible_on_report_bot",
                      "is_active", "download_response", "geo_fencing", "geo_tagging", "test_survey")
    def _dump_flags(self, v: bool) -> str:
        return yes_no(v)


class Question(CamelModel):
    survey_id: str
    question_id: str
    question_type: QuestionType
    medium: str = "English"
    is_dynamic: bool = False
    is_mandatory: bool = False
    question_description: str = ""
    question_description_optional: str = ""
    max_value: Optional[float] = None
    min_value: Optional[float] = None
    table_header_value: str = ""
    table_question_value: str = ""
    source_question: str = ""
    text_input_type: TextInputType = TextInputType.NONE
    text_limit_characters: Optional[int] = None
    mode: Mode = Mode.NONE
    question_media_link: str = ""
    question_media_type: MediaType = MediaType.NONE
    options: List[Option] = []
    correct_answer_optional: str = ""
    children_questions: str = ""
    outcome_description: str = ""
    translations: Dict[str, Translation] = {}

    @field_validator("is_dynamic", "is_mandatory", mode="before")
    @classmethod
    def _flags(cls, v):
        return _to_bool(v)

    @field_validator("max_value", "min_value", "text_limit_characters", mode="before")
    @classmethod
    def _numbers(cls, v):
        return _blank_to_none(v)

    @field_validator("text_input_type", "mode", "question_media_type", mode="before")
    @classmethod
    def _none_enum(cls, v):
        return v or "None"

    @field_validator("medium", mode="before")
    @classmethod
    def _medium(cls, v):
        return v or "English"

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, v):
        return coerce_options(v)

    @field_validator("translations", mode="before")
    @classmethod
    def _translations(cls, v):
        return v or {}

    @field_serializer("is_dynamic", "is_mandatory")
    def _dump_flags(self, v: bool) -> str:
        return yes_no(v)

    @field_serializer("max_value", "min_value")
    def _dump_number(self, v: Optional[float]):
        if v is None:
            return None
        return int(v) if float(v).is_integer() else v


# ------------------------
# Request payloads
# ------------------------
class DuplicateSurvey(BaseModel):
    new_survey_id: str = Field(..., alias="newSurveyId")
