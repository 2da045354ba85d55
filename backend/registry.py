# Static enumerations and per-question-type field configuration
from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from types import MappingProxyType
from typing import Optional


class Medium(str, Enum):
    ENGLISH = "English"
    HINDI = "Hindi"
    GUJARATI = "Gujarati"
    MARATHI = "Marathi"
    TAMIL = "Tamil"
    TELUGU = "Telugu"
    BENGALI = "Bengali"
    BODO = "Bodo"
    PUNJABI = "Punjabi"
    ASSAMESE = "Assamese"


class QuestionType(str, Enum):
    MC_SINGLE = "Multiple Choice Single Select"
    MC_MULTI = "Multiple Choice Multi Select"
    TABULAR_TEXT = "Tabular Text Input"
    TABULAR_DROP_DOWN = "Tabular Drop Down"
    TABULAR_CHECK_BOX = "Tabular Check Box"
    TEXT_RESPONSE = "Text Response"
    IMAGE_UPLOAD = "Image Upload"
    VIDEO_UPLOAD = "Video Upload"
    VOICE_RESPONSE = "Voice Response"
    LIKERT_SCALE = "Likert Scale"
    CALENDAR = "Calendar"
    DROP_DOWN = "Drop Down"


class TextInputType(str, Enum):
    NUMERIC = "Numeric"
    ALPHANUMERIC = "Alphanumeric"
    ALPHABETS = "Alphabets"
    NONE = "None"


class MediaType(str, Enum):
    IMAGE = "Image"
    VIDEO = "Video"
    AUDIO = "Audio"
    NONE = "None"


class Mode(str, Enum):
    NEW_DATA = "New Data"
    CORRECTION = "Correction"
    DELETE_DATA = "Delete Data"
    NONE = "None"


YES_NO = ("Yes", "No")

MEDIUMS = tuple(m.value for m in Medium)
QUESTION_TYPES = tuple(t.value for t in QuestionType)
TEXT_INPUT_TYPES = tuple(t.value for t in TextInputType)
MEDIA_TYPES = tuple(t.value for t in MediaType)
MODES = tuple(m.value for m in Mode)

MAX_OPTIONS = 20
MAX_OPTION_LENGTH = 100
OPTION_SLOTS = 15
MIN_ACCESS_LEVEL = 1
MAX_ACCESS_LEVEL = 7

# English name -> label in the medium's own script
NATIVE_SCRIPT = MappingProxyType({
    "English": "English",
    "Hindi": "हिन्दी",
    "Bengali": "বাংলা",
    "Assamese": "অসমীয়া",
    "Bodo": "बड़ो",
    "Gujarati": "ગુજરાતી",
    "Marathi": "मराठी",
    "Tamil": "தமிழ்",
    "Telugu": "తెలుగు",
    "Punjabi": "ਪੰਜਾਬੀ",
})
_ENGLISH_BY_NATIVE = MappingProxyType({v: k for k, v in NATIVE_SCRIPT.items()})


def native_script(medium: str) -> str:
    """Return the native-script label for an English medium name (or the name itself)."""
    return NATIVE_SCRIPT.get(medium, medium)


def medium_name(label: str) -> str:
    """Reverse of native_script: native label -> English name; unknown labels pass through."""
    return _ENGLISH_BY_NATIVE.get(label, label)


@dataclass(frozen=True)
class QuestionTypeConfig:
    """Which optional field groups a question type uses, and any values it forces."""
    show_options: bool = False
    show_option_children: bool = False
    show_text_input_type: bool = False
    show_table_fields: bool = False
    show_max_min: bool = False
    show_text_limit: bool = False
    show_media: bool = False
    text_input_type: Optional[str] = None
    media_type: Optional[str] = None
    is_dynamic: Optional[str] = None
    max_options: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


DEFAULT_TYPE_CONFIG = QuestionTypeConfig()

QUESTION_TYPE_FIELDS = MappingProxyType({
    QuestionType.MC_SINGLE.value: QuestionTypeConfig(
        show_options=True, show_option_children=True,
        text_input_type="None", media_type="None", is_dynamic="Yes", max_options=OPTION_SLOTS,
    ),
    QuestionType.MC_MULTI.value: QuestionTypeConfig(
        show_options=True,
        text_input_type="None", media_type="None", is_dynamic="Yes", max_options=OPTION_SLOTS,
    ),
    QuestionType.TABULAR_TEXT.value: QuestionTypeConfig(
        show_text_input_type=True, show_table_fields=True, show_max_min=True, show_media=True,
        is_dynamic="No",
    ),
    QuestionType.TABULAR_DROP_DOWN.value: QuestionTypeConfig(
        show_options=True, show_table_fields=True, show_media=True,
        text_input_type="None", is_dynamic="Yes", max_options=OPTION_SLOTS,
    ),
    QuestionType.TABULAR_CHECK_BOX.value: QuestionTypeConfig(
        show_table_fields=True, show_media=True, is_dynamic="No",
    ),
    QuestionType.TEXT_RESPONSE.value: QuestionTypeConfig(
        show_text_input_type=True, show_max_min=True, show_text_limit=True, show_media=True,
        is_dynamic="Yes",
    ),
    QuestionType.IMAGE_UPLOAD.value: QuestionTypeConfig(show_media=True, is_dynamic="Yes"),
    QuestionType.VIDEO_UPLOAD.value: QuestionTypeConfig(show_media=True, is_dynamic="No"),
    QuestionType.VOICE_RESPONSE.value: QuestionTypeConfig(show_media=True, is_dynamic="No"),
    QuestionType.LIKERT_SCALE.value: QuestionTypeConfig(
        show_options=True, show_media=True, is_dynamic="No", max_options=OPTION_SLOTS,
    ),
    QuestionType.CALENDAR.value: QuestionTypeConfig(show_media=True, is_dynamic="Yes"),
    QuestionType.DROP_DOWN.value: QuestionTypeConfig(
        show_options=True, show_media=True, is_dynamic="Yes", max_options=OPTION_SLOTS,
    ),
})

# Types that must carry 1..MAX_OPTIONS options
OPTION_TYPES = frozenset({
    QuestionType.MC_SINGLE.value,
    QuestionType.MC_MULTI.value,
    QuestionType.DROP_DOWN.value,
    QuestionType.LIKERT_SCALE.value,
    QuestionType.TABULAR_DROP_DOWN.value,
})
TABULAR_TYPES = frozenset(
    name for name, cfg in QUESTION_TYPE_FIELDS.items() if cfg.show_table_fields
)
# Only this type may own child questions
PARENT_TYPE = QuestionType.MC_SINGLE.value


def get_fields_for_question_type(question_type: Optional[str]) -> QuestionTypeConfig:
    """Look up the field configuration for a question type.

    Unknown or missing types get a config with every optional group disabled.
    """
    return QUESTION_TYPE_FIELDS.get(question_type or "", DEFAULT_TYPE_CONFIG)


def get_constants() -> dict:
    return {
        "availableMediums": list(MEDIUMS),
        "questionTypes": list(QUESTION_TYPES),
        "textInputTypes": list(TEXT_INPUT_TYPES),
        "questionMediaTypes": list(MEDIA_TYPES),
        "modes": list(MODES),
        "yesNoValues": list(YES_NO),
        "nativeScripts": dict(NATIVE_SCRIPT),
        "questionTypeFields": {k: v.as_dict() for k, v in QUESTION_TYPE_FIELDS.items()},
    }
