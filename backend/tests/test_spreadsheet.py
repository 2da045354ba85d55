import pytest

from schemas import Question, Survey
from spreadsheet import (
    QUESTION_COLUMNS, QUESTION_HEADERS, QUESTION_SHEET, SURVEY_HEADERS, SURVEY_SHEET,
    format_table_questions, from_rows, group_rows, is_valid_table_questions,
    normalize_question_row, normalize_survey_row, parse_table_questions, question_rows,
    split_table_header, survey_row, to_rows,
)

KEYS = [key for _, key in QUESTION_COLUMNS]


@pytest.fixture
def survey(survey_record):
    return Survey.model_validate(survey_record("S1"))


@pytest.fixture
def bilingual_question():
    return Question.model_validate({
        "surveyId": "S1",
        "questionId": "Q1",
        "questionType": "Multiple Choice Single Select",
        "isDynamic": "Yes",
        "isMandatory": "Yes",
        "translations": {
            "English": {
                "questionDescription": "Do you attend school?",
                "options": [{"text": "Yes", "children": "Q1.1"}, {"text": "No"}],
            },
            "Hindi": {
                "questionDescription": "क्या आप स्कूल जाते हैं?",
                "options": [{"text": "हाँ", "textInEnglish": "Yes", "children": "Q1.1"},
                            {"text": "नहीं", "textInEnglish": "No"}],
            },
        },
    })


def test_column_layout():
    assert len(SURVEY_HEADERS) == 17
    assert SURVEY_HEADERS[0] == "Survey ID"
    assert SURVEY_HEADERS[-1] == "Test Survey"
    assert len(QUESTION_HEADERS) == 20 + 15 * 3 + 3
    assert QUESTION_HEADERS[18] == QUESTION_HEADERS[19] == "Question Description"
    assert QUESTION_HEADERS[20:23] == ["Option_1", "Option_1_in_English", "Option1Children"]
    assert QUESTION_HEADERS[-3:] == ["Correct_Answer_Optional", "Children Questions", "Outcome Description"]


def test_survey_row(survey):
    row = dict(zip(SURVEY_HEADERS, survey_row(survey)))
    assert row["available_mediums"] == "English,Hindi"
    assert row["Hierarchical Access Level"] == "1,2"
    assert row["Public"] == "Yes"
    assert row["In School"] == "No"
    assert row["Mode"] == "New Data"


def test_one_row_per_translation(survey, bilingual_question):
    rows = [dict(zip(KEYS, r)) for r in question_rows(survey, bilingual_question)]
    assert [r["mediumInEnglish"] for r in rows] == ["English", "Hindi"]
    assert rows[1]["medium"] == "हिन्दी"
    assert rows[1]["questionDescription"] == rows[1]["questionDescriptionDuplicate"] == "क्या आप स्कूल जाते हैं?"
    assert rows[1]["option1"] == "हाँ"
    assert rows[1]["option1InEnglish"] == "Yes"
    assert rows[1]["option1Children"] == "Q1.1"
    assert rows[1]["option3"] == rows[1]["option15"] == ""
    assert rows[0]["option2InEnglish"] == "No"
    assert rows[0]["isDynamic"] == "Yes"
    assert rows[0]["textInputType"] == "None"
    assert rows[0]["maxValue"] == ""


def test_question_without_translations_fans_out_per_survey_medium(survey):
    question = Question.model_validate({
        "surveyId": "S1", "questionId": "Q2", "questionType": "Text Response",
        "questionDescription": "Your age?", "textInputType": "Numeric",
        "maxValue": "99", "minValue": "5.5", "textLimitCharacters": "3",
        "questionMediaType": "None", "questionMediaLink": "https://example.org/ignored.png",
    })
    rows = [dict(zip(KEYS, r)) for r in question_rows(survey, question)]
    assert [r["mediumInEnglish"] for r in rows] == ["English", "Hindi"]
    assert all(r["questionDescription"] == "Your age?" for r in rows)
    assert rows[0]["maxValue"] == "99"
    assert rows[0]["minValue"] == "5.5"
    assert rows[0]["textLimitCharacters"] == "3"
    assert rows[0]["questionMediaLink"] == ""


def test_options_truncate_at_slot_count(survey):
    question = Question.model_validate({
        "surveyId": "S1", "questionId": "Q3", "questionType": "Drop Down",
        "questionDescription": "Pick", "options": [f"Choice {i}" for i in range(1, 18)],
    })
    row = dict(zip(KEYS, question_rows(survey, question)[0]))
    assert row["option15"] == "Choice 15"
    assert "option16" not in row


def test_to_rows_sheets(survey, bilingual_question):
    sheets = to_rows(survey, [bilingual_question])
    assert set(sheets) == {SURVEY_SHEET, QUESTION_SHEET}
    assert len(sheets[SURVEY_SHEET]) == 1
    assert len(sheets[QUESTION_SHEET]) == 2
    assert all(len(r) == len(QUESTION_HEADERS) for r in sheets[QUESTION_SHEET])


def test_normalize_survey_row_accepts_both_header_styles():
    record = normalize_survey_row({"Survey ID": " S1 ", "Hierarchial Access Level": "1", "isActive": "Yes", "Extra": "x"})
    assert record == {"surveyId": "S1", "hierarchicalAccessLevel": "1", "isActive": "Yes", "Extra": "x"}


def test_normalize_question_row():
    raw = {
        "Survey ID": "S1", "Medium": "हिन्दी", "Medium_in_english": "Hindi", "Question_ID": "Q1",
        "Question Type": "Multiple Choice Single Select", "Question Description": "प्रश्न",
        "Question Description.1": "प्रश्न",
        "Option_1": "हाँ", "Option_1_in_English": "Yes", "Option1Children": "Q1.1",
        "Option_2": "नहीं", "Option_2_in_English": "", "Option2Children": "",
        "Option_3": "", "Option_3_in_English": "", "Option3Children": "",
    }
    record = normalize_question_row(raw)
    assert record["medium"] == "Hindi"
    assert record["questionId"] == "Q1"
    assert record["questionDescription"] == "प्रश्न"
    assert "questionDescriptionDuplicate" not in record
    assert "option1" not in record
    assert record["options"] == [
        {"text": "हाँ", "textInEnglish": "Yes", "children": "Q1.1"},
        {"text": "नहीं", "textInEnglish": "नहीं", "children": ""},
    ]


def test_normalize_question_row_flat_options_and_medium_fallback():
    record = normalize_question_row({"questionId": "Q1", "Options": "Red, Green,", "Medium_in_english": "Tamil"})
    assert record["options"] == ["Red", "Green"]
    assert record["medium"] == "Tamil"
    assert normalize_question_row({"questionId": "Q1"})["medium"] == "English"


def test_group_rows_builds_translations():
    rows = [
        {"surveyId": "S1", "questionId": "Q1", "questionType": "Drop Down", "medium": "English",
         "questionDescription": "Colour?", "isMandatory": "Yes", "options": [{"text": "Red"}]},
        {"surveyId": "S1", "questionId": "Q1", "questionType": "Drop Down", "medium": "Hindi",
         "questionDescription": "रंग?", "isMandatory": "No", "options": [{"text": "लाल", "textInEnglish": "Red"}]},
        {"surveyId": "", "questionId": "", "questionType": "Drop Down", "questionDescription": "stray"},
        {"surveyId": "S1", "questionId": "Q2", "questionType": "Calendar", "medium": "English",
         "questionDescription": "When?"},
    ]
    grouped = group_rows(rows)
    assert [g["questionId"] for g in grouped] == ["Q1", "Q2"]
    q1 = grouped[0]
    assert q1["medium"] == "English"
    assert q1["isMandatory"] == "Yes"
    assert list(q1["translations"]) == ["English", "Hindi"]
    assert q1["translations"]["Hindi"]["questionDescription"] == "रंग?"


def test_from_rows_reads_option_slots_when_not_normalized():
    rows = [{"surveyId": "S1", "questionId": "Q1", "questionType": "Likert Scale",
             "mediumInEnglish": "English", "questionDescription": "Agree?",
             "option1": "Agree", "option2": "Disagree", "option2Children": ""}]
    (question,) = from_rows(rows)
    assert [o.text for o in question.translations["English"].options] == ["Agree", "Disagree"]


def test_export_rows_group_back(survey, bilingual_question):
    rows = to_rows(survey, [bilingual_question])[QUESTION_SHEET]
    records = [normalize_question_row(dict(zip(QUESTION_HEADERS[:19] + QUESTION_HEADERS[20:], r[:19] + r[20:])))
               for r in rows]
    (question,) = from_rows(records)
    assert question.question_id == "Q1"
    assert question.is_dynamic is True
    assert set(question.translations) == {"English", "Hindi"}
    hindi = question.translations["Hindi"]
    assert hindi.question_description == "क्या आप स्कूल जाते हैं?"
    assert [o.english for o in hindi.options] == ["Yes", "No"]
    assert hindi.options[0].children == ["Q1.1"]


# ------------------------
# Table sub-formats
# ------------------------
def test_split_table_header():
    assert split_table_header("Subject, Marks") == ["Subject", "Marks"]
    assert split_table_header("Subject|Marks") == ["Subject", "Marks"]
    assert split_table_header("") == [""]


def test_table_questions():
    assert is_valid_table_questions("a:Maths\r\nb:Science")
    assert not is_valid_table_questions("a:Maths\n")
    assert not is_valid_table_questions("A:Maths")
    assert not is_valid_table_questions("a:")
    assert parse_table_questions("a:Maths\nb: Science") == [("a", "Maths"), ("b", "Science")]
    assert format_table_questions(["Maths", "Science"]) == "a:Maths\nb:Science"
