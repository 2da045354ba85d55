"""
Persistence of canonical survey and question records.

Each row keeps the full camelCase record as JSON next to the columns used
for lookups. Functions commit their own work; callers translate NotFound /
AlreadyExists into HTTP responses.
"""
from __future__ import annotations
import logging
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import QuestionRow, SurveyRow
from question_graph import normalize_question_id
from schemas import Question, Survey

logger = logging.getLogger(__name__)


class NotFound(Exception):
    pass


class AlreadyExists(Exception):
    pass


def _survey_row(db: Session, survey_id: str) -> SurveyRow:
    row = db.get(SurveyRow, survey_id)
    if row is None:
        raise NotFound(f"Survey {survey_id} not found")
    return row


def _find_question_row(db: Session, survey_id: str, question_id: str):
    return db.execute(
        select(QuestionRow).where(
            QuestionRow.survey_id == survey_id,
            QuestionRow.question_id == normalize_question_id(question_id),
        )
    ).scalar_one_or_none()


def _question_row(db: Session, survey_id: str, question_id: str) -> QuestionRow:
    row = _find_question_row(db, survey_id, question_id)
    if row is None:
        raise NotFound(f"Question {question_id} not found in survey {survey_id}")
    return row


def _new_question_row(question: Question) -> QuestionRow:
    return QuestionRow(
        survey_id=question.survey_id,
        question_id=question.question_id,
        question_type=question.question_type.value,
        payload=question.to_record(),
    )


# ------------------------
# Surveys
# ------------------------
def list_surveys(db: Session) -> List[Survey]:
    rows = db.execute(select(SurveyRow).order_by(SurveyRow.created_at, SurveyRow.survey_id)).scalars().all()
    return [Survey.model_validate(r.payload) for r in rows]


def get_survey(db: Session, survey_id: str) -> Survey:
    return Survey.model_validate(_survey_row(db, survey_id).payload)


def create_survey(db: Session, survey: Survey) -> Survey:
    """Insert a survey.

    Raises:
        AlreadyExists: a survey with the same id is stored.
    """
    if db.get(SurveyRow, survey.survey_id) is not None:
        raise AlreadyExists(f"Survey {survey.survey_id} already exists")
    db.add(SurveyRow(survey_id=survey.survey_id, survey_name=survey.survey_name, payload=survey.to_record()))
    db.commit()
    logger.info("Created survey %s", survey.survey_id)
    return survey


def update_survey(db: Session, survey_id: str, survey: Survey) -> Survey:
    row = _survey_row(db, survey_id)
    survey = survey.model_copy(update={"survey_id": survey_id})
    row.survey_name = survey.survey_name
    row.payload = survey.to_record()
    db.commit()
    return survey


def delete_survey(db: Session, survey_id: str) -> None:
    """Delete a survey; its questions go with it (FK ON DELETE CASCADE)."""
    row = _survey_row(db, survey_id)
    db.delete(row)
    db.commit()
    logger.info("Deleted survey %s", survey_id)


# ------------------------
# Questions
# ------------------------
def list_questions(db: Session, survey_id: str) -> List[Question]:
    _survey_row(db, survey_id)
    rows = db.execute(
        select(QuestionRow).where(QuestionRow.survey_id == survey_id).order_by(QuestionRow.id)
    ).scalars().all()
    return [Question.model_validate(r.payload) for r in rows]


def get_question(db: Session, survey_id: str, question_id: str) -> Question:
    return Question.model_validate(_question_row(db, survey_id, question_id).payload)


def create_question(db: Session, question: Question) -> Question:
    """Insert a question under its survey.

    Raises:
        NotFound: the survey does not exist.
        AlreadyExists: the survey already has a question with this id.
    """
    _survey_row(db, question.survey_id)
    if _find_question_row(db, question.survey_id, question.question_id) is not None:
        raise AlreadyExists(f"Question {question.question_id} already exists in survey {question.survey_id}")
    db.add(_new_question_row(question))
    db.commit()
    return question


def update_question(db: Session, survey_id: str, question_id: str, question: Question) -> Question:
    row = _question_row(db, survey_id, question_id)
    question = question.model_copy(update={"survey_id": survey_id, "question_id": row.question_id})
    row.question_type = question.question_type.value
    row.payload = question.to_record()
    db.commit()
    return question


def delete_question(db: Session, survey_id: str, question_id: str) -> None:
    row = _question_row(db, survey_id, question_id)
    db.delete(row)
    db.commit()


# ------------------------
# Bulk import
# ------------------------
def import_records(db: Session, surveys: Iterable[Survey], questions: Iterable[Question]) -> dict:
    """Insert surveys and questions in one transaction; nothing is written on conflict.

    Raises:
        AlreadyExists: any survey, or any (survey, question) pair, is already stored
            or repeated within the batch.
        NotFound: a question names a survey that is neither stored nor in the batch.
    """
    surveys = list(surveys)
    questions = list(questions)

    survey_ids = [s.survey_id for s in surveys]
    taken = [sid for sid in dict.fromkeys(survey_ids) if db.get(SurveyRow, sid) is not None]
    repeated = [sid for sid in dict.fromkeys(survey_ids) if survey_ids.count(sid) > 1]
    if taken or repeated:
        raise AlreadyExists(f"Survey IDs already exist: {', '.join(dict.fromkeys(taken + repeated))}")

    known = set(survey_ids)
    for sid in dict.fromkeys(q.survey_id for q in questions):
        if sid not in known and db.get(SurveyRow, sid) is None:
            raise NotFound(f"Survey {sid} not found")

    for survey in surveys:
        db.add(SurveyRow(survey_id=survey.survey_id, survey_name=survey.survey_name, payload=survey.to_record()))
    for question in questions:
        db.add(_new_question_row(question))
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyExists("Question IDs already exist or are repeated in the upload") from exc

    logger.info("Imported %d surveys and %d questions", len(surveys), len(questions))
    return {"surveys": len(surveys), "questions": len(questions)}
