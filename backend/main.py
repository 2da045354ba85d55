import os
import logging
from typing import Literal

from dotenv import load_dotenv
from fastapi import FastAPI, Depends, HTTPException, UploadFile, File, Body, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import store
from bulk import normalize_sheets, validate_upload
from db import Base, engine, get_db
from issues import IngestError, ValidationResult, issue
from question_graph import build_question_tree, next_question_id
from schemas import DuplicateSurvey, Question, Survey
from spreadsheet import QUESTION_HEADERS, QUESTION_SHEET, SURVEY_HEADERS, SURVEY_SHEET, from_rows, to_rows
from validation import get_schema, validate_question, validate_survey
from workbook import build_csv, build_workbook, read_upload

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(float(os.getenv("MAX_UPLOAD_MB", "10")) * 1024 * 1024)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Survey Builder API")

origins = os.getenv("ORIGINS", "http://localhost:5173").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_failed(result: ValidationResult) -> JSONResponse:
    """400 response carrying every structured error."""
    return JSONResponse(status_code=400, content={
        "error": "Validation failed",
        "errors": [e.model_dump(mode="json") for e in result.errors],
    })


@app.exception_handler(ValidationError)
def _record_rejected(request, exc: ValidationError) -> JSONResponse:
    """A record the typed models cannot hold is a 400, like any other validation failure."""
    errors = [
        issue(".".join(str(part) for part in err["loc"]), err["msg"], err.get("input"))
        for err in exc.errors(include_url=False)
    ]
    logger.info("Rejected record: %d model errors", len(errors))
    return _validation_failed(ValidationResult.of(errors))


def _survey_or_404(db: Session, survey_id: str) -> Survey:
    try:
        return store.get_survey(db, survey_id)
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))


def _question_context(db: Session, survey_id: str):
    """Stored survey records and the survey's question snapshot, for question validation."""
    try:
        snapshot = [q.to_record() for q in store.list_questions(db, survey_id)]
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))
    surveys = [s.to_record() for s in store.list_surveys(db)]
    return surveys, snapshot


def _read_limited(file: UploadFile) -> bytes:
    content = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(content) > MAX_UPLOAD_BYTES:
        logger.warning("Rejected upload %s: larger than %d bytes", file.filename, MAX_UPLOAD_BYTES)
        raise HTTPException(413, "Uploaded file is too large")
    return content


def _ingest(file: UploadFile) -> dict:
    content = _read_limited(file)
    try:
        sheets = read_upload(file.filename, content)
    except IngestError as exc:
        logger.warning("Rejected upload %s: %s", file.filename, exc)
        raise HTTPException(400, str(exc))
    return normalize_sheets(sheets)


@app.get("/api/health")
def health():
    """Basic readiness probe.

    Returns:
        dict: {"ok": True}
    """
    return {"ok": True}


@app.get("/api/validation-schema")
def validation_schema():
    """Rule descriptors and enumerations for client-side validation."""
    return get_schema()

# ------------------------
# Surveys
# ------------------------
@app.get("/api/surveys")
def list_surveys(db: Session = Depends(get_db)):
    return [s.to_record() for s in store.list_surveys(db)]


@app.get("/api/surveys/{survey_id}")
def get_survey(survey_id: str, db: Session = Depends(get_db)):
    """Fetch one survey.

    Raises:
        HTTPException: 404 if survey not found.
    """
    return _survey_or_404(db, survey_id).to_record()


@app.post("/api/surveys", status_code=201)
def create_survey(record: dict = Body(...), db: Session = Depends(get_db)):
    """Validate and store a new survey.

    Args:
        record (dict): camelCase survey attributes.
        db (Session): DB session.

    Returns:
        dict: the stored survey record.

    Raises:
        HTTPException: 409 if the survey id is taken.
    """
    result = validate_survey(record)
    if not result.is_valid:
        return _validation_failed(result)
    try:
        survey = store.create_survey(db, Survey.model_validate(record))
    except store.AlreadyExists as exc:
        raise HTTPException(409, str(exc))
    return survey.to_record()


@app.put("/api/surveys/{survey_id}")
def update_survey(survey_id: str, record: dict = Body(...), db: Session = Depends(get_db)):
    """Replace a survey's attributes; the id in the path wins over the body.

    Raises:
        HTTPException: 404 if survey not found.
    """
    record = {**record, "surveyId": survey_id}
    result = validate_survey(record)
    if not result.is_valid:
        return _validation_failed(result)
    try:
        survey = store.update_survey(db, survey_id, Survey.model_validate(record))
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))
    return survey.to_record()


@app.delete("/api/surveys/{survey_id}")
def delete_survey(survey_id: str, db: Session = Depends(get_db)):
    """Hard-delete a survey and its questions (via FKs).

    Returns:
        dict: {"ok": True}

    Raises:
        HTTPException: 404 if survey not found.
    """
    try:
        store.delete_survey(db, survey_id)
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))
    return {"ok": True}


@app.post("/api/surveys/{survey_id}/duplicate", status_code=201)
def duplicate_survey(survey_id: str, body: DuplicateSurvey, db: Session = Depends(get_db)):
    """Copy a survey and all its questions under a new id.

    Launch and close dates are cleared on the copy.

    Raises:
        HTTPException: 404 if the source survey is missing; 409 if the new id is taken.
    """
    source = _survey_or_404(db, survey_id)
    copy = source.model_copy(update={"survey_id": body.new_survey_id, "launch_date": "", "close_date": ""})
    result = validate_survey(copy.to_record())
    if not result.is_valid:
        return _validation_failed(result)

    questions = [
        q.model_copy(update={"survey_id": copy.survey_id})
        for q in store.list_questions(db, survey_id)
    ]
    try:
        store.import_records(db, [copy], questions)
    except store.AlreadyExists as exc:
        raise HTTPException(409, str(exc))
    logger.info("Duplicated survey %s as %s (%d questions)", survey_id, copy.survey_id, len(questions))
    return copy.to_record()

# ------------------------
# Questions
# ------------------------
@app.get("/api/surveys/{survey_id}/questions")
def list_questions(survey_id: str, db: Session = Depends(get_db)):
    try:
        return [q.to_record() for q in store.list_questions(db, survey_id)]
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))


@app.get("/api/surveys/{survey_id}/question-tree")
def question_tree(survey_id: str, db: Session = Depends(get_db)):
    """Parent question id -> ids of its child questions."""
    try:
        questions = store.list_questions(db, survey_id)
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))
    return build_question_tree(q.to_record() for q in questions)


@app.post("/api/surveys/{survey_id}/questions", status_code=201)
def create_question(survey_id: str, record: dict = Body(...), db: Session = Depends(get_db)):
    """Validate a question against its survey and siblings, then store it.

    Raises:
        HTTPException: 404 if survey not found; 409 if the question id is taken.
    """
    record = {**record, "surveyId": survey_id}
    surveys, snapshot = _question_context(db, survey_id)
    result = validate_question(record, surveys, snapshot)
    if not result.is_valid:
        return _validation_failed(result)
    try:
        question = store.create_question(db, Question.model_validate(record))
    except store.AlreadyExists as exc:
        raise HTTPException(409, str(exc))
    return question.to_record()


@app.put("/api/surveys/{survey_id}/questions/{question_id}")
def update_question(survey_id: str, question_id: str, record: dict = Body(...), db: Session = Depends(get_db)):
    """Replace a stored question.

    Raises:
        HTTPException: 404 if survey or question not found.
    """
    record = {**record, "surveyId": survey_id, "questionId": question_id}
    surveys, snapshot = _question_context(db, survey_id)
    result = validate_question(record, surveys, snapshot)
    if not result.is_valid:
        return _validation_failed(result)
    try:
        question = store.update_question(db, survey_id, question_id, Question.model_validate(record))
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))
    return question.to_record()


@app.delete("/api/surveys/{survey_id}/questions/{question_id}")
def delete_question(survey_id: str, question_id: str, db: Session = Depends(get_db)):
    try:
        store.delete_question(db, survey_id, question_id)
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))
    return {"ok": True}


@app.post("/api/surveys/{survey_id}/questions/{question_id}/duplicate", status_code=201)
def duplicate_question(survey_id: str, question_id: str, db: Session = Depends(get_db)):
    """Copy a question under the next free top-level id.

    The copy is detached from any parent and its options own no children,
    so the survey's child mapping stays unambiguous.

    Raises:
        HTTPException: 404 if survey or question not found.
    """
    surveys, snapshot = _question_context(db, survey_id)
    try:
        source = store.get_question(db, survey_id, question_id)
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))

    def _detach(options):
        return [o.model_copy(update={"children": []}) for o in options]

    copy = source.model_copy(update={
        "question_id": next_question_id(q["questionId"] for q in snapshot),
        "source_question": "",
        "options": _detach(source.options),
        "translations": {
            medium: t.model_copy(update={"options": _detach(t.options)})
            for medium, t in source.translations.items()
        },
    })
    result = validate_question(copy.to_record(), surveys, snapshot)
    if not result.is_valid:
        return _validation_failed(result)
    store.create_question(db, copy)
    return copy.to_record()

# ------------------------
# Export
# ------------------------
@app.get("/api/export/{survey_id}")
def export_workbook(survey_id: str, db: Session = Depends(get_db)):
    """Download the survey as an xlsx workbook with Survey Master and Question Master sheets.

    Returns:
        Response: xlsx attachment `<survey_id>_survey.xlsx`.
    """
    survey = _survey_or_404(db, survey_id)
    sheets = to_rows(survey, store.list_questions(db, survey_id))
    content = build_workbook({
        SURVEY_SHEET: (SURVEY_HEADERS, sheets[SURVEY_SHEET]),
        QUESTION_SHEET: (QUESTION_HEADERS, sheets[QUESTION_SHEET]),
    })
    logger.info("Exported survey %s (%d question rows)", survey_id, len(sheets[QUESTION_SHEET]))
    return Response(content=content,
                    media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                    headers={"Content-Disposition": f"attachment; filename={survey_id}_survey.xlsx"})


@app.get("/api/export/{survey_id}/questions.csv")
def export_questions_csv(survey_id: str, db: Session = Depends(get_db)):
    """Question Master rows as CSV.

    Returns:
        Response: text/csv attachment `<survey_id>_questions.csv`.
    """
    survey = _survey_or_404(db, survey_id)
    rows = to_rows(survey, store.list_questions(db, survey_id))[QUESTION_SHEET]
    return Response(content=build_csv(QUESTION_HEADERS, rows), media_type="text/csv",
                    headers={"Content-Disposition": f"attachment; filename={survey_id}_questions.csv"})

# ------------------------
# Upload: validate / import
# ------------------------
@app.post("/api/validate-upload")
def validate_uploaded_file(file: UploadFile = File(...),
                           schema: Literal["survey", "question", "both"] = Query("both"),
                           db: Session = Depends(get_db)):
    """Row-level validation report for an uploaded workbook or CSV.

    Args:
        file (UploadFile): .xlsx/.xls/.csv upload.
        schema (str): which sheets to validate.
        db (Session): DB session.

    Returns:
        dict: {"isValid", "summary": {"totalRows", "errorRows", "totalErrors"}, "errors": [...]}

    Raises:
        HTTPException: 400 if the file cannot be read; 413 if it is too large.
    """
    sheets = _ingest(file)
    existing = [s.to_record() for s in store.list_surveys(db)]
    report = validate_upload(sheets, existing, schema)
    return report.model_dump(by_alias=True, mode="json")


@app.post("/api/import", status_code=201)
def import_file(file: UploadFile = File(...), db: Session = Depends(get_db)):
    """Validate an upload and, if clean, store its surveys and grouped questions.

    Returns:
        dict: {"surveys": <count>, "questions": <count>}

    Raises:
        HTTPException: 400 on unreadable files; 404 if a question names an unknown
            survey; 409 if any id already exists; 413 if too large.
    """
    sheets = _ingest(file)
    existing = [s.to_record() for s in store.list_surveys(db)]
    report = validate_upload(sheets, existing, "both")
    if not report.is_valid:
        logger.warning("Import of %s rejected: %d errors", file.filename, report.summary.total_errors)
        body = report.model_dump(by_alias=True, mode="json")
        return JSONResponse(status_code=400, content={"error": "Validation failed", **body})

    surveys = [Survey.model_validate(row.record) for row in sheets.get(SURVEY_SHEET, [])]
    questions = from_rows(row.record for row in sheets.get(QUESTION_SHEET, []))
    try:
        counts = store.import_records(db, surveys, questions)
    except store.AlreadyExists as exc:
        raise HTTPException(409, str(exc))
    except store.NotFound as exc:
        raise HTTPException(404, str(exc))
    logger.info("Imported %s: %s", file.filename, counts)
    return counts
