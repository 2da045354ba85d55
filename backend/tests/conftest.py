import os, tempfile
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from main import app
from db import Base, get_db

@pytest.fixture(scope="session")
def tmp_db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    return path

@pytest.fixture(scope="session")
def test_engine(tmp_db_path):
    url = f"sqlite:///{tmp_db_path}"
    engine = create_engine(url, connect_args={"check_same_thread": False})

    # SQLite force foreign key constraints
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    return engine

@pytest.fixture(scope="session")
def TestingSessionLocal(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

@pytest.fixture(scope="session", autouse=True)
def override_di(TestingSessionLocal):
    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()
    app.dependency_overrides[get_db] = _get_db

@pytest.fixture
def db_session(TestingSessionLocal):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def survey_record():
    """Factory for a valid camelCase survey record."""
    def _make(survey_id="S1", **overrides):
        record = {
            "surveyId": survey_id,
            "surveyName": "Baseline survey",
            "surveyDescription": "Term start baseline",
            "availableMediums": "English,Hindi",
            "hierarchicalAccessLevel": "1,2",
            "public": "Yes",
            "inSchool": "No",
            "acceptMultipleEntries": "No",
            "launchDate": "01/06/2024",
            "closeDate": "30/06/2024 18:00:00",
            "mode": "New Data",
            "visibleOnReportBot": "No",
            "isActive": "Yes",
            "downloadResponse": "No",
            "geoFencing": "No",
            "geoTagging": "No",
            "testSurvey": "No",
        }
        record.update(overrides)
        return record
    return _make

@pytest.fixture
def question_record():
    """Factory for a valid single-select question record."""
    def _make(question_id="Q1", survey_id="S1", **overrides):
        record = {
            "surveyId": survey_id,
            "questionId": question_id,
            "questionType": "Multiple Choice Single Select",
            "medium": "English",
            "isDynamic": "Yes",
            "isMandatory": "Yes",
            "questionDescription": "Do you attend school?",
            "textInputType": "None",
            "questionMediaType": "None",
            "options": [{"text": "Yes"}, {"text": "No"}],
        }
        record.update(overrides)
        return record
    return _make
