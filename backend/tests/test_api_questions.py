import pytest


@pytest.fixture
def survey_id(client, survey_record, request):
    sid = f"APIQ_{request.node.name}"
    r = client.post("/api/surveys", json=survey_record(sid, availableMediums="English,Hindi"))
    assert r.status_code == 201
    return sid


def test_create_and_list_questions(client, survey_id, question_record):
    r = client.post(f"/api/surveys/{survey_id}/questions", json=question_record("Q1", "IGNORED"))
    assert r.status_code == 201
    created = r.json()
    assert created["surveyId"] == survey_id
    assert created["isMandatory"] == "Yes"
    assert created["options"][0] == {"text": "Yes", "textInEnglish": "", "children": []}

    listed = client.get(f"/api/surveys/{survey_id}/questions").json()
    assert [q["questionId"] for q in listed] == ["Q1"]


def test_question_for_missing_survey(client, question_record):
    r = client.post("/api/surveys/NO_SUCH_SURVEY/questions", json=question_record())
    assert r.status_code == 404


def test_question_validation_errors(client, survey_id, question_record):
    r = client.post(f"/api/surveys/{survey_id}/questions",
                    json=question_record("Q1", medium="Tamil", options=[]))
    assert r.status_code == 400
    fields = sorted(e["field"] for e in r.json()["errors"])
    assert fields == ["medium", "options"]


def test_duplicate_question_id_conflicts(client, survey_id, question_record):
    client.post(f"/api/surveys/{survey_id}/questions", json=question_record("Q1"))
    r = client.post(f"/api/surveys/{survey_id}/questions", json=question_record("Q1"))
    assert r.status_code == 409


def test_child_questions_checked_against_stored_siblings(client, survey_id, question_record):
    parent = question_record("Q1", options=[{"text": "Yes", "children": "Q1.1"}, {"text": "No"}])
    assert client.post(f"/api/surveys/{survey_id}/questions", json=parent).status_code == 201

    orphan = question_record("Q2.1", questionType="Text Response", options=[], sourceQuestion="Q2")
    r = client.post(f"/api/surveys/{survey_id}/questions", json=orphan)
    assert r.status_code == 400
    assert r.json()["errors"][0]["message"] == "Source Question (parent) does not exist"

    child = question_record("Q1.1", questionType="Text Response", options=[], sourceQuestion="Q1")
    assert client.post(f"/api/surveys/{survey_id}/questions", json=child).status_code == 201

    rival = question_record("Q3", options=[{"text": "Maybe", "children": "Q1.1"}])
    r = client.post(f"/api/surveys/{survey_id}/questions", json=rival)
    assert r.status_code == 400
    assert r.json()["errors"][0]["kind"] == "structural"


def test_update_question(client, survey_id, question_record):
    client.post(f"/api/surveys/{survey_id}/questions", json=question_record("Q1"))
    r = client.put(f"/api/surveys/{survey_id}/questions/Q1",
                   json=question_record("Q1", questionDescription="Updated text"))
    assert r.status_code == 200
    assert r.json()["questionDescription"] == "Updated text"

    r = client.put(f"/api/surveys/{survey_id}/questions/Q9", json=question_record("Q9"))
    assert r.status_code == 404


def test_update_may_move_child_between_own_options(client, survey_id, question_record):
    client.post(f"/api/surveys/{survey_id}/questions",
                json=question_record("Q1", options=[{"text": "Yes", "children": "Q1.1"}, {"text": "No"}]))
    moved = question_record("Q1", options=[{"text": "Yes"}, {"text": "No", "children": "Q1.1"}])
    assert client.put(f"/api/surveys/{survey_id}/questions/Q1", json=moved).status_code == 200


def test_delete_question(client, survey_id, question_record):
    client.post(f"/api/surveys/{survey_id}/questions", json=question_record("Q1"))
    assert client.delete(f"/api/surveys/{survey_id}/questions/Q1").json() == {"ok": True}
    assert client.delete(f"/api/surveys/{survey_id}/questions/Q1").status_code == 404


def test_duplicate_question(client, survey_id, question_record):
    parent = question_record("Q1", options=[{"text": "Yes", "children": "Q1.1"}, {"text": "No"}])
    client.post(f"/api/surveys/{survey_id}/questions", json=parent)
    client.post(f"/api/surveys/{survey_id}/questions", json=question_record(
        "Q1.1", questionType="Text Response", options=[], sourceQuestion="Q1"))

    r = client.post(f"/api/surveys/{survey_id}/questions/Q1.1/duplicate")
    assert r.status_code == 201
    copy = r.json()
    assert copy["questionId"] == "Q2"
    assert copy["sourceQuestion"] == ""

    r = client.post(f"/api/surveys/{survey_id}/questions/Q1/duplicate")
    assert r.json()["questionId"] == "Q3"
    assert all(o["children"] == [] for o in r.json()["options"])

    assert client.post(f"/api/surveys/{survey_id}/questions/Q7/duplicate").status_code == 404


def test_question_tree(client, survey_id, question_record):
    client.post(f"/api/surveys/{survey_id}/questions",
                json=question_record("Q1", options=[{"text": "Yes", "children": "Q1.1,Q1.2"}, {"text": "No"}]))
    for qid in ("Q1.1", "Q1.2"):
        client.post(f"/api/surveys/{survey_id}/questions", json=question_record(
            qid, questionType="Text Response", options=[], sourceQuestion="Q1"))
    r = client.get(f"/api/surveys/{survey_id}/question-tree")
    assert r.json() == {"Q1": ["Q1.1", "Q1.2"]}
    assert client.get("/api/surveys/NO_SUCH_SURVEY/question-tree").status_code == 404


def test_options_without_text_are_rejected(client, survey_id, question_record):
    for options in ([1, 2, 3], [{"textInEnglish": "Yes"}]):
        r = client.post(f"/api/surveys/{survey_id}/questions",
                        json=question_record("Q1", questionType="Likert Scale", options=options))
        assert r.status_code == 400
        assert r.json()["errors"][0]["kind"] == "structural"
    assert client.get(f"/api/surveys/{survey_id}/questions").json() == []


def test_record_the_model_cannot_hold_is_a_400(client, survey_id, question_record):
    r = client.post(f"/api/surveys/{survey_id}/questions",
                    json=question_record("Q1", translations="not a mapping"))
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Validation failed"
    assert "translations" in [e["field"] for e in body["errors"]]


def test_duplicate_question_is_validated(client, survey_id, survey_record, question_record):
    client.post(f"/api/surveys/{survey_id}/questions", json=question_record("Q1", medium="Hindi"))
    client.put(f"/api/surveys/{survey_id}", json=survey_record(survey_id, availableMediums="English"))

    r = client.post(f"/api/surveys/{survey_id}/questions/Q1/duplicate")
    assert r.status_code == 400
    assert [e["field"] for e in r.json()["errors"]] == ["medium"]
    assert [q["questionId"] for q in client.get(f"/api/surveys/{survey_id}/questions").json()] == ["Q1"]
