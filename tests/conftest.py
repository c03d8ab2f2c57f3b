import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def db_url(monkeypatch, tmp_path):
    url = f"sqlite:///{tmp_path}/school.db"
    monkeypatch.setenv("DATABASE_URL", url)

    from schoolapi import database

    monkeypatch.setattr(database, "DATABASE_URL", url)
    monkeypatch.setattr(database, "ENGINE", None)
    yield url
    if database.ENGINE is not None:
        database.ENGINE.dispose()


@pytest.fixture
def conn(db_url):
    from schoolapi import database

    database.initialize_db()
    connection = database.get_db_connection()
    yield connection
    connection.close()


@pytest.fixture
def client(db_url):
    from schoolapi.main import app

    with TestClient(app, headers={"X-Admin-Id": "1"}) as test_client:
        yield test_client


def make_year(client, **overrides):
    payload = {
        "year_name": "2024/2025",
        "start_date": "2024-09-01",
        "end_date": "2025-06-30",
        "number_of_terms": 3,
        "exams_per_term": 1,
        "is_current": True,
        "promotion_average": 50,
        "repeat_average": 40,
        "drop_average": 30,
        "passing_percentage": 40,
    }
    payload.update(overrides)
    resp = client.post("/api/academic-years", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["academic_year_id"]


def make_class(client, class_name, **fields):
    resp = client.post("/api/classes", json=dict(fields, class_name=class_name))
    assert resp.status_code == 201, resp.text
    return resp.json()["class_id"]


def make_subject(client, class_id, code="MTH", name="Mathematics"):
    resp = client.post("/api/subjects", json={"subject_name": name, "subject_code": code, "class_id": class_id})
    assert resp.status_code == 201, resp.text
    return resp.json()["subject_id"]


def make_student(client, name, id_number, class_id=None):
    payload = {"name": name, "id_number": id_number}
    if class_id:
        payload["class_id"] = class_id
    resp = client.post("/api/students", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["student_id"]


def year_exams(client, academic_year_id=None):
    params = {"academic_year_id": academic_year_id} if academic_year_id else {}
    resp = client.get("/api/exams", params=params)
    assert resp.status_code == 200, resp.text
    return resp.json()["exams"]


def record_result(client, exam_id, student_id, subject_id, marks):
    resp = client.post("/api/exams/results", json={
        "exam_id": exam_id, "student_id": student_id, "subject_id": subject_id, "marks_obtained": marks,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()
