import pandas as pd
import pytest

from conftest import make_class, make_student, make_subject, make_year, record_result, year_exams

from schoolapi.services.reports import df_to_records


@pytest.fixture
def school_year(client):
    make_year(client)
    class_id = make_class(client, "Grade 1")
    maths = make_subject(client, class_id, "MTH", "Mathematics")
    english = make_subject(client, class_id, "ENG", "English")
    exam_id = year_exams(client)[0]["id"]
    ada = make_student(client, "Ada", "S001", class_id)
    bob = make_student(client, "Bob", "S002", class_id)
    for student_id, subject_id, marks in [(ada, maths, 90), (ada, english, 70), (bob, maths, 30), (bob, english, 30)]:
        record_result(client, exam_id, student_id, subject_id, marks)
    return {"class_id": class_id, "ada": ada, "bob": bob, "maths": maths}


def test_df_to_records_replaces_nan():
    df = pd.DataFrame({"name": ["Ada", "Bob"], "score": [81.5, float("nan")]})
    assert df_to_records(df) == [{"name": "Ada", "score": 81.5}, {"name": "Bob", "score": None}]
    assert df_to_records(pd.DataFrame()) == []


def test_class_performance(client, school_year):
    [report] = client.get("/api/reports/class-performance").json()["report"]
    assert report["class_name"] == "Grade 1"
    assert report["students"] == 2
    assert report["average_score"] == 55
    assert report["highest_score"] == 80
    assert report["lowest_score"] == 30
    assert report["passed"] == 1
    assert report["pass_rate"] == 50


def test_subject_performance(client, school_year):
    report = client.get("/api/reports/subject-performance").json()["report"]
    by_subject = {row["subject_name"]: row for row in report}
    assert by_subject["Mathematics"]["average_score"] == 60
    assert by_subject["Mathematics"]["highest_score"] == 90
    assert by_subject["English"]["results"] == 2


def test_top_performers(client, school_year):
    report = client.get("/api/reports/top-performers", params={"limit": 1}).json()["report"]
    assert [(r["student_name"], r["average_score"]) for r in report] == [("Ada", 80)]
    assert client.get("/api/reports/top-performers", params={"limit": 0}).status_code == 400


def test_attendance_summary(client, school_year):
    for student_id, status in [(school_year["ada"], "present"), (school_year["bob"], "absent")]:
        client.post("/api/attendance", json={"student_id": student_id, "subject_id": school_year["maths"],
                                             "date": "2024-10-01", "status": status})

    [row] = client.get("/api/reports/attendance-summary").json()["report"]
    assert row["present"] == 1
    assert row["absent"] == 1
    assert row["late"] == 0
    assert row["total"] == 2
    assert row["attendance_rate"] == 50


def test_financial_overview(client, school_year):
    for student_id, term, amount, status in [(school_year["ada"], "1", 500, "paid"),
                                             (school_year["bob"], "1", 300, "pending"),
                                             (school_year["ada"], "2", 250, "paid")]:
        client.post("/api/fees", json={"student_id": student_id, "term": term, "amount": amount,
                                       "payment_date": "2024-09-15", "status": status})

    report = client.get("/api/reports/financial-overview").json()["report"]
    assert report["total_amount"] == 1050
    assert report["by_status"] == {"paid": 750, "pending": 300}
    by_term = {row["term"]: row for row in report["by_term"]}
    assert by_term["1st Term"]["total"] == 800
    assert by_term["2nd Term"]["paid"] == 250


def test_reports_need_a_year(client):
    resp = client.get("/api/reports/class-performance")
    assert resp.status_code == 400
    assert resp.json()["message"] == "No current academic year set"


def test_dashboard_counts(client, school_year):
    client.post("/api/complaints", json={"complaint": "Noise", "user_type": "parent"})
    stats = client.get("/api/reports/dashboard").json()["stats"]
    assert stats["students"] == 2
    assert stats["classes"] == 1
    assert stats["subjects"] == 2
    assert stats["pending_complaints"] == 1
    assert stats["fees_collected"] == 0
    assert stats["average_attendance"] == 0


def test_dashboard_without_current_year(client):
    stats = client.get("/api/reports/dashboard").json()["stats"]
    assert stats["students"] == 0
    assert stats["fees_collected"] == 0
