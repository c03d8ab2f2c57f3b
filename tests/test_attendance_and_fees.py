import pytest

from conftest import make_class, make_student, make_subject, make_year

from schoolapi.models.attendance import absence_streak
from schoolapi.models.fee import normalize_term


@pytest.fixture
def enrolled(client):
    make_year(client)
    class_id = make_class(client, "Grade 1")
    return {
        "class_id": class_id,
        "subject_id": make_subject(client, class_id),
        "student_id": make_student(client, "Ada", "S001", class_id),
    }


def mark(client, enrolled, day, status):
    resp = client.post("/api/attendance", json={
        "student_id": enrolled["student_id"], "subject_id": enrolled["subject_id"],
        "date": day, "status": status,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_absence_streak_counts_from_newest():
    assert absence_streak(["absent", "absent", "present"]) == 2
    assert absence_streak(["present", "absent", "absent"]) == 0
    assert absence_streak(["ABSENT", "absent", "absent"]) == 3
    assert absence_streak([]) == 0


def test_normalize_term():
    assert normalize_term(1) == "1st Term"
    assert normalize_term("2") == "2nd Term"
    assert normalize_term("3") == "Full Year"
    assert normalize_term("Summer") == "Summer"


def test_third_consecutive_absence_escalates_once(client, enrolled):
    assert mark(client, enrolled, "2024-10-01", "absent")["escalated"] is False
    assert mark(client, enrolled, "2024-10-02", "absent")["escalated"] is False

    third = mark(client, enrolled, "2024-10-03", "absent")
    assert third["absence_streak"] == 3
    assert third["escalated"] is True

    fourth = mark(client, enrolled, "2024-10-04", "absent")
    assert fourth["escalated"] is False

    strikes = client.get("/api/attendance/strikes", params={"escalated": True}).json()["strikes"]
    assert len(strikes) == 1
    assert strikes[0]["student_id"] == enrolled["student_id"]
    assert strikes[0]["notification_sent"] == 1


def test_present_mark_breaks_the_streak(client, enrolled):
    mark(client, enrolled, "2024-10-01", "absent")
    mark(client, enrolled, "2024-10-02", "absent")
    result = mark(client, enrolled, "2024-10-03", "present")
    assert result["absence_streak"] == 0
    assert result["escalated"] is False


def test_marking_same_day_updates_the_record(client, enrolled):
    first = mark(client, enrolled, "2024-10-01", "absent")
    second = mark(client, enrolled, "2024-10-01", "late")
    assert second["attendance_id"] == first["attendance_id"]

    records = client.get(f"/api/attendance/student/{enrolled['student_id']}").json()["attendance"]
    assert [r["status"] for r in records] == ["late"]


def test_attendance_requires_enrollment(client, enrolled):
    outsider = make_student(client, "Bob", "S002")
    resp = client.post("/api/attendance", json={
        "student_id": outsider, "subject_id": enrolled["subject_id"], "date": "2024-10-01", "status": "present",
    })
    assert resp.status_code == 400


def test_attendance_stats_percentage(client, enrolled):
    for day, status in [("2024-10-01", "present"), ("2024-10-02", "present"), ("2024-10-03", "absent")]:
        mark(client, enrolled, day, status)

    stats = client.get(f"/api/attendance/student/{enrolled['student_id']}/stats").json()["stats"]
    assert stats["total"] == 3
    assert stats["present"] == 2
    assert stats["percentage"] == 66.67


def test_class_attendance_sheet_lists_unmarked_students(client, enrolled):
    other = make_student(client, "Bob", "S002", enrolled["class_id"])
    mark(client, enrolled, "2024-10-01", "present")

    sheet = client.get(f"/api/attendance/class/{enrolled['class_id']}", params={"date": "2024-10-01"}).json()
    by_student = {row["student_id"]: row for row in sheet["attendance"]}
    assert by_student[enrolled["student_id"]]["status"] == "present"
    assert by_student[other]["status"] is None


def pay(client, student_id, term="1", **fields):
    payload = {"student_id": student_id, "term": term, "amount": 500, "payment_date": "2024-09-15"}
    payload.update(fields)
    return client.post("/api/fees", json=payload)


def test_payment_maps_term_and_reference(client, enrolled):
    resp = pay(client, enrolled["student_id"], reference_number="RCP-1", notes="cash at desk")
    assert resp.status_code == 201

    payments = client.get(f"/api/fees/student/{enrolled['student_id']}").json()["payments"]
    assert payments[0]["term"] == "1st Term"
    assert payments[0]["receipt_number"] == "RCP-1"
    assert payments[0]["remarks"] == "cash at desk"
    assert payments[0]["class_name"] == "Grade 1"


def test_duplicate_payment_for_term_conflicts(client, enrolled):
    assert pay(client, enrolled["student_id"]).status_code == 201
    resp = pay(client, enrolled["student_id"], term="1st Term")
    assert resp.status_code == 409


def test_payment_requires_positive_amount(client, enrolled):
    assert pay(client, enrolled["student_id"], amount=0).status_code == 400


def test_payment_stats_and_filters(client, enrolled):
    other = make_student(client, "Bob", "S002", enrolled["class_id"])
    pay(client, enrolled["student_id"], amount=500)
    pay(client, enrolled["student_id"], term="2", amount=300, status="pending")
    pay(client, other, amount=200, status="overdue")

    stats = client.get("/api/fees/stats").json()["stats"]
    assert stats["total_payments"] == 3
    assert stats["total_amount"] == 1000
    assert stats["paid_amount"] == 500
    assert stats["pending_amount"] == 300
    assert stats["overdue_amount"] == 200

    term_one = client.get("/api/fees/term/1").json()["payments"]
    assert len(term_one) == 2
    pending = client.get("/api/fees", params={"status": "pending"}).json()["payments"]
    assert [p["amount"] for p in pending] == [300]


def test_payment_update_and_delete(client, enrolled):
    payment_id = pay(client, enrolled["student_id"], status="pending").json()["payment_id"]
    assert client.put(f"/api/fees/{payment_id}", json={"status": "paid"}).status_code == 200
    assert client.get("/api/fees/stats").json()["stats"]["paid_amount"] == 500

    assert client.delete(f"/api/fees/{payment_id}").status_code == 200
    assert client.delete(f"/api/fees/{payment_id}").status_code == 404
