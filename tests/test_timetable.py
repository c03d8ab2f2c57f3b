import pytest

from conftest import make_class, make_student, make_subject, make_year

from schoolapi.models.timetable import group_by_day


@pytest.fixture
def school(client):
    year_id = make_year(client)
    grade_one = make_class(client, "Grade 1")
    grade_two = make_class(client, "Grade 2")
    teachers = [client.post("/api/teachers", json={"name": name}).json()["teacher_id"]
                for name in ("Mr Bello", "Ms Okafor")]
    return {
        "year_id": year_id,
        "grade_one": grade_one,
        "grade_two": grade_two,
        "maths": make_subject(client, grade_one),
        "english": make_subject(client, grade_two, "ENG", "English"),
        "teachers": teachers,
    }


def slot(school, day="Monday", start="08:00", end="09:00", class_key="grade_one", teacher=0, subject="maths"):
    return {"class_id": school[class_key], "subject_id": school[subject], "teacher_id": school["teachers"][teacher],
            "day_of_week": day, "start_time": start, "end_time": end}


def add_entry(client, payload):
    resp = client.post("/api/timetable", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["entry_id"]


def test_group_by_day_keeps_order():
    entries = [{"day_of_week": "Monday", "id": 1}, {"day_of_week": "Tuesday", "id": 2},
               {"day_of_week": "Monday", "id": 3}]
    assert group_by_day(entries) == {"Monday": [entries[0], entries[2]], "Tuesday": [entries[1]]}
    assert group_by_day([]) == {}


def test_class_timetable_sorted_by_weekday_then_time(client, school):
    add_entry(client, slot(school, day="Tuesday", start="08:00", end="09:00"))
    add_entry(client, slot(school, day="Monday", start="10:00", end="11:00"))
    add_entry(client, slot(school, day="Monday", start="08:00", end="09:00"))

    body = client.get(f"/api/timetable/class/{school['grade_one']}").json()
    assert [(e["day_of_week"], e["start_time"]) for e in body["timetable"]] == [
        ("Monday", "08:00"), ("Monday", "10:00"), ("Tuesday", "08:00"),
    ]
    assert body["timetable"][0]["teacher_name"] == "Mr Bello"
    assert body["timetable"][0]["subject_name"] == "Mathematics"
    assert list(body["grouped"]) == ["Monday", "Tuesday"]


def test_overlapping_slots_conflict(client, school):
    add_entry(client, slot(school, start="08:00", end="09:00"))

    resp = client.post("/api/timetable", json=slot(school, start="08:30", end="09:30", teacher=1))
    assert resp.status_code == 409
    assert resp.json()["message"] == "Schedule conflict detected for this class"

    resp = client.post("/api/timetable", json=slot(school, start="08:30", end="09:30", class_key="grade_two",
                                                   subject="english"))
    assert resp.status_code == 409
    assert resp.json()["message"] == "Schedule conflict detected for this teacher"

    # Back-to-back lessons and other days are free
    add_entry(client, slot(school, start="09:00", end="10:00"))
    add_entry(client, slot(school, day="Wednesday", start="08:30", end="09:30"))


def test_end_time_must_follow_start(client, school):
    resp = client.post("/api/timetable", json=slot(school, start="10:00", end="09:00"))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"


def test_check_conflicts_reports_each_side(client, school):
    entry_id = add_entry(client, slot(school))
    check = dict(slot(school, start="08:15", end="08:45"))
    check.pop("subject_id")

    body = client.post("/api/timetable/check-conflicts", json=check).json()
    assert body["has_conflicts"] is True
    assert body["class_conflicts"] is True
    assert body["teacher_conflicts"] is True

    body = client.post("/api/timetable/check-conflicts", json=dict(check, exclude_id=entry_id)).json()
    assert body["has_conflicts"] is False


def test_update_rechecks_slot_except_itself(client, school):
    first = add_entry(client, slot(school, start="08:00", end="09:00"))
    second = add_entry(client, slot(school, start="10:00", end="11:00"))

    assert client.put(f"/api/timetable/{first}", json={"end_time": "09:30", "room_number": "B4"}).status_code == 200
    resp = client.put(f"/api/timetable/{second}", json={"start_time": "09:00"})
    assert resp.status_code == 409
    assert client.put(f"/api/timetable/{second}", json={"start_time": None}).status_code == 400

    entries = client.get(f"/api/timetable/class/{school['grade_one']}").json()["timetable"]
    assert [(e["start_time"], e["end_time"], e["room_number"]) for e in entries] == [
        ("08:00", "09:30", "B4"), ("10:00", "11:00", None),
    ]


def test_teacher_and_student_timetables(client, school):
    add_entry(client, slot(school))
    add_entry(client, slot(school, day="Friday", class_key="grade_two", subject="english"))

    teacher = client.get(f"/api/timetable/teacher/{school['teachers'][0]}").json()["timetable"]
    assert [e["class_name"] for e in teacher] == ["Grade 1", "Grade 2"]

    student_id = make_student(client, "Ada", "S001", school["grade_two"])
    mine = client.get(f"/api/timetable/student/{student_id}").json()["timetable"]
    assert [(e["day_of_week"], e["subject_name"]) for e in mine] == [("Friday", "English")]

    outsider = make_student(client, "Bob", "S002")
    resp = client.get(f"/api/timetable/student/{outsider}")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Student not enrolled in any class"


def test_bulk_create_skips_clashes(client, school):
    resp = client.post("/api/timetable/bulk", json={"entries": [
        slot(school, start="08:00", end="09:00"),
        slot(school, start="08:30", end="09:30", teacher=1),
        slot(school, start="09:00", end="10:00"),
    ]})
    body = resp.json()
    assert body["created"] == 2
    assert body["errors"] == ["Monday 08:30: Schedule conflict detected for this class"]


def test_unknown_references_are_404(client, school):
    resp = client.post("/api/timetable", json=dict(slot(school), teacher_id=99))
    assert resp.status_code == 404
    assert client.get("/api/timetable/class/99").status_code == 404


def test_delete_entry(client, school):
    entry_id = add_entry(client, slot(school))
    assert client.delete(f"/api/timetable/{entry_id}").status_code == 200
    assert client.delete(f"/api/timetable/{entry_id}").status_code == 404
    assert client.get(f"/api/timetable/class/{school['grade_one']}").json()["timetable"] == []


def test_timetable_needs_current_year(client):
    resp = client.get("/api/timetable/class/1")
    assert resp.status_code == 400
    assert resp.json()["message"] == "No current academic year set"


# --- PRINCIPAL REMARKS ---

def test_principal_remarks_saved_once_per_class_and_term(client, school):
    payload = {"academic_year_id": school["year_id"], "class_id": school["grade_one"], "term": 1,
               "remarks": "A steady term.", "principal_name": "Mrs Adeyemi"}
    first = client.post("/api/principal-remarks", json=payload)
    assert first.status_code == 201
    assert first.json()["message"] == "Remarks created successfully"

    second = client.post("/api/principal-remarks", json=dict(payload, remarks="Strong finish."))
    assert second.json()["message"] == "Remarks updated successfully"
    assert second.json()["remark_id"] == first.json()["remark_id"]

    remark = client.get(f"/api/principal-remarks/{school['year_id']}/{school['grade_one']}/1").json()["remark"]
    assert remark["remarks"] == "Strong finish."
    assert client.get(f"/api/principal-remarks/{school['year_id']}/{school['grade_one']}/2").json()["remark"] is None

    remarks = client.get(f"/api/principal-remarks/{school['year_id']}").json()["remarks"]
    assert [(r["class_name"], r["term"]) for r in remarks] == [("Grade 1", 1)]


def test_principal_remarks_validate_term(client, school):
    resp = client.post("/api/principal-remarks", json={
        "academic_year_id": school["year_id"], "class_id": school["grade_one"], "term": 4,
        "remarks": "...", "principal_name": "Mrs Adeyemi",
    })
    assert resp.status_code == 400
