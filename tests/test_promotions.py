import pytest
from fastapi.testclient import TestClient

from conftest import make_class, make_student, make_subject, make_year, record_result, year_exams

from schoolapi.services import promotion
from schoolapi.services.promotion import classify, pick_destination


def test_classify_thresholds():
    assert classify(50, 50, 40) == "promoted"
    assert classify(49.99, 50, 40) == "repeat"
    assert classify(40, 50, 40) == "repeat"
    assert classify(39, 50, 40) == "dropped"


def test_pick_destination_prefers_strictest_class_with_room():
    candidates = [
        {"id": 1, "placement_min_average": 70, "capacity": 1},
        {"id": 2, "placement_min_average": 0, "capacity": None},
    ]
    assert pick_destination(80, candidates, {})["id"] == 1
    assert pick_destination(80, candidates, {1: 1})["id"] == 2
    assert pick_destination(60, candidates, {})["id"] == 2
    assert pick_destination(60, candidates[:1], {}) is None


@pytest.fixture
def final_year(client):
    """Two-term year, one Grade 1 class of four students and a one-seat Grade 2 class."""
    year_id = make_year(client, number_of_terms=2)
    grade_one = make_class(client, "Grade 1")
    grade_two = make_class(client, "Grade 2A", capacity=1)
    subject_id = make_subject(client, grade_one)
    exams = year_exams(client)

    students = {}
    for name, marks in [("Ada", 80), ("Bob", 70), ("Cy", 45), ("Di", 20)]:
        students[name] = make_student(client, name, name.upper(), grade_one)
        record_result(client, exams[0]["id"], students[name], subject_id, marks)
    return {"year_id": year_id, "grade_one": grade_one, "grade_two": grade_two, "students": students,
            "exams": exams}


def publish_all(client, exams):
    for exam in exams:
        assert client.post(f"/api/exams/{exam['id']}/publish").status_code == 200


def test_promotion_refused_before_final_term(client, final_year):
    resp = client.post(f"/api/promotions/process/{final_year['year_id']}")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Promotions can only run in the final term"


def test_promotion_refused_until_final_exams_published(client, final_year):
    publish_all(client, final_year["exams"][:1])
    resp = client.post(f"/api/promotions/process/{final_year['year_id']}")
    assert resp.status_code == 400
    assert resp.json()["message"] == "All final term exams must be published before promotion"


def test_promotion_for_unknown_year_is_404(client):
    assert client.post("/api/promotions/process/99").status_code == 404


def test_preview_shows_destinations_and_overflow(client, final_year):
    publish_all(client, final_year["exams"])
    preview = client.get(f"/api/promotions/preview/{final_year['year_id']}").json()["preview"]
    assert preview == [{
        "class_id": final_year["grade_one"],
        "class_name": "Grade 1",
        "total_students": 4,
        "destinations": [{"class_id": final_year["grade_two"], "class_name": "Grade 2A", "count": 1}],
        "overflow": 1,
        "repeat": 1,
        "dropped": 1,
    }]
    # Preview writes nothing
    stats = client.get("/api/promotions/stats", params={"academic_year_id": final_year["year_id"]}).json()
    assert stats["stats"]["pending"] == 4


def test_process_assigns_each_student_one_outcome(client, final_year):
    publish_all(client, final_year["exams"])
    resp = client.post(f"/api/promotions/process/{final_year['year_id']}")
    assert resp.status_code == 200
    [result] = resp.json()["results"]
    assert result["promoted"] == 1
    assert result["waitlist"] == 1
    assert result["repeat"] == 1
    assert result["dropped"] == 1
    assert result["total_students"] == 4

    stats = client.get("/api/promotions/stats", params={"academic_year_id": final_year["year_id"]}).json()["stats"]
    assert stats == {"promoted": 1, "waitlist": 1, "repeat": 1, "dropped": 1, "pending": 0, "total": 4}

    waitlist = client.get("/api/promotions/waitlist",
                          params={"academic_year_id": final_year["year_id"]}).json()["students"]
    assert [s["student_name"] for s in waitlist] == ["Bob"]
    assert waitlist[0]["class_average"] == 70
    repeats = client.get("/api/promotions/repeats",
                         params={"academic_year_id": final_year["year_id"]}).json()["students"]
    assert [s["student_name"] for s in repeats] == ["Cy"]

    ada = client.get(f"/api/students/{final_year['students']['Ada']}/enrollments").json()["enrollments"][0]
    assert ada["promotion_status"] == "promoted"
    assert ada["promoted_to_class_id"] == final_year["grade_two"]
    assert ada["status"] == "completed"


def test_promotion_lists_need_a_year(client):
    assert client.get("/api/promotions/waitlist").status_code == 400
    assert client.get("/api/promotions/stats").status_code == 400


def test_complete_year_processes_promotions(client, final_year):
    publish_all(client, final_year["exams"])
    resp = client.post(f"/api/academic-years/{final_year['year_id']}/complete")
    assert resp.status_code == 200
    assert resp.json()["results"][0]["promoted"] == 1

    year = client.get(f"/api/academic-years/{final_year['year_id']}").json()["academic_year"]
    assert year["status"] == "completed"
    assert year["is_current"] == 0


def test_rollover_and_manual_assignment(client, final_year):
    publish_all(client, final_year["exams"])
    client.post(f"/api/promotions/process/{final_year['year_id']}")
    target = make_year(client, year_name="2025/2026", start_date="2025-09-01", end_date="2026-06-30",
                       is_current=False)

    payload = {"source_academic_year_id": final_year["year_id"], "target_academic_year_id": target}
    resp = client.post("/api/promotions/rollover", json=payload)
    assert resp.status_code == 200
    assert resp.json()["created"] == 2
    assert resp.json()["skipped"] == 0

    # The only Grade 2 seat went to Ada, so Bob cannot be placed
    resp = client.post("/api/promotions/rollover", json=dict(payload, include_waitlist=True))
    body = resp.json()
    assert body["created"] == 0
    assert body["skipped"] == 2
    assert body["errors"] == [{"student_id": final_year["students"]["Bob"],
                               "message": "No class with capacity available"}]

    assign = {"student_id": final_year["students"]["Bob"], "target_academic_year_id": target,
              "class_id": final_year["grade_two"]}
    assert client.post("/api/promotions/manual-assign", json=assign).status_code == 409
    resp = client.post("/api/promotions/manual-assign", json=dict(assign, override_capacity=True))
    assert resp.status_code == 201
    assert client.post("/api/promotions/manual-assign", json=assign).status_code == 400

    cy = client.get(f"/api/students/{final_year['students']['Cy']}/enrollments").json()["enrollments"]
    assert [(e["academic_year_id"], e["class_id"]) for e in cy] == [
        (target, final_year["grade_one"]), (final_year["year_id"], final_year["grade_one"]),
    ]


def test_rollover_needs_distinct_years(client, final_year):
    resp = client.post("/api/promotions/rollover", json={"source_academic_year_id": final_year["year_id"],
                                                         "target_academic_year_id": final_year["year_id"]})
    assert resp.status_code == 400


def test_legacy_promotion_uses_passing_percentage(client, final_year):
    publish_all(client, final_year["exams"])
    resp = client.post(f"/api/academic-years/{final_year['year_id']}/promote")
    assert resp.status_code == 200
    assert resp.json()["summary"] == {"promoted": 3, "graduated": 0, "failed": 1}


def test_outcome_uses_unrounded_average(client):
    year_id = make_year(client, number_of_terms=2)
    grade_one = make_class(client, "Grade 1")
    make_class(client, "Grade 2")
    subjects = [make_subject(client, grade_one, code, name)
                for code, name in [("MTH", "Mathematics"), ("ENG", "English"), ("SCI", "Science")]]
    exams = year_exams(client)
    student_id = make_student(client, "Ada", "ADA", grade_one)
    # Mean is 49.9967, just under the 50 needed for promotion
    for subject_id, marks in zip(subjects, [49.99, 50, 50]):
        record_result(client, exams[0]["id"], student_id, subject_id, marks)
    publish_all(client, exams)

    [result] = client.post(f"/api/promotions/process/{year_id}").json()["results"]
    assert result["promoted"] == 0
    assert result["repeat"] == 1

    enrollment = client.get(f"/api/students/{student_id}/enrollments").json()["enrollments"][0]
    assert enrollment["promotion_status"] == "repeat"
    assert enrollment["class_average"] == 50


def test_student_without_results_is_dropped(client, final_year):
    eve = make_student(client, "Eve", "EVE", final_year["grade_one"])
    publish_all(client, final_year["exams"])

    [result] = client.post(f"/api/promotions/process/{final_year['year_id']}").json()["results"]
    assert result["dropped"] == 2
    assert result["total_students"] == 5

    enrollment = client.get(f"/api/students/{eve}/enrollments").json()["enrollments"][0]
    assert enrollment["promotion_status"] == "dropped"
    assert enrollment["class_average"] == 0


def test_processing_twice_gives_the_same_outcomes(client, final_year):
    publish_all(client, final_year["exams"])
    url = f"/api/promotions/process/{final_year['year_id']}"
    first = client.post(url).json()["results"]
    second = client.post(url).json()["results"]
    assert first == second

    stats = client.get("/api/promotions/stats", params={"academic_year_id": final_year["year_id"]}).json()["stats"]
    assert stats == {"promoted": 1, "waitlist": 1, "repeat": 1, "dropped": 1, "pending": 0, "total": 4}


def test_failed_run_leaves_enrollments_untouched(client, final_year, monkeypatch):
    from schoolapi.main import app

    publish_all(client, final_year["exams"])

    def lost_connection(message):
        raise RuntimeError("connection lost")

    # Fails after the class's enrollments were updated
    monkeypatch.setattr(promotion.logger, "info", lost_connection)
    crashing = TestClient(app, headers={"X-Admin-Id": "1"}, raise_server_exceptions=False)
    resp = crashing.post(f"/api/promotions/process/{final_year['year_id']}")
    assert resp.status_code == 500
    assert resp.json()["message"] == "Internal server error"

    stats = client.get("/api/promotions/stats", params={"academic_year_id": final_year["year_id"]}).json()["stats"]
    assert stats["pending"] == 4
    ada = client.get(f"/api/students/{final_year['students']['Ada']}/enrollments").json()["enrollments"][0]
    assert ada["status"] == "active"
    assert ada["promoted_to_class_id"] is None


def test_manual_assign_hides_other_schools_students(client, conn, final_year):
    target = make_year(client, year_name="2025/2026", start_date="2025-09-01", end_date="2026-06-30",
                       is_current=False)
    resp = client.post("/api/students", json={"name": "Zed", "id_number": "Z1"}, headers={"X-Admin-Id": "2"})
    outsider = resp.json()["student_id"]
    conn.execute(
        "INSERT INTO student_enrollments (student_id, class_id, academic_year_id, status) VALUES (?, ?, ?, 'active')",
        (outsider, final_year["grade_two"], target),
    )
    conn.commit()

    resp = client.post("/api/promotions/manual-assign", json={
        "student_id": outsider, "target_academic_year_id": target, "class_id": final_year["grade_two"],
    })
    assert resp.status_code == 404
    assert resp.json()["message"] == "Student not found"
