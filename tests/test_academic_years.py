from datetime import date, timedelta

from conftest import make_year, year_exams

from schoolapi.models.academic_year import split_terms, term_exam_plan


def test_split_terms_covers_whole_year_without_gaps():
    start, end = date(2024, 9, 1), date(2025, 6, 30)
    terms = split_terms(start, end, 3)

    assert [t[0] for t in terms] == [1, 2, 3]
    assert terms[0][1] == start
    assert terms[-1][2] == end
    for previous, current in zip(terms, terms[1:]):
        assert current[1] == previous[2] + timedelta(days=1)


def test_term_exam_plan_adds_midterm_test_for_two_exams():
    plan = term_exam_plan(2, date(2025, 1, 1), date(2025, 3, 31), 2)
    assert [(name, kind) for name, kind, _ in plan] == [("Term 2 - Test", "test"), ("Term 2 - Final", "final")]
    assert plan[-1][2] == date(2025, 3, 31)

    single = term_exam_plan(1, date(2024, 9, 1), date(2024, 12, 20), 1)
    assert [(name, kind) for name, kind, _ in single] == [("Term 1 - Final", "final")]


def test_requests_without_admin_header_are_rejected(client):
    resp = client.get("/api/academic-years", headers={"X-Admin-Id": ""})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_create_year_builds_terms_and_exams(client):
    year_id = make_year(client, exams_per_term=2)

    terms = client.get(f"/api/academic-years/{year_id}/terms").json()["terms"]
    assert [t["term_number"] for t in terms] == [1, 2, 3]
    assert [t["is_current"] for t in terms] == [1, 0, 0]
    assert all(t["exams_required"] == 2 for t in terms)

    exams = year_exams(client)
    assert len(exams) == 6
    assert {e["exam_type"] for e in exams} == {"test", "final"}
    assert "Term 1 - Test" in {e["exam_name"] for e in exams}

    year = client.get(f"/api/academic-years/{year_id}").json()["academic_year"]
    assert year["status"] == "active"
    assert year["current_term"] == 1
    assert year["total_terms"] == 3


def test_create_year_rejects_end_before_start(client):
    resp = client.post("/api/academic-years", json={
        "year_name": "Broken", "start_date": "2025-06-30", "end_date": "2024-09-01",
    })
    assert resp.status_code == 400
    assert resp.json()["message"] == "end_date must be after start_date"


def test_invalid_term_count_fails_validation(client):
    resp = client.post("/api/academic-years", json={
        "year_name": "Odd", "start_date": "2024-09-01", "end_date": "2025-06-30", "number_of_terms": 4,
    })
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation failed"
    assert body["errors"]


def test_fee_minimum_defaults_to_half_and_unused_terms_are_cleared(client):
    year_id = make_year(client, number_of_terms=2, term_1_fee=1000, term_3_fee=900)
    year = client.get(f"/api/academic-years/{year_id}").json()["academic_year"]
    assert year["term_1_min_payment"] == 500
    assert year["term_3_fee"] is None
    assert year["term_3_min_payment"] is None


def test_only_one_year_is_current(client):
    first = make_year(client, year_name="2023/2024", start_date="2023-09-01", end_date="2024-06-30")
    second = make_year(client)

    years = client.get("/api/academic-years").json()["academic_years"]
    assert [y["id"] for y in years if y["is_current"]] == [second]
    assert client.get("/api/academic-years/current").json()["academic_year"]["id"] == second

    client.put(f"/api/academic-years/{first}/set-current")
    assert client.get("/api/academic-years/current").json()["academic_year"]["id"] == first


def test_current_year_missing_is_404(client):
    resp = client.get("/api/academic-years/current")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "No current academic year set"}


def test_update_year_refuses_term_count_change(client):
    year_id = make_year(client)
    resp = client.put(f"/api/academic-years/{year_id}", json={"number_of_terms": 2})
    assert resp.status_code == 400

    resp = client.put(f"/api/academic-years/{year_id}", json={"year_name": "Renamed"})
    assert resp.status_code == 200
    assert client.get(f"/api/academic-years/{year_id}").json()["academic_year"]["year_name"] == "Renamed"

    resp = client.put(f"/api/academic-years/{year_id}", json={"year_name": None})
    assert resp.status_code == 400
    assert client.get(f"/api/academic-years/{year_id}").json()["academic_year"]["year_name"] == "Renamed"


def test_publishing_term_exams_advances_current_term(client):
    make_year(client)
    exams = year_exams(client)

    resp = client.post(f"/api/exams/{exams[0]['id']}/publish")
    assert resp.status_code == 200
    assert resp.json()["term_toggled"] is True
    assert client.get("/api/terms/current").json()["term"]["term_number"] == 2

    resp = client.post(f"/api/exams/{exams[0]['id']}/publish")
    assert resp.status_code == 400


def test_last_term_does_not_advance_past_the_end(client):
    make_year(client, number_of_terms=2)
    exams = year_exams(client)
    client.post(f"/api/exams/{exams[0]['id']}/publish")

    resp = client.post(f"/api/exams/{exams[1]['id']}/publish")
    assert resp.json()["term_toggled"] is False
    assert client.get("/api/terms/current").json()["term"]["term_number"] == 2


def test_manual_toggle_checks_range(client):
    make_year(client)
    assert client.post("/api/terms/toggle", json={"term_number": 4}).status_code == 400

    resp = client.post("/api/terms/toggle", json={"term_number": 3})
    assert resp.status_code == 200
    assert client.get("/api/terms/current").json()["term"]["term_number"] == 3


def test_recreate_terms_replaces_generated_exams(client):
    year_id = make_year(client)
    resp = client.post("/api/terms/recreate", json={"academic_year_id": year_id, "exams_per_term": 2,
                                                    "total_terms": 2})
    assert resp.status_code == 200
    assert [t["term_number"] for t in resp.json()["terms"]] == [1, 2]
    assert len(year_exams(client)) == 4


def test_recreate_terms_refused_once_an_exam_is_published(client):
    year_id = make_year(client)
    client.post(f"/api/exams/{year_exams(client)[0]['id']}/publish")

    resp = client.post("/api/terms/recreate", json={"academic_year_id": year_id})
    assert resp.status_code == 400


def test_years_are_scoped_to_their_admin(client):
    year_id = make_year(client)
    resp = client.get(f"/api/academic-years/{year_id}", headers={"X-Admin-Id": "2"})
    assert resp.status_code == 404
    assert client.get("/api/academic-years", headers={"X-Admin-Id": "2"}).json()["academic_years"] == []
