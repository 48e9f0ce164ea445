import csv
import io

import pytest
from sqlalchemy.exc import OperationalError

from config.settings import settings
from models.grades import Grade as GradeModel


@pytest.fixture
def gradebook(client, make_class, make_student, teacher_headers):
    """
    Two students, two equally weighted periods, Tests (60) / Homework (40).

      Alice: t1 80/100 (Q1 Tests), t2 10/10 (Q1 Homework), t3 45/50 (Q2 Tests)
      Bob:   t1 90/100, t2 ungraded
    """
    class_id = make_class()
    base = f"/v1/classes/{class_id}"
    alice = make_student(class_id, "Alice", "Anders")
    bob = make_student(class_id, "Bob", "Brown")

    resp = client.put(
        f"{base}/categories/",
        json={"categories": [{"name": "Tests", "weight": 60}, {"name": "Homework", "weight": 40}]},
        headers=teacher_headers,
    )
    assert resp.status_code == 200, resp.text
    tests_cat, homework_cat = (c["id"] for c in resp.json()["data"])

    resp = client.put(
        f"{base}/periods/",
        json={"periods": [
            {"name": "Q1", "start_date": "2025-09-01", "end_date": "2025-10-31", "weight": 50},
            {"name": "Q2", "start_date": "2025-11-01", "end_date": "2025-12-15", "weight": 50},
        ]},
        headers=teacher_headers,
    )
    assert resp.status_code == 200, resp.text
    q1, q2 = (p["id"] for p in resp.json()["data"])

    def task(**payload):
        r = client.post(f"{base}/tasks/", json=payload, headers=teacher_headers)
        assert r.status_code == 201, r.text
        return r.json()["data"]["id"]

    t1 = task(title="Unit test 1", period_id=q1, category_id=tests_cat, max_points=100)
    t2 = task(title="Worksheet", period_id=q1, category_id=homework_cat, max_points=10)
    # no period_id: bucketed by due date
    t3 = task(title="Unit test 2", category_id=tests_cat, max_points=50, due_date="2025-11-20")

    resp = client.post(
        f"{base}/grades",
        json={"grades": [
            {"student_id": alice, "task_id": t1, "score": 80},
            {"student_id": alice, "task_id": t2, "score": 10},
            {"student_id": alice, "task_id": t3, "score": 45},
            {"student_id": bob, "task_id": t1, "score": 90},
            {"student_id": bob, "task_id": t2, "score": None},
        ]},
        headers=teacher_headers,
    )
    assert resp.status_code == 200, resp.text

    return {
        "class_id": class_id, "base": base, "alice": alice, "bob": bob,
        "q1": q1, "q2": q2, "t1": t1, "t2": t2, "t3": t3,
        "tests": tests_cat, "homework": homework_cat,
    }


def _summary(client, headers, class_id):
    resp = client.get(f"/v1/grades/summary?class_id={class_id}", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return {row["student_id"]: row for row in body["data"]}, body


# ==========================================================
# summary
# ==========================================================
def test_summary_weights_categories_and_periods(client, gradebook, teacher_headers):
    rows, body = _summary(client, teacher_headers, gradebook["class_id"])
    q1, q2 = str(gradebook["q1"]), str(gradebook["q2"])

    alice = rows[gradebook["alice"]]
    assert alice["period_grades"] == {q1: 88.0, q2: 90.0}
    assert alice["period_letters"] == {q1: "B", q2: "A"}
    assert alice["final_average"] == 89.0
    assert alice["final_letter"] == "B"

    bob = rows[gradebook["bob"]]
    assert bob["period_grades"] == {q1: 90.0, q2: None}
    assert bob["period_letters"][q2] is None
    assert bob["final_average"] == 90.0

    assert [p["name"] for p in body["periods"]] == ["Q1", "Q2"]
    assert body["demo"] is False
    assert "diagnostics" not in body


def test_admin_summary_lists_orphan_grades(client, gradebook, admin_headers, db_session):
    db_session.add(GradeModel(student_id=gradebook["alice"], task_id=9999, score=0))
    db_session.commit()

    rows, body = _summary(client, admin_headers, gradebook["class_id"])
    assert rows[gradebook["alice"]]["final_average"] == 89.0
    assert [(d["kind"], d["task_id"]) for d in body["diagnostics"]] == [("orphan_grade", 9999)]


def test_summary_mode_uses_entered_period_grades(client, gradebook, teacher_headers):
    base = gradebook["base"]
    client.patch(f"{base}/settings", json={"calculation_mode": "summary"}, headers=teacher_headers)
    resp = client.put(
        f"{base}/period-grades",
        json={"grades": [
            {"student_id": gradebook["alice"], "period_id": gradebook["q1"], "percentage": 70},
            {"student_id": gradebook["alice"], "period_id": gradebook["q2"], "percentage": None},
        ]},
        headers=teacher_headers,
    )
    assert resp.status_code == 200, resp.text

    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    assert rows[gradebook["alice"]]["final_average"] == 70.0
    assert rows[gradebook["alice"]]["final_letter"] == "C"
    assert rows[gradebook["bob"]]["final_average"] is None

    stored = client.get(f"{base}/period-grades", headers=teacher_headers).json()["data"]
    assert len(stored) == 2


def test_detailed_scale_setting_changes_letters(client, gradebook, teacher_headers):
    client.patch(f"{gradebook['base']}/settings", json={"grade_scale": "detailed"}, headers=teacher_headers)
    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    assert rows[gradebook["alice"]]["final_letter"] == "B+"


def test_summary_falls_back_to_demo_data_only_when_enabled(client, gradebook, teacher_headers, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr("routers.summary.compute_class_summary", broken)
    url = f"/v1/grades/summary?class_id={gradebook['class_id']}"

    resp = client.get(url, headers=teacher_headers)
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "DATABASE_UNAVAILABLE"

    monkeypatch.setattr(settings, "DEMO_DATA_FALLBACK", True)
    resp = client.get(url, headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["demo"] is True
    assert len(resp.json()["data"]) == 4


# ==========================================================
# grades
# ==========================================================
def test_grade_list_filters(client, gradebook, teacher_headers):
    base = gradebook["base"]
    everything = client.get(f"{base}/grades", headers=teacher_headers).json()["data"]
    assert len(everything) == 5

    q1 = client.get(f"{base}/grades?period_id={gradebook['q1']}", headers=teacher_headers).json()["data"]
    assert {g["task_id"] for g in q1} == {gradebook["t1"], gradebook["t2"]}
    assert all(g["period_id"] == gradebook["q1"] for g in q1)

    bob = client.get(f"{base}/grades?student_id={gradebook['bob']}", headers=teacher_headers).json()["data"]
    assert {g["task_id"]: g["score"] for g in bob} == {gradebook["t1"]: 90.0, gradebook["t2"]: None}


def test_saving_grades_updates_existing_rows(client, gradebook, teacher_headers):
    resp = client.post(
        f"{gradebook['base']}/grades",
        json={"grades": [{"student_id": gradebook["bob"], "task_id": gradebook["t2"], "score": 5}]},
        headers=teacher_headers,
    )
    assert resp.json()["data"] == {"count": 1, "created": 0, "updated": 1}

    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    # 0.9 * 60 + 0.5 * 40
    assert rows[gradebook["bob"]]["period_grades"][str(gradebook["q1"])] == 74.0


def test_grades_for_foreign_students_are_rejected(client, gradebook, make_class, make_student, teacher_headers):
    other_class = make_class(name="Geometry")
    stranger = make_student(other_class, "Zed", "Zulu")

    resp = client.post(
        f"{gradebook['base']}/grades",
        json={"grades": [
            {"student_id": gradebook["alice"], "task_id": gradebook["t1"], "score": 0},
            {"student_id": stranger, "task_id": gradebook["t1"], "score": 100},
        ]},
        headers=teacher_headers,
    )
    assert resp.status_code == 404

    # nothing from the rejected batch was written
    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    assert rows[gradebook["alice"]]["final_average"] == 89.0


def test_negative_score_is_rejected(client, gradebook, teacher_headers):
    resp = client.post(
        f"{gradebook['base']}/grades",
        json={"grades": [{"student_id": gradebook["alice"], "task_id": gradebook["t1"], "score": -1}]},
        headers=teacher_headers,
    )
    assert resp.status_code == 422


def test_infinite_score_is_rejected(client, gradebook, teacher_headers):
    body = (
        '{"grades": [{"student_id": %d, "task_id": %d, "score": Infinity}]}'
        % (gradebook["alice"], gradebook["t1"])
    )
    resp = client.post(
        f"{gradebook['base']}/grades",
        content=body.encode("utf-8"),
        headers={**teacher_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 422

    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    assert rows[gradebook["alice"]]["final_average"] == 89.0


def test_stored_infinite_score_counts_as_ungraded(client, gradebook, admin_headers, db_session):
    row = (
        db_session.query(GradeModel)
        .filter(GradeModel.student_id == gradebook["alice"], GradeModel.task_id == gradebook["t3"])
        .one()
    )
    row.score = float("inf")
    db_session.commit()

    rows, body = _summary(client, admin_headers, gradebook["class_id"])
    alice = rows[gradebook["alice"]]
    assert alice["period_grades"][str(gradebook["q2"])] is None
    assert alice["final_average"] == 88.0
    assert [(d["kind"], d["task_id"]) for d in body["diagnostics"]] == [("invalid_score", gradebook["t3"])]


def test_repeated_pair_in_one_batch_counts_once(client, gradebook, teacher_headers):
    resp = client.post(
        f"{gradebook['base']}/grades",
        json={"grades": [
            {"student_id": gradebook["bob"], "task_id": gradebook["t3"], "score": 10},
            {"student_id": gradebook["bob"], "task_id": gradebook["t3"], "score": 40},
        ]},
        headers=teacher_headers,
    )
    assert resp.json()["data"] == {"count": 1, "created": 1, "updated": 0}

    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    assert rows[gradebook["bob"]]["period_grades"][str(gradebook["q2"])] == 80.0


def test_clearing_a_grade_makes_it_ungraded(client, gradebook, teacher_headers):
    url = f"{gradebook['base']}/grades/{gradebook['alice']}/{gradebook['t3']}"
    resp = client.delete(url, headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["score"] is None

    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    alice = rows[gradebook["alice"]]
    assert alice["period_grades"][str(gradebook["q2"])] is None
    assert alice["final_average"] == 88.0

    missing = client.delete(f"{gradebook['base']}/grades/{gradebook['bob']}/{gradebook['t3']}", headers=teacher_headers)
    assert missing.status_code == 404


# ==========================================================
# tasks / categories / periods
# ==========================================================
def test_task_max_points_must_be_positive(client, gradebook, teacher_headers):
    resp = client.post(
        f"{gradebook['base']}/tasks/", json={"title": "Broken", "max_points": 0}, headers=teacher_headers
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_task_must_reference_own_period(client, gradebook, teacher_headers):
    resp = client.post(
        f"{gradebook['base']}/tasks/",
        json={"title": "Lost", "max_points": 10, "period_id": 9999},
        headers=teacher_headers,
    )
    assert resp.status_code == 404


def test_task_patch_can_clear_category(client, gradebook, teacher_headers):
    url = f"{gradebook['base']}/tasks/{gradebook['t2']}"
    resp = client.patch(url, json={"category_id": None, "weight": 2}, headers=teacher_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["category_id"] is None
    assert data["weight"] == 2
    assert data["period_id"] == gradebook["q1"]

    # an uncategorized task makes Q1 a flat weighted mean: (0.8 * 1 + 1.0 * 2) / 3
    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    assert rows[gradebook["alice"]]["period_grades"][str(gradebook["q1"])] == 93.3


def test_task_list_by_period(client, gradebook, teacher_headers):
    tasks = client.get(
        f"{gradebook['base']}/tasks/?period_id={gradebook['q1']}", headers=teacher_headers
    ).json()["data"]
    assert {t["id"] for t in tasks} == {gradebook["t1"], gradebook["t2"]}


def test_deleting_a_task_removes_its_grades(client, gradebook, teacher_headers):
    base = gradebook["base"]
    assert client.delete(f"{base}/tasks/{gradebook['t3']}", headers=teacher_headers).status_code == 200
    assert client.get(f"{base}/tasks/{gradebook['t3']}", headers=teacher_headers).status_code == 404

    grades = client.get(f"{base}/grades?student_id={gradebook['alice']}", headers=teacher_headers).json()["data"]
    assert gradebook["t3"] not in {g["task_id"] for g in grades}


def test_replacing_categories_detaches_removed_ones(client, gradebook, teacher_headers):
    base = gradebook["base"]
    resp = client.put(
        f"{base}/categories/",
        json={"categories": [{"id": gradebook["tests"], "name": "Exams", "weight": 100}]},
        headers=teacher_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"] == [{"id": gradebook["tests"], "name": "Exams", "weight": 100.0}]

    worksheet = client.get(f"{base}/tasks/{gradebook['t2']}", headers=teacher_headers).json()["data"]
    assert worksheet["category_id"] is None


def test_period_dates_are_validated(client, gradebook, teacher_headers):
    resp = client.post(
        f"{gradebook['base']}/periods/",
        json={"name": "Bad", "start_date": "2025-12-01", "end_date": "2025-11-01"},
        headers=teacher_headers,
    )
    assert resp.status_code == 422


# ==========================================================
# analytics
# ==========================================================
def test_class_analytics(client, gradebook, teacher_headers):
    resp = client.get(f"{gradebook['base']}/analytics", headers=teacher_headers)
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]

    assert data["grade_scale"] == "detailed"
    assert data["final_average"] == {"score": 89.5, "letter_grade": "B+"}
    assert data["overview"]["highest"] == 90.0
    assert data["overview"]["lowest"] == 89.0
    assert data["distribution"]["80-89"] == 1
    assert data["distribution"]["90-100"] == 1
    assert data["rankings"][0]["student_id"] == gradebook["bob"]
    assert data["low_performers"]["count"] == 0
    assert data["class"]["name"] == "Algebra I"


# ==========================================================
# CSV
# ==========================================================
def test_export_writes_dash_for_ungraded(client, gradebook, teacher_headers):
    resp = client.get(f"{gradebook['base']}/grades/export", headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0] == ["Student ID", "Student", "Task ID", "Task", "Score", "Max Points"]
    assert len(rows) == 1 + 2 * 3
    bob_scores = {int(r[2]): r[4] for r in rows[1:] if r[1] == "Bob Brown"}
    assert bob_scores == {gradebook["t1"]: "90", gradebook["t2"]: "—", gradebook["t3"]: "—"}


def test_import_reports_bad_rows_and_saves_the_rest(client, gradebook, teacher_headers):
    body = (
        "Student ID,Task ID,Score\n"
        f"{gradebook['bob']},{gradebook['t3']},40\n"
        f"{gradebook['bob']},9999,10\n"
        f",{gradebook['t1']},5\n"
    )
    resp = client.post(
        f"{gradebook['base']}/grades/import",
        content=body.encode("utf-8"),
        headers={**teacher_headers, "Content-Type": "text/csv"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["imported"] == 1
    assert data["created"] == 1
    assert data["skipped"] == 2
    assert [e["line"] for e in data["errors"]] == [3, 4]

    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    # Q2 = 40/50 -> 80, final = (90 + 80) / 2
    assert rows[gradebook["bob"]]["final_average"] == 85.0


def test_import_skips_out_of_range_scores(client, gradebook, teacher_headers):
    body = f"Student ID,Task ID,Score\n{gradebook['bob']},{gradebook['t3']},1e400\n"
    resp = client.post(
        f"{gradebook['base']}/grades/import",
        content=body.encode("utf-8"),
        headers={**teacher_headers, "Content-Type": "text/csv"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["imported"] == 0
    assert [e["line"] for e in data["errors"]] == [2]
    assert "score" in data["errors"][0]["error"]

    rows, _ = _summary(client, teacher_headers, gradebook["class_id"])
    assert rows[gradebook["bob"]]["final_average"] == 90.0


def test_import_rejects_bad_header(client, gradebook, teacher_headers):
    resp = client.post(
        f"{gradebook['base']}/grades/import",
        content=b"name,score\nAlice,10\n",
        headers={**teacher_headers, "Content-Type": "text/csv"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "BAD_REQUEST"
