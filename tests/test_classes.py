def test_create_and_read_class(client, make_class, teacher_headers):
    class_id = make_class()

    data = client.get(f"/v1/classes/{class_id}", headers=teacher_headers).json()["data"]
    assert data["name"] == "Algebra I"
    assert data["teacher_id"] == "teacher-1"
    assert data["schedule"]["days"] == ["Mon", "Wed"]
    assert data["schedule"]["start_date"] == "2025-09-01"
    assert data["students"] == 0


def test_schedule_end_time_must_follow_start_time(client, teacher_headers):
    payload = {
        "name": "Chemistry",
        "section": "B",
        "term": "Fall 2025",
        "schedule": {
            "days": ["Tue"],
            "start_time": "10:00",
            "end_time": "09:00",
            "start_date": "2025-09-01",
            "end_date": "2025-12-15",
        },
    }
    resp = client.post("/v1/classes/", json=payload, headers=teacher_headers)
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"]


def test_class_name_and_capacity_are_validated(client, teacher_headers, class_payload):
    resp = client.post("/v1/classes/", json={**class_payload, "name": "AB"}, headers=teacher_headers)
    assert resp.status_code == 422
    resp = client.post("/v1/classes/", json={**class_payload, "capacity": 101}, headers=teacher_headers)
    assert resp.status_code == 422


def test_term_filter(client, make_class, teacher_headers):
    make_class()
    make_class(term="Spring 2026")

    data = client.get("/v1/classes/?term=Spring 2026", headers=teacher_headers).json()["data"]
    assert [c["term"] for c in data] == ["Spring 2026"]


def test_update_class(client, make_class, teacher_headers):
    class_id = make_class()
    resp = client.patch(f"/v1/classes/{class_id}", json={"capacity": 40}, headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["capacity"] == 40
    assert resp.json()["data"]["name"] == "Algebra I"


def test_settings_default_and_update(client, make_class, teacher_headers):
    class_id = make_class()

    data = client.get(f"/v1/classes/{class_id}/settings", headers=teacher_headers).json()["data"]
    assert data == {"calculation_mode": "weighted", "grade_scale": "simple"}

    resp = client.patch(
        f"/v1/classes/{class_id}/settings",
        json={"calculation_mode": "summary", "grade_scale": "detailed"},
        headers=teacher_headers,
    )
    assert resp.status_code == 200
    data = client.get(f"/v1/classes/{class_id}/settings", headers=teacher_headers).json()["data"]
    assert data == {"calculation_mode": "summary", "grade_scale": "detailed"}

    resp = client.patch(f"/v1/classes/{class_id}/settings", json={"mode": "x"}, headers=teacher_headers)
    assert resp.status_code == 422


def test_delete_class_removes_everything(client, make_class, make_student, teacher_headers):
    class_id = make_class()
    make_student(class_id, "Alice", "Anders")

    resp = client.delete(f"/v1/classes/{class_id}", headers=teacher_headers)
    assert resp.status_code == 200

    resp = client.get(f"/v1/classes/{class_id}", headers=teacher_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == {"code": "NOT_FOUND", "message": f"Class {class_id} not found", "details": None}


def test_unknown_class_is_404(client, teacher_headers):
    resp = client.get("/v1/classes/999/students/", headers=teacher_headers)
    assert resp.status_code == 404


def test_students_crud(client, make_class, make_student, teacher_headers):
    class_id = make_class()
    bob = make_student(class_id, "Bob", "Brown")
    alice = make_student(class_id, "Alice", "Anders")

    roster = client.get(f"/v1/classes/{class_id}/students/", headers=teacher_headers).json()["data"]
    assert [s["id"] for s in roster] == [alice, bob]
    assert roster[0]["full_name"] == "Alice Anders"

    resp = client.patch(
        f"/v1/classes/{class_id}/students/{bob}", json={"status": "inactive"}, headers=teacher_headers
    )
    assert resp.json()["data"]["status"] == "inactive"

    active = client.get(f"/v1/classes/{class_id}/students/?status=active", headers=teacher_headers).json()["data"]
    assert [s["id"] for s in active] == [alice]

    assert client.delete(f"/v1/classes/{class_id}/students/{bob}", headers=teacher_headers).status_code == 200
    assert client.delete(f"/v1/classes/{class_id}/students/{bob}", headers=teacher_headers).status_code == 404


def test_student_email_is_validated(client, make_class, teacher_headers):
    class_id = make_class()
    payload = {"student_number": "1", "first_name": "A", "last_name": "B", "email": "not-an-email"}
    resp = client.post(f"/v1/classes/{class_id}/students/", json=payload, headers=teacher_headers)
    assert resp.status_code == 422
