from __future__ import annotations

import pytest

from src.timeclock.timeclock.main import create_app


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def _login(client, email, password):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]


def test_login_hides_credentials(client):
    data = _login(client, "erik@example.com", "erik123")

    assert data["employee_id"] == 1
    assert "pin_hash" not in data
    assert "password_hash" not in data


def test_bad_login(client):
    resp = client.post("/api/auth/login", json={"email": "erik@example.com", "password": "x"})

    assert resp.status_code == 401
    assert resp.get_json() == {
        "success": False,
        "code": "authentication_failed",
        "message": "Wrong email or password",
    }


def test_routes_need_login(client):
    resp = client.post("/api/attendance/clock-in", json={})

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_web_clock_in_and_out(client):
    _login(client, "erik@example.com", "erik123")

    resp = client.post("/api/attendance/clock-in", json={"location": "Workshop"})
    assert resp.status_code == 201
    assert resp.get_json()["data"]["clock_in_method"] == "manual"
    assert resp.get_json()["data"]["is_open"] is True

    current = client.get("/api/attendance/current").get_json()
    assert current["state"]["state"] == "PRESENT_IDLE"

    again = client.post("/api/attendance/clock-in", json={})
    assert again.status_code == 409
    assert again.get_json()["code"] == "already_present"

    out = client.post("/api/attendance/clock-out", json={"note": "bye"})
    assert out.status_code == 200
    assert out.get_json()["data"]["is_open"] is False
    assert client.get("/api/auth/me").get_json()["state"]["state"] == "ABSENT"


def test_employee_cannot_read_team_data(client):
    _login(client, "erik@example.com", "erik123")

    assert client.get("/api/attendance/active").status_code == 403
    assert client.get("/api/performance/team-ranking").status_code == 403
    assert client.get("/api/performance/individual?employee_id=2").status_code == 403


def test_employee_cannot_force_clock_out(client):
    _login(client, "erik@example.com", "erik123")
    client.post("/api/attendance/clock-in", json={})

    resp = client.post("/api/attendance/clock-out", json={"force": True})

    assert resp.status_code == 403
    assert resp.get_json()["code"] == "forbidden"


def test_kiosk_flow_uses_kiosk_method(client, store):
    creds = {"employee_number": "E002", "pin": "4321"}

    resp = client.post("/api/kiosk/clock-in", json=creds)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["clock_in_method"] == "kiosk"

    started = client.post("/api/kiosk/work-sessions/start", json=dict(creds, order_id=1, method="scan"))
    assert started.status_code == 201
    assert started.get_json()["data"]["method"] == "scan"
    assert store.orders[1].status.value == "in_progress"

    on_break = client.post("/api/kiosk/breaks/start", json=dict(creds, category_id=1))
    assert on_break.status_code == 409
    assert on_break.get_json()["code"] == "already_working"

    identify = client.post("/api/kiosk/identify", json=creds).get_json()
    assert identify["state"]["state"] == "PRESENT_WORKING"


def test_kiosk_wrong_pin(client):
    resp = client.post("/api/kiosk/clock-in", json={"employee_number": "E002", "pin": "0000"})

    assert resp.status_code == 401


def test_badge_scan_needs_no_pin(client):
    resp = client.post("/api/kiosk/clock-in", json={"employee_number": "E001", "method": "scan"})

    assert resp.status_code == 201
    assert resp.get_json()["data"]["clock_in_method"] == "scan"
    assert resp.get_json()["employee"]["employee_id"] == 1


def test_badge_scan_refuses_archived_employee(client):
    resp = client.post("/api/kiosk/clock-in", json={"employee_number": "E004", "method": "scan"})

    assert resp.status_code == 401


def test_kiosk_rejects_manual_method(client):
    resp = client.post("/api/kiosk/clock-in", json={"employee_number": "E002", "pin": "4321", "method": "manual"})

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "validation_error"


def test_kiosk_session_target_conflict(client):
    creds = {"employee_number": "E001", "pin": "1234"}
    client.post("/api/kiosk/clock-in", json=creds)

    resp = client.post("/api/kiosk/work-sessions/start", json=dict(creds, order_id=1, category_id=3))

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "conflicting_target"


def test_kiosk_break_requires_presence(client):
    resp = client.post("/api/kiosk/breaks/start", json={"employee_number": "E001", "pin": "1234", "category_id": 1})

    assert resp.status_code == 409
    assert resp.get_json()["code"] == "not_present"


def test_dispatcher_forces_clock_out_and_sees_anomalies(client):
    erik = {"employee_number": "E001", "pin": "1234"}
    client.post("/api/kiosk/clock-in", json=erik)
    client.post("/api/kiosk/work-sessions/start", json=dict(erik, order_id=2))
    client.post("/api/kiosk/clock-out", json=erik)

    _login(client, "dana@example.com", "dispatch123")
    anomalies = client.get("/api/attendance/anomalies").get_json()["data"]
    assert [a["employee_id"] for a in anomalies] == [1]
    assert anomalies[0]["anomalies"] == ["open_work_without_attendance"]

    ended = client.post("/api/work-sessions/end", json={"employee_id": 1, "force": True})
    assert ended.status_code == 200
    assert client.get("/api/attendance/anomalies").get_json()["data"] == []


def test_dispatcher_reads_statistics(client):
    _login(client, "dana@example.com", "dispatch123")

    ranking = client.get("/api/performance/team-ranking?period=month")
    overview = client.get("/api/statistics/overview")
    periods = client.get("/api/statistics/periods?group=week")

    assert ranking.status_code == 200
    assert [r["employee"]["employee_number"] for r in ranking.get_json()["data"]] == ["E001", "E002"]
    assert overview.status_code == 200
    assert periods.status_code == 200


def test_bad_date_range(client):
    _login(client, "erik@example.com", "erik123")

    resp = client.get("/api/performance/individual?start=2026-03-05&end=2026-03-01")

    assert resp.status_code == 400


def test_kiosk_performance(client):
    resp = client.post("/api/kiosk/performance", json={"employee_number": "E001", "pin": "1234"})

    body = resp.get_json()
    assert resp.status_code == 200
    assert body["data"]["team_size"] == 2
    assert body["data"]["today"]["formatted"]["attendance"] == "00:00"


def test_store_fault_is_opaque(client, store):
    _login(client, "erik@example.com", "erik123")
    client.post("/api/attendance/clock-in", json={})
    store.failing.add("save_attendance")

    resp = client.post("/api/attendance/clock-out", json={})

    assert resp.status_code == 500
    assert resp.get_json()["code"] == "internal_error"


def test_unknown_route_is_json(client):
    resp = client.get("/api/nope")

    assert resp.status_code == 404
    assert resp.get_json()["code"] == "not_found"
