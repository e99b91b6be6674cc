# tests/test_windows_router.py
from fastapi.testclient import TestClient

from datefunnel.main import app
from datefunnel.db.session import engine
from datefunnel.models import Base

client = TestClient(app)


def setup_module(module):
    Base.metadata.create_all(bind=engine)


def _clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def _trip_with_travelers(*user_ids):
    resp = client.post(
        "/trips",
        json={
            "title": "Cabin trip",
            "created_by": "leader",
            "start_date": "2025-03-01",
            "end_date": "2025-03-31",
        },
    )
    assert resp.status_code == 200, resp.text
    trip_id = resp.json()["trip"]["id"]
    for user_id in user_ids:
        client.post(f"/trips/{trip_id}/travelers", json={"user_id": user_id})
    return trip_id


def _propose(trip_id, user_id, description, **extra):
    payload = {"user_id": user_id, "description": description}
    payload.update(extra)
    return client.post(f"/trips/{trip_id}/windows", json=payload)


def test_propose_window_parses_text_and_reports_similar():
    _clean_db()
    trip_id = _trip_with_travelers("alice", "bob")

    resp = _propose(trip_id, "alice", "Mar 7-9")
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["window"]["startHint"] == "2025-03-07"
    assert data["window"]["endHint"] == "2025-03-09"
    assert data["precision"] == "exact"
    assert data["similarWindows"] == []

    trip = client.get(f"/trips/{trip_id}").json()
    assert trip["trip"]["status"] == "scheduling"
    assert trip["funnel"]["state"] == "WINDOWS_OPEN"

    resp = _propose(trip_id, "bob", "Mar 8-10")
    assert resp.status_code == 200
    similar = resp.json()["similarWindows"]
    assert len(similar) == 1
    assert similar[0]["window"]["id"] == data["window"]["id"]
    assert similar[0]["score"] == 0.67


def test_window_rejections():
    _clean_db()
    trip_id = _trip_with_travelers("alice")

    resp = _propose(trip_id, "stranger", "Mar 7-9")
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NOT_A_TRAVELER"

    resp = _propose(trip_id, "alice", "Apr 7-9", start_hint="2025-04-07", end_hint="2025-04-09")
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "OUT_OF_RANGE"

    assert _propose(trip_id, "alice", "early March").status_code == 200
    assert _propose(trip_id, "alice", "late March").status_code == 200
    resp = _propose(trip_id, "alice", "mid March")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "WINDOW_LIMIT"

    assert _propose(999, "alice", "Mar 7-9").status_code == 404


def test_preferences_rank_windows_and_drive_readiness():
    _clean_db()
    trip_id = _trip_with_travelers("alice", "bob")

    first = _propose(trip_id, "alice", "early March").json()["window"]["id"]
    second = _propose(trip_id, "bob", "late March").json()["window"]["id"]

    for user_id in ("alice", "leader"):
        resp = client.post(
            f"/trips/{trip_id}/windows/{second}/preference",
            json={"user_id": user_id, "preference": "WORKS"},
        )
        assert resp.status_code == 200, resp.text
    client.post(
        f"/trips/{trip_id}/windows/{first}/preference",
        json={"user_id": "bob", "preference": "MAYBE"},
    )

    data = client.get(f"/trips/{trip_id}/windows").json()
    assert [w["id"] for w in data["windows"]] == [second, first]
    assert data["windows"][0]["works"] == 2
    assert data["windows"][0]["score"] == 6

    readiness = data["readiness"]
    # 3 travelers -> 2 supporters needed
    assert readiness["proposalReady"] is True
    assert readiness["reason"] == "threshold_met"
    assert readiness["leadingWindow"]["id"] == second
    assert readiness["leaderUserIds"] == ["alice", "leader"]
    assert readiness["runnerUp"]["window"]["id"] == first
    assert readiness["runnerUp"]["count"] == 0
    assert readiness["stats"]["thresholdNeeded"] == 2
    assert readiness["stats"]["responderCount"] == 3


def test_preference_on_unknown_window_returns_404():
    _clean_db()
    trip_id = _trip_with_travelers("alice")

    resp = client.post(
        f"/trips/{trip_id}/windows/12345/preference",
        json={"user_id": "alice", "preference": "WORKS"},
    )
    assert resp.status_code == 404


def test_compress_windows_is_leader_only():
    _clean_db()
    trip_id = _trip_with_travelers("alice", "bob")

    keep = _propose(trip_id, "alice", "early March").json()["window"]["id"]
    drop = _propose(trip_id, "bob", "late March").json()["window"]["id"]

    resp = client.post(
        f"/trips/{trip_id}/windows/compress",
        json={"actor_id": "alice", "window_ids": [drop]},
    )
    assert resp.status_code == 403

    resp = client.post(
        f"/trips/{trip_id}/windows/compress",
        json={"actor_id": "leader", "window_ids": [drop]},
    )
    assert resp.status_code == 200
    assert [w["id"] for w in resp.json()["windows"]] == [keep]

    listed = client.get(f"/trips/{trip_id}/windows").json()["windows"]
    assert [w["id"] for w in listed] == [keep]

    # archived windows no longer take preferences
    resp = client.post(
        f"/trips/{trip_id}/windows/{drop}/preference",
        json={"user_id": "alice", "preference": "WORKS"},
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "WINDOW_ARCHIVED"
