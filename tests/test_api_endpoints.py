from fastapi.testclient import TestClient

from crane_booking.server.app import app
from crane_booking.server.dependencies import reset_scheduling_service


client = TestClient(app)

ADMIN = {"X-Actor-Id": "harbour-master", "X-Actor-Role": "admin"}
ALICE = {"X-Actor-Id": "alice"}
BOB = {"X-Actor-Id": "bob"}
OPERATOR = {"X-Actor-Id": "crane-driver", "X-Actor-Role": "operator"}

DAY = "2030-06-03"


def setup_function() -> None:
    reset_scheduling_service()


def _crane(capacity_t: float = 50.0) -> dict:
    response = client.post(
        "/api/v1/cranes",
        json={"name": "Travel lift", "capacity_t": capacity_t, "max_width_m": 6.5, "location": "North pier"},
        headers=ADMIN,
    )
    assert response.status_code == 201
    return response.json()


def _book(crane_id: str, start: str, end: str, headers=ALICE, **extra):
    return client.post(
        "/api/v1/reservations",
        json={"crane_id": crane_id, "start": f"{DAY}T{start}:00Z", "end": f"{DAY}T{end}:00Z", **extra},
        headers=headers,
    )


def test_health_endpoints() -> None:
    live = client.get("/api/v1/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = client.get("/api/v1/health/ready")
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"
    assert ready.json()["storage"] == "memory"


def test_actor_headers_are_required() -> None:
    assert client.get("/api/v1/reservations/mine").status_code == 401
    bad_role = client.get("/api/v1/reservations/mine", headers={"X-Actor-Id": "alice", "X-Actor-Role": "captain"})
    assert bad_role.status_code == 400


def test_crane_registry_endpoints() -> None:
    crane = _crane()

    listed = client.get("/api/v1/cranes").json()
    assert [item["id"] for item in listed] == [crane["id"]]

    updated = client.patch(f"/api/v1/cranes/{crane['id']}", json={"capacity_t": 60}, headers=ADMIN)
    assert updated.status_code == 200
    assert updated.json()["capacity_t"] == 60

    forbidden = client.post("/api/v1/cranes", json={"name": "X", "capacity_t": 1}, headers=ALICE)
    assert forbidden.status_code == 403
    assert forbidden.json()["kind"] == "forbidden"

    assert client.get("/api/v1/cranes/missing").status_code == 404

    removed = client.delete(f"/api/v1/cranes/{crane['id']}", headers=ADMIN)
    assert removed.json()["is_active"] is False
    assert client.get("/api/v1/cranes").json() == []


def test_slot_listing_respects_buffer() -> None:
    crane = _crane()
    created = _book(crane["id"], "09:00", "10:00")
    client.post(f"/api/v1/reservations/{created.json()['id']}/approve", headers=ADMIN)

    response = client.get(f"/api/v1/cranes/{crane['id']}/slots", params={"date": DAY, "slot_count": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["slot_minutes"] == 60
    hours = [slot[11:13] for slot in body["slots"]]
    assert hours == ["08", "11", "12", "13", "14", "15"]


def test_reservation_lifecycle_over_http() -> None:
    crane = _crane()
    created = _book(crane["id"], "09:00", "11:00", load_profile={"vessel_type": "sailboat", "weight_t": 12})
    assert created.status_code == 201
    reservation = created.json()
    assert reservation["status"] == "pending"
    assert reservation["reservation_number"].startswith("REV-30-")

    approved = client.post(
        f"/api/v1/reservations/{reservation['id']}/approve", json={"note": "Bring fenders"}, headers=ADMIN
    )
    assert approved.status_code == 200
    assert approved.json()["admin_note"] == "Bring fenders"

    mine = client.get("/api/v1/reservations/mine", headers=ALICE).json()
    assert [item["id"] for item in mine] == [reservation["id"]]

    staff_view = client.get("/api/v1/reservations", params={"status": ["approved"]}, headers=OPERATOR)
    assert [item["id"] for item in staff_view.json()] == [reservation["id"]]

    completed = client.post(f"/api/v1/reservations/{reservation['id']}/complete", headers=ADMIN)
    assert completed.json()["status"] == "completed"

    again = client.post(f"/api/v1/reservations/{reservation['id']}/complete", headers=ADMIN)
    assert again.status_code == 409
    assert again.json()["kind"] == "invalid_state"


def test_error_kinds_map_to_status_codes() -> None:
    crane = _crane(capacity_t=50)

    too_heavy = _book(crane["id"], "09:00", "10:00", load_profile={"weight_t": 60})
    assert too_heavy.status_code == 422
    assert too_heavy.json()["kind"] == "validation"

    assert _book(crane["id"], "09:00", "10:00").status_code == 201
    clash = _book(crane["id"], "10:00", "11:00", headers=BOB)
    assert clash.status_code == 409
    assert clash.json()["kind"] == "conflict"

    assert _book("missing", "12:00", "13:00").status_code == 404
    assert _book(crane["id"], "12:00", "13:00", headers=OPERATOR).status_code == 403


def test_cancel_and_reschedule() -> None:
    crane = _crane()
    reservation = _book(crane["id"], "09:00", "10:00").json()

    short = client.post(f"/api/v1/reservations/{reservation['id']}/cancel", json={"reason": "no"}, headers=ALICE)
    assert short.status_code == 422

    moved = client.post(
        f"/api/v1/reservations/{reservation['id']}/reschedule",
        json={"start": f"{DAY}T13:00:00Z", "end": f"{DAY}T14:00:00Z"},
        headers=ADMIN,
    )
    assert moved.status_code == 200
    assert moved.json()["start"].startswith(f"{DAY}T13:00")

    cancelled = client.post(
        f"/api/v1/reservations/{reservation['id']}/cancel", json={"reason": "Weather window closed"}, headers=ALICE
    )
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancelled_by"] == "user"


def test_waiting_list_flow() -> None:
    crane = _crane()
    booking = _book(crane["id"], "08:00", "16:00").json()

    joined = client.post(
        "/api/v1/waiting-list", json={"crane_id": crane["id"], "requested_date": DAY}, headers=BOB
    )
    assert joined.status_code == 201
    entry = joined.json()
    assert entry["notify_state"] == "none"

    client.post(f"/api/v1/reservations/{booking['id']}/reject", json={"note": "Inspection"}, headers=ADMIN)
    pending = client.get("/api/v1/waiting-list/notifications", headers=ADMIN).json()
    assert [item["id"] for item in pending] == [entry["id"]]

    promoted = client.post(
        f"/api/v1/waiting-list/{entry['id']}/promote",
        json={"start": f"{DAY}T10:00:00Z", "end": f"{DAY}T11:00:00Z"},
        headers=ADMIN,
    )
    assert promoted.status_code == 201
    assert promoted.json()["status"] == "approved"
    assert promoted.json()["requester_id"] == "bob"

    ack = client.post("/api/v1/waiting-list/notifications/ack", json={"entry_ids": [entry["id"]]}, headers=ADMIN)
    assert ack.status_code == 200


def test_calendar_and_maintenance() -> None:
    crane = _crane()
    _book(crane["id"], "09:00", "10:00", purpose="Mast stepping")
    block = client.post(
        "/api/v1/maintenance",
        json={"crane_id": crane["id"], "start": f"{DAY}T12:00:00Z", "end": f"{DAY}T13:00:00Z"},
        headers=ADMIN,
    )
    assert block.status_code == 201

    events = client.get("/api/v1/calendar/events", headers=BOB).json()
    assert [event["kind"] for event in events] == ["reservation", "maintenance"]
    assert events[0]["purpose"] is None

    removed = client.delete(f"/api/v1/maintenance/{block.json()['id']}", headers=ADMIN)
    assert removed.status_code == 204


def test_vessels_and_reports() -> None:
    vessel = client.post("/api/v1/vessels", json={"name": "Albatross", "weight_t": 8}, headers=ALICE)
    assert vessel.status_code == 201
    assert [item["id"] for item in client.get("/api/v1/vessels", headers=ALICE).json()] == [vessel.json()["id"]]

    _crane()
    report = client.get(
        "/api/v1/analytics/utilization",
        params={"start": f"{DAY}T00:00:00Z", "end": "2030-06-04T00:00:00Z"},
        headers=ADMIN,
    )
    assert report.status_code == 200
    assert len(report.json()) == 1

    audit = client.get("/api/v1/audit", headers=ADMIN)
    assert audit.status_code == 200
    assert client.get("/api/v1/audit", headers=ALICE).status_code == 403


def test_observability_metrics() -> None:
    client.get("/api/v1/health/live")
    response = client.get("/api/v1/observability/metrics")
    assert response.status_code == 200
    assert "crane_booking_api_requests_total" in response.text
