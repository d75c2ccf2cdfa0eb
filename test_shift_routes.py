from jose import jwt

from conftest import E1, E2, E3, MANAGER, SHIFT_END, SHIFT_START, auth_headers
from core.security import JWT_ALGORITHM, JWT_SECRET


def test_requests_without_token_are_unauthenticated(client):
    response = client.get("/shifts")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_token_with_unknown_role_is_rejected(client):
    token = jwt.encode({"sub": "someone", "role": "admin"}, JWT_SECRET, algorithm=JWT_ALGORITHM)
    response = client.get("/shifts", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_token_signed_with_other_secret_is_rejected(client):
    token = jwt.encode({"sub": E1.id, "role": "manager"}, "not-the-secret", algorithm=JWT_ALGORITHM)
    response = client.get("/shifts", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_manager_creates_shift(api_shift):
    shift = api_shift(E1)
    assert shift["employee_id"] == E1.id
    assert shift["start_time"] == "2026-11-02T09:00:00Z"
    assert shift["swap_requests"] == []
    assert shift["version"] == 1


def test_employee_cannot_create_shift(client):
    response = client.post(
        "/shifts",
        headers=auth_headers(E1),
        json={"employee_id": E1.id, "start_time": SHIFT_START.isoformat(), "end_time": SHIFT_END.isoformat()},
    )
    assert response.status_code == 403


def test_start_must_precede_end(client):
    response = client.post(
        "/shifts",
        headers=auth_headers(MANAGER),
        json={"employee_id": E1.id, "start_time": SHIFT_END.isoformat(), "end_time": SHIFT_START.isoformat()},
    )
    assert response.status_code == 400


def test_employees_only_list_their_own_shifts(client, api_shift):
    mine = api_shift(E1)
    api_shift(E2)

    own = client.get("/shifts", headers=auth_headers(E1)).json()
    assert [s["id"] for s in own] == [mine["id"]]

    everything = client.get("/shifts", headers=auth_headers(MANAGER)).json()
    assert len(everything) == 2


def test_list_filters_by_date_range(client, api_shift):
    api_shift(E1)
    params = {"startDate": "2026-12-01T00:00:00Z", "endDate": "2026-12-31T00:00:00Z"}
    assert client.get("/shifts", headers=auth_headers(MANAGER), params=params).json() == []

    params = {"startDate": "2026-11-01T00:00:00Z", "endDate": "2026-11-03T00:00:00Z"}
    assert len(client.get("/shifts", headers=auth_headers(MANAGER), params=params).json()) == 1


def test_view_shift_permissions(client, api_shift):
    shift = api_shift(E1)
    assert client.get(f"/shifts/{shift['id']}", headers=auth_headers(E1)).status_code == 200
    assert client.get(f"/shifts/{shift['id']}", headers=auth_headers(E2)).status_code == 403
    assert client.get("/shifts/999", headers=auth_headers(MANAGER)).status_code == 404


def test_manager_updates_shift_fields(client, api_shift):
    shift = api_shift(E1)
    response = client.put(
        f"/shifts/{shift['id']}",
        headers=auth_headers(MANAGER),
        json={"notes": "Bring keys", "employee_id": E2.id},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["notes"] == "Bring keys"
    assert body["employee_id"] == E2.id
    assert body["start_time"] == shift["start_time"]
    assert body["version"] == shift["version"] + 1


def test_update_with_stale_version_conflicts(client, api_shift):
    shift = api_shift(E1)
    response = client.put(
        f"/shifts/{shift['id']}",
        headers=auth_headers(MANAGER),
        json={"notes": "late edit", "expected_version": shift["version"] + 5},
    )
    assert response.status_code == 409


def test_update_cannot_invert_window(client, api_shift):
    shift = api_shift(E1)
    response = client.put(
        f"/shifts/{shift['id']}",
        headers=auth_headers(MANAGER),
        json={"end_time": "2026-11-02T08:00:00Z"},
    )
    assert response.status_code == 400


def test_delete_shift(client, api_shift):
    shift = api_shift(E1)
    assert client.delete(f"/shifts/{shift['id']}", headers=auth_headers(E1)).status_code == 403

    response = client.delete(f"/shifts/{shift['id']}", headers=auth_headers(MANAGER))
    assert response.status_code == 200
    assert client.get(f"/shifts/{shift['id']}", headers=auth_headers(MANAGER)).status_code == 404
    assert client.delete(f"/shifts/{shift['id']}", headers=auth_headers(MANAGER)).status_code == 404


def test_swap_scenario_over_rest(client, api_shift):
    shift = api_shift(E1)

    # E1 asks E2 to take the shift
    response = client.post(
        f"/shifts/{shift['id']}/swap-request",
        headers=auth_headers(E1),
        json={"targetId": E2.id, "notes": "Family event"},
    )
    assert response.status_code == 200
    ledger = response.json()["swap_requests"]
    assert len(ledger) == 1
    assert ledger[0]["status"] == "pending"
    assert ledger[0]["requested_by"] == E1.id
    assert ledger[0]["requested_to"] == E2.id
    swap_id = ledger[0]["id"]

    # E2 can see it waiting for them
    mine = client.get("/shifts/swap-requests/mine", headers=auth_headers(E2)).json()
    assert [s["id"] for s in mine] == [swap_id]

    # Manager approves
    response = client.put(
        f"/shifts/{shift['id']}/swap-request/{swap_id}",
        headers=auth_headers(MANAGER),
        json={"approved": True},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["employee_id"] == E2.id
    assert body["swap_requests"][0]["status"] == "approved"
    assert body["notes"] == shift["notes"]

    # Second answer is a conflict
    response = client.put(
        f"/shifts/{shift['id']}/swap-request/{swap_id}",
        headers=auth_headers(MANAGER),
        json={"approved": False},
    )
    assert response.status_code == 409


def test_outsider_cannot_request_swap(client, api_shift):
    shift = api_shift(E1)
    response = client.post(
        f"/shifts/{shift['id']}/swap-request",
        headers=auth_headers(E3),
        json={"target_id": E2.id},
    )
    assert response.status_code == 403
    stored = client.get(f"/shifts/{shift['id']}", headers=auth_headers(MANAGER)).json()
    assert stored["swap_requests"] == []


def test_swap_endpoints_report_missing_records(client, api_shift):
    shift = api_shift(E1)
    assert client.post("/shifts/999/swap-request", headers=auth_headers(MANAGER), json={}).status_code == 404
    response = client.put(
        f"/shifts/{shift['id']}/swap-request/999",
        headers=auth_headers(MANAGER),
        json={"approved": True},
    )
    assert response.status_code == 404


def test_owner_cannot_answer_own_request(client, api_shift):
    shift = api_shift(E1)
    swap = client.post(
        f"/shifts/{shift['id']}/swap-request",
        headers=auth_headers(E1),
        json={"target_id": E2.id},
    ).json()["swap_requests"][0]

    response = client.put(
        f"/shifts/{shift['id']}/swap-request/{swap['id']}",
        headers=auth_headers(E1),
        json={"approved": True},
    )
    assert response.status_code == 403


def test_response_body_requires_approved_flag(client, api_shift):
    shift = api_shift(E1)
    swap = client.post(
        f"/shifts/{shift['id']}/swap-request",
        headers=auth_headers(E1),
        json={"target_id": E2.id},
    ).json()["swap_requests"][0]

    response = client.put(
        f"/shifts/{shift['id']}/swap-request/{swap['id']}",
        headers=auth_headers(E2),
        json={},
    )
    assert response.status_code == 422


def test_health_reports_status(client):
    assert client.get("/health").json() == {"status": "ok", "realtime_connections": 0}
