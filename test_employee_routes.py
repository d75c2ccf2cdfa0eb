from conftest import E1, MANAGER, auth_headers


def _create(client, **overrides):
    body = {"name": "Eli Employee", "email": "Eli@Example.com", "user_id": E1.id, "position": "Associate"}
    body.update(overrides)
    return client.post("/employees", headers=auth_headers(MANAGER), json=body)


def test_manager_creates_employee_with_default_availability(client):
    response = _create(client)
    assert response.status_code == 200
    employee = response.json()
    assert employee["email"] == "eli@example.com"
    assert employee["availability"]["monday"] == {"available": False, "start_time": "09:00", "end_time": "17:00"}
    assert set(employee["availability"]) == {
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
    }


def test_partial_availability_fills_remaining_days(client):
    response = _create(
        client,
        availability={"friday": {"available": True, "start_time": "12:00", "end_time": "20:00"}},
    )
    assert response.status_code == 200
    availability = response.json()["availability"]
    assert availability["friday"] == {"available": True, "start_time": "12:00", "end_time": "20:00"}
    assert availability["saturday"]["available"] is False


def test_invalid_availability_window_is_rejected(client):
    bad_format = _create(client, availability={"monday": {"available": True, "start_time": "9am"}})
    assert bad_format.status_code == 400

    inverted = _create(
        client,
        email="other@example.com",
        availability={"monday": {"available": True, "start_time": "18:00", "end_time": "09:00"}},
    )
    assert inverted.status_code == 400


def test_duplicate_email_is_rejected(client):
    assert _create(client).status_code == 200
    assert _create(client, email="eli@example.com", name="Second Eli").status_code == 400


def test_employees_cannot_manage_directory(client):
    response = client.post(
        "/employees", headers=auth_headers(E1), json={"name": "Me", "email": "me@example.com"}
    )
    assert response.status_code == 403


def test_any_authenticated_caller_can_read_directory(client):
    _create(client, name="Zed", email="zed@example.com")
    _create(client, name="Ana", email="ana@example.com")

    listing = client.get("/employees", headers=auth_headers(E1))
    assert listing.status_code == 200
    assert [e["name"] for e in listing.json()] == ["Ana", "Zed"]

    employee_id = listing.json()[0]["id"]
    assert client.get(f"/employees/{employee_id}", headers=auth_headers(E1)).status_code == 200
    assert client.get("/employees/999", headers=auth_headers(E1)).status_code == 404


def test_update_and_delete_employee(client):
    employee = _create(client).json()

    response = client.put(
        f"/employees/{employee['id']}",
        headers=auth_headers(MANAGER),
        json={
            "phone": "555-0100",
            "availability": {"sunday": {"available": True, "start_time": "10:00", "end_time": "14:00"}},
        },
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["phone"] == "555-0100"
    assert updated["name"] == employee["name"]
    assert updated["availability"]["sunday"]["available"] is True

    assert client.delete(f"/employees/{employee['id']}", headers=auth_headers(MANAGER)).status_code == 200
    assert client.get(f"/employees/{employee['id']}", headers=auth_headers(MANAGER)).status_code == 404


def test_update_rejects_blank_email_and_name(client):
    employee = _create(client).json()

    for body in ({"email": ""}, {"email": "   "}, {"name": ""}):
        response = client.put(f"/employees/{employee['id']}", headers=auth_headers(MANAGER), json=body)
        assert response.status_code == 400, body

    stored = client.get(f"/employees/{employee['id']}", headers=auth_headers(MANAGER)).json()
    assert stored["email"] == "eli@example.com"
    assert stored["name"] == "Eli Employee"


def test_create_rejects_blank_name(client):
    assert _create(client, name="  ").status_code == 400


def test_update_cannot_take_another_employees_email(client):
    _create(client, email="taken@example.com", name="Taken")
    employee = _create(client, email="free@example.com", name="Free").json()

    response = client.put(
        f"/employees/{employee['id']}",
        headers=auth_headers(MANAGER),
        json={"email": "TAKEN@example.com"},
    )
    assert response.status_code == 400
