from app.models.appointment import AppointmentStatus


def create_payload(starts_at="2025-03-10T10:00:00-03:00", **overrides):
    payload = {"doctor_id": 1, "service_id": 1, "patient_id": 1, "starts_at": starts_at}
    payload.update(overrides)
    return payload


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_missing_or_invalid_token(client):
    assert client.get("/appointments/1").status_code == 401
    res = client.get("/appointments/1", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401


def test_create_and_fetch_appointment(client, auth_headers, secretary, events):
    headers = auth_headers(secretary)
    res = client.post("/appointments", json=create_payload(), headers=headers)
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["status"] == AppointmentStatus.pendente.value
    assert body["service"]["duration_minutes"] == 30
    assert body["patient"]["name"] == "Maria Oliveira"
    assert body["ends_at"].startswith("2025-03-10T10:30:00")
    assert events.actions == ["created"]

    res = client.get(f"/appointments/{body['id']}", headers=headers)
    assert res.status_code == 200
    assert res.json()["id"] == body["id"]


def test_conflict_maps_to_409(client, auth_headers, secretary):
    headers = auth_headers(secretary)
    first = client.post("/appointments", json=create_payload(), headers=headers).json()

    res = client.post("/appointments", json=create_payload("2025-03-10T10:15:00-03:00"), headers=headers)
    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "appointment_conflict"
    assert body["appointment_ids"] == [first["id"]]

    res = client.post(
        "/appointments",
        json=create_payload("2025-03-10T10:15:00-03:00", is_encaixe=True),
        headers=headers,
    )
    assert res.status_code == 201
    assert res.json()["status"] == "encaixe_pendente"


def test_lunch_conflict_maps_to_400(client, auth_headers, secretary):
    res = client.post(
        "/appointments", json=create_payload("2025-03-10T12:15:00-03:00"), headers=auth_headers(secretary)
    )
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "lunch_break_conflict"
    assert body["lunch_start"] == "12:00"
    assert body["lunch_end"] == "13:00"


def test_out_of_scope_and_not_found(client, auth_headers, outsider, secretary):
    res = client.post("/appointments", json=create_payload(), headers=auth_headers(outsider))
    assert res.status_code == 403
    assert res.json()["code"] == "out_of_scope"

    res = client.get("/appointments/999", headers=auth_headers(secretary))
    assert res.status_code == 404
    assert res.json()["code"] == "not_found"


def test_reschedule_cancel_and_delete(client, auth_headers, secretary, events):
    headers = auth_headers(secretary)
    appt_id = client.post("/appointments", json=create_payload(), headers=headers).json()["id"]

    res = client.patch(
        f"/appointments/{appt_id}", json={"starts_at": "2025-03-10T14:00:00-03:00"}, headers=headers
    )
    assert res.status_code == 200, res.text
    assert res.json()["starts_at"].startswith("2025-03-10T14:00:00")

    res = client.patch(
        f"/appointments/{appt_id}", json={"starts_at": "2025-03-10T14:15:00-03:00"}, headers=headers
    )
    assert res.status_code == 409
    assert res.json()["code"] == "self_overlap"

    res = client.post(f"/appointments/{appt_id}/cancel", json={"reason": "Paciente viajou"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["status"] == "cancelado"
    assert res.json()["cancel_reason"] == "Paciente viajou"

    res = client.delete(f"/appointments/{appt_id}", headers=headers)
    assert res.status_code == 204
    assert client.get(f"/appointments/{appt_id}", headers=headers).status_code == 404
    assert events.actions == ["created", "updated", "canceled", "deleted"]


def test_confirm_encaixe_and_finalize(client, auth_headers, secretary, doctor_actor, store):
    headers = auth_headers(secretary)
    client.post("/appointments", json=create_payload(), headers=headers)
    encaixe_id = client.post("/appointments", json=create_payload(is_encaixe=True), headers=headers).json()["id"]

    res = client.post(f"/appointments/{encaixe_id}/confirm-encaixe", headers=auth_headers(doctor_actor))
    assert res.status_code == 200
    assert res.json()["confirmed_by_doctor"] is True

    res = client.post(
        f"/appointments/{encaixe_id}/finalize",
        json={"summary": "Profilaxia realizada"},
        headers=auth_headers(doctor_actor),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "finalizado"
    assert [record.summary for record in store.history] == ["Profilaxia realizada"]


def test_list_appointments(client, auth_headers, secretary):
    headers = auth_headers(secretary)
    client.post("/appointments", json=create_payload(), headers=headers)
    client.post("/appointments", json=create_payload("2025-03-12T09:00:00-03:00"), headers=headers)

    res = client.get(
        "/appointments",
        params={"doctor_id": 1, "from": "2025-03-10", "to": "2025-03-10"},
        headers=headers,
    )
    assert res.status_code == 200
    assert len(res.json()) == 1


def test_availability(client, auth_headers, secretary, assistant):
    params = {"doctor_id": 1, "service_id": 1, "date": "2025-03-10"}
    res = client.get("/availability", params=params, headers=auth_headers(secretary))
    assert res.status_code == 200
    body = res.json()
    assert body["policy"] == "staff"
    assert "11:30" in body["slots"]
    assert "12:00" not in body["slots"]

    res = client.get("/availability", params=params, headers=auth_headers(assistant))
    assert res.json()["policy"] == "assistant"
    assert "08:15" in res.json()["slots"]


def test_blackout_conflicts_and_override(client, auth_headers, admin):
    headers = auth_headers(admin)
    appt_id = client.post("/appointments", json=create_payload(), headers=headers).json()["id"]
    payload = {
        "doctor_id": 1,
        "starts_at": "2025-03-10T09:00:00-03:00",
        "ends_at": "2025-03-10T12:00:00-03:00",
        "reason": "Congresso",
    }

    res = client.post("/blackouts", json=payload, headers=headers)
    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "blackout_has_conflicts"
    assert [item["id"] for item in body["conflicting_appointments"]] == [appt_id]
    assert body["suggestions"][str(appt_id)]

    res = client.post("/blackouts", json=payload, params={"ignore_conflicts": "true"}, headers=headers)
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["advisory"]
    blackout_id = body["blackout"]["id"]

    res = client.get("/blackouts/doctor/1", headers=headers)
    assert [row["id"] for row in res.json()] == [blackout_id]

    assert client.delete(f"/blackouts/{blackout_id}", headers=headers).status_code == 204
    assert client.get("/blackouts/clinic/1", headers=headers).json() == []


def test_lunch_exception_endpoints(client, auth_headers, secretary):
    headers = auth_headers(secretary)
    payload = {"date": "2025-03-10", "lunch_start": "12:30", "lunch_end": "13:30", "doctor_id": 1}

    res = client.put("/lunch-exceptions", json=payload, headers=headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["date"] == "2025-03-10"
    assert body["doctor_id"] == 1

    res = client.put("/lunch-exceptions", json={**payload, "lunch_end": "12:00"}, headers=headers)
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_lunch_window"

    res = client.get("/lunch-exceptions/doctor/1", headers=headers)
    assert [row["id"] for row in res.json()] == [body["id"]]

    assert client.delete(f"/lunch-exceptions/{body['id']}", headers=headers).status_code == 204
    assert client.get("/lunch-exceptions/doctor/1", headers=headers).json() == []
