"""
API tests for medical records, patient and doctor uploads, appointments and test status changes
"""


def register(client, email, role, name="Account Holder"):
    payload = {
        "name": name,
        "email": email,
        "password": "secret123",
        "phone": "5551234567",
        "role": role
    }
    user = client.post("/api/v1/auth/signup", json=payload).json()
    token = client.post(
        "/api/v1/auth/login", json={"email": email, "password": "secret123"}
    ).json()["access_token"]
    return user, {"Authorization": f"Bearer {token}"}


class TestMedicalRecordsApi:

    def test_doctor_adds_record_patient_reads_it(self, client):
        patient, patient_headers = register(client, "pat@example.com", "patient")
        _, doctor_headers = register(client, "doc@example.com", "doctor")

        response = client.post("/api/v1/medical-records", headers=doctor_headers, json={
            "patient_id": patient["auth_id"],
            "record_type": "Consultation",
            "diagnosis": "Seasonal flu",
            "vital_signs": {"temperature": 38.2}
        })
        assert response.status_code == 201
        record = response.json()

        response = client.get("/api/v1/medical-records", headers=patient_headers)
        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [record["id"]]

        response = client.get(f"/api/v1/medical-records/{record['id']}", headers=patient_headers)
        assert response.status_code == 200
        assert response.json()["diagnosis"] == "Seasonal flu"
        assert response.json()["vital_signs"] == {"temperature": 38.2}

    def test_patient_cannot_add_record(self, client):
        patient, patient_headers = register(client, "pat@example.com", "patient")

        response = client.post("/api/v1/medical-records", headers=patient_headers, json={
            "patient_id": patient["auth_id"],
            "record_type": "Consultation"
        })
        assert response.status_code == 403

    def test_patient_cannot_read_another_patients_record(self, client):
        _, doctor_headers = register(client, "doc@example.com", "doctor")
        _, patient_headers = register(client, "pat@example.com", "patient")
        record = client.post("/api/v1/medical-records", headers=doctor_headers, json={
            "patient_id": "someone-else",
            "record_type": "Surgery"
        }).json()

        response = client.get(f"/api/v1/medical-records/{record['id']}", headers=patient_headers)
        assert response.status_code == 403

    def test_missing_record(self, client):
        _, doctor_headers = register(client, "doc@example.com", "doctor")

        response = client.get("/api/v1/medical-records/999", headers=doctor_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestMedicalFilesApi:

    def test_patient_uploads_own_file(self, client, storage):
        patient, patient_headers = register(client, "pat@example.com", "patient")

        response = client.post(
            "/api/v1/uploads/files",
            headers=patient_headers,
            data={"description": "Prescriptions"},
            files={"file": ("rx.pdf", b"%PDF-1.4 rx", "application/pdf")},
        )
        assert response.status_code == 201
        uploaded = response.json()
        assert uploaded["patient_id"] == patient["auth_id"]
        assert uploaded["description"] == "Prescriptions"
        assert f"Prescriptions/{patient['auth_id']}/rx.pdf" in storage.objects

        response = client.get("/api/v1/uploads/files", headers=patient_headers)
        assert response.status_code == 200
        assert [f["id"] for f in response.json()] == [uploaded["id"]]

    def test_doctor_uploads_for_named_patient(self, client, storage):
        doctor, doctor_headers = register(client, "doc@example.com", "doctor")

        response = client.post(
            "/api/v1/uploads/files",
            headers=doctor_headers,
            data={"patient_id": "PT1234567890"},
            files={"file": ("notes.txt", b"follow up in two weeks", "text/plain")},
        )
        assert response.status_code == 201
        assert response.json()["uploaded_by"] == doctor["auth_id"]
        assert response.json()["description"] == "uploads"
        assert "uploads/PT1234567890/notes.txt" in storage.objects

    def test_doctor_must_name_patient(self, client, storage):
        _, doctor_headers = register(client, "doc@example.com", "doctor")

        response = client.post(
            "/api/v1/uploads/files",
            headers=doctor_headers,
            files={"file": ("notes.txt", b"data", "text/plain")},
        )
        assert response.status_code == 400
        assert storage.objects == {}

    def test_patient_cannot_upload_for_someone_else(self, client, storage):
        _, patient_headers = register(client, "pat@example.com", "patient")

        response = client.post(
            "/api/v1/uploads/files",
            headers=patient_headers,
            data={"patient_id": "someone-else"},
            files={"file": ("rx.pdf", b"data", "application/pdf")},
        )
        assert response.status_code == 403
        assert storage.objects == {}


class TestAppointmentsApi:

    def test_patient_books_and_slot_closes(self, client):
        patient, patient_headers = register(client, "pat@example.com", "patient")
        lab, lab_headers = register(client, "lab@example.com", "labOwner")

        response = client.post("/api/v1/appointments", headers=patient_headers, json={
            "lab_id": lab["auth_id"],
            "date": "2026-11-02",
            "time": "09:30",
            "test_type": "Blood Panel"
        })
        assert response.status_code == 201
        booked = response.json()
        assert booked["patient_id"] == patient["auth_id"]
        assert booked["date_time"].startswith("2026-11-02T09:30")

        response = client.get(
            "/api/v1/appointments/schedule",
            headers=patient_headers,
            params={"lab_id": lab["auth_id"], "date": "2026-11-02"},
        )
        assert response.status_code == 200
        slots = {s["time"]: s["available"] for s in response.json()["slots"]}
        assert slots["09:30"] is False
        assert slots["10:00"] is True

        response = client.get("/api/v1/appointments", headers=lab_headers)
        assert [a["id"] for a in response.json()] == [booked["id"]]

    def test_double_booking_rejected(self, client):
        _, patient_headers = register(client, "pat@example.com", "patient")
        booking = {"lab_id": "LB5550001111", "date": "2026-11-02", "time": "09:30"}

        assert client.post("/api/v1/appointments", headers=patient_headers, json=booking).status_code == 201
        response = client.post("/api/v1/appointments", headers=patient_headers, json=booking)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_lab_owner_books_only_own_lab(self, client):
        _, lab_headers = register(client, "lab@example.com", "labOwner")

        response = client.post("/api/v1/appointments", headers=lab_headers, json={
            "lab_id": "another-lab",
            "date": "2026-11-02",
            "time": "09:30"
        })
        assert response.status_code == 403


class TestStatusUpdateApi:

    def test_lab_moves_request_in_progress(self, client):
        patient, _ = register(client, "pat@example.com", "patient")
        _, doctor_headers = register(client, "doc@example.com", "doctor")
        lab, lab_headers = register(client, "lab@example.com", "labOwner")
        created = client.post("/api/v1/test-requests", headers=doctor_headers, json={
            "patient_id": patient["auth_id"],
            "patient_name": "Pat Smith",
            "lab_id": lab["auth_id"],
            "doctor_name": "Dr. Jones",
            "test_type": "Blood Panel"
        }).json()

        response = client.patch(
            f"/api/v1/test-requests/{created['id']}/status", headers=lab_headers, json={"status": "in_progress"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "in_progress"

        response = client.patch(
            f"/api/v1/test-requests/{created['id']}/status", headers=lab_headers, json={"status": "lost"}
        )
        assert response.status_code == 400

    def test_patient_cannot_change_status(self, client):
        _, patient_headers = register(client, "pat@example.com", "patient")

        response = client.patch("/api/v1/test-requests/1/status", headers=patient_headers, json={"status": "completed"})
        assert response.status_code == 403
