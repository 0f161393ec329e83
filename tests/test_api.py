"""HTTP surface, run against a seeded in-memory store."""
import datetime as dt

import pytest
from fastapi.testclient import TestClient

from clinicbook.core.config import settings
from clinicbook.db.store import MemoryStore
from clinicbook.main import create_app
from clinicbook.seed import SAMPLE_PASSWORD

API = settings.API_PREFIX


def next_monday(weeks_ahead=1):
    today = dt.date.today()
    return today + dt.timedelta(days=(7 - today.weekday()) % 7 or 7) + dt.timedelta(weeks=weeks_ahead - 1)


@pytest.fixture
def client():
    with TestClient(create_app(MemoryStore())) as c:
        yield c


def login(client, email, password=SAMPLE_PASSWORD):
    resp = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def patient_headers(client):
    return login(client, "patient@example.com")


@pytest.fixture
def doctor_headers(client):
    return login(client, "doctor@example.com")


@pytest.fixture
def admin_headers(client):
    return login(client, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)


def doctor_id(client):
    doctors = client.get(f"{API}/doctors", params={"q": "Cardiology"}).json()
    return doctors[0]["id"]


def test_health(client):
    assert client.get(f"{API}/health").json() == {"status": "ok"}
    assert client.get(f"{API}/health/store").json()["store"] == "MemoryStore"


def test_error_payload_is_documented(client):
    schema = client.get("/openapi.json").json()
    assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {"detail", "message"}
    login_errors = schema["paths"][f"{API}/auth/login"]["post"]["responses"]
    assert login_errors["401"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")


class TestAuth:
    def test_register_patient_and_login(self, client):
        resp = client.post(
            f"{API}/auth/register",
            json={"name": "Nina New", "email": "Nina@Mail.test", "password": "secret1"},
        )
        assert resp.status_code == 201
        assert resp.json()["email"] == "nina@mail.test"
        headers = login(client, "nina@mail.test", "secret1")
        assert client.get(f"{API}/auth/me", headers=headers).json()["name"] == "Nina New"

    def test_duplicate_email(self, client):
        resp = client.post(
            f"{API}/auth/register",
            json={"name": "Again", "email": "patient@example.com", "password": "secret1"},
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "email_already_exists"

    def test_admin_cannot_register(self, client):
        resp = client.post(
            f"{API}/auth/register",
            json={"name": "Eve", "email": "eve@mail.test", "password": "secret1", "role": "admin"},
        )
        assert resp.status_code == 400

    def test_pending_doctor_cannot_login(self, client):
        client.post(
            f"{API}/auth/register",
            json={
                "name": "Dr. Wait", "email": "wait@mail.test", "password": "secret1",
                "role": "doctor", "specialty": "Neurology", "location": "Denver, CO",
            },
        )
        resp = client.post(f"{API}/auth/login", json={"email": "wait@mail.test", "password": "secret1"})
        assert resp.status_code == 403
        assert resp.json()["detail"] == "pending_approval"

    def test_wrong_password(self, client):
        resp = client.post(f"{API}/auth/login", json={"email": "patient@example.com", "password": "nope12"})
        assert resp.status_code == 401

    def test_unknown_email(self, client):
        resp = client.post(f"{API}/auth/login", json={"email": "ghost@mail.test", "password": "secret1"})
        assert resp.status_code == 404

    def test_token_form(self, client):
        resp = client.post(
            f"{API}/auth/token",
            data={"username": "patient@example.com", "password": SAMPLE_PASSWORD},
        )
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    def test_me_requires_token(self, client):
        assert client.get(f"{API}/auth/me").status_code == 401
        bad = {"Authorization": "Bearer not-a-token"}
        assert client.get(f"{API}/auth/me", headers=bad).status_code == 401

    def test_patient_profile_ignores_doctor_fields(self, client, patient_headers):
        resp = client.patch(
            f"{API}/auth/me", headers=patient_headers, json={"name": "John P.", "specialty": "Surgery"}
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "John P."
        assert resp.json()["specialty"] is None

    def test_logout(self, client, patient_headers):
        assert client.post(f"{API}/auth/logout", headers=patient_headers).status_code == 204


class TestDoctors:
    def test_search(self, client):
        names = [d["name"] for d in client.get(f"{API}/doctors").json()]
        assert len(names) == 3
        resp = client.get(f"{API}/doctors", params={"location": "chicago"})
        assert [d["name"] for d in resp.json()] == ["Dr. Emily Rodriguez"]

    def test_specialties(self, client):
        assert client.get(f"{API}/doctors/specialties").json() == ["Cardiology", "Dermatology", "Pediatrics"]

    def test_free_times(self, client):
        did = doctor_id(client)
        resp = client.get(f"{API}/doctors/{did}/free-times", params={"date": next_monday(3).isoformat()})
        assert resp.json()["times"] == ["09:00", "10:00", "11:00", "14:00", "15:00", "16:00"]

    def test_unknown_doctor(self, client):
        assert client.get(f"{API}/doctors/missing").status_code == 404

    def test_toggle_own_slot(self, client, doctor_headers):
        resp = client.post(
            f"{API}/doctors/me/availability/toggle",
            headers=doctor_headers,
            json={"day": "saturday", "time": "09:30"},
        )
        assert resp.status_code == 200
        assert {"day": "saturday", "time": "09:30", "enabled": True} in resp.json()["availability"]

    @pytest.mark.parametrize("time", ["09:15", "03:00", "23:30"])
    def test_toggle_rejects_off_grid_time(self, client, doctor_headers, time):
        resp = client.post(
            f"{API}/doctors/me/availability/toggle",
            headers=doctor_headers,
            json={"day": "monday", "time": time},
        )
        assert resp.status_code == 422

    def test_patient_cannot_edit_availability(self, client, patient_headers):
        resp = client.get(f"{API}/doctors/me/availability", headers=patient_headers)
        assert resp.status_code == 403


class TestAppointmentFlow:
    def test_book_approve_complete(self, client, patient_headers, doctor_headers):
        did = doctor_id(client)
        date = next_monday(3).isoformat()
        resp = client.post(
            f"{API}/appointments",
            headers=patient_headers,
            json={"doctor_id": did, "date": date, "time": "11:00"},
        )
        assert resp.status_code == 201, resp.text
        appt = resp.json()
        assert appt["status"] == "pending"

        again = client.post(
            f"{API}/appointments",
            headers=patient_headers,
            json={"doctor_id": did, "date": date, "time": "11:00"},
        )
        assert again.status_code == 409
        assert again.json()["detail"] == "slot_unavailable"

        upcoming = client.get(f"{API}/appointments/upcoming", headers=doctor_headers).json()
        assert appt["id"] in {a["id"] for a in upcoming["items"]}

        approved = client.put(f"{API}/appointments/{appt['id']}/approve", headers=doctor_headers)
        assert approved.json()["status"] == "confirmed"

        done = client.put(f"{API}/appointments/{appt['id']}/complete", headers=doctor_headers)
        assert done.json()["status"] == "completed"

        again = client.put(f"{API}/appointments/{appt['id']}/approve", headers=doctor_headers)
        assert again.status_code == 409
        assert again.json()["detail"] == "invalid_transition"

        rated = client.post(f"{API}/doctors/{did}/rating", headers=patient_headers, json={"score": 5})
        assert rated.status_code == 200

    def test_cancel_moves_to_history(self, client, patient_headers):
        upcoming = client.get(f"{API}/appointments/upcoming", headers=patient_headers).json()
        assert upcoming["total"] == 2
        first = upcoming["items"][0]
        assert first["doctor_name"] == "Dr. Sarah Wilson"

        resp = client.put(f"{API}/appointments/{first['id']}/cancel", headers=patient_headers)
        assert resp.json()["status"] == "cancelled"

        history = client.get(f"{API}/appointments/history", headers=patient_headers).json()
        assert [a["id"] for a in history["items"]] == [first["id"]]

    def test_reschedule_pending(self, client, patient_headers):
        upcoming = client.get(f"{API}/appointments/upcoming", headers=patient_headers).json()
        pending = next(a for a in upcoming["items"] if a["status"] == "pending")
        target = next_monday(4).isoformat()
        resp = client.put(
            f"{API}/appointments/{pending['id']}/reschedule",
            headers=patient_headers,
            json={"date": target, "time": "15:00"},
        )
        assert resp.status_code == 200, resp.text
        assert (resp.json()["date"], resp.json()["time"]) == (target, "15:00")

    def test_doctor_cannot_book(self, client, doctor_headers):
        resp = client.post(
            f"{API}/appointments",
            headers=doctor_headers,
            json={"doctor_id": doctor_id(client), "date": next_monday(3).isoformat(), "time": "11:00"},
        )
        assert resp.status_code == 403


class TestAdmin:
    def test_requires_admin(self, client, patient_headers):
        assert client.get(f"{API}/admin/stats", headers=patient_headers).status_code == 403

    def test_stats(self, client, admin_headers):
        stats = client.get(f"{API}/admin/stats", headers=admin_headers).json()
        assert stats["total_users"] == 5
        assert stats["total_appointments"] == 2

    def test_approve_pending_doctor(self, client, admin_headers):
        client.post(
            f"{API}/auth/register",
            json={
                "name": "Dr. Wait", "email": "wait@mail.test", "password": "secret1",
                "role": "doctor", "specialty": "Neurology", "location": "Denver, CO",
            },
        )
        pending = client.get(f"{API}/admin/doctors/pending", headers=admin_headers).json()
        assert [d["email"] for d in pending] == ["wait@mail.test"]

        resp = client.put(f"{API}/admin/doctors/{pending[0]['id']}/approve", headers=admin_headers)
        assert resp.json()["approved"] is True
        login(client, "wait@mail.test", "secret1")

    def test_delete_user_cascades(self, client, admin_headers):
        did = doctor_id(client)
        assert client.delete(f"{API}/admin/users/{did}", headers=admin_headers).status_code == 204
        appts = client.get(f"{API}/admin/appointments", headers=admin_headers).json()
        assert all(a["doctor_id"] != did for a in appts["items"])
        assert appts["total"] == 1

    def test_force_approve_and_delete(self, client, admin_headers):
        appts = client.get(f"{API}/admin/appointments", headers=admin_headers).json()["items"]
        pending = next(a for a in appts if a["status"] == "pending")
        resp = client.put(f"{API}/admin/appointments/{pending['id']}/force-approve", headers=admin_headers)
        assert resp.json()["status"] == "confirmed"
        resp = client.delete(f"{API}/admin/appointments/{pending['id']}", headers=admin_headers)
        assert resp.status_code == 204

    def test_destructive_calls_need_confirmation(self, client, admin_headers):
        assert client.delete(f"{API}/admin/data", headers=admin_headers).status_code == 400
        assert client.post(f"{API}/admin/reset", headers=admin_headers).status_code == 400

    def test_export_import(self, client, admin_headers):
        snapshot = client.get(f"{API}/admin/export", headers=admin_headers).json()
        snapshot["appointments"] = []
        resp = client.post(f"{API}/admin/import", headers=admin_headers, params={"confirm": "true"}, json=snapshot)
        assert resp.json() == {"users": 5, "appointments": 0}

    def test_clear_data(self, client, admin_headers):
        resp = client.delete(f"{API}/admin/data", headers=admin_headers, params={"confirm": "true"})
        assert resp.status_code == 204
        # the old admin record is gone, so its token no longer resolves
        assert client.get(f"{API}/admin/stats", headers=admin_headers).status_code == 401

        # but the well-known admin is back straight away
        fresh = login(client, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
        stats = client.get(f"{API}/admin/stats", headers=fresh).json()
        assert stats["total_users"] == 5
