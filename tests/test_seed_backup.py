"""First-run seeding, admin repair, stats and backup/restore."""
import datetime as dt
import gzip
import json

import pytest

from clinicbook import backup, restore
from clinicbook.core.config import settings
from clinicbook.core.errors import ValidationError
from clinicbook.core.security import hash_password, verify_password
from clinicbook.db.store import APPOINTMENTS, INITIALIZED, USERS, MemoryStore
from clinicbook.modules.admin.service import clear_all_data, system_stats
from clinicbook.modules.appointments import repository as appointments_repo
from clinicbook.modules.appointments.models import ApptStatus
from clinicbook.modules.users import repository as users_repo
from clinicbook.modules.users import service as users_service
from clinicbook.modules.users.models import UserRole
from clinicbook.seed import SAMPLE_PASSWORD, ensure_admin, reset_sample_data, seed_initial_data


@pytest.fixture
def seeded(store, today):
    assert seed_initial_data(store, today=today) is True
    return store


class TestSeed:
    def test_sample_population(self, seeded, today):
        users = users_repo.get_all(seeded)
        roles = sorted(u.role.value for u in users)
        assert roles == ["admin", "doctor", "doctor", "doctor", "patient"]
        assert all(d.approved for d in users_repo.list_doctors(seeded))

        appts = sorted(appointments_repo.get_all(seeded), key=lambda a: a.date)
        assert [(a.date, a.time, a.status) for a in appts] == [
            (today + dt.timedelta(days=7), "10:00", ApptStatus.CONFIRMED),
            (today + dt.timedelta(days=14), "14:30", ApptStatus.PENDING),
        ]
        assert seeded.get_value(INITIALIZED) is True

    def test_sample_logins(self, seeded):
        for email in ("patient@example.com", "doctor@example.com", "doctor3@example.com"):
            assert users_service.authenticate(seeded, email, SAMPLE_PASSWORD).email == email
        admin = users_service.authenticate(seeded, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
        assert admin.role == UserRole.ADMIN

    def test_second_run_is_noop(self, seeded, today):
        assert seed_initial_data(seeded, today=today) is False
        assert len(users_repo.get_all(seeded)) == 5
        assert len(appointments_repo.get_all(seeded)) == 2

    def test_admin_is_recreated(self, seeded, today):
        admin = users_repo.get_by_email(seeded, settings.ADMIN_EMAIL)
        users_repo.delete_user(seeded, admin.id)
        seed_initial_data(seeded, today=today)
        assert users_repo.get_by_email(seeded, settings.ADMIN_EMAIL).role == UserRole.ADMIN

    def test_admin_credentials_are_repaired(self, seeded):
        admin = users_repo.get_by_email(seeded, settings.ADMIN_EMAIL)
        users_repo.update_user(seeded, admin.id, email="moved@clinic.test")
        ensure_admin(seeded)
        repaired = users_repo.get_by_id(seeded, admin.id)
        assert repaired.email == settings.ADMIN_EMAIL.lower()
        assert verify_password(settings.ADMIN_PASSWORD, repaired.password_hash)

    def test_admin_password_change_is_kept(self, seeded):
        admin = users_repo.get_by_email(seeded, settings.ADMIN_EMAIL)
        users_service.update_user(seeded, admin.id, password_hash=hash_password("Changed99"))
        ensure_admin(seeded)
        kept = users_repo.get_by_id(seeded, admin.id)
        assert verify_password("Changed99", kept.password_hash)

    def test_reset(self, seeded, patient, today):
        reset_sample_data(seeded, today=today)
        assert users_repo.get_by_email(seeded, patient.email) is None
        assert len(users_repo.get_all(seeded)) == 5


def test_stats(seeded):
    stats = system_stats(seeded)
    assert (stats.total_users, stats.total_patients, stats.total_doctors) == (5, 1, 3)
    assert (stats.approved_doctors, stats.pending_doctors) == (3, 0)
    assert stats.total_appointments == 2
    assert (stats.pending_appointments, stats.confirmed_appointments) == (1, 1)
    assert (stats.completed_appointments, stats.cancelled_appointments) == (0, 0)


class TestClearAllData:
    def test_reseeds_with_admin(self, seeded, admin, patient):
        clear_all_data(seeded, admin)
        assert users_repo.get_by_email(seeded, patient.email) is None
        assert users_repo.get_by_email(seeded, admin.email) is None
        assert len(users_repo.get_all(seeded)) == 5
        assert seeded.get_value(INITIALIZED) is True
        restored = users_service.authenticate(seeded, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
        assert restored.role == UserRole.ADMIN

    def test_without_sample_data_keeps_only_admin(self, seeded, admin, monkeypatch):
        monkeypatch.setattr(settings, "SEED_SAMPLE_DATA", False)
        clear_all_data(seeded, admin)
        users = users_repo.get_all(seeded)
        assert [(u.email, u.role) for u in users] == [(settings.ADMIN_EMAIL.lower(), UserRole.ADMIN)]
        assert appointments_repo.get_all(seeded) == []


class TestSnapshot:
    def test_round_trip(self, seeded):
        snapshot = json.loads(json.dumps(backup.export_snapshot(seeded)))
        target = MemoryStore()
        assert backup.import_snapshot(target, snapshot) == (5, 2)
        assert target.get_collection(USERS) == seeded.get_collection(USERS)
        assert target.get_collection(APPOINTMENTS) == seeded.get_collection(APPOINTMENTS)

    def test_import_replaces_wholesale(self, seeded):
        snapshot = backup.export_snapshot(seeded)
        snapshot["appointments"] = []
        backup.import_snapshot(seeded, snapshot)
        assert appointments_repo.get_all(seeded) == []

    def test_import_restores_missing_admin(self, seeded):
        snapshot = backup.export_snapshot(seeded)
        snapshot["users"] = [u for u in snapshot["users"] if u["role"] != "admin"]
        assert backup.import_snapshot(seeded, snapshot) == (4, 2)
        admin = users_service.authenticate(seeded, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
        assert admin.role == UserRole.ADMIN

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"users": []},
            {"users": "nope", "appointments": []},
            {"users": [{"id": "x"}], "appointments": []},
            {"users": [], "appointments": [{"id": "y", "status": "lost"}]},
        ],
    )
    def test_invalid_snapshot_writes_nothing(self, seeded, data):
        before = seeded.get_collection(USERS)
        with pytest.raises(ValidationError):
            backup.import_snapshot(seeded, data)
        assert seeded.get_collection(USERS) == before


class TestBackupFiles:
    def test_write_and_read(self, seeded, tmp_path):
        path = backup.write_backup(seeded, tmp_path, now=dt.datetime(2030, 1, 7, 8, 30, 0))
        assert path.name == "clinicbook-20300107083000.json.gz"
        assert len(backup.read_backup(path)["users"]) == 5

    def test_rotate_and_latest(self, seeded, tmp_path):
        now = dt.datetime(2030, 1, 31, 12, 0, 0)
        old = backup.write_backup(seeded, tmp_path, now=now - dt.timedelta(days=20))
        recent = backup.write_backup(seeded, tmp_path, now=now - dt.timedelta(days=2))
        stray = tmp_path / "clinicbook-notadate.json.gz"
        stray.write_bytes(b"")

        assert backup.rotate_backups(tmp_path, 14, now=now) == [old]
        assert not old.exists()
        assert recent.exists() and stray.exists()
        assert backup.latest_backup(tmp_path) == recent

    def test_latest_in_empty_dir(self, tmp_path):
        assert backup.latest_backup(tmp_path) is None

    def test_cli_dry_run(self, seeded, tmp_path):
        assert backup.main(["--dir", str(tmp_path), "--dry-run"], store=seeded) == 0
        assert list(tmp_path.iterdir()) == []

    def test_cli_writes_backup(self, seeded, tmp_path):
        assert backup.main(["--dir", str(tmp_path)], store=seeded) == 0
        assert backup.latest_backup(tmp_path) is not None


class TestRestore:
    def test_restore_latest(self, seeded, tmp_path):
        backup.write_backup(seeded, tmp_path)
        target = MemoryStore()
        assert restore.main(["--dir", str(tmp_path), "--yes"], store=target) == 0
        assert len(users_repo.get_all(target)) == 5

    def test_restore_file(self, seeded, tmp_path):
        path = backup.write_backup(seeded, tmp_path)
        target = MemoryStore()
        assert restore.main(["--file", str(path), "--yes"], store=target) == 0
        assert len(appointments_repo.get_all(target)) == 2

    def test_prompt_abort(self, seeded, tmp_path, monkeypatch):
        path = backup.write_backup(seeded, tmp_path)
        monkeypatch.setattr("builtins.input", lambda _: "n")
        target = MemoryStore()
        assert restore.main(["--file", str(path)], store=target) == 0
        assert users_repo.get_all(target) == []

    def test_invalid_payload(self, tmp_path):
        path = tmp_path / "clinicbook-20300101000000.json.gz"
        with gzip.open(path, "wt", encoding="utf-8") as f:
            json.dump({"users": 1}, f)
        assert restore.main(["--file", str(path), "--yes"], store=MemoryStore()) == 1

    def test_no_backups(self, tmp_path):
        with pytest.raises(SystemExit):
            restore.main(["--dir", str(tmp_path), "--yes"], store=MemoryStore())
