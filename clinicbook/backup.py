# clinicbook/backup.py
"""backup.py: export users and appointments to a gzipped JSON snapshot.

Usage:
  python -m clinicbook.backup              # write a new backup, rotate old ones
  python -m clinicbook.backup --keep 30    # keep 30 days of backups
  python -m clinicbook.backup --dry-run    # show what would happen

Env / .env variables:
  STORE_DSN, BACKUP_DIR (default: ./backups), KEEP_DAYS (default: 14)
"""
from __future__ import annotations

import argparse
import datetime as dt
import gzip
import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from clinicbook.core.config import settings
from clinicbook.core.errors import ValidationError
from clinicbook.db.store import APPOINTMENTS, USERS, KeyValueStore
from clinicbook.modules.appointments.models import Appointment
from clinicbook.modules.log import write_audit_log
from clinicbook.modules.users.models import User
from clinicbook.seed import ensure_admin

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "clinicbook"
BACKUP_GLOB = f"{BACKUP_PREFIX}-*.json.gz"
TS_FORMAT = "%Y%m%d%H%M%S"


def export_snapshot(store: KeyValueStore) -> dict[str, Any]:
    """
    Both collections exactly as stored, order preserved.
    """
    return {
        "exported_at": dt.datetime.now(dt.timezone.utc).isoformat(),
        "users": store.get_collection(USERS),
        "appointments": store.get_collection(APPOINTMENTS),
    }


def import_snapshot(store: KeyValueStore, data: Any) -> tuple[int, int]:
    """
    Validate a snapshot then overwrite both collections wholesale and
    repair the admin account. Nothing is written unless every record validates.
    Returns (users, appointments) counts.
    """
    if not isinstance(data, dict):
        raise ValidationError("invalid_backup: not an object")
    users = data.get("users")
    appointments = data.get("appointments")
    if not isinstance(users, list) or not isinstance(appointments, list):
        raise ValidationError("invalid_backup: users and appointments are required")

    try:
        for record in users:
            User.from_record(record)
        for record in appointments:
            Appointment.from_record(record)
    except PydanticValidationError as exc:
        raise ValidationError(f"invalid_backup: {exc.error_count()} invalid field(s)") from exc

    with store.transaction():
        store.set_collection(USERS, users)
        store.set_collection(APPOINTMENTS, appointments)
        # the imported users may lack the well-known admin
        ensure_admin(store)
    write_audit_log(None, "IMPORT", f"{len(users)} users, {len(appointments)} appointments")
    return len(users), len(appointments)


def write_backup(store: KeyValueStore, backup_dir: Path, *, now: Optional[dt.datetime] = None) -> Path:
    backup_dir.mkdir(parents=True, exist_ok=True)
    ts = (now or dt.datetime.now()).strftime(TS_FORMAT)
    path = backup_dir / f"{BACKUP_PREFIX}-{ts}.json.gz"
    with gzip.open(path, "wt", encoding="utf-8") as f:
        json.dump(export_snapshot(store), f, indent=2)
    return path


def read_backup(path: Path) -> Any:
    with gzip.open(path, "rt", encoding="utf-8") as f:
        return json.load(f)


def _backup_ts(path: Path) -> Optional[dt.datetime]:
    # file name format: clinicbook-YYYYmmddHHMMSS.json.gz
    stem = path.name[: -len(".json.gz")]
    try:
        return dt.datetime.strptime(stem.split("-")[-1], TS_FORMAT)
    except ValueError:
        return None


def rotate_backups(backup_dir: Path, keep_days: int, *, now: Optional[dt.datetime] = None) -> list[Path]:
    """
    Delete backup files older than keep_days days.
    """
    cutoff = (now or dt.datetime.now()) - dt.timedelta(days=keep_days)
    removed: list[Path] = []

    for f in sorted(backup_dir.glob(BACKUP_GLOB)):
        ts = _backup_ts(f)
        # If the name is not in the correct format, ignore it.
        if ts is None:
            continue
        if ts < cutoff:
            f.unlink(missing_ok=True)
            removed.append(f)

    return removed


def latest_backup(backup_dir: Path) -> Optional[Path]:
    cand = [p for p in backup_dir.glob(BACKUP_GLOB) if _backup_ts(p) is not None]
    return max(cand, key=_backup_ts) if cand else None


def main(argv: Optional[list[str]] = None, store: Optional[KeyValueStore] = None) -> int:
    parser = argparse.ArgumentParser(description="Clinic data backup creator")
    parser.add_argument(
        "--keep", type=int, default=None,
        help="days to keep backups (override KEEP_DAYS)",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="show what would happen without executing",
    )
    parser.add_argument("--dir", type=str, default=None, help="backup directory (override BACKUP_DIR)")
    args = parser.parse_args(argv)

    backup_dir = Path(args.dir or settings.BACKUP_DIR).resolve()
    keep_days = args.keep if args.keep is not None else settings.KEEP_DAYS

    print(f"[backup] Directory: {backup_dir}")
    print(f"[backup] Keep days: {keep_days} (rotation before backup)")

    if args.dry_run:
        print("[backup] DRY RUN: not writing a backup")
        return 0

    backup_dir.mkdir(parents=True, exist_ok=True)
    removed = rotate_backups(backup_dir, keep_days)
    if removed:
        print("[backup] Rotated (deleted old):")
        for p in removed:
            print("  -", p.name)

    if store is None:
        from clinicbook.db.sql import make_store
        store = make_store()

    path = write_backup(store, backup_dir)
    print(f"[backup] Done. {path.name} ({path.stat().st_size} bytes)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
