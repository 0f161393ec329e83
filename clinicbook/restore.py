"""restore.py: restore users and appointments from a JSON snapshot.

Usage:
  python -m clinicbook.restore                    # restore from latest backup file
  python -m clinicbook.restore --file path.json.gz
  python -m clinicbook.restore --yes              # non-interactive (auto-confirm)

Env / .env variables:
  STORE_DSN, BACKUP_DIR (default: ./backups)
"""

# clinicbook/restore.py
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from clinicbook.backup import import_snapshot, latest_backup, read_backup
from clinicbook.core.config import settings
from clinicbook.core.errors import ValidationError
from clinicbook.db.store import KeyValueStore


def main(argv: Optional[list[str]] = None, store: Optional[KeyValueStore] = None) -> int:
    parser = argparse.ArgumentParser(description="Clinic data restore tool")
    parser.add_argument("--file", type=str, help="backup file (.json.gz) to restore from")
    parser.add_argument("--dir", type=str, default=None, help="backup directory (override BACKUP_DIR)")
    parser.add_argument("--yes", action="store_true", help="Automatically confirm without prompt")
    args = parser.parse_args(argv)

    backup_dir = Path(args.dir or settings.BACKUP_DIR).resolve()

    # Determine backup file
    if args.file:
        src = Path(args.file).resolve()
    else:
        src = latest_backup(backup_dir)
        if not src:
            raise SystemExit(f"[restore] No backups found in: {backup_dir}")

    if not src.exists() or not src.suffixes[-2:] == [".json", ".gz"]:
        raise SystemExit(f"[restore] File invalid or not .json.gz: {src}")

    print(f"[restore] Restoring from: {src}")

    if not args.yes:
        ans = input("WARNING: This will replace ALL users and appointments. Continue? [y/N]: ").strip().lower()
        if ans != "y":
            print("[restore] Aborted.")
            return 0

    if store is None:
        from clinicbook.db.sql import make_store
        store = make_store()

    try:
        users, appointments = import_snapshot(store, read_backup(src))
    except (ValidationError, json.JSONDecodeError, OSError) as exc:
        sys.stderr.write(f"[restore] {exc}\n")
        return 1

    print(f"[restore] SUCCESS. {users} users, {appointments} appointments.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
