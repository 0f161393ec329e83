# clinicbook/modules/users/session.py
from __future__ import annotations

from typing import Optional

from clinicbook.db.store import CURRENT_SESSION, KeyValueStore
from clinicbook.modules.users.models import User


def start_session(store: KeyValueStore, user: User) -> None:
    """Point the session at `user`, keeping a snapshot of the record."""
    store.set_value(CURRENT_SESSION, user.to_record())


def get_session_user(store: KeyValueStore) -> Optional[User]:
    record = store.get_value(CURRENT_SESSION)
    return User.from_record(record) if record else None


def clear_session(store: KeyValueStore) -> None:
    store.delete(CURRENT_SESSION)


def refresh_session(store: KeyValueStore, user: User) -> bool:
    """
    Replace the snapshot after `user` was mutated, but only when the
    session belongs to that same user. Returns True if refreshed.
    """
    current = store.get_value(CURRENT_SESSION)
    if not current or current.get("id") != user.id:
        return False
    store.set_value(CURRENT_SESSION, user.to_record())
    return True


def drop_session_of(store: KeyValueStore, user_id: str) -> bool:
    """
    Clear the session when it belongs to `user_id` (that user was deleted).
    Returns True if cleared.
    """
    current = store.get_value(CURRENT_SESSION)
    if not current or current.get("id") != user_id:
        return False
    store.delete(CURRENT_SESSION)
    return True
