from __future__ import annotations

import logging

audit_logger = logging.getLogger("clinicbook.audit")


def write_audit_log(
    user_id: str | None,
    action: str,
    details: str | None = None,
) -> None:
    """
    Write an audit log entry.

    action:
        "REGISTER"
        "BOOK_APPOINTMENT"
        "UPDATE_USER"
        "DELETE_USER"

    details:
        free text, never a password or hash
    """
    audit_logger.info(
        "action=%s user_id=%s details=%s",
        action,
        user_id or "-",
        details or "",
    )
