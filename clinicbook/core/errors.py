# clinicbook/core/errors.py
from __future__ import annotations


class ClinicError(Exception):
    """
    Base class for every business error.

    `code` is the stable machine identifier sent to clients,
    `status_code` the HTTP status the API answers with.
    """

    code = "clinic_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFound(ClinicError):
    code = "not_found"
    status_code = 404


class DuplicateEmail(ClinicError):
    code = "email_already_exists"
    status_code = 409


class InvalidCredential(ClinicError):
    code = "invalid_credentials"
    status_code = 401


class PendingApproval(ClinicError):
    code = "pending_approval"
    status_code = 403


class SlotUnavailable(ClinicError):
    code = "slot_unavailable"
    status_code = 409


class ValidationError(ClinicError):
    """Missing or malformed business fields (not pydantic's ValidationError)."""

    code = "validation_error"
    status_code = 400


class Forbidden(ClinicError):
    code = "forbidden"
    status_code = 403


class InvalidTransition(ClinicError):
    code = "invalid_transition"
    status_code = 409
