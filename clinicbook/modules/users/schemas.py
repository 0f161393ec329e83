# clinicbook/modules/users/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, StringConstraints

from clinicbook.modules.users.models import AvailabilitySlot, UserRole

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]
EmailStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"),
]
TextStr = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]


class RegisterRequest(BaseModel):
    name: NameStr
    email: EmailStr
    password: SecretStr = Field(..., description="At least MIN_PASSWORD_LENGTH chars")
    role: UserRole = UserRole.PATIENT
    # doctor only
    specialty: Optional[TextStr] = None
    location: Optional[TextStr] = None
    bio: Optional[TextStr] = None


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    approved: bool
    specialty: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    rating: Optional[float] = None
    availability: Optional[List[AvailabilitySlot]] = None
    created_at: datetime


RegisterResponse = UserPublic
MeResponse = UserPublic


class ErrorResponse(BaseModel):
    detail: str
    message: str


# --- Login ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: SecretStr


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserPublic


# --- Profile ---

class ProfileUpdateRequest(BaseModel):
    """Partial update; doctor fields are ignored for other roles."""

    name: Optional[NameStr] = None
    specialty: Optional[TextStr] = None
    location: Optional[TextStr] = None
    bio: Optional[TextStr] = None
