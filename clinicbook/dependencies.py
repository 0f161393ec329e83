# clinicbook/dependencies.py
from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from clinicbook.core.config import settings
from clinicbook.core.security import InvalidTokenError, decode_token, is_access_token
from clinicbook.db.sql import get_store
from clinicbook.db.store import KeyValueStore
from clinicbook.modules.users.models import User
from clinicbook.modules.users.repository import get_by_id

# Swagger sends username/password to /auth/token
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/token"
)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    store: KeyValueStore = Depends(get_store),
) -> User:
    """
    Resolve the acting user from the Bearer token. The record is re-read
    from the store on every request, so it is never a stale snapshot.
    """
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token",
        )

    if not is_access_token(payload):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token_type",
        )

    user = get_by_id(store, payload.get("sub"))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="user_not_found",
        )
    if not user.approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="pending_approval",
        )
    return user


def require_roles(*roles: str):
    """
    Role guard factory. Example: Depends(require_roles("admin", "doctor"))
    """
    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role.value not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="insufficient_role",
            )
        return user

    return _guard


def require_confirmation(confirm: bool = False) -> None:
    """
    Destructive admin operations must be called with ?confirm=true.
    """
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="confirmation_required",
        )
