"""
Vacancy API - Authentication dependencies.

Reads are always anonymous. Writes require a bearer token only when
VACANCY_AUTH_REQUIRE_TOKEN_FOR_WRITES is enabled:

    @router.post("", dependencies=[Depends(require_write_access)])

Dependency hierarchy:
    get_current_user_optional - User for a valid token, otherwise None
    require_write_access      - Raises 401 without a valid token when tokens are required
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import AuthenticationError
from .models import User

logger = logging.getLogger("vacancy_api.auth")

# auto_error=False lets us answer with the API's own 401 payload
bearer_scheme = HTTPBearer(auto_error=False)


def find_user_by_token(db: Session, token: str) -> Optional[User]:
    """Look up an active user by access token."""
    if not token:
        return None
    return db.query(User).filter(
        User.access_token == token,
        User.is_active.is_(True),
    ).first()


def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Optionally resolve the calling user from the Authorization header.

    Returns:
        User if the bearer token belongs to an active user, None otherwise
        (never raises).
    """
    if credentials is None:
        return None
    return find_user_by_token(db, credentials.credentials)


def require_write_access(
    request: Request,
    current_user: Optional[User] = Depends(get_current_user_optional),
) -> Optional[User]:
    """
    Guard for POST/PUT/DELETE.

    The requirement is read from app.state.require_token_for_writes, set from
    settings at startup.

    Raises:
        AuthenticationError: 401 if a token is required and missing or invalid.
    """
    if not getattr(request.app.state, "require_token_for_writes", False):
        return current_user

    if current_user is None:
        logger.warning(f"Rejected unauthenticated write: {request.method} {request.url.path}")
        raise AuthenticationError("Invalid or missing access token")
    return current_user
