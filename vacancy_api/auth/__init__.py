"""
Vacancy API - Authentication Module

Optional access-token lookup for write endpoints.

Usage:
    from vacancy_api.auth import require_write_access

    @router.post("", dependencies=[Depends(require_write_access)])
    def create(...): ...

Configuration (environment variables):
    VACANCY_AUTH_REQUIRE_TOKEN_FOR_WRITES=true - Require "Authorization: Bearer <token>"
"""

from .models import User, generate_access_token

from .dependencies import (
    find_user_by_token,
    get_current_user_optional,
    require_write_access,
)

__all__ = [
    "User",
    "generate_access_token",
    "find_user_by_token",
    "get_current_user_optional",
    "require_write_access",
]
