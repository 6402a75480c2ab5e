# app/core/identity.py
"""
Caller identity resolution.

Every mentorship and messaging operation receives an explicit
CallerIdentity instead of reading request-scoped state. verify_credential()
is the single place a bearer credential turns into an identity; it always
reloads the user row, so a deleted user or a changed role takes effect on
the next request.
"""
from dataclasses import dataclass

import jwt

from app.core.errors import AuthError
from app.core.security import decode_access_token
from app.models.user import User


@dataclass(frozen=True)
class CallerIdentity:
    user_id: int
    username: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "CallerIdentity":
        return cls(user_id=user.id, username=user.username, role=user.role)


async def verify_credential(token: str | None) -> CallerIdentity:
    if not token:
        raise AuthError("Authentication required", code="AUTH_REQUIRED")
    try:
        payload = decode_access_token(token)
        user_id = int(payload.get("sub"))
    except (jwt.PyJWTError, TypeError, ValueError):
        raise AuthError("Invalid or expired token", code="AUTH_INVALID_TOKEN")

    user = await User.get_or_none(id=user_id)
    if not user:
        raise AuthError("User not found", code="AUTH_USER_NOT_FOUND")
    return CallerIdentity.from_user(user)
