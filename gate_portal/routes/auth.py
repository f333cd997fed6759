"""
gate_portal/routes/auth.py
Authenticated identity for requests

Tokens are issued by the login service, not here. This module only
verifies the bearer JWT and trusts what it says:
- sub: user id
- role: "teacher" | "student"
- department: the student's department (optional)
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt

from gate_portal.config.settings import Settings
from gate_portal.errors import ErrorCode, ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)

ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
VALID_ROLES = (ROLE_TEACHER, ROLE_STUDENT)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str
    department: Optional[str] = None

    @property
    def is_teacher(self) -> bool:
        return self.role == ROLE_TEACHER


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def decode_token(token: str, settings: Settings) -> CurrentUser:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise UnauthorizedError("Token has expired", code=ErrorCode.AUTH_EXPIRED)
    except JWTError:
        raise UnauthorizedError("Invalid or expired token", code=ErrorCode.AUTH_INVALID)

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in VALID_ROLES:
        raise UnauthorizedError("Invalid token payload", code=ErrorCode.AUTH_INVALID)

    return CurrentUser(id=str(user_id), role=role, department=payload.get("department"))


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Get current authenticated user from JWT token."""
    if not token:
        raise UnauthorizedError()
    return decode_token(token, settings)


def require_role(*roles: str) -> Callable:
    """Dependency that admits only the given roles."""

    async def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            logger.warning(f"User {current_user.id} ({current_user.role}) denied; requires {roles}")
            raise ForbiddenError(f"This action requires role: {', '.join(roles)}")
        return current_user

    return checker
