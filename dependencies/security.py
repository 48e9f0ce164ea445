"""
dependencies/security.py

Role checks at the request boundary. The hosted auth provider issues the JWT;
every request re-verifies its signature, audience and expiry here, and the role
is read from the verified claims only.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

import jwt
from fastapi import Depends, Header, HTTPException

from config.settings import settings

logger = logging.getLogger(__name__)

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]

ROLES = ("admin", "teacher", "student")


@dataclass(frozen=True)
class CurrentUser:
    sub: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict:
    """Signature, audience and a mandatory exp claim are all enforced by PyJWT."""
    return jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[settings.AUTH_JWT_ALGORITHM],
        audience=settings.AUTH_JWT_AUDIENCE,
        options={"require": ["exp", "sub"]},
    )


def get_current_user(authorization: AuthHeader = None) -> CurrentUser:
    if not authorization:
        raise _unauthorized("Missing Authorization header")

    # "Bearer <token>"
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise _unauthorized("Invalid Authorization header format")

    if scheme.lower() != "bearer":
        raise _unauthorized("Invalid auth scheme")

    try:
        claims = decode_token(token.strip())
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("rejected token: %s", e)
        raise _unauthorized("Invalid token")

    role = claims.get("role")
    if role not in ROLES:
        raise HTTPException(status_code=403, detail="Token carries no recognised role")

    return CurrentUser(sub=str(claims["sub"]), role=role)


def require_roles(*roles: str):
    """Dependency factory: 403 unless the verified role is one of `roles`."""
    def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=f"Role '{user.role}' is not allowed here")
        return user
    return _check


# ✅ shortcut used by the routers
require_staff = require_roles("teacher", "admin")
