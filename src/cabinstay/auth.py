"""Verified identity claims and the admin role check.

Credentials are issued elsewhere. This module only turns a bearer token into
an `Identity` using the `AuthConfig` handed over at process start, and the
engine's admin-only operations call `require_admin` on that identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt

from cabinstay.config import AuthConfig
from cabinstay.errors import AuthorizationError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    email: str
    role: str = "user"
    user_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class TokenVerifier:
    def __init__(self, config: AuthConfig) -> None:
        self._config = config

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self._config.secret, algorithms=[self._config.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthorizationError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthorizationError("Invalid token")

        email = payload.get("email")
        if not email:
            raise AuthorizationError("Invalid token")
        return Identity(
            email=str(email).lower(),
            role=str(payload.get("role") or "user"),
            user_id=payload.get("userId"),
        )


def require_admin(identity: Identity | None) -> Identity:
    if identity is None:
        raise AuthorizationError()
    if not identity.is_admin:
        logger.warning("Admin operation refused for %s", identity.email)
        raise AuthorizationError("Admin access required", forbidden=True)
    return identity
