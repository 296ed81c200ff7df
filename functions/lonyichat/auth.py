"""
Bearer-token authentication.

Tokens are opaque here: a ``TokenVerifier`` (Firebase Auth in production)
decodes them and the resulting uid is trusted as the acting user for the
rest of the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from firebase_admin import auth

from lonyichat.errors import Unauthorized

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass
class AuthenticatedUser:
    uid: str
    email: Optional[str] = None
    claims: dict = field(default_factory=dict)


class TokenVerifier(Protocol):
    def verify(self, token: str) -> AuthenticatedUser:
        ...


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(self, app=None, check_revoked: bool = False):
        self.app = app
        self.check_revoked = check_revoked

    def verify(self, token: str) -> AuthenticatedUser:
        try:
            decoded = auth.verify_id_token(
                token, app=self.app, check_revoked=self.check_revoked
            )
        except auth.ExpiredIdTokenError as exc:
            raise Unauthorized("Token expired.") from exc
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as exc:
            raise Unauthorized("Invalid token.") from exc
        except auth.CertificateFetchError as exc:
            logger.error("Could not fetch token signing certificates: %s", exc)
            raise Unauthorized("Unable to verify token.") from exc
        return AuthenticatedUser(
            uid=decoded["uid"], email=decoded.get("email"), claims=decoded
        )


class StaticTokenVerifier:
    """
    Verifier for local development and tests.

    With a ``tokens`` mapping only those tokens are accepted; without one any
    non-empty token is accepted and used as the uid.
    """

    def __init__(self, tokens: Optional[dict[str, str]] = None):
        self.tokens = tokens

    def verify(self, token: str) -> AuthenticatedUser:
        if self.tokens is None:
            return AuthenticatedUser(uid=token)
        uid = self.tokens.get(token)
        if uid is None:
            raise Unauthorized("Invalid token.")
        return AuthenticatedUser(uid=uid)


def parse_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthorized("Missing Authorization header.")
    if not authorization.lower().startswith(BEARER_PREFIX):
        raise Unauthorized("Authorization header must use the Bearer scheme.")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("Missing bearer token.")
    return token
