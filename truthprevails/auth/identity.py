# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Bearer token issue and verification."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import jwt

from truthprevails.shared.config import Settings
from truthprevails.shared.errors import AuthenticationError, Unavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Claims carried by a verified token."""

    uid: str
    email: str
    name: Optional[str] = None
    provider: str = "email"


class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256", expiry_hours: int = 24, issuer: Optional[str] = None):
        self.secret = secret
        self.algorithm = algorithm
        self.expiry_hours = expiry_hours
        self.issuer = issuer

    @property
    def expires_in(self) -> int:
        return self.expiry_hours * 3600

    def issue(self, uid: str, email: str, name: Optional[str] = None, provider: str = "email") -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": uid,
            "email": email,
            "name": name,
            "provider": provider,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(hours=self.expiry_hours)).timestamp()),
        }
        if self.issuer:
            payload["iss"] = self.issuer
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Identity:
        """
        Verify a token and return its identity.

        Raises:
            AuthenticationError: If the token is malformed, expired or signed
                with another key
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise AuthenticationError("Invalid token") from e

        email = payload.get("email")
        if not email:
            raise AuthenticationError("Invalid token", details="Token carries no email claim")

        return Identity(
            uid=str(payload["sub"]),
            email=str(email).lower(),
            name=payload.get("name"),
            provider=payload.get("provider") or "email",
        )


def build_token_service(settings: Settings) -> Union[TokenService, Unavailable]:
    if not settings.jwt_secret:
        logger.warning("Authentication disabled: JWT_SECRET is not set")
        return Unavailable("Authentication", "Missing configuration: JWT_SECRET")
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expiry_hours=settings.jwt_expiry_hours,
        issuer=settings.jwt_issuer,
    )
