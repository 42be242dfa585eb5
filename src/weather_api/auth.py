"""
JWT bearer-token issuing and validation.

Tokens are HS256-signed with JWT_SECRET and carry the username as ``sub``
plus ``iat``/``exp``. A single admin account is configured through
ADMIN_USERNAME / ADMIN_PASSWORD.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import jwt
from pydantic import Field

from weather_api.config import Settings
from weather_api.errors import AuthenticationError, WeatherServiceError
from weather_api.weather.models import CamelModel

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class LoginRequest(CamelModel):
    """Login credentials."""
    username: str = Field(..., min_length=1, description="Account name")
    password: str = Field(..., min_length=1, description="Account password")


class LoginResponse(CamelModel):
    """Issued access token."""
    token: str
    token_type: str = "Bearer"
    expires_at: str = Field(..., description="Expiry as RFC 3339 UTC timestamp")


class AuthService:
    """Issues and validates access tokens for the configured admin account."""

    def __init__(self, settings: Settings,
                 clock: Optional[Callable[[], datetime]] = None):
        self.secret = settings.jwt_secret
        self.token_ttl = timedelta(hours=settings.jwt_ttl_hours)
        self.admin_username = settings.admin_username
        self.admin_password = settings.admin_password
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _require_secret(self) -> str:
        if not self.secret:
            raise WeatherServiceError("JWT_SECRET not set")
        return self.secret

    def validate_credentials(self, username: str, password: str) -> bool:
        if not self.admin_username or not self.admin_password:
            return False
        user_ok = hmac.compare_digest(username.encode(), self.admin_username.encode())
        password_ok = hmac.compare_digest(password.encode(), self.admin_password.encode())
        return user_ok and password_ok

    def generate_token(self, username: str, ttl: Optional[timedelta] = None) -> Tuple[str, datetime]:
        """Sign a token for ``username``. Returns the token and its expiry."""
        secret = self._require_secret()
        now = self._clock()
        expires_at = now + (ttl or self.token_ttl)
        claims = {"sub": username, "iat": now, "exp": expires_at}
        return jwt.encode(claims, secret, algorithm=ALGORITHM), expires_at

    def validate_token(self, token: str) -> str:
        """Return the token subject.

        Raises:
            AuthenticationError: If the token is malformed, badly signed or expired
        """
        if not self.secret:
            raise AuthenticationError("JWT_SECRET not set")
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise AuthenticationError("invalid or expired token") from e
        return claims["sub"]

    def login(self, request: LoginRequest) -> LoginResponse:
        if not self.validate_credentials(request.username, request.password):
            raise AuthenticationError("invalid credentials")

        token, expires_at = self.generate_token(request.username)
        logger.info(f"Issued token for {request.username}")
        return LoginResponse(
            token=token,
            token_type="Bearer",
            expires_at=expires_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
