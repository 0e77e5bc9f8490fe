"""
Session tokens and password hashing.

Tokens are HS256-signed JWTs carrying the user id, username, email, a
unique ``jti`` and one ``roles`` entry per role.  Expiry is the only way
a token stops being valid; there is no refresh or revocation.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

import bcrypt
import jwt

from minishop.config import Settings
from minishop.exceptions import AuthenticationError, ConfigurationError
from minishop.models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class JwtConfig:
    secret_key: str
    issuer: str
    audience: str
    duration_days: int = 7

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtConfig":
        """
        Build the signing configuration from *settings*.

        Raises ``ConfigurationError`` naming every missing value; the
        application calls this during startup so a bad deployment fails
        before serving a request.
        """
        required = {
            "JWT_SECRET_KEY": settings.JWT_SECRET_KEY,
            "JWT_ISSUER": settings.JWT_ISSUER,
            "JWT_AUDIENCE": settings.JWT_AUDIENCE,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing required JWT settings: {', '.join(missing)}",
                details={"missing": missing},
            )
        if settings.JWT_DURATION_DAYS < 1:
            raise ConfigurationError("JWT_DURATION_DAYS must be at least 1")
        return cls(
            secret_key=settings.JWT_SECRET_KEY,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            duration_days=settings.JWT_DURATION_DAYS,
        )


class RoleLookup(Protocol):
    async def get_roles(self, user_id: int) -> list[str]: ...


@dataclass(frozen=True)
class Principal:
    """Identity recovered from a verified token."""

    user_id: int
    username: str
    email: str
    roles: list[str] = field(default_factory=list)
    token_id: str | None = None


class TokenIssuer:
    def __init__(self, config: JwtConfig, roles: RoleLookup) -> None:
        self.config = config
        self.roles = roles

    async def issue(self, user: User, now: datetime | None = None) -> str:
        """Return a signed token for *user*, embedding their current roles."""
        now = now or datetime.now(timezone.utc)
        role_names = await self.roles.get_roles(user.id)
        payload = {
            "sub": str(user.id),
            "name": user.username,
            "email": user.email,
            "jti": str(uuid.uuid4()),
            "roles": role_names,
            "iss": self.config.issuer,
            "aud": self.config.audience,
            "iat": now,
            "exp": self.expires_at(now),
        }
        logger.info("Issued token for user %s with roles %s", user.username, role_names)
        return jwt.encode(payload, self.config.secret_key, algorithm=ALGORITHM)

    def expires_at(self, now: datetime) -> datetime:
        return now + timedelta(days=self.config.duration_days)

    def decode(self, token: str) -> Principal:
        """
        Verify *token* and return its principal.

        Signature, issuer, audience and expiry are all checked; any
        failure raises ``AuthenticationError``.
        """
        try:
            claims = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[ALGORITHM],
                issuer=self.config.issuer,
                audience=self.config.audience,
                options={"require": ["exp", "sub", "jti"]},
            )
        except jwt.PyJWTError as exc:
            logger.warning("Rejected bearer token: %s", exc)
            raise AuthenticationError("Invalid or expired token") from exc
        return Principal(
            user_id=int(claims["sub"]),
            username=claims.get("name", ""),
            email=claims.get("email", ""),
            roles=list(claims.get("roles", [])),
            token_id=claims["jti"],
        )


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
