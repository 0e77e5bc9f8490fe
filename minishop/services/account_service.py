"""
Account service: registration and login against the local user store.

Passwords are stored as bcrypt hashes.  Login failures never reveal
whether the username or the password was wrong.
"""
import logging
import re
from datetime import datetime, timezone

from minishop.exceptions import AuthenticationError, ConflictError, ValidationError
from minishop.models import User
from minishop.repositories import UserRepository
from minishop.schemas import AccountResponse, LoginRequest, RegisterRequest, TokenResponse
from minishop.security import TokenIssuer, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

_PASSWORD_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"[0-9]"), "Password must contain at least one digit."),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter."),
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter."),
    (re.compile(r"[^a-zA-Z0-9]"), "Password must contain at least one non-alphanumeric character."),
]


def check_password_policy(password: str) -> list[str]:
    """Return every policy violation for *password* (empty list when valid)."""
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    errors.extend(message for pattern, message in _PASSWORD_RULES if not pattern.search(password))
    return errors


async def register(users: UserRepository, data: RegisterRequest) -> AccountResponse:
    """
    Create a new account.

    Raises ``ValidationError`` when the password breaks the policy and
    ``ConflictError`` when the username or email is already taken.
    """
    violations = check_password_policy(data.password)
    if violations:
        raise ValidationError(violations[0], details={"errors": violations})

    if await users.get_by_username(data.username) is not None:
        raise ConflictError(f"Username '{data.username}' is already taken")
    if await users.get_by_email(data.email) is not None:
        raise ConflictError(f"Email '{data.email}' is already registered")

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        created_at=datetime.now(timezone.utc),
    )
    await users.add(user)
    await users.commit()
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return AccountResponse(id=user.id, username=user.username, email=user.email, roles=[])


async def login(users: UserRepository, issuer: TokenIssuer, data: LoginRequest) -> TokenResponse:
    """Verify credentials and return a freshly signed token."""
    user = await users.get_by_username(data.username)
    if user is None or not data.password or not verify_password(data.password, user.password_hash):
        logger.warning("Failed login for username %r", data.username)
        raise AuthenticationError("Invalid username or password")

    now = datetime.now(timezone.utc)
    token = await issuer.issue(user, now=now)
    return TokenResponse(
        username=user.username,
        email=user.email,
        token=token,
        expires_at=issuer.expires_at(now),
    )
