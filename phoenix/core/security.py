"""Password hashing, session token signing/verification, and credential format rules."""

import hashlib
import re
from dataclasses import dataclass
from datetime import UTC, datetime

import bcrypt
import jwt
from jwt.utils import base64url_decode, base64url_encode

from phoenix.core.clock import as_utc
from phoenix.core.config import Settings, get_settings

# bcrypt only reads the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72

# Username/password rules enforced by the route layer before calling the session manager.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 20
USERNAME_PATTERN = re.compile(r"^[a-z0-9_]+$")
PASSWORD_MIN_LEN = 6
STRICT_PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    session_id: str
    expires_at: datetime


def _password_bytes(plain_password: str) -> bytes:
    encoded = plain_password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        # Pre-hash long passwords so bytes past the limit still count.
        return hashlib.sha256(encoded).hexdigest().encode("ascii")
    return encoded


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Output embeds its own salt and cost."""
    if rounds is None:
        rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(
        _password_bytes(plain_password), bcrypt.gensalt(rounds=rounds)
    ).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash. Malformed hashes verify as False."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def issue_token(
    session_id: str,
    expires_at: datetime,
    settings: Settings | None = None,
) -> str:
    """
    Sign a token binding a session id to the session's expiry.

    The token carries nothing else: role and username are always read from the
    database when the token is resolved.
    """
    settings = settings or get_settings()
    payload = {
        "sid": session_id,
        "exp": int(as_utc(expires_at).timestamp()),
    }
    return jwt.encode(
        payload,
        settings.auth_secret(),
        algorithm=settings.JWT_ALGORITHM,
    )


def _has_canonical_signature(token: str) -> bool:
    """Reject signature segments that only decode after base64 normalisation."""
    parts = token.split(".")
    if len(parts) != 3 or not parts[2]:
        return False
    try:
        return base64url_encode(base64url_decode(parts[2])).decode("ascii") == parts[2]
    except ValueError:
        return False


def verify_token(token: str | None, settings: Settings | None = None) -> TokenClaims | None:
    """
    Return the claims of a valid, unexpired token, else None.

    Missing, malformed, tampered, wrongly signed and expired tokens all give None
    so callers cannot tell the causes apart.
    """
    if not token:
        return None
    if not _has_canonical_signature(token):
        return None
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sid", "exp"]},
        )
    except jwt.PyJWTError:
        return None
    session_id = payload.get("sid")
    exp = payload.get("exp")
    if not isinstance(session_id, str) or not session_id or not isinstance(exp, int):
        return None
    return TokenClaims(session_id=session_id, expires_at=datetime.fromtimestamp(exp, UTC))


def username_error(username: str) -> str | None:
    """Return a user-facing message if the username breaks the format rules, else None."""
    if len(username) < USERNAME_MIN_LEN:
        return f"Username must be at least {USERNAME_MIN_LEN} characters"
    if len(username) > USERNAME_MAX_LEN:
        return f"Username must be {USERNAME_MAX_LEN} characters or less"
    if not USERNAME_PATTERN.match(username):
        return "Username can only contain lowercase letters, numbers, and underscores"
    return None


def password_error(password: str, strict: bool = False) -> str | None:
    """
    Return a user-facing message if the password breaks the policy, else None.

    Self-registration only needs a minimum length. Accounts created by an admin
    (and password changes) use the strict policy: 8-128 characters with at least
    one lowercase letter, one uppercase letter and one digit.
    """
    if len(password) > PASSWORD_MAX_LEN:
        return f"Password must be {PASSWORD_MAX_LEN} characters or less"
    if not strict:
        if len(password) < PASSWORD_MIN_LEN:
            return f"Password must be at least {PASSWORD_MIN_LEN} characters"
        return None
    if len(password) < STRICT_PASSWORD_MIN_LEN:
        return f"Password must be at least {STRICT_PASSWORD_MIN_LEN} characters"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain at least one number"
    return None
