"""
Session manager: login, logout and token resolution over database-backed sessions.

A session is ACTIVE while created_at <= now < expires_at and revoked is False.
EXPIRED and REVOKED are terminal; nothing here ever un-revokes a row or extends
expires_at. Every resolve re-reads the session and user rows, so a logout, a
role change or a deactivation is visible on the very next request.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache

from phoenix.core.clock import as_utc, utcnow
from phoenix.core.config import Settings, get_settings
from phoenix.core.security import hash_password, issue_token, verify_password, verify_token
from phoenix.models import Role
from phoenix.schemas.auth import AuthenticatedUser
from phoenix.services.credential_store import CredentialStore
from phoenix.services.errors import DuplicateUsernameError, ResolveFailure

logger = logging.getLogger(__name__)

# 32 random bytes -> 43 url-safe characters.
SESSION_ID_BYTES = 32


@dataclass(frozen=True)
class LoginResult:
    """Successful login: the user projection plus the token to set as the auth cookie."""

    user: AuthenticatedUser
    token: str
    session_id: str
    expires_at: datetime


def new_session_id() -> str:
    """Fresh unguessable session id; never derived from user input."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    # Checked against when the username is unknown so both failures cost one bcrypt verify.
    return hash_password(secrets.token_hex(16), rounds=rounds)


def _short(session_id: str) -> str:
    return session_id[:8]


def _project(user) -> AuthenticatedUser:
    return AuthenticatedUser(id=user.id, username=user.username, role=user.role)


class SessionManager:
    """Orchestrates credentials, session rows and tokens. One instance per request."""

    def __init__(
        self,
        store: CredentialStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(days=self.settings.SESSION_TTL_DAYS)

    def _now(self) -> datetime:
        return as_utc(self.clock())

    def login(self, username: str, password: str) -> LoginResult | None:
        """
        Verify credentials, open a new session and issue its token.

        Returns None for an unknown username, an inactive account or a wrong
        password alike. The username is matched exactly as given; it is not
        lowercased here.
        """
        user = self.store.find_user_by_username(username)
        if user is None:
            verify_password(password, _dummy_hash(self.settings.BCRYPT_ROUNDS))
            logger.info("Login failed: unknown username")
            return None

        password_ok = verify_password(password, user.password_hash)
        if not user.is_active:
            logger.info("Login failed: account inactive", extra={"user_id": user.id})
            return None
        if not password_ok:
            logger.info("Login failed: wrong password", extra={"user_id": user.id})
            return None

        now = self._now()
        expires_at = now + self.session_ttl
        session_id = new_session_id()
        self.store.create_session(session_id, user.id, now, expires_at)
        self.store.update_user(user, last_login_at=now)
        token = issue_token(session_id, expires_at, self.settings)

        logger.info(
            "Login succeeded",
            extra={"user_id": user.id, "session": _short(session_id)},
        )
        return LoginResult(
            user=_project(user),
            token=token,
            session_id=session_id,
            expires_at=expires_at,
        )

    def resolve_with_reason(
        self, token: str | None
    ) -> tuple[AuthenticatedUser | None, ResolveFailure | None]:
        """Resolve a token to its user, or return None with the reason it failed."""
        claims = verify_token(token, self.settings)
        if claims is None:
            return None, ResolveFailure.TOKEN_INVALID

        # The session row is authoritative for expiry, not the token's exp claim.
        record = self.store.find_session(claims.session_id)
        if record is None:
            return None, ResolveFailure.SESSION_NOT_FOUND
        if record.revoked:
            return None, ResolveFailure.SESSION_REVOKED
        if self._now() >= as_utc(record.expires_at):
            return None, ResolveFailure.SESSION_EXPIRED

        user = self.store.find_user_by_id(record.user_id)
        if user is None or not user.is_active:
            return None, ResolveFailure.USER_INACTIVE
        return _project(user), None

    def resolve(self, token: str | None) -> AuthenticatedUser | None:
        """Return the authenticated user for a token, or None. Never raises for bad tokens."""
        user, reason = self.resolve_with_reason(token)
        if reason is not None and reason is not ResolveFailure.TOKEN_INVALID:
            logger.debug("Token rejected: %s", reason.value)
        return user

    def session_id_from_token(self, token: str | None) -> str | None:
        claims = verify_token(token, self.settings)
        return claims.session_id if claims else None

    def logout(self, session_id: str) -> None:
        """
        Revoke a session. Revoking an unknown or already revoked session is a no-op.

        Database errors propagate so the caller knows the revoke was not applied.
        """
        changed = self.store.revoke_session(session_id)
        logger.info(
            "Logout",
            extra={"session": _short(session_id), "revoked": changed},
        )

    def revoke_all_sessions(self, user_id: str) -> int:
        count = self.store.revoke_user_sessions(user_id)
        logger.info("Revoked all sessions", extra={"user_id": user_id, "count": count})
        return count

    def create_user(
        self, username: str, password: str, role: Role = Role.USER
    ) -> AuthenticatedUser | None:
        """
        Create an active account from pre-validated input.

        Returns None when the username is already taken.
        """
        if self.store.find_user_by_username(username) is not None:
            logger.info("User creation rejected: duplicate username")
            return None
        password_hash = hash_password(password, rounds=self.settings.BCRYPT_ROUNDS)
        try:
            user = self.store.create_user(username, password_hash, role, self._now())
        except DuplicateUsernameError:
            logger.info("User creation rejected: duplicate username")
            return None
        logger.info("User created", extra={"user_id": user.id, "role": role.value})
        return _project(user)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> bool:
        """
        Replace a user's password after checking the current one.

        All of the user's sessions are revoked in the same transaction, including
        the one making the request.
        """
        user = self.store.find_user_by_id(user_id)
        if user is None or not verify_password(current_password, user.password_hash):
            logger.info("Password change rejected", extra={"user_id": user_id})
            return False
        new_hash = hash_password(new_password, rounds=self.settings.BCRYPT_ROUNDS)
        self.store.replace_password(user, new_hash)
        return True
