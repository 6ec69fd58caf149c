"""Persistence of users and login sessions behind a small interface the session manager depends on."""

import logging
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from phoenix.models import Role, User, UserSession
from phoenix.services.errors import DuplicateUsernameError

logger = logging.getLogger(__name__)

# Columns an update may touch; id, username and created_at are fixed at creation.
UPDATABLE_USER_FIELDS = frozenset({"password_hash", "role", "is_active", "last_login_at"})


class CredentialStore(Protocol):
    """
    Operations the auth core needs from the database.

    Every read goes to the database (no cached rows are returned) and every write
    is committed before the method returns; failures propagate as exceptions.
    """

    def find_user_by_username(self, username: str) -> User | None: ...

    def find_user_by_id(self, user_id: str) -> User | None: ...

    def create_user(
        self, username: str, password_hash: str, role: Role, created_at: datetime
    ) -> User: ...

    def update_user(self, user: User, **fields: Any) -> User: ...

    def delete_user(self, user: User) -> None: ...

    def list_users(self) -> list[User]: ...

    def create_session(
        self, session_id: str, user_id: str, created_at: datetime, expires_at: datetime
    ) -> UserSession: ...

    def find_session(self, session_id: str) -> UserSession | None: ...

    def revoke_session(self, session_id: str) -> bool: ...

    def revoke_user_sessions(self, user_id: str) -> int: ...

    def replace_password(self, user: User, password_hash: str) -> int: ...


class SqlAlchemyCredentialStore:
    """CredentialStore backed by a request-scoped SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def find_user_by_username(self, username: str) -> User | None:
        return (
            self.db.query(User)
            .filter(User.username == username)
            .populate_existing()
            .first()
        )

    def find_user_by_id(self, user_id: str) -> User | None:
        return self.db.get(User, user_id, populate_existing=True)

    def create_user(
        self, username: str, password_hash: str, role: Role, created_at: datetime
    ) -> User:
        """Insert a user. Raises DuplicateUsernameError if the username is taken."""
        if self.find_user_by_username(username) is not None:
            raise DuplicateUsernameError(username)
        user = User(
            username=username,
            password_hash=password_hash,
            role=role,
            is_active=True,
            created_at=created_at,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same username.
            self.db.rollback()
            raise DuplicateUsernameError(username) from e
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return user

    def update_user(self, user: User, **fields: Any) -> User:
        unknown = set(fields) - UPDATABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {', '.join(sorted(unknown))}")
        for name, value in fields.items():
            setattr(user, name, value)
        self._commit()
        return user

    def delete_user(self, user: User) -> None:
        self.db.delete(user)
        self._commit()

    def list_users(self) -> list[User]:
        """All users, newest first."""
        return (
            self.db.query(User)
            .order_by(User.created_at.desc(), User.username)
            .populate_existing()
            .all()
        )

    def create_session(
        self, session_id: str, user_id: str, created_at: datetime, expires_at: datetime
    ) -> UserSession:
        record = UserSession(
            id=session_id,
            user_id=user_id,
            created_at=created_at,
            expires_at=expires_at,
            revoked=False,
        )
        self.db.add(record)
        self._commit()
        return record

    def find_session(self, session_id: str) -> UserSession | None:
        return self.db.get(UserSession, session_id, populate_existing=True)

    def revoke_session(self, session_id: str) -> bool:
        """Mark a session revoked. Returns True if this call changed it."""
        updated = (
            self.db.query(UserSession)
            .filter(UserSession.id == session_id, UserSession.revoked.is_(False))
            .update({UserSession.revoked: True}, synchronize_session=False)
        )
        self._commit()
        return updated > 0

    def revoke_user_sessions(self, user_id: str) -> int:
        updated = (
            self.db.query(UserSession)
            .filter(UserSession.user_id == user_id, UserSession.revoked.is_(False))
            .update({UserSession.revoked: True}, synchronize_session=False)
        )
        self._commit()
        return updated

    def replace_password(self, user: User, password_hash: str) -> int:
        """Store a new hash and revoke all of the user's sessions in one transaction."""
        user.password_hash = password_hash
        revoked = (
            self.db.query(UserSession)
            .filter(UserSession.user_id == user.id, UserSession.revoked.is_(False))
            .update({UserSession.revoked: True}, synchronize_session=False)
        )
        self._commit()
        logger.info("Password replaced for user_id=%s; sessions_revoked=%s", user.id, revoked)
        return revoked
