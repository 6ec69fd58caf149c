"""ORM model for application users (auth and RBAC)."""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String, func
from sqlalchemy.orm import relationship

from phoenix.models.base import Base


class Role(str, enum.Enum):
    """Closed set of account roles. Stored by name."""

    ADMIN = "ADMIN"
    MEDIA_MANAGER = "MEDIA_MANAGER"
    USER = "USER"


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    User account for cookie-session authentication and role-based access control.

    Usernames are stored already normalised (lowercase); lookups are exact.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)
    username = Column(String(20), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, length=32),
        nullable=False,
        default=Role.USER,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )

    sessions = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
