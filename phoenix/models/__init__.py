"""SQLAlchemy ORM models."""

from phoenix.models.base import Base
from phoenix.models.session import UserSession
from phoenix.models.user import Role, User

__all__ = ["Base", "Role", "User", "UserSession"]
