"""ORM model for login sessions backing the auth cookie."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func
from sqlalchemy.orm import relationship

from phoenix.models.base import Base


class UserSession(Base):
    """
    One row per successful login.

    revoked only ever goes from False to True; expired and revoked rows never
    authenticate again and are removed later by the cleanup job.
    """

    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="sessions")

    def __repr__(self) -> str:
        return f"<UserSession(id={self.id[:8]}..., user_id={self.user_id}, revoked={self.revoked})>"
