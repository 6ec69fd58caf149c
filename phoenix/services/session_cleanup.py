"""Session cleanup: delete expired and revoked session rows after a grace period."""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import or_
from sqlalchemy.orm import Session

from phoenix.core.clock import as_utc, utcnow
from phoenix.models import UserSession

if TYPE_CHECKING:
    from phoenix.core.config import Settings

logger = logging.getLogger(__name__)


def run_session_cleanup(
    session: Session,
    settings: "Settings",
    now: datetime | None = None,
) -> int:
    """
    Delete sessions that expired, or were revoked, more than SESSION_CLEANUP_GRACE_HOURS ago.

    Revoked rows are aged by created_at. Rows that are still ACTIVE are never
    touched. Returns the number deleted. Idempotent: safe to run repeatedly.
    """
    if not settings.SESSION_CLEANUP_ENABLED:
        logger.info("Session cleanup is disabled (SESSION_CLEANUP_ENABLED=false); skipping.")
        return 0

    cutoff = as_utc(now or utcnow()) - timedelta(hours=settings.SESSION_CLEANUP_GRACE_HOURS)
    deleted_count = (
        session.query(UserSession)
        .filter(
            or_(
                UserSession.expires_at < cutoff,
                UserSession.revoked.is_(True) & (UserSession.created_at < cutoff),
            )
        )
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Session cleanup run: cutoff=%s, sessions_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
