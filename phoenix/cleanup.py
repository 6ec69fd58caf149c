"""
CLI entrypoint for the session cleanup job. Run from cron, e.g.:

  python -m phoenix.cleanup

Or daily: 0 3 * * * cd /path/to/phoenix && .venv/bin/python -m phoenix.cleanup
"""

import logging
import sys

from phoenix.core.config import get_settings
from phoenix.core.database import SessionLocal
from phoenix.services.session_cleanup import run_session_cleanup

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete expired and revoked session rows older than the grace period."""
    settings = get_settings()
    db = SessionLocal()
    try:
        deleted = run_session_cleanup(db, settings)
        logger.info("Session cleanup completed: sessions_deleted=%s", deleted)
        return 0
    except Exception as e:
        logger.exception("Session cleanup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
