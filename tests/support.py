"""Shared helpers: in-memory databases, test settings and a controllable clock."""

from datetime import datetime, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from phoenix.core.clock import utcnow
from phoenix.core.config import Settings
from phoenix.models import Base


def make_settings(**overrides: object) -> Settings:
    """Settings for tests: SQLite, fixed secret, cheapest bcrypt cost."""
    values: dict[str, object] = {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite://",
        "AUTH_SECRET": "unit-test-signing-secret-0123456789abcdef-0123456789abcdef-012345",
        "BCRYPT_ROUNDS": 4,
        "SESSION_TTL_DAYS": 7,
    }
    values.update(overrides)
    return Settings(**values)


def make_session_factory() -> sessionmaker[Session]:
    """Fresh in-memory database with all tables; every session shares one connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FrozenClock:
    """Callable clock for SessionManager that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)
