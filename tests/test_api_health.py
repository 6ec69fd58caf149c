"""Health endpoint reports the environment and whether the database answers."""

import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from phoenix.core.config import get_settings
from phoenix.core.database import get_db
from phoenix.main import app
from tests.support import make_session_factory, make_settings


class TestHealth(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def test_connected(self) -> None:
        factory = make_session_factory()

        def override_get_db():
            db = factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        response = self.client.get(f"{self.settings.API_V1_PREFIX}/health/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"status": "ok", "environment": "dev", "database": "connected"}
        )

    def test_disconnected(self) -> None:
        db = MagicMock()
        db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
        app.dependency_overrides[get_db] = lambda: db
        response = self.client.get(f"{self.settings.API_V1_PREFIX}/health/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["database"], "disconnected")


if __name__ == "__main__":
    unittest.main()
