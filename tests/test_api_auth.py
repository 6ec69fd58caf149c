"""Route tests for /api/v1/auth and /api/v1/users using TestClient and an in-memory database."""

import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from phoenix.api.v1.auth import get_session_manager
from phoenix.core.clock import utcnow
from phoenix.core.config import get_settings
from phoenix.core.database import get_db
from phoenix.core.security import issue_token
from phoenix.main import app
from phoenix.models import Role, User
from phoenix.services.credential_store import SqlAlchemyCredentialStore
from phoenix.services.sessions import SessionManager
from tests.support import make_session_factory, make_settings

COOKIE = "auth-token"


class ApiTestCase(unittest.TestCase):
    """App wired to a fresh SQLite database; alice (USER) and bob (ADMIN) exist."""

    def setUp(self) -> None:
        self.factory = make_session_factory()
        self.settings = make_settings()

        def override_get_db():
            db = self.factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.addCleanup(app.dependency_overrides.clear)

        self.db = self.factory()
        self.addCleanup(self.db.close)
        self.manager = SessionManager(SqlAlchemyCredentialStore(self.db), self.settings)
        self.alice = self.manager.create_user("alice", "secret1")
        self.bob = self.manager.create_user("bob", "Secret123", Role.ADMIN)

        self.client = TestClient(app)
        self.prefix = self.settings.API_V1_PREFIX

    def url(self, path: str) -> str:
        return f"{self.prefix}{path}"

    def login(self, username: str, password: str):
        return self.client.post(self.url("/auth/login"), json={"username": username, "password": password})

    def login_as(self, username: str, password: str) -> str:
        response = self.login(username, password)
        self.assertEqual(response.status_code, 200, response.text)
        return response.cookies[COOKIE]

    def use_token(self, token: str) -> None:
        self.client.cookies.clear()
        self.client.cookies.set(COOKIE, token)


class TestLoginLogout(ApiTestCase):
    def test_login_sets_http_only_cookie(self) -> None:
        response = self.login("alice", "secret1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["username"], "alice")
        self.assertEqual(response.json()["user"]["role"], "USER")
        self.assertNotIn("password_hash", response.json()["user"])
        set_cookie = response.headers["set-cookie"]
        self.assertIn(f"{COOKIE}=", set_cookie)
        self.assertIn("HttpOnly", set_cookie)
        self.assertIn("Path=/", set_cookie)
        self.assertIn("samesite=lax", set_cookie.lower())

    def test_bad_credentials_get_identical_401(self) -> None:
        wrong = self.login("alice", "wrongpass")
        ghost = self.login("ghost", "anything")
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(ghost.status_code, 401)
        self.assertEqual(wrong.json(), ghost.json())
        self.assertNotIn("set-cookie", wrong.headers)

    def test_me_logout_and_replay(self) -> None:
        token = self.login_as("alice", "secret1")

        me = self.client.get(self.url("/auth/me"))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["user"]["id"], self.alice.id)

        out = self.client.post(self.url("/auth/logout"))
        self.assertEqual(out.status_code, 200)
        self.assertEqual(out.json()["success"], True)
        self.assertIsNone(self.client.cookies.get(COOKIE))

        self.use_token(token)
        replay = self.client.get(self.url("/auth/me"))
        self.assertEqual(replay.status_code, 401)
        self.assertEqual(replay.json()["detail"], "Session expired")
        self.assertIn(f'{COOKIE}=""', replay.headers["set-cookie"])

    def test_me_without_cookie(self) -> None:
        response = self.client.get(self.url("/auth/me"))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Not authenticated")

    def test_me_with_tampered_cookie(self) -> None:
        token = self.login_as("alice", "secret1")
        self.use_token(token[:-3] + "xyz")
        response = self.client.get(self.url("/auth/me"))
        self.assertEqual(response.status_code, 401)

    def test_logout_without_cookie_succeeds(self) -> None:
        response = self.client.post(self.url("/auth/logout"))
        self.assertEqual(response.status_code, 200)

    def test_logout_store_failure_returns_503_and_clears_cookie(self) -> None:
        store = MagicMock()
        store.revoke_session.side_effect = OperationalError("UPDATE sessions", {}, Exception("down"))
        app.dependency_overrides[get_session_manager] = lambda: SessionManager(store, self.settings)
        token = issue_token("some-session", utcnow() + timedelta(days=1), self.settings)
        self.use_token(token)

        response = self.client.post(self.url("/auth/logout"))

        self.assertEqual(response.status_code, 503)
        self.assertIn(f'{COOKIE}=""', response.headers["set-cookie"])
        store.revoke_session.assert_called_once_with("some-session")


class TestRegister(ApiTestCase):
    def test_register_creates_user_role(self) -> None:
        response = self.client.post(
            self.url("/auth/register"), json={"username": "carol", "password": "secret1"}
        )
        self.assertEqual(response.status_code, 200, response.text)
        row = self.db.query(User).filter_by(username="carol").one()
        self.assertEqual(row.role, Role.USER)
        self.assertEqual(self.login("carol", "secret1").status_code, 200)

    def test_duplicate_username(self) -> None:
        response = self.client.post(
            self.url("/auth/register"), json={"username": "alice", "password": "secret1"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Username already exists")

    def test_format_rules(self) -> None:
        for body in (
            {"username": "Carol", "password": "secret1"},
            {"username": "ca", "password": "secret1"},
            {"username": "carol", "password": "short"},
        ):
            with self.subTest(body=body):
                response = self.client.post(self.url("/auth/register"), json=body)
                self.assertEqual(response.status_code, 400)


class TestChangePassword(ApiTestCase):
    def test_change_password_ends_session(self) -> None:
        token = self.login_as("alice", "secret1")
        response = self.client.post(
            self.url("/auth/password"),
            json={"current_password": "secret1", "new_password": "NewSecret1"},
        )
        self.assertEqual(response.status_code, 200, response.text)

        self.use_token(token)
        self.assertEqual(self.client.get(self.url("/auth/me")).status_code, 401)
        self.assertEqual(self.login("alice", "NewSecret1").status_code, 200)

    def test_wrong_current_password(self) -> None:
        self.login_as("alice", "secret1")
        response = self.client.post(
            self.url("/auth/password"),
            json={"current_password": "nope", "new_password": "NewSecret1"},
        )
        self.assertEqual(response.status_code, 400)

    def test_requires_login(self) -> None:
        response = self.client.post(
            self.url("/auth/password"),
            json={"current_password": "secret1", "new_password": "NewSecret1"},
        )
        self.assertEqual(response.status_code, 401)


class TestCapabilities(ApiTestCase):
    def test_anonymous_has_none(self) -> None:
        response = self.client.get(self.url("/auth/capabilities"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"authenticated": False, "role": None, "capabilities": []}
        )

    def test_user_gets_view_capabilities(self) -> None:
        self.login_as("alice", "secret1")
        body = self.client.get(self.url("/auth/capabilities")).json()
        self.assertTrue(body["authenticated"])
        self.assertEqual(body["role"], "USER")
        self.assertIn("view_players", body["capabilities"])
        self.assertNotIn("manage_users", body["capabilities"])

    def test_admin_gets_all(self) -> None:
        self.login_as("bob", "Secret123")
        body = self.client.get(self.url("/auth/capabilities")).json()
        self.assertIn("manage_users", body["capabilities"])
        self.assertEqual(len(body["capabilities"]), 12)


class TestUserManagement(ApiTestCase):
    def test_non_admin_gets_403(self) -> None:
        self.login_as("alice", "secret1")
        response = self.client.get(self.url("/users"))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Admin access required")

    def test_anonymous_gets_401(self) -> None:
        self.assertEqual(self.client.get(self.url("/users")).status_code, 401)

    def test_list_users_newest_first(self) -> None:
        self.login_as("bob", "Secret123")
        response = self.client.get(self.url("/users"))
        self.assertEqual(response.status_code, 200)
        users = response.json()["users"]
        self.assertEqual([u["username"] for u in users], ["bob", "alice"])
        self.assertNotIn("password_hash", users[0])
        self.assertIsNotNone(users[0]["last_login_at"])

    def test_admin_creates_user_with_strict_policy(self) -> None:
        self.login_as("bob", "Secret123")
        weak = self.client.post(
            self.url("/users"), json={"username": "dave", "password": "secret1", "role": "USER"}
        )
        self.assertEqual(weak.status_code, 400)

        ok = self.client.post(
            self.url("/users"),
            json={"username": "dave", "password": "Secret123", "role": "MEDIA_MANAGER"},
        )
        self.assertEqual(ok.status_code, 200, ok.text)
        self.assertEqual(ok.json()["user"]["role"], "MEDIA_MANAGER")

        dup = self.client.post(
            self.url("/users"), json={"username": "dave", "password": "Secret123"}
        )
        self.assertEqual(dup.status_code, 400)

    def test_self_demotion_denied_and_promotion_applies(self) -> None:
        alice_token = self.login_as("alice", "secret1")
        self.client.cookies.clear()
        self.login_as("bob", "Secret123")

        own = self.client.patch(
            self.url("/users/role"), json={"user_id": self.bob.id, "role": "USER"}
        )
        self.assertEqual(own.status_code, 400)
        self.assertEqual(own.json()["detail"], "Cannot change your own role")

        promote = self.client.patch(
            self.url("/users/role"), json={"user_id": self.alice.id, "role": "ADMIN"}
        )
        self.assertEqual(promote.status_code, 200)

        self.use_token(alice_token)
        me = self.client.get(self.url("/auth/me"))
        self.assertEqual(me.json()["user"]["role"], "ADMIN")

    def test_deactivate_ends_access(self) -> None:
        alice_token = self.login_as("alice", "secret1")
        self.client.cookies.clear()
        self.login_as("bob", "Secret123")

        response = self.client.patch(
            self.url(f"/users/{self.alice.id}/active"), json={"is_active": False}
        )
        self.assertEqual(response.status_code, 200)

        self.use_token(alice_token)
        self.assertEqual(self.client.get(self.url("/auth/me")).status_code, 401)

    def test_self_delete_denied(self) -> None:
        self.login_as("bob", "Secret123")
        response = self.client.delete(self.url(f"/users/{self.bob.id}"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Cannot delete your own account")

    def test_delete_other_and_unknown(self) -> None:
        self.login_as("bob", "Secret123")
        self.assertEqual(self.client.delete(self.url(f"/users/{self.alice.id}")).status_code, 200)
        self.assertEqual(self.client.delete(self.url(f"/users/{self.alice.id}")).status_code, 404)
        self.assertEqual(self.login("alice", "secret1").status_code, 401)


if __name__ == "__main__":
    unittest.main()
