"""
Create a user (e.g. the first admin). Run from project root:
  python -m phoenix.scripts.create_user USERNAME PASSWORD [role]
Example:
  python -m phoenix.scripts.create_user admin 'Your-secure-passw0rd' ADMIN
"""
import argparse
import sys

from phoenix.core.config import get_settings
from phoenix.core.database import SessionLocal
from phoenix.core.security import password_error, username_error
from phoenix.models import Role
from phoenix.services.credential_store import SqlAlchemyCredentialStore
from phoenix.services.sessions import SessionManager


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Phoenix user account.")
    parser.add_argument("username", help="Username (3-20 chars: a-z, 0-9, _)")
    parser.add_argument("password", help="Password (8-128 chars, mixed case and a digit)")
    parser.add_argument(
        "role",
        nargs="?",
        default=Role.USER.value,
        choices=[r.value for r in Role],
    )
    args = parser.parse_args(argv)

    username = args.username.strip()
    error = username_error(username) or password_error(args.password, strict=True)
    if error:
        print(error, file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        manager = SessionManager(SqlAlchemyCredentialStore(db), get_settings())
        user = manager.create_user(username, args.password, Role(args.role))
        if user is None:
            print(f"User '{username}' already exists.", file=sys.stderr)
            return 1
        print(f"Created user '{username}' with role '{user.role.value}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
