"""Point settings at SQLite and a fixed signing secret before any app module is imported."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_SECRET"] = "unit-test-signing-secret-0123456789abcdef-0123456789abcdef-012345"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["APP_ENV"] = "dev"
