"""Exceptions raised by the auth services; route handlers map them to HTTP status codes."""

import enum


class AuthError(Exception):
    """Base class for authentication and authorization errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ForbiddenError(AuthError):
    """Raised when an authenticated user lacks the required role or capability."""

    def __init__(self, message: str = "Admin access required") -> None:
        super().__init__(message)


class SelfActionDeniedError(AuthError):
    """Raised when an admin tries to change the role of, deactivate, or delete their own account."""


class UserNotFoundError(AuthError):
    """Raised when the target of an administrative action does not exist."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__("User not found")


class DuplicateUsernameError(AuthError):
    """Raised when creating a user whose username is already taken."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("Username already exists")


class ResolveFailure(str, enum.Enum):
    """
    Why a token did not resolve to a user.

    Only used for logging: callers see every failure as "not authenticated".
    """

    TOKEN_INVALID = "token_invalid"
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_EXPIRED = "session_expired"
    SESSION_REVOKED = "session_revoked"
    USER_INACTIVE = "user_inactive"
