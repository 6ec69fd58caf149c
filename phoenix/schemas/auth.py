"""Request/response schemas for auth and user-management endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from phoenix.models.user import Role


class AuthenticatedUser(BaseModel):
    """Authenticated user (id, username, role) handed to authorization checks. Never carries the hash."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    username: str
    role: Role


class LoginRequest(BaseModel):
    """Credentials for login. Format is not re-validated; unknown usernames simply fail."""

    username: str = Field(..., min_length=1, max_length=128, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RegisterRequest(BaseModel):
    """Self-registration; always creates a USER account."""

    username: str = Field(..., description="3-20 chars, lowercase letters, digits, underscore")
    password: str = Field(..., description="At least 6 characters")


class CreateUserRequest(BaseModel):
    """Admin-created account."""

    username: str
    password: str
    role: Role = Role.USER


class UpdateRoleRequest(BaseModel):
    user_id: str
    role: Role


class SetActiveRequest(BaseModel):
    is_active: bool


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str


class LoginResponse(BaseModel):
    """Returned after successful login; the token itself travels only in the cookie."""

    user: AuthenticatedUser


class MeResponse(BaseModel):
    user: AuthenticatedUser


class UserListItem(BaseModel):
    """User entry for admin list (no password)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    role: Role
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only), newest account first."""

    users: list[UserListItem]


class UserResponse(BaseModel):
    user: AuthenticatedUser


class SuccessResponse(BaseModel):
    success: bool = True
    message: str | None = None


class CapabilitiesResponse(BaseModel):
    """What the caller may do; anonymous callers get an empty list."""

    authenticated: bool
    role: Role | None = None
    capabilities: list[str]
