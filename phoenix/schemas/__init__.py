"""Pydantic request/response schemas."""

from phoenix.schemas.auth import (
    AuthenticatedUser,
    CapabilitiesResponse,
    ChangePasswordRequest,
    CreateUserRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    SetActiveRequest,
    SuccessResponse,
    UpdateRoleRequest,
    UserListItem,
    UserResponse,
    UsersListResponse,
)
from phoenix.schemas.health import HealthResponse

__all__ = [
    "AuthenticatedUser",
    "CapabilitiesResponse",
    "ChangePasswordRequest",
    "CreateUserRequest",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MeResponse",
    "RegisterRequest",
    "SetActiveRequest",
    "SuccessResponse",
    "UpdateRoleRequest",
    "UserListItem",
    "UserResponse",
    "UsersListResponse",
]
