"""Admin user management: list, create, change role, activate/deactivate, delete."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from phoenix.api.v1.auth import get_credential_store, get_session_manager, require_admin
from phoenix.core.security import password_error, username_error
from phoenix.schemas.auth import (
    AuthenticatedUser,
    CreateUserRequest,
    SetActiveRequest,
    SuccessResponse,
    UpdateRoleRequest,
    UserListItem,
    UserResponse,
    UsersListResponse,
)
from phoenix.services import user_admin
from phoenix.services.credential_store import SqlAlchemyCredentialStore
from phoenix.services.errors import (
    AuthError,
    ForbiddenError,
    UserNotFoundError,
)
from phoenix.services.sessions import SessionManager

router = APIRouter()


def _http_error(e: AuthError) -> HTTPException:
    if isinstance(e, ForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, UserNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.get("", response_model=UsersListResponse)
def list_users(
    admin: Annotated[AuthenticatedUser, Depends(require_admin)],
    store: Annotated[SqlAlchemyCredentialStore, Depends(get_credential_store)],
) -> UsersListResponse:
    """List all users, newest first (admin only)."""
    users = user_admin.list_users(store, admin)
    return UsersListResponse(users=[UserListItem.model_validate(u) for u in users])


@router.post("", response_model=UserResponse)
def create_user(
    body: CreateUserRequest,
    _admin: Annotated[AuthenticatedUser, Depends(require_admin)],
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> UserResponse:
    """Create an account with any role (admin only). Uses the strict password policy."""
    error = username_error(body.username) or password_error(body.password, strict=True)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    user = manager.create_user(body.username, body.password, body.role)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        )
    return UserResponse(user=user)


@router.patch("/role", response_model=SuccessResponse)
def update_role(
    body: UpdateRoleRequest,
    admin: Annotated[AuthenticatedUser, Depends(require_admin)],
    store: Annotated[SqlAlchemyCredentialStore, Depends(get_credential_store)],
) -> SuccessResponse:
    """Change another user's role (admin only). Admins cannot change their own role."""
    try:
        user_admin.update_role(store, admin, body.user_id, body.role)
    except AuthError as e:
        raise _http_error(e) from e
    return SuccessResponse()


@router.patch("/{user_id}/active", response_model=SuccessResponse)
def set_active(
    user_id: str,
    body: SetActiveRequest,
    admin: Annotated[AuthenticatedUser, Depends(require_admin)],
    store: Annotated[SqlAlchemyCredentialStore, Depends(get_credential_store)],
) -> SuccessResponse:
    """Activate or deactivate another user (admin only). Deactivation ends access immediately."""
    try:
        user_admin.set_active(store, admin, user_id, body.is_active)
    except AuthError as e:
        raise _http_error(e) from e
    return SuccessResponse()


@router.delete("/{user_id}", response_model=SuccessResponse)
def delete_user(
    user_id: str,
    admin: Annotated[AuthenticatedUser, Depends(require_admin)],
    store: Annotated[SqlAlchemyCredentialStore, Depends(get_credential_store)],
) -> SuccessResponse:
    """Delete another user and their sessions (admin only). Admins cannot delete themselves."""
    try:
        user_admin.delete_user(store, admin, user_id)
    except AuthError as e:
        raise _http_error(e) from e
    return SuccessResponse()
