"""Cookie-session login/logout endpoints and auth dependencies (get_current_user, require_admin)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from phoenix.core.config import Settings, get_settings
from phoenix.core.database import get_db
from phoenix.core.security import password_error, username_error
from phoenix.models import Role
from phoenix.schemas.auth import (
    AuthenticatedUser,
    CapabilitiesResponse,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    SuccessResponse,
)
from phoenix.services import authorization
from phoenix.services.authorization import AuthContext
from phoenix.services.credential_store import SqlAlchemyCredentialStore
from phoenix.services.errors import ForbiddenError
from phoenix.services.sessions import SessionManager

logger = logging.getLogger(__name__)
router = APIRouter()


def get_credential_store(
    db: Annotated[Session, Depends(get_db)],
) -> SqlAlchemyCredentialStore:
    return SqlAlchemyCredentialStore(db)


def get_session_manager(
    store: Annotated[SqlAlchemyCredentialStore, Depends(get_credential_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionManager:
    return SessionManager(store, settings)


def _auth_token(request: Request, settings: Settings) -> str | None:
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


def _set_auth_cookie(response: Response, token: str, max_age: int, settings: Settings) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
    )


def _clear_auth_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="lax",
    )


def _error_clearing_cookie(status_code: int, detail: str, settings: Settings) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"detail": detail})
    _clear_auth_cookie(response, settings)
    return response


def get_optional_user(
    request: Request,
    manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthenticatedUser | None:
    """Dependency: the user behind the auth cookie, or None. Resolved once per request."""
    return manager.resolve(_auth_token(request, settings))


def get_current_user(
    user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
) -> AuthenticatedUser:
    """Dependency: require a valid auth cookie and return the current user. Raises 401 otherwise."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


def require_admin(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    """Dependency: require authenticated user with role ADMIN. Raises 403 for non-admin."""
    try:
        return authorization.require_admin(current_user)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message) from e


def get_auth_context(
    user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
) -> AuthContext:
    """Dependency: capability context for handlers and resolvers that allow anonymous access."""
    return AuthContext.for_user(user)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LoginResponse:
    """
    Authenticate with username and password; sets the auth cookie.

    Unknown usernames, inactive accounts and wrong passwords all get the same 401.
    """
    result = manager.login(body.username, body.password)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        )
    _set_auth_cookie(
        response,
        result.token,
        int(manager.session_ttl.total_seconds()),
        settings,
    )
    return LoginResponse(user=result.user)


@router.post("/logout", response_model=SuccessResponse)
def logout(
    request: Request,
    response: Response,
    manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Revoke the session behind the auth cookie and delete the cookie.

    If the revoke cannot be written the cookie is still deleted but the client
    gets 503, since the session would otherwise stay valid until it expires.
    """
    session_id = manager.session_id_from_token(_auth_token(request, settings))
    if session_id is not None:
        try:
            manager.logout(session_id)
        except SQLAlchemyError:
            logger.exception("Logout failed to revoke session")
            return _error_clearing_cookie(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "Logout could not be completed. Please try again.",
                settings,
            )
    _clear_auth_cookie(response, settings)
    return SuccessResponse()


@router.get("/me", response_model=MeResponse)
def me(
    request: Request,
    manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Return the current user; an unusable cookie is cleared so the client signs in again."""
    token = _auth_token(request, settings)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    user = manager.resolve(token)
    if user is None:
        return _error_clearing_cookie(
            status.HTTP_401_UNAUTHORIZED, "Session expired", settings
        )
    return MeResponse(user=user)


@router.post("/register", response_model=SuccessResponse)
def register(
    body: RegisterRequest,
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> SuccessResponse:
    """Self-registration. Always creates a USER account; admins grant other roles later."""
    error = username_error(body.username) or password_error(body.password)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    user = manager.create_user(body.username, body.password, Role.USER)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        )
    return SuccessResponse(message="Account created successfully")


@router.post("/password", response_model=SuccessResponse)
def change_password(
    body: ChangePasswordRequest,
    response: Response,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    manager: Annotated[SessionManager, Depends(get_session_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SuccessResponse:
    """Change own password. Every session of the user is revoked, so the cookie is cleared too."""
    error = password_error(body.new_password, strict=True)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    if not manager.change_password(current_user.id, body.current_password, body.new_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )
    _clear_auth_cookie(response, settings)
    return SuccessResponse(message="Password changed. Please sign in again.")


@router.get("/capabilities", response_model=CapabilitiesResponse)
def capabilities(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
) -> CapabilitiesResponse:
    """Capabilities of the caller, for clients that show or hide features. Works without a cookie."""
    return CapabilitiesResponse(
        authenticated=ctx.is_authenticated,
        role=ctx.user.role if ctx.user else None,
        capabilities=sorted(c.value for c in ctx.capabilities),
    )
