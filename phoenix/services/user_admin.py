"""Admin-only account changes, with guards against an admin acting on their own account."""

import logging

from phoenix.models import Role, User
from phoenix.schemas.auth import AuthenticatedUser
from phoenix.services.authorization import require_admin
from phoenix.services.credential_store import CredentialStore
from phoenix.services.errors import SelfActionDeniedError, UserNotFoundError

logger = logging.getLogger(__name__)


def _load_target(store: CredentialStore, target_id: str) -> User:
    user = store.find_user_by_id(target_id)
    if user is None:
        raise UserNotFoundError(target_id)
    return user


def list_users(store: CredentialStore, actor: AuthenticatedUser | None) -> list[User]:
    """All accounts, newest first (admin only)."""
    require_admin(actor)
    return store.list_users()


def update_role(
    store: CredentialStore,
    actor: AuthenticatedUser | None,
    target_id: str,
    role: Role,
) -> User:
    """
    Change another user's role. Takes effect on that user's next request,
    for every live session, since roles are never read from tokens.
    """
    admin = require_admin(actor)
    if target_id == admin.id:
        raise SelfActionDeniedError("Cannot change your own role")
    user = _load_target(store, target_id)
    previous = user.role
    store.update_user(user, role=role)
    logger.info(
        "Role updated",
        extra={"actor_id": admin.id, "user_id": target_id, "from": previous.value, "to": role.value},
    )
    return user


def set_active(
    store: CredentialStore,
    actor: AuthenticatedUser | None,
    target_id: str,
    active: bool,
) -> User:
    """
    Activate or deactivate another user's account.

    Session rows are left alone; a deactivated user's sessions stop resolving
    immediately because resolution checks the active flag.
    """
    admin = require_admin(actor)
    if target_id == admin.id:
        raise SelfActionDeniedError("Cannot deactivate your own account")
    user = _load_target(store, target_id)
    store.update_user(user, is_active=active)
    logger.info(
        "Account %s",
        "activated" if active else "deactivated",
        extra={"actor_id": admin.id, "user_id": target_id},
    )
    return user


def delete_user(
    store: CredentialStore,
    actor: AuthenticatedUser | None,
    target_id: str,
) -> None:
    """Delete another user's account together with its sessions."""
    admin = require_admin(actor)
    if target_id == admin.id:
        raise SelfActionDeniedError("Cannot delete your own account")
    user = _load_target(store, target_id)
    store.delete_user(user)
    logger.info("User deleted", extra={"actor_id": admin.id, "user_id": target_id})
