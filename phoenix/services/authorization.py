"""Role-based authorization: capability sets derived from a resolved user's role."""

import enum
from dataclasses import dataclass, field
from typing import assert_never

from phoenix.models import Role
from phoenix.schemas.auth import AuthenticatedUser
from phoenix.services.errors import ForbiddenError


class Capability(str, enum.Enum):
    MANAGE_PLAYERS = "manage_players"
    MANAGE_MATCHES = "manage_matches"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_USERS = "manage_users"
    EDIT_SQUAD = "edit_squad"
    USE_AI_SELECTOR = "use_ai_selector"
    MANAGE_MEDIA = "manage_media"
    VIEW_PLAYERS = "view_players"
    VIEW_MATCHES = "view_matches"
    VIEW_STATS = "view_stats"
    VIEW_GALLERY = "view_gallery"
    VIEW_TEAM_UPDATES = "view_team_updates"


VIEW_CAPABILITIES = frozenset(
    {
        Capability.VIEW_PLAYERS,
        Capability.VIEW_MATCHES,
        Capability.VIEW_STATS,
        Capability.VIEW_GALLERY,
        Capability.VIEW_TEAM_UPDATES,
    }
)

MEDIA_MANAGER_CAPABILITIES = VIEW_CAPABILITIES | {Capability.MANAGE_MEDIA}

ADMIN_CAPABILITIES = frozenset(Capability)


def capabilities_for(user: AuthenticatedUser | None) -> frozenset[Capability]:
    """Capabilities granted by the user's role; anonymous callers get none."""
    if user is None:
        return frozenset()
    match user.role:
        case Role.ADMIN:
            return ADMIN_CAPABILITIES
        case Role.MEDIA_MANAGER:
            return MEDIA_MANAGER_CAPABILITIES
        case Role.USER:
            return VIEW_CAPABILITIES
        case _:
            assert_never(user.role)


def can(user: AuthenticatedUser | None, capability: Capability) -> bool:
    return capability in capabilities_for(user)


def is_admin(user: AuthenticatedUser | None) -> bool:
    return user is not None and user.role is Role.ADMIN


def require_admin(user: AuthenticatedUser | None) -> AuthenticatedUser:
    """Return the user if they are an admin. Raises ForbiddenError otherwise."""
    if user is None or not is_admin(user):
        raise ForbiddenError()
    return user


def require_capability(user: AuthenticatedUser | None, capability: Capability) -> AuthenticatedUser:
    if user is None or not can(user, capability):
        raise ForbiddenError("Insufficient permission")
    return user


@dataclass(frozen=True)
class AuthContext:
    """
    Per-request authorization context for route handlers.

    Built once from the resolved user; handlers ask it questions instead of
    comparing role strings themselves.
    """

    user: AuthenticatedUser | None
    capabilities: frozenset[Capability] = field(default_factory=frozenset)

    @classmethod
    def for_user(cls, user: AuthenticatedUser | None) -> "AuthContext":
        return cls(user=user, capabilities=capabilities_for(user))

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> AuthenticatedUser:
        if self.user is None or capability not in self.capabilities:
            raise ForbiddenError("Insufficient permission")
        return self.user
