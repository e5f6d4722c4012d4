# permissions/context.py

"""
REQUEST CONTEXT

Who is acting, and what they may do, passed explicitly into services.

Views build one per request with context_from_request(); management
commands and tests use system_context(). Services never read request or
thread-local state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from permissions.roles import (
    ALL_CAPABILITIES,
    ROLE_ADMIN,
    ROLE_AGENT,
    STAFF_ROLES,
    effective_capabilities_for,
    get_user_role,
)


class CapabilityError(PermissionError):
    """Raised when the acting context lacks a required capability."""


@dataclass(frozen=True)
class RequestContext:
    user: object | None
    role: str | None
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @property
    def user_id(self):
        return getattr(self.user, "id", None)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_agent(self) -> bool:
        return self.role == ROLE_AGENT

    def has(self, capability: str) -> bool:
        return capability in self.capabilities

    def require(self, capability: str) -> None:
        if capability not in self.capabilities:
            raise CapabilityError(f"Missing capability: {capability}")


def context_for_user(user) -> RequestContext:
    return RequestContext(
        user=user,
        role=get_user_role(user),
        capabilities=effective_capabilities_for(user),
    )


def context_from_request(request) -> RequestContext:
    return context_for_user(getattr(request, "user", None))


def system_context() -> RequestContext:
    """Context for management commands and scheduled jobs."""
    return RequestContext(user=None, role=ROLE_ADMIN, capabilities=ALL_CAPABILITIES)
