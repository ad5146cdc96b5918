"""Role-based access to event pricing.

Users carry a ``role`` and, for client admins, the ``client_id`` of the tenant
they administer. Identity itself comes from the authentication layer.
"""

from enum import Enum, IntEnum
from typing import Any
from uuid import UUID

from rest_framework.permissions import BasePermission
from rest_framework.request import Request


class Role(IntEnum):
    SUPER_ADMIN = 0
    CLIENT_ADMIN = 1


class Capability(Enum):
    VIEW_PRICING = "view_pricing"
    MANAGE_PRICING = "manage_pricing"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.SUPER_ADMIN: frozenset(Capability),
    Role.CLIENT_ADMIN: frozenset({Capability.VIEW_PRICING, Capability.MANAGE_PRICING}),
}


def role_of(user: Any) -> Role | None:
    try:
        return Role(getattr(user, "role", None))
    except ValueError:
        return None


def has_capability(role: Role | None, capability: Capability) -> bool:
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES[role]


def can_access_event(user: Any, event_client_id: UUID | None, capability: Capability) -> bool:
    """Super admins reach every tenant; client admins only their own."""
    role = role_of(user)
    if not has_capability(role, capability):
        return False
    if role is Role.SUPER_ADMIN:
        return True
    user_client_id = getattr(user, "client_id", None)
    return event_client_id is not None and str(user_client_id) == str(event_client_id)


class EventPricingPermission(BasePermission):
    """Requires an authenticated user whose role grants ``required_capability``.

    Tenant ownership is checked by the view once the event is known.
    """

    required_capability = Capability.VIEW_PRICING

    def has_permission(self, request: Request, view) -> bool:
        user = request.user
        if not (user and getattr(user, "is_authenticated", False)):
            return False
        capability = getattr(view, "required_capability", self.required_capability)
        return has_capability(role_of(user), capability)
