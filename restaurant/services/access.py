"""
Role-derived authorization.

Every check in the services goes through ``authorize``; the permission
table below is the only place roles are mapped to capabilities.
"""

from dataclasses import dataclass, field
from enum import Enum

from restaurant.errors import AuthorizationError


class Role(str, Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


class Permission(str, Enum):
    PLACE_ORDER = "order:place"
    READ_ORDER = "order:read"
    CONFIRM_ORDER = "order:confirm"
    UPDATE_ORDER_STATUS = "order:update_status"
    VIEW_ORDER_QUEUE = "order:queue"
    MANAGE_MENU = "menu:manage"
    VIEW_SCHEDULE = "schedule:read"
    MANAGE_STAFF = "staff:manage"
    VIEW_ANALYTICS = "analytics:read"


STAFF_LIKE = frozenset({Role.STAFF, Role.MANAGER, Role.ADMIN})

_STAFF_PERMISSIONS = frozenset(
    {
        Permission.PLACE_ORDER,
        Permission.READ_ORDER,
        Permission.UPDATE_ORDER_STATUS,
        Permission.VIEW_ORDER_QUEUE,
        Permission.MANAGE_MENU,
        Permission.VIEW_SCHEDULE,
    }
)

_MANAGER_PERMISSIONS = _STAFF_PERMISSIONS | {Permission.MANAGE_STAFF, Permission.VIEW_ANALYTICS}

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.CUSTOMER: frozenset({Permission.PLACE_ORDER}),
    Role.STAFF: _STAFF_PERMISSIONS,
    Role.MANAGER: _MANAGER_PERMISSIONS,
    Role.ADMIN: _MANAGER_PERMISSIONS,
}

# Granted to the owner of the resource regardless of role
OWNER_PERMISSIONS = frozenset({Permission.READ_ORDER, Permission.CONFIRM_ORDER})

# Never granted by role alone
OWNER_ONLY = frozenset({Permission.CONFIRM_ORDER})


@dataclass(frozen=True)
class Identity:
    id: int
    roles: frozenset[Role] = field(default_factory=frozenset)

    @classmethod
    def from_claims(cls, user_id: int, role_names) -> "Identity":
        """Build an identity, ignoring role strings this service does not know."""
        roles = set()
        for name in role_names:
            try:
                roles.add(Role(str(name).strip().lower()))
            except ValueError:
                continue
        return cls(id=user_id, roles=frozenset(roles))

    @property
    def is_staff_like(self) -> bool:
        return bool(self.roles & STAFF_LIKE)


def is_allowed(identity: Identity, permission: Permission, owner_id: int | None = None) -> bool:
    if owner_id is not None and owner_id == identity.id and permission in OWNER_PERMISSIONS:
        return True
    if permission in OWNER_ONLY:
        return False
    if permission == Permission.PLACE_ORDER:
        return True
    return any(permission in ROLE_PERMISSIONS[role] for role in identity.roles)


def authorize(identity: Identity, permission: Permission, owner_id: int | None = None) -> None:
    if not is_allowed(identity, permission, owner_id):
        raise AuthorizationError(f"Access denied: {permission.value} not permitted")
