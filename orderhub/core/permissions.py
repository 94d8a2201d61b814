"""
Roles, the request actor, and order-level permission checks.

The actor is resolved once per request (see orderhub.api.v1.deps) and passed
explicitly into every service call. Nothing in the services reads the
current user implicitly.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from orderhub.core.status_config import OrderStatus, RoutedTo
from orderhub.exceptions import AuthorizationError
from orderhub.logging_config import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    ORDER_CREATOR = "order_creator"
    ORDER_APPROVER = "order_approver"
    MANUFACTURER = "manufacturer"
    CLIENT = "client"


STAFF_ROLES: FrozenSet[Role] = frozenset(
    {Role.SUPER_ADMIN, Role.ADMIN, Role.ORDER_CREATOR, Role.ORDER_APPROVER}
)

# Roles that see marked-up prices
MARGIN_ROLES: FrozenSet[Role] = frozenset({Role.SUPER_ADMIN, Role.ADMIN})

# Roles that may edit any draft and move orders through the lifecycle
APPROVER_ROLES: FrozenSet[Role] = frozenset(
    {Role.SUPER_ADMIN, Role.ADMIN, Role.ORDER_APPROVER}
)

# Roles that see every order regardless of creator
ALL_ORDERS_ROLES: FrozenSet[Role] = frozenset(
    {Role.SUPER_ADMIN, Role.ADMIN, Role.ORDER_APPROVER}
)

# Staff roles that may hand products and samples to other actors
ROUTING_STAFF_ROLES: FrozenSet[Role] = APPROVER_ROLES

SETTINGS_ROLES: FrozenSet[Role] = frozenset({Role.SUPER_ADMIN, Role.ADMIN})


@dataclass(frozen=True)
class Actor:
    """Immutable identity of whoever is performing an operation."""
    id: int
    role: Role
    email: str
    name: Optional[str] = None
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def custody(self) -> RoutedTo:
        """The custodian slot this actor acts for."""
        if self.role == Role.MANUFACTURER:
            return RoutedTo.MANUFACTURER
        if self.role == Role.CLIENT:
            return RoutedTo.CLIENT
        return RoutedTo.STAFF

    @property
    def role_label(self) -> str:
        """Label used when stamping routing notes."""
        if self.role in (Role.SUPER_ADMIN, Role.ADMIN):
            return "Admin"
        return self.role.value.replace("_", " ").title()


def deny(actor: Actor, action: str, resource: str, reason: str = "") -> AuthorizationError:
    """Log the refusal in full and build the generic error for the caller."""
    logger.warning(
        f"Denied {action} on {resource} for user {actor.id} ({actor.role.value}) {reason}".rstrip(),
        extra={"actor_id": actor.id, "role": actor.role.value, "action": action, "resource": resource},
    )
    return AuthorizationError(action=action, resource=resource)


def require_role(actor: Actor, roles, action: str, resource: str) -> None:
    if actor.role not in roles:
        raise deny(actor, action, resource, f"role not in {sorted(r.value for r in roles)}")


def is_assigned_manufacturer(actor: Actor, order) -> bool:
    return (
        actor.role == Role.MANUFACTURER
        and actor.manufacturer_id is not None
        and actor.manufacturer_id == order.manufacturer_id
    )


def is_owning_client(actor: Actor, order) -> bool:
    return (
        actor.role == Role.CLIENT
        and actor.client_id is not None
        and actor.client_id == order.client_id
    )


# =============================================================================
# Order visibility & mutation
# =============================================================================

def can_view_order(actor: Actor, order) -> bool:
    """
    Visibility rules:
    - admin, super_admin, order_approver: every order
    - order_creator: orders they created
    - manufacturer: non-draft orders assigned to them with at least one
      product routed to the manufacturer
    - client: their own orders, drafts excluded
    """
    if actor.role in ALL_ORDERS_ROLES:
        return True
    if actor.role == Role.ORDER_CREATOR:
        return order.created_by == actor.id
    if actor.role == Role.MANUFACTURER:
        if not is_assigned_manufacturer(actor, order):
            return False
        if order.status in (OrderStatus.DRAFT.value, OrderStatus.CLIENT_REQUEST.value):
            return False
        return any(p.routed_to == RoutedTo.MANUFACTURER.value for p in order.products)
    if actor.role == Role.CLIENT:
        return is_owning_client(actor, order) and order.status != OrderStatus.DRAFT.value
    return False


def can_edit_draft(actor: Actor, order) -> bool:
    """order_creator edits only their own drafts; approver roles edit any draft."""
    if actor.role in APPROVER_ROLES:
        return True
    if actor.role == Role.ORDER_CREATOR:
        return order.created_by == actor.id
    return False


def can_delete_order(actor: Actor, order) -> bool:
    """super_admin deletes any order; admin deletes drafts only."""
    if actor.role == Role.SUPER_ADMIN:
        return True
    if actor.role == Role.ADMIN:
        return order.status == OrderStatus.DRAFT.value
    return False


def ensure_can_view(actor: Actor, order) -> None:
    if not can_view_order(actor, order):
        raise deny(actor, "view", f"order {order.id}")
