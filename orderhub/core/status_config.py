"""Status Configuration and Transition Rules

This module defines the closed sets of status values used by orders,
order products, order items and the order-level sample, together with the
allowed transitions. The string values are persisted verbatim and must not
change.

Each transition table is checked at import time to cover every member of its
enum, so a new status cannot be added without deciding where it may go.
"""
from enum import Enum
from typing import Dict, List, Set

from orderhub.exceptions import InvalidStateError


# =============================================================================
# Order Status
# =============================================================================

class OrderStatus(str, Enum):
    """Top-level order status"""
    DRAFT = "draft"
    CLIENT_REQUEST = "client_request"
    SUBMITTED_FOR_SAMPLE = "submitted_for_sample"
    SUBMITTED_TO_MANUFACTURER = "submitted_to_manufacturer"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Forward-only beyond draft; nothing returns to draft once submitted
ORDER_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.DRAFT: {
        OrderStatus.SUBMITTED_FOR_SAMPLE,
        OrderStatus.SUBMITTED_TO_MANUFACTURER,
    },
    OrderStatus.CLIENT_REQUEST: {
        OrderStatus.DRAFT,
    },
    OrderStatus.SUBMITTED_FOR_SAMPLE: {
        OrderStatus.SUBMITTED_TO_MANUFACTURER,  # Sample approved, proceed to production
        OrderStatus.IN_PROGRESS,
    },
    OrderStatus.SUBMITTED_TO_MANUFACTURER: {
        OrderStatus.IN_PROGRESS,
    },
    OrderStatus.IN_PROGRESS: {
        OrderStatus.COMPLETED,
    },
    OrderStatus.COMPLETED: set(),  # Terminal
}

SUBMITTED_STATUSES: Set[OrderStatus] = {
    OrderStatus.SUBMITTED_FOR_SAMPLE,
    OrderStatus.SUBMITTED_TO_MANUFACTURER,
}

# Orders whose products may be routed between actors
ROUTABLE_ORDER_STATUSES: Set[OrderStatus] = {
    OrderStatus.SUBMITTED_FOR_SAMPLE,
    OrderStatus.SUBMITTED_TO_MANUFACTURER,
    OrderStatus.IN_PROGRESS,
}


# =============================================================================
# Order Product Status
# =============================================================================

class ProductStatus(str, Enum):
    """Work state of a single order product"""
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    COMPLETED = "completed"
    SHIPPED = "shipped"
    PENDING_CLIENT_APPROVAL = "pending_client_approval"
    CLIENT_APPROVED = "client_approved"
    # Overlay only: stored as OrderProduct.question_for_admin, never as product_status
    QUESTION_FOR_ADMIN = "question_for_admin"


PRODUCT_STATUS_TRANSITIONS: Dict[ProductStatus, Set[ProductStatus]] = {
    ProductStatus.PENDING: {
        ProductStatus.PENDING_CLIENT_APPROVAL,
        ProductStatus.IN_PRODUCTION,
    },
    ProductStatus.PENDING_CLIENT_APPROVAL: {
        ProductStatus.CLIENT_APPROVED,
        ProductStatus.PENDING,  # Client requested changes
    },
    ProductStatus.CLIENT_APPROVED: {
        ProductStatus.IN_PRODUCTION,
    },
    ProductStatus.IN_PRODUCTION: {
        ProductStatus.COMPLETED,
        ProductStatus.SHIPPED,
    },
    ProductStatus.COMPLETED: {
        ProductStatus.SHIPPED,
    },
    ProductStatus.SHIPPED: set(),  # Terminal
    ProductStatus.QUESTION_FOR_ADMIN: set(),  # Never a stored state
}

# Product states a manufacturer may set directly
MANUFACTURER_WORK_STATUSES: Set[ProductStatus] = {
    ProductStatus.IN_PRODUCTION,
    ProductStatus.COMPLETED,
    ProductStatus.SHIPPED,
}

# Products in these states count as done when deciding order completion
FINISHED_PRODUCT_STATUSES: Set[ProductStatus] = {
    ProductStatus.COMPLETED,
    ProductStatus.SHIPPED,
}


# =============================================================================
# Routing
# =============================================================================

class RoutedTo(str, Enum):
    """Current custodian of a product or of the sample"""
    STAFF = "admin"
    MANUFACTURER = "manufacturer"
    CLIENT = "client"


# =============================================================================
# Approvals
# =============================================================================

class ApprovalStatus(str, Enum):
    """Per-item admin/manufacturer decision and sample decision"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalField(str, Enum):
    """The two independent decision fields on an order item"""
    ADMIN_STATUS = "admin_status"
    MANUFACTURER_STATUS = "manufacturer_status"


APPROVAL_TRANSITIONS: Dict[ApprovalStatus, Set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
    ApprovalStatus.APPROVED: set(),  # Final
    ApprovalStatus.REJECTED: set(),  # Final
}


# =============================================================================
# Shipping & Media
# =============================================================================

class ShippingMethod(str, Enum):
    AIR = "air"
    BOAT = "boat"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


# =============================================================================
# Exhaustiveness
# =============================================================================

def _assert_exhaustive(table: Dict, enum_cls) -> None:
    missing = set(enum_cls) - set(table)
    if missing:
        raise RuntimeError(
            f"{enum_cls.__name__} transition table is missing: "
            f"{sorted(m.value for m in missing)}"
        )


_assert_exhaustive(ORDER_TRANSITIONS, OrderStatus)
_assert_exhaustive(PRODUCT_STATUS_TRANSITIONS, ProductStatus)
_assert_exhaustive(APPROVAL_TRANSITIONS, ApprovalStatus)


# =============================================================================
# Validation Helpers
# =============================================================================

def get_allowed_order_transitions(current_status: str) -> List[str]:
    """Get sorted list of allowed next statuses for an order"""
    allowed = ORDER_TRANSITIONS.get(OrderStatus(current_status), set())
    return sorted(s.value for s in allowed)


def is_valid_order_transition(current_status: str, new_status: str) -> bool:
    """Check if an order status transition is valid (no-op transitions are not)"""
    try:
        current = OrderStatus(current_status)
        target = OrderStatus(new_status)
    except ValueError:
        return False
    return target in ORDER_TRANSITIONS[current]


def validate_order_transition(current: str, new: str) -> None:
    """Validate and raise InvalidStateError if the transition is invalid"""
    if not is_valid_order_transition(current, new):
        allowed = get_allowed_order_transitions(current)
        raise InvalidStateError(
            f"Invalid order status transition: '{current}' -> '{new}'. "
            f"Allowed: {allowed if allowed else 'none (terminal state)'}",
            current_state=current,
            allowed_states=allowed,
        )


def get_allowed_product_transitions(current_status: str) -> List[str]:
    allowed = PRODUCT_STATUS_TRANSITIONS.get(ProductStatus(current_status), set())
    return sorted(s.value for s in allowed)


def validate_product_transition(current: str, new: str) -> None:
    """Validate and raise InvalidStateError if a product status change is invalid"""
    try:
        valid = ProductStatus(new) in PRODUCT_STATUS_TRANSITIONS[ProductStatus(current)]
    except ValueError:
        valid = False
    if not valid:
        allowed = get_allowed_product_transitions(current)
        raise InvalidStateError(
            f"Invalid product status transition: '{current}' -> '{new}'. "
            f"Allowed: {allowed if allowed else 'none (terminal state)'}",
            current_state=current,
            allowed_states=allowed,
        )
