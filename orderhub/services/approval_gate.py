"""
Approval Gate

Bookkeeping for sign-offs:
- per order item, two independent fields: admin_status (set by approver
  staff) and manufacturer_status (set by the assigned manufacturer)
- the order-level sample decision (set by the owning client)

Each decision moves pending -> approved | rejected exactly once. Deciding
again raises ConflictError and leaves the first decision in place. The two
item fields are reported side by side and never merged into one verdict.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from sqlalchemy.orm import Session

from orderhub.core.permissions import APPROVER_ROLES, Actor, deny, is_assigned_manufacturer, is_owning_client
from orderhub.core.status_config import (
    APPROVAL_TRANSITIONS,
    ApprovalField,
    ApprovalStatus,
    RoutedTo,
)
from orderhub.db.unit_of_work import unit_of_work
from orderhub.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from orderhub.logging_config import get_logger
from orderhub.models.order import OrderItem
from orderhub.services.audit_service import record_audit
from orderhub.services.notification_service import notify_staff
from orderhub.services.routing import append_note, ensure_routable
from orderhub.services.sample_workflow import ensure_sample_required, load_order

logger = get_logger(__name__)


def parse_decision(decision: str) -> ApprovalStatus:
    try:
        status = ApprovalStatus(decision)
    except ValueError:
        status = None
    if status not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
        raise ValidationError(
            f"Decision must be 'approved' or 'rejected', got '{decision}'",
            field="decision",
            value=decision,
        )
    return status


def _ensure_undecided(current: str, label: str) -> None:
    if ApprovalStatus(current) not in {s for s, nxt in APPROVAL_TRANSITIONS.items() if nxt}:
        raise ConflictError(
            f"{label} has already been {current}",
            details={"current": current},
        )


def decide_item(db: Session, actor: Actor, item_id: int, field: str, decision: str) -> OrderItem:
    """
    Record an admin or manufacturer decision on an order item.

    Args:
        db: Database session
        actor: Approver staff for admin_status, the assigned manufacturer for
            manufacturer_status
        item_id: OrderItem id
        field: "admin_status" or "manufacturer_status"
        decision: "approved" or "rejected"

    Returns:
        The updated OrderItem

    Raises:
        ValidationError: unknown field or decision
        AuthorizationError: actor's role does not match the field
        ConflictError: the field was already decided
    """
    try:
        approval_field = ApprovalField(field)
    except ValueError:
        raise ValidationError(
            "Field must be 'admin_status' or 'manufacturer_status'", field="field", value=field
        )
    new_status = parse_decision(decision)

    item = db.get(OrderItem, item_id)
    if item is None:
        raise NotFoundError("Order item", item_id)
    order = item.order_product.order

    if approval_field == ApprovalField.ADMIN_STATUS:
        allowed = actor.role in APPROVER_ROLES
    else:
        allowed = is_assigned_manufacturer(actor, order)
    if not allowed:
        raise deny(actor, f"decide {approval_field.value}", f"order item {item.id}")
    ensure_routable(order)

    current = getattr(item, approval_field.value)
    _ensure_undecided(current, f"{approval_field.value} of {item.variant_combo}")

    with unit_of_work(db):
        setattr(item, approval_field.value, new_status.value)
        record_audit(
            db, actor, f"{approval_field.value}_decided", "order_item", item.id,
            old_value=current, new_value=new_status.value, order_id=order.id,
        )

    logger.info(
        f"Item {item.id} ({item.variant_combo}) on {order.order_number}: "
        f"{approval_field.value} {current} -> {new_status.value}"
    )
    return item


def decide_sample(db: Session, actor: Actor, order_id: int, decision: str, notes: str = ""):
    """
    Client decision on the order's sample. Only while the sample is routed
    to the client; the first decision is final and custody returns to staff.
    """
    new_status = parse_decision(decision)
    order = load_order(db, order_id)
    if not is_owning_client(actor, order):
        raise deny(actor, "decide sample", f"order {order.id}")
    ensure_sample_required(order)
    _ensure_undecided(order.sample_status, f"The sample for order {order.order_number}")
    if order.sample_routed_to != RoutedTo.CLIENT.value:
        raise InvalidStateError(
            f"The sample for order {order.order_number} is not awaiting your decision",
            current_state=order.sample_routed_to,
            allowed_states=[RoutedTo.CLIENT.value],
        )

    now = datetime.utcnow()
    with unit_of_work(db):
        old_status = order.sample_status
        order.sample_status = new_status.value
        if new_status == ApprovalStatus.APPROVED:
            order.sample_approved_at = now
            order.sample_approved_by = actor.id
        order.sample_routed_to = RoutedTo.STAFF.value
        order.sample_routed_at = now
        order.sample_routed_by = actor.id
        order.sample_notes = append_note(order.sample_notes, actor, notes)
        record_audit(
            db, actor, "sample_decided", "sample", order.id,
            old_value=old_status, new_value=new_status.value, order_id=order.id,
        )
        notify_staff(
            db, order, "sample_decided",
            f"The client {new_status.value} the sample for order {order.order_number}",
            exclude_user_id=actor.id,
        )

    logger.info(f"Order {order.order_number}: sample {old_status} -> {new_status.value}")
    return order


@dataclass(frozen=True)
class ItemApprovalSummary:
    order_product_id: int
    admin_status: Dict[str, int]
    manufacturer_status: Dict[str, int]


def item_approval_summary(product) -> ItemApprovalSummary:
    """Count decisions per field for one order product."""
    admin = {s.value: 0 for s in ApprovalStatus}
    manufacturer = {s.value: 0 for s in ApprovalStatus}
    for item in product.items:
        admin[item.admin_status] += 1
        manufacturer[item.manufacturer_status] += 1
    return ItemApprovalSummary(
        order_product_id=product.id,
        admin_status=admin,
        manufacturer_status=manufacturer,
    )
