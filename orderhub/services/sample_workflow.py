"""
Sample Workflow Service

The order-level pre-production sample: one per order, with its own custody
(sample_routed_to) and status (pending / approved / rejected). Custody moves
under the same rules as products; the client decision lives in the approval
gate.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from orderhub.core.permissions import APPROVER_ROLES, Actor, deny, is_assigned_manufacturer
from orderhub.core.status_config import ApprovalStatus, OrderStatus, RoutedTo
from orderhub.db.unit_of_work import unit_of_work
from orderhub.exceptions import ConflictError, InvalidStateError, NotFoundError
from orderhub.logging_config import get_logger
from orderhub.models.order import Order
from orderhub.schemas.routing import ShipmentUpdate
from orderhub.schemas.sample import SampleUpdate
from orderhub.services.audit_service import record_audit
from orderhub.services.notification_service import notify_client, notify_manufacturer, notify_staff
from orderhub.services.routing import append_note, authorize_custody_change, ensure_routable, parse_routed_to

logger = get_logger(__name__)


def load_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise NotFoundError("Order", order_id)
    return order


def ensure_sample_required(order: Order) -> None:
    if not order.sample_required:
        raise InvalidStateError(f"Order {order.order_number} has no sample requested")


def holds_sample(actor: Actor, order: Order) -> bool:
    return (
        is_assigned_manufacturer(actor, order)
        and order.sample_routed_to == RoutedTo.MANUFACTURER.value
    )


def route_sample(db: Session, actor: Actor, order_id: int, target: str, notes: Optional[str] = None) -> Order:
    """
    Hand the sample to another actor.

    Sending a rejected sample back to the manufacturer starts a new round:
    its status returns to pending.
    """
    routed_to = parse_routed_to(target)
    order = load_order(db, order_id)
    current = RoutedTo(order.sample_routed_to)
    authorize_custody_change(actor, order, current, routed_to, f"sample of order {order.order_number}")
    ensure_routable(order)
    ensure_sample_required(order)

    if routed_to == RoutedTo.CLIENT and order.sample_status == ApprovalStatus.APPROVED.value:
        raise ConflictError(f"The sample for order {order.order_number} is already approved")

    with unit_of_work(db):
        old_status = order.sample_status
        if routed_to == RoutedTo.MANUFACTURER and order.sample_status == ApprovalStatus.REJECTED.value:
            order.sample_status = ApprovalStatus.PENDING.value
        order.sample_routed_to = routed_to.value
        order.sample_routed_at = datetime.utcnow()
        order.sample_routed_by = actor.id
        order.sample_notes = append_note(order.sample_notes, actor, notes)

        record_audit(
            db, actor, "sample_routed", "sample", order.id,
            old_value=f"{current.value} ({old_status})",
            new_value=f"{routed_to.value} ({order.sample_status})",
            order_id=order.id,
        )
        message = f"The sample for order {order.order_number} has been routed to you"
        if routed_to == RoutedTo.MANUFACTURER:
            notify_manufacturer(db, order, "sample_routed", message, exclude_user_id=actor.id)
        elif routed_to == RoutedTo.CLIENT:
            notify_client(db, order, "sample_routed",
                          f"The sample for order {order.order_number} is ready for your approval",
                          exclude_user_id=actor.id)
        else:
            notify_staff(db, order, "sample_routed", message, exclude_user_id=actor.id)

    logger.info(f"Order {order.order_number}: sample routed {current.value} -> {routed_to.value}")
    return order


def update_sample(db: Session, actor: Actor, order_id: int, data: SampleUpdate) -> Order:
    """
    Staff set whether a sample is required, its fee, ETA and notes. The
    manufacturer holding the sample may set the fee and ETA.
    """
    order = load_order(db, order_id)
    changes = data.model_dump(exclude_unset=True)

    if actor.role in APPROVER_ROLES:
        pass
    elif holds_sample(actor, order):
        if set(changes) - {"sample_fee", "sample_eta"}:
            raise deny(actor, "update sample", f"order {order.id}", "manufacturer may only set fee and ETA")
    else:
        raise deny(actor, "update sample", f"order {order.id}")

    if order.status == OrderStatus.COMPLETED.value:
        raise InvalidStateError(
            f"Order {order.order_number} is completed; the sample can no longer change",
            current_state=order.status,
        )

    old = {key: getattr(order, key) for key in changes}
    with unit_of_work(db):
        for key, value in changes.items():
            if key == "sample_notes":
                order.sample_notes = append_note(order.sample_notes, actor, value)
            else:
                setattr(order, key, value)
        record_audit(
            db, actor, "sample_updated", "sample", order.id,
            old_value=old, new_value=changes, order_id=order.id,
        )
    return order


def record_sample_shipment(db: Session, actor: Actor, order_id: int, data: ShipmentUpdate) -> Order:
    order = load_order(db, order_id)
    if not (holds_sample(actor, order) or actor.role in APPROVER_ROLES):
        raise deny(actor, "record sample shipment", f"order {order.id}")
    ensure_sample_required(order)

    with unit_of_work(db):
        if data.tracking_number is not None:
            order.sample_tracking_number = data.tracking_number
        if data.carrier is not None:
            order.sample_carrier = data.carrier
        if data.shipped_date is not None:
            order.sample_shipped_date = data.shipped_date
        record_audit(
            db, actor, "sample_shipment_recorded", "sample", order.id,
            new_value=f"{order.sample_carrier or ''} {order.sample_tracking_number or ''}".strip(),
            order_id=order.id,
        )
    return order
