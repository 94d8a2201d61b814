"""
Routing Service

Custody ("routed_to") and work state ("product_status") of order products.

Custody rules, shared with the sample workflow:
- routing staff hand products from staff to the manufacturer or the client
- the assigned manufacturer hands products back to staff
- clients only answer: approve, or request changes
- nothing moves directly between manufacturer and client

The order-level routing label is derived on read by routing_summary(); it is
never stored.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from orderhub.core.permissions import (
    APPROVER_ROLES,
    ROUTING_STAFF_ROLES,
    Actor,
    Role,
    deny,
    is_assigned_manufacturer,
    is_owning_client,
)
from orderhub.core.status_config import (
    MANUFACTURER_WORK_STATUSES,
    ROUTABLE_ORDER_STATUSES,
    ProductStatus,
    RoutedTo,
    ShippingMethod,
    validate_product_transition,
)
from orderhub.db.unit_of_work import unit_of_work
from orderhub.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    OrderHubException,
    ValidationError,
)
from orderhub.logging_config import get_logger
from orderhub.models.order import Order, OrderProduct
from orderhub.schemas.routing import ManufacturerPricingUpdate, ShipmentUpdate
from orderhub.services.audit_service import record_audit
from orderhub.services.notification_service import notify_client, notify_manufacturer, notify_staff
from orderhub.services.order_lifecycle import order_lifecycle_service

logger = get_logger(__name__)


# ============================================================================
# SHARED HELPERS
# ============================================================================

def parse_routed_to(value: str) -> RoutedTo:
    try:
        return RoutedTo(value)
    except ValueError:
        raise ValidationError(
            f"Unknown routing target: {value}. Use admin, manufacturer or client",
            field="target",
            value=value,
        )


def append_note(existing: Optional[str], actor: Actor, text: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """Append '[YYYY-MM-DD - Role] text' to a notes field."""
    if not text or not text.strip():
        return existing
    stamp = (today or date.today()).isoformat()
    entry = f"[{stamp} - {actor.role_label}] {text.strip()}"
    return f"{existing}\n\n{entry}" if existing else entry


def ensure_routable(order: Order) -> None:
    allowed = sorted(s.value for s in ROUTABLE_ORDER_STATUSES)
    if order.status not in allowed:
        raise InvalidStateError(
            f"Order {order.order_number} is '{order.status}'; products can only be routed once submitted",
            current_state=order.status,
            allowed_states=allowed,
        )


def authorize_custody_change(
    actor: Actor,
    order: Order,
    current: RoutedTo,
    target: RoutedTo,
    resource: str,
) -> None:
    """
    Check that the actor may hand something from ``current`` to ``target``.

    Raises:
        AuthorizationError: actor does not hold it or may not send it there
        InvalidStateError: it is already with the target
    """
    if current == target:
        raise InvalidStateError(
            f"{resource} is already routed to {target.value}",
            current_state=current.value,
        )
    if actor.role in ROUTING_STAFF_ROLES:
        if current == RoutedTo.STAFF and target in (RoutedTo.MANUFACTURER, RoutedTo.CLIENT):
            return
        raise deny(actor, f"route {current.value}->{target.value}", resource)
    if actor.role == Role.MANUFACTURER and is_assigned_manufacturer(actor, order):
        if current == RoutedTo.MANUFACTURER and target == RoutedTo.STAFF:
            return
        raise deny(actor, f"route {current.value}->{target.value}", resource)
    raise deny(actor, "route", resource)


def _holds_product(actor: Actor, order: Order, product: OrderProduct) -> bool:
    return (
        is_assigned_manufacturer(actor, order)
        and product.routed_to == RoutedTo.MANUFACTURER.value
    )


# ============================================================================
# ROUTING SUMMARY
# ============================================================================

@dataclass(frozen=True)
class RoutingSummary:
    kind: str
    label: str
    staff: int = 0
    manufacturer: int = 0
    client: int = 0

    @property
    def total(self) -> int:
        return self.staff + self.manufacturer + self.client


def routing_summary(order: Order, role: Union[Role, str, None] = None) -> RoutingSummary:
    """
    Derive the list-view routing label for an order.

    The manufacturer view only counts products routed to the manufacturer.
    """
    products = list(order.products)
    if role is not None and Role(role) == Role.MANUFACTURER:
        products = [p for p in products if p.routed_to == RoutedTo.MANUFACTURER.value]

    counts = {r: 0 for r in RoutedTo}
    for p in products:
        counts[RoutedTo(p.routed_to)] += 1
    staff, manufacturer, client = (
        counts[RoutedTo.STAFF], counts[RoutedTo.MANUFACTURER], counts[RoutedTo.CLIENT]
    )
    total = len(products)

    def summary(kind: str, label: str) -> RoutingSummary:
        return RoutingSummary(kind, label, staff, manufacturer, client)

    if total == 0:
        return summary("no_products", "No Products")
    if all(p.product_status == ProductStatus.COMPLETED.value for p in products):
        return summary("completed", "All Completed")
    in_production = sum(1 for p in products if p.product_status == ProductStatus.IN_PRODUCTION.value)
    if in_production:
        return summary("in_production", f"In Production ({in_production}/{total})")
    if staff == total:
        return summary("all_with_staff", "All With Staff")
    if manufacturer == total:
        return summary("all_with_manufacturer", "All With Manufacturer")
    if client == total:
        return summary("all_with_client", "All With Client")

    label = f"Split ({staff} Staff / {manufacturer} Manufacturer"
    if client:
        label += f" / {client} Client"
    return summary("split", label + ")")


# ============================================================================
# BULK RESULTS
# ============================================================================

@dataclass
class BulkOutcome:
    order_product_id: int
    product_order_number: Optional[str]
    success: bool
    message: Optional[str] = None


@dataclass
class BulkRouteResult:
    action: str
    outcomes: List[BulkOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


class RoutingService:
    """
    Product custody and work-state changes.

    Each public method loads the product, then runs a ``_do_*`` step inside a
    unit of work. The ``_do_*`` steps validate everything before they mutate
    anything, which lets bulk_route() run many of them in one unit of work
    and report a failed product without leaving it half-changed.
    """

    # Bulk actions per role -> custody the products must currently have
    BULK_ACTIONS: Dict[str, RoutedTo] = {
        "send_to_manufacturer": RoutedTo.STAFF,
        "send_for_approval": RoutedTo.STAFF,
        "send_to_admin": RoutedTo.MANUFACTURER,
        "in_production": RoutedTo.MANUFACTURER,
        "shipped": RoutedTo.MANUFACTURER,
        "approve": RoutedTo.CLIENT,
    }
    STAFF_BULK_ACTIONS = {"send_to_manufacturer", "send_for_approval"}
    MANUFACTURER_BULK_ACTIONS = {"send_to_admin", "in_production", "shipped"}
    CLIENT_BULK_ACTIONS = {"approve"}

    def _load_product(self, db: Session, order_product_id: int) -> OrderProduct:
        product = db.get(OrderProduct, order_product_id)
        if not product:
            raise NotFoundError("Order product", order_product_id)
        return product

    # ========================================================================
    # ROUTING
    # ========================================================================

    def _do_route(self, db: Session, actor: Actor, product: OrderProduct, target: RoutedTo,
                  notes: Optional[str] = None) -> None:
        order = product.order
        current = RoutedTo(product.routed_to)
        authorize_custody_change(
            actor, order, current, target, f"order product {product.product_order_number}"
        )
        ensure_routable(order)

        new_status = product.product_status
        if target == RoutedTo.CLIENT:
            validate_product_transition(product.product_status, ProductStatus.PENDING_CLIENT_APPROVAL.value)
            new_status = ProductStatus.PENDING_CLIENT_APPROVAL.value

        product.routed_to = target.value
        product.routed_at = datetime.utcnow()
        product.routed_by = actor.id
        product.product_status = new_status
        if RoutedTo.CLIENT in (current, target):
            product.client_notes = append_note(product.client_notes, actor, notes)
        else:
            product.manufacturer_notes = append_note(product.manufacturer_notes, actor, notes)

        record_audit(
            db, actor, "product_routed", "order_product", product.id,
            old_value=current.value, new_value=target.value, order_id=order.id,
        )

        message = f"{product.product_order_number} has been routed to you"
        if target == RoutedTo.MANUFACTURER:
            notify_manufacturer(db, order, "product_routed", message, product.id, actor.id)
        elif target == RoutedTo.CLIENT:
            notify_client(db, order, "product_routed", f"{product.product_order_number} is ready for your approval",
                          product.id, actor.id)
        else:
            notify_staff(db, order, "product_routed", message, product.id, actor.id)

        logger.info(f"Product {product.product_order_number}: routed {current.value} -> {target.value}")

    def route_product(self, db: Session, actor: Actor, order_product_id: int, target: str,
                      notes: Optional[str] = None) -> OrderProduct:
        """
        Hand a product to another actor.

        Sending to the client puts the product in pending_client_approval.
        """
        routed_to = parse_routed_to(target)
        product = self._load_product(db, order_product_id)
        with unit_of_work(db):
            self._do_route(db, actor, product, routed_to, notes)
        return product

    # ========================================================================
    # CLIENT ANSWERS
    # ========================================================================

    def _ensure_client_turn(self, actor: Actor, product: OrderProduct, action: str) -> None:
        order = product.order
        if not is_owning_client(actor, order):
            raise deny(actor, action, f"order product {product.id}")
        if product.client_approved or product.product_status == ProductStatus.CLIENT_APPROVED.value:
            raise ConflictError(f"{product.product_order_number} has already been approved")
        if (
            product.routed_to != RoutedTo.CLIENT.value
            or product.product_status != ProductStatus.PENDING_CLIENT_APPROVAL.value
        ):
            raise InvalidStateError(
                f"{product.product_order_number} is not awaiting client approval",
                current_state=product.product_status,
                allowed_states=[ProductStatus.PENDING_CLIENT_APPROVAL.value],
            )

    def _do_approve(self, db: Session, actor: Actor, product: OrderProduct, notes: Optional[str] = None) -> None:
        self._ensure_client_turn(actor, product, "approve")
        validate_product_transition(product.product_status, ProductStatus.CLIENT_APPROVED.value)

        now = datetime.utcnow()
        old_status = product.product_status
        product.product_status = ProductStatus.CLIENT_APPROVED.value
        product.client_approved = True
        product.client_approved_at = now
        product.client_approved_by = actor.id
        product.routed_to = RoutedTo.STAFF.value
        product.routed_at = now
        product.routed_by = actor.id
        product.client_notes = append_note(product.client_notes, actor, notes)

        record_audit(
            db, actor, "product_client_approved", "order_product", product.id,
            old_value=old_status, new_value=ProductStatus.CLIENT_APPROVED.value,
            order_id=product.order_id,
        )
        notify_staff(db, product.order, "product_approved",
                     f"{product.product_order_number} was approved by the client", product.id, actor.id)
        logger.info(f"Product {product.product_order_number}: approved by client user {actor.id}")

    def approve_product(self, db: Session, actor: Actor, order_product_id: int,
                        notes: Optional[str] = None) -> OrderProduct:
        """
        Client approval. One-way: custody returns to staff and the approver
        is recorded; approving again raises ConflictError.
        """
        product = self._load_product(db, order_product_id)
        with unit_of_work(db):
            self._do_approve(db, actor, product, notes)
        return product

    def request_product_changes(self, db: Session, actor: Actor, order_product_id: int,
                                notes: str) -> OrderProduct:
        """Client sends the product back to staff with the requested changes."""
        product = self._load_product(db, order_product_id)
        self._ensure_client_turn(actor, product, "request_changes")
        if not notes or not notes.strip():
            raise ValidationError("Please describe the changes you need", field="notes")
        validate_product_transition(product.product_status, ProductStatus.PENDING.value)

        with unit_of_work(db):
            old_status = product.product_status
            product.product_status = ProductStatus.PENDING.value
            product.routed_to = RoutedTo.STAFF.value
            product.routed_at = datetime.utcnow()
            product.routed_by = actor.id
            product.client_notes = append_note(product.client_notes, actor, notes)
            record_audit(
                db, actor, "product_changes_requested", "order_product", product.id,
                old_value=old_status, new_value=ProductStatus.PENDING.value, order_id=product.order_id,
            )
            notify_staff(db, product.order, "changes_requested",
                         f"The client requested changes on {product.product_order_number}",
                         product.id, actor.id)
        return product

    # ========================================================================
    # WORK STATE
    # ========================================================================

    def _do_status(self, db: Session, actor: Actor, product: OrderProduct, status: ProductStatus,
                   notes: Optional[str] = None) -> None:
        order = product.order
        if status not in MANUFACTURER_WORK_STATUSES:
            raise ValidationError(
                f"Product status '{status.value}' cannot be set directly",
                field="status",
                value=status.value,
            )
        if not (_holds_product(actor, order, product) or actor.role in APPROVER_ROLES):
            raise deny(actor, f"set status {status.value}", f"order product {product.id}")
        ensure_routable(order)
        validate_product_transition(product.product_status, status.value)

        old_status = product.product_status
        product.product_status = status.value
        if status == ProductStatus.IN_PRODUCTION and product.production_start_date is None:
            product.production_start_date = date.today()
        if status == ProductStatus.SHIPPED:
            if product.shipped_date is None:
                product.shipped_date = date.today()
            product.routed_to = RoutedTo.STAFF.value
            product.routed_at = datetime.utcnow()
            product.routed_by = actor.id
        product.manufacturer_notes = append_note(product.manufacturer_notes, actor, notes)

        record_audit(
            db, actor, "product_status_changed", "order_product", product.id,
            old_value=old_status, new_value=status.value, order_id=order.id,
        )
        logger.info(f"Product {product.product_order_number}: {old_status} -> {status.value}")

    def update_product_status(self, db: Session, actor: Actor, order_product_id: int, status: str,
                              notes: Optional[str] = None) -> OrderProduct:
        """
        Set a manufacturer work state (in_production, completed, shipped).

        in_production stamps the production start date; shipped stamps the
        ship date and returns custody to staff. The order then advances from
        its products' progress.
        """
        try:
            new_status = ProductStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown product status: {status}", field="status", value=status)

        product = self._load_product(db, order_product_id)
        with unit_of_work(db):
            self._do_status(db, actor, product, new_status, notes)
            order_lifecycle_service.sync_order_progress(db, actor, product.order)
        return product

    # ========================================================================
    # MANUFACTURER DATA
    # ========================================================================

    def update_manufacturer_pricing(self, db: Session, actor: Actor, order_product_id: int,
                                    data: ManufacturerPricingUpdate) -> OrderProduct:
        """
        Record manufacturer costs, shipping method and production schedule.

        The manufacturer may change everything while it holds the product.
        Approver roles may only choose the shipping method.
        """
        product = self._load_product(db, order_product_id)
        order = product.order
        changes = data.model_dump(exclude_unset=True)

        if _holds_product(actor, order, product):
            pass
        elif actor.role in APPROVER_ROLES:
            if set(changes) - {"selected_shipping_method"}:
                raise deny(actor, "update pricing", f"order product {product.id}",
                           "staff may only choose the shipping method")
        else:
            raise deny(actor, "update pricing", f"order product {product.id}")

        method = changes.get("selected_shipping_method")
        if method is not None:
            try:
                ShippingMethod(method)
            except ValueError:
                raise ValidationError(
                    f"Unknown shipping method: {method}. Use air or boat",
                    field="selected_shipping_method",
                    value=method,
                )

        old = {key: getattr(product, key) for key in changes}
        with unit_of_work(db):
            for key, value in changes.items():
                setattr(product, key, value)
            record_audit(
                db, actor, "product_pricing_updated", "order_product", product.id,
                old_value=old, new_value=changes, order_id=order.id,
            )
        return product

    def record_product_shipment(self, db: Session, actor: Actor, order_product_id: int,
                                data: ShipmentUpdate) -> OrderProduct:
        product = self._load_product(db, order_product_id)
        order = product.order
        if not (_holds_product(actor, order, product) or actor.role in APPROVER_ROLES):
            raise deny(actor, "record shipment", f"order product {product.id}")
        ensure_routable(order)

        with unit_of_work(db):
            if data.tracking_number is not None:
                product.tracking_number = data.tracking_number
            if data.carrier is not None:
                product.shipping_carrier = data.carrier
            if data.shipped_date is not None:
                product.shipped_date = data.shipped_date
            record_audit(
                db, actor, "product_shipment_recorded", "order_product", product.id,
                new_value=f"{product.shipping_carrier or ''} {product.tracking_number or ''}".strip(),
                order_id=order.id,
            )
        return product

    # ========================================================================
    # QUESTIONS (overlay flag; custody and status unchanged)
    # ========================================================================

    def raise_question(self, db: Session, actor: Actor, order_product_id: int, question: str) -> OrderProduct:
        product = self._load_product(db, order_product_id)
        order = product.order
        if not is_assigned_manufacturer(actor, order):
            raise deny(actor, "raise question", f"order product {product.id}")
        if not question or not question.strip():
            raise ValidationError("Question cannot be empty", field="question")

        with unit_of_work(db):
            product.question_for_admin = True
            product.question_text = question.strip()
            product.manufacturer_notes = append_note(product.manufacturer_notes, actor, question)
            record_audit(
                db, actor, "question_raised", "order_product", product.id,
                new_value=question.strip(), order_id=order.id,
            )
            notify_staff(db, order, "question_raised",
                         f"Question on {product.product_order_number}: {question.strip()}",
                         product.id, actor.id)
        return product

    def resolve_question(self, db: Session, actor: Actor, order_product_id: int,
                         answer: Optional[str] = None) -> OrderProduct:
        product = self._load_product(db, order_product_id)
        if actor.role not in APPROVER_ROLES:
            raise deny(actor, "resolve question", f"order product {product.id}")
        if not product.question_for_admin:
            raise InvalidStateError(f"{product.product_order_number} has no open question")

        with unit_of_work(db):
            old_question = product.question_text
            product.question_for_admin = False
            product.question_text = None
            product.manufacturer_notes = append_note(product.manufacturer_notes, actor, answer)
            record_audit(
                db, actor, "question_resolved", "order_product", product.id,
                old_value=old_question, new_value=answer, order_id=product.order_id,
            )
        return product

    # ========================================================================
    # BULK
    # ========================================================================

    def _bulk_step(self, actor: Actor, action: str, notes: Optional[str]) -> Callable:
        if action == "send_to_manufacturer":
            return lambda db, p: self._do_route(db, actor, p, RoutedTo.MANUFACTURER, notes)
        if action == "send_for_approval":
            return lambda db, p: self._do_route(db, actor, p, RoutedTo.CLIENT, notes)
        if action == "send_to_admin":
            return lambda db, p: self._do_route(db, actor, p, RoutedTo.STAFF, notes)
        if action == "in_production":
            return lambda db, p: self._do_status(db, actor, p, ProductStatus.IN_PRODUCTION, notes)
        if action == "shipped":
            return lambda db, p: self._do_status(db, actor, p, ProductStatus.SHIPPED, notes)
        return lambda db, p: self._do_approve(db, actor, p, notes)

    def _allowed_bulk_actions(self, actor: Actor):
        if actor.role in ROUTING_STAFF_ROLES:
            return self.STAFF_BULK_ACTIONS
        if actor.role == Role.MANUFACTURER:
            return self.MANUFACTURER_BULK_ACTIONS
        if actor.role == Role.CLIENT:
            return self.CLIENT_BULK_ACTIONS
        return set()

    def bulk_route(self, db: Session, actor: Actor, order_id: int, action: str,
                   notes: Optional[str] = None) -> BulkRouteResult:
        """
        Apply one action to every product the actor currently holds.

        Products that fail are reported with their error and left unchanged;
        the others are committed together.
        """
        if action not in self.BULK_ACTIONS:
            raise ValidationError(f"Unknown bulk action: {action}", field="action", value=action)
        order = order_lifecycle_service.get_order(db, actor, order_id)
        if action not in self._allowed_bulk_actions(actor):
            raise deny(actor, f"bulk {action}", f"order {order.id}")

        holder = self.BULK_ACTIONS[action]
        eligible = [p for p in order.products if p.routed_to == holder.value]
        step = self._bulk_step(actor, action, notes)
        result = BulkRouteResult(action=action)

        with unit_of_work(db):
            for product in eligible:
                try:
                    step(db, product)
                except OrderHubException as e:
                    result.outcomes.append(BulkOutcome(
                        product.id, product.product_order_number, False,
                        "Not permitted" if e.status_code == 403 else e.message,
                    ))
                    continue
                result.outcomes.append(BulkOutcome(product.id, product.product_order_number, True))
            if result.succeeded and action in ("in_production", "shipped"):
                order_lifecycle_service.sync_order_progress(db, actor, order)

        logger.info(
            f"Bulk {action} on order {order.order_number}: "
            f"{result.succeeded} succeeded, {result.failed} failed"
        )
        return result


# Singleton instance
routing_service = RoutingService()
