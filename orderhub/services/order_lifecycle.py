"""
Order Lifecycle Service

Top-level order state machine: creation, draft editing, submission, status
transitions, automatic progress from product states, and deletion.

Every operation follows the same order: authorize the actor, validate the
transition against the tables in orderhub.core.status_config, then apply the
change, its audit entry and notifications inside one unit of work.

Structural edits (products, items, client, manufacturer) are only allowed
while the order is a draft. Draft saves are a diff/patch over products and
items guarded by Order.version; a save based on an older version is refused
with ConcurrencyError instead of overwriting someone else's edit.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from orderhub.core.permissions import (
    ALL_ORDERS_ROLES,
    APPROVER_ROLES,
    STAFF_ROLES,
    Actor,
    Role,
    can_delete_order,
    can_edit_draft,
    deny,
    ensure_can_view,
    is_assigned_manufacturer,
    require_role,
)
from orderhub.core.settings import settings
from orderhub.core.status_config import (
    FINISHED_PRODUCT_STATUSES,
    SUBMITTED_STATUSES,
    OrderStatus,
    ProductStatus,
    RoutedTo,
    validate_order_transition,
)
from orderhub.db.unit_of_work import unit_of_work
from orderhub.exceptions import (
    ConcurrencyError,
    InvalidStateError,
    NotFoundError,
    OrderHubException,
    ValidationError,
)
from orderhub.logging_config import get_logger
from orderhub.models.order import Order, OrderItem, OrderProduct
from orderhub.models.party import Client, Manufacturer
from orderhub.models.product import Product
from orderhub.schemas.order import DraftSave, OrderCreate, OrderItemInput, OrderProductInput
from orderhub.services.audit_service import record_audit
from orderhub.services.cascade_delete import CascadeDeleteCoordinator, DeletionReport
from orderhub.services.notification_service import notify_manufacturer

logger = get_logger(__name__)


# Order statuses a manufacturer assigned to the order may move it to
MANUFACTURER_ORDER_TARGETS = {OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED}


@dataclass
class StaleDraftPurgeReport:
    cutoff: datetime
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


def generate_order_number(db: Session) -> str:
    """Generate next order number in format ORD-YYYY-NNNN"""
    year = datetime.utcnow().year
    last_order = (
        db.query(Order)
        .filter(Order.order_number.like(f"ORD-{year}-%"))
        .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
        .first()
    )
    if last_order:
        try:
            last_num = int(last_order.order_number.split("-")[2])
            next_num = last_num + 1
        except (IndexError, ValueError):
            next_num = 1
    else:
        next_num = 1
    return f"ORD-{year}-{next_num:04d}"


def product_order_number(order_number: str, sequence: int) -> str:
    return f"{order_number}-{sequence:02d}"


def draft_submit_target(order: Order) -> OrderStatus:
    """Sampling is requested when any product carries sample notes."""
    if any((p.sample_notes or "").strip() for p in order.products):
        return OrderStatus.SUBMITTED_FOR_SAMPLE
    return OrderStatus.SUBMITTED_TO_MANUFACTURER


class OrderLifecycleService:
    """
    Manages order creation, draft edits and status transitions.

    Responsibilities:
    - Create drafts (staff) and client requests (clients)
    - Apply draft edits as a versioned diff/patch
    - Submit drafts and move orders through the lifecycle
    - Advance orders automatically from product progress
    - Authorize and run order deletion and stale-draft cleanup
    """

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def _load_order(self, db: Session, order_id: int) -> Order:
        order = (
            db.query(Order)
            .options(selectinload(Order.products).selectinload(OrderProduct.items))
            .filter(Order.id == order_id)
            .first()
        )
        if not order:
            raise NotFoundError("Order", order_id)
        return order

    def get_order(self, db: Session, actor: Actor, order_id: int) -> Order:
        order = self._load_order(db, order_id)
        ensure_can_view(actor, order)
        return order

    def list_orders(
        self,
        db: Session,
        actor: Actor,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Order], int]:
        """
        List orders visible to the actor, newest first.

        Returns:
            Tuple of (orders, total matching)
        """
        query = db.query(Order)

        if actor.role in ALL_ORDERS_ROLES:
            pass
        elif actor.role == Role.ORDER_CREATOR:
            query = query.filter(Order.created_by == actor.id)
        elif actor.role == Role.MANUFACTURER:
            if actor.manufacturer_id is None:
                return [], 0
            query = query.filter(
                Order.manufacturer_id == actor.manufacturer_id,
                Order.status.notin_([OrderStatus.DRAFT.value, OrderStatus.CLIENT_REQUEST.value]),
                Order.products.any(OrderProduct.routed_to == RoutedTo.MANUFACTURER.value),
            )
        elif actor.role == Role.CLIENT:
            if actor.client_id is None:
                return [], 0
            query = query.filter(
                Order.client_id == actor.client_id,
                Order.status != OrderStatus.DRAFT.value,
            )
        else:
            return [], 0

        if status:
            try:
                OrderStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown order status: {status}", field="status", value=status)
            query = query.filter(Order.status == status)

        total = query.count()
        orders = (
            query.options(selectinload(Order.products).selectinload(OrderProduct.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return orders, total

    # ========================================================================
    # VALIDATION HELPERS
    # ========================================================================

    @staticmethod
    def _ensure_draft(order: Order) -> None:
        if order.status != OrderStatus.DRAFT.value:
            raise InvalidStateError(
                f"Order {order.order_number} is not a draft; products, items and parties are locked",
                current_state=order.status,
                allowed_states=[OrderStatus.DRAFT.value],
            )

    def _ensure_can_edit(self, actor: Actor, order: Order) -> None:
        if not can_edit_draft(actor, order):
            raise deny(actor, "edit", f"order {order.id}")
        self._ensure_draft(order)

    @staticmethod
    def _validate_quantity(quantity: int, variant: str = "") -> None:
        if quantity is None or quantity < 0:
            raise ValidationError(
                f"Quantity cannot be negative{f' for {variant}' if variant else ''}",
                field="quantity",
                value=quantity,
            )

    def _validate_products_payload(self, products: List[OrderProductInput]) -> None:
        for product in products:
            for item in product.items:
                self._validate_quantity(item.quantity, item.variant_combo)

    @staticmethod
    def _validate_parties(db: Session, client_id: Optional[int], manufacturer_id: Optional[int]) -> None:
        if client_id is not None and db.get(Client, client_id) is None:
            raise NotFoundError("Client", client_id)
        if manufacturer_id is not None and db.get(Manufacturer, manufacturer_id) is None:
            raise NotFoundError("Manufacturer", manufacturer_id)

    @staticmethod
    def _validate_catalog_product(db: Session, product_id: Optional[int]) -> None:
        if product_id is not None and db.get(Product, product_id) is None:
            raise NotFoundError("Product", product_id)

    # ========================================================================
    # CREATION
    # ========================================================================

    def _build_product(self, order: Order, data: OrderProductInput, sequence: int) -> OrderProduct:
        product = OrderProduct(
            order=order,
            product_id=data.product_id,
            sequence=sequence,
            product_order_number=product_order_number(order.order_number, sequence),
            description=data.description,
            sample_notes=data.sample_notes,
            routed_to=RoutedTo.STAFF.value,
            product_status=ProductStatus.PENDING.value,
        )
        for item in data.items:
            product.items.append(OrderItem(
                variant_combo=item.variant_combo,
                quantity=item.quantity,
                notes=item.notes,
            ))
        return product

    def create_order(self, db: Session, actor: Actor, data: OrderCreate) -> Order:
        """
        Create an order.

        Staff create drafts. Clients create requests bound to their own
        client; staff later accept them as drafts. Manufacturers cannot
        create orders.

        Args:
            db: Database session
            actor: Who is creating the order
            data: Name, parties and initial products

        Returns:
            The created Order
        """
        if actor.role in STAFF_ROLES:
            status = OrderStatus.DRAFT
            client_id = data.client_id
            manufacturer_id = data.manufacturer_id
        elif actor.role == Role.CLIENT:
            if actor.client_id is None:
                raise ValidationError("Client login is not linked to a client", field="client_id")
            status = OrderStatus.CLIENT_REQUEST
            client_id = actor.client_id
            manufacturer_id = None
        else:
            raise deny(actor, "create", "order")

        self._validate_products_payload(data.products)
        self._validate_parties(db, client_id, manufacturer_id)
        for p in data.products:
            self._validate_catalog_product(db, p.product_id)

        with unit_of_work(db):
            order = Order(
                order_number=generate_order_number(db),
                order_name=data.order_name,
                status=status.value,
                client_id=client_id,
                manufacturer_id=manufacturer_id,
                created_by=actor.id,
                version=1,
            )
            db.add(order)
            for sequence, p in enumerate(data.products, start=1):
                db.add(self._build_product(order, p, sequence))
            db.flush()
            record_audit(
                db, actor, "order_created", "order", order.id,
                new_value=status.value, order_id=order.id,
            )

        logger.info(
            f"Order {order.order_number} created as {status.value} by user {actor.id}",
            extra={"order_id": order.id, "actor_id": actor.id},
        )
        return order

    # ========================================================================
    # DRAFT EDITING
    # ========================================================================

    def _bump_version(self, order: Order) -> None:
        order.version = (order.version or 1) + 1
        order.updated_at = datetime.utcnow()

    def _patch_items(self, db: Session, product: OrderProduct, items: List[OrderItemInput]) -> None:
        existing = {item.id: item for item in product.items}
        keep_ids = set()
        for data in items:
            if data.id is None:
                product.items.append(OrderItem(
                    variant_combo=data.variant_combo,
                    quantity=data.quantity,
                    notes=data.notes,
                ))
                continue
            item = existing.get(data.id)
            if item is None:
                raise ValidationError(
                    f"Item {data.id} does not belong to product {product.product_order_number}",
                    field="items",
                    value=data.id,
                )
            item.variant_combo = data.variant_combo
            item.quantity = data.quantity
            item.notes = data.notes
            keep_ids.add(item.id)

        for item_id, item in existing.items():
            if item_id not in keep_ids:
                product.items.remove(item)
                db.delete(item)

    def _patch_products(self, db: Session, order: Order, products: List[OrderProductInput]) -> None:
        existing = {p.id: p for p in order.products}
        referenced = [p.id for p in products if p.id is not None]
        for pid in referenced:
            if pid not in existing:
                raise ValidationError(
                    f"Product {pid} does not belong to order {order.order_number}",
                    field="products",
                    value=pid,
                )
        if len(referenced) != len(set(referenced)):
            raise ValidationError("Each product may appear only once", field="products")

        removed_ids = [pid for pid in existing if pid not in set(referenced)]
        if removed_ids:
            CascadeDeleteCoordinator(db).delete_products(removed_ids, order_id=order.id)
            db.expire(order, ["products"])

        for sequence, data in enumerate(products, start=1):
            if data.id is None:
                db.add(self._build_product(order, data, sequence))
                continue
            product = existing[data.id]
            product.product_id = data.product_id
            product.description = data.description
            product.sample_notes = data.sample_notes
            product.sequence = sequence
            product.product_order_number = product_order_number(order.order_number, sequence)
            self._patch_items(db, product, data.items)

    def save_draft(self, db: Session, actor: Actor, order_id: int, data: DraftSave) -> Order:
        """
        Save a draft edit as a diff/patch.

        Raises:
            AuthorizationError: actor may not edit this draft
            InvalidStateError: order is not a draft
            ConcurrencyError: draft changed since data.version was loaded
            ValidationError: negative quantity or foreign product/item ids
        """
        order = self._load_order(db, order_id)
        self._ensure_can_edit(actor, order)

        if data.version != order.version:
            raise ConcurrencyError(
                f"Order {order.order_number} was modified by another user",
                expected_version=data.version,
                current_version=order.version,
            )
        if data.products is not None:
            self._validate_products_payload(data.products)
            for p in data.products:
                self._validate_catalog_product(db, p.product_id)
        self._validate_parties(db, data.client_id, data.manufacturer_id)

        old_version = order.version
        with unit_of_work(db):
            order.order_name = data.order_name
            order.client_id = data.client_id
            order.manufacturer_id = data.manufacturer_id
            if data.products is not None:
                self._patch_products(db, order, data.products)
            self._bump_version(order)
            record_audit(
                db, actor, "draft_saved", "order", order.id,
                old_value=f"v{old_version}", new_value=f"v{order.version}", order_id=order.id,
            )

        logger.info(f"Order {order.order_number}: draft saved (v{old_version} -> v{order.version})")
        return order

    def add_product(self, db: Session, actor: Actor, order_id: int, data: OrderProductInput) -> OrderProduct:
        order = self._load_order(db, order_id)
        self._ensure_can_edit(actor, order)
        self._validate_products_payload([data])
        self._validate_catalog_product(db, data.product_id)

        with unit_of_work(db):
            sequence = max((p.sequence for p in order.products), default=0) + 1
            product = self._build_product(order, data, sequence)
            db.add(product)
            self._bump_version(order)
            db.flush()
            record_audit(
                db, actor, "product_added", "order_product", product.id,
                new_value=product.product_order_number, order_id=order.id,
            )
        return product

    def remove_product(self, db: Session, actor: Actor, order_id: int, order_product_id: int) -> None:
        order = self._load_order(db, order_id)
        self._ensure_can_edit(actor, order)
        product = next((p for p in order.products if p.id == order_product_id), None)
        if product is None:
            raise NotFoundError("Order product", order_product_id)

        number = product.product_order_number
        with unit_of_work(db):
            CascadeDeleteCoordinator(db).delete_products([order_product_id], order_id=order.id)
            db.expire(order, ["products"])
            self._bump_version(order)
            record_audit(
                db, actor, "product_removed", "order_product", order_product_id,
                old_value=number, order_id=order.id,
            )

    def update_item_quantity(self, db: Session, actor: Actor, item_id: int, quantity: int) -> OrderItem:
        item = db.get(OrderItem, item_id)
        if item is None:
            raise NotFoundError("Order item", item_id)
        order = item.order_product.order
        self._ensure_can_edit(actor, order)
        self._validate_quantity(quantity, item.variant_combo)

        old_quantity = item.quantity
        with unit_of_work(db):
            item.quantity = quantity
            self._bump_version(order)
            record_audit(
                db, actor, "item_quantity_changed", "order_item", item.id,
                old_value=old_quantity, new_value=quantity, order_id=order.id,
            )
        return item

    def set_parties(
        self,
        db: Session,
        actor: Actor,
        order_id: int,
        client_id: Optional[int],
        manufacturer_id: Optional[int],
    ) -> Order:
        order = self._load_order(db, order_id)
        self._ensure_can_edit(actor, order)
        self._validate_parties(db, client_id, manufacturer_id)

        old = f"client={order.client_id} manufacturer={order.manufacturer_id}"
        with unit_of_work(db):
            order.client_id = client_id
            order.manufacturer_id = manufacturer_id
            self._bump_version(order)
            record_audit(
                db, actor, "order_parties_changed", "order", order.id,
                old_value=old, new_value=f"client={client_id} manufacturer={manufacturer_id}",
                order_id=order.id,
            )
        return order

    # ========================================================================
    # SUBMISSION & TRANSITIONS
    # ========================================================================

    def submit(self, db: Session, actor: Actor, order_id: int) -> Order:
        """
        Submit a draft to the manufacturer.

        Goes to submitted_for_sample when any product has sample notes,
        otherwise to submitted_to_manufacturer. Every product (and the
        sample, when sampling) is routed to the manufacturer.
        """
        order = self._load_order(db, order_id)
        require_role(actor, APPROVER_ROLES, "submit", f"order {order.id}")

        target = draft_submit_target(order)
        validate_order_transition(order.status, target.value)

        if order.client_id is None:
            raise ValidationError("A client is required to submit the order", field="client_id")
        if order.manufacturer_id is None:
            raise ValidationError("A manufacturer is required to submit the order", field="manufacturer_id")
        if not order.products:
            raise ValidationError("At least one product is required to submit the order", field="products")

        now = datetime.utcnow()
        old_status = order.status
        with unit_of_work(db):
            for product in order.products:
                product.routed_to = RoutedTo.MANUFACTURER.value
                product.routed_at = now
                product.routed_by = actor.id

            if target == OrderStatus.SUBMITTED_FOR_SAMPLE:
                order.sample_required = True
                order.sample_routed_to = RoutedTo.MANUFACTURER.value
                order.sample_routed_at = now
                order.sample_routed_by = actor.id

            order.status = target.value
            order.submitted_at = now
            order.updated_at = now
            record_audit(
                db, actor, "order_status_changed", "order", order.id,
                old_value=old_status, new_value=target.value, order_id=order.id,
            )
            notify_manufacturer(
                db, order, "order_submitted",
                f"Order {order.order_number} has been submitted"
                f"{' for sampling' if target == OrderStatus.SUBMITTED_FOR_SAMPLE else ''}",
            )

        logger.info(f"Order {order.order_number}: {old_status} -> {target.value}")
        return order

    def _authorize_transition(self, actor: Actor, order: Order, target: OrderStatus) -> None:
        if actor.role in APPROVER_ROLES:
            return
        if is_assigned_manufacturer(actor, order) and target in MANUFACTURER_ORDER_TARGETS:
            return
        raise deny(actor, "transition", f"order {order.id}", f"to {target.value}")

    def transition(self, db: Session, actor: Actor, order_id: int, target_status: str) -> Order:
        """
        Move an order to another status.

        Drafts are submitted through submit(); the requested target must be
        the one the draft's products call for.

        Raises:
            ValidationError: unknown target status
            AuthorizationError: actor may not move this order
            InvalidStateError: transition not in the table
        """
        try:
            target = OrderStatus(target_status)
        except ValueError:
            raise ValidationError(
                f"Unknown order status: {target_status}", field="status", value=target_status
            )

        order = self._load_order(db, order_id)
        ensure_can_view(actor, order)
        self._authorize_transition(actor, order, target)

        if order.status == OrderStatus.DRAFT.value:
            expected = draft_submit_target(order)
            if target in SUBMITTED_STATUSES and target != expected:
                raise InvalidStateError(
                    f"Order {order.order_number} must be submitted as '{expected.value}'",
                    current_state=order.status,
                    allowed_states=[expected.value],
                )
            validate_order_transition(order.status, target.value)
            return self.submit(db, actor, order_id)

        validate_order_transition(order.status, target.value)

        old_status = order.status
        with unit_of_work(db):
            self._apply_status(db, actor, order, target)

        logger.info(f"Order {order.order_number}: {old_status} -> {target.value}")
        return order

    def _apply_status(self, db: Session, actor: Optional[Actor], order: Order, target: OrderStatus) -> None:
        old_status = order.status
        now = datetime.utcnow()
        order.status = target.value
        order.updated_at = now
        if target == OrderStatus.COMPLETED:
            order.completed_at = now
        if actor is not None:
            record_audit(
                db, actor, "order_status_changed", "order", order.id,
                old_value=old_status, new_value=target.value, order_id=order.id,
            )

    # ========================================================================
    # AUTOMATIC PROGRESS
    # ========================================================================

    def sync_order_progress(self, db: Session, actor: Optional[Actor], order: Order) -> List[str]:
        """
        Advance a submitted order from the state of its products.

        - any product in_production -> order in_progress
        - every product completed or shipped -> order completed

        Does not commit; call inside the caller's unit of work.

        Returns:
            List of statuses the order moved through (empty if unchanged)
        """
        changes: List[str] = []
        products = list(order.products)
        if not products:
            return changes

        statuses = {p.product_status for p in products}
        all_finished = all(
            ProductStatus(s) in FINISHED_PRODUCT_STATUSES for s in statuses
        )
        started = ProductStatus.IN_PRODUCTION.value in statuses or all_finished

        if order.status in {s.value for s in SUBMITTED_STATUSES} and started:
            validate_order_transition(order.status, OrderStatus.IN_PROGRESS.value)
            self._apply_status(db, actor, order, OrderStatus.IN_PROGRESS)
            changes.append(OrderStatus.IN_PROGRESS.value)

        if order.status == OrderStatus.IN_PROGRESS.value and all_finished:
            validate_order_transition(order.status, OrderStatus.COMPLETED.value)
            self._apply_status(db, actor, order, OrderStatus.COMPLETED)
            changes.append(OrderStatus.COMPLETED.value)

        if changes:
            logger.info(f"Order {order.order_number}: advanced to {' -> '.join(changes)} from product progress")
        return changes

    # ========================================================================
    # DELETION
    # ========================================================================

    def delete_order(self, db: Session, actor: Actor, order_id: int) -> DeletionReport:
        """
        Delete an order and all dependent rows.

        super_admin may delete any order; admin only drafts.
        """
        order = self._load_order(db, order_id)
        if not can_delete_order(actor, order):
            raise deny(actor, "delete", f"order {order.id}", f"status {order.status}")

        order_number = order.order_number
        old_status = order.status
        with unit_of_work(db):
            report = CascadeDeleteCoordinator(db).purge_order(order)
            record_audit(
                db, actor, "order_deleted", "order", order_id,
                old_value=f"{order_number} ({old_status})", order_id=None,
            )

        logger.info(f"Order {order_number} deleted by user {actor.id}")
        return report

    def purge_stale_drafts(
        self,
        db: Session,
        actor: Actor,
        older_than_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> StaleDraftPurgeReport:
        """
        Delete drafts created before the retention window.

        Each draft is deleted in its own unit of work; a failure is reported
        for that order and the rest continue.
        """
        require_role(actor, {Role.SUPER_ADMIN}, "purge_stale_drafts", "orders")

        days = settings.DRAFT_RETENTION_DAYS if older_than_days is None else older_than_days
        cutoff = (now or datetime.utcnow()) - timedelta(days=days)
        report = StaleDraftPurgeReport(cutoff=cutoff)

        stale = (
            db.query(Order.id, Order.order_number)
            .filter(Order.status == OrderStatus.DRAFT.value, Order.created_at < cutoff)
            .order_by(Order.created_at)
            .all()
        )
        logger.info(f"Found {len(stale)} drafts created before {cutoff.isoformat()}")

        for order_id, order_number in stale:
            try:
                self.delete_order(db, actor, order_id)
            except OrderHubException as e:
                logger.error(f"Could not delete stale draft {order_number}: {e.message}")
                report.failed[order_number] = e.message
                continue
            report.deleted.append(order_number)

        return report


# Singleton instance
order_lifecycle_service = OrderLifecycleService()
