"""
Cascade Delete Coordinator

Removes an order and everything that depends on it, in foreign-key order:

    media -> items -> audit rows -> notifications -> optional tables
          -> order products -> order

The coordinator never commits. Callers run it inside ``unit_of_work`` so a
failed mandatory step rolls the whole delete back. Optional auxiliary tables
(deployment-specific logs) are purged best-effort inside a savepoint; a
missing table or a failure there is logged and reported, never raised.

A failing mandatory step is classified:
- foreign-key violation -> ReferentialIntegrityError ("There are still related records")
- anything else         -> CascadeDeleteError naming the step
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import and_, inspect, or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from orderhub.core.settings import settings
from orderhub.exceptions import CascadeDeleteError, ReferentialIntegrityError
from orderhub.logging_config import get_logger
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification
from orderhub.models.order import Order, OrderItem, OrderProduct
from orderhub.models.order_media import OrderMedia

logger = get_logger(__name__)


@dataclass
class DeletionReport:
    order_id: int
    order_number: Optional[str] = None
    deleted: Dict[str, int] = field(default_factory=dict)
    optional_skipped: List[str] = field(default_factory=list)
    optional_failed: Dict[str, str] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(self.deleted.values())


class CascadeDeleteCoordinator:
    """Ordered multi-table deletion for orders and order products."""

    def __init__(self, db: Session, optional_tables: Optional[Sequence[str]] = None):
        self.db = db
        self.optional_tables = list(
            settings.OPTIONAL_ORDER_TABLES if optional_tables is None else optional_tables
        )

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def purge_order(self, order: Order) -> DeletionReport:
        """
        Delete an order and all dependent rows.

        Authorization is the caller's job; this assumes the delete is allowed.

        Raises:
            ReferentialIntegrityError: a mandatory step hit a foreign-key violation
            CascadeDeleteError: a mandatory step failed for any other reason
        """
        order_id = order.id
        report = DeletionReport(order_id=order_id, order_number=order.order_number)

        self._run_step("flush", report, self.db.flush)

        product_ids = [
            pid for (pid,) in self.db.query(OrderProduct.id).filter(OrderProduct.order_id == order_id)
        ]
        item_ids = self._item_ids(product_ids)

        report.deleted["media"] = self._run_step(
            "media", report, self._delete_media, order_id, product_ids
        )
        report.deleted["items"] = self._run_step("items", report, self._delete_items, product_ids)
        report.deleted["audit"] = self._run_step(
            "audit", report, self._delete_audit_rows, order_id, product_ids, item_ids
        )
        report.deleted["notifications"] = self._run_step(
            "notifications", report, self._delete_notifications, order_id, product_ids
        )
        self._purge_optional_tables(order_id, report)
        report.deleted["products"] = self._run_step(
            "products", report, self._delete_products, product_ids
        )
        report.deleted["order"] = self._run_step("order", report, self._delete_order_row, order_id)

        logger.info(
            f"Order {report.order_number} purged: {report.deleted}",
            extra={"order_id": order_id, "optional_failed": report.optional_failed or None},
        )
        return report

    def delete_products(self, product_ids: Sequence[int], order_id: Optional[int] = None) -> DeletionReport:
        """
        Delete individual order products with their media, items and notifications.

        Used when a draft edit drops products. Audit rows are kept; they point
        at the order, which still exists.
        """
        report = DeletionReport(order_id=order_id)
        product_ids = list(product_ids)
        if not product_ids:
            return report

        self._run_step("flush", report, self.db.flush)
        report.deleted["media"] = self._run_step(
            "media", report, self._delete_media, None, product_ids
        )
        report.deleted["items"] = self._run_step("items", report, self._delete_items, product_ids)
        report.deleted["notifications"] = self._run_step(
            "notifications", report, self._delete_notifications, None, product_ids
        )
        report.deleted["products"] = self._run_step(
            "products", report, self._delete_products, product_ids
        )
        return report

    # ========================================================================
    # STEP RUNNER
    # ========================================================================

    def _run_step(self, step: str, report: DeletionReport, fn: Callable, *args):
        try:
            return fn(*args)
        except IntegrityError as e:
            logger.warning(
                f"Delete of order {report.order_id} blocked at step '{step}': {e.orig}",
                extra={"order_id": report.order_id, "step": step},
            )
            raise ReferentialIntegrityError(
                "There are still related records", blocking=step
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                f"Delete of order {report.order_id} failed at step '{step}': {e}",
                extra={"order_id": report.order_id, "step": step},
            )
            raise CascadeDeleteError(step, f"Order deletion failed at step '{step}'") from e

    # ========================================================================
    # MANDATORY STEPS
    # ========================================================================

    def _item_ids(self, product_ids: List[int]) -> List[int]:
        if not product_ids:
            return []
        return [
            iid for (iid,) in self.db.query(OrderItem.id).filter(
                OrderItem.order_product_id.in_(product_ids)
            )
        ]

    def _delete_media(self, order_id: Optional[int], product_ids: List[int]) -> int:
        conditions = []
        if order_id is not None:
            conditions.append(OrderMedia.order_id == order_id)
        if product_ids:
            conditions.append(OrderMedia.order_product_id.in_(product_ids))
        if not conditions:
            return 0
        return self.db.query(OrderMedia).filter(or_(*conditions)).delete(synchronize_session="fetch")

    def _delete_items(self, product_ids: List[int]) -> int:
        if not product_ids:
            return 0
        return (
            self.db.query(OrderItem)
            .filter(OrderItem.order_product_id.in_(product_ids))
            .delete(synchronize_session="fetch")
        )

    def _delete_audit_rows(self, order_id: int, product_ids: List[int], item_ids: List[int]) -> int:
        conditions = [
            AuditLog.order_id == order_id,
            and_(AuditLog.target_type.in_(("order", "sample")), AuditLog.target_id == str(order_id)),
        ]
        if product_ids:
            conditions.append(and_(
                AuditLog.target_type == "order_product",
                AuditLog.target_id.in_([str(pid) for pid in product_ids]),
            ))
        if item_ids:
            conditions.append(and_(
                AuditLog.target_type == "order_item",
                AuditLog.target_id.in_([str(iid) for iid in item_ids]),
            ))
        return self.db.query(AuditLog).filter(or_(*conditions)).delete(synchronize_session="fetch")

    def _delete_notifications(self, order_id: Optional[int], product_ids: List[int]) -> int:
        conditions = []
        if order_id is not None:
            conditions.append(Notification.order_id == order_id)
        if product_ids:
            conditions.append(Notification.order_product_id.in_(product_ids))
        if not conditions:
            return 0
        return self.db.query(Notification).filter(or_(*conditions)).delete(synchronize_session="fetch")

    def _delete_products(self, product_ids: List[int]) -> int:
        if not product_ids:
            return 0
        return (
            self.db.query(OrderProduct)
            .filter(OrderProduct.id.in_(product_ids))
            .delete(synchronize_session="fetch")
        )

    def _delete_order_row(self, order_id: int) -> int:
        return self.db.query(Order).filter(Order.id == order_id).delete(synchronize_session="fetch")

    # ========================================================================
    # OPTIONAL STEPS (best effort)
    # ========================================================================

    def _purge_optional_tables(self, order_id: int, report: DeletionReport) -> None:
        for table in self.optional_tables:
            try:
                exists = inspect(self.db.connection()).has_table(table)
            except SQLAlchemyError as e:
                logger.warning(f"Could not inspect optional table {table}: {e}")
                report.optional_failed[table] = str(e)
                continue
            if not exists:
                report.optional_skipped.append(table)
                continue
            try:
                with self.db.begin_nested():
                    result = self.db.execute(
                        text(f"DELETE FROM {table} WHERE order_id = :order_id"),
                        {"order_id": order_id},
                    )
                report.deleted[table] = result.rowcount or 0
            except SQLAlchemyError as e:
                logger.warning(
                    f"Ignoring failure purging optional table {table} for order {order_id}: {e}",
                    extra={"order_id": order_id, "table": table},
                )
                report.optional_failed[table] = str(e)
