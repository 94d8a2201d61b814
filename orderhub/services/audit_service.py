"""
Audit Service

Append-only recording of state-changing actions. Entries are added to the
caller's session and committed (or rolled back) with the rest of the unit
of work, so an audit row never outlives a failed change.
"""
from typing import Any, Optional

from sqlalchemy.orm import Session

from orderhub.core.permissions import Actor
from orderhub.models.audit_log import AuditLog


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "value"):  # Enum members
        return str(value.value)
    return str(value)


def record_audit(
    db: Session,
    actor: Actor,
    action: str,
    target_type: str,
    target_id: Any = None,
    old_value: Any = None,
    new_value: Any = None,
    order_id: Optional[int] = None,
) -> AuditLog:
    """
    Record an audit entry.

    Args:
        db: Database session
        actor: Who performed the action
        action: What happened (order_status_changed, product_routed, item_decided, ...)
        target_type: Kind of record acted on (order, order_product, order_item, sample, ...)
        target_id: Identifier of the record acted on
        old_value: Value before the change
        new_value: Value after the change
        order_id: Owning order, if any (used when the order is deleted)

    Returns:
        The created AuditLog instance
    """
    entry = AuditLog(
        user_id=actor.id,
        user_name=actor.display_name,
        user_role=actor.role.value,
        action=action,
        target_type=target_type,
        target_id=_as_text(target_id),
        order_id=order_id,
        old_value=_as_text(old_value),
        new_value=_as_text(new_value),
    )
    db.add(entry)
    # Don't commit - let the calling function handle the transaction
    return entry
