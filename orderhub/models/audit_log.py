"""
Audit Log Model

Append-only record of privileged actions. Entries carry the acting user's
name and role at the time of the action so they stay readable after the
user is renamed or removed.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from datetime import datetime

from orderhub.db.base import Base


class AuditLog(Base):
    """Audit entry - who did what to which record"""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)

    # Actor snapshot
    user_id = Column(Integer, nullable=True, index=True)
    user_name = Column(String(255), nullable=True)
    user_role = Column(String(30), nullable=True)

    # e.g. order_created, order_status_changed, product_routed, item_decided
    action = Column(String(50), nullable=False, index=True)

    # order, order_product, order_item, sample, client, manufacturer, system_config
    target_type = Column(String(30), nullable=False)
    target_id = Column(String(50), nullable=True, index=True)

    # Note: ondelete=NO ACTION; order deletion removes these rows first
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="NO ACTION"),
        nullable=True,
        index=True
    )

    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.target_type}:{self.target_id}>"
