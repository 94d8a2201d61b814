"""
Notification Model

In-app notices for users about orders that need their attention.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean
from datetime import datetime

from orderhub.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="NO ACTION"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="NO ACTION"), nullable=True, index=True)
    order_product_id = Column(
        Integer, ForeignKey("order_products.id", ondelete="NO ACTION"), nullable=True
    )

    # order_submitted, product_routed, sample_routed, question_raised, changes_requested
    type = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<Notification {self.type} for user {self.user_id}>"
