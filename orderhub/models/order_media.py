"""
Order Media Model

Files (images, videos, documents) attached to an order. Every row belongs to
an order; product-scoped media also carries the order product id, and the
sample's media is flagged with is_sample.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime

from orderhub.db.base import Base


class OrderMedia(Base):
    """A stored file reference attached to an order or one of its products"""
    __tablename__ = "order_media"

    id = Column(Integer, primary_key=True, index=True)

    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="NO ACTION"),
        nullable=False,
        index=True
    )
    order_product_id = Column(
        Integer,
        ForeignKey("order_products.id", ondelete="NO ACTION"),
        nullable=True,
        index=True
    )
    is_sample = Column(Boolean, nullable=False, default=False)

    kind = Column(String(20), nullable=False, default="image")  # image, video, document
    file_url = Column(String(1000), nullable=False)
    original_filename = Column(String(255), nullable=True)
    content_type = Column(String(100), nullable=True)
    size_bytes = Column(Integer, nullable=True)

    uploaded_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    order_product = relationship("OrderProduct", back_populates="media")

    def __repr__(self):
        return f"<OrderMedia {self.kind} {self.original_filename} for order {self.order_id}>"
