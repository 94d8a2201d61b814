"""
Order, OrderProduct and OrderItem models

Order is the root aggregate. Each OrderProduct is one line of work with its
own custodian (routed_to) and work state (product_status); each OrderItem is
a variant line under a product carrying two independent approval fields.

Dependent rows are removed explicitly by the cascade delete coordinator, so
relationships here carry no ORM delete cascade.
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, Boolean,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from orderhub.db.base import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)  # ORD-2026-0001
    order_name = Column(String(255), nullable=True)

    # Lifecycle: client_request -> draft -> submitted_for_sample | submitted_to_manufacturer
    #            -> in_progress -> completed
    status = Column(String(50), nullable=False, default="draft", index=True)

    client_id = Column(Integer, ForeignKey("clients.id", ondelete="NO ACTION"), nullable=True, index=True)
    manufacturer_id = Column(
        Integer, ForeignKey("manufacturers.id", ondelete="NO ACTION"), nullable=True, index=True
    )
    created_by = Column(Integer, ForeignKey("users.id", ondelete="NO ACTION"), nullable=True, index=True)

    # Optimistic concurrency counter for draft edits
    version = Column(Integer, nullable=False, default=1)

    # ---------------------------------------------------------------
    # Sample sub-record (one sample workflow per order)
    # ---------------------------------------------------------------
    sample_required = Column(Boolean, nullable=False, default=False)
    sample_status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    sample_routed_to = Column(String(20), nullable=False, default="admin")  # admin, manufacturer, client
    sample_routed_at = Column(DateTime, nullable=True)
    sample_routed_by = Column(Integer, nullable=True)
    sample_fee = Column(Numeric(10, 2), nullable=True)
    sample_eta = Column(Date, nullable=True)
    sample_notes = Column(Text, nullable=True)
    sample_tracking_number = Column(String(100), nullable=True)
    sample_carrier = Column(String(100), nullable=True)
    sample_shipped_date = Column(Date, nullable=True)
    sample_approved_at = Column(DateTime, nullable=True)
    sample_approved_by = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    submitted_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    client = relationship("Client", back_populates="orders")
    manufacturer = relationship("Manufacturer", back_populates="orders")
    creator = relationship("User", foreign_keys=[created_by])
    products = relationship(
        "OrderProduct",
        back_populates="order",
        order_by="OrderProduct.sequence",
    )

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status})>"


class OrderProduct(Base):
    __tablename__ = "order_products"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="NO ACTION"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    sequence = Column(Integer, nullable=False, default=1)
    product_order_number = Column(String(60), nullable=True, index=True)  # ORD-2026-0001-01
    description = Column(Text, nullable=True)
    sample_notes = Column(Text, nullable=True)

    # Custody: admin (staff), manufacturer, client
    routed_to = Column(String(20), nullable=False, default="admin", index=True)
    routed_at = Column(DateTime, nullable=True)
    routed_by = Column(Integer, nullable=True)

    # Work state: pending, in_production, completed, shipped,
    # pending_client_approval, client_approved
    product_status = Column(String(40), nullable=False, default="pending", index=True)

    # Overlay flag raised by the manufacturer; independent of routing and status
    question_for_admin = Column(Boolean, nullable=False, default=False)
    question_text = Column(Text, nullable=True)

    # Manufacturer-entered costs
    product_price = Column(Numeric(10, 2), nullable=True)
    sample_fee = Column(Numeric(10, 2), nullable=True)
    shipping_air_price = Column(Numeric(10, 2), nullable=True)
    shipping_boat_price = Column(Numeric(10, 2), nullable=True)
    selected_shipping_method = Column(String(10), nullable=True)  # air, boat, NULL = unset

    # Production scheduling
    production_start_date = Column(Date, nullable=True)
    production_days = Column(Integer, nullable=True)

    # Shipment
    tracking_number = Column(String(100), nullable=True)
    shipping_carrier = Column(String(100), nullable=True)
    shipped_date = Column(Date, nullable=True)

    # Client-facing approval
    client_approved = Column(Boolean, nullable=False, default=False)
    client_approved_at = Column(DateTime, nullable=True)
    client_approved_by = Column(Integer, nullable=True)
    client_notes = Column(Text, nullable=True)
    manufacturer_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="products")
    product = relationship("Product")
    items = relationship("OrderItem", back_populates="order_product", order_by="OrderItem.id")
    media = relationship("OrderMedia", back_populates="order_product", order_by="OrderMedia.id")

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity or 0 for item in self.items)

    @property
    def display_status(self) -> str:
        """Status shown in lists; the question overlay wins over the work state."""
        if self.question_for_admin:
            return "question_for_admin"
        return self.product_status

    def __repr__(self):
        return f"<OrderProduct {self.product_order_number} ({self.product_status} @ {self.routed_to})>"


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_order_items_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_product_id = Column(
        Integer, ForeignKey("order_products.id", ondelete="NO ACTION"), nullable=False, index=True
    )

    variant_combo = Column(String(255), nullable=False)  # e.g. "Black / L"
    quantity = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Independent sign-offs; never merged here
    admin_status = Column(String(20), nullable=False, default="pending")
    manufacturer_status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    order_product = relationship("OrderProduct", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.variant_combo} x{self.quantity}>"
