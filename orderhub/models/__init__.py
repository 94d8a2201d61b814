"""
SQLAlchemy models for OrderHub
"""
from orderhub.db.base import Base
from orderhub.models.user import User
from orderhub.models.party import Client, Manufacturer
from orderhub.models.product import Product
from orderhub.models.order import Order, OrderProduct, OrderItem
from orderhub.models.order_media import OrderMedia
from orderhub.models.audit_log import AuditLog
from orderhub.models.notification import Notification
from orderhub.models.system_config import SystemConfig

__all__ = [
    "Base",
    "User",
    "Client",
    "Manufacturer",
    "Product",
    "Order",
    "OrderProduct",
    "OrderItem",
    "OrderMedia",
    "AuditLog",
    "Notification",
    "SystemConfig",
]
