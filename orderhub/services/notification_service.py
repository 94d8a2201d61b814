"""
Notification Service

Creates in-app notification rows for the users who need to act on an order.
Delivery (email, push) is handled elsewhere; this only writes rows.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from orderhub.models.notification import Notification
from orderhub.models.user import User


def _active_users(db: Session, **filters) -> List[User]:
    return db.query(User).filter_by(is_active=True, **filters).all()


def notify_users(
    db: Session,
    users: List[User],
    order_id: int,
    type: str,
    message: str,
    order_product_id: Optional[int] = None,
    exclude_user_id: Optional[int] = None,
) -> List[Notification]:
    notifications = []
    for user in users:
        if user.id == exclude_user_id:
            continue
        notification = Notification(
            user_id=user.id,
            order_id=order_id,
            order_product_id=order_product_id,
            type=type,
            message=message,
        )
        db.add(notification)
        notifications.append(notification)
    # Don't commit - let the calling function handle the transaction
    return notifications


def notify_manufacturer(db: Session, order, type: str, message: str, order_product_id=None,
                        exclude_user_id=None) -> List[Notification]:
    if order.manufacturer_id is None:
        return []
    users = _active_users(db, manufacturer_id=order.manufacturer_id, role="manufacturer")
    return notify_users(db, users, order.id, type, message, order_product_id, exclude_user_id)


def notify_client(db: Session, order, type: str, message: str, order_product_id=None,
                  exclude_user_id=None) -> List[Notification]:
    if order.client_id is None:
        return []
    users = _active_users(db, client_id=order.client_id, role="client")
    return notify_users(db, users, order.id, type, message, order_product_id, exclude_user_id)


def notify_staff(db: Session, order, type: str, message: str, order_product_id=None,
                 exclude_user_id=None) -> List[Notification]:
    """Notify the order's creator and every active admin."""
    users = _active_users(db, role="admin")
    if order.created_by is not None and all(u.id != order.created_by for u in users):
        creator = db.get(User, order.created_by)
        if creator is not None and creator.is_active:
            users.append(creator)
    return notify_users(db, users, order.id, type, message, order_product_id, exclude_user_id)
