"""
Order Items API Endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orderhub.api.v1.deps import CurrentActor
from orderhub.db.session import get_db
from orderhub.schemas.approval import ItemDecision
from orderhub.schemas.order import ItemQuantityUpdate, OrderItemResponse
from orderhub.services.approval_gate import decide_item
from orderhub.services.order_lifecycle import order_lifecycle_service

router = APIRouter(prefix="/order-items", tags=["Order Items"])


@router.post("/{item_id}/decision", response_model=OrderItemResponse)
def decide(item_id: int, data: ItemDecision, actor: CurrentActor, db: Session = Depends(get_db)):
    """
    Approve or reject an item.

    Approver staff decide admin_status; the assigned manufacturer decides
    manufacturer_status. A field can be decided once (409 afterwards).
    """
    return decide_item(db, actor, item_id, data.field, data.decision)


@router.put("/{item_id}/quantity", response_model=OrderItemResponse)
def update_quantity(item_id: int, data: ItemQuantityUpdate, actor: CurrentActor, db: Session = Depends(get_db)):
    """Change an item quantity (drafts only)."""
    return order_lifecycle_service.update_item_quantity(db, actor, item_id, data.quantity)
