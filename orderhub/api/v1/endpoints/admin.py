"""
Admin maintenance endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orderhub.api.v1.deps import CurrentActor
from orderhub.db.session import get_db
from orderhub.schemas.order import StaleDraftPurgeRequest, StaleDraftPurgeResponse
from orderhub.services.order_lifecycle import order_lifecycle_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/cleanup/stale-drafts", response_model=StaleDraftPurgeResponse)
def purge_stale_drafts(data: StaleDraftPurgeRequest, actor: CurrentActor, db: Session = Depends(get_db)):
    """
    Delete drafts created before the retention window (super_admin only).

    Each draft is deleted on its own; failures are listed per order.
    """
    report = order_lifecycle_service.purge_stale_drafts(db, actor, data.older_than_days)
    return StaleDraftPurgeResponse(cutoff=report.cutoff, deleted=report.deleted, failed=report.failed)
