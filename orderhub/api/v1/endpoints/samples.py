"""
Sample API Endpoints

The order-level sample: routing, details, shipment, client decision, media.
"""
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from orderhub.api.v1.deps import CurrentActor, get_store
from orderhub.api.v1.endpoints.order_products import media_batch_response, read_uploads
from orderhub.db.session import get_db
from orderhub.integrations.blob_store import BlobStore
from orderhub.schemas.approval import SampleDecision
from orderhub.schemas.media import MediaBatchResponse
from orderhub.schemas.order import SampleResponse
from orderhub.schemas.routing import RouteRequest, ShipmentUpdate
from orderhub.schemas.sample import SampleUpdate
from orderhub.services import sample_workflow
from orderhub.services.approval_gate import decide_sample
from orderhub.services.media_service import attach_media

router = APIRouter(prefix="/orders/{order_id}/sample", tags=["Samples"])


@router.post("/route", response_model=SampleResponse)
def route_sample(order_id: int, data: RouteRequest, actor: CurrentActor, db: Session = Depends(get_db)):
    return sample_workflow.route_sample(db, actor, order_id, data.target, data.notes)


@router.put("", response_model=SampleResponse)
def update_sample(order_id: int, data: SampleUpdate, actor: CurrentActor, db: Session = Depends(get_db)):
    return sample_workflow.update_sample(db, actor, order_id, data)


@router.put("/shipment", response_model=SampleResponse)
def record_sample_shipment(order_id: int, data: ShipmentUpdate, actor: CurrentActor,
                           db: Session = Depends(get_db)):
    return sample_workflow.record_sample_shipment(db, actor, order_id, data)


@router.post("/decision", response_model=SampleResponse)
def decide(order_id: int, data: SampleDecision, actor: CurrentActor, db: Session = Depends(get_db)):
    """Client approves or rejects the sample. The first decision is final."""
    return decide_sample(db, actor, order_id, data.decision, data.notes)


@router.post("/media", response_model=MediaBatchResponse)
async def upload_sample_media(
    order_id: int,
    actor: CurrentActor,
    files: List[UploadFile] = File(...),
    store: BlobStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    uploads = await read_uploads(files)
    result = attach_media(db, actor, store, order_id, uploads, is_sample=True)
    return media_batch_response(result)
