"""
Order Products API Endpoints

Routing, client answers, manufacturer work states, pricing entry, shipment,
questions, ETA, item approval summary and product media.
"""
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from orderhub.api.v1.deps import CurrentActor, get_store
from orderhub.api.v1.endpoints.orders import build_product_response
from orderhub.core.permissions import Actor, ensure_can_view
from orderhub.core.pricing_config import get_margin_config
from orderhub.db.session import get_db
from orderhub.exceptions import NotFoundError
from orderhub.integrations.blob_store import BlobStore
from orderhub.models.order import OrderProduct
from orderhub.schemas.approval import ItemApprovalSummary as ItemApprovalSummaryResponse
from orderhub.schemas.media import MediaBatchResponse, MediaFailure, MediaResponse
from orderhub.schemas.order import EtaResponse, OrderProductResponse
from orderhub.schemas.routing import (
    ApproveRequest,
    ChangeRequest,
    ManufacturerPricingUpdate,
    ProductStatusUpdate,
    QuestionAnswer,
    QuestionRequest,
    RouteRequest,
    ShipmentUpdate,
)
from orderhub.services.approval_gate import item_approval_summary
from orderhub.services.eta import calculate_eta
from orderhub.services.media_service import MediaBatchResult, MediaUpload, attach_media
from orderhub.services.routing import routing_service

router = APIRouter(prefix="/order-products", tags=["Order Products"])


def _product_response(db: Session, actor: Actor, product: OrderProduct) -> OrderProductResponse:
    return build_product_response(product, actor, get_margin_config(db, product.order.client))


def _visible_product(db: Session, actor: Actor, order_product_id: int) -> OrderProduct:
    product = db.get(OrderProduct, order_product_id)
    if product is None:
        raise NotFoundError("Order product", order_product_id)
    ensure_can_view(actor, product.order)
    return product


def media_batch_response(result: MediaBatchResult) -> MediaBatchResponse:
    return MediaBatchResponse(
        uploaded=[MediaResponse.model_validate(m) for m in result.uploaded],
        failed=[MediaFailure(filename=f.filename, message=f.message) for f in result.failed],
    )


async def read_uploads(files: List[UploadFile]) -> List[MediaUpload]:
    uploads = []
    for file in files:
        content = await file.read()
        uploads.append(MediaUpload(
            filename=file.filename or "file",
            content=content,
            content_type=file.content_type,
        ))
    return uploads


# ============================================================================
# ROUTING
# ============================================================================

@router.post("/{order_product_id}/route", response_model=OrderProductResponse)
def route_product(order_product_id: int, data: RouteRequest, actor: CurrentActor, db: Session = Depends(get_db)):
    """Hand the product to admin, manufacturer or client."""
    product = routing_service.route_product(db, actor, order_product_id, data.target, data.notes)
    return _product_response(db, actor, product)


@router.post("/{order_product_id}/approve", response_model=OrderProductResponse)
def approve_product(order_product_id: int, data: ApproveRequest, actor: CurrentActor,
                    db: Session = Depends(get_db)):
    """Client approval; custody returns to staff."""
    product = routing_service.approve_product(db, actor, order_product_id, data.notes)
    return _product_response(db, actor, product)


@router.post("/{order_product_id}/request-changes", response_model=OrderProductResponse)
def request_changes(order_product_id: int, data: ChangeRequest, actor: CurrentActor,
                    db: Session = Depends(get_db)):
    product = routing_service.request_product_changes(db, actor, order_product_id, data.notes)
    return _product_response(db, actor, product)


# ============================================================================
# MANUFACTURER WORK
# ============================================================================

@router.post("/{order_product_id}/status", response_model=OrderProductResponse)
def update_status(order_product_id: int, data: ProductStatusUpdate, actor: CurrentActor,
                  db: Session = Depends(get_db)):
    product = routing_service.update_product_status(db, actor, order_product_id, data.status, data.notes)
    return _product_response(db, actor, product)


@router.put("/{order_product_id}/pricing", response_model=OrderProductResponse)
def update_pricing(order_product_id: int, data: ManufacturerPricingUpdate, actor: CurrentActor,
                   db: Session = Depends(get_db)):
    product = routing_service.update_manufacturer_pricing(db, actor, order_product_id, data)
    return _product_response(db, actor, product)


@router.put("/{order_product_id}/shipment", response_model=OrderProductResponse)
def record_shipment(order_product_id: int, data: ShipmentUpdate, actor: CurrentActor,
                    db: Session = Depends(get_db)):
    product = routing_service.record_product_shipment(db, actor, order_product_id, data)
    return _product_response(db, actor, product)


@router.post("/{order_product_id}/question", response_model=OrderProductResponse)
def raise_question(order_product_id: int, data: QuestionRequest, actor: CurrentActor,
                   db: Session = Depends(get_db)):
    product = routing_service.raise_question(db, actor, order_product_id, data.question)
    return _product_response(db, actor, product)


@router.post("/{order_product_id}/question/resolve", response_model=OrderProductResponse)
def resolve_question(order_product_id: int, data: QuestionAnswer, actor: CurrentActor,
                     db: Session = Depends(get_db)):
    product = routing_service.resolve_question(db, actor, order_product_id, data.answer)
    return _product_response(db, actor, product)


# ============================================================================
# READ-ONLY
# ============================================================================

@router.get("/{order_product_id}/eta", response_model=EtaResponse)
def get_eta(order_product_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    product = _visible_product(db, actor, order_product_id)
    estimate = calculate_eta(product)
    return EtaResponse(
        eta=estimate.eta,
        is_estimate=estimate.is_estimate,
        shipping_method_unset=estimate.shipping_method_unset,
    )


@router.get("/{order_product_id}/approvals", response_model=ItemApprovalSummaryResponse)
def get_item_approvals(order_product_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    product = _visible_product(db, actor, order_product_id)
    summary = item_approval_summary(product)
    return ItemApprovalSummaryResponse(
        order_product_id=summary.order_product_id,
        admin_status=summary.admin_status,
        manufacturer_status=summary.manufacturer_status,
    )


# ============================================================================
# MEDIA
# ============================================================================

@router.post("/{order_product_id}/media", response_model=MediaBatchResponse)
async def upload_product_media(
    order_product_id: int,
    actor: CurrentActor,
    files: List[UploadFile] = File(...),
    store: BlobStore = Depends(get_store),
    db: Session = Depends(get_db),
):
    """
    Upload reference media for a product.

    Files are processed one by one; rejected files are listed under
    ``failed`` with the reason and do not stop the rest.
    """
    product = db.get(OrderProduct, order_product_id)
    if product is None:
        raise NotFoundError("Order product", order_product_id)
    uploads = await read_uploads(files)
    result = attach_media(db, actor, store, product.order_id, uploads, order_product_id=product.id)
    return media_batch_response(result)
