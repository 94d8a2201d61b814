"""
Orders API Endpoints

Order creation, listing, draft editing, submission, transitions, totals,
bulk routing and deletion. Prices and ETAs are computed on every read.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from orderhub.api.v1.deps import CurrentActor, get_pagination
from orderhub.core.permissions import Actor
from orderhub.core.pricing_config import MarginConfig, get_margin_config
from orderhub.core.status_config import get_allowed_order_transitions
from orderhub.db.session import get_db
from orderhub.logging_config import get_logger
from orderhub.models.order import Order, OrderProduct
from orderhub.schemas.common import ListResponse, PaginationMeta
from orderhub.schemas.order import (
    DeletionReportResponse,
    DraftSave,
    EtaResponse,
    OrderCreate,
    OrderListResponse,
    OrderPartiesUpdate,
    OrderProductInput,
    OrderProductResponse,
    OrderResponse,
    OrderTotalsResponse,
    OrderTransition,
    PriceBreakdownResponse,
    RoutingSummaryResponse,
    SampleResponse,
)
from orderhub.schemas.routing import BulkRouteOutcome, BulkRouteRequest, BulkRouteResponse
from orderhub.services.eta import calculate_eta
from orderhub.services.order_lifecycle import order_lifecycle_service
from orderhub.services.pricing import compute_totals, order_total, price_breakdown
from orderhub.services.routing import RoutingSummary, routing_summary, routing_service

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


# ============================================================================
# RESPONSE BUILDERS
# ============================================================================

def _routing_response(summary: RoutingSummary) -> RoutingSummaryResponse:
    return RoutingSummaryResponse(
        kind=summary.kind,
        label=summary.label,
        staff=summary.staff,
        manufacturer=summary.manufacturer,
        client=summary.client,
        total=summary.total,
    )


def _breakdown_response(breakdown) -> PriceBreakdownResponse:
    return PriceBreakdownResponse(
        unit_price=breakdown.unit_price,
        quantity=breakdown.quantity,
        sample_fee=breakdown.sample_fee,
        shipping_price=breakdown.shipping_price,
        total=breakdown.total,
    )


def build_product_response(product: OrderProduct, actor: Actor, margin_cfg: MarginConfig) -> OrderProductResponse:
    response = OrderProductResponse.model_validate(product)
    response.pricing = _breakdown_response(price_breakdown(product, actor.role, margin_cfg))
    estimate = calculate_eta(product)
    response.eta = EtaResponse(
        eta=estimate.eta,
        is_estimate=estimate.is_estimate,
        shipping_method_unset=estimate.shipping_method_unset,
    )
    return response


def build_totals_response(order: Order, actor: Actor, margin_cfg: MarginConfig) -> OrderTotalsResponse:
    totals = compute_totals(order, actor.role, margin_cfg)
    return OrderTotalsResponse(
        products={p.order_product_id: _breakdown_response(p.breakdown) for p in totals.products},
        products_total=totals.products_total,
        sample_fee=totals.sample_fee,
    )


def build_order_response(db: Session, actor: Actor, order: Order) -> OrderResponse:
    margin_cfg = get_margin_config(db, order.client)
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        order_name=order.order_name,
        status=order.status,
        version=order.version,
        client_id=order.client_id,
        manufacturer_id=order.manufacturer_id,
        created_by=order.created_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        submitted_at=order.submitted_at,
        completed_at=order.completed_at,
        allowed_transitions=get_allowed_order_transitions(order.status),
        sample=SampleResponse.model_validate(order),
        products=[build_product_response(p, actor, margin_cfg) for p in order.products],
        routing=_routing_response(routing_summary(order, actor.role)),
        totals=build_totals_response(order, actor, margin_cfg),
    )


def _reload(db: Session, actor: Actor, order_id: int) -> OrderResponse:
    order = order_lifecycle_service.get_order(db, actor, order_id)
    return build_order_response(db, actor, order)


# ============================================================================
# ORDERS
# ============================================================================

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(data: OrderCreate, actor: CurrentActor, db: Session = Depends(get_db)):
    """
    Create an order.

    Staff create a draft; a client creates a client request for their own
    account.
    """
    order = order_lifecycle_service.create_order(db, actor, data)
    return _reload(db, actor, order.id)


@router.get("", response_model=ListResponse[OrderListResponse])
def list_orders(
    actor: CurrentActor,
    status_filter: Optional[str] = Query(None, alias="status"),
    pagination: dict = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """List orders visible to the caller with routing summary and total."""
    orders, total = order_lifecycle_service.list_orders(
        db, actor, status=status_filter, offset=pagination["offset"], limit=pagination["limit"]
    )
    items = []
    for order in orders:
        margin_cfg = get_margin_config(db, order.client)
        items.append(OrderListResponse(
            id=order.id,
            order_number=order.order_number,
            order_name=order.order_name,
            status=order.status,
            client_id=order.client_id,
            manufacturer_id=order.manufacturer_id,
            created_by=order.created_by,
            created_at=order.created_at,
            product_count=len(order.products),
            routing=_routing_response(routing_summary(order, actor.role)),
            total=order_total(order, actor.role, margin_cfg),
        ))
    return ListResponse[OrderListResponse](
        items=items,
        pagination=PaginationMeta(
            total=total, offset=pagination["offset"], limit=pagination["limit"], returned=len(items)
        ),
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    return _reload(db, actor, order_id)


@router.get("/{order_id}/totals", response_model=OrderTotalsResponse)
def get_order_totals(order_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    """Per-product prices, their sum, and the order-level sample fee."""
    order = order_lifecycle_service.get_order(db, actor, order_id)
    return build_totals_response(order, actor, get_margin_config(db, order.client))


# ============================================================================
# DRAFT EDITING
# ============================================================================

@router.put("/{order_id}/draft", response_model=OrderResponse)
def save_draft(order_id: int, data: DraftSave, actor: CurrentActor, db: Session = Depends(get_db)):
    """
    Save a draft.

    Send the version you loaded; if someone saved in between, the request
    fails with 409 CONCURRENCY_ERROR and nothing is overwritten.
    """
    order_lifecycle_service.save_draft(db, actor, order_id, data)
    return _reload(db, actor, order_id)


@router.put("/{order_id}/parties", response_model=OrderResponse)
def set_parties(order_id: int, data: OrderPartiesUpdate, actor: CurrentActor, db: Session = Depends(get_db)):
    order_lifecycle_service.set_parties(db, actor, order_id, data.client_id, data.manufacturer_id)
    return _reload(db, actor, order_id)


@router.post("/{order_id}/products", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def add_product(order_id: int, data: OrderProductInput, actor: CurrentActor, db: Session = Depends(get_db)):
    order_lifecycle_service.add_product(db, actor, order_id, data)
    return _reload(db, actor, order_id)


@router.delete("/{order_id}/products/{order_product_id}", response_model=OrderResponse)
def remove_product(order_id: int, order_product_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    order_lifecycle_service.remove_product(db, actor, order_id, order_product_id)
    return _reload(db, actor, order_id)


# ============================================================================
# LIFECYCLE
# ============================================================================

@router.post("/{order_id}/submit", response_model=OrderResponse)
def submit_order(order_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    order_lifecycle_service.submit(db, actor, order_id)
    return _reload(db, actor, order_id)


@router.post("/{order_id}/transition", response_model=OrderResponse)
def transition_order(order_id: int, data: OrderTransition, actor: CurrentActor, db: Session = Depends(get_db)):
    order_lifecycle_service.transition(db, actor, order_id, data.status)
    return _reload(db, actor, order_id)


@router.post("/{order_id}/bulk-route", response_model=BulkRouteResponse)
def bulk_route(order_id: int, data: BulkRouteRequest, actor: CurrentActor, db: Session = Depends(get_db)):
    """Apply one routing action to every product the caller holds; outcomes per product."""
    result = routing_service.bulk_route(db, actor, order_id, data.action, data.notes)
    return BulkRouteResponse(
        action=result.action,
        succeeded=result.succeeded,
        failed=result.failed,
        outcomes=[
            BulkRouteOutcome(
                order_product_id=o.order_product_id,
                product_order_number=o.product_order_number,
                success=o.success,
                message=o.message,
            )
            for o in result.outcomes
        ],
    )


@router.delete("/{order_id}", response_model=DeletionReportResponse)
def delete_order(order_id: int, actor: CurrentActor, db: Session = Depends(get_db)):
    """
    Delete an order and everything that depends on it.

    super_admin may delete any order; admin only drafts.
    """
    report = order_lifecycle_service.delete_order(db, actor, order_id)
    return DeletionReportResponse(
        order_id=report.order_id,
        order_number=report.order_number,
        deleted=report.deleted,
        optional_skipped=report.optional_skipped,
        optional_failed=report.optional_failed,
    )
