"""
Order Pydantic Schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Request Schemas
# ============================================================================

class OrderItemInput(BaseModel):
    """Variant line; id set when patching an existing item"""
    id: Optional[int] = None
    variant_combo: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(0, description="Quantity (must not be negative)")
    notes: Optional[str] = Field(None, max_length=5000)


class OrderProductInput(BaseModel):
    """Order product; id set when patching an existing product"""
    id: Optional[int] = None
    product_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=5000)
    sample_notes: Optional[str] = Field(None, max_length=5000)
    items: List[OrderItemInput] = Field(default_factory=list)


class OrderCreate(BaseModel):
    order_name: Optional[str] = Field(None, max_length=255)
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    products: List[OrderProductInput] = Field(default_factory=list)


class DraftSave(BaseModel):
    """
    Full draft save. Products/items with an id are patched, those without
    are inserted, and existing ones missing from the payload are deleted.
    Leaving ``products`` out keeps the current products untouched.
    """
    version: int = Field(..., ge=1, description="Version the edit was based on")
    order_name: Optional[str] = Field(None, max_length=255)
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    products: Optional[List[OrderProductInput]] = None


class OrderPartiesUpdate(BaseModel):
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None


class ItemQuantityUpdate(BaseModel):
    quantity: int


class OrderTransition(BaseModel):
    status: str = Field(..., description="Target order status")


class StaleDraftPurgeRequest(BaseModel):
    older_than_days: Optional[int] = Field(None, ge=1, description="Defaults to DRAFT_RETENTION_DAYS")


# ============================================================================
# Response Schemas
# ============================================================================

class OrderItemResponse(BaseModel):
    id: int
    variant_combo: str
    quantity: int
    notes: Optional[str] = None
    admin_status: str
    manufacturer_status: str

    model_config = {"from_attributes": True}


class PriceBreakdownResponse(BaseModel):
    unit_price: Decimal
    quantity: int
    sample_fee: Decimal
    shipping_price: Decimal
    total: Decimal


class EtaResponse(BaseModel):
    eta: Optional[date] = None
    is_estimate: bool
    shipping_method_unset: bool


class OrderProductResponse(BaseModel):
    id: int
    order_id: int
    product_id: Optional[int] = None
    sequence: int
    product_order_number: Optional[str] = None
    description: Optional[str] = None
    sample_notes: Optional[str] = None
    routed_to: str
    routed_at: Optional[datetime] = None
    product_status: str
    display_status: str
    question_for_admin: bool
    question_text: Optional[str] = None
    selected_shipping_method: Optional[str] = None
    production_start_date: Optional[date] = None
    production_days: Optional[int] = None
    tracking_number: Optional[str] = None
    shipping_carrier: Optional[str] = None
    shipped_date: Optional[date] = None
    client_approved: bool
    client_approved_at: Optional[datetime] = None
    client_notes: Optional[str] = None
    manufacturer_notes: Optional[str] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
    pricing: Optional[PriceBreakdownResponse] = None
    eta: Optional[EtaResponse] = None

    model_config = {"from_attributes": True}


class SampleResponse(BaseModel):
    sample_required: bool
    sample_status: str
    sample_routed_to: str
    sample_routed_at: Optional[datetime] = None
    sample_fee: Optional[Decimal] = None
    sample_eta: Optional[date] = None
    sample_notes: Optional[str] = None
    sample_tracking_number: Optional[str] = None
    sample_carrier: Optional[str] = None
    sample_shipped_date: Optional[date] = None
    sample_approved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RoutingSummaryResponse(BaseModel):
    kind: str
    label: str
    staff: int
    manufacturer: int
    client: int
    total: int


class OrderTotalsResponse(BaseModel):
    products: Dict[int, PriceBreakdownResponse]
    products_total: Decimal
    sample_fee: Decimal


class OrderListResponse(BaseModel):
    id: int
    order_number: str
    order_name: Optional[str] = None
    status: str
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime
    product_count: int
    routing: RoutingSummaryResponse
    total: Decimal


class OrderResponse(BaseModel):
    id: int
    order_number: str
    order_name: Optional[str] = None
    status: str
    version: int
    client_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    allowed_transitions: List[str] = Field(default_factory=list)
    sample: SampleResponse
    products: List[OrderProductResponse] = Field(default_factory=list)
    routing: RoutingSummaryResponse
    totals: OrderTotalsResponse


class DeletionReportResponse(BaseModel):
    order_id: int
    order_number: Optional[str] = None
    deleted: Dict[str, int]
    optional_skipped: List[str] = Field(default_factory=list)
    optional_failed: Dict[str, str] = Field(default_factory=dict)


class StaleDraftPurgeResponse(BaseModel):
    cutoff: datetime
    deleted: List[str]
    failed: Dict[str, str]
