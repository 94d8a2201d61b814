"""
Product routing, status, pricing and shipment schemas
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class RouteRequest(BaseModel):
    """Hand a product (or the sample) to another actor"""
    target: str = Field(..., description="admin, manufacturer or client")
    notes: Optional[str] = Field(None, max_length=5000)


class ChangeRequest(BaseModel):
    notes: str = Field(..., max_length=5000)


class ApproveRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=5000)


class ProductStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = Field(None, max_length=5000)


class ManufacturerPricingUpdate(BaseModel):
    """Costs and scheduling entered by the manufacturer. Unset fields are left alone."""
    product_price: Optional[Decimal] = Field(None, ge=0)
    sample_fee: Optional[Decimal] = Field(None, ge=0)
    shipping_air_price: Optional[Decimal] = Field(None, ge=0)
    shipping_boat_price: Optional[Decimal] = Field(None, ge=0)
    selected_shipping_method: Optional[str] = Field(None, description="air or boat")
    production_start_date: Optional[date] = None
    production_days: Optional[int] = Field(None, ge=0)


class ShipmentUpdate(BaseModel):
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier: Optional[str] = Field(None, max_length=100)
    shipped_date: Optional[date] = None


class QuestionRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=5000)


class BulkRouteRequest(BaseModel):
    action: str = Field(
        ...,
        description="send_to_manufacturer, send_for_approval, send_to_admin, in_production, shipped, approve",
    )
    notes: Optional[str] = Field(None, max_length=5000)


class BulkRouteOutcome(BaseModel):
    order_product_id: int
    product_order_number: Optional[str] = None
    success: bool
    message: Optional[str] = None


class BulkRouteResponse(BaseModel):
    action: str
    succeeded: int
    failed: int
    outcomes: List[BulkRouteOutcome]


class QuestionAnswer(BaseModel):
    answer: Optional[str] = Field(None, max_length=5000)
