"""
Approval gate schemas
"""
from typing import Dict

from pydantic import BaseModel, Field


class ItemDecision(BaseModel):
    field: str = Field(..., description="admin_status or manufacturer_status")
    decision: str = Field(..., description="approved or rejected")


class SampleDecision(BaseModel):
    decision: str = Field(..., description="approved or rejected")
    notes: str = Field("", max_length=5000)


class ItemApprovalSummary(BaseModel):
    """Counts per field; the two fields are reported side by side, never merged"""
    order_product_id: int
    admin_status: Dict[str, int]
    manufacturer_status: Dict[str, int]
