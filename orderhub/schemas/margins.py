"""
Margin settings schemas
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class MarginSettingsResponse(BaseModel):
    product_margin_pct: Decimal
    shipping_margin_pct: Decimal
    sample_margin_pct: Decimal


class MarginSettingsUpdate(BaseModel):
    """Percentages, e.g. 80 for +80%. Unset fields are left alone."""
    product_margin_pct: Optional[Decimal] = Field(None, ge=0, le=1000)
    shipping_margin_pct: Optional[Decimal] = Field(None, ge=0, le=1000)
    sample_margin_pct: Optional[Decimal] = Field(None, ge=0, le=1000)
