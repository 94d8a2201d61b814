"""
Order-level sample schemas
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class SampleUpdate(BaseModel):
    """Unset fields are left alone"""
    sample_required: Optional[bool] = None
    sample_fee: Optional[Decimal] = Field(None, ge=0)
    sample_eta: Optional[date] = None
    sample_notes: Optional[str] = Field(None, max_length=5000)
