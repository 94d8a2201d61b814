"""
Client and manufacturer schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=255)
    custom_margin_percentage: Optional[Decimal] = Field(None, ge=0, le=1000)
    custom_sample_margin_percentage: Optional[Decimal] = Field(None, ge=0, le=1000)


class ClientResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    custom_margin_percentage: Optional[Decimal] = None
    custom_sample_margin_percentage: Optional[Decimal] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ManufacturerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=255)


class ManufacturerResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
