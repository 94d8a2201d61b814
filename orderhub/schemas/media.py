"""
Media attachment schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class MediaResponse(BaseModel):
    id: int
    order_id: int
    order_product_id: Optional[int] = None
    is_sample: bool
    kind: str
    file_url: str
    original_filename: Optional[str] = None
    uploaded_by: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MediaFailure(BaseModel):
    filename: str
    message: str


class MediaBatchResponse(BaseModel):
    uploaded: List[MediaResponse]
    failed: List[MediaFailure]
