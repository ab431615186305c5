"""Pint request and response schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PintCreate(BaseModel):
    """Record that debtor owes creditor a pint."""
    debtor: str
    creditor: str
    note: str = ""
    photo_ref: Optional[str] = None


class PintPaidUpdate(BaseModel):
    paid: bool


class PintEntryResponse(BaseModel):
    id: Optional[str] = None
    note: str
    created_at: datetime
    paid: bool
    photo_ref: Optional[str] = None


class BucketResponse(BaseModel):
    """Every pint one member owes another, oldest first."""
    debtor: str
    creditor: str
    entries: List[PintEntryResponse] = Field(default_factory=list)
    unpaid_count: int = 0
    paid_count: int = 0


class PhotoResponse(BaseModel):
    photo_ref: str
