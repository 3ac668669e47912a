# backend/schemas/exit_request.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import List, Optional, Literal, Tuple

from utils.dates import to_naive_utc, truncate_to_minute

ExitRequestStatus = Literal["pending", "awaiting_reception", "approved", "rejected"]


class ExitRequestCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    reason: Optional[str] = None
    notes: Optional[str] = None


class ExitRequestOut(BaseModel):
    id: int
    product_id: int
    product_reference: str
    product_designation: str
    product_photo: Optional[str] = None
    quantity: int
    requested_by: int
    requested_by_name: str
    requested_at: datetime
    status: ExitRequestStatus
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    reason: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ExitRequestPage(BaseModel):
    items: List[ExitRequestOut]
    total: int
    page: int
    page_size: int


class RejectPayload(BaseModel):
    reason: str = Field(min_length=1)


# Identifies a basket: requester and the minute of submission
class BasketKey(BaseModel):
    requested_by: int
    minute: datetime

    @field_validator("minute")
    @classmethod
    def naive_utc_minute(cls, v: datetime) -> datetime:
        return truncate_to_minute(to_naive_utc(v))


class BasketRejectPayload(BasketKey):
    reason: str = Field(min_length=1)


class BasketOut(BaseModel):
    requested_by: int
    requested_by_name: str
    minute: datetime
    status: Literal["pending", "approved", "rejected", "mixed"]
    total_quantity: int
    requests: List[ExitRequestOut]

    model_config = ConfigDict(from_attributes=True)


class BasketResult(BaseModel):
    processed: List[int]
    failed: List[Tuple[int, str]]


class PendingExitOut(BaseModel):
    id: int
    exit_request_id: Optional[int] = None
    product_id: int
    product_reference: str
    product_designation: str
    storage_zone: Optional[str] = None
    shelf: Optional[int] = None
    position: Optional[int] = None
    quantity: int
    requested_by: str
    added_at: datetime

    model_config = ConfigDict(from_attributes=True)
