from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TransferRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StockTransferRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    product_id: str
    sku: str
    from_location_id: str
    to_location_id: str
    quantity: int = Field(default=1, ge=1)
    requesting_user_id: str
    status: TransferRequestStatus = TransferRequestStatus.PENDING
    created_at: datetime


class LocationStock(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    location_id: str
    product_id: str
    stock: int


class ProductAvailability(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    product_id: str
    in_stock_here: bool
    other_locations: list[LocationStock] = Field(default_factory=list)

    @property
    def can_request_transfer(self) -> bool:
        return not self.in_stock_here and bool(self.other_locations)
