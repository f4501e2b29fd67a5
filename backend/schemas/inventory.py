from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator


class InventoryCreate(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int = 0
    min_threshold: int = 0
    max_threshold: Optional[int] = None

    @field_validator("min_threshold")
    @classmethod
    def _min_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("min_threshold must be >= 0")
        return v

    @model_validator(mode="after")
    def _max_above_min(self):
        if self.max_threshold is not None and self.max_threshold < self.min_threshold:
            raise ValueError("max_threshold must be >= min_threshold")
        return self


class InventoryUpdate(BaseModel):
    min_threshold: Optional[int] = None
    max_threshold: Optional[int] = None


class QuantityChange(BaseModel):
    # Signed delta applied to on-hand quantity (result is floored at 0)
    quantity_change: int


class ReservationRequest(BaseModel):
    quantity: int


class InventoryRead(BaseModel):
    id: int
    product_id: int
    warehouse_id: int
    quantity: int
    reserved_quantity: int
    available_quantity: int
    min_threshold: int
    max_threshold: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class WarehouseSummaryRead(BaseModel):
    warehouse_id: int
    warehouse_name: str
    total_products: int
    total_items: int
    total_reserved: int


class TotalQuantityRead(BaseModel):
    total_quantity: int
