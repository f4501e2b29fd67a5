import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from schemas.inventory import InventoryRead

TransactionType = Literal["IN", "OUT", "ADJUSTMENT", "TRANSFER"]


class TransactionCreate(BaseModel):
    inventory_id: int
    type: TransactionType
    # Units moved; for ADJUSTMENT the new on-hand quantity
    quantity: int
    reason: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    destination_warehouse_id: Optional[int] = None

    @field_validator("reason")
    @classmethod
    def _reason_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("reason is required")
        return v

    @model_validator(mode="after")
    def _transfer_needs_destination(self):
        if self.type == "TRANSFER" and self.destination_warehouse_id is None:
            raise ValueError("destination_warehouse_id is required for transfers")
        return self


class TransactionRead(BaseModel):
    id: int
    inventory_id: int
    warehouse_id: int
    destination_warehouse_id: Optional[int] = None
    type: TransactionType
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_by_user_id: Optional[uuid.UUID] = None
    created_at: datetime


class TransactionResult(BaseModel):
    transaction: TransactionRead
    inventory: InventoryRead


class InventoryTransactionHistory(BaseModel):
    inventory: InventoryRead
    transactions: List[TransactionRead]
    total_transactions: int


class WarehouseTransactionHistory(BaseModel):
    warehouse_id: int
    transactions: List[TransactionRead]
    total_transactions: int


class ReasonCount(BaseModel):
    reason: str
    count: int


class TransactionStats(BaseModel):
    period: str
    total_transactions: int
    by_type: Dict[str, int]
    units_in: int
    units_out: int
    units_transferred: int
    top_reasons: List[ReasonCount]
