from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class ProductRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    sku: str
    barcode: Optional[str] = None
    unit_of_measure: str
    category_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductCreate(BaseModel):
    name: str
    sku: str
    description: Optional[str] = None
    barcode: Optional[str] = None
    unit_of_measure: str = "piece"
    category_id: Optional[int] = None

    @field_validator("name", "sku", "unit_of_measure")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("sku")
    @classmethod
    def _sku_upper(cls, v: str) -> str:
        return v.upper()


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    barcode: Optional[str] = None
    unit_of_measure: Optional[str] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "sku", "unit_of_measure")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("sku")
    @classmethod
    def _sku_upper_optional(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v
