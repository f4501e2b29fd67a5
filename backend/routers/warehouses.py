from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, current_manager
from db.database import get_async_session, utcnow
from db.users import User
from db.warehouse import Warehouse as WarehouseModel
from schemas.warehouses import WarehouseCreate, WarehouseRead, WarehouseUpdate

router = APIRouter()


async def _get_or_404(db: AsyncSession, warehouse_id: int) -> WarehouseModel:
    m = await db.get(WarehouseModel, warehouse_id)
    if m is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Warehouse not found")
    return m


@router.get("/", response_model=List[WarehouseRead])
async def list_warehouses(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    stmt = select(WarehouseModel)
    if not include_inactive:
        stmt = stmt.where(WarehouseModel.is_active == True)  # noqa: E712
    res = await db.execute(stmt.order_by(func.lower(WarehouseModel.name).asc()))
    return [WarehouseRead(**w.to_schema) for w in res.scalars().all()]


@router.get("/{warehouse_id}", response_model=WarehouseRead)
async def get_warehouse(
    warehouse_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    return WarehouseRead(**(await _get_or_404(db, warehouse_id)).to_schema)


@router.post("/", response_model=WarehouseRead, status_code=status.HTTP_201_CREATED)
async def create_warehouse(
    payload: WarehouseCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    existing = await db.execute(
        select(WarehouseModel).where(func.lower(WarehouseModel.name) == payload.name.lower())
    )
    if existing.scalars().first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Warehouse already exists")

    m = WarehouseModel(**payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return WarehouseRead(**m.to_schema)


@router.patch("/{warehouse_id}", response_model=WarehouseRead)
async def update_warehouse(
    warehouse_id: int,
    payload: WarehouseUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    m = await _get_or_404(db, warehouse_id)

    data = payload.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is not None:
        m.name = data["name"].strip()
    for field in ("address", "contact_person", "contact_email", "contact_phone"):
        if field in data:
            setattr(m, field, data[field])
    if data.get("is_active") is not None:
        m.is_active = data["is_active"]
    m.updated_at = utcnow()

    await db.commit()
    await db.refresh(m)
    return WarehouseRead(**m.to_schema)


@router.delete("/{warehouse_id}", response_model=WarehouseRead)
async def delete_warehouse(
    warehouse_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    m = await _get_or_404(db, warehouse_id)
    # Soft delete
    m.is_active = False
    m.updated_at = utcnow()
    await db.commit()
    await db.refresh(m)
    return WarehouseRead(**m.to_schema)
