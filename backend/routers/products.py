from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, current_manager
from db.category import Category as CategoryModel
from db.database import get_async_session, utcnow
from db.product import Product as ProductModel
from db.users import User
from schemas.products import ProductCreate, ProductRead, ProductUpdate

router = APIRouter()


async def _get_or_404(db: AsyncSession, product_id: int) -> ProductModel:
    m = await db.get(ProductModel, product_id)
    if m is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return m


async def _ensure_category(db: AsyncSession, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    if await db.get(CategoryModel, category_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")


async def _ensure_sku_free(db: AsyncSession, sku: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(ProductModel.id).where(ProductModel.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(ProductModel.id != exclude_id)
    if (await db.execute(stmt)).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Product with this SKU already exists")


@router.get("/", response_model=List[ProductRead])
async def list_products(
    category_id: Optional[int] = None,
    q: Optional[str] = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    stmt = select(ProductModel)
    if not include_inactive:
        stmt = stmt.where(ProductModel.is_active == True)  # noqa: E712
    if category_id is not None:
        stmt = stmt.where(ProductModel.category_id == category_id)
    if q:
        qq = f"%{q.strip().lower()}%"
        stmt = stmt.where(func.lower(ProductModel.name).like(qq) | func.lower(ProductModel.sku).like(qq))
    res = await db.execute(stmt.order_by(func.lower(ProductModel.name).asc()))
    return [ProductRead(**p.to_schema) for p in res.scalars().all()]


@router.get("/sku/{sku}", response_model=ProductRead)
async def get_product_by_sku(
    sku: str,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    res = await db.execute(select(ProductModel).where(ProductModel.sku == sku.strip().upper()))
    m = res.scalar_one_or_none()
    if m is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return ProductRead(**m.to_schema)


@router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    return ProductRead(**(await _get_or_404(db, product_id)).to_schema)


@router.post("/", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    await _ensure_category(db, payload.category_id)
    await _ensure_sku_free(db, payload.sku)

    m = ProductModel(**payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return ProductRead(**m.to_schema)


@router.patch("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    m = await _get_or_404(db, product_id)

    data = payload.model_dump(exclude_unset=True)
    if "category_id" in data:
        await _ensure_category(db, data["category_id"])
    if data.get("sku"):
        await _ensure_sku_free(db, data["sku"], exclude_id=product_id)
    for field, value in data.items():
        if field in ("name", "sku", "unit_of_measure", "is_active") and value is None:
            continue
        setattr(m, field, value)
    m.updated_at = utcnow()

    await db.commit()
    await db.refresh(m)
    return ProductRead(**m.to_schema)


@router.delete("/{product_id}", response_model=ProductRead)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    m = await _get_or_404(db, product_id)
    # Soft delete; inventory rows stay for history and are excluded from totals
    m.is_active = False
    m.updated_at = utcnow()
    await db.commit()
    await db.refresh(m)
    return ProductRead(**m.to_schema)
