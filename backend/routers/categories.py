from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, current_manager
from db.category import Category as CategoryModel
from db.database import get_async_session, utcnow
from db.product import Product as ProductModel
from db.users import User
from schemas.categories import CategoryCreate, CategoryRead, CategoryUpdate

router = APIRouter()


async def _get_or_404(db: AsyncSession, category_id: int) -> CategoryModel:
    m = await db.get(CategoryModel, category_id)
    if m is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return m


@router.get("/", response_model=List[CategoryRead])
async def list_categories(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    stmt = select(CategoryModel)
    if not include_inactive:
        stmt = stmt.where(CategoryModel.is_active == True)  # noqa: E712
    res = await db.execute(stmt.order_by(func.lower(CategoryModel.name).asc()))
    return [CategoryRead(**c.to_schema) for c in res.scalars().all()]


@router.get("/{category_id}", response_model=CategoryRead)
async def get_category(
    category_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    return CategoryRead(**(await _get_or_404(db, category_id)).to_schema)


@router.get("/{category_id}/subcategories", response_model=List[CategoryRead])
async def list_subcategories(
    category_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    await _get_or_404(db, category_id)
    res = await db.execute(
        select(CategoryModel)
        .where(CategoryModel.parent_id == category_id, CategoryModel.is_active == True)  # noqa: E712
        .order_by(func.lower(CategoryModel.name).asc())
    )
    return [CategoryRead(**c.to_schema) for c in res.scalars().all()]


@router.post("/", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    if payload.parent_id is not None:
        await _get_or_404(db, payload.parent_id)

    existing = await db.execute(
        select(CategoryModel).where(
            func.lower(CategoryModel.name) == payload.name.lower(),
            CategoryModel.is_active == True,  # noqa: E712
        )
    )
    if existing.scalars().first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists")

    m = CategoryModel(name=payload.name, description=payload.description, parent_id=payload.parent_id)
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return CategoryRead(**m.to_schema)


@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    m = await _get_or_404(db, category_id)

    data = payload.model_dump(exclude_unset=True)
    if "parent_id" in data and data["parent_id"] is not None:
        if data["parent_id"] == category_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category cannot be its own parent")
        await _get_or_404(db, data["parent_id"])
    for field in ("name", "description", "parent_id", "is_active"):
        if field in data and (data[field] is not None or field in ("description", "parent_id")):
            setattr(m, field, data[field])
    m.updated_at = utcnow()

    await db.commit()
    await db.refresh(m)
    return CategoryRead(**m.to_schema)


@router.delete("/{category_id}", response_model=CategoryRead)
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_manager),
):
    m = await _get_or_404(db, category_id)

    in_use = await db.execute(
        select(func.count(ProductModel.id)).where(
            ProductModel.category_id == category_id,
            ProductModel.is_active == True,  # noqa: E712
        )
    )
    if int(in_use.scalar_one() or 0) > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category has active products; reassign or deactivate them first",
        )

    # Soft delete
    m.is_active = False
    m.updated_at = utcnow()
    await db.commit()
    await db.refresh(m)
    return CategoryRead(**m.to_schema)
