from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from db.category import Category as CategoryModel
from db.database import get_async_session
from db.inventory import InventoryLedger, InventoryRecord, get_ledger
from db.product import Product as ProductModel
from db.users import User
from db.warehouse import Warehouse as WarehouseModel
from routers.alerts import _lookup_names
from schemas.reports import DashboardOverview, RecentActivity

router = APIRouter()

RECENT_ACTIVITY_LIMIT = 5


async def _count_active(db: AsyncSession, model) -> int:
    res = await db.execute(select(func.count(model.id)).where(model.is_active == True))  # noqa: E712
    return int(res.scalar_one() or 0)


@router.get("/overview", response_model=DashboardOverview)
async def dashboard_overview(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    ledger: InventoryLedger = Depends(get_ledger),
):
    summary = await ledger.summary_by_warehouse()

    res = await db.execute(
        select(InventoryRecord)
        .order_by(InventoryRecord.updated_at.desc(), InventoryRecord.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )
    recent = list(res.scalars().all())
    products, warehouses = await _lookup_names(db, recent)

    return DashboardOverview(
        total_products=await _count_active(db, ProductModel),
        total_categories=await _count_active(db, CategoryModel),
        total_warehouses=await _count_active(db, WarehouseModel),
        total_quantity=await ledger.total_quantity(),
        total_reserved=sum(row["total_reserved"] for row in summary),
        low_stock_items=len(await ledger.find_low_stock()),
        out_of_stock_items=len(await ledger.find_out_of_stock()),
        recent_activity=[
            RecentActivity(
                inventory_id=r.id,
                product_id=r.product_id,
                product_name=products.get(r.product_id),
                warehouse_id=r.warehouse_id,
                warehouse_name=warehouses.get(r.warehouse_id),
                quantity=int(r.quantity),
                reserved_quantity=int(r.reserved_quantity),
                updated_at=r.updated_at,
            )
            for r in recent
        ],
    )
