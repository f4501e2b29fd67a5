from collections import Counter
from typing import Dict, Iterable, List, Literal, Optional, Tuple

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from db.database import get_async_session
from db.inventory import InventoryLedger, InventoryRecord, get_ledger
from db.product import Product as ProductModel
from db.users import User
from db.warehouse import Warehouse as WarehouseModel
from schemas.reports import Alert, AlertList, AlertStats

router = APIRouter()


async def _lookup_names(
    db: AsyncSession, records: Iterable[InventoryRecord]
) -> Tuple[Dict[int, str], Dict[int, str]]:
    records = list(records)
    product_ids = {r.product_id for r in records}
    warehouse_ids = {r.warehouse_id for r in records}
    products: Dict[int, str] = {}
    warehouses: Dict[int, str] = {}
    if product_ids:
        res = await db.execute(select(ProductModel.id, ProductModel.name).where(ProductModel.id.in_(product_ids)))
        products = {pid: name for pid, name in res.all()}
    if warehouse_ids:
        res = await db.execute(
            select(WarehouseModel.id, WarehouseModel.name).where(WarehouseModel.id.in_(warehouse_ids))
        )
        warehouses = {wid: name for wid, name in res.all()}
    return products, warehouses


async def _build_alerts(db: AsyncSession, ledger: InventoryLedger) -> List[Alert]:
    # Out-of-stock rows are also low stock whenever min_threshold >= 0; report each row once.
    out_of_stock = await ledger.find_out_of_stock()
    seen = {r.id for r in out_of_stock}
    low_stock = [r for r in await ledger.find_low_stock() if r.id not in seen]

    products, warehouses = await _lookup_names(db, out_of_stock + low_stock)

    alerts: List[Alert] = []
    for r in out_of_stock:
        alerts.append(
            Alert(
                id=f"out-of-stock:{r.id}",
                type="out-of-stock",
                severity="critical",
                inventory_id=r.id,
                product_id=r.product_id,
                product_name=products.get(r.product_id),
                warehouse_id=r.warehouse_id,
                warehouse_name=warehouses.get(r.warehouse_id),
                current_quantity=int(r.quantity),
                threshold=int(r.min_threshold),
                message="Product is out of stock",
            )
        )
    for r in low_stock:
        alerts.append(
            Alert(
                id=f"low-stock:{r.id}",
                type="low-stock",
                severity="warning",
                inventory_id=r.id,
                product_id=r.product_id,
                product_name=products.get(r.product_id),
                warehouse_id=r.warehouse_id,
                warehouse_name=warehouses.get(r.warehouse_id),
                current_quantity=int(r.quantity),
                threshold=int(r.min_threshold),
                message="Stock level is at or below the minimum threshold",
            )
        )
    return alerts


@router.get("/", response_model=AlertList)
async def list_alerts(
    type: Literal["all", "low-stock", "out-of-stock"] = "all",
    warehouse_id: Optional[int] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    ledger: InventoryLedger = Depends(get_ledger),
):
    alerts = await _build_alerts(db, ledger)
    if type != "all":
        alerts = [a for a in alerts if a.type == type]
    if warehouse_id is not None:
        alerts = [a for a in alerts if a.warehouse_id == warehouse_id]
    return AlertList(alerts=alerts, total_alerts=len(alerts))


@router.get("/stats", response_model=AlertStats)
async def alert_stats(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    ledger: InventoryLedger = Depends(get_ledger),
):
    alerts = await _build_alerts(db, ledger)
    return AlertStats(
        total=len(alerts),
        by_type=dict(Counter(a.type for a in alerts)),
        by_severity=dict(Counter(a.severity for a in alerts)),
    )
