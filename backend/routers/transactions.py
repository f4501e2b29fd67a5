from datetime import timedelta
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, current_manager
from core.errors import NotFoundError
from db.database import get_async_session, utcnow
from db.inventory import InventoryLedger, get_ledger
from db.users import User
from db.warehouse import Warehouse as WarehouseModel
from schemas.inventory import InventoryRead
from schemas.transactions import (
    InventoryTransactionHistory,
    TransactionCreate,
    TransactionRead,
    TransactionResult,
    TransactionStats,
    WarehouseTransactionHistory,
)

router = APIRouter()

STATS_PERIODS = {"1d": 1, "7d": 7, "30d": 30}


@router.post("/", response_model=TransactionResult, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    transaction, record = await ledger.record_transaction(
        inventory_id=payload.inventory_id,
        type=payload.type,
        quantity=payload.quantity,
        reason=payload.reason,
        reference=payload.reference,
        notes=payload.notes,
        destination_warehouse_id=payload.destination_warehouse_id,
        created_by_user_id=user.id,
    )
    return TransactionResult(
        transaction=TransactionRead(**transaction.to_schema),
        inventory=InventoryRead(**record.to_schema),
    )


@router.get("/inventory/{inventory_id}", response_model=InventoryTransactionHistory)
async def get_inventory_transactions(
    inventory_id: int,
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    record = await ledger.get_by_id(inventory_id)
    if record is None:
        raise NotFoundError(f"Inventory record {inventory_id} not found")
    transactions = await ledger.list_transactions(inventory_id=inventory_id, limit=limit)
    return InventoryTransactionHistory(
        inventory=InventoryRead(**record.to_schema),
        transactions=[TransactionRead(**t.to_schema) for t in transactions],
        total_transactions=len(transactions),
    )


@router.get("/warehouse/{warehouse_id}", response_model=WarehouseTransactionHistory)
async def get_warehouse_transactions(
    warehouse_id: int,
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
    ledger: InventoryLedger = Depends(get_ledger),
):
    if await db.get(WarehouseModel, warehouse_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Warehouse not found")
    transactions = await ledger.list_transactions(warehouse_id=warehouse_id, limit=limit)
    return WarehouseTransactionHistory(
        warehouse_id=warehouse_id,
        transactions=[TransactionRead(**t.to_schema) for t in transactions],
        total_transactions=len(transactions),
    )


@router.get("/stats", response_model=TransactionStats)
async def get_transaction_stats(
    period: Literal["1d", "7d", "30d"] = "30d",
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    since = utcnow() - timedelta(days=STATS_PERIODS[period])
    return TransactionStats(period=period, **await ledger.transaction_stats(since=since))
