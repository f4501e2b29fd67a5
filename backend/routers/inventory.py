from typing import List, Optional

from fastapi import APIRouter, Depends, status

from core.auth import current_active_user, current_manager
from core.errors import NotFoundError
from db.inventory import InventoryLedger, get_ledger
from db.users import User
from schemas.inventory import (
    InventoryCreate,
    InventoryRead,
    InventoryUpdate,
    QuantityChange,
    ReservationRequest,
    TotalQuantityRead,
    WarehouseSummaryRead,
)

router = APIRouter()


def _serialize(records) -> List[InventoryRead]:
    return [InventoryRead(**r.to_schema) for r in records]


@router.post("/", response_model=InventoryRead, status_code=status.HTTP_201_CREATED)
async def create_inventory_record(
    payload: InventoryCreate,
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    record = await ledger.create(
        product_id=payload.product_id,
        warehouse_id=payload.warehouse_id,
        quantity=payload.quantity,
        min_threshold=payload.min_threshold,
        max_threshold=payload.max_threshold,
    )
    return InventoryRead(**record.to_schema)


@router.get("/", response_model=List[InventoryRead])
async def list_inventory_records(
    product_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _serialize(await ledger.list_records(product_id=product_id, warehouse_id=warehouse_id))


@router.get("/low-stock", response_model=List[InventoryRead])
async def get_low_stock(
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _serialize(await ledger.find_low_stock())


@router.get("/out-of-stock", response_model=List[InventoryRead])
async def get_out_of_stock(
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _serialize(await ledger.find_out_of_stock())


@router.get("/summary/warehouse", response_model=List[WarehouseSummaryRead])
async def get_summary_by_warehouse(
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return [WarehouseSummaryRead(**row) for row in await ledger.summary_by_warehouse()]


@router.get("/total-quantity", response_model=TotalQuantityRead)
async def get_total_quantity(
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return TotalQuantityRead(total_quantity=await ledger.total_quantity())


@router.get("/product/{product_id}", response_model=List[InventoryRead])
async def get_inventory_by_product(
    product_id: int,
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _serialize(await ledger.find_by_product(product_id))


@router.get("/warehouse/{warehouse_id}", response_model=List[InventoryRead])
async def get_inventory_by_warehouse(
    warehouse_id: int,
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _serialize(await ledger.find_by_warehouse(warehouse_id))


@router.get("/{inventory_id}", response_model=InventoryRead)
async def get_inventory_record(
    inventory_id: int,
    user: User = Depends(current_active_user),
    ledger: InventoryLedger = Depends(get_ledger),
):
    record = await ledger.get_by_id(inventory_id)
    if record is None:
        raise NotFoundError(f"Inventory record {inventory_id} not found")
    return InventoryRead(**record.to_schema)


@router.put("/{inventory_id}", response_model=InventoryRead)
async def update_inventory_thresholds(
    inventory_id: int,
    payload: InventoryUpdate,
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    data = payload.model_dump(exclude_unset=True)
    record = await ledger.update_thresholds(inventory_id, **data)
    return InventoryRead(**record.to_schema)


@router.put("/{inventory_id}/quantity", response_model=InventoryRead)
async def adjust_inventory_quantity(
    inventory_id: int,
    payload: QuantityChange,
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    record = await ledger.adjust_quantity(inventory_id, payload.quantity_change)
    return InventoryRead(**record.to_schema)


@router.put("/{inventory_id}/reserve", response_model=InventoryRead)
async def reserve_inventory_quantity(
    inventory_id: int,
    payload: ReservationRequest,
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    record = await ledger.reserve_quantity(inventory_id, payload.quantity)
    return InventoryRead(**record.to_schema)


@router.put("/{inventory_id}/release", response_model=InventoryRead)
async def release_inventory_quantity(
    inventory_id: int,
    payload: ReservationRequest,
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    record = await ledger.release_reserved_quantity(inventory_id, payload.quantity)
    return InventoryRead(**record.to_schema)


@router.delete("/{inventory_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_record(
    inventory_id: int,
    user: User = Depends(current_manager),
    ledger: InventoryLedger = Depends(get_ledger),
):
    if not await ledger.delete(inventory_id):
        raise NotFoundError(f"Inventory record {inventory_id} not found")
