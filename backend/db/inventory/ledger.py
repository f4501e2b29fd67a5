"""
Inventory ledger: the only writer of `quantity` and `reserved_quantity`.

Every mutation is one short transaction against one row (two for a
transfer):

    lock rows -> read -> compute -> validate -> write -> commit

Rows are serialized by an in-process keyed lock (`RowLocks`) and, on
PostgreSQL, by `SELECT ... FOR UPDATE` inside the transaction. Any failure
rolls the transaction back and the lock is released on every path.
Reads (low stock, summaries) run on committed data without locking.
"""

import asyncio
import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Tuple

from fastapi import Request
from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import (
    ConflictError,
    InsufficientAvailableError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
)
from core.logging import get_logger
from ..database import Database, utcnow
from ..product import Product
from ..warehouse import Warehouse
from .locks import RowLocks
from .record import InventoryRecord
from .transaction import TRANSACTION_TYPES, InventoryTransaction

logger = get_logger(__name__)

_UNSET = object()


def _require_positive(amount: int, what: str) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidArgumentError(f"{what} must be an integer")
    if amount <= 0:
        raise InvalidArgumentError(f"{what} must be > 0")
    return amount


def _check_thresholds(min_threshold, max_threshold) -> None:
    if min_threshold is None or min_threshold < 0:
        raise InvalidArgumentError("min_threshold must be >= 0")
    if max_threshold is not None and max_threshold < min_threshold:
        raise InvalidArgumentError("max_threshold must be >= min_threshold")


def _integrity_violation(e: IntegrityError) -> Optional[str]:
    # Driver messages differ (asyncpg names the constraint, SQLite names the kind)
    message = str(e.orig).lower()
    if "ux_inventory_product_warehouse" in message or "unique" in message or "duplicate key" in message:
        return "unique"
    if "foreign key" in message:
        return "foreign_key"
    return None


class InventoryLedger:
    def __init__(self, database: Database, lock_timeout: Optional[float] = None):
        self.database = database
        self.lock_timeout = lock_timeout
        self.locks = RowLocks(timeout=lock_timeout)

    # ------------------------------------------------------------------
    # sessions / transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.database.session_maker() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageError(f"Inventory read failed: {e.__class__.__name__}") from e

    async def _apply_lock_timeout(self, session: AsyncSession) -> None:
        if self.lock_timeout is None or self.database.dialect != "postgresql":
            return
        ms = int(self.lock_timeout * 1000)
        await session.execute(text(f"SET LOCAL lock_timeout = '{ms}ms'"))

    @asynccontextmanager
    async def _locked_rows(self, *inventory_ids: int) -> AsyncIterator[Tuple[AsyncSession, Dict[int, InventoryRecord]]]:
        """Yield the rows for `inventory_ids` inside one transaction holding all their locks.

        Locks are taken in ascending id order so two multi-row callers can
        never wait on each other. The transaction commits when the block
        exits cleanly and rolls back otherwise.
        """
        ids = sorted(set(inventory_ids))
        try:
            async with AsyncExitStack() as held:
                for inventory_id in ids:
                    await held.enter_async_context(self.locks.hold(inventory_id))
                async with self.database.session_maker() as session:
                    async with session.begin():
                        await self._apply_lock_timeout(session)
                        res = await session.execute(
                            select(InventoryRecord)
                            .where(InventoryRecord.id.in_(ids))
                            .order_by(InventoryRecord.id)
                            .with_for_update()
                        )
                        rows = {r.id: r for r in res.scalars().all()}
                        for inventory_id in ids:
                            if inventory_id not in rows:
                                raise NotFoundError(f"Inventory record {inventory_id} not found")
                        yield session, rows
        except asyncio.TimeoutError as e:
            logger.warning("Inventory row lock timed out", inventory_ids=ids, timeout=self.lock_timeout)
            raise StorageError(f"Timed out waiting for lock on inventory records {ids}") from e
        except SQLAlchemyError as e:
            logger.error("Inventory transaction rolled back", inventory_ids=ids, error=repr(e))
            raise StorageError(f"Inventory update failed: {e.__class__.__name__}") from e

    @asynccontextmanager
    async def _locked_row(self, inventory_id: int) -> AsyncIterator[Tuple[AsyncSession, InventoryRecord]]:
        async with self._locked_rows(inventory_id) as (session, rows):
            yield session, rows[inventory_id]

    # ------------------------------------------------------------------
    # record store
    # ------------------------------------------------------------------

    async def create(
        self,
        product_id: int,
        warehouse_id: int,
        quantity: int = 0,
        min_threshold: int = 0,
        max_threshold: Optional[int] = None,
    ) -> InventoryRecord:
        if quantity < 0:
            raise InvalidArgumentError("quantity must be >= 0")
        _check_thresholds(min_threshold, max_threshold)

        try:
            async with self.database.session_maker() as session:
                async with session.begin():
                    if await session.get(Product, product_id) is None:
                        raise NotFoundError(f"Product {product_id} not found")
                    if await session.get(Warehouse, warehouse_id) is None:
                        raise NotFoundError(f"Warehouse {warehouse_id} not found")

                    res = await session.execute(
                        select(InventoryRecord.id).where(
                            InventoryRecord.product_id == product_id,
                            InventoryRecord.warehouse_id == warehouse_id,
                        )
                    )
                    if res.scalar_one_or_none() is not None:
                        raise ConflictError(
                            "Inventory record already exists for this product and warehouse"
                        )

                    now = utcnow()
                    record = InventoryRecord(
                        product_id=product_id,
                        warehouse_id=warehouse_id,
                        quantity=int(quantity),
                        reserved_quantity=0,
                        min_threshold=int(min_threshold),
                        max_threshold=max_threshold,
                        created_at=now,
                        updated_at=now,
                    )
                    session.add(record)
                    await session.flush()
        except IntegrityError as e:
            violation = _integrity_violation(e)
            if violation == "unique":
                # Lost a race against a concurrent create for the same pair
                raise ConflictError(
                    "Inventory record already exists for this product and warehouse"
                ) from e
            if violation == "foreign_key":
                raise NotFoundError("Product or warehouse not found") from e
            raise StorageError(f"Inventory create failed: {e.__class__.__name__}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Inventory create failed: {e.__class__.__name__}") from e

        logger.info(
            "Inventory record created",
            inventory_id=record.id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=record.quantity,
        )
        return record

    async def get_by_id(self, inventory_id: int) -> Optional[InventoryRecord]:
        async with self._session() as session:
            return await session.get(InventoryRecord, inventory_id)

    async def get_by_product_and_warehouse(self, product_id: int, warehouse_id: int) -> Optional[InventoryRecord]:
        async with self._session() as session:
            res = await session.execute(
                select(InventoryRecord).where(
                    InventoryRecord.product_id == product_id,
                    InventoryRecord.warehouse_id == warehouse_id,
                )
            )
            return res.scalar_one_or_none()

    async def list_records(self, product_id: Optional[int] = None, warehouse_id: Optional[int] = None) -> List[InventoryRecord]:
        stmt = select(InventoryRecord)
        if product_id is not None:
            stmt = stmt.where(InventoryRecord.product_id == product_id)
        if warehouse_id is not None:
            stmt = stmt.where(InventoryRecord.warehouse_id == warehouse_id)
        stmt = stmt.order_by(InventoryRecord.created_at.desc(), InventoryRecord.id.desc())
        async with self._session() as session:
            res = await session.execute(stmt)
            return list(res.scalars().all())

    async def find_by_product(self, product_id: int) -> List[InventoryRecord]:
        async with self._session() as session:
            res = await session.execute(
                select(InventoryRecord)
                .where(InventoryRecord.product_id == product_id)
                .order_by(InventoryRecord.warehouse_id)
            )
            return list(res.scalars().all())

    async def find_by_warehouse(self, warehouse_id: int) -> List[InventoryRecord]:
        async with self._session() as session:
            res = await session.execute(
                select(InventoryRecord)
                .where(InventoryRecord.warehouse_id == warehouse_id)
                .order_by(InventoryRecord.product_id)
            )
            return list(res.scalars().all())

    async def update_thresholds(self, inventory_id: int, min_threshold=_UNSET, max_threshold=_UNSET) -> InventoryRecord:
        if min_threshold is not _UNSET and (min_threshold is None or min_threshold < 0):
            raise InvalidArgumentError("min_threshold must be >= 0")

        async with self._locked_row(inventory_id) as (_session, record):
            new_min = record.min_threshold if min_threshold is _UNSET else int(min_threshold)
            new_max = record.max_threshold if max_threshold is _UNSET else max_threshold
            _check_thresholds(new_min, new_max)
            record.min_threshold = new_min
            record.max_threshold = new_max
            record.updated_at = utcnow()
        return record

    async def delete(self, inventory_id: int) -> bool:
        # Administrative removal: no row lock, no reservation cleanup.
        try:
            async with self.database.session_maker() as session:
                async with session.begin():
                    res = await session.execute(delete(InventoryRecord).where(InventoryRecord.id == inventory_id))
                    deleted = (res.rowcount or 0) > 0
        except SQLAlchemyError as e:
            raise StorageError(f"Inventory delete failed: {e.__class__.__name__}") from e
        if deleted:
            logger.info("Inventory record deleted", inventory_id=inventory_id)
        return deleted

    # ------------------------------------------------------------------
    # mutation engine
    # ------------------------------------------------------------------

    async def adjust_quantity(self, inventory_id: int, delta: int) -> InventoryRecord:
        """Add `delta` to on-hand quantity, flooring the result at zero."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise InvalidArgumentError("quantity change must be an integer")

        async with self._locked_row(inventory_id) as (_session, record):
            before = int(record.quantity)
            raw = before + delta
            new_quantity = max(0, raw)
            if raw < 0:
                logger.warning(
                    "Quantity change clamped at zero",
                    inventory_id=inventory_id,
                    quantity=before,
                    delta=delta,
                )
            record.quantity = new_quantity
            if int(record.reserved_quantity) > new_quantity:
                logger.warning(
                    "Reserved quantity lowered to on-hand quantity",
                    inventory_id=inventory_id,
                    reserved_quantity=int(record.reserved_quantity),
                    quantity=new_quantity,
                )
                record.reserved_quantity = new_quantity
            record.updated_at = utcnow()

        logger.info(
            "Inventory quantity adjusted",
            inventory_id=inventory_id,
            delta=delta,
            quantity=record.quantity,
        )
        return record

    async def reserve_quantity(self, inventory_id: int, amount: int) -> InventoryRecord:
        _require_positive(amount, "quantity")

        async with self._locked_row(inventory_id) as (_session, record):
            available = int(record.quantity) - int(record.reserved_quantity)
            if amount > available:
                raise InsufficientAvailableError(
                    f"Insufficient available quantity. Available={available} requested={amount}",
                    available=available,
                    requested=amount,
                )
            record.reserved_quantity = int(record.reserved_quantity) + amount
            record.updated_at = utcnow()

        logger.info(
            "Inventory quantity reserved",
            inventory_id=inventory_id,
            amount=amount,
            reserved_quantity=record.reserved_quantity,
        )
        return record

    async def release_reserved_quantity(self, inventory_id: int, amount: int) -> InventoryRecord:
        _require_positive(amount, "quantity")

        async with self._locked_row(inventory_id) as (_session, record):
            before = int(record.reserved_quantity)
            if amount > before:
                logger.warning(
                    "Release exceeds reserved quantity, clamped at zero",
                    inventory_id=inventory_id,
                    reserved_quantity=before,
                    amount=amount,
                )
            record.reserved_quantity = max(0, before - amount)
            record.updated_at = utcnow()

        logger.info(
            "Reserved quantity released",
            inventory_id=inventory_id,
            amount=amount,
            reserved_quantity=record.reserved_quantity,
        )
        return record

    async def record_transaction(
        self,
        inventory_id: int,
        type: str,
        quantity: int,
        reason: str,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        destination_warehouse_id: Optional[int] = None,
        created_by_user_id: Optional[uuid.UUID] = None,
    ) -> Tuple[InventoryTransaction, InventoryRecord]:
        """Book a stock movement and apply it to the record in one transaction.

        IN adds `quantity`. OUT removes it and TRANSFER moves it to the same
        product's record in `destination_warehouse_id` (created on first
        transfer); both fail with `InsufficientAvailableError` when
        `quantity` exceeds the unreserved stock. ADJUSTMENT sets on-hand
        quantity to `quantity` outright.
        """
        if type not in TRANSACTION_TYPES:
            raise InvalidArgumentError(f"type must be one of {', '.join(TRANSACTION_TYPES)}")
        _require_positive(quantity, "quantity")
        if not reason or not reason.strip():
            raise InvalidArgumentError("reason is required")

        ids = [inventory_id]
        destination_id = None
        if type == "TRANSFER":
            if destination_warehouse_id is None:
                raise InvalidArgumentError("destination_warehouse_id is required for transfers")
            source = await self.get_by_id(inventory_id)
            if source is None:
                raise NotFoundError(f"Inventory record {inventory_id} not found")
            if destination_warehouse_id == source.warehouse_id:
                raise InvalidArgumentError("destination warehouse must differ from the source warehouse")
            destination = await self.get_by_product_and_warehouse(source.product_id, destination_warehouse_id)
            if destination is not None:
                destination_id = destination.id
                ids.append(destination_id)

        async with self._locked_rows(*ids) as (session, rows):
            record = rows[inventory_id]
            previous = int(record.quantity)
            reserved = int(record.reserved_quantity)

            if type == "IN":
                new_quantity = previous + quantity
            elif type == "ADJUSTMENT":
                new_quantity = quantity
                if reserved > new_quantity:
                    logger.warning(
                        "Reserved quantity lowered to on-hand quantity",
                        inventory_id=inventory_id,
                        reserved_quantity=reserved,
                        quantity=new_quantity,
                    )
                    record.reserved_quantity = new_quantity
            else:
                available = previous - reserved
                if quantity > available:
                    raise InsufficientAvailableError(
                        f"Insufficient available quantity. Available={available} requested={quantity}",
                        available=available,
                        requested=quantity,
                    )
                new_quantity = previous - quantity

            now = utcnow()
            record.quantity = new_quantity
            record.updated_at = now

            if type == "TRANSFER":
                target = rows.get(destination_id) if destination_id is not None else None
                if target is None:
                    if await session.get(Warehouse, destination_warehouse_id) is None:
                        raise NotFoundError(f"Warehouse {destination_warehouse_id} not found")
                    target = InventoryRecord(
                        product_id=record.product_id,
                        warehouse_id=destination_warehouse_id,
                        quantity=0,
                        reserved_quantity=0,
                        min_threshold=0,
                        created_at=now,
                    )
                    session.add(target)
                target.quantity = int(target.quantity) + quantity
                target.updated_at = now

            transaction = InventoryTransaction(
                inventory_id=inventory_id,
                warehouse_id=record.warehouse_id,
                destination_warehouse_id=destination_warehouse_id if type == "TRANSFER" else None,
                type=type,
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=new_quantity,
                reason=reason.strip(),
                reference=reference,
                notes=notes,
                created_by_user_id=created_by_user_id,
                created_at=now,
            )
            session.add(transaction)
            try:
                await session.flush()
            except IntegrityError as e:
                if _integrity_violation(e) == "unique":
                    # A concurrent create claimed the destination pair first
                    raise ConflictError(
                        "Inventory record already exists for this product and warehouse"
                    ) from e
                raise

        logger.info(
            "Inventory transaction recorded",
            transaction_id=transaction.id,
            inventory_id=inventory_id,
            type=type,
            quantity=quantity,
            previous_quantity=previous,
            new_quantity=new_quantity,
        )
        return transaction, record

    async def list_transactions(
        self,
        inventory_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[InventoryTransaction]:
        stmt = select(InventoryTransaction)
        if inventory_id is not None:
            stmt = stmt.where(InventoryTransaction.inventory_id == inventory_id)
        if warehouse_id is not None:
            stmt = stmt.where(
                (InventoryTransaction.warehouse_id == warehouse_id)
                | (InventoryTransaction.destination_warehouse_id == warehouse_id)
            )
        stmt = stmt.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc()).limit(limit)
        async with self._session() as session:
            res = await session.execute(stmt)
            return list(res.scalars().all())

    async def transaction_stats(self, since: Optional[datetime] = None, top: int = 5) -> dict:
        where = [InventoryTransaction.created_at >= since] if since is not None else []
        async with self._session() as session:
            by_type = (
                await session.execute(
                    select(
                        InventoryTransaction.type,
                        func.count(InventoryTransaction.id),
                        func.coalesce(func.sum(InventoryTransaction.quantity), 0),
                    )
                    .where(*where)
                    .group_by(InventoryTransaction.type)
                )
            ).all()
            reasons = (
                await session.execute(
                    select(InventoryTransaction.reason, func.count(InventoryTransaction.id).label("n"))
                    .where(*where)
                    .group_by(InventoryTransaction.reason)
                    .order_by(func.count(InventoryTransaction.id).desc(), InventoryTransaction.reason)
                    .limit(top)
                )
            ).all()

        counts = {t: 0 for t in TRANSACTION_TYPES}
        units = {t: 0 for t in TRANSACTION_TYPES}
        for type_, n, qty in by_type:
            counts[type_] = int(n)
            units[type_] = int(qty or 0)
        return {
            "total_transactions": sum(counts.values()),
            "by_type": counts,
            "units_in": units["IN"],
            "units_out": units["OUT"],
            "units_transferred": units["TRANSFER"],
            "top_reasons": [{"reason": r, "count": int(n)} for r, n in reasons],
        }

    # ------------------------------------------------------------------
    # query layer
    # ------------------------------------------------------------------

    async def find_low_stock(self) -> List[InventoryRecord]:
        async with self._session() as session:
            res = await session.execute(
                select(InventoryRecord)
                .where(InventoryRecord.quantity <= InventoryRecord.min_threshold)
                .order_by(InventoryRecord.quantity.asc(), InventoryRecord.id.asc())
            )
            return list(res.scalars().all())

    async def find_out_of_stock(self) -> List[InventoryRecord]:
        async with self._session() as session:
            res = await session.execute(
                select(InventoryRecord)
                .where(InventoryRecord.quantity == 0)
                .order_by(InventoryRecord.id.asc())
            )
            return list(res.scalars().all())

    async def summary_by_warehouse(self) -> List[dict]:
        stmt = (
            select(
                Warehouse.id,
                Warehouse.name,
                func.count(func.distinct(InventoryRecord.product_id)),
                func.coalesce(func.sum(InventoryRecord.quantity), 0),
                func.coalesce(func.sum(InventoryRecord.reserved_quantity), 0),
            )
            .outerjoin(InventoryRecord, InventoryRecord.warehouse_id == Warehouse.id)
            .where(Warehouse.is_active == True)  # noqa: E712
            .group_by(Warehouse.id, Warehouse.name)
        )
        async with self._session() as session:
            rows = (await session.execute(stmt)).all()

        out = [
            {
                "warehouse_id": wid,
                "warehouse_name": name,
                "total_products": int(products or 0),
                "total_items": int(items or 0),
                "total_reserved": int(reserved or 0),
            }
            for (wid, name, products, items, reserved) in rows
        ]
        out.sort(key=lambda r: (-r["total_items"], r["warehouse_id"]))
        return out

    async def total_quantity(self) -> int:
        async with self._session() as session:
            res = await session.execute(
                select(func.coalesce(func.sum(InventoryRecord.quantity), 0))
                .join(Product, Product.id == InventoryRecord.product_id)
                .where(Product.is_active == True)  # noqa: E712
            )
            return int(res.scalar_one() or 0)


def get_ledger(request: Request) -> InventoryLedger:
    return request.app.state.ledger
