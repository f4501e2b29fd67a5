"""
Inventory ledger.

Models:
- InventoryRecord (on-hand and reserved quantity per product per warehouse)
- InventoryTransaction (booked IN / OUT / ADJUSTMENT / TRANSFER movements)

Services:
- InventoryLedger (record store, locked mutations, transactions, stock queries)
- RowLocks (in-process exclusive lock per inventory row)
"""

from .ledger import InventoryLedger, get_ledger
from .locks import RowLocks
from .record import InventoryRecord
from .transaction import TRANSACTION_TYPES, InventoryTransaction

__all__ = [
    "InventoryLedger",
    "InventoryRecord",
    "InventoryTransaction",
    "RowLocks",
    "TRANSACTION_TYPES",
    "get_ledger",
]
