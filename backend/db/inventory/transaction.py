from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text

from ..database import Base, utcnow

TRANSACTION_TYPES = ("IN", "OUT", "ADJUSTMENT", "TRANSFER")


class InventoryTransaction(Base):
    """One stock movement booked against an inventory record.

    `previous_quantity` and `new_quantity` are read and written under the
    same row lock as the record itself, so the history replays exactly.
    """

    __tablename__ = "inventory_transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_transactions_quantity_positive"),
        CheckConstraint(
            "type IN ('IN', 'OUT', 'ADJUSTMENT', 'TRANSFER')",
            name="ck_inventory_transactions_type",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventory.id", ondelete="CASCADE"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True)
    destination_warehouse_id = Column(
        Integer, ForeignKey("warehouses.id", ondelete="SET NULL"), nullable=True, index=True
    )

    type = Column(String(20), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)

    reason = Column(Text, nullable=False)
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_by_user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "warehouse_id": self.warehouse_id,
            "destination_warehouse_id": self.destination_warehouse_id,
            "type": self.type,
            "quantity": int(self.quantity),
            "previous_quantity": int(self.previous_quantity),
            "new_quantity": int(self.new_quantity),
            "reason": self.reason,
            "reference": self.reference,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": self.created_at,
        }

    def __repr__(self):
        return (
            f"<InventoryTransaction id={self.id} inventory_id={self.inventory_id} "
            f"type={self.type} {self.previous_quantity}->{self.new_quantity}>"
        )
