from __future__ import annotations

from sqlalchemy import update

from app.pharmops.db.models import InventoryItem


class InventoryRepository:
    def __init__(self, db):
        self.db = db

    def increment(self, item_id: str, quantity: int, *, pharmacy_id: str | None = None) -> bool:
        """Atomically add ``quantity`` units. Returns False when no matching row exists.

        Does not commit; the caller owns the unit of work.
        """
        stmt = update(InventoryItem).where(InventoryItem.id == item_id)
        if pharmacy_id is not None:
            stmt = stmt.where(InventoryItem.pharmacy_id == pharmacy_id)
        stmt = stmt.values(quantity=InventoryItem.quantity + quantity).execution_options(synchronize_session=False)
        result = self.db.execute(stmt)
        return result.rowcount == 1
