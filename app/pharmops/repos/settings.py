from __future__ import annotations

from sqlalchemy import select

from app.pharmops.core.scope import ScopeFilter
from app.pharmops.db.models import Pharmacy, PharmacySettings


class PharmacySettingsRepository:
    def __init__(self, db):
        self.db = db

    def list_for_scope(self, scope: ScopeFilter) -> list[tuple[Pharmacy, PharmacySettings | None]]:
        """Every pharmacy visible through ``scope`` with its settings row, if any."""
        stmt = select(Pharmacy, PharmacySettings).outerjoin(
            PharmacySettings, PharmacySettings.pharmacy_id == Pharmacy.id
        )
        if scope.pharmacy_id is not None:
            stmt = stmt.where(Pharmacy.id == scope.pharmacy_id)
        rows = self.db.execute(stmt.order_by(Pharmacy.created_at, Pharmacy.id)).all()
        return [(pharmacy, pharmacy_settings) for pharmacy, pharmacy_settings in rows]
