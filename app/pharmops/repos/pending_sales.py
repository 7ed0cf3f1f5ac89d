from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from app.pharmops.core.scope import ScopeFilter
from app.pharmops.db.models import PendingSale, PendingSaleLine


@dataclass(frozen=True)
class ExpiredSaleSummary:
    count: int
    total_value: Decimal
    oldest_created_at: datetime | None


class PendingSaleRepository:
    def __init__(self, db):
        self.db = db

    def _expired_query(self, query, scope: ScopeFilter, cutoff: datetime):
        query = scope.apply(query, PendingSale)
        return query.where(
            PendingSale.finalized.is_(False),
            PendingSale.short_code.is_not(None),
            func.trim(PendingSale.short_code) != "",
            PendingSale.created_at <= cutoff,
        )

    def list_expired(self, scope: ScopeFilter, cutoff: datetime) -> list[PendingSale]:
        query = self._expired_query(select(PendingSale), scope, cutoff)
        query = query.options(selectinload(PendingSale.lines)).order_by(PendingSale.created_at, PendingSale.id)
        return self.db.execute(query).scalars().all()

    def summarize_expired(self, scope: ScopeFilter, cutoff: datetime) -> ExpiredSaleSummary:
        query = self._expired_query(
            select(
                func.count(PendingSale.id),
                func.coalesce(func.sum(PendingSale.total_amount), 0),
                func.min(PendingSale.created_at),
            ),
            scope,
            cutoff,
        )
        count, total, oldest = self.db.execute(query).one()
        return ExpiredSaleSummary(
            count=int(count or 0),
            total_value=Decimal(str(total or 0)),
            oldest_created_at=oldest,
        )

    def claim_for_retirement(self, sale_id: str) -> bool:
        """Delete an unfinalized sale and its lines if it still exists.

        The conditional delete is the claim: only one concurrent sweep can get
        rowcount 1 for a given id. Does not commit.
        """
        result = self.db.execute(
            delete(PendingSale)
            .where(PendingSale.id == sale_id, PendingSale.finalized.is_(False))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.db.execute(
            delete(PendingSaleLine)
            .where(PendingSaleLine.sale_id == sale_id)
            .execution_options(synchronize_session=False)
        )
        return True
