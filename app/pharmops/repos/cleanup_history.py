from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from app.pharmops.core.scope import ScopeFilter
from app.pharmops.db.models import CleanupRunRecord


@dataclass(frozen=True)
class CleanupHistorySummary:
    total_restored: int
    total_value: Decimal
    last_run_at: datetime | None


class CleanupHistoryRepository:
    """Append-only access to sweep records. Scoping is applied when reading only."""

    def __init__(self, db):
        self.db = db

    def append(self, record: CleanupRunRecord) -> CleanupRunRecord:
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def summarize(self, scope: ScopeFilter) -> CleanupHistorySummary:
        query = select(
            func.coalesce(func.sum(CleanupRunRecord.restored_count), 0),
            func.coalesce(func.sum(CleanupRunRecord.restored_value), 0),
            func.max(CleanupRunRecord.cleanup_date),
        )
        total_restored, total_value, last_run_at = self.db.execute(scope.apply(query, CleanupRunRecord)).one()
        return CleanupHistorySummary(
            total_restored=int(total_restored or 0),
            total_value=Decimal(str(total_value or 0)),
            last_run_at=last_run_at,
        )
