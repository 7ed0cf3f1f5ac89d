from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from app.pharmops.core.clock import utcnow
from app.pharmops.core.config import settings
from app.pharmops.core.context import TenantContext
from app.pharmops.core.exceptions import ConfigurationError
from app.pharmops.core.scope import UNRESTRICTED, ScopeFilter, ScopingLevel, resolve
from app.pharmops.db.guards import store_operation
from app.pharmops.repos.cleanup_history import CleanupHistoryRepository
from app.pharmops.repos.pending_sales import PendingSaleRepository
from app.pharmops.repos.settings import PharmacySettingsRepository
from app.pharmops.services.reconciliation_policy import expiry_cutoff, resolve_expiry_config

logger = logging.getLogger("pharmops.cleanup.stats")


@dataclass(frozen=True)
class ExpiredSaleStats:
    currently_expired_count: int
    currently_expired_value: Decimal
    oldest_expired_timestamp: datetime | None
    historical_total_restored: int
    historical_total_value: Decimal
    last_run_timestamp: datetime | None

    @property
    def total_sales_affected(self) -> int:
        return self.historical_total_restored + self.currently_expired_count


class ExpiredSaleStatsService:
    """Read-only view over sales that a sweep would reclaim right now and over past sweeps.

    Live figures follow each pharmacy's short-code settings, so a pharmacy with
    the feature off contributes nothing live while its history is still
    reported. With a context, both live and historical figures are limited to
    the caller's branch-level scope; without one they are system-wide. Sweep
    records are written with the operator's attribution only, so automatic
    sweeps (no pharmacy/branch) show up in system-wide history alone.
    """

    def __init__(
        self,
        db,
        *,
        clock: Callable[[], datetime] = utcnow,
        strict_scope: bool | None = None,
        default_ttl_minutes: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.strict_scope = settings.SCOPE_STRICT_CONTEXT if strict_scope is None else strict_scope
        self.default_ttl_minutes = default_ttl_minutes or settings.SHORT_CODE_DEFAULT_EXPIRY_MINUTES
        self.sales = PendingSaleRepository(db)
        self.history = CleanupHistoryRepository(db)
        self.pharmacy_settings = PharmacySettingsRepository(db)

    def resolve_scope(self, context: TenantContext | None, *, branch_id: str | None = None) -> ScopeFilter:
        scope = UNRESTRICTED if context is None else resolve(context, ScopingLevel.BRANCH_LEVEL, strict=self.strict_scope)
        if branch_id is not None:
            scope = scope.narrow(branch_id=branch_id)
        return scope

    def get_stats(self, context: TenantContext | None = None, *, branch_id: str | None = None) -> ExpiredSaleStats:
        scope = self.resolve_scope(context, branch_id=branch_id)
        now = self.clock()
        with store_operation("expired_sale_stats"):
            count, value, oldest = self._live_totals(scope, now)
            history = self.history.summarize(scope)
        return ExpiredSaleStats(
            currently_expired_count=count,
            currently_expired_value=value,
            oldest_expired_timestamp=oldest,
            historical_total_restored=history.total_restored,
            historical_total_value=history.total_value,
            last_run_timestamp=history.last_run_at,
        )

    def _live_totals(self, scope: ScopeFilter, now: datetime) -> tuple[int, Decimal, datetime | None]:
        count = 0
        value = Decimal("0.00")
        oldest: datetime | None = None
        if scope.matches_nothing:
            return count, value, oldest
        for pharmacy, pharmacy_settings in self.pharmacy_settings.list_for_scope(scope):
            try:
                config = resolve_expiry_config(
                    str(pharmacy.id),
                    pharmacy_settings,
                    default_ttl_minutes=self.default_ttl_minutes,
                )
            except ConfigurationError as exc:
                logger.debug("No live expired sales for pharmacy %s: %s", exc.pharmacy_id, exc.reason)
                continue
            summary = self.sales.summarize_expired(
                scope.narrow(pharmacy_id=config.pharmacy_id),
                expiry_cutoff(config.ttl_minutes, now),
            )
            count += summary.count
            value += summary.total_value
            if summary.oldest_created_at is not None and (oldest is None or summary.oldest_created_at < oldest):
                oldest = summary.oldest_created_at
        return count, value, oldest
