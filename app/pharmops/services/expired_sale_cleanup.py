from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from app.pharmops.core.clock import utcnow
from app.pharmops.core.config import settings
from app.pharmops.core.context import TenantContext
from app.pharmops.core.error_catalog import AppError, ErrorCatalog
from app.pharmops.core.exceptions import ConfigurationError, PerItemRestorationError, StoreConnectivityError
from app.pharmops.core.logging import log_json
from app.pharmops.core.metrics import metrics
from app.pharmops.core.scope import UNRESTRICTED, ScopeFilter, ScopingLevel, resolve
from app.pharmops.db.guards import CONNECTIVITY_ERRORS, store_operation
from app.pharmops.db.models import CleanupRunRecord
from app.pharmops.repos.cleanup_history import CleanupHistoryRepository
from app.pharmops.repos.inventory import InventoryRepository
from app.pharmops.repos.pending_sales import PendingSaleRepository
from app.pharmops.repos.settings import PharmacySettingsRepository
from app.pharmops.services.reconciliation_policy import (
    ExpiryConfig,
    expiry_cutoff,
    is_expired,
    resolve_expiry_config,
)

logger = logging.getLogger("pharmops.cleanup")


class CleanupMode(str, enum.Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class CleanupOutcome(str, enum.Enum):
    NOOP = "noop"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class ReservedLine:
    inventory_item_id: str
    quantity: int


@dataclass(frozen=True)
class ExpiredSaleCandidate:
    id: str
    pharmacy_id: str
    branch_id: str
    short_code: str | None
    finalized: bool
    created_at: datetime
    total_amount: Decimal
    lines: tuple[ReservedLine, ...]

    @classmethod
    def from_model(cls, sale) -> "ExpiredSaleCandidate":
        return cls(
            id=str(sale.id),
            pharmacy_id=str(sale.pharmacy_id),
            branch_id=str(sale.branch_id),
            short_code=sale.short_code,
            finalized=bool(sale.finalized),
            created_at=sale.created_at,
            total_amount=Decimal(sale.total_amount or 0),
            lines=tuple(
                ReservedLine(inventory_item_id=str(line.inventory_item_id), quantity=int(line.quantity))
                for line in sale.lines
            ),
        )


@dataclass
class CleanupResult:
    mode: CleanupMode
    restored_count: int = 0
    total_value: Decimal = Decimal("0.00")
    skipped_count: int = 0
    disabled_pharmacies: list[str] = field(default_factory=list)
    history_record_id: str | None = None

    @property
    def outcome(self) -> CleanupOutcome:
        if self.skipped_count:
            return CleanupOutcome.PARTIAL
        if self.restored_count:
            return CleanupOutcome.SUCCESS
        return CleanupOutcome.NOOP


class _CandidateSkipped(Exception):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ExpiredSaleCleanupService:
    """Reclaims stock reserved by unfinalized short-code sales that have expired.

    Automatic sweeps run unrestricted across every pharmacy. Manual sweeps are
    bounded by the operator's branch-level scope. Each candidate is its own unit
    of work: the sale is claimed with a conditional delete, its lines are added
    back to inventory, and the transaction is committed before moving on. A
    failure on one candidate rolls back that candidate only.

    Partial restoration policy: by default a sale whose lines cannot all be
    restored is left in place (its partial restoration is rolled back) for a
    later sweep. With ``retire_partial`` the restorable lines are applied and
    the sale is retired anyway.
    """

    def __init__(
        self,
        db,
        *,
        clock: Callable[[], datetime] = utcnow,
        retire_partial: bool | None = None,
        strict_scope: bool | None = None,
        default_ttl_minutes: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.retire_partial = settings.CLEANUP_RETIRE_PARTIAL if retire_partial is None else retire_partial
        self.strict_scope = settings.SCOPE_STRICT_CONTEXT if strict_scope is None else strict_scope
        self.default_ttl_minutes = default_ttl_minutes or settings.SHORT_CODE_DEFAULT_EXPIRY_MINUTES
        self.sales = PendingSaleRepository(db)
        self.inventory = InventoryRepository(db)
        self.history = CleanupHistoryRepository(db)
        self.pharmacy_settings = PharmacySettingsRepository(db)

    def resolve_scope(self, mode: CleanupMode, context: TenantContext | None) -> ScopeFilter:
        if mode is CleanupMode.AUTOMATIC:
            return UNRESTRICTED
        if context is None:
            raise AppError(ErrorCatalog.TENANT_CONTEXT_REQUIRED, details={"mode": mode.value})
        return resolve(context, ScopingLevel.BRANCH_LEVEL, strict=self.strict_scope)

    def run(
        self,
        mode: CleanupMode | str = CleanupMode.AUTOMATIC,
        triggered_by: str | None = None,
        context: TenantContext | None = None,
    ) -> CleanupResult:
        mode = CleanupMode(mode)
        now = self.clock()
        scope = self.resolve_scope(mode, context)
        if mode is CleanupMode.MANUAL and triggered_by is None:
            triggered_by = context.user_id
        trace_id = context.trace_id if context is not None else ""
        log_json(
            logger,
            {
                "event": "expired_sale_cleanup_started",
                "mode": mode.value,
                "scope": scope.as_dict(),
                "triggered_by": triggered_by,
                "trace_id": trace_id,
            },
        )

        result = CleanupResult(mode=mode)
        try:
            self._sweep(scope, now, result)
            if result.restored_count > 0:
                record = self._record_run(mode, triggered_by, context, result, now)
                result.history_record_id = str(record.id)
        except StoreConnectivityError as exc:
            self._rollback_quietly()
            metrics.record_cleanup_run(mode=mode.value, outcome=CleanupOutcome.FAILED.value)
            log_json(
                logger,
                {
                    "event": "expired_sale_cleanup_failed",
                    "mode": mode.value,
                    "outcome": CleanupOutcome.FAILED.value,
                    "operation": exc.operation,
                    "error_class": exc.cause.__class__.__name__ if exc.cause is not None else None,
                    "committed_before_failure": result.restored_count,
                    "trace_id": trace_id,
                },
                level=logging.ERROR,
            )
            raise

        outcome = result.outcome
        metrics.record_cleanup_run(
            mode=mode.value,
            outcome=outcome.value,
            restored=result.restored_count,
            skipped=result.skipped_count,
        )
        log_json(
            logger,
            {
                "event": "expired_sale_cleanup_completed",
                "mode": mode.value,
                "outcome": outcome.value,
                "restored_count": result.restored_count,
                "total_value": result.total_value,
                "skipped_count": result.skipped_count,
                "disabled_pharmacies": len(result.disabled_pharmacies),
                "history_record_id": result.history_record_id,
                "trace_id": trace_id,
            },
            level=logging.WARNING if outcome is CleanupOutcome.PARTIAL else logging.INFO,
        )
        return result

    def _sweep(self, scope: ScopeFilter, now: datetime, result: CleanupResult) -> None:
        if scope.matches_nothing:
            return
        for config in self._enabled_configs(scope, result):
            with store_operation("list_expired_sales"):
                sales = self.sales.list_expired(scope.narrow(pharmacy_id=config.pharmacy_id), expiry_cutoff(config.ttl_minutes, now))
                candidates = [ExpiredSaleCandidate.from_model(sale) for sale in sales]
                # close the read transaction before per-candidate units of work
                self.db.rollback()
            for candidate in candidates:
                if not is_expired(candidate, config.ttl_minutes, now, enabled=config.short_code_required):
                    continue
                self._process_candidate(candidate, result)

    def _enabled_configs(self, scope: ScopeFilter, result: CleanupResult) -> list[ExpiryConfig]:
        with store_operation("load_pharmacy_settings"):
            rows = self.pharmacy_settings.list_for_scope(scope)
        configs = []
        for pharmacy, pharmacy_settings in rows:
            try:
                configs.append(
                    resolve_expiry_config(
                        str(pharmacy.id),
                        pharmacy_settings,
                        default_ttl_minutes=self.default_ttl_minutes,
                    )
                )
            except ConfigurationError as exc:
                result.disabled_pharmacies.append(exc.pharmacy_id)
                logger.info("Skipping expired sale cleanup for pharmacy %s: %s", exc.pharmacy_id, exc.reason)
        return configs

    def _process_candidate(self, candidate: ExpiredSaleCandidate, result: CleanupResult) -> None:
        try:
            with store_operation("retire_expired_sale"):
                self._retire(candidate)
                self.db.commit()
        except _CandidateSkipped as exc:
            self.db.rollback()
            result.skipped_count += 1
            logger.warning("Expired sale %s left in place: %s", candidate.id, exc.reason)
            return
        except StoreConnectivityError:
            raise
        except SQLAlchemyError:
            self.db.rollback()
            result.skipped_count += 1
            logger.exception("Error cleaning up expired sale %s", candidate.id)
            return
        result.restored_count += 1
        result.total_value += candidate.total_amount
        logger.info(
            "Cleaned up expired sale %s (%d lines, value %s)",
            candidate.id,
            len(candidate.lines),
            candidate.total_amount,
        )

    def _retire(self, candidate: ExpiredSaleCandidate) -> None:
        if not self.sales.claim_for_retirement(candidate.id):
            # finalized or already retired by a concurrent sweep
            raise _CandidateSkipped("already claimed or finalized")

        failures: list[PerItemRestorationError] = []
        for line in candidate.lines:
            try:
                # a failed statement must not abort the claim on PostgreSQL
                with self.db.begin_nested():
                    self._restore_line(candidate, line)
            except PerItemRestorationError as exc:
                failures.append(exc)
                logger.warning(str(exc))
        if failures and not self.retire_partial:
            raise _CandidateSkipped(f"{len(failures)} of {len(candidate.lines)} lines could not be restored")

    def _restore_line(self, candidate: ExpiredSaleCandidate, line: ReservedLine) -> None:
        try:
            restored = self.inventory.increment(
                line.inventory_item_id,
                line.quantity,
                pharmacy_id=candidate.pharmacy_id,
            )
        except CONNECTIVITY_ERRORS:
            raise
        except SQLAlchemyError as exc:
            raise PerItemRestorationError(
                candidate.id, line.inventory_item_id, line.quantity, exc.__class__.__name__
            ) from exc
        if not restored:
            raise PerItemRestorationError(
                candidate.id, line.inventory_item_id, line.quantity, "inventory item not found"
            )

    def _record_run(
        self,
        mode: CleanupMode,
        triggered_by: str | None,
        context: TenantContext | None,
        result: CleanupResult,
        now: datetime,
    ) -> CleanupRunRecord:
        pharmacy_id = None
        branch_id = None
        if mode is CleanupMode.MANUAL and context is not None:
            pharmacy_id = context.pharmacy_id
            branch_id = context.branch_id
        record = CleanupRunRecord(
            cleanup_date=now,
            operation_type=mode.value,
            triggered_by=triggered_by,
            restored_count=result.restored_count,
            restored_value=result.total_value,
            pharmacy_id=pharmacy_id,
            branch_id=branch_id,
        )
        with store_operation("append_cleanup_history"):
            return self.history.append(record)

    def _rollback_quietly(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after store failure also failed")
