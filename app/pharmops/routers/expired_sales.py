from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request

from app.pharmops.core.context import TenantContext
from app.pharmops.core.deps import require_permission
from app.pharmops.core.error_catalog import AppError, ErrorCatalog
from app.pharmops.core.scope import can_access_branch
from app.pharmops.db.session import get_db
from app.pharmops.repos.tenants import TenantRepository
from app.pharmops.schemas.expired_sales import ExpiredSaleCleanupResponse, ExpiredSaleStatsResponse
from app.pharmops.services.expired_sale_cleanup import CleanupMode, ExpiredSaleCleanupService
from app.pharmops.services.expired_sale_stats import ExpiredSaleStatsService
from app.pharmops.services.rbac import SALES_MANAGE, SALES_VIEW


router = APIRouter()


def _validated_branch_id(db, context: TenantContext, branch_id: str | None) -> str | None:
    if branch_id is None:
        return None
    try:
        uuid.UUID(branch_id)
    except ValueError as exc:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "invalid branch_id"}) from exc
    branch = TenantRepository(db).get_branch(branch_id)
    if branch is None or not can_access_branch(context, str(branch.id), str(branch.pharmacy_id)):
        raise AppError(ErrorCatalog.BRANCH_SCOPE_MISMATCH)
    return str(branch.id)


@router.post("/pharmops/sales/cleanup-expired", response_model=ExpiredSaleCleanupResponse)
def cleanup_expired_sales(
    request: Request,
    context: TenantContext = Depends(require_permission(SALES_MANAGE)),
    db=Depends(get_db),
):
    result = ExpiredSaleCleanupService(db).run(
        CleanupMode.MANUAL,
        triggered_by=context.user_id,
        context=context,
    )
    request.state.cleanup = {
        "mode": result.mode.value,
        "outcome": result.outcome.value,
        "restored_count": result.restored_count,
        "history_record_id": result.history_record_id,
    }
    return ExpiredSaleCleanupResponse(restored_count=result.restored_count, total_value=result.total_value)


@router.get("/pharmops/sales/expired-stats", response_model=ExpiredSaleStatsResponse)
def expired_sale_stats(
    branch_id: str | None = Query(None),
    context: TenantContext = Depends(require_permission(SALES_VIEW)),
    db=Depends(get_db),
):
    stats = ExpiredSaleStatsService(db).get_stats(
        context,
        branch_id=_validated_branch_id(db, context, branch_id),
    )
    return ExpiredSaleStatsResponse(
        currently_expired_count=stats.currently_expired_count,
        currently_expired_value=stats.currently_expired_value,
        oldest_expired_timestamp=stats.oldest_expired_timestamp,
        historical_total_restored=stats.historical_total_restored,
        historical_total_value=stats.historical_total_value,
        last_run_timestamp=stats.last_run_timestamp,
        total_sales_affected=stats.total_sales_affected,
    )
