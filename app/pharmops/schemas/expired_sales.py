from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class ExpiredSaleCleanupResponse(BaseModel):
    restored_count: int
    total_value: Decimal


class ExpiredSaleStatsResponse(BaseModel):
    currently_expired_count: int
    currently_expired_value: Decimal
    oldest_expired_timestamp: datetime | None = None
    historical_total_restored: int
    historical_total_value: Decimal
    last_run_timestamp: datetime | None = None
    total_sales_affected: int
