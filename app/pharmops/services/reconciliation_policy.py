"""Eligibility rules for reclaiming abandoned short-code sales.

A pending sale is eligible once it is unfinalized, carries a short code and is
at least ``ttl_minutes`` old. The per-pharmacy toggle is resolved by the caller
and passed in, so the predicate itself never touches storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from app.pharmops.core.exceptions import ConfigurationError


class ExpirableSale(Protocol):
    finalized: bool
    short_code: str | None
    created_at: datetime


@dataclass(frozen=True)
class ExpiryConfig:
    pharmacy_id: str
    short_code_required: bool
    ttl_minutes: int


def has_short_code(short_code: str | None) -> bool:
    return bool(short_code and short_code.strip())


def expiry_cutoff(ttl_minutes: int, now: datetime) -> datetime:
    return now - timedelta(minutes=ttl_minutes)


def is_expired(sale: ExpirableSale, ttl_minutes: int, now: datetime, *, enabled: bool = True) -> bool:
    if not enabled:
        return False
    if sale.finalized or not has_short_code(sale.short_code):
        return False
    return now - sale.created_at >= timedelta(minutes=ttl_minutes)


def resolve_expiry_config(pharmacy_id: str, settings_row, *, default_ttl_minutes: int) -> ExpiryConfig:
    """Build the effective config for one pharmacy.

    Raises ConfigurationError when the pharmacy has no settings or the
    short-code feature is switched off.
    """
    if settings_row is None:
        raise ConfigurationError(pharmacy_id, "settings missing")
    if not settings_row.require_sale_short_code:
        raise ConfigurationError(pharmacy_id, "short code feature disabled")
    ttl = settings_row.short_code_expiry_minutes
    if not ttl or ttl <= 0:
        ttl = default_ttl_minutes
    return ExpiryConfig(pharmacy_id=pharmacy_id, short_code_required=True, ttl_minutes=ttl)
