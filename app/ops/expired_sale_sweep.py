"""Scheduled entry point for the automatic expired-sale sweep.

Meant to be invoked by an external scheduler (cron, a Kubernetes CronJob):

    python -m app.ops.expired_sale_sweep --format json

Each invocation performs one unrestricted sweep and exits; the next scheduled
tick is the retry. ``--stats`` prints system-wide statistics without sweeping.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from sqlalchemy.orm import sessionmaker

from app.pharmops.core.config import settings
from app.pharmops.core.db_timing import db_timer, get_db_time_ms
from app.pharmops.core.exceptions import StoreConnectivityError
from app.pharmops.core.logging import configure_logging
from app.pharmops.db.session import build_engine
from app.pharmops.services.expired_sale_cleanup import CleanupMode, CleanupResult, ExpiredSaleCleanupService
from app.pharmops.services.expired_sale_stats import ExpiredSaleStats, ExpiredSaleStatsService

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_DISABLED = 2


def _summarize_run(result: CleanupResult, db_time_ms: float | None) -> dict:
    return {
        "mode": result.mode.value,
        "outcome": result.outcome.value,
        "restored_count": result.restored_count,
        "total_value": format(result.total_value, "f"),
        "skipped_count": result.skipped_count,
        "disabled_pharmacies": len(result.disabled_pharmacies),
        "db_time_ms": round(db_time_ms, 2) if db_time_ms is not None else None,
    }


def _summarize_stats(stats: ExpiredSaleStats) -> dict:
    return {
        "currently_expired_count": stats.currently_expired_count,
        "currently_expired_value": format(stats.currently_expired_value, "f"),
        "oldest_expired_timestamp": stats.oldest_expired_timestamp,
        "historical_total_restored": stats.historical_total_restored,
        "historical_total_value": format(stats.historical_total_value, "f"),
        "last_run_timestamp": stats.last_run_timestamp,
        "total_sales_affected": stats.total_sales_affected,
    }


def _format_text(title: str, summary: dict) -> str:
    lines = [title]
    for key, value in summary.items():
        lines.append(f"{key}: {value if value is not None else '-'}")
    return "\n".join(lines)


def _emit(title: str, summary: dict, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(summary, indent=2, default=str))
    else:
        print(_format_text(title, summary))


def run_sweep(output_format: str, *, stats_only: bool = False, database_url: str | None = None) -> int:
    if not settings.OPS_ENABLE_EXPIRED_SALE_SWEEP and not stats_only:
        print("Expired sale sweep disabled by OPS_ENABLE_EXPIRED_SALE_SWEEP.", file=sys.stderr)
        return EXIT_DISABLED
    engine = build_engine(database_url or settings.DATABASE_URL)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    try:
        with SessionLocal() as db, db_timer():
            if stats_only:
                stats = ExpiredSaleStatsService(db).get_stats()
                _emit("Expired Sale Statistics", _summarize_stats(stats), output_format)
                return EXIT_OK
            result = ExpiredSaleCleanupService(db).run(CleanupMode.AUTOMATIC)
            _emit("Expired Sale Sweep", _summarize_run(result, get_db_time_ms()), output_format)
    except StoreConnectivityError as exc:
        print(f"Expired sale sweep aborted: store unavailable during {exc.operation}.", file=sys.stderr)
        return EXIT_FAILED
    finally:
        engine.dispose()
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="PharmOps expired sale sweep")
    parser.add_argument("--format", choices=["json", "text"], default="text")
    parser.add_argument("--stats", action="store_true", help="Print statistics instead of sweeping")
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args(argv)
    configure_logging(logging.INFO)
    return run_sweep(args.format, stats_only=args.stats, database_url=args.database_url)


if __name__ == "__main__":
    raise SystemExit(main())
