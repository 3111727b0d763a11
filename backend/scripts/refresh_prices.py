#!/usr/bin/env python3
# backend/scripts/refresh_prices.py
"""
Run the price refresh once and log what it stored.

Same work as POST /cron/update-prices, for a crontab without HTTP:

    0 9,15 * * 1-5  cd /srv/app && python backend/scripts/refresh_prices.py

Exit code is 0 when at least one price was stored (or there are no
holdings) and 1 otherwise, including when the store is unreachable.
"""
import asyncio
import logging
import sys
from pathlib import Path

# Setup path to import app modules
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from app.dependencies import get_refresh_service
from app.services.exceptions import ServiceError
from app.services.portfolio_service import PriceRefreshService
from app.utils import setup_logging
from app.utils.formatting import format_percent

logger = logging.getLogger(__name__)


async def run(service: PriceRefreshService | None = None) -> int:
    service = service or get_refresh_service()
    try:
        result = await service.refresh()
    except ServiceError as e:
        logger.error(f"Price refresh failed: {e}")
        return 1

    logger.info(f"Updated {result.updated_count}/{result.total_symbols} symbols")

    rate = result.exchange_rate
    message = f"USD/JPY {rate.rate} ({rate.provider})"
    if result.exchange_rate_change_percent is not None:
        message += (
            f", {format_percent(result.exchange_rate_change_percent)} "
            f"since {result.previous_exchange_rate.date}"
        )
    if not result.exchange_rate_saved:
        message += ", not saved"
    logger.info(message)

    if not result.success:
        logger.error("No prices were stored")
    return 0 if result.success else 1


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run()))
