"""
Ads Date Pull – replace the Airtable performance tables with Google Ads data for a date range.

Run lifecycle: Pulling -> clear tables -> fetch 4 entity kinds concurrently -> link parent names
-> write 4 kinds concurrently -> Success | Error (status written to the control record).

  pip install -e .
  copy .env.example to .env and set credentials
  python sync.py                                   # range from the control record (Set Date table)
  python sync.py --start-date 2025-01-01 --end-date 2025-01-31 [--record-id recXXXX]
  python sync.py --last-days 7
"""

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from aggregate import aggregate_rows
from airtable_client import AirtableClient, get_airtable_client
from config import AIRTABLE_BATCH_SIZE, AIRTABLE_RATE_LIMIT
from control_record import STATUS_ERROR, STATUS_PULLING, STATUS_SUCCESS, ControlRecord
from google_ads_client import QueryExecutor, get_query_executor
from linking import LinkedEntities, link_relationships
from models import ENTITY_KINDS, DateRange, Entity
from rate_limiter import RateLimiter
from storage import TABLES, BatchWriter

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


async def _gather_settled(*aws: Awaitable[Any]) -> List[Any]:
    """Like asyncio.gather, but every task has finished before the first failure is raised."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class SyncOrchestrator:
    """Owns one pull run end to end and is the only writer of run status."""

    def __init__(
        self,
        executor: QueryExecutor,
        store: AirtableClient,
        rate_limit: int = AIRTABLE_RATE_LIMIT,
        batch_size: int = AIRTABLE_BATCH_SIZE,
        rate_limiter_factory: Optional[Callable[[], RateLimiter]] = None,
    ):
        self.executor = executor
        self.store = store
        self.batch_size = batch_size
        self._rate_limiter_factory = rate_limiter_factory or (lambda: RateLimiter(rate_limit))

    async def pull_with_date_range(self, start_date: str, end_date: str, record_id: Optional[str] = None) -> Dict[str, Any]:
        """Pull an explicit YYYY-MM-DD range (HTTP-triggered path)."""
        async def resolve(_control: ControlRecord) -> DateRange:
            return DateRange.parse(start_date, end_date)

        return await self._run(resolve, f"Pulling {start_date} to {end_date}...", record_id)

    async def pull_all_data(self, record_id: Optional[str] = None) -> Dict[str, Any]:
        """Pull the range set in the control record's Master Start/End Date cells."""
        async def resolve(control: ControlRecord) -> DateRange:
            return await control.read_date_range()

        return await self._run(resolve, "Starting data pull...", record_id)

    async def fetch_kind(self, kind: str, date_range: DateRange) -> List[Entity]:
        rows = await self.executor.execute(kind, date_range)
        return list(aggregate_rows(kind, rows).values())

    async def fetch_all(self, date_range: DateRange) -> LinkedEntities:
        """Fetch the four kinds concurrently, then link once all four result sets exist."""
        campaigns, ad_groups, keywords, ads = await _gather_settled(
            *(self.fetch_kind(kind, date_range) for kind in ENTITY_KINDS)
        )
        logger.info(
            "Fetched %s campaigns, %s ad groups, %s keywords, %s ads for %s",
            len(campaigns), len(ad_groups), len(keywords), len(ads), date_range,
        )
        return link_relationships(campaigns, ad_groups, keywords, ads)

    async def write_all(self, writer: BatchWriter, linked: LinkedEntities) -> Dict[str, int]:
        created = await _gather_settled(
            *(writer.write_entities(kind, entities) for kind, entities in zip(ENTITY_KINDS, linked))
        )
        return {kind: len(records) for kind, records in zip(ENTITY_KINDS, created)}

    async def _run(
        self,
        resolve: Callable[[ControlRecord], Awaitable[DateRange]],
        start_message: str,
        record_id: Optional[str],
    ) -> Dict[str, Any]:
        control = ControlRecord(self.store, record_id=record_id)
        await control.update_status(STATUS_PULLING, start_message, 0)
        try:
            date_range = await resolve(control)
            logger.info("Using date range: %s", date_range)
            writer = BatchWriter(self.store, self._rate_limiter_factory(), self.batch_size)
            await writer.clear_tables([TABLES[kind] for kind in ENTITY_KINDS])
            linked = await self.fetch_all(date_range)
            breakdown = await self.write_all(writer, linked)
        except Exception as e:
            logger.exception("Data pull failed: %s", e)
            await control.update_status(STATUS_ERROR, f"Error: {e}", 0)
            raise

        total = sum(breakdown.values())
        await control.update_status(STATUS_SUCCESS, f"Successfully pulled {total} records", total)
        logger.info(
            "Pulled %s records (%s) for %s",
            total, ", ".join(f"{k}={v}" for k, v in breakdown.items()), date_range,
        )
        return {
            "success": True,
            "total_records": total,
            "breakdown": breakdown,
            "start_date": date_range.start.isoformat(),
            "end_date": date_range.end.isoformat(),
        }


@asynccontextmanager
async def open_orchestrator() -> AsyncIterator[SyncOrchestrator]:
    """Build an orchestrator from .env and close the Airtable client afterwards."""
    executor = get_query_executor()
    async with get_airtable_client() as store:
        yield SyncOrchestrator(executor, store)


async def run_pull(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    record_id: Optional[str] = None,
) -> Dict[str, Any]:
    async with open_orchestrator() as orchestrator:
        if start_date or end_date:
            return await orchestrator.pull_with_date_range(start_date, end_date, record_id)
        return await orchestrator.pull_all_data(record_id)


def main() -> None:
    parser = argparse.ArgumentParser(description="Pull Google Ads performance into Airtable for a date range")
    parser.add_argument("--start-date", type=str, default=None, help="Range start YYYY-MM-DD (use with --end-date)")
    parser.add_argument("--end-date", type=str, default=None, help="Range end YYYY-MM-DD (inclusive)")
    parser.add_argument("--last-days", type=int, default=None, help="Pull the N days ending yesterday")
    parser.add_argument("--record-id", type=str, default=None, help="Control record to report status to (default: first record)")
    args = parser.parse_args()

    start_date, end_date = args.start_date, args.end_date
    if args.last_days is not None:
        if args.last_days < 1 or start_date or end_date:
            logger.error("--last-days must be >= 1 and cannot be combined with --start-date/--end-date")
            sys.exit(1)
        end = date.today() - timedelta(days=1)
        start_date, end_date = (end - timedelta(days=args.last_days - 1)).isoformat(), end.isoformat()
    elif bool(start_date) != bool(end_date):
        logger.error("--start-date and --end-date must be given together")
        sys.exit(1)

    try:
        result = asyncio.run(run_pull(start_date, end_date, args.record_id))
    except Exception as e:
        logger.error("Ads Date Pull failed: %s", e)
        sys.exit(1)
    logger.info("Ads Date Pull completed: %s records", result["total_records"])


if __name__ == "__main__":
    main()
