"""
Ads Date Pull – Storage (Airtable). Clear-then-recreate of the four entity tables.

Every call goes out in chunks of at most 10 records and is throttled by the run's RateLimiter.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from airtable_client import MAX_RECORDS_PER_CALL, AirtableClient
from models import AD_GROUPS, ADS, CAMPAIGNS, KEYWORDS, Ad, AdGroup, Campaign, Entity, Keyword
from rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

TABLES: Dict[str, str] = {
    CAMPAIGNS: "Campaigns",
    AD_GROUPS: "Ad Groups",
    KEYWORDS: "Keywords",
    ADS: "Ads",
}


def _metric_fields(e: Entity) -> Dict[str, Any]:
    return {
        "Impressions": e.impressions,
        "Clicks": e.clicks,
        "CTR": e.ctr,
        "Cost": e.cost,
        "CPC": e.cpc,
        "Conversions": e.conversions,
        "Conversion Rate": e.conversion_rate,
        "ROAS": e.roas,
        "CPA": e.cpa,
        "Performance Score": e.performance_score,
        "Last Updated": e.last_updated,
    }


def _campaign_fields(c: Campaign) -> Dict[str, Any]:
    return {
        "Campaign ID": c.id,
        "Campaign Name": c.name,
        "Status": c.status,
        "Channel Type": c.channel_type,
        "Start Date": c.start_date or None,
        "End Date": c.end_date or None,
        **_metric_fields(c),
    }


def _ad_group_fields(ag: AdGroup) -> Dict[str, Any]:
    return {
        "Ad Group ID": ag.id,
        "Ad Group Name": ag.name,
        "Status": ag.status,
        "Campaign ID": ag.campaign_id,
        "Campaign Name": ag.campaign_name,
        **_metric_fields(ag),
    }


def _keyword_fields(k: Keyword) -> Dict[str, Any]:
    return {
        "Keyword ID": k.id,
        "Keyword Text": k.text,
        "Match Type": k.match_type,
        "Status": k.status,
        "Ad Group ID": k.ad_group_id,
        "Ad Group Name": k.ad_group_name,
        "Campaign ID": k.campaign_id,
        "Campaign Name": k.campaign_name,
        "Quality Score": k.quality_score,
        **_metric_fields(k),
    }


def _ad_fields(ad: Ad) -> Dict[str, Any]:
    return {
        "Ad ID": ad.id,
        "Headlines": ad.headlines,
        "Descriptions": ad.descriptions,
        "Path1": ad.path1,
        "Path2": ad.path2,
        "Final URLs": ad.final_urls,
        "Ad Group ID": ad.ad_group_id,
        "Ad Group Name": ad.ad_group_name,
        "Campaign ID": ad.campaign_id,
        "Campaign Name": ad.campaign_name,
        **_metric_fields(ad),
    }


_FIELD_MAPPERS: Dict[str, Callable[[Any], Dict[str, Any]]] = {
    CAMPAIGNS: _campaign_fields,
    AD_GROUPS: _ad_group_fields,
    KEYWORDS: _keyword_fields,
    ADS: _ad_fields,
}


def entity_to_fields(kind: str, entity: Entity) -> Dict[str, Any]:
    """Airtable field dict for one entity; None values are left out so typecast never sees them."""
    fields = _FIELD_MAPPERS[kind](entity)
    return {k: v for k, v in fields.items() if v is not None}


def _chunks(items: Sequence[Any], size: int):
    for i in range(0, len(items), size):
        yield items[i : i + size]


class BatchWriter:
    """Chunked, throttled clear/create against the destination base."""

    def __init__(self, store: AirtableClient, rate_limiter: RateLimiter, batch_size: int = MAX_RECORDS_PER_CALL):
        if not 1 <= batch_size <= MAX_RECORDS_PER_CALL:
            raise ValueError(f"batch_size must be between 1 and {MAX_RECORDS_PER_CALL}")
        self.store = store
        self.rate_limiter = rate_limiter
        self.batch_size = batch_size

    async def clear_all(self, table: str) -> int:
        """Delete every record of a table. Returns the number of records deleted."""
        await self.rate_limiter.acquire()
        records = await self.store.list_records(table)
        self.rate_limiter.record()
        record_ids = [r["id"] for r in records]
        deleted = 0
        for batch in _chunks(record_ids, self.batch_size):
            await self.rate_limiter.acquire()
            deleted += len(await self.store.delete_records(table, batch))
            self.rate_limiter.record()
            await self.rate_limiter.acquire()
        if record_ids:
            logger.info("Cleared %s records from %s", deleted, table)
        return deleted

    async def clear_tables(self, tables: Sequence[str]) -> Dict[str, Optional[int]]:
        """Best-effort clear: a failure on one table is logged and the next table is still attempted."""
        results: Dict[str, Optional[int]] = {}
        for table in tables:
            try:
                results[table] = await self.clear_all(table)
            except Exception as e:
                logger.error("Error clearing %s: %s", table, e)
                results[table] = None
        return results

    async def create_many(self, table: str, records: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Create records in chunks; returns all created records in input order."""
        out: List[Dict[str, Any]] = []
        for batch in _chunks(list(records), self.batch_size):
            await self.rate_limiter.acquire()
            created = await self.store.create_records(table, [dict(r) for r in batch], typecast=True)
            self.rate_limiter.record()
            out.extend(created)
            await self.rate_limiter.acquire()
        logger.info("Created %s records in %s", len(out), table)
        return out

    async def write_entities(self, kind: str, entities: Sequence[Entity]) -> List[Dict[str, Any]]:
        return await self.create_many(TABLES[kind], [entity_to_fields(kind, e) for e in entities])
