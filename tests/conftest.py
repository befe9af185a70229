"""
Shared fakes for the pull pipeline tests: an in-memory Airtable base and a canned query executor.
"""

import copy
from typing import Any, Dict, List, Optional

import pytest


class FakeStore:
    """In-memory stand-in for AirtableClient. Records are {"id": ..., "fields": {...}}."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = copy.deepcopy(tables or {})
        self.calls: List[tuple] = []
        self.fail_on: Dict[tuple, Exception] = {}
        self._next_id = 0

    def _new_id(self) -> str:
        self._next_id += 1
        return f"recNEW{self._next_id:05d}"

    def _maybe_fail(self, action: str, table: str) -> None:
        exc = self.fail_on.get((action, table))
        if exc is not None:
            raise exc

    async def list_records(self, table, max_records=None, fields=None):
        self.calls.append(("list", table))
        self._maybe_fail("list", table)
        records = copy.deepcopy(self.tables.get(table, []))
        return records[:max_records] if max_records is not None else records

    async def get_record(self, table, record_id):
        self.calls.append(("get", table, record_id))
        self._maybe_fail("get", table)
        for r in self.tables.get(table, []):
            if r["id"] == record_id:
                return copy.deepcopy(r)
        raise KeyError(record_id)

    async def delete_records(self, table, record_ids):
        self.calls.append(("delete", table, list(record_ids)))
        self._maybe_fail("delete", table)
        ids = set(record_ids)
        self.tables[table] = [r for r in self.tables.get(table, []) if r["id"] not in ids]
        return list(record_ids)

    async def create_records(self, table, fields_list, typecast=True):
        self.calls.append(("create", table, len(fields_list), typecast))
        self._maybe_fail("create", table)
        created = [{"id": self._new_id(), "fields": dict(f)} for f in fields_list]
        self.tables.setdefault(table, []).extend(copy.deepcopy(created))
        return created

    async def update_records(self, table, updates, typecast=False):
        self.calls.append(("update", table, copy.deepcopy(list(updates))))
        self._maybe_fail("update", table)
        out = []
        for u in updates:
            for r in self.tables.get(table, []):
                if r["id"] == u["id"]:
                    r["fields"].update(u["fields"])
                    out.append(copy.deepcopy(r))
        return out

    def creates(self, table: str) -> List[int]:
        return [c[2] for c in self.calls if c[0] == "create" and c[1] == table]


class FakeExecutor:
    """Returns canned raw rows per entity kind, or raises the configured exception."""

    def __init__(self, rows: Dict[str, List[Dict[str, Any]]], errors: Optional[Dict[str, Exception]] = None):
        self.rows = rows
        self.errors = errors or {}
        self.calls: List[tuple] = []

    async def execute(self, kind, date_range):
        self.calls.append((kind, date_range))
        if kind in self.errors:
            raise self.errors[kind]
        return copy.deepcopy(self.rows.get(kind, []))


def campaign_row(cid, name="Brand", impressions=0, clicks=0, cost_micros=0, conversions=0, conversions_value=0, **campaign):
    return {
        "campaign": {"id": cid, "name": name, "status": "ENABLED", "advertisingChannelType": "SEARCH", **campaign},
        "metrics": {
            "impressions": str(impressions),
            "clicks": str(clicks),
            "costMicros": str(cost_micros),
            "conversions": conversions,
            "conversionsValue": conversions_value,
        },
    }


def metrics(impressions=100, clicks=10, cost_micros=1_000_000, conversions=1.0, conversions_value=10.0):
    return {
        "impressions": str(impressions),
        "clicks": str(clicks),
        "costMicros": str(cost_micros),
        "conversions": conversions,
        "conversionsValue": conversions_value,
    }


def ad_group_row(agid, campaign_id, name="Exact terms", **m):
    return {
        "adGroup": {"id": agid, "name": name, "status": "ENABLED", "campaign": f"customers/1234567890/campaigns/{campaign_id}"},
        "metrics": metrics(**m),
    }


def keyword_row(kid, ad_group_id, text="running shoes", **m):
    return {
        "adGroupCriterion": {
            "criterionId": kid,
            "keyword": {"text": text, "matchType": "EXACT"},
            "status": "ENABLED",
            "adGroup": f"customers/1234567890/adGroups/{ad_group_id}",
            "qualityInfo": {"qualityScore": 7},
        },
        "metrics": metrics(**m),
    }


def ad_row(ad_id, ad_group_id, **m):
    return {
        "adGroupAd": {
            "ad": {
                "id": ad_id,
                "finalUrls": ["https://example.com/shoes"],
                "responsiveSearchAd": {
                    "headlines": [{"text": "Fast Shoes"}, {"text": "Free Shipping"}],
                    "descriptions": [{"text": "Run further."}],
                    "path1": "shoes",
                    "path2": "running",
                },
            },
            "status": "ENABLED",
            "adGroup": f"customers/1234567890/adGroups/{ad_group_id}",
        },
        "metrics": metrics(**m),
    }


@pytest.fixture
def fake_store():
    return FakeStore()
