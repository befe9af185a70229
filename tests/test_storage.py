import asyncio

import pytest

from errors import DestinationWriteError
from models import CAMPAIGNS, KEYWORDS, Campaign, Keyword
from rate_limiter import RateLimiter
from storage import TABLES, BatchWriter, entity_to_fields

from conftest import FakeStore


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _writer(store, max_requests=1000, clock=None):
    if clock is None:
        return BatchWriter(store, RateLimiter(max_requests))
    return BatchWriter(store, RateLimiter(max_requests, clock=clock, sleep=clock.sleep))


def test_create_many_chunks_in_order():
    store = FakeStore()
    records = [{"Campaign ID": str(i)} for i in range(23)]

    created = asyncio.run(_writer(store).create_many("Campaigns", records))

    assert store.creates("Campaigns") == [10, 10, 3]
    assert [r["fields"]["Campaign ID"] for r in created] == [str(i) for i in range(23)]
    assert all(c[3] is True for c in store.calls if c[0] == "create")


def test_create_many_waits_at_ceiling():
    store = FakeStore()
    clock = FakeClock()
    records = [{"Campaign ID": str(i)} for i in range(23)]

    asyncio.run(_writer(store, max_requests=2, clock=clock).create_many("Campaigns", records))

    assert store.creates("Campaigns") == [10, 10, 3]
    assert clock.sleeps == [pytest.approx(60.0)]


def test_clear_all_deletes_in_chunks():
    store = FakeStore({"Keywords": [{"id": f"rec{i:03d}", "fields": {}} for i in range(25)]})

    deleted = asyncio.run(_writer(store).clear_all("Keywords"))

    assert deleted == 25
    assert store.tables["Keywords"] == []
    assert [len(c[2]) for c in store.calls if c[0] == "delete"] == [10, 10, 5]


def test_clear_all_on_empty_table():
    store = FakeStore()
    assert asyncio.run(_writer(store).clear_all("Ads")) == 0
    assert [c for c in store.calls if c[0] == "delete"] == []


def test_clear_tables_continues_after_failure():
    store = FakeStore({
        "Campaigns": [{"id": "recC", "fields": {}}],
        "Ads": [{"id": "recA", "fields": {}}],
    })
    store.fail_on[("list", "Ad Groups")] = DestinationWriteError("boom", status_code=500)

    results = asyncio.run(_writer(store).clear_tables(["Campaigns", "Ad Groups", "Ads"]))

    assert results == {"Campaigns": 1, "Ad Groups": None, "Ads": 1}
    assert store.tables["Ads"] == []


def test_batch_size_bounds():
    with pytest.raises(ValueError):
        BatchWriter(FakeStore(), RateLimiter(5), batch_size=11)
    with pytest.raises(ValueError):
        BatchWriter(FakeStore(), RateLimiter(5), batch_size=0)


def test_write_entities_uses_table_and_field_names():
    store = FakeStore()
    keyword = Keyword(
        id="100", text="running shoes", match_type="EXACT", status="ENABLED",
        ad_group_id="10", ad_group_name="Exact", campaign_id="555", campaign_name="Brand",
        impressions=150, clicks=15, cost=7.0,
    )

    asyncio.run(_writer(store).write_entities(KEYWORDS, [keyword]))

    fields = store.tables[TABLES[KEYWORDS]][0]["fields"]
    assert fields["Keyword ID"] == "100"
    assert fields["Keyword Text"] == "running shoes"
    assert fields["Campaign Name"] == "Brand"
    assert fields["Impressions"] == 150
    assert fields["Cost"] == 7.0
    assert "Quality Score" not in fields


def test_campaign_fields():
    fields = entity_to_fields(CAMPAIGNS, Campaign(id="555", name="Brand", channel_type="SEARCH", ctr=0.1))
    assert fields["Campaign ID"] == "555"
    assert fields["Channel Type"] == "SEARCH"
    assert fields["CTR"] == 0.1
    assert "Start Date" not in fields
    assert TABLES[CAMPAIGNS] == "Campaigns"
