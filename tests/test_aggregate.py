import pytest

from aggregate import aggregate_rows, derive_metrics
from models import AD_GROUPS, ADS, CAMPAIGNS, KEYWORDS, Campaign

from conftest import ad_group_row, ad_row, campaign_row, keyword_row

NOW = "2025-02-01T00:00:00+00:00"


def _two_day_campaign():
    return [
        campaign_row("555", name="Brand", impressions=100, clicks=10, cost_micros=5_000_000, conversions=2, conversions_value=30),
        campaign_row("555", name="Brand", impressions=50, clicks=5, cost_micros=2_000_000, conversions=1, conversions_value=20),
    ]


def test_daily_rows_fold_into_one_campaign():
    out = aggregate_rows(CAMPAIGNS, _two_day_campaign(), now=NOW)

    assert list(out) == ["555"]
    c = out["555"]
    assert c.impressions == 150
    assert c.clicks == 15
    assert c.cost_micros == 7_000_000
    assert c.cost == pytest.approx(7.0)
    assert c.conversions == pytest.approx(3.0)
    assert c.conversion_value == pytest.approx(50.0)
    assert c.ctr == pytest.approx(0.1)
    assert c.conversion_rate == pytest.approx(0.2)
    assert c.cpc == pytest.approx(7.0 / 15)
    assert c.cpa == pytest.approx(7.0 / 3)
    assert c.roas == pytest.approx(50.0 / 7.0)
    assert c.performance_score == pytest.approx(0.1 * 0.2 * (50.0 / 7.0) * 100)
    assert c.last_updated == NOW


def test_snake_case_metric_keys_accepted():
    rows = [{
        "campaign": {"id": 9, "name": "Generic"},
        "metrics": {"impressions": 10, "clicks": 2, "cost_micros": 1_500_000, "conversions": 1, "conversions_value": 3},
    }]
    c = aggregate_rows(CAMPAIGNS, rows, now=NOW)["9"]
    assert c.cost == pytest.approx(1.5)
    assert c.conversion_value == pytest.approx(3.0)


def test_zero_cost_and_zero_click_rows_are_dropped():
    rows = _two_day_campaign() + [campaign_row("777", impressions=500)]
    out = aggregate_rows(CAMPAIGNS, rows, now=NOW)
    assert "777" not in out
    assert out["555"].impressions == 150


def test_clicks_without_cost_are_kept():
    out = aggregate_rows(CAMPAIGNS, [campaign_row("1", impressions=20, clicks=2)], now=NOW)
    c = out["1"]
    assert c.clicks == 2
    assert c.cost == 0.0
    assert c.cpc == 0.0
    assert c.roas == 0.0


def test_first_row_seeds_attributes():
    rows = [
        campaign_row("555", name="Brand", clicks=1, cost_micros=1),
        campaign_row("555", name="Brand (renamed)", status="PAUSED", clicks=1, cost_micros=1),
    ]
    c = aggregate_rows(CAMPAIGNS, rows, now=NOW)["555"]
    assert c.name == "Brand"
    assert c.status == "ENABLED"
    assert c.clicks == 2


def test_doubled_rows_keep_ratios():
    once = aggregate_rows(CAMPAIGNS, _two_day_campaign(), now=NOW)["555"]
    twice = aggregate_rows(CAMPAIGNS, _two_day_campaign() * 2, now=NOW)["555"]

    assert twice.impressions == 2 * once.impressions
    assert twice.clicks == 2 * once.clicks
    assert twice.cost_micros == 2 * once.cost_micros
    assert twice.conversions == pytest.approx(2 * once.conversions)
    for attr in ("ctr", "conversion_rate", "cpc", "cpa", "roas", "performance_score"):
        assert getattr(twice, attr) == pytest.approx(getattr(once, attr))


def test_derive_metrics_zero_denominators():
    e = derive_metrics(Campaign(id="1"))
    assert (e.cost, e.ctr, e.conversion_rate, e.cpc, e.cpa, e.roas, e.performance_score) == (0, 0, 0, 0, 0, 0, 0)


def test_ad_group_takes_campaign_id_from_resource_name():
    ag = aggregate_rows(AD_GROUPS, [ad_group_row(10, 555)], now=NOW)["10"]
    assert ag.campaign_id == "555"
    assert ag.name == "Exact terms"
    assert ag.campaign_name == ""


def test_keyword_fields():
    kw = aggregate_rows(KEYWORDS, [keyword_row(100, 10)], now=NOW)["100"]
    assert kw.text == "running shoes"
    assert kw.match_type == "EXACT"
    assert kw.ad_group_id == "10"
    assert kw.quality_score == 7


def test_keyword_without_quality_score():
    row = keyword_row(100, 10)
    del row["adGroupCriterion"]["qualityInfo"]
    kw = aggregate_rows(KEYWORDS, [row], now=NOW)["100"]
    assert kw.quality_score is None


def test_ad_text_fields_are_joined():
    ad = aggregate_rows(ADS, [ad_row(7, 10)], now=NOW)["7"]
    assert ad.headlines == "Fast Shoes | Free Shipping"
    assert ad.descriptions == "Run further."
    assert ad.path1 == "shoes"
    assert ad.path2 == "running"
    assert ad.final_urls == "https://example.com/shoes"
    assert ad.ad_group_id == "10"


def test_rows_without_id_are_skipped():
    row = campaign_row("", clicks=3, cost_micros=10)
    assert aggregate_rows(CAMPAIGNS, [row], now=NOW) == {}


def test_unknown_kind():
    with pytest.raises(ValueError):
        aggregate_rows("videos", [])
