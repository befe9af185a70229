"""
Ads Date Pull – fold raw per-day searchStream rows into one entity per id, then derive ratios.

Pass 1 (fold): rows with zero cost and zero clicks are dropped; the first surviving row
for an id seeds its dimensional attributes, later rows only add to the counters.
Pass 2 (derive): ratios come from the summed counters only (CTR = sum(clicks) / sum(impressions),
never an average of per-row CTRs).
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from models import AD_GROUPS, ADS, CAMPAIGNS, KEYWORDS, Ad, AdGroup, Campaign, Entity, Keyword, utc_now_iso

logger = logging.getLogger(__name__)

MICROS_PER_UNIT = 1_000_000


def _to_int(v: Any) -> int:
    if v is None or v == "":
        return 0
    try:
        return int(v)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(v))
    except (TypeError, ValueError):
        return 0


def _to_float(v: Any) -> float:
    if v is None or v == "":
        return 0.0
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


def _str(v: Any) -> str:
    return "" if v is None else str(v)


def _resource_id(resource_name: Any) -> str:
    """customers/123/adGroups/456 -> 456"""
    if not resource_name:
        return ""
    return str(resource_name).rstrip("/").split("/")[-1]


def _metric(metrics: Dict[str, Any], camel: str, snake: str) -> Any:
    # REST JSON is camelCase; snake_case accepted for rows built by hand
    value = metrics.get(camel)
    return metrics.get(snake) if value is None else value


def _counters(row: Dict[str, Any]) -> Tuple[int, int, int, float, float]:
    m = row.get("metrics") or {}
    return (
        _to_int(m.get("impressions")),
        _to_int(m.get("clicks")),
        _to_int(_metric(m, "costMicros", "cost_micros")),
        _to_float(m.get("conversions")),
        _to_float(_metric(m, "conversionsValue", "conversions_value")),
    )


def _campaign_id(r: Dict[str, Any]) -> str:
    return _str((r.get("campaign") or {}).get("id"))


def _seed_campaign(r: Dict[str, Any], entity_id: str, ts: str) -> Campaign:
    c = r.get("campaign") or {}
    return Campaign(
        id=entity_id,
        name=_str(c.get("name")),
        status=_str(c.get("status")),
        channel_type=_str(c.get("advertisingChannelType")),
        start_date=_str(c.get("startDate")),
        end_date=_str(c.get("endDate")),
        last_updated=ts,
    )


def _ad_group_id(r: Dict[str, Any]) -> str:
    return _str((r.get("adGroup") or {}).get("id"))


def _seed_ad_group(r: Dict[str, Any], entity_id: str, ts: str) -> AdGroup:
    ag = r.get("adGroup") or {}
    return AdGroup(
        id=entity_id,
        name=_str(ag.get("name")),
        status=_str(ag.get("status")),
        campaign_id=_resource_id(ag.get("campaign")),
        last_updated=ts,
    )


def _keyword_id(r: Dict[str, Any]) -> str:
    return _str((r.get("adGroupCriterion") or {}).get("criterionId"))


def _seed_keyword(r: Dict[str, Any], entity_id: str, ts: str) -> Keyword:
    crit = r.get("adGroupCriterion") or {}
    kw = crit.get("keyword") or {}
    qs = (crit.get("qualityInfo") or {}).get("qualityScore")
    return Keyword(
        id=entity_id,
        text=_str(kw.get("text")),
        match_type=_str(kw.get("matchType")),
        status=_str(crit.get("status")),
        ad_group_id=_resource_id(crit.get("adGroup")),
        quality_score=_to_int(qs) if qs is not None else None,
        last_updated=ts,
    )


def _ad_id(r: Dict[str, Any]) -> str:
    return _str(((r.get("adGroupAd") or {}).get("ad") or {}).get("id"))


def _seed_ad(r: Dict[str, Any], entity_id: str, ts: str) -> Ad:
    aga = r.get("adGroupAd") or {}
    ad = aga.get("ad") or {}
    rsa = ad.get("responsiveSearchAd") or {}
    return Ad(
        id=entity_id,
        headlines=" | ".join(_str(h.get("text")) for h in rsa.get("headlines") or []),
        descriptions=" | ".join(_str(d.get("text")) for d in rsa.get("descriptions") or []),
        path1=_str(rsa.get("path1")),
        path2=_str(rsa.get("path2")),
        final_urls=", ".join(_str(u) for u in ad.get("finalUrls") or []),
        ad_group_id=_resource_id(aga.get("adGroup")),
        last_updated=ts,
    )


_Seeder = Callable[[Dict[str, Any], str, str], Entity]
_KINDS: Dict[str, Tuple[Callable[[Dict[str, Any]], str], _Seeder]] = {
    CAMPAIGNS: (_campaign_id, _seed_campaign),
    AD_GROUPS: (_ad_group_id, _seed_ad_group),
    KEYWORDS: (_keyword_id, _seed_keyword),
    ADS: (_ad_id, _seed_ad),
}


def derive_metrics(e: Entity) -> Entity:
    """Fill cost and the ratio metrics from the summed counters. Every ratio is 0 on a 0 denominator."""
    e.cost = e.cost_micros / MICROS_PER_UNIT
    e.ctr = e.clicks / e.impressions if e.impressions > 0 else 0.0
    e.conversion_rate = e.conversions / e.clicks if e.clicks > 0 else 0.0
    e.cpc = e.cost / e.clicks if e.clicks > 0 else 0.0
    e.cpa = e.cost / e.conversions if e.conversions > 0 else 0.0
    e.roas = e.conversion_value / e.cost if e.cost > 0 else 0.0
    # Composite ranking signal; not bounded to 0..100
    e.performance_score = e.ctr * e.conversion_rate * e.roas * 100
    return e


def aggregate_rows(kind: str, rows: Iterable[Dict[str, Any]], now: Optional[str] = None) -> Dict[str, Entity]:
    """Return {id: entity} in first-seen order, one entity per id."""
    if kind not in _KINDS:
        raise ValueError(f"Unknown entity kind: {kind}")
    get_id, seed = _KINDS[kind]
    ts = now or utc_now_iso()
    entities: Dict[str, Entity] = {}
    seen = dropped = 0
    for r in rows:
        seen += 1
        impressions, clicks, cost_micros, conversions, conversion_value = _counters(r)
        if cost_micros == 0 and clicks == 0:
            dropped += 1
            continue
        entity_id = get_id(r)
        if not entity_id:
            logger.warning("aggregate %s: row without id skipped", kind)
            continue
        e = entities.get(entity_id)
        if e is None:
            e = entities[entity_id] = seed(r, entity_id, ts)
        e.impressions += impressions
        e.clicks += clicks
        e.cost_micros += cost_micros
        e.conversions += conversions
        e.conversion_value += conversion_value

    for e in entities.values():
        derive_metrics(e)
    logger.info("aggregate %s: %s rows -> %s entities (%s zero rows dropped)", kind, seen, len(entities), dropped)
    return entities
