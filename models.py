"""
Ads Date Pull – entity records and date range.

One record per (entity kind, id) per run. Counters are summed by aggregate.py,
parent names are filled by linking.py, field names for Airtable live in storage.py.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from errors import ValidationError

CAMPAIGNS = "campaigns"
AD_GROUPS = "ad_groups"
KEYWORDS = "keywords"
ADS = "ads"
ENTITY_KINDS = (CAMPAIGNS, AD_GROUPS, KEYWORDS, ADS)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Entity:
    id: str
    impressions: int = 0
    clicks: int = 0
    cost_micros: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0

    ctr: float = 0.0
    conversion_rate: float = 0.0
    cpc: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0
    performance_score: float = 0.0

    last_updated: str = ""


@dataclass
class Campaign(Entity):
    name: str = ""
    status: str = ""
    channel_type: str = ""
    start_date: str = ""
    end_date: str = ""


@dataclass
class AdGroup(Entity):
    name: str = ""
    status: str = ""
    campaign_id: str = ""
    campaign_name: str = ""


@dataclass
class Keyword(Entity):
    text: str = ""
    match_type: str = ""
    status: str = ""
    ad_group_id: str = ""
    ad_group_name: str = ""
    campaign_id: str = ""
    campaign_name: str = ""
    quality_score: Optional[int] = None


@dataclass
class Ad(Entity):
    headlines: str = ""
    descriptions: str = ""
    path1: str = ""
    path2: str = ""
    final_urls: str = ""
    ad_group_id: str = ""
    ad_group_name: str = ""
    campaign_id: str = ""
    campaign_name: str = ""


def _to_date(value: Any, label: str) -> date:
    if value is None or value == "" or value == "MISSING":
        raise ValidationError(f"{label} is required (YYYY-MM-DD)")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    # Airtable date cells may come back as full ISO timestamps
    if "T" in s:
        s = s.split("T")[0]
    if not _DATE_RE.match(s):
        raise ValidationError(f"Invalid {label} {value!r}; expected YYYY-MM-DD")
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        raise ValidationError(f"Invalid {label} {value!r}: {e}") from e


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of report dates."""

    start: date
    end: date

    @classmethod
    def parse(cls, start: Any, end: Any) -> "DateRange":
        start_d = _to_date(start, "start date")
        end_d = _to_date(end, "end date")
        if start_d > end_d:
            raise ValidationError(f"start date {start_d.isoformat()} is after end date {end_d.isoformat()}")
        return cls(start_d, end_d)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
