"""
Ads Date Pull – backfill parent names (campaign / ad group) onto child entities.

Runs once all four entity kinds are fetched. Returns new copies; inputs are not modified.
A dangling parent id resolves to "" rather than failing the run.
"""

from dataclasses import replace
from typing import List, NamedTuple, Sequence

from models import Ad, AdGroup, Campaign, Keyword


class LinkedEntities(NamedTuple):
    campaigns: List[Campaign]
    ad_groups: List[AdGroup]
    keywords: List[Keyword]
    ads: List[Ad]


def link_relationships(
    campaigns: Sequence[Campaign],
    ad_groups: Sequence[AdGroup],
    keywords: Sequence[Keyword],
    ads: Sequence[Ad],
) -> LinkedEntities:
    campaign_names = {c.id: c.name for c in campaigns}
    ad_group_names = {ag.id: ag.name for ag in ad_groups}
    ad_group_campaign = {ag.id: ag.campaign_id for ag in ad_groups}

    linked_ad_groups = [
        replace(ag, campaign_name=campaign_names.get(ag.campaign_id, "")) for ag in ad_groups
    ]

    def _child(entity):
        campaign_id = ad_group_campaign.get(entity.ad_group_id, "") or ""
        return replace(
            entity,
            ad_group_name=ad_group_names.get(entity.ad_group_id, ""),
            campaign_id=campaign_id,
            campaign_name=campaign_names.get(campaign_id, ""),
        )

    return LinkedEntities(
        campaigns=[replace(c) for c in campaigns],
        ad_groups=linked_ad_groups,
        keywords=[_child(k) for k in keywords],
        ads=[_child(a) for a in ads],
    )
