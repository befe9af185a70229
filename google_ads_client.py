"""
Ads Date Pull – Google Ads REST client (OAuth token exchange + GAQL searchStream).
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from config import (
    GOOGLE_ADS_API_VERSION,
    GOOGLE_ADS_CUSTOMER_ID,
    GOOGLE_ADS_DEVELOPER_TOKEN,
    GOOGLE_ADS_MCC_ID,
    GOOGLE_ADS_OAUTH_CLIENT_ID,
    GOOGLE_ADS_OAUTH_CLIENT_SECRET,
    GOOGLE_ADS_REFRESH_TOKEN,
    GOOGLE_ADS_TIMEOUT_SECONDS,
    normalize_customer_id,
)
from errors import AuthError, UpstreamQueryError
from models import AD_GROUPS, ADS, CAMPAIGNS, KEYWORDS, DateRange

logger = logging.getLogger(__name__)

OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_ADS_API_URL = "https://googleads.googleapis.com"

# Only rows with spend come back; aggregate.py also drops zero cost + zero click rows.
_QUERIES: Dict[str, str] = {
    CAMPAIGNS: """
        SELECT campaign.id, campaign.name, campaign.status, campaign.advertising_channel_type,
               campaign.start_date, campaign.end_date,
               metrics.impressions, metrics.clicks, metrics.ctr, metrics.cost_micros, metrics.conversions,
               metrics.conversions_from_interactions_rate, metrics.conversions_value
        FROM campaign
        WHERE segments.date BETWEEN '{start}' AND '{end}'
        AND metrics.cost_micros > 0
    """,
    AD_GROUPS: """
        SELECT ad_group.id, ad_group.name, ad_group.status, ad_group.campaign,
               metrics.impressions, metrics.clicks, metrics.ctr, metrics.cost_micros, metrics.conversions,
               metrics.conversions_from_interactions_rate, metrics.conversions_value
        FROM ad_group
        WHERE segments.date BETWEEN '{start}' AND '{end}'
        AND metrics.cost_micros > 0
    """,
    KEYWORDS: """
        SELECT ad_group_criterion.criterion_id, ad_group_criterion.keyword.text,
               ad_group_criterion.keyword.match_type, ad_group_criterion.status,
               ad_group_criterion.ad_group, ad_group_criterion.quality_info.quality_score,
               metrics.impressions, metrics.clicks, metrics.ctr, metrics.cost_micros, metrics.conversions,
               metrics.conversions_from_interactions_rate, metrics.conversions_value
        FROM keyword_view
        WHERE segments.date BETWEEN '{start}' AND '{end}'
        AND metrics.cost_micros > 0
    """,
    ADS: """
        SELECT ad_group_ad.ad.id, ad_group_ad.ad.type, ad_group_ad.status, ad_group_ad.ad.final_urls,
               ad_group_ad.ad.responsive_search_ad.headlines, ad_group_ad.ad.responsive_search_ad.descriptions,
               ad_group_ad.ad.responsive_search_ad.path1, ad_group_ad.ad.responsive_search_ad.path2,
               ad_group_ad.ad_group,
               metrics.impressions, metrics.clicks, metrics.ctr, metrics.cost_micros, metrics.conversions,
               metrics.conversions_from_interactions_rate, metrics.conversions_value
        FROM ad_group_ad
        WHERE segments.date BETWEEN '{start}' AND '{end}'
        AND metrics.cost_micros > 0
    """,
}


def build_query(kind: str, date_range: DateRange) -> str:
    """Return the GAQL for one entity kind over an inclusive date range."""
    template = _QUERIES.get(kind)
    if template is None:
        raise ValueError(f"Unknown entity kind: {kind}")
    return template.format(start=date_range.start.isoformat(), end=date_range.end.isoformat())


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


@asynccontextmanager
async def _http(client: Optional[httpx.AsyncClient], timeout: float) -> AsyncIterator[httpx.AsyncClient]:
    """Use the injected client, or open a short-lived one for this call."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout)) as c:
        yield c


class TokenProvider:
    """Exchanges the stored refresh token for a fresh access token on every call (no caching)."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self._client = client
        self._timeout = timeout

    async def get_access_token(self) -> str:
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token,
        }
        async with _http(self._client, self._timeout) as client:
            response = await client.post(OAUTH_TOKEN_URL, data=data)
        if not response.is_success:
            raise AuthError(
                f"OAuth token exchange failed ({response.status_code}): {response.text[:500]}",
                status_code=response.status_code,
                body=_response_body(response),
            )
        token = _response_body(response)
        token = token.get("access_token") if isinstance(token, dict) else None
        if not token:
            raise AuthError("OAuth token response has no access_token", status_code=response.status_code, body=response.text)
        return token


class QueryExecutor:
    """Runs one fixed GAQL query per entity kind against googleAds:searchStream."""

    def __init__(
        self,
        token_provider: TokenProvider,
        customer_id: str,
        developer_token: str,
        login_customer_id: Optional[str] = None,
        api_version: str = GOOGLE_ADS_API_VERSION,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = GOOGLE_ADS_TIMEOUT_SECONDS,
    ):
        self.token_provider = token_provider
        self.customer_id = normalize_customer_id(customer_id)
        self.developer_token = developer_token
        self.login_customer_id = normalize_customer_id(login_customer_id) or None
        self.api_version = api_version
        self._client = client
        self._timeout = timeout

    @property
    def url(self) -> str:
        return f"{GOOGLE_ADS_API_URL}/{self.api_version}/customers/{self.customer_id}/googleAds:searchStream"

    def _headers(self, access_token: str) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "developer-token": self.developer_token,
        }
        if self.login_customer_id:
            headers["login-customer-id"] = self.login_customer_id
        return headers

    async def execute(self, kind: str, date_range: DateRange) -> List[Dict[str, Any]]:
        """Return the raw result rows of every streamed chunk, in arrival order."""
        query = build_query(kind, date_range)
        access_token = await self.token_provider.get_access_token()
        logger.debug("GAQL %s for customer %s: %s", kind, self.customer_id, query)
        async with _http(self._client, self._timeout) as client:
            response = await client.post(self.url, json={"query": query}, headers=self._headers(access_token))
        if not response.is_success:
            body = _response_body(response)
            detail = body if isinstance(body, str) else json.dumps(body)
            raise UpstreamQueryError(
                f"Google Ads API Error ({response.status_code}): {detail}",
                status_code=response.status_code,
                body=body,
            )
        try:
            chunks = response.json()
        except ValueError as e:
            raise UpstreamQueryError(
                f"Google Ads API returned a non-JSON body ({response.status_code}): {response.text[:500]}",
                status_code=response.status_code,
                body=response.text,
            ) from e
        if isinstance(chunks, dict):
            chunks = [chunks]
        rows: List[Dict[str, Any]] = []
        for chunk in chunks or []:
            rows.extend(chunk.get("results") or [])
        logger.info("searchStream %s: %s rows for %s (customer %s)", kind, len(rows), date_range, self.customer_id)
        return rows


def get_query_executor(client: Optional[httpx.AsyncClient] = None) -> QueryExecutor:
    """Build a QueryExecutor from .env credentials."""
    if not all([GOOGLE_ADS_DEVELOPER_TOKEN, GOOGLE_ADS_OAUTH_CLIENT_ID, GOOGLE_ADS_OAUTH_CLIENT_SECRET, GOOGLE_ADS_REFRESH_TOKEN]):
        raise RuntimeError(
            "Google Ads credentials not set in .env (DEVELOPER_TOKEN, OAUTH_CLIENT_ID, OAUTH_CLIENT_SECRET, REFRESH_TOKEN)"
        )
    customer_id = normalize_customer_id(GOOGLE_ADS_CUSTOMER_ID)
    if not customer_id:
        raise RuntimeError("GOOGLE_ADS_CUSTOMER_ID not set in environment")
    tokens = TokenProvider(
        GOOGLE_ADS_OAUTH_CLIENT_ID,
        GOOGLE_ADS_OAUTH_CLIENT_SECRET,
        GOOGLE_ADS_REFRESH_TOKEN,
        client=client,
    )
    return QueryExecutor(
        tokens,
        customer_id=customer_id,
        developer_token=GOOGLE_ADS_DEVELOPER_TOKEN,
        login_customer_id=GOOGLE_ADS_MCC_ID or None,
        client=client,
    )
