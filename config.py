"""
Ads Date Pull – config and credentials (from .env in this folder).
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from this project folder
_ROOT = Path(__file__).resolve().parent
_ENV_FILE = _ROOT / ".env"
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE)

# Google Ads (REST searchStream + OAuth refresh token)
GOOGLE_ADS_API_VERSION = os.getenv("GOOGLE_ADS_API_VERSION", "v21")
GOOGLE_ADS_DEVELOPER_TOKEN = os.getenv("GOOGLE_ADS_DEVELOPER_TOKEN", "")
GOOGLE_ADS_OAUTH_CLIENT_ID = os.getenv("GOOGLE_ADS_OAUTH_CLIENT_ID", "")
GOOGLE_ADS_OAUTH_CLIENT_SECRET = os.getenv("GOOGLE_ADS_OAUTH_CLIENT_SECRET", "")
GOOGLE_ADS_REFRESH_TOKEN = os.getenv("GOOGLE_ADS_REFRESH_TOKEN", "")
GOOGLE_ADS_CUSTOMER_ID = os.getenv("GOOGLE_ADS_CUSTOMER_ID", "")
# Manager (MCC) account, sent as login-customer-id when set
GOOGLE_ADS_MCC_ID = os.getenv("GOOGLE_ADS_MCC_ID", "")
GOOGLE_ADS_TIMEOUT_SECONDS = float(os.getenv("GOOGLE_ADS_TIMEOUT_SECONDS", "120"))

# Airtable (destination store + control record)
AIRTABLE_PAT = os.getenv("AIRTABLE_PAT") or os.getenv("AIRTABLE_API_KEY", "")
AIRTABLE_BASE_ID = os.getenv("AIRTABLE_BASE_ID", "")
AIRTABLE_API_URL = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0")
AIRTABLE_TIMEOUT_SECONDS = float(os.getenv("AIRTABLE_TIMEOUT_SECONDS", "60"))
# Requests per one-minute window shared by all writers of a run
AIRTABLE_RATE_LIMIT = int(os.getenv("AIRTABLE_RATE_LIMIT", "5"))
# Airtable accepts at most 10 records per create/delete call
AIRTABLE_BATCH_SIZE = int(os.getenv("AIRTABLE_BATCH_SIZE", "10"))
AIRTABLE_CONTROL_TABLE = os.getenv("AIRTABLE_CONTROL_TABLE", "Set Date")

# HTTP surface
API_SHARED_SECRET = os.getenv("API_SHARED_SECRET", "")
SERVER_PORT = int(os.getenv("PORT", "3000"))


def normalize_customer_id(customer_id: Optional[str]) -> str:
    """Normalize Google Ads customer ID for API paths (no dashes)."""
    if not customer_id:
        return ""
    return (customer_id or "").replace("-", "").strip()
