"""
Ads Date Pull – error taxonomy shared by the pull pipeline.
"""

from typing import Any, Optional


class SyncError(Exception):
    """Base class for pipeline failures."""


class ValidationError(SyncError):
    """Missing or malformed date range."""


class _HttpFailure(SyncError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthError(_HttpFailure):
    """OAuth token exchange failed. Fatal for the current operation, never retried."""


class UpstreamQueryError(_HttpFailure):
    """Non-2xx from the Google Ads searchStream endpoint; status and body kept verbatim."""


class DestinationWriteError(_HttpFailure):
    """Airtable rejected a list/delete/create/update call."""
