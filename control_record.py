"""
Ads Date Pull – control record ("Set Date" table): master date range in, run status out.
"""

import logging
from typing import Any, Dict, Optional

from airtable_client import AirtableClient
from config import AIRTABLE_CONTROL_TABLE
from errors import ValidationError
from models import DateRange, utc_now_iso

logger = logging.getLogger(__name__)

STATUS_PULLING = "Pulling"
STATUS_SUCCESS = "Success"
STATUS_ERROR = "Error"

START_DATE_FIELD = "Master Start Date"
END_DATE_FIELD = "Master End Date"


class ControlRecord:
    """The record a run reads its date range from and reports status to.

    Without an explicit record_id the first record of the control table is used.
    """

    def __init__(self, store: AirtableClient, record_id: Optional[str] = None, table: str = AIRTABLE_CONTROL_TABLE):
        self.store = store
        self.record_id = record_id
        self.table = table

    async def _load(self) -> Optional[Dict[str, Any]]:
        if self.record_id:
            return await self.store.get_record(self.table, self.record_id)
        records = await self.store.list_records(self.table, max_records=1)
        return records[0] if records else None

    async def read_date_range(self) -> DateRange:
        record = await self._load()
        if not record:
            raise ValidationError(f"No date range found in {self.table} table")
        fields = record.get("fields") or {}
        start, end = fields.get(START_DATE_FIELD), fields.get(END_DATE_FIELD)
        if not start or not end:
            raise ValidationError(f"{START_DATE_FIELD} and {END_DATE_FIELD} must be set")
        return DateRange.parse(start, end)

    async def update_status(self, status: str, message: str, records_updated: int = 0) -> bool:
        """Write Status / Last Pull Status / Last Pull Time / Records Updated. Failures are logged, not raised."""
        try:
            target_id = self.record_id
            if not target_id:
                record = await self._load()
                target_id = record["id"] if record else None
            if not target_id:
                logger.warning("No %s record to write status %s to", self.table, status)
                return False
            await self.store.update_records(
                self.table,
                [{
                    "id": target_id,
                    "fields": {
                        "Status": status,
                        "Last Pull Status": message,
                        "Last Pull Time": utc_now_iso(),
                        "Records Updated": records_updated,
                    },
                }],
            )
            return True
        except Exception as e:
            logger.error("Failed to update status to %s: %s", status, e)
            return False
