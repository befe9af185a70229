"""
Ads Date Pull – FastAPI server exposing the pull over HTTP (called from Airtable button scripts).

  pip install -e .
  uvicorn server:app --host 0.0.0.0 --port 3000    (or: python server.py, port from PORT)

  GET  /api/pull-data?start=YYYY-MM-DD&end=YYYY-MM-DD[&recordId=rec...][&token=...]
  POST /sync  {"start_date": ..., "end_date": ..., "record_id": ...}  (no dates: range from control record)
"""

import logging
import re
from typing import Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import API_SHARED_SECRET
from errors import ValidationError

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_last_pull_result: Optional[dict] = None

app = FastAPI(
    title="Ads Date Pull",
    description="Replace Airtable campaign / ad group / keyword / ad performance tables with Google Ads data for a date range.",
)

# Airtable scripting blocks call from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/health")
def health():
    """Health check for load balancers / readiness."""
    return {"status": "ok", "service": "ads-date-pull"}


@app.get("/status")
def status():
    """Outcome of the last pull served by this process."""
    return {"last_pull": _last_pull_result}


async def _pull(start: Optional[str], end: Optional[str], record_id: Optional[str]) -> dict:
    global _last_pull_result
    from sync import run_pull

    try:
        result = await run_pull(start, end, record_id)
    except ValidationError as e:
        _last_pull_result = {"status": "error", "error": str(e)}
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Pull failed: %s", e)
        _last_pull_result = {"status": "error", "start_date": start, "end_date": end, "error": str(e)}
        raise HTTPException(status_code=500, detail=str(e))
    _last_pull_result = {"status": "ok", **result}
    return {"success": True, **result}


@app.get("/api/pull-data")
async def pull_data(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    record_id: Optional[str] = Query(None, alias="recordId"),
    token: Optional[str] = Query(None),
):
    """Pull an explicit range; the Airtable formula sends MISSING for empty date cells."""
    if API_SHARED_SECRET and token != API_SHARED_SECRET:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not start or not end or start == "MISSING" or end == "MISSING":
        raise HTTPException(status_code=400, detail="Please set both Master Start Date and Master End Date")
    if not _DATE_RE.match(start) or not _DATE_RE.match(end):
        raise HTTPException(status_code=400, detail="Invalid date format; use YYYY-MM-DD")
    logger.info("Pull requested for %s..%s (recordId=%s)", start, end, record_id)
    return await _pull(start, end, record_id)


class SyncRequest(BaseModel):
    start_date: Optional[str] = None  # YYYY-MM-DD; with end_date
    end_date: Optional[str] = None
    record_id: Optional[str] = None  # control record for status; default first record


@app.post("/sync")
async def trigger_sync(body: Optional[SyncRequest] = Body(None)):
    """Run one pull. Without dates the range comes from the control record."""
    body = body or SyncRequest()
    if bool(body.start_date) != bool(body.end_date):
        raise HTTPException(status_code=400, detail="start_date and end_date must be given together")
    return await _pull(body.start_date, body.end_date, body.record_id)


if __name__ == "__main__":
    import uvicorn

    from config import SERVER_PORT

    uvicorn.run(app, host="0.0.0.0", port=SERVER_PORT)
