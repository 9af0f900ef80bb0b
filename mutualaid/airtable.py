"""
Airtable REST client for one table.

Implements the RecordTable operations the services use. Blocking requests
calls run in a worker thread so the async services only suspend at I/O.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import quote

import requests

from .errors import StoreError
from .logger import get_logger
from .records import StoreRecord
from .retry import RetryError, TransientHTTPError, exponential_backoff, should_retry_http_status

logger = get_logger()

AIRTABLE_API_URL = "https://api.airtable.com/v0"
# Airtable accepts at most 10 records per create request
MAX_RECORDS_PER_REQUEST = 10


@exponential_backoff(
    max_retries=3,
    base_delay=1.0,
    exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError, TransientHTTPError),
)
def _send(session: requests.Session, method: str, url: str, **kwargs) -> requests.Response:
    resp = session.request(method, url, timeout=20, **kwargs)
    if should_retry_http_status(resp.status_code):
        raise TransientHTTPError(resp.status_code, url)
    return resp


def _to_record(data: Dict[str, Any]) -> StoreRecord:
    return StoreRecord(data["id"], data.get("fields", {}))


class AirtableTable:
    """One Airtable table, addressed by base id and table name."""

    def __init__(self, api_key: Optional[str], base_id: Optional[str], name: str, session: Optional[requests.Session] = None):
        if not api_key:
            raise ValueError("Missing AIRTABLE_API_KEY. Set env var or pass api_key.")
        if not base_id:
            raise ValueError("Missing AIRTABLE_BASE_ID. Set env var or pass base_id.")
        self.name = name
        self.url = f"{AIRTABLE_API_URL}/{base_id}/{quote(name, safe='')}"
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Send a request and return the decoded body, raising StoreError on HTTP errors."""
        try:
            resp = _send(self.session, method, url, **kwargs)
            resp.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            detail = e.response.text if e.response is not None else str(e)
            logger.error("Airtable request failed", table=self.name, method=method, status=status)
            raise StoreError(f"Airtable {method} {self.name} failed ({status}): {detail}", status_code=status) from e
        return resp.json()

    def find_sync(self, record_id: str) -> StoreRecord:
        return _to_record(self._request("GET", f"{self.url}/{record_id}"))

    def update_sync(self, record_id: str, changes: Dict[str, Any]) -> StoreRecord:
        return _to_record(self._request("PATCH", f"{self.url}/{record_id}", json={"fields": changes}))

    def create_sync(self, records: List[Dict[str, Any]]) -> List[StoreRecord]:
        """
        Create records in chunks of ten.

        Chunks are committed one by one. If a later chunk fails, the raised
        StoreError carries the records already created in `created`.
        """
        created: List[StoreRecord] = []
        for start in range(0, len(records), MAX_RECORDS_PER_REQUEST):
            chunk = records[start:start + MAX_RECORDS_PER_REQUEST]
            try:
                body = self._request("POST", self.url, json={"records": [{"fields": f} for f in chunk]})
            except StoreError as e:
                e.created = created
                raise
            except RetryError as e:
                raise StoreError(f"Airtable POST {self.name} failed: {e}", created=created) from e
            created.extend(_to_record(r) for r in body.get("records", []))
        return created

    def page_sync(self, view: Optional[str], filter_by_formula: Optional[str], offset: Optional[str]) -> Dict[str, Any]:
        params = {}
        if view:
            params["view"] = view
        if filter_by_formula:
            params["filterByFormula"] = filter_by_formula
        if offset:
            params["offset"] = offset
        return self._request("GET", self.url, params=params)

    async def find(self, record_id: str) -> StoreRecord:
        return await asyncio.to_thread(self.find_sync, record_id)

    async def update(self, record_id: str, changes: Dict[str, Any]) -> StoreRecord:
        return await asyncio.to_thread(self.update_sync, record_id, changes)

    async def create(self, records: List[Dict[str, Any]]) -> List[StoreRecord]:
        return await asyncio.to_thread(self.create_sync, records)

    async def select(
        self, view: Optional[str] = None, filter_by_formula: Optional[str] = None
    ) -> AsyncIterator[List[StoreRecord]]:
        """Yield pages of records; the next page is fetched when iteration resumes."""
        offset = None
        while True:
            body = await asyncio.to_thread(self.page_sync, view, filter_by_formula, offset)
            yield [_to_record(r) for r in body.get("records", [])]
            offset = body.get("offset")
            if not offset:
                return
