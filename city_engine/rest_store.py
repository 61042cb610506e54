"""PostgREST (Supabase REST) record source.

Queries tables through the PostgREST HTTP interface:
  GET {base}/rest/v1/{table}?select=*&city_name=ilike.*york*&limit=1

Requests are blocking, so each call runs in a worker thread to keep the
event loop free.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

import requests

from .store import BackendError, RecordSource

logger = logging.getLogger(__name__)

_REST_PREFIX = "/rest/v1"


class RestRecordSource(RecordSource):
    """Record source backed by a PostgREST / Supabase REST endpoint."""

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 5.0,
                 session: Optional[requests.Session] = None):
        base = base_url.rstrip("/")
        if not base.endswith(_REST_PREFIX):
            base += _REST_PREFIX
        self._base = base
        self._timeout = timeout
        self._session = session or requests.Session()
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"

    def _get(self, table: str, params: Dict) -> List[Dict]:
        url = f"{self._base}/{table}"
        t0 = time.time()
        try:
            resp = self._session.get(url, params=params, headers=self._headers, timeout=self._timeout)
        except requests.Timeout as e:
            raise BackendError(f"timeout querying {table}") from e
        except requests.RequestException as e:
            raise BackendError(f"request to {table} failed: {e}") from e

        elapsed_ms = int((time.time() - t0) * 1000)
        if resp.status_code != 200:
            raise BackendError(f"HTTP {resp.status_code} from {table}: {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise BackendError(f"invalid JSON from {table}") from e
        if not isinstance(data, list):
            raise BackendError(f"unexpected payload from {table}: {type(data).__name__}")

        logger.debug(f"REST {table} {params}: {len(data)} rows ({elapsed_ms}ms)")
        return data

    async def _query(self, table: str, params: Dict, limit: Optional[int]) -> List[Dict]:
        params = {"select": "*", **params}
        if limit is not None:
            params["limit"] = str(limit)
        return await asyncio.to_thread(self._get, table, params)

    async def select_eq(self, table, column, value, limit=None):
        return await self._query(table, {column: f"eq.{value}"}, limit)

    async def select_ilike(self, table, column, pattern, limit=None):
        # PostgREST accepts * as the LIKE wildcard in URLs
        return await self._query(table, {column: f"ilike.{pattern.replace('%', '*')}"}, limit)

    async def select_all(self, table, columns=None, limit=None):
        params = {"select": ",".join(columns)} if columns else {}
        return await self._query(table, params, limit)

    async def select_ordered(self, table, column, value, order_by, limit=None):
        return await self._query(
            table, {column: f"eq.{value}", "order": f"{order_by}.asc"}, limit
        )

    def close(self):
        self._session.close()
