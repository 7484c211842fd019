"""REST client for the hosted backend: table rows, RPC functions and object storage."""

import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Non-success response from the hosted backend."""

    def __init__(self, status: int, message: str):
        super().__init__(f"Backend error {status}: {message}")
        self.status = status
        self.message = message


class RemoteStoreClient:
    """Thin async client for a PostgREST-style backend with object storage.

    The backend owns validation, ordering and aggregation; this client only
    shapes requests and raises `RemoteStoreError` for failed ones.
    """

    def __init__(self,
                 base_url: str,
                 api_key: str,
                 access_token: Optional[str] = None,
                 timeout: float = 30):
        """Initialize remote store client.

        Args:
            base_url: Backend project URL
            api_key: Public API key sent with every request
            access_token: User session token; the API key is used when absent
            timeout: Total request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout

        logger.info(f"RemoteStoreClient initialized for {self.base_url}")

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(self,
                       method: str,
                       path: str,
                       params: Optional[Dict[str, str]] = None,
                       payload: Any = None,
                       data: Optional[bytes] = None,
                       headers: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url,
                                       params=params,
                                       json=payload,
                                       data=data,
                                       headers=self._headers(headers)) as response:
                body = await response.text()
                if response.status >= 400:
                    message = self._error_message(body)
                    logger.error(f"{method} {path} failed: {response.status} {message}")
                    raise RemoteStoreError(response.status, message)

                logger.debug(f"{method} {path} -> {response.status} ({len(body)} bytes)")
                if not body:
                    return None
                try:
                    return json.loads(body)
                except ValueError:
                    return body

    @staticmethod
    def _error_message(body: str) -> str:
        try:
            parsed = json.loads(body)
        except ValueError:
            return body or "unknown error"
        if isinstance(parsed, dict):
            return str(parsed.get("message") or parsed.get("error") or parsed)
        return str(parsed)

    async def select(self,
                     table: str,
                     columns: str = "*",
                     order: Optional[str] = None,
                     ascending: bool = False,
                     filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Fetch rows, optionally ordered by one column and filtered by equality."""
        params = {"select": columns}
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"

        rows = await self._request("GET", f"/rest/v1/{table}", params=params)
        return rows or []

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert rows and return them as stored."""
        inserted = await self._request(
            "POST", f"/rest/v1/{table}",
            payload=rows,
            headers={"Prefer": "return=representation"},
        )
        return inserted or []

    async def delete(self, table: str, column: str, value: Any) -> None:
        """Delete rows where `column` equals `value`."""
        await self._request("DELETE", f"/rest/v1/{table}", params={column: f"eq.{value}"})

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a server-side function (e.g. get_batches_with_stats)."""
        return await self._request("POST", f"/rest/v1/rpc/{function}", payload=params or {})

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> Any:
        """Store a binary object under `bucket/path`."""
        return await self._request(
            "POST", f"/storage/v1/object/{bucket}/{path}",
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )

    async def remove_objects(self, bucket: str, paths: List[str]) -> Any:
        """Delete stored objects from a bucket."""
        return await self._request("DELETE", f"/storage/v1/object/{bucket}",
                                   payload={"prefixes": paths})

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"
