"""
HTTP transport for remote credential signers
"""

import httpx
from typing import Optional, Dict, Any
import asyncio

INITIAL_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 10000


class HttpClient:
    """
    Authorized JSON POSTs to a signing endpoint.

    Requests that fail before a response arrives are retried with
    exponential backoff; any HTTP response, error statuses included, is
    returned to the caller as is.
    """

    def __init__(
        self,
        access_token: str,
        timeout: int = 30,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {access_token}"},
            transport=transport,
        )

    async def post_json(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        """POST ``payload`` as JSON, retrying transport errors."""
        for attempt in range(self.max_retries):
            try:
                return await self._client.post(url, json=payload)
            except httpx.RequestError:
                if attempt == self.max_retries - 1:
                    raise
                await asyncio.sleep(self.backoff(attempt))

    @staticmethod
    def backoff(attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        return min(INITIAL_BACKOFF_MS * (2 ** attempt), MAX_BACKOFF_MS) / 1000

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
