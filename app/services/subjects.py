from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class SubjectDirectory(Protocol):
    async def exists(self, subject_id: str) -> bool: ...


class HttpSubjectDirectory:
    """Resolve subjects against the customer directory over HTTP.

    ``GET {base_url}/subjects/{id}``: 200 means the subject exists, 404 means it
    does not. Any other status is a directory failure and raises.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def exists(self, subject_id: str) -> bool:
        url = f"{self.base_url}/subjects/{quote(subject_id, safe='')}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(url)
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("Subject %s not found in directory", subject_id)
            return False
        response.raise_for_status()
        return True
