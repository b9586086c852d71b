"""Shared async HTTP client base for upstream providers."""
from __future__ import annotations
import asyncio
import logging
from typing import Any

import aiohttp

from app.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Lazily-opened aiohttp session with a per-client timeout.

    Subclasses set ``service_name`` (used in error text) and override
    ``default_headers`` for their auth scheme.
    """

    service_name = "Upstream"

    def __init__(self, base_url: str = "", timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self.default_headers(),
            )
        return self._session

    def default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _get(self, path: str, params: Any = None, headers: dict | None = None) -> Any:
        url = self._url(path)
        try:
            async with self.session.get(url, params=params, headers=headers) as resp:
                if resp.status >= 400:
                    logger.warning(f"{self.service_name} returned {resp.status} for {resp.url.path}")
                    raise UpstreamError(self.service_name, resp.status)
                return await resp.json(content_type=None)
        except UpstreamError:
            raise
        except asyncio.TimeoutError as e:
            logger.warning(f"{self.service_name} request timed out: {url.split('?')[0]}")
            raise UpstreamError(self.service_name, message=f"{self.service_name} API timeout") from e
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning(f"{self.service_name} request failed: {e.__class__.__name__}")
            raise UpstreamError(self.service_name, message=f"{self.service_name} API unavailable") from e

    async def _post(self, path: str, data: Any = None, json: Any = None, headers: dict | None = None) -> Any:
        url = self._url(path)
        try:
            async with self.session.post(url, data=data, json=json, headers=headers) as resp:
                if resp.status >= 400:
                    logger.warning(f"{self.service_name} returned {resp.status} for {resp.url.path}")
                    raise UpstreamError(self.service_name, resp.status)
                return await resp.json(content_type=None)
        except UpstreamError:
            raise
        except asyncio.TimeoutError as e:
            raise UpstreamError(self.service_name, message=f"{self.service_name} API timeout") from e
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning(f"{self.service_name} request failed: {e.__class__.__name__}")
            raise UpstreamError(self.service_name, message=f"{self.service_name} API unavailable") from e

    async def _get_text(self, path: str, params: Any = None, headers: dict | None = None) -> str:
        url = self._url(path)
        try:
            async with self.session.get(url, params=params, headers=headers) as resp:
                if resp.status >= 400:
                    raise UpstreamError(self.service_name, resp.status)
                return await resp.text()
        except UpstreamError:
            raise
        except asyncio.TimeoutError as e:
            raise UpstreamError(self.service_name, message=f"{self.service_name} API timeout") from e
        except aiohttp.ClientError as e:
            raise UpstreamError(self.service_name, message=f"{self.service_name} API unavailable") from e
