"""Byte-level fetching of static data files (HTTP or local)."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import unquote, urlparse

import aiohttp

from caremap.exceptions import FetchError

_logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Structural fetch interface used by the ingestion modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`SourceFetcher`) concrete.
    """

    async def fetch(self, source: str) -> bytes:
        ...


def _is_http(source: str) -> bool:
    return urlparse(source).scheme in {"http", "https"}


def _local_path(source: str) -> Path:
    parsed = urlparse(source)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(source)


class SourceFetcher:
    """Fetch raw bytes from ``http(s)://`` URLs, ``file://`` URLs or paths.

    Usage::

        async with SourceFetcher() as fetcher:
            raw = await fetcher.fetch("https://example.org/data/caps_final.csv")
    """

    def __init__(
        self,
        *,
        session: aiohttp.ClientSession | None = None,
        retries: int = 0,
        retry_delay: float = 1.0,
    ) -> None:
        self._external_session = session is not None
        self._http = session
        self._retries = max(0, retries)
        self._retry_delay = retry_delay

    async def __aenter__(self) -> SourceFetcher:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None

    async def fetch(self, source: str) -> bytes:
        """Fetch *source*, retrying up to ``retries`` times on `FetchError`."""
        attempts = self._retries + 1
        for attempt in range(1, attempts):
            try:
                return await self._fetch_once(source)
            except FetchError:
                _logger.warning(
                    "Fetching %s failed (attempt %d/%d), retrying in %.1fs",
                    source,
                    attempt,
                    attempts,
                    self._retry_delay,
                )
                await asyncio.sleep(self._retry_delay)
        return await self._fetch_once(source)

    async def _fetch_once(self, source: str) -> bytes:
        if _is_http(source):
            return await self._fetch_http(source)
        return await self._read_file(source)

    async def _fetch_http(self, url: str) -> bytes:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        _logger.debug("GET %s", url)
        try:
            async with self._http.get(url) as resp:
                if resp.status != 200:
                    text = await resp.text(errors="replace")
                    raise FetchError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        source=url,
                        status_code=resp.status,
                    )
                return await resp.read()
        except FetchError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(f"Request to {url} failed: {exc}", source=url) from exc

    async def _read_file(self, source: str) -> bytes:
        path = _local_path(source)
        _logger.debug("Reading %s", path)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise FetchError(f"Cannot read {path}: {exc}", source=source) from exc
