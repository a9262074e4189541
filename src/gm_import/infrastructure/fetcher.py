"""HTTP access for the importer: listing pages and item images (httpx).

Page fetch failures are fatal for the import (``UpstreamFetchError``, 502).
Image downloads are retried on network errors and transient statuses with a
linear backoff of ``base_delay * attempt`` seconds.
"""

import asyncio
import logging
from types import TracebackType

import httpx

from config.settings import settings
from src.gm_common.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = frozenset({408, 423, 425, 429})

_PAGE_HEADERS = {
    "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}
_IMAGE_ACCEPT = "image/avif,image/webp,image/*,*/*;q=0.8"


class ImageDownloadError(Exception):
    """Image could not be downloaded; the candidate is reported, the import goes on."""


def is_transient(status_code: int) -> bool:
    return status_code >= 500 or status_code in TRANSIENT_STATUSES


class PageFetcher:
    """Async context manager owning one httpx.AsyncClient for a whole import run."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        retries: int = settings.IMPORT_IMAGE_RETRIES,
        base_delay: float = settings.IMPORT_RETRY_BASE_DELAY,
        timeout: float = settings.IMPORT_HTTP_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=5.0),
            follow_redirects=True,
            headers={"User-Agent": settings.IMPORT_USER_AGENT, **_PAGE_HEADERS},
        )
        self._retries = retries
        self._base_delay = base_delay

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_page(self, url: str) -> str:
        try:
            resp = await self._client.get(url, headers={"Referer": url})
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"network error for {url}: {exc}") from exc
        if resp.status_code >= 400:
            raise UpstreamFetchError(
                f"{url} answered with status {resp.status_code} (anti-bot protection?)"
            )
        return resp.text

    async def fetch_image(self, url: str, referer: str | None = None) -> tuple[bytes, str]:
        """Return (content, content_type); raise ImageDownloadError after the last attempt."""
        headers = {"Accept": _IMAGE_ACCEPT}
        if referer:
            headers["Referer"] = referer
        last_error = "no attempt made"
        for attempt in range(1, self._retries + 2):
            try:
                resp = await self._client.get(url, headers=headers)
            except httpx.HTTPError as exc:
                last_error = f"network error: {exc}"
            else:
                if resp.status_code < 400:
                    return resp.content, resp.headers.get("content-type", "")
                last_error = f"image status {resp.status_code}"
                if not is_transient(resp.status_code):
                    break
            if attempt <= self._retries:
                delay = self._base_delay * attempt
                logger.debug("Image fetch retry %d for %s in %.1fs (%s)", attempt, url, delay, last_error)
                await asyncio.sleep(delay)
        raise ImageDownloadError(last_error)
