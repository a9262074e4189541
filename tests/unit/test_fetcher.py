"""Unit tests for PageFetcher over httpx.MockTransport."""

import httpx
import pytest

from src.gm_common.errors import UpstreamFetchError
from src.gm_import.infrastructure.fetcher import ImageDownloadError, PageFetcher, is_transient


def _fetcher(handler, retries: int = 2) -> PageFetcher:  # type: ignore[no-untyped-def]
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PageFetcher(client=client, retries=retries, base_delay=0)


def test_transient_statuses() -> None:
    assert is_transient(503)
    assert is_transient(429)
    assert not is_transient(404)
    assert not is_transient(403)


class TestFetchPage:
    async def test_returns_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="<html>ok</html>")

        async with _fetcher(handler) as fetcher:
            assert await fetcher.fetch_page("https://playerok.com/games/x") == "<html>ok</html>"
        assert seen[0].headers["Referer"] == "https://playerok.com/games/x"

    async def test_error_status_is_upstream_error(self) -> None:
        fetcher = _fetcher(lambda request: httpx.Response(403))
        with pytest.raises(UpstreamFetchError) as exc_info:
            await fetcher.fetch_page("https://playerok.com/games/x")
        assert exc_info.value.http_status == 502
        assert "403" in exc_info.value.message

    async def test_network_error_is_upstream_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamFetchError):
            await _fetcher(handler).fetch_page("https://playerok.com/games/x")


class TestFetchImage:
    async def test_retries_transient_then_succeeds(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                return httpx.Response(503)
            return httpx.Response(200, content=b"img", headers={"content-type": "image/png"})

        content, content_type = await _fetcher(handler).fetch_image(
            "https://cdn/a.png", referer="https://playerok.com/games/x"
        )

        assert (content, content_type) == (b"img", "image/png")
        assert calls == 3

    async def test_permanent_status_not_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(404)

        with pytest.raises(ImageDownloadError, match="image status 404"):
            await _fetcher(handler).fetch_image("https://cdn/a.png")
        assert calls == 1

    async def test_network_errors_exhaust_retries(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ImageDownloadError, match="network error"):
            await _fetcher(handler, retries=1).fetch_image("https://cdn/a.png")
        assert calls == 2

    async def test_referer_sent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"img")

        await _fetcher(handler).fetch_image("https://cdn/a.png", referer="https://playerok.com/p")
        assert seen[0].headers["Referer"] == "https://playerok.com/p"
        assert seen[0].headers["Accept"].startswith("image/")
