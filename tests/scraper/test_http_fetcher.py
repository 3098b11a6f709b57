"""Unit tests for the HTTP fetcher module.

Tests robots.txt blocking and caching, binary content-type skipping,
JS-shell and protection detection, HTTP error handling, and successful
fetches using mocked httpx responses.
"""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
import respx

from news_radar.scraper.http_fetcher import (
    FetchResult,
    _is_binary_content_type,
    _is_js_shell,
    fetch_url,
)

_ARTICLE_HTML = (
    "<html><head><title>Story</title></head><body><article>"
    + "<p>Investigators said the intrusion began in March.</p>" * 250
    + "</article></body></html>"
)


# ---------------------------------------------------------------------------
# Unit tests for helper functions
# ---------------------------------------------------------------------------


class TestIsBinaryContentType:
    def test_pdf_is_binary(self) -> None:
        assert _is_binary_content_type("application/pdf") is True

    def test_image_is_binary(self) -> None:
        assert _is_binary_content_type("image/png") is True
        assert _is_binary_content_type("image/jpeg") is True

    def test_html_not_binary(self) -> None:
        assert _is_binary_content_type("text/html; charset=utf-8") is False

    def test_feed_not_binary(self) -> None:
        assert _is_binary_content_type("application/rss+xml") is False

    def test_vnd_is_binary(self) -> None:
        assert _is_binary_content_type("application/vnd.ms-excel") is True


class TestIsJsShell:
    def test_empty_is_js_shell(self) -> None:
        assert _is_js_shell("") is True

    def test_short_body_is_js_shell(self) -> None:
        assert _is_js_shell("<html><body><div id='app'></div></body></html>") is True

    def test_real_article_not_js_shell(self) -> None:
        assert _is_js_shell(_ARTICLE_HTML) is False


class TestFetchResult:
    def test_ok_requires_html_and_no_error(self) -> None:
        assert FetchResult("<html></html>", 200, "https://a", None).ok is True
        assert FetchResult(None, 404, "https://a", "HTTP 404").ok is False
        assert FetchResult("", 200, "https://a", None).ok is False


# ---------------------------------------------------------------------------
# Integration tests using respx (mock httpx)
# ---------------------------------------------------------------------------


async def _fetch(url: str, **kwargs) -> FetchResult:
    kwargs.setdefault("timeout", 10)
    kwargs.setdefault("respect_robots", False)
    kwargs.setdefault("robots_cache", {})
    async with httpx.AsyncClient() as client:
        return await fetch_url(url, client=client, **kwargs)


@pytest.mark.asyncio
class TestFetchUrl:
    async def test_successful_fetch(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            mock.get("/article").mock(
                return_value=httpx.Response(
                    200,
                    text=_ARTICLE_HTML,
                    headers={"content-type": "text/html; charset=utf-8"},
                )
            )
            result = await _fetch("https://example.com/article")

        assert result.ok is True
        assert result.html == _ARTICLE_HTML
        assert result.status_code == 200
        assert result.final_url == "https://example.com/article"
        assert result.needs_browser is False
        assert result.protection is not None
        assert result.protection.detected is False

    async def test_sends_browser_headers_by_default(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            route = mock.get("/article").mock(
                return_value=httpx.Response(200, text=_ARTICLE_HTML)
            )
            await _fetch("https://example.com/article")

        assert "Chrome" in route.calls.last.request.headers["user-agent"]

    async def test_custom_headers_replace_defaults(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            route = mock.get("/article").mock(
                return_value=httpx.Response(200, text=_ARTICLE_HTML)
            )
            await _fetch(
                "https://example.com/article",
                headers={"User-Agent": "curl/7.68.0", "Accept": "*/*"},
            )

        assert route.calls.last.request.headers["user-agent"] == "curl/7.68.0"

    async def test_http_404_returns_error(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            mock.get("/missing").mock(return_value=httpx.Response(404))
            result = await _fetch("https://example.com/missing")

        assert result.html is None
        assert result.status_code == 404
        assert result.error == "HTTP 404"
        assert result.needs_browser is False
        assert result.protection is None

    async def test_http_403_behind_cloudflare_needs_browser(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            mock.get("/").mock(
                return_value=httpx.Response(
                    403,
                    text="<html><title>Just a moment...</title></html>",
                    headers={"server": "cloudflare", "cf-ray": "7d1f0c2e-AMS"},
                )
            )
            result = await _fetch("https://example.com/")

        assert result.error == "HTTP 403"
        assert result.needs_browser is True
        assert result.protection is not None
        assert result.protection.detected is True
        assert result.protection.type.value == "cloudflare"

    async def test_binary_content_type_skipped(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            mock.get("/doc.pdf").mock(
                return_value=httpx.Response(
                    200,
                    content=b"%PDF-1.4",
                    headers={"content-type": "application/pdf"},
                )
            )
            result = await _fetch("https://example.com/doc.pdf")

        assert result.html is None
        assert result.error is not None
        assert "binary" in result.error.lower()

    async def test_js_shell_sets_needs_browser(self) -> None:
        short_html = "<html><body><div id='app'></div></body></html>"
        with respx.mock(base_url="https://spa.example.com") as mock:
            mock.get("/").mock(
                return_value=httpx.Response(
                    200,
                    text=short_html,
                    headers={"content-type": "text/html"},
                )
            )
            result = await _fetch("https://spa.example.com/")

        assert result.needs_browser is True
        assert result.html == short_html

    async def test_timeout_returns_error(self) -> None:
        with respx.mock(base_url="https://slow.example.com") as mock:
            mock.get("/slow").mock(side_effect=httpx.TimeoutException("timeout"))
            result = await _fetch("https://slow.example.com/slow", timeout=5)

        assert result.html is None
        assert result.error == "timeout"

    async def test_connection_error_returns_error(self) -> None:
        with respx.mock(base_url="https://down.example.com") as mock:
            mock.get("/").mock(side_effect=httpx.ConnectError("refused"))
            result = await _fetch("https://down.example.com/")

        assert result.html is None
        assert result.error is not None
        assert result.error.startswith("request error:")

    async def test_robots_txt_blocking(self) -> None:
        """When robots.txt disallows, the page itself is never requested."""
        with respx.mock(base_url="https://example.com", assert_all_called=False) as mock:
            mock.get("/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: *\nDisallow: /private/\n")
            )
            page = mock.get("/private/report").mock(
                return_value=httpx.Response(200, text=_ARTICLE_HTML)
            )
            result = await _fetch("https://example.com/private/report", respect_robots=True)

        assert result.html is None
        assert result.error == "robots.txt disallowed"
        assert page.called is False

    async def test_robots_txt_specific_agent_blocking(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            mock.get("/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: NewsRadar\nDisallow: /\n")
            )
            result = await _fetch("https://example.com/article", respect_robots=True)

        assert result.error == "robots.txt disallowed"

    async def test_missing_robots_txt_allows(self) -> None:
        with respx.mock(base_url="https://example.com") as mock:
            mock.get("/robots.txt").mock(return_value=httpx.Response(404))
            mock.get("/article").mock(return_value=httpx.Response(200, text=_ARTICLE_HTML))
            result = await _fetch("https://example.com/article", respect_robots=True)

        assert result.ok is True

    async def test_robots_txt_cached_per_origin(self) -> None:
        robots_cache: dict = {}
        with respx.mock(base_url="https://example.com") as mock:
            robots = mock.get("/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: *\nAllow: /\n")
            )
            mock.get("/a").mock(return_value=httpx.Response(200, text=_ARTICLE_HTML))
            mock.get("/b").mock(return_value=httpx.Response(200, text=_ARTICLE_HTML))
            async with httpx.AsyncClient() as client:
                for path in ("/a", "/b"):
                    await fetch_url(
                        f"https://example.com{path}",
                        client=client,
                        timeout=10,
                        respect_robots=True,
                        robots_cache=robots_cache,
                    )

        assert robots.call_count == 1
        assert "https://example.com" in robots_cache

    async def test_robots_check_patched_out(self) -> None:
        with patch(
            "news_radar.scraper.http_fetcher._is_allowed_by_robots",
            return_value=False,
        ):
            result = await _fetch("https://blocked.example.com/secret", respect_robots=True)

        assert result.error == "robots.txt disallowed"
