"""Unit tests for the HTTP -> browser -> minimal fetch chain.

``fetch_url`` and ``fetch_url_browser`` are patched so each test can script
exactly what every method returns.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from news_radar.core.exceptions import BrowserUnavailableError, FetchError
from news_radar.scraper.config import MINIMAL_HEADERS
from news_radar.scraper.http_fetcher import FetchResult
from news_radar.scraper.method_selector import FetchOptions, ensure_scheme, get_content
from news_radar.scraper.protection import ProtectionInfo, ProtectionType

_URL = "https://news.example.com/security"

_LISTING_HTML = (
    "<html><head><title>Security news</title></head><body><ul>"
    + "".join(f'<li><a href="/2026/story-{i}">Security story number {i}</a></li>' for i in range(20))
    + "</ul></body></html>"
)

_HTMX_LISTING_HTML = _LISTING_HTML.replace("<ul>", '<ul hx-get="/partials/latest" hx-trigger="load">')

_ARTICLE_HTML = (
    "<html><head><title>Ransomware hits hospital</title></head><body><article>"
    + "<p>The hospital said systems were restored after the ransomware attack.</p>" * 20
    + "</article></body></html>"
)


def _ok(html: str, url: str = _URL, needs_browser: bool = False) -> FetchResult:
    return FetchResult(html=html, status_code=200, final_url=url, error=None, needs_browser=needs_browser)


def _failed(error: str, status: int | None = None, protected: bool = False) -> FetchResult:
    protection = ProtectionInfo(detected=True, type=ProtectionType.CLOUDFLARE) if protected else None
    return FetchResult(
        html=None,
        status_code=status,
        final_url=_URL,
        error=error,
        needs_browser=protected,
        protection=protection,
    )


_OPTIONS = FetchOptions(http_timeout=5, browser_timeout=10, respect_robots=False, use_browser=True)


class TestEnsureScheme:
    def test_adds_https(self) -> None:
        assert ensure_scheme("example.com/news") == "https://example.com/news"

    def test_keeps_existing_scheme(self) -> None:
        assert ensure_scheme(" http://example.com ") == "http://example.com"


@pytest.mark.asyncio
class TestGetContent:
    async def test_plain_http_article(self) -> None:
        browser_fetch = AsyncMock()
        with (
            patch(
                "news_radar.scraper.method_selector.fetch_url",
                new_callable=AsyncMock,
                return_value=_ok(_ARTICLE_HTML),
            ),
            patch("news_radar.scraper.method_selector.fetch_url_browser", browser_fetch),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(
                    _URL, is_article=True, client=client, browser=MagicMock(), options=_OPTIONS
                )

        assert page.method == "http"
        assert page.html == _ARTICLE_HTML
        browser_fetch.assert_not_called()

    async def test_robots_disallowed_raises(self) -> None:
        with patch(
            "news_radar.scraper.method_selector.fetch_url",
            new_callable=AsyncMock,
            return_value=_failed("robots.txt disallowed"),
        ):
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError, match="robots.txt"):
                    await get_content(_URL, is_article=True, client=client, options=_OPTIONS)

    async def test_dynamic_listing_escalates_to_browser(self) -> None:
        rendered = _ok(_LISTING_HTML, url=_URL + "/")
        browser_fetch = AsyncMock(return_value=rendered)
        with (
            patch(
                "news_radar.scraper.method_selector.fetch_url",
                new_callable=AsyncMock,
                return_value=_ok(_HTMX_LISTING_HTML),
            ),
            patch("news_radar.scraper.method_selector.fetch_url_browser", browser_fetch),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(
                    _URL, is_article=False, client=client, browser=MagicMock(), options=_OPTIONS
                )

        assert page.method == "browser"
        assert page.final_url == _URL + "/"
        assert browser_fetch.call_args.kwargs["is_article"] is False

    async def test_dynamic_listing_keeps_http_when_browser_fails(self) -> None:
        with (
            patch(
                "news_radar.scraper.method_selector.fetch_url",
                new_callable=AsyncMock,
                return_value=_ok(_HTMX_LISTING_HTML),
            ),
            patch(
                "news_radar.scraper.method_selector.fetch_url_browser",
                new_callable=AsyncMock,
                side_effect=BrowserUnavailableError("no chromium", _URL),
            ),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(
                    _URL, is_article=False, client=client, browser=MagicMock(), options=_OPTIONS
                )

        assert page.method == "http"
        assert page.html == _HTMX_LISTING_HTML

    async def test_dynamic_listing_without_browser_uses_http(self) -> None:
        with patch(
            "news_radar.scraper.method_selector.fetch_url",
            new_callable=AsyncMock,
            return_value=_ok(_HTMX_LISTING_HTML),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(_URL, is_article=False, client=client, options=_OPTIONS)

        assert page.method == "http"

    async def test_needs_browser_uses_rendered_page(self) -> None:
        with (
            patch(
                "news_radar.scraper.method_selector.fetch_url",
                new_callable=AsyncMock,
                return_value=_ok("<html><body><div id='root'></div></body></html>", needs_browser=True),
            ),
            patch(
                "news_radar.scraper.method_selector.fetch_url_browser",
                new_callable=AsyncMock,
                return_value=_ok(_ARTICLE_HTML),
            ),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(
                    _URL, is_article=True, client=client, browser=MagicMock(), options=_OPTIONS
                )

        assert page.method == "browser"
        assert page.html == _ARTICLE_HTML

    async def test_article_falls_back_to_minimal_request(self) -> None:
        http_fetch = AsyncMock(side_effect=[_failed("HTTP 403", 403, protected=True), _ok(_ARTICLE_HTML)])
        with (
            patch("news_radar.scraper.method_selector.fetch_url", http_fetch),
            patch(
                "news_radar.scraper.method_selector.fetch_url_browser",
                new_callable=AsyncMock,
                return_value=_failed("All navigation strategies failed"),
            ),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(
                    _URL, is_article=True, client=client, browser=MagicMock(), options=_OPTIONS
                )

        assert page.method == "minimal"
        assert http_fetch.call_count == 2
        assert http_fetch.call_args_list[1].kwargs["headers"] == MINIMAL_HEADERS

    async def test_blank_browser_render_falls_through_to_minimal(self) -> None:
        http_fetch = AsyncMock(side_effect=[_failed("HTTP 403", 403, protected=True), _ok(_ARTICLE_HTML)])
        with (
            patch("news_radar.scraper.method_selector.fetch_url", http_fetch),
            patch(
                "news_radar.scraper.method_selector.fetch_url_browser",
                new_callable=AsyncMock,
                return_value=_ok("<html><head></head><body></body></html>"),
            ),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(
                    _URL, is_article=True, client=client, browser=MagicMock(), options=_OPTIONS
                )

        assert page.method == "minimal"
        assert page.html == _ARTICLE_HTML

    async def test_blank_browser_render_of_listing_is_rejected(self) -> None:
        with (
            patch(
                "news_radar.scraper.method_selector.fetch_url",
                new_callable=AsyncMock,
                return_value=_failed("HTTP 403", 403, protected=True),
            ),
            patch(
                "news_radar.scraper.method_selector.fetch_url_browser",
                new_callable=AsyncMock,
                return_value=_ok("<html><head></head><body></body></html>"),
            ),
        ):
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError, match="All fetch methods failed"):
                    await get_content(
                        _URL, is_article=False, client=client, browser=MagicMock(), options=_OPTIONS
                    )

    async def test_listing_never_uses_minimal_request(self) -> None:
        http_fetch = AsyncMock(return_value=_failed("HTTP 403", 403, protected=True))
        with (
            patch("news_radar.scraper.method_selector.fetch_url", http_fetch),
            patch(
                "news_radar.scraper.method_selector.fetch_url_browser",
                new_callable=AsyncMock,
                side_effect=BrowserUnavailableError("no chromium", _URL),
            ),
        ):
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError, match="All fetch methods failed"):
                    await get_content(
                        _URL, is_article=False, client=client, browser=MagicMock(), options=_OPTIONS
                    )

        assert http_fetch.call_count == 1

    async def test_short_unprotected_http_page_is_last_resort(self) -> None:
        short = "<html><body><p>Brief item</p></body></html>"
        with (
            patch(
                "news_radar.scraper.method_selector.fetch_url",
                new_callable=AsyncMock,
                side_effect=[_ok(short, needs_browser=True), _failed("timeout")],
            ),
            patch(
                "news_radar.scraper.method_selector.fetch_url_browser",
                new_callable=AsyncMock,
                return_value=_failed("browser error"),
            ),
        ):
            async with httpx.AsyncClient() as client:
                page = await get_content(
                    _URL, is_article=True, client=client, browser=MagicMock(), options=_OPTIONS
                )

        assert page.method == "http"
        assert page.html == short

    async def test_browser_disabled_by_options(self) -> None:
        browser_fetch = AsyncMock()
        options = FetchOptions(respect_robots=False, use_browser=False)
        with (
            patch(
                "news_radar.scraper.method_selector.fetch_url",
                new_callable=AsyncMock,
                return_value=_failed("HTTP 500", 500),
            ),
            patch("news_radar.scraper.method_selector.fetch_url_browser", browser_fetch),
        ):
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError):
                    await get_content(
                        _URL, is_article=False, client=client, browser=MagicMock(), options=options
                    )

        browser_fetch.assert_not_called()
