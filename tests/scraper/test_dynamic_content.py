"""Unit tests for the browser-escalation heuristics."""

from __future__ import annotations

from news_radar.scraper.dynamic_content import (
    count_anchor_links,
    detect_dynamic_content_needs,
    requires_browser,
)


def _links(count: int) -> str:
    return "".join(f'<a href="/news/{i}">Headline {i}</a>' for i in range(count))


def _padding(chars: int) -> str:
    return "<div>" + "x" * chars + "</div>"


class TestCountAnchorLinks:
    def test_counts_anchors_with_href(self) -> None:
        html = '<a href="/a">A</a><a name="top">Top</a><A class="x" HREF="/b">B</A>'
        assert count_anchor_links(html) == 2


class TestRequiresBrowser:
    def test_large_article_page_never_needs_browser(self) -> None:
        html = "<html><body><article>" + "<p>Text.</p>" * 1200 + "</article></body></html>"
        assert len(html) > 10_000
        assert requires_browser(html) is False

    def test_hydration_shell_needs_browser(self) -> None:
        html = '<html><body><div id="__next"></div>' + _links(40) + _padding(12_000) + "</body></html>"
        assert requires_browser(html) is True

    def test_small_page_with_few_links_needs_browser(self) -> None:
        html = "<html><body>" + _links(3) + "</body></html>"
        assert requires_browser(html) is True

    def test_small_page_with_lazy_loading_needs_browser(self) -> None:
        html = '<html><body><img loading="lazy" src="/a.png">' + _links(20) + "</body></html>"
        assert requires_browser(html) is True

    def test_small_page_with_htmx_needs_browser(self) -> None:
        html = '<html><body><div hx-get="/more"></div>' + _links(20) + "</body></html>"
        assert requires_browser(html) is True

    def test_small_static_listing_does_not_need_browser(self) -> None:
        html = "<html><head><title>News</title></head><body>" + _links(20) + "</body></html>"
        assert requires_browser(html) is False

    def test_large_page_without_markers_does_not_need_browser(self) -> None:
        html = "<html><body>" + _links(60) + _padding(12_000) + "</body></html>"
        assert requires_browser(html) is False


class TestDetectDynamicContentNeeds:
    def test_htmx_attribute(self) -> None:
        html = "<html><body>" + _links(30) + '<div hx-get="/articles?page=2"></div></body></html>'
        assert detect_dynamic_content_needs(html) is True

    def test_few_links(self) -> None:
        assert detect_dynamic_content_needs("<html><body>" + _links(2) + "</body></html>") is True

    def test_static_listing(self) -> None:
        assert detect_dynamic_content_needs("<html><body>" + _links(30) + "</body></html>") is False

    def test_spa_with_loading_state(self) -> None:
        html = '<html><body ng-app="news"><div class="loading-spinner"></div>' + _links(30)
        assert detect_dynamic_content_needs(html) is True

    def test_spa_alone_is_not_enough(self) -> None:
        html = '<html><body ng-app="news">' + _links(30) + "</body></html>"
        assert detect_dynamic_content_needs(html) is False

    def test_empty_article_container(self) -> None:
        html = '<div class="articles-container"><span class="skeleton"></span></div>' + _links(30)
        assert detect_dynamic_content_needs(html) is True

    def test_dynamic_loading_with_placeholder(self) -> None:
        html = '<button class="load-more"></button><div class="content-placeholder"></div>' + _links(30)
        assert detect_dynamic_content_needs(html) is True
