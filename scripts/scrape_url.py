#!/usr/bin/env python
"""Fetch one URL through the scraper's fallback chain and print the result.

Useful for checking how a new source behaves before adding it: which fetch
method succeeds, which article links are found, and what text is extracted.

Usage::

    python scripts/scrape_url.py https://therecord.media/            # listing page
    python scripts/scrape_url.py --article https://example.com/story
    python scripts/scrape_url.py --no-browser --feeds https://www.marketwatch.com/

Run from an environment where the package is installed (``pip install -e .``).

Exit codes:
    0: Content (or feed entries) retrieved.
    1: Every fetch method failed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import httpx

from news_radar.config.settings import get_settings
from news_radar.core.exceptions import FetchError
from news_radar.core.logging_config import configure_logging
from news_radar.scraper.content_extractor import extract_from_html
from news_radar.scraper.link_extractor import LinkExtractionOptions, extract_article_links
from news_radar.scraper.method_selector import FetchOptions, get_content
from news_radar.scraper.playwright_fetcher import BrowserManager
from news_radar.scraper.rss_fallback import try_alternative_scraping


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("url", help="Page URL to fetch")
    parser.add_argument(
        "--article",
        action="store_true",
        help="Treat the URL as an article page and print extracted content",
    )
    parser.add_argument("--no-browser", action="store_true", help="Never launch Chromium")
    parser.add_argument(
        "--feeds",
        action="store_true",
        help="Also try the RSS/Atom fallback for listing pages",
    )
    parser.add_argument("--max-links", type=int, default=50)
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    options = FetchOptions.from_settings(settings)
    options.use_browser = options.use_browser and not args.no_browser
    browser = (
        BrowserManager(
            headless=settings.browser_headless,
            executable_path=settings.browser_executable_path,
        )
        if options.use_browser
        else None
    )

    async with httpx.AsyncClient(follow_redirects=True) as client:
        try:
            try:
                page = await get_content(
                    args.url,
                    is_article=args.article,
                    client=client,
                    browser=browser,
                    options=options,
                )
            except FetchError as exc:
                print(f"fetch failed: {exc}", file=sys.stderr)
                page = None

            output: dict = {"url": args.url}
            if page is not None:
                output.update(method=page.method, final_url=page.final_url)
                if args.article:
                    extracted = extract_from_html(page.html, page.final_url)
                    output.update(
                        title=extracted.title,
                        author=extracted.author,
                        published_at=(
                            extracted.published_at.isoformat() if extracted.published_at else None
                        ),
                        language=extracted.language,
                        text=extracted.text,
                    )
                else:
                    output["links"] = extract_article_links(
                        page.html,
                        page.final_url,
                        LinkExtractionOptions(max_links=args.max_links),
                    )

            if not args.article and (args.feeds or page is None):
                entries = await try_alternative_scraping(
                    args.url, client=client, html=page.html if page else None
                )
                output["feed_entries"] = [
                    {"title": e.title, "link": e.link, "summary": e.summary} for e in entries
                ]

            print(json.dumps(output, indent=2, ensure_ascii=False))
            return 0 if page is not None or output.get("feed_entries") else 1
        finally:
            if browser is not None:
                await browser.close()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
