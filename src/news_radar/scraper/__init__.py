"""News source scraper.

Fetches source listing pages, follows their article links and stores the
articles that match a tenant's keywords.  Falls back to a headless browser
for client-rendered or protected pages and to RSS/Atom feeds when a source
cannot be scraped at all.

Sub-modules:
- ``config``             — constants and tuning parameters
- ``protection``         — bot-protection / CDN error page detection
- ``dynamic_content``    — heuristics for escalating to the browser
- ``http_fetcher``       — async httpx page fetcher with robots.txt support
- ``playwright_fetcher`` — shared headless Chromium (``BrowserManager``)
- ``method_selector``    — HTTP → browser → minimal fetch chain
- ``content_extractor``  — selector / trafilatura article extraction
- ``link_extractor``     — article link extraction from listing pages
- ``feed_discovery``     — RSS/Atom feed autodiscovery
- ``rss_fallback``       — feed-based alternative scraping
- ``keywords``           — whole-word keyword matching
- ``pipeline``           — source and global scrape jobs
- ``scheduler``          — per-tenant auto-scrape schedules
- ``tasks``              — Celery tasks
"""
