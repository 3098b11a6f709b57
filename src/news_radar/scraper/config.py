"""Constants and tuning parameters for the news scraper."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Content size guards
# ---------------------------------------------------------------------------

#: Maximum extracted text size (bytes).
MAX_CONTENT_BYTES: int = 900 * 1024  # 900 KB

#: Body length threshold (stripped characters) below which a page is
#: considered a JS-only shell requiring a browser retry.
JS_SHELL_BODY_THRESHOLD: int = 500

#: HTML length above which a plain HTTP response is trusted without a
#: browser retry (unless it is a protection page).
MIN_USABLE_HTML_LENGTH: int = 1000

#: HTML length above which a page with article/main/paragraph markup is
#: considered substantial and never escalated to the browser.
SUBSTANTIAL_HTML_LENGTH: int = 10_000

#: Pages with fewer anchors than this are treated as incomplete listings.
MIN_LISTING_LINKS: int = 5

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

#: Desktop Chrome user agent used for page fetches and the browser.
BROWSER_USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

#: Browser-like request headers sent with plain HTTP page fetches.
BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "max-age=0",
    "Sec-Ch-Ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

#: Headers for the last-resort "minimal" article fetch.
MINIMAL_HEADERS: dict[str, str] = {
    "User-Agent": "curl/7.68.0",
    "Accept": "*/*",
}

#: Headers for RSS/Atom feed requests.
FEED_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (compatible; NewsRadar/1.0; feed reader)",
    "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml",
    "Accept-Language": "en-US,en;q=0.9",
}

#: Content-Type prefixes that indicate binary/non-text resources that should
#: be skipped without attempting extraction.
BINARY_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/zip",
        "application/octet-stream",
        "application/x-executable",
        "application/vnd.",
        "image/",
        "video/",
        "audio/",
        "font/",
    }
)

# ---------------------------------------------------------------------------
# robots.txt
# ---------------------------------------------------------------------------

#: robots.txt user-agent token to check against.
ROBOTS_USER_AGENT: str = "NewsRadar"

#: Fallback user-agent token if a site has no entry for ``ROBOTS_USER_AGENT``.
ROBOTS_USER_AGENT_FALLBACK: str = "*"

# ---------------------------------------------------------------------------
# Headless browser
# ---------------------------------------------------------------------------

#: Chromium launch flags.
BROWSER_LAUNCH_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=1920,1080",
    "--disable-features=site-per-process,AudioServiceOutOfProcess",
    "--disable-software-rasterizer",
    "--disable-extensions",
    "--mute-audio",
    "--no-first-run",
    "--no-default-browser-check",
    "--ignore-certificate-errors",
    "--disable-blink-features=AutomationControlled",
]

BROWSER_VIEWPORT: dict[str, int] = {"width": 1920, "height": 1080}

#: Ordered navigation attempts: (``wait_until`` value, timeout in seconds).
NAVIGATION_STRATEGIES: list[tuple[str, float]] = [
    ("domcontentloaded", 15.0),
    ("load", 12.0),
    ("commit", 10.0),
]

#: DataDome challenge polling.
DATADOME_MAX_WAIT_SECONDS: float = 15.0
DATADOME_POLL_INTERVAL_SECONDS: float = 1.0
DATADOME_SETTLE_SECONDS: float = 2.0

#: Listing pages with fewer links than this are scrolled once.
SCROLL_LINK_THRESHOLD: int = 20
SCROLL_WAIT_SECONDS: float = 2.0

#: Upper bound for the listing-page link loading step.
LINK_EXTRACTION_TIMEOUT_SECONDS: float = 30.0

#: HTMX handling on listing pages.
HTMX_MAX_TRIGGERS: int = 5
HTMX_INITIAL_WAIT_SECONDS: float = 3.0
HTMX_SETTLE_SECONDS: float = 5.0

# ---------------------------------------------------------------------------
# Link extraction
# ---------------------------------------------------------------------------

#: Path fragments that mark navigation/utility links rather than articles.
NON_ARTICLE_PATH_MARKERS: tuple[str, ...] = (
    "/login",
    "/signin",
    "/sign-in",
    "/signup",
    "/register",
    "/subscribe",
    "/account",
    "/privacy",
    "/terms",
    "/contact",
    "/about",
    "/tag/",
    "/tags/",
    "/category/",
    "/author/",
    "/search",
)

#: File extensions that never point at article pages.
NON_ARTICLE_EXTENSIONS: tuple[str, ...] = (
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".svg",
    ".webp",
    ".css",
    ".js",
    ".ico",
    ".pdf",
    ".zip",
    ".mp3",
    ".mp4",
)
