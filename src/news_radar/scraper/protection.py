"""Bot-protection and CDN error page detection.

Scores an HTML document against lists of Cloudflare / DataDome / reCAPTCHA
indicators so that the fetch chain can tell a real page from a challenge or
error page, and decide whether a listing page has enough links to be used.

Scoring starts at a confidence of 100 and subtracts a penalty per indicator
found (title −20, body −15, error link −25, challenge script −20).  A page
with more than two indicators, or a confidence below 50, is an error page.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Indicators
# ---------------------------------------------------------------------------

_TITLE_INDICATORS: tuple[str, ...] = (
    "error",
    "forbidden",
    "access denied",
    "just a moment",
    "403",
    "503",
    "502",
    "504",
    "blocked",
    "challenge",
    "please wait",
    "checking your browser",
    "security check",
)

_BODY_INDICATORS: tuple[str, ...] = (
    "cf-error",
    "cloudflare",
    "ray id",
    "challenge-form",
    "cf-browser-verification",
    "cf-wrapper",
    "cf-browser-check",
    "ddos-protection",
    "rate-limited",
    "security-challenge",
    "access-restricted",
    "bot-detection",
    "_cf_chl_jschl_tk",
    "cf-chl-bypass",
    "cf-challenge-running",
    "cf-im-under-attack",
)

_LINK_INDICATORS: tuple[str, ...] = (
    "cloudflare.com/5xx-error",
    "support.cloudflare.com",
    "cloudflare.com/error",
    "challenges.cloudflare.com",
)

_SCRIPT_INDICATORS: tuple[str, ...] = (
    "cdn-cgi/challenge-platform",
    "cloudflare-static",
    "/cdn-cgi/scripts/",
    "cf-challenge.js",
)

_TITLE_PENALTY = 20
_BODY_PENALTY = 15
_LINK_PENALTY = 25
_SCRIPT_PENALTY = 20

#: Below this many characters a page cannot be valid content.
_MIN_HTML_LENGTH = 500

#: Listing pages need at least this many usable links.
_MIN_SOURCE_LINKS = 10

#: Article pages need more readable text than this.
_MIN_ARTICLE_TEXT = 500

_HTMX_ATTRS: tuple[str, ...] = ("hx-get", "hx-post", "data-hx-get", "data-hx-post")
_HTMX_UI_MARKERS: tuple[str, ...] = ("search", "filter", "login", "signup")

_DATADOME_MESSAGE = "please enable js and disable any ad blocker"


class ProtectionType(str, enum.Enum):
    """Kind of protection or error page detected."""

    NONE = "none"
    CLOUDFLARE = "cloudflare"
    DATADOME = "datadome"
    RECAPTCHA = "recaptcha"
    GENERIC = "generic"


@dataclass
class ValidationResult:
    """Outcome of :func:`validate_content`.

    Attributes:
        is_valid: The page looks like usable content for its kind.
        is_error_page: The page looks like an error or challenge page.
        protection_type: Detected protection family.
        link_count: Number of usable navigation links.
        has_content: The page carries any meaningful content at all.
        error_indicators: ``"<where>:<indicator>"`` strings that matched.
        confidence: 0–100 confidence that the page is genuine.
    """

    is_valid: bool = True
    is_error_page: bool = False
    protection_type: ProtectionType = ProtectionType.NONE
    link_count: int = 0
    has_content: bool = False
    error_indicators: list[str] = field(default_factory=list)
    confidence: int = 100


@dataclass
class ProtectionInfo:
    """Outcome of :func:`detect_protection`."""

    detected: bool = False
    type: ProtectionType = ProtectionType.NONE
    confidence: int = 0
    indicators: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _count_usable_links(soup: BeautifulSoup) -> int:
    """Count plain and HTMX navigation elements that can lead to articles."""
    usable: set[int] = set()
    for tag in soup.find_all("a", href=True):
        href = (tag.get("href") or "").strip()
        if href and not href.startswith("#") and href != "/":
            usable.add(id(tag))
    for attr in _HTMX_ATTRS:
        for tag in soup.find_all(attrs={attr: True}):
            target = (tag.get(attr) or "").strip()
            if not target or target == "/":
                continue
            if any(marker in target for marker in _HTMX_UI_MARKERS):
                continue
            usable.add(id(tag))
    return len(usable)


def _readable_text_length(soup: BeautifulSoup) -> int:
    parts = soup.select("p, article, div.content, main, section")
    return sum(len(el.get_text()) for el in parts)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_content(html: str | None, *, is_article: bool = False) -> ValidationResult:
    """Validate that *html* is real content and not an error/challenge page.

    Article pages are judged on readable text length; source (listing) pages
    are judged on the number of usable links.

    Args:
        html: Raw HTML string.
        is_article: ``True`` for article pages, ``False`` for listing pages.

    Returns:
        A :class:`ValidationResult`.
    """
    result = ValidationResult()

    if not html or len(html) < _MIN_HTML_LENGTH:
        result.is_valid = False
        result.has_content = False
        result.confidence = 0
        return result

    soup = BeautifulSoup(html, "html.parser")
    result.link_count = _count_usable_links(soup)

    title_tag = soup.find("title")
    title = title_tag.get_text().lower() if title_tag else ""
    for indicator in _TITLE_INDICATORS:
        if indicator in title:
            result.error_indicators.append(f"title:{indicator}")
            result.confidence -= _TITLE_PENALTY

    body = soup.find("body")
    body_html = str(body).lower() if body is not None else html.lower()
    for indicator in _BODY_INDICATORS:
        if indicator in body_html:
            result.error_indicators.append(f"body:{indicator}")
            result.confidence -= _BODY_PENALTY

    for link in _LINK_INDICATORS:
        if link in body_html:
            result.error_indicators.append(f"link:{link}")
            result.confidence -= _LINK_PENALTY

    for script in soup.find_all("script", src=True):
        src = (script.get("src") or "").lower()
        for indicator in _SCRIPT_INDICATORS:
            if indicator in src:
                result.error_indicators.append(f"script:{indicator}")
                result.confidence -= _SCRIPT_PENALTY

    if any("cloudflare" in i or "cf-" in i for i in result.error_indicators):
        result.protection_type = ProtectionType.CLOUDFLARE
    elif "datadome" in body_html:
        result.protection_type = ProtectionType.DATADOME
    elif "recaptcha" in body_html:
        result.protection_type = ProtectionType.RECAPTCHA
    elif result.error_indicators:
        result.protection_type = ProtectionType.GENERIC

    result.is_error_page = len(result.error_indicators) > 2 or result.confidence < 50

    if is_article:
        text_length = _readable_text_length(soup)
        result.is_valid = (
            not result.is_error_page
            and text_length > _MIN_ARTICLE_TEXT
            and result.confidence > 30
        )
        result.has_content = text_length > 100
    else:
        result.is_valid = (
            not result.is_error_page
            and result.link_count >= _MIN_SOURCE_LINKS
            and result.confidence > 30
        )
        result.has_content = (
            result.link_count > 0
            or len(soup.select_one("body").get_text() if soup.select_one("body") else "") > 100
        )

    result.confidence = max(0, min(100, result.confidence))
    return result


def detect_protection(
    status_code: int | None,
    html: str | None,
    headers: Mapping[str, str] | None = None,
) -> ProtectionInfo:
    """Detect bot protection from a response's status, headers and body.

    Args:
        status_code: HTTP status code, or ``None`` if unknown.
        html: Response body, if any.
        headers: Response headers, if available.

    Returns:
        A :class:`ProtectionInfo`; ``detected`` is ``True`` when the status
        code is 403/429/503 or the body validates as an error page.
    """
    info = ProtectionInfo()

    if status_code in (403, 429, 503):
        info.detected = True
        info.indicators.append(f"status:{status_code}")
        info.confidence += 30

    if headers:
        header_blob = " ".join(f"{k}:{v}" for k, v in headers.items()).lower()
        if "cloudflare" in header_blob:
            info.type = ProtectionType.CLOUDFLARE
            info.indicators.append("header:cloudflare")
            info.confidence += 40
        if "cf-ray" in header_blob:
            info.type = ProtectionType.CLOUDFLARE
            info.indicators.append("header:cf-ray")
            info.confidence += 30
        if "datadome" in header_blob:
            info.type = ProtectionType.DATADOME
            info.indicators.append("header:datadome")
            info.confidence += 40

    if html:
        if is_datadome_challenge(html):
            info.detected = True
            info.type = ProtectionType.DATADOME
            info.indicators.append("body:datadome-challenge")
            info.confidence = max(info.confidence, 70)
        else:
            validation = validate_content(html, is_article=False)
            if validation.is_error_page:
                info.detected = True
                if validation.protection_type is not ProtectionType.NONE:
                    info.type = validation.protection_type
                info.indicators.extend(validation.error_indicators)
                info.confidence = max(info.confidence, 100 - validation.confidence)

    if info.detected and info.type is ProtectionType.NONE:
        info.type = ProtectionType.GENERIC

    info.confidence = max(0, min(100, info.confidence))
    if info.detected:
        logger.debug(
            "scraper: protection detected type=%s indicators=%s",
            info.type.value,
            info.indicators,
        )
    return info


def is_datadome_challenge(html: str | None) -> bool:
    """Return ``True`` if *html* is a DataDome interstitial challenge page."""
    if not html:
        return False
    lowered = html.lower()
    return "captcha-delivery.com" in lowered or _DATADOME_MESSAGE in lowered
