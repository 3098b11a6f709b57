"""Deterministic keyword matching for scraped articles."""

from __future__ import annotations

import re
from collections.abc import Iterable


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # \b only works next to word characters, so keywords like "C++" or ".NET"
    # get lookarounds on their non-word edges instead.
    escaped = re.escape(keyword)
    left = r"\b" if re.match(r"\w", keyword) else r"(?<!\w)"
    right = r"\b" if re.search(r"\w$", keyword) else r"(?!\w)"
    return re.compile(f"{left}{escaped}{right}", re.IGNORECASE)


def find_keyword_matches(text: str | None, keywords: Iterable[str]) -> list[str]:
    """Return the keywords that occur in *text* as whole words.

    Matching is case-insensitive; the returned keywords keep their original
    casing and order and contain no duplicates.  Blank keywords are ignored.
    """
    if not text:
        return []
    matches: list[str] = []
    seen: set[str] = set()
    for keyword in keywords:
        term = keyword.strip()
        if not term or term.lower() in seen:
            continue
        if _keyword_pattern(term).search(text):
            matches.append(term)
            seen.add(term.lower())
    return matches


def match_article(title: str | None, content: str | None, keywords: Iterable[str]) -> list[str]:
    """Return keywords found in the title first, then those only in the body."""
    keywords = list(keywords)
    matched = find_keyword_matches(title, keywords)
    seen = {m.lower() for m in matched}
    for term in find_keyword_matches(content, keywords):
        if term.lower() not in seen:
            matched.append(term)
            seen.add(term.lower())
    return matched
