"""
Chapter text cleanup.

Turns a chapter's content element into plain lines and drops site
boilerplate ("remember our domain", cookie notices, ...). Boilerplate lines
vary slightly between pages, so they are matched by similarity rather than
equality.
"""

from difflib import SequenceMatcher
from typing import Iterable, List

from bs4 import BeautifulSoup, Tag


def html_to_lines(element: Tag, strip_selectors: Iterable[str] = ()) -> List[str]:
    """
    Extract text lines from a content element.

    <br> and block boundaries become line breaks. Elements matching
    strip_selectors are removed first (the element is modified in place).
    Blank lines are dropped and every line is trimmed.
    """
    for selector in strip_selectors:
        for node in element.select(selector):
            node.decompose()

    for br in element.find_all("br"):
        br.replace_with("\n")

    text = element.get_text(separator="\n")
    text = text.replace("\xa0", " ")

    return [line.strip() for line in text.splitlines() if line.strip()]


def strip_boilerplate(
    lines: Iterable[str], patterns: Iterable[str], threshold: float = 0.9
) -> List[str]:
    """
    Drop lines whose similarity to any pattern reaches the threshold.

    Args:
        lines: Candidate lines (blank lines are dropped as well)
        patterns: Known boilerplate sentences; blank patterns are ignored
        threshold: SequenceMatcher ratio at or above which a line is removed

    Returns:
        Kept lines, trimmed, in original order
    """
    trimmed_patterns = [p.strip() for p in patterns if p and p.strip()]
    kept = []

    for line in lines:
        candidate = line.strip()
        if not candidate:
            continue

        if any(
            SequenceMatcher(None, candidate, pattern).ratio() >= threshold
            for pattern in trimmed_patterns
        ):
            continue

        kept.append(candidate)

    return kept


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")
