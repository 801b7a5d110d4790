"""
Chapter scraper for web novel sites.

Fetches a series' listing page, extracts chapter links, and pulls title and
body text out of each chapter page using configurable CSS selectors.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urljoin

import aiohttp
import structlog

from novelsync.models.config import ScraperSettings
from novelsync.services.text_cleanup import html_to_lines, parse_html, strip_boilerplate
from novelsync.utils.chapter_numbers import ChapterNumber, extract_chapter_number
from novelsync.utils.exceptions import ScrapeError

logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass
class ChapterLink:
    """One chapter entry from a listing page"""

    link_text: str
    url: str
    chapter: ChapterNumber


@dataclass
class ChapterPage:
    """Title and cleaned body of a chapter page"""

    title: str
    content: str

    def to_text(self) -> str:
        return f"{self.title}\n\n{self.content}"


class ChapterScraper:
    """Listing and chapter page scraping.

    HTTP requests go through a caller-owned aiohttp session so one series
    reuses a single connection pool.
    """

    def __init__(self, settings: Optional[ScraperSettings] = None):
        self.settings = settings or ScraperSettings()

    def create_session(self) -> aiohttp.ClientSession:
        timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout_seconds)
        return aiohttp.ClientSession(timeout=timeout, headers=DEFAULT_HEADERS)

    async def fetch_html(self, session: aiohttp.ClientSession, url: str) -> str:
        """Fetch a page as text.

        Raises:
            ScrapeError: Non-200 status, connection failure or timeout
        """
        logger.debug("page_fetch_started", url=url)
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise ScrapeError(f"HTTP {response.status} for {url}", url=url)
                body = await response.read()
        except asyncio.TimeoutError:
            raise ScrapeError(
                f"Timeout after {self.settings.request_timeout_seconds}s for {url}",
                url=url,
            )
        except aiohttp.ClientError as e:
            raise ScrapeError(f"Request failed for {url}: {e}", url=url)

        return body.decode("utf-8", errors="replace")

    def parse_chapter_links(self, html: str, base_url: str) -> List[ChapterLink]:
        """Extract chapter links in listing order.

        Links without text or href are ignored; relative hrefs are resolved
        against base_url.
        """
        soup = parse_html(html)
        links = []

        for anchor in soup.select(self.settings.chapter_link_selector):
            link_text = anchor.get_text(strip=True)
            href = anchor.get("href")
            if not link_text or not href:
                continue

            links.append(
                ChapterLink(
                    link_text=link_text,
                    url=urljoin(base_url, href),
                    chapter=extract_chapter_number(link_text),
                )
            )

        logger.info("chapter_links_found", url=base_url, count=len(links))
        return links

    def parse_chapter_page(self, html: str) -> Optional[ChapterPage]:
        """Extract title and cleaned content.

        Returns None when either the title or the content element is
        missing or empty.
        """
        soup = parse_html(html)

        title_node = soup.select_one(self.settings.chapter_title_selector)
        content_node = soup.select_one(self.settings.chapter_content_selector)
        if title_node is None or content_node is None:
            return None

        title = title_node.get_text(strip=True)
        lines = html_to_lines(content_node, self.settings.strip_selectors)
        lines = strip_boilerplate(
            lines,
            self.settings.boilerplate_patterns,
            self.settings.similarity_threshold,
        )
        content = "\n".join(lines).strip()

        if not title or not content:
            return None

        return ChapterPage(title=title, content=content)

    async def fetch_chapter(
        self, session: aiohttp.ClientSession, url: str
    ) -> ChapterPage:
        """Fetch and parse one chapter page.

        Raises:
            ScrapeError: Fetch failed or the page had no title/content
        """
        html = await self.fetch_html(session, url)
        page = self.parse_chapter_page(html)
        if page is None:
            raise ScrapeError(f"Could not extract title or content from {url}", url=url)
        return page
