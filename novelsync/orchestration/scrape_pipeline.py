"""Scrape pipeline.

Downloads raw chapters for every configured series into
<raw_dir>/<series>/"NNNN - Title.txt". Series run concurrently in a
bounded pool; chapters within a series are fetched one at a time with a
fixed delay between requests.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import aiohttp
import structlog

from novelsync.models.config import AppSettings, SeriesConfig, SeriesConfigurations
from novelsync.models.work_unit import UnitStatus, WorkUnit
from novelsync.observability.logging import bind_context
from novelsync.observability.metrics import CHAPTERS_PROCESSED, CHAPTERS_SKIPPED
from novelsync.orchestration.result import RunReport
from novelsync.orchestration.task_pool import BoundedTaskPool
from novelsync.services.config_manager import ConfigManager
from novelsync.services.resume_service import UnitResolver
from novelsync.services.scraper_service import ChapterLink, ChapterScraper
from novelsync.utils.chapter_numbers import chapter_filename
from novelsync.utils.exceptions import ExhaustedRetriesError, ScrapeError
from novelsync.utils.files import write_text_atomic
from novelsync.utils.retry import RetryGovernor

logger = structlog.get_logger()

PIPELINE = "scrape"

SleepFunc = Callable[[float], Awaitable[None]]


class ScrapePipeline:
    """Fetch every missing chapter of every configured series."""

    def __init__(
        self,
        settings: AppSettings,
        series_configs: SeriesConfigurations,
        scraper: Optional[ChapterScraper] = None,
        listing_governor: Optional[RetryGovernor] = None,
        resolver: Optional[UnitResolver] = None,
        config_manager: Optional[ConfigManager] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        self.settings = settings
        self.series_configs = series_configs
        self.scraper = scraper or ChapterScraper(settings.scraper)
        self.listing_governor = listing_governor or RetryGovernor(
            settings.retry, operation="scrape_listing"
        )
        self.resolver = resolver or UnitResolver()
        self.config_manager = config_manager or ConfigManager(load_env_file=False)
        self._sleep: SleepFunc = sleep or asyncio.sleep

    def build_units(self, series_id: str, links: List[ChapterLink]) -> List[WorkUnit]:
        """Map listing links to units; a repeated filename keeps its first link."""
        series_dir = self.config_manager.get_series_dir(
            Path(self.settings.raw_dir), series_id
        )
        max_length = self.settings.scraper.max_filename_length

        units = []
        seen = set()
        for index, link in enumerate(links, start=1):
            filename = chapter_filename(
                link.link_text, link.chapter, index, max_length=max_length
            )
            if filename in seen:
                logger.warning(
                    "duplicate_chapter_filename", series=series_id, filename=filename, url=link.url
                )
                continue
            seen.add(filename)

            if link.chapter.number is None:
                logger.warning(
                    "chapter_number_missing",
                    series=series_id,
                    link_text=link.link_text,
                    filename=filename,
                )

            units.append(
                WorkUnit(
                    series_id=series_id,
                    key=filename[: -len(".txt")],
                    source=link.url,
                    artifact_path=series_dir / filename,
                    ordinal=int(link.chapter.number) if link.chapter.number else None,
                    title=link.chapter.title or None,
                )
            )
        return units

    async def run(self) -> RunReport:
        report = RunReport(pipeline=PIPELINE)
        pool = BoundedTaskPool(self.settings.scrape_concurrency, name="scrape")

        total = len(self.series_configs)
        for position, (series_id, config) in enumerate(self.series_configs.items(), start=1):
            pool.submit(
                lambda series_id=series_id, config=config, position=position: (
                    self.scrape_series(series_id, config, report, position, total)
                ),
                label=series_id,
            )

        await pool.join()

        report.merge_pool_report(pool.report())
        logger.info("scrape_run_finished", **report.to_dict())
        return report

    async def scrape_series(
        self,
        series_id: str,
        config: SeriesConfig,
        report: RunReport,
        position: int = 1,
        total: int = 1,
    ) -> int:
        """Scrape one series. Returns the number of chapters saved."""
        bind_context(series=series_id)
        listing_url = str(config.source_url)
        logger.info(
            "series_scrape_started", position=position, total=total, url=listing_url
        )

        async with self.scraper.create_session() as session:
            try:
                html = await self.listing_governor.execute(
                    lambda: self.scraper.fetch_html(session, listing_url),
                    label=f"{series_id}/listing",
                )
            except ExhaustedRetriesError as e:
                logger.error("listing_fetch_failed", url=listing_url, error=str(e))
                report.add_error(series_id, str(e), hint="Listing page unreachable")
                return 0

            links = self.scraper.parse_chapter_links(html, listing_url)
            if not links:
                logger.warning(
                    "no_chapter_links",
                    url=listing_url,
                    selector=self.settings.scraper.chapter_link_selector,
                )
                return 0

            units = self.build_units(series_id, links)
            report.series_processed += 1
            report.units_discovered += len(units)

            resolution = self.resolver.resolve(units)
            report.record_resolution(resolution)
            for reason, count in resolution.skip_counts().items():
                CHAPTERS_SKIPPED.labels(pipeline=PIPELINE, reason=reason.value).inc(count)

            saved = 0
            for number, unit in enumerate(resolution.pending, start=1):
                report.units_submitted += 1
                status = await self.scrape_unit(session, unit, report)
                report.record_status(status)
                CHAPTERS_PROCESSED.labels(pipeline=PIPELINE, status=status.value).inc()
                if status == UnitStatus.SCRAPED:
                    saved += 1

                if number < len(resolution.pending):
                    await self._sleep(self.settings.scraper.request_delay_seconds)

        logger.info("series_scrape_finished", saved=saved, pending=len(resolution.pending))
        return saved

    async def scrape_unit(
        self, session: aiohttp.ClientSession, unit: WorkUnit, report: RunReport
    ) -> UnitStatus:
        """Fetch one chapter page and save it as "<title>\\n\\n<content>"."""
        try:
            page = await self.scraper.fetch_chapter(session, unit.source)
        except ScrapeError as e:
            logger.warning("chapter_scrape_failed", chapter=unit.key, url=unit.source, error=str(e))
            report.add_error(unit.label, str(e))
            return UnitStatus.SCRAPE_FAILED

        write_text_atomic(unit.artifact_path, page.to_text())
        logger.info("chapter_saved", chapter=unit.key, path=str(unit.artifact_path))
        return UnitStatus.SCRAPED
