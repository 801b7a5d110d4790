"""Translation pipeline.

Scans <raw_dir>/<series>/*.txt, decides which chapters still need a
translation, and runs them through one shared bounded pool:
- Series without a configuration entry are skipped with a warning
- The resolver applies skip_translation, the chapter range and artifact
  existence before anything is submitted
- Each chapter runs under the retry governor; every attempt gets its own
  recovery side file
- Failures stay inside their chapter; the run always completes
"""

from pathlib import Path
from typing import List, Optional, Tuple

import structlog

from novelsync.models.config import AppSettings, SeriesConfig, SeriesConfigurations
from novelsync.models.work_unit import UnitStatus, WorkUnit
from novelsync.observability.logging import bind_context
from novelsync.observability.metrics import CHAPTERS_PROCESSED, CHAPTERS_SKIPPED
from novelsync.orchestration.result import RunReport
from novelsync.orchestration.task_pool import BoundedTaskPool
from novelsync.services.resume_service import UnitResolver
from novelsync.services.translation import (
    PromptBuilder,
    RecoveryStore,
    StreamingTranslator,
    create_backend,
    is_output_suspiciously_small,
)
from novelsync.utils.chapter_numbers import parse_filename_ordinal
from novelsync.utils.exceptions import ExhaustedRetriesError
from novelsync.utils.files import write_text_atomic
from novelsync.utils.retry import RetryGovernor

logger = structlog.get_logger()

TRANSLATED_SUFFIX = ".translated.md"
PIPELINE = "translate"


class TranslationPipeline:
    """Translate every pending raw chapter of every configured series."""

    def __init__(
        self,
        settings: AppSettings,
        series_configs: SeriesConfigurations,
        translator: Optional[StreamingTranslator] = None,
        governor: Optional[RetryGovernor] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        recovery_store: Optional[RecoveryStore] = None,
        resolver: Optional[UnitResolver] = None,
    ):
        """Initialize pipeline.

        Args:
            settings: Process settings (directories, concurrency, dry run)
            series_configs: Series id -> configuration
            translator: Streaming invoker; built from settings when omitted
                        (never built in dry-run mode)
            governor: Retry governor; built from settings.retry when omitted
            prompt_builder: Prompt assembly
            recovery_store: Recovery side files; disabled in dry-run mode
            resolver: Unit resolver
        """
        self.settings = settings
        self.series_configs = series_configs
        self.dry_run = settings.dry_run

        if translator is None and not self.dry_run:
            translator = StreamingTranslator(
                create_backend(settings),
                timeout_seconds=settings.translation_timeout_seconds,
            )
        self.translator = translator

        self.governor = governor or RetryGovernor(settings.retry, operation=PIPELINE)
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.recovery_store = recovery_store or RecoveryStore(
            settings.recovery_dir, enabled=not self.dry_run
        )
        self.resolver = resolver or UnitResolver()

    def discover_series(self) -> List[Tuple[str, Path]]:
        """List series directories under raw_dir, sorted by name."""
        raw_dir = Path(self.settings.raw_dir)
        if not raw_dir.is_dir():
            logger.warning("raw_dir_missing", path=str(raw_dir))
            return []
        return sorted(
            (entry.name, entry) for entry in raw_dir.iterdir() if entry.is_dir()
        )

    def discover_units(self, series_id: str, series_dir: Path) -> List[WorkUnit]:
        """One unit per .txt file, sorted by filename."""
        output_dir = Path(self.settings.translated_dir) / series_id
        try:
            files = sorted(
                p for p in series_dir.iterdir()
                if p.is_file() and p.suffix.lower() == ".txt"
            )
        except OSError as e:
            logger.warning(
                "series_dir_unreadable", series=series_id, path=str(series_dir), error=str(e)
            )
            return []

        return [
            WorkUnit(
                series_id=series_id,
                key=path.stem,
                source=str(path),
                artifact_path=output_dir / f"{path.stem}{TRANSLATED_SUFFIX}",
                ordinal=parse_filename_ordinal(path.name),
            )
            for path in files
        ]

    async def run(self) -> RunReport:
        """Scan, resolve, submit and wait for every chapter.

        Returns:
            RunReport with per-status counts and unit errors
        """
        report = RunReport(pipeline=PIPELINE)

        if self.dry_run:
            logger.info("dry_run_enabled", hint="No API calls, no files written")

        pool = BoundedTaskPool(self.settings.translation_concurrency, name="translation")

        for series_id, series_dir in self.discover_series():
            config = self.series_configs.get(series_id)
            if config is None:
                logger.warning(
                    "series_not_configured",
                    series=series_id,
                    config_file=str(self.settings.series_config_path),
                )
                continue

            units = self.discover_units(series_id, series_dir)
            report.series_processed += 1
            report.units_discovered += len(units)

            resolution = self.resolver.resolve(
                units,
                skip_all=config.skip_translation,
                bounds=config.chapter_bounds,
            )
            report.record_resolution(resolution)
            for reason, count in resolution.skip_counts().items():
                CHAPTERS_SKIPPED.labels(pipeline=PIPELINE, reason=reason.value).inc(count)

            for unit in resolution.pending:
                pool.submit(
                    lambda unit=unit, config=config: self.translate_unit(
                        unit, config, report
                    ),
                    label=unit.label,
                )
                report.units_submitted += 1

            logger.info(
                "series_scanned",
                series=series_id,
                discovered=len(units),
                submitted=len(resolution.pending),
            )

        if report.units_submitted:
            logger.info("waiting_for_translations", submitted=report.units_submitted)
        await pool.join()

        report.merge_pool_report(pool.report())
        logger.info("translation_run_finished", **report.to_dict())
        return report

    async def translate_unit(
        self, unit: WorkUnit, config: SeriesConfig, report: RunReport
    ) -> UnitStatus:
        """Translate one chapter and write its artifact.

        Never raises for expected failures; the returned status is also
        recorded on the report.
        """
        bind_context(series=unit.series_id, chapter=unit.key)
        status = await self._translate(unit, config, report)
        report.record_status(status)
        CHAPTERS_PROCESSED.labels(pipeline=PIPELINE, status=status.value).inc()
        return status

    async def _translate(
        self, unit: WorkUnit, config: SeriesConfig, report: RunReport
    ) -> UnitStatus:
        source_text = Path(unit.source).read_text(encoding="utf-8")

        if not source_text.strip():
            logger.warning("chapter_input_empty", path=unit.source)
            return UnitStatus.EMPTY_INPUT

        if self.dry_run:
            logger.info(
                "dry_run_would_translate",
                path=unit.source,
                output=str(unit.artifact_path),
                glossary=bool(config.glossary),
                custom_instructions=bool(config.custom_instructions),
            )
            return UnitStatus.DRY_RUN

        prompt = self.prompt_builder.build(
            source_text,
            glossary=config.glossary,
            custom_instructions=config.custom_instructions,
        )
        translator = self.translator
        assert translator is not None

        async def attempt() -> str:
            sink = self.recovery_store.open_sink(unit.series_id, unit.key)
            return await translator.translate(source_text, prompt, sink)

        try:
            translated = await self.governor.execute(attempt, label=unit.label)
        except ExhaustedRetriesError as e:
            logger.error(
                "chapter_translation_failed",
                error=str(e),
                attempts=e.attempts,
                recovery_dir=str(self.recovery_store.directory),
            )
            report.add_error(
                unit.label,
                str(e),
                hint=f"Partial output may exist in {self.recovery_store.directory}",
            )
            return UnitStatus.FAILED

        if not translated:
            logger.warning("chapter_output_empty", path=unit.source)
            return UnitStatus.EMPTY_OUTPUT

        if is_output_suspiciously_small(source_text, translated):
            logger.warning(
                "chapter_output_small",
                input_bytes=len(source_text.encode("utf-8")),
                output_bytes=len(translated.encode("utf-8")),
                hint="Please review manually; file will still be saved",
            )

        write_text_atomic(unit.artifact_path, translated)
        logger.info("chapter_saved", path=str(unit.artifact_path))
        return UnitStatus.TRANSLATED
