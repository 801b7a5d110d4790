"""Orchestration module: bounded concurrency and the two pipelines."""

from novelsync.orchestration.task_pool import BoundedTaskPool
from novelsync.orchestration.result import RunReport
from novelsync.orchestration.translation_pipeline import TranslationPipeline
from novelsync.orchestration.scrape_pipeline import ScrapePipeline

__all__ = [
    "BoundedTaskPool",
    "RunReport",
    "TranslationPipeline",
    "ScrapePipeline",
]
