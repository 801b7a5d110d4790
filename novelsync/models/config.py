from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from novelsync.models.work_unit import OrdinalBounds


class SeriesConfig(BaseModel):
    """One entry of series-config.yaml"""

    # Accept both snake_case and the camelCase keys of older config files
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_url: HttpUrl
    glossary: Optional[str] = Field(default=None, min_length=1)
    custom_instructions: Optional[str] = Field(default=None, min_length=1)
    skip_translation: bool = False
    translate_chapter_min: Optional[int] = Field(default=None, ge=0)
    translate_chapter_max: Optional[int] = Field(default=None, ge=0)

    @field_validator("glossary", "custom_instructions")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("must not be blank when provided")
        return v

    @model_validator(mode="after")
    def validate_chapter_range(self) -> "SeriesConfig":
        if (
            self.translate_chapter_min is not None
            and self.translate_chapter_max is not None
            and self.translate_chapter_min > self.translate_chapter_max
        ):
            raise ValueError("translate_chapter_min must not exceed translate_chapter_max")
        return self

    @property
    def chapter_bounds(self) -> OrdinalBounds:
        return OrdinalBounds(
            minimum=self.translate_chapter_min, maximum=self.translate_chapter_max
        )


SeriesConfigurations = Dict[str, SeriesConfig]

SERIES_CONFIGURATIONS_ADAPTER: TypeAdapter[SeriesConfigurations] = TypeAdapter(
    SeriesConfigurations
)


class BackendType(str, Enum):
    OLLAMA = "ollama"
    OPENAI = "openai"


class RetryConfig(BaseModel):
    """Retry governor settings

    Delay before attempt n+1 is base_delay_seconds * n. max_delay_seconds
    must cover every delay so backoff keeps growing until the last attempt.
    """

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts (1 initial + N-1 retries)",
    )
    base_delay_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=300.0,
        description="Backoff unit multiplied by the failed attempt number",
    )
    max_delay_seconds: float = Field(
        default=120.0,
        gt=0.0,
        le=900.0,
        description="Maximum delay cap",
    )

    @model_validator(mode="after")
    def validate_growing_delays(self) -> "RetryConfig":
        # The cap must not flatten any delay before the final attempt
        longest = self.base_delay_seconds * (self.max_attempts - 1)
        if longest > self.max_delay_seconds:
            raise ValueError(
                f"max_delay_seconds ({self.max_delay_seconds}) is below the longest "
                f"backoff ({longest}) for {self.max_attempts} attempts"
            )
        return self


DEFAULT_BOILERPLATE_PATTERNS: List[str] = [
    "搜书名找不到,可以试试搜作者哦,也许只是改名了!",
    "一秒记住【笔趣阁小说网】biquge345.com，更新快，无弹窗！",
    "本站采用Cookie技术来保存您的「阅读记录」和「书架」,所以清除浏览器Cookie数据丶重装浏览器之类的操作会让您的阅读进度消失哦,建议可以偶尔截图保存书架,以防找不到正在阅读的小说!",
]


class ScraperSettings(BaseModel):
    """Selectors and cleanup rules for chapter scraping"""

    chapter_link_selector: str = ".info li a"
    chapter_title_selector: str = "#neirong h1"
    chapter_content_selector: str = "#txt"
    strip_selectors: List[str] = Field(
        default_factory=lambda: [
            "a",
            "script",
            "style",
            'div[align="center"]',
            ".adsbygoogle",
        ]
    )
    boilerplate_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BOILERPLATE_PATTERNS)
    )
    similarity_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    request_delay_seconds: float = Field(default=0.7, ge=0.0, le=60.0)
    request_timeout_seconds: int = Field(default=30, ge=1, le=600)
    max_filename_length: int = Field(default=200, ge=16, le=240)


class AppSettings(BaseModel):
    """Process-wide knobs, read once from the environment at startup"""

    translation_concurrency: int = Field(default=2, ge=1, le=64)
    scrape_concurrency: int = Field(default=5, ge=1, le=64)
    dry_run: bool = False
    translation_timeout_seconds: float = Field(default=480.0, gt=0.0, le=3600.0)

    backend: BackendType = BackendType.OLLAMA
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "gemma3:27b"
    openai_api_url: str = "https://api.deepseek.com/chat/completions"
    openai_model: str = "deepseek-chat"
    openai_api_key: Optional[str] = None

    raw_dir: Path = Path("outputs/raw")
    translated_dir: Path = Path("outputs/en")
    recovery_dir: Path = Path("tmp/live-translations")
    series_config_path: Path = Path("series-config.yaml")

    retry: RetryConfig = Field(default_factory=RetryConfig)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)

    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def require_api_key(self) -> "AppSettings":
        if (
            self.backend == BackendType.OPENAI
            and not self.dry_run
            and not self.openai_api_key
        ):
            raise ValueError("APIKEY_DEEPSEEK is required for the openai backend")
        return self
