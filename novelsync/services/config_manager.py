import os
from pathlib import Path
from string import Template
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from novelsync.models.config import (
    SERIES_CONFIGURATIONS_ADAPTER,
    AppSettings,
    SeriesConfigurations,
)
from novelsync.utils.exceptions import InvalidConfigurationError
from novelsync.utils.security import PathSanitizer, SecurityError

logger = structlog.get_logger()


class ConfigValidationError(InvalidConfigurationError):
    """Configuration validation failed"""

    pass


# Environment variable -> dotted AppSettings field
ENV_FIELDS: Dict[str, str] = {
    "TRANSLATION_CONCURRENCY": "translation_concurrency",
    "SCRAPE_CONCURRENCY": "scrape_concurrency",
    "DRY_RUN_TRANSLATION": "dry_run",
    "TRANSLATION_TIMEOUT_SECONDS": "translation_timeout_seconds",
    "TRANSLATION_BACKEND": "backend",
    "BASE_URL": "ollama_base_url",
    "MODEL_NAME": "ollama_model",
    "DEEPSEEK_API_URL": "openai_api_url",
    "DEEPSEEK_MODEL_NAME": "openai_model",
    "APIKEY_DEEPSEEK": "openai_api_key",
    "RAW_DL_DIR": "raw_dir",
    "TL_DIR": "translated_dir",
    "RECOVERY_DIR": "recovery_dir",
    "SERIES_CONFIG_FILE": "series_config_path",
    "TRANSLATION_MAX_ATTEMPTS": "retry.max_attempts",
    "RETRY_BACKOFF_BASE_SECONDS": "retry.base_delay_seconds",
    "RETRY_BACKOFF_MAX_SECONDS": "retry.max_delay_seconds",
    "SCRAPE_REQUEST_DELAY_SECONDS": "scraper.request_delay_seconds",
    "SCRAPE_REQUEST_TIMEOUT_SECONDS": "scraper.request_timeout_seconds",
    "LOG_LEVEL": "log_level",
    "LOG_JSON": "log_json",
}


class ConfigManager:
    """Loads process settings from the environment and series from YAML"""

    def __init__(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True,
    ):
        """
        Args:
            config_path: Series config file; overrides SERIES_CONFIG_FILE
            environ: Variables to read instead of os.environ (tests)
            load_env_file: Read .env into os.environ first
        """
        self.config_path = Path(config_path) if config_path else None
        self._environ = environ
        self._load_env_file = load_env_file
        self.env_loaded = False
        self._settings: Optional[AppSettings] = None
        self._series: Optional[SeriesConfigurations] = None

    @property
    def environ(self) -> Mapping[str, str]:
        if self._environ is not None:
            return self._environ
        return os.environ

    def load_settings(self, **overrides: Any) -> AppSettings:
        """Build AppSettings from environment variables.

        Keyword overrides (e.g. dry_run=True from a CLI flag) win over the
        environment. Unset variables fall back to field defaults.

        Raises:
            ConfigValidationError: A variable has an invalid value
        """
        if self._settings and not overrides:
            return self._settings

        # 1. Load .env
        if self._load_env_file and not self.env_loaded:  # pragma: no cover
            load_dotenv()
            self.env_loaded = True

        # 2. Collect variables into (possibly nested) field data
        data: Dict[str, Any] = {}
        for env_name, field_path in ENV_FIELDS.items():
            value = self.environ.get(env_name)
            if value is None or value.strip() == "":
                continue
            self._assign(data, field_path, value.strip())

        if self.config_path is not None:
            data["series_config_path"] = str(self.config_path)

        for key, value in overrides.items():
            if value is not None:
                self._assign(data, key, value)

        # 3. Validate
        try:
            settings = AppSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid settings: {e}")

        logger.info(
            "settings_loaded",
            backend=settings.backend.value,
            translation_concurrency=settings.translation_concurrency,
            scrape_concurrency=settings.scrape_concurrency,
            dry_run=settings.dry_run,
        )

        if not overrides:
            self._settings = settings
        return settings

    def load_series(self, path: Optional[Path] = None) -> SeriesConfigurations:
        """Load and validate the series configuration file.

        ${VAR} references are substituted from the environment before the
        YAML is parsed; unknown variables are left as-is.

        Raises:
            ConfigValidationError: Missing, unreadable or invalid file
        """
        if self._series is not None and path is None:
            return self._series

        config_path = path or self.config_path
        if config_path is None:
            config_path = self.load_settings().series_config_path

        # 1. Check file existence
        if not config_path.exists():
            raise ConfigValidationError(
                f"Series configuration file not found: {config_path}"
            )

        # 2. Read YAML
        try:
            raw_content = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # 3. Substitute env vars
        try:
            template = Template(raw_content)
            substituted_content = template.safe_substitute(self.environ)
            config_data = yaml.safe_load(substituted_content)
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if config_data is None:
            logger.warning("series_config_empty", path=str(config_path))
            config_data = {}

        # 4. Validate with Pydantic
        try:
            series = SERIES_CONFIGURATIONS_ADAPTER.validate_python(config_data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid series configuration: {e}")

        for series_id in series:
            self._check_series_id(series_id)

        logger.info("series_config_loaded", path=str(config_path), series=len(series))
        if path is None:
            self._series = series
        return series

    def get_series_dir(self, base_dir: Path, series_id: str) -> Path:
        """Resolve <base_dir>/<series_id> without letting the id escape base_dir."""
        base_dir = Path(base_dir)
        try:
            sanitizer = PathSanitizer(allowed_bases=[base_dir.resolve()])
            return sanitizer.safe_path(base_dir, series_id)
        except SecurityError as e:
            raise ConfigValidationError(f"Invalid series id '{series_id}': {e}")

    @staticmethod
    def _check_series_id(series_id: str) -> None:
        if (
            not series_id.strip()
            or series_id in {".", ".."}
            or "/" in series_id
            or "\\" in series_id
        ):
            raise ConfigValidationError(
                f"Series id must be a plain directory name: {series_id!r}"
            )

    @staticmethod
    def _assign(data: Dict[str, Any], field_path: str, value: Any) -> None:
        *parents, leaf = field_path.split(".")
        target = data
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value
