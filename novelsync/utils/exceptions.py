"""Exception hierarchy for the scrape and translation pipelines.

All exceptions inherit from PipelineError so a caller can catch every
pipeline failure in one except block:

```python
try:
    await translator.translate(text, prompt, sink)
except PipelineError as e:
    logger.error("translation_failed", error=str(e))
```

Only InvalidConfigurationError is fatal to a whole run; everything else is
scoped to one attempt or one work unit.
"""

from typing import Optional


class PipelineError(Exception):
    """Base exception for all pipeline errors"""

    pass


class InvalidConfigurationError(PipelineError):
    """Configuration is unusable

    Raised when:
    - Pool concurrency limit is not a positive integer
    - Environment knobs fail validation
    - Series configuration file is missing fields or malformed

    Aborts startup.
    """

    pass


class TranslationError(PipelineError):
    """Base for failures of a single translation attempt"""

    pass


class TransientNetworkError(TranslationError):
    """Connection failure, 429 or 5xx from the backend.

    Retryable: the retry governor backs off and tries again.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class TranslationTimeoutError(TranslationError):
    """The streaming request exceeded its wall-clock ceiling.

    Any text accumulated so far is discarded from the return value. The
    recovery side file, if one was open, keeps it.
    """

    def __init__(self, message: str, timeout_seconds: Optional[float] = None) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


class BackendResponseError(TranslationError):
    """Backend answered with a non-success status that is not transient
    (400, 401, 404, ...).
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class MalformedFragmentError(TranslationError):
    """One stream line could not be parsed.

    Handled at fragment level: the line is skipped and the stream continues.
    """

    def __init__(self, message: str, line: str = "") -> None:
        super().__init__(message)
        self.line = line


class ExhaustedRetriesError(PipelineError):
    """Every attempt failed.

    Terminal for one work unit. No artifact is written, so the unit is picked
    up again on the next run.
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ) -> None:
        if last_error is not None:
            message = f"{message} | last error: {type(last_error).__name__}: {last_error}"
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class ScrapeError(PipelineError):
    """Listing or chapter page could not be fetched or parsed"""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url
