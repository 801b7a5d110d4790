"""
Recovery side files for in-flight translations.

Every attempt mirrors its streamed text into its own append-only file, so
output survives a timeout or crash. These files are never read back by the
pipeline; they are there for an operator to salvage by hand.
"""

import time
from pathlib import Path
from typing import Optional, Protocol, TextIO

import structlog

from novelsync.utils.security import sanitize_identifier

logger = structlog.get_logger()


class RecoverySink(Protocol):
    """Destination for streamed text of one attempt"""

    @property
    def path(self) -> Optional[Path]: ...

    def write(self, text: str) -> None: ...

    def close(self) -> None: ...


class NullRecoverySink:
    """Sink that discards everything (dry runs, disabled recovery)"""

    @property
    def path(self) -> Optional[Path]:
        return None

    def write(self, text: str) -> None:
        pass

    def close(self) -> None:
        pass


class FileRecoverySink:
    """
    Append-only file sink.

    A write error never fails the translation: the sink logs a warning once
    and stops writing.
    """

    def __init__(self, path: Path):
        self._path = path
        self._handle: Optional[TextIO] = None

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = open(path, "a", encoding="utf-8")
        except OSError as e:
            self._disable("recovery_file_open_failed", e)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def active(self) -> bool:
        return self._handle is not None

    def write(self, text: str) -> None:
        if self._handle is None or not text:
            return
        try:
            self._handle.write(text)
            self._handle.flush()
        except (OSError, TypeError, ValueError) as e:
            self._disable("recovery_file_write_failed", e)

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            self._handle.close()
        except OSError as e:
            logger.warning(
                "recovery_file_close_failed", path=str(self._path), error=str(e)
            )
        finally:
            self._handle = None

    def _disable(self, event: str, error: Exception) -> None:
        logger.warning(event, path=str(self._path), error=str(error))
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError:
                pass
        self._handle = None


class RecoveryStore:
    """Hands out one uniquely named sink per translation attempt."""

    def __init__(self, directory: Path, enabled: bool = True):
        self.directory = Path(directory)
        self.enabled = enabled

    def open_sink(self, series_id: str, key: str) -> RecoverySink:
        """
        Open a sink for one attempt.

        File name: <epoch_ms>_<series>_<key>_partial.txt, with series and
        key reduced to portable characters.
        """
        if not self.enabled:
            return NullRecoverySink()

        filename = (
            f"{int(time.time() * 1000)}_{sanitize_identifier(series_id)}"
            f"_{sanitize_identifier(key)}_partial.txt"
        )
        path = self.directory / filename

        # Two attempts of the same unit inside one millisecond
        counter = 1
        while path.exists():
            path = self.directory / filename.replace(
                "_partial.txt", f"_{counter}_partial.txt"
            )
            counter += 1

        logger.debug("recovery_file_opened", path=str(path))
        return FileRecoverySink(path)
