from pathlib import Path
import re
from typing import List
import structlog

logger = structlog.get_logger()

# Characters Windows and POSIX filesystems reject or treat specially
_INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
_NON_PORTABLE_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


class SecurityError(Exception):
    """Base class for security-related errors."""

    pass


class PathSanitizer:
    """Keeps series directories and artifact paths inside their output roots.

    Series identifiers come from the config file and from directory names;
    neither may climb out of raw_dir / translated_dir.
    """

    def __init__(self, allowed_bases: List[Path]):
        """Initialize with allowed base directories"""
        self.allowed_bases = [p.resolve() for p in allowed_bases]

    def safe_path(
        self, base_dir: Path, user_input: str, must_exist: bool = False
    ) -> Path:
        """Get safe path within base directory

        Prevents:
        - Directory traversal (../)
        - Absolute path injection
        - Symlink escapes

        Raises:
            SecurityError: If path is outside base_dir
            FileNotFoundError: If must_exist=True and path doesn't exist
        """
        base_dir = base_dir.resolve()

        if not any(
            base_dir == allowed or base_dir.is_relative_to(allowed)
            for allowed in self.allowed_bases
        ):
            raise SecurityError(f"Base directory not in allowed list: {base_dir}")

        safe_input = user_input.replace("\0", "")
        requested = (base_dir / safe_input).resolve()

        try:
            requested.relative_to(base_dir)
        except ValueError:
            logger.warning(
                "path_traversal_blocked",
                base_dir=str(base_dir),
                user_input=user_input,
                resolved=str(requested),
            )
            raise SecurityError(f"Path traversal attempt detected: {user_input}")

        if must_exist and not requested.exists():
            raise FileNotFoundError(f"Path does not exist: {requested}")

        return requested


def sanitize_title(text: str) -> str:
    """Strip characters that cannot appear in a filename, keep everything else.

    Unicode (CJK titles) is preserved; whitespace runs collapse to one space.
    """
    cleaned = _INVALID_FILENAME_CHARS.sub("", text)
    return re.sub(r"\s+", " ", cleaned).strip()


def sanitize_identifier(text: str) -> str:
    """Reduce text to a portable ASCII identifier for scratch file names."""
    safe = _NON_PORTABLE_CHARS.sub("_", text)
    if safe.startswith("."):
        safe = "_" + safe
    return safe or "_"
