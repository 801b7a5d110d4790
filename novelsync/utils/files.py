from pathlib import Path

import structlog

logger = structlog.get_logger()


def write_text_atomic(path: Path, content: str) -> None:
    """Write a text file so that it either exists complete or not at all.

    Writes to a sibling .tmp file, then renames it over the target. Parent
    directories are created as needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)
        temp_path.replace(path)
    except OSError as e:
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        if temp_path.exists():
            temp_path.unlink()
        raise
