"""File utilities for safe reading and writing of exports."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def write_text_atomic(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    Write text to ``path`` so readers never observe a partial file.

    The content goes to a temporary file in the same directory which then
    replaces the target.

    Args:
        path: Destination file
        text: Content to write
        encoding: Text encoding

    Raises:
        OSError: If the directory or file cannot be written
        UnicodeEncodeError: If the text cannot be encoded
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Encode up front so an encoding failure leaves nothing on disk
    data = text.encode(encoding)

    fd, temp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(temp_name, path)
    except OSError:
        logger.error(f"Failed to write {path}, removing partial file")
        Path(temp_name).unlink(missing_ok=True)
        raise


def validate_file_path(file_path: Path, must_exist: bool = True) -> bool:
    """
    Validate a file path before reading it.

    Args:
        file_path: Path to validate
        must_exist: Whether the file must exist

    Returns:
        True if the path is usable
    """
    try:
        resolved_path = file_path.resolve()

        if must_exist:
            if not resolved_path.exists():
                logger.warning(f"File does not exist: {resolved_path}")
                return False

            if not resolved_path.is_file():
                logger.warning(f"Path is not a file: {resolved_path}")
                return False

        return True

    except (OSError, ValueError) as e:
        logger.warning(f"Path validation failed for {file_path}: {e}")
        return False
