"""Utility modules for Afterflow."""

from .file_utils import validate_file_path, write_text_atomic
from .logging import setup_logging

__all__ = [
    "setup_logging",
    "validate_file_path",
    "write_text_atomic",
]
