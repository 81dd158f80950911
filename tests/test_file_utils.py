"""Tests for file utility functions."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from afterflow.utils.file_utils import validate_file_path, write_text_atomic


def test_write_text_atomic(tmp_path):
    """Test content is written and parent directories created."""
    target = tmp_path / "nested" / "export.csv"
    write_text_atomic(target, "Date,Treatment Type\n🌿")

    assert target.read_text(encoding="utf-8") == "Date,Treatment Type\n🌿"
    assert [p.name for p in target.parent.iterdir()] == ["export.csv"]


def test_write_text_atomic_replaces_existing(tmp_path):
    target = tmp_path / "export.csv"
    target.write_text("old")

    write_text_atomic(target, "new")
    assert target.read_text() == "new"


def test_write_text_atomic_encoding_error(tmp_path):
    """Test unencodable text leaves no file behind."""
    target = tmp_path / "export.csv"
    with pytest.raises(UnicodeEncodeError):
        write_text_atomic(target, "café", encoding="ascii")

    assert list(tmp_path.iterdir()) == []


def test_write_text_atomic_cleans_up_on_failure(tmp_path):
    """Test the temporary file is removed when the rename fails."""
    target = tmp_path / "export.csv"
    with patch("afterflow.utils.file_utils.os.replace", side_effect=OSError("read-only")):
        with pytest.raises(OSError):
            write_text_atomic(target, "data")

    assert list(tmp_path.iterdir()) == []


def test_validate_file_path():
    """Test file path validation."""
    with tempfile.NamedTemporaryFile(suffix=".csv", delete=False) as f:
        temp_path = Path(f.name)

    try:
        assert validate_file_path(temp_path, must_exist=True) is True
    finally:
        temp_path.unlink()

    assert validate_file_path(Path("non_existent_file.csv"), must_exist=True) is False
    assert validate_file_path(Path("non_existent_file.csv"), must_exist=False) is True


def test_validate_file_path_parent_segments(tmp_path):
    """Test paths through a parent directory are accepted."""
    (tmp_path / "sub").mkdir()
    target = tmp_path / "export.csv"
    target.write_text("Date")

    assert validate_file_path(tmp_path / "sub" / ".." / "export.csv", must_exist=True) is True


def test_validate_file_path_directory():
    with tempfile.TemporaryDirectory() as temp_dir:
        assert validate_file_path(Path(temp_dir), must_exist=True) is False
