"""CSV export and import of session records."""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..utils.file_utils import write_text_atomic
from .link_classifier import classify
from .models import (
    AdministrationMethod,
    MusicLinkClassification,
    MusicLinkProvider,
    SessionRecord,
    TreatmentType,
)

logger = logging.getLogger(__name__)

HEADER: list[str] = [
    "Date",
    "Treatment Type",
    "Administration",
    "Intention",
    "Mood Before",
    "Mood After",
    "Reflections",
    "Music Link URL",
]

EXPORT_FILE_PREFIX = "Afterflow-Export"

# Leading characters spreadsheets treat as formulas
FORMULA_PREFIXES = ("=", "+", "-", "@")

# Fixed tables keep the date format independent of the process locale
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

SESSION_DATE_PATTERN = re.compile(
    r"^(?P<month>[A-Z][a-z]{2}) (?P<day>[0-9]{1,2}), (?P<year>[0-9]{1,4})"
    r"(?: at |, )"
    r"(?P<hour>[0-9]{1,2}):(?P<minute>[0-9]{2})[ \u202f](?P<marker>AM|PM)$"
)

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

DateRange = tuple[datetime, datetime]
Classifier = Callable[[str], Optional[MusicLinkClassification]]


class CSVImportError(Exception):
    """Raised when a CSV export cannot be imported."""


class InvalidHeaderError(CSVImportError):
    """Raised when the header row is not an Afterflow export header."""

    def __init__(self) -> None:
        super().__init__("CSV header does not match expected export format.")


class InvalidRowError(CSVImportError):
    """Raised at the first data row that fails validation."""

    def __init__(self, row_index: int) -> None:
        self.row_index = row_index
        super().__init__(f"Row {row_index + 1} is invalid or incomplete.")


class ParseFailureError(CSVImportError):
    """Raised when the input cannot be read as text."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Failed to parse CSV: {reason}")


class CSVExportError(Exception):
    """Raised when an export cannot be written."""


def format_session_date(value: datetime) -> str:
    """Render a date as e.g. ``Dec 1, 2024 at 10:30 AM``."""
    hour = value.hour % 12 or 12
    marker = "AM" if value.hour < 12 else "PM"
    month = MONTH_ABBREVIATIONS[value.month - 1]
    return f"{month} {value.day}, {value.year} at {hour}:{value.minute:02d} {marker}"


def parse_session_date(text: str) -> datetime | None:
    """Parse the export date format; None if it does not match."""
    match = SESSION_DATE_PATTERN.match(text)
    if not match:
        return None

    try:
        month = MONTH_ABBREVIATIONS.index(match["month"]) + 1
    except ValueError:
        return None

    hour = int(match["hour"])
    minute = int(match["minute"])
    if not 1 <= hour <= 12 or minute > 59:
        return None
    hour = hour % 12 + (12 if match["marker"] == "PM" else 0)

    try:
        return datetime(int(match["year"]), month, int(match["day"]), hour, minute)
    except ValueError:
        return None


def escape_field(value: str) -> str:
    """Escape one field, guarding against spreadsheet formula injection."""
    if value.startswith(FORMULA_PREFIXES):
        value = "'" + value

    needs_quotes = False
    escaped: list[str] = []
    for char in value:
        if char == '"':
            escaped.append('""')
            needs_quotes = True
        else:
            escaped.append(char)
            if char in ",\n\r":
                needs_quotes = True

    result = "".join(escaped)
    if needs_quotes or not result:
        return f'"{result}"'
    return result


def tokenize(text: str) -> list[list[str]]:
    """Split CSV text into rows of fields.

    A two-state (quoted / unquoted) walk with one character of lookahead
    for doubled quotes.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    inside_quotes = False

    index = 0
    length = len(normalized)
    while index < length:
        char = normalized[index]

        if char == '"':
            if inside_quotes and index + 1 < length and normalized[index + 1] == '"':
                field.append('"')
                index += 2
                continue
            inside_quotes = not inside_quotes
        elif char == "," and not inside_quotes:
            row.append("".join(field))
            field = []
        elif char == "\n" and not inside_quotes:
            row.append("".join(field))
            rows.append(row)
            row = []
            field = []
        else:
            field.append(char)
        index += 1

    # Input without a trailing newline
    if field or row:
        row.append("".join(field))
        rows.append(row)

    return rows


def strip_injection_guard(value: str) -> str:
    """Undo the apostrophe added by ``escape_field`` to formula-like values."""
    if value.startswith("'") and value[1:].startswith(FORMULA_PREFIXES):
        return value[1:]
    return value


class CSVTable:
    """Serializes session records to Afterflow CSV exports and back."""

    def __init__(self, classifier: Classifier = classify, encoding: str = "utf-8") -> None:
        self.classifier = classifier
        self.encoding = encoding

    # Export

    def export(
        self,
        records: Sequence[SessionRecord],
        date_range: DateRange | None = None,
        treatment_filter: TreatmentType | None = None,
    ) -> str:
        """Render records as CSV text, header first."""
        selected = self.filter_records(records, date_range, treatment_filter)
        lines = [",".join(escape_field(name) for name in HEADER)]
        for record in selected:
            lines.append(",".join(escape_field(value) for value in self._row(record)))
        return "\n".join(lines)

    def filter_records(
        self,
        records: Sequence[SessionRecord],
        date_range: DateRange | None = None,
        treatment_filter: TreatmentType | None = None,
    ) -> list[SessionRecord]:
        """Keep records inside the inclusive date range and of the given treatment."""
        selected = []
        for record in records:
            if date_range is not None:
                start, end = date_range
                if not start <= record.session_date <= end:
                    continue
            if treatment_filter is not None and record.treatment_type != treatment_filter:
                continue
            selected.append(record)
        return selected

    def _row(self, record: SessionRecord) -> list[str]:
        return [
            format_session_date(record.session_date),
            record.treatment_type.display_name,
            record.administration.display_name,
            record.intention,
            str(record.mood_before),
            str(record.mood_after),
            record.reflections,
            record.best_music_link,
        ]

    def export_to_file(
        self,
        records: Sequence[SessionRecord],
        directory: Path,
        date_range: DateRange | None = None,
        treatment_filter: TreatmentType | None = None,
    ) -> Path:
        """Write an export into ``directory`` and return the file path."""
        selected = self.filter_records(records, date_range, treatment_filter)
        text = self.export(selected)
        path = directory / f"{EXPORT_FILE_PREFIX}-{uuid.uuid4()}.csv"

        try:
            write_text_atomic(path, text, encoding=self.encoding)
        except (OSError, UnicodeEncodeError) as e:
            raise CSVExportError(f"Failed to write export {path}: {e}") from e

        logger.info(f"Exported {len(selected)} sessions to {path}")
        return path

    # Import

    def import_file(self, path: Path) -> list[SessionRecord]:
        """Import an export file from disk."""
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ParseFailureError(f"Could not read {path}: {e}") from e
        return self.import_bytes(data)

    def import_bytes(self, data: bytes) -> list[SessionRecord]:
        """Decode raw bytes and import them."""
        try:
            text = data.decode(self.encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise ParseFailureError(f"Data is not {self.encoding} encoded.") from e

        if text.startswith("\ufeff"):
            text = text[1:]
        return self.import_text(text)

    def import_text(self, text: str) -> list[SessionRecord]:
        """Parse CSV text into records, all or nothing."""
        rows = tokenize(text)
        if not rows:
            return []

        header = [cell.strip() for cell in rows[0]]
        if header != HEADER:
            logger.warning(f"Rejected CSV with header: {header}")
            raise InvalidHeaderError()

        records: list[SessionRecord] = []
        for row_index, fields in enumerate(rows[1:], 1):
            records.append(self._decode_row(fields, row_index))

        logger.info(f"Imported {len(records)} sessions")
        return records

    def _decode_row(self, fields: list[str], row_index: int) -> SessionRecord:
        if len(fields) != len(HEADER):
            logger.warning(
                f"Row {row_index}: expected {len(HEADER)} fields, got {len(fields)}"
            )
            raise InvalidRowError(row_index)

        (
            date_text,
            treatment_text,
            administration_text,
            intention,
            mood_before_text,
            mood_after_text,
            reflections,
            music_link,
        ) = fields

        session_date = parse_session_date(date_text)
        treatment = TreatmentType.from_display_name(treatment_text)
        administration = AdministrationMethod.from_display_name(administration_text)
        mood_before = self._parse_int(strip_injection_guard(mood_before_text))
        mood_after = self._parse_int(strip_injection_guard(mood_after_text))

        if (
            session_date is None
            or treatment is None
            or administration is None
            or mood_before is None
            or mood_after is None
        ):
            logger.warning(f"Row {row_index}: invalid date, label or mood value")
            raise InvalidRowError(row_index)

        record = SessionRecord(
            session_date=session_date,
            treatment_type=treatment,
            administration=administration,
            intention=strip_injection_guard(intention),
            mood_before=mood_before,
            mood_after=mood_after,
            reflections=strip_injection_guard(reflections),
        )

        if music_link:
            self._attach_music_link(record, music_link)

        return record

    def _attach_music_link(self, record: SessionRecord, music_link: str) -> None:
        link = music_link[1:] if music_link.startswith("'") else music_link

        classification = self.classifier(link)
        if classification is not None:
            record.music_link_url = classification.original_url
            record.music_link_web_url = classification.canonical_url
            record.music_link_provider = classification.provider
        else:
            logger.debug(f"Keeping unclassified music link verbatim: {link!r}")
            record.music_link_url = link
            record.music_link_web_url = link
            record.music_link_provider = MusicLinkProvider.UNKNOWN

    @staticmethod
    def _parse_int(text: str) -> int | None:
        if not INTEGER_PATTERN.fullmatch(text):
            return None
        try:
            return int(text)
        except ValueError:
            # Past the interpreter's digit limit for str -> int
            return None
