"""Core functionality for Afterflow."""

from .csv_table import (
    CSVExportError,
    CSVImportError,
    CSVTable,
    InvalidHeaderError,
    InvalidRowError,
    ParseFailureError,
)
from .link_classifier import LinkClassifier, classify
from .metadata import InvalidLinkError, MusicLinkMetadataService
from .models import (
    AdministrationMethod,
    AppConfig,
    MusicLinkClassification,
    MusicLinkMetadata,
    MusicLinkProvider,
    SessionRecord,
    TreatmentType,
)

__all__ = [
    "CSVTable",
    "CSVImportError",
    "CSVExportError",
    "InvalidHeaderError",
    "InvalidRowError",
    "ParseFailureError",
    "LinkClassifier",
    "classify",
    "MusicLinkMetadataService",
    "InvalidLinkError",
    "AdministrationMethod",
    "AppConfig",
    "MusicLinkClassification",
    "MusicLinkMetadata",
    "MusicLinkProvider",
    "SessionRecord",
    "TreatmentType",
]
