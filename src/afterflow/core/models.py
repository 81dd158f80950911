"""Data models for Afterflow."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class TreatmentType(str, Enum):
    """Treatment type recorded for a session."""

    PSILOCYBIN = "Psilocybin"
    LSD = "LSD"
    DMT = "DMT"
    MDMA = "MDMA"
    KETAMINE = "Ketamine"
    AYAHUASCA = "Ayahuasca"
    MESCALINE = "Mescaline"
    CANNABIS = "Cannabis"
    OTHER = "Other"

    @property
    def display_name(self) -> str:
        """Label written to CSV exports."""
        return self.value

    @classmethod
    def from_display_name(cls, name: str) -> TreatmentType | None:
        for member in cls:
            if member.display_name == name:
                return member
        return None


class AdministrationMethod(str, Enum):
    """How the treatment was administered."""

    INTRAVENOUS = "Intravenous (IV)"
    INTRAMUSCULAR = "Intramuscular (IM)"
    ORAL = "Oral"
    NASAL = "Nasal"
    OTHER = "Other"

    @property
    def display_name(self) -> str:
        """Label written to CSV exports."""
        return self.value

    @classmethod
    def from_display_name(cls, name: str) -> AdministrationMethod | None:
        for member in cls:
            if member.display_name == name:
                return member
        return None


_PROVIDER_LABELS = {
    "spotify": "Spotify",
    "youtube": "YouTube",
    "soundcloud": "SoundCloud",
    "appleMusic": "Apple Music",
    "applePodcasts": "Apple Podcasts",
    "bandcamp": "Bandcamp",
    "tidal": "Tidal",
    "linkOnly": "Link",
    "unknown": "Unknown",
}


class MusicLinkProvider(str, Enum):
    """Music service a pasted link points at."""

    SPOTIFY = "spotify"
    YOUTUBE = "youtube"
    SOUNDCLOUD = "soundcloud"
    APPLE_MUSIC = "appleMusic"
    APPLE_PODCASTS = "applePodcasts"
    BANDCAMP = "bandcamp"
    TIDAL = "tidal"
    LINK_ONLY = "linkOnly"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return _PROVIDER_LABELS[self.value]

    @property
    def supports_oembed(self) -> bool:
        """Whether the provider hosts a public oEmbed endpoint."""
        return self in {
            MusicLinkProvider.SPOTIFY,
            MusicLinkProvider.YOUTUBE,
            MusicLinkProvider.SOUNDCLOUD,
            MusicLinkProvider.TIDAL,
        }


@dataclass
class SessionRecord:
    """A journaled therapy session as carried by CSV exports."""

    session_date: datetime
    treatment_type: TreatmentType
    administration: AdministrationMethod
    intention: str
    mood_before: int
    mood_after: int
    reflections: str = ""
    music_link_url: str | None = None
    music_link_web_url: str | None = None
    music_link_provider: MusicLinkProvider | None = None

    @property
    def best_music_link(self) -> str:
        """Raw link if present, else the canonical web link, else empty."""
        return self.music_link_url or self.music_link_web_url or ""

    @property
    def mood_change(self) -> int:
        return self.mood_after - self.mood_before

    @property
    def is_valid(self) -> bool:
        """Check required fields and the 1-10 mood scale."""
        return (
            bool(self.intention.strip())
            and 1 <= self.mood_before <= 10
            and 1 <= self.mood_after <= 10
        )


@dataclass(frozen=True)
class MusicLinkClassification:
    """Result of classifying a pasted music link."""

    provider: MusicLinkProvider
    original_url: str
    canonical_url: str


class OEmbedPayload(BaseModel):
    """Subset of an oEmbed response we care about."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    author_name: str | None = None
    thumbnail_url: str | None = None
    duration: float | None = None


class MusicLinkMetadata(BaseModel):
    """Display metadata resolved for a music link."""

    model_config = ConfigDict(extra="forbid")

    provider: MusicLinkProvider
    original_url: str
    canonical_url: str
    title: str | None = None
    author_name: str | None = None
    thumbnail_url: str | None = None
    duration_seconds: float | None = None


class AppConfig(BaseModel):
    """Application configuration."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    # Directories
    export_dir: Path = Path("exports")
    logs_dir: Path = Path("logs")

    # Music link metadata
    fetch_metadata: bool = True
    metadata_timeout: float = Field(default=3.0, gt=0)

    # CSV processing
    csv_encoding: str = "utf-8"

    def ensure_directories(self) -> None:
        """Create necessary directories."""
        self.export_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)
