"""Music link classification: normalization, provider detection and titles."""

from __future__ import annotations

import logging
import re
import string
from collections.abc import Callable
from urllib.parse import SplitResult, unquote, urlencode, urlsplit

from .models import MusicLinkClassification, MusicLinkProvider

logger = logging.getLogger(__name__)

# Characters a pasted link may not contain once trimmed
INVALID_URL_CHARS = re.compile(r'[\s\x00-\x1f\x7f"<>\\^`{|}]')

# Ordered provider rules, first match wins. Each predicate receives the
# lower-cased host (without "www.") and the URL path.
PROVIDER_RULES: list[tuple[Callable[[str, str], bool], MusicLinkProvider]] = [
    (
        lambda host, path: "podcasts.apple.com" in host
        or ("itunes.apple.com" in host and "/podcast/" in path),
        MusicLinkProvider.APPLE_PODCASTS,
    ),
    (lambda host, path: "spotify.com" in host, MusicLinkProvider.SPOTIFY),
    (
        lambda host, path: "youtube.com" in host
        or host == "youtu.be"
        or "youtube-nocookie.com" in host,
        MusicLinkProvider.YOUTUBE,
    ),
    (lambda host, path: "soundcloud.com" in host, MusicLinkProvider.SOUNDCLOUD),
    (
        lambda host, path: "music.apple.com" in host or "itunes.apple.com" in host,
        MusicLinkProvider.APPLE_MUSIC,
    ),
    (lambda host, path: "tidal.com" in host, MusicLinkProvider.TIDAL),
    (lambda host, path: "bandcamp.com" in host, MusicLinkProvider.BANDCAMP),
]

# oEmbed endpoint and fixed extra query parameters per provider
OEMBED_ENDPOINTS: dict[MusicLinkProvider, tuple[str, dict[str, str]]] = {
    MusicLinkProvider.SPOTIFY: ("https://open.spotify.com/oembed", {}),
    MusicLinkProvider.YOUTUBE: ("https://www.youtube.com/oembed", {"format": "json"}),
    MusicLinkProvider.SOUNDCLOUD: ("https://soundcloud.com/oembed", {}),
    MusicLinkProvider.TIDAL: ("https://oembed.tidal.com/", {}),
}

# Apple path segments that never carry a title
APPLE_IGNORED_SEGMENTS = {"us", "podcast", "album", "playlist"}

PATH_TITLE_PROVIDERS = {
    MusicLinkProvider.BANDCAMP,
    MusicLinkProvider.TIDAL,
    MusicLinkProvider.LINK_ONLY,
    MusicLinkProvider.UNKNOWN,
}


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def _title_from_segment(segment: str) -> str | None:
    """Turn a URL path segment like ``lofi-focus-mix.html`` into a title."""
    decoded = unquote(segment)
    stem, dot, _ = decoded.rpartition(".")
    if dot and stem:
        decoded = stem
    title = string.capwords(decoded.replace("-", " ").replace("_", " "))
    return title or None


class LinkClassifier:
    """Maps pasted links to a provider and a canonical https URL."""

    def normalize(self, raw: str) -> str | None:
        """Normalize a pasted string into a parseable URL string."""
        trimmed = (raw or "").strip()
        if not trimmed:
            return None

        lowered = trimmed.lower()
        if lowered.startswith("spotify:"):
            candidate = trimmed
        elif lowered.startswith(("http://", "https://")):
            candidate = trimmed
        elif trimmed.startswith("//"):
            candidate = f"https:{trimmed}"
        else:
            candidate = f"https://{trimmed}"

        if not self._is_parseable(candidate):
            return None
        return candidate

    def _is_parseable(self, url: str) -> bool:
        if INVALID_URL_CHARS.search(url):
            return False
        try:
            parts = urlsplit(url)
        except ValueError:
            return False
        if parts.scheme in ("http", "https") and not parts.hostname:
            return False
        return True

    def detect_provider(self, url: str) -> MusicLinkProvider:
        """Detect the music provider for a normalized URL."""
        parts = urlsplit(url)
        if parts.scheme == "spotify":
            return MusicLinkProvider.SPOTIFY

        if not parts.hostname:
            return MusicLinkProvider.LINK_ONLY
        host = _strip_www(parts.hostname.lower())

        for matches, provider in PROVIDER_RULES:
            if matches(host, parts.path):
                return provider
        return MusicLinkProvider.LINK_ONLY

    def fallback_web_url(self, provider: MusicLinkProvider, url: str) -> str | None:
        """Provider-specific web URL for deep links and short links."""
        parts = urlsplit(url)

        if provider is MusicLinkProvider.SPOTIFY and parts.scheme == "spotify":
            segments = url.split(":")
            if len(segments) < 3:
                return None
            return "https://open.spotify.com/" + "/".join(segments[1:])

        if (
            provider is MusicLinkProvider.YOUTUBE
            and _strip_www((parts.hostname or "").lower()) == "youtu.be"
        ):
            video_id = parts.path.strip("/")
            if not video_id:
                return None
            return f"https://www.youtube.com/watch?v={video_id}"

        return self._enforce_https(url, parts)

    def _enforce_https(self, url: str, parts: SplitResult) -> str:
        if parts.scheme == "http":
            return "https" + url[len(parts.scheme):]
        if not parts.scheme:
            return f"https:{url}" if url.startswith("//") else f"https://{url}"
        return url

    def oembed_url(self, provider: MusicLinkProvider, canonical_url: str) -> str | None:
        """Build the oEmbed lookup URL, or None if unsupported."""
        endpoint = OEMBED_ENDPOINTS.get(provider)
        if endpoint is None:
            return None
        base, extra = endpoint
        return f"{base}?{urlencode({'url': canonical_url, **extra})}"

    def infer_title(self, provider: MusicLinkProvider, url: str) -> str | None:
        """Guess a human-readable title from the URL alone.

        Used when no metadata service answers. Spotify, YouTube and
        SoundCloud paths hold opaque IDs, so they get no local title.
        """
        parts = urlsplit(url)
        segments = [segment for segment in parts.path.split("/") if segment]

        if provider in (MusicLinkProvider.APPLE_MUSIC, MusicLinkProvider.APPLE_PODCASTS):
            for segment in reversed(segments):
                lowered = segment.lower()
                if (
                    lowered in APPLE_IGNORED_SEGMENTS
                    or lowered.startswith("id")
                    or lowered.startswith("pl.")
                    or len(segment) <= 2
                ):
                    continue
                return _title_from_segment(segment)
            return None

        if provider in PATH_TITLE_PROVIDERS:
            if segments:
                return _title_from_segment(segments[-1])
            if parts.hostname:
                return string.capwords(_strip_www(parts.hostname.lower())) or None
            return None

        return None

    def classify(self, raw: str) -> MusicLinkClassification | None:
        """Classify a pasted link; None if it is not a usable URL."""
        original = self.normalize(raw)
        if original is None:
            logger.debug(f"Could not normalize link: {raw!r}")
            return None

        provider = self.detect_provider(original)
        canonical = self.fallback_web_url(provider, original) or original

        return MusicLinkClassification(
            provider=provider,
            original_url=original,
            canonical_url=canonical,
        )


default_classifier = LinkClassifier()


def classify(raw: str) -> MusicLinkClassification | None:
    """Classify a link with the shared default classifier."""
    return default_classifier.classify(raw)
