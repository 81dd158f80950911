"""Best-effort music link metadata lookup via provider oEmbed endpoints."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from .link_classifier import LinkClassifier, default_classifier
from .models import MusicLinkClassification, MusicLinkMetadata, OEmbedPayload

logger = logging.getLogger(__name__)


class InvalidLinkError(Exception):
    """Raised when a link cannot be classified at all."""


class MusicLinkMetadataService:
    """Resolves titles and artwork for music links.

    Network failures never propagate; callers get metadata built from the
    URL alone. Successful lookups are cached by canonical URL.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 3.0,
        classifier: LinkClassifier = default_classifier,
    ) -> None:
        self.client = client
        self.timeout = timeout
        self.classifier = classifier
        self._cache: dict[str, MusicLinkMetadata] = {}

    def classify(self, url_string: str) -> MusicLinkClassification | None:
        return self.classifier.classify(url_string)

    async def fetch_metadata(self, url_string: str) -> MusicLinkMetadata:
        """Look up metadata for a pasted link."""
        classification = self.classify(url_string)
        if classification is None:
            raise InvalidLinkError(f"Not a usable link: {url_string!r}")

        cache_key = classification.canonical_url.lower()
        if cache_key in self._cache:
            return self._cache[cache_key]

        if not classification.provider.supports_oembed:
            return self.fallback_metadata(classification)

        endpoint = self.classifier.oembed_url(
            classification.provider, classification.canonical_url
        )
        if endpoint is None:
            return self.fallback_metadata(classification)

        payload = await self._request(endpoint)
        if payload is None:
            return self.fallback_metadata(classification)

        metadata = MusicLinkMetadata(
            provider=classification.provider,
            original_url=classification.original_url,
            canonical_url=classification.canonical_url,
            title=payload.title,
            author_name=payload.author_name,
            thumbnail_url=payload.thumbnail_url,
            duration_seconds=payload.duration,
        )
        self._cache[cache_key] = metadata
        return metadata

    def fallback_metadata(self, classification: MusicLinkClassification) -> MusicLinkMetadata:
        """Metadata derived from the URL when no service answers."""
        return MusicLinkMetadata(
            provider=classification.provider,
            original_url=classification.original_url,
            canonical_url=classification.canonical_url,
            title=self.classifier.infer_title(
                classification.provider, classification.canonical_url
            ),
        )

    async def _request(self, endpoint: str) -> OEmbedPayload | None:
        try:
            if self.client is not None:
                response = await self.client.get(
                    endpoint, timeout=self.timeout, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(endpoint, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning(f"oEmbed request failed for {endpoint}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"oEmbed request returned {response.status_code} for {endpoint}")
            return None

        try:
            return OEmbedPayload.model_validate_json(response.content)
        except ValidationError as e:
            logger.warning(f"Could not decode oEmbed response from {endpoint}: {e}")
            return None
