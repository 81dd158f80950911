"""Tests for music link classification."""

import pytest

from afterflow.core.link_classifier import OEMBED_ENDPOINTS, LinkClassifier, classify
from afterflow.core.models import MusicLinkProvider


@pytest.fixture
def classifier():
    """Create link classifier instance."""
    return LinkClassifier()


def test_spotify_deep_link():
    """Test Spotify URI rewriting."""
    result = classify("spotify:playlist:37i9dQZF1DXcBWIGoYBM5M")

    assert result is not None
    assert result.provider == MusicLinkProvider.SPOTIFY
    assert result.original_url == "spotify:playlist:37i9dQZF1DXcBWIGoYBM5M"
    assert result.canonical_url == "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M"


def test_spotify_deep_link_variants(classifier):
    """Test uppercase scheme, long and malformed Spotify URIs."""
    upper = classifier.classify("SPOTIFY:track:abc")
    assert upper.provider == MusicLinkProvider.SPOTIFY
    assert upper.canonical_url == "https://open.spotify.com/track/abc"

    nested = classifier.classify("spotify:user:bob:playlist:xyz")
    assert nested.canonical_url == "https://open.spotify.com/user/bob/playlist/xyz"

    malformed = classifier.classify("spotify:playlist")
    assert malformed.provider == MusicLinkProvider.SPOTIFY
    assert malformed.canonical_url == "spotify:playlist"


def test_youtube_short_link():
    """Test youtu.be rewriting."""
    result = classify("https://youtu.be/abcd1234")

    assert result.provider == MusicLinkProvider.YOUTUBE
    assert result.canonical_url == "https://www.youtube.com/watch?v=abcd1234"


def test_youtube_short_link_without_id(classifier):
    result = classifier.classify("https://youtu.be/")
    assert result.provider == MusicLinkProvider.YOUTUBE
    assert result.canonical_url == "https://youtu.be/"


def test_http_upgraded_to_https(classifier):
    """Test canonical URLs always use https."""
    result = classifier.classify("http://www.youtube.com/watch?v=x")
    assert result.original_url == "http://www.youtube.com/watch?v=x"
    assert result.canonical_url == "https://www.youtube.com/watch?v=x"

    result = classifier.classify("HTTP://example.com/a?b=c")
    assert result.canonical_url == "https://example.com/a?b=c"


def test_bare_host_normalization():
    """Test scheme-less input gets https."""
    result = classify("music.apple.com/us/playlist/calm/pl.u-123")

    assert result.provider == MusicLinkProvider.APPLE_MUSIC
    assert result.original_url == "https://music.apple.com/us/playlist/calm/pl.u-123"
    assert result.canonical_url == "https://music.apple.com/us/playlist/calm/pl.u-123"


def test_protocol_relative_and_whitespace(classifier):
    result = classifier.classify("  //soundcloud.com/artist/track \n")
    assert result.provider == MusicLinkProvider.SOUNDCLOUD
    assert result.canonical_url == "https://soundcloud.com/artist/track"


def test_unknown_provider_fallback():
    """Test unsupported hosts become link-only."""
    result = classify("example.com/some/page")

    assert result.provider == MusicLinkProvider.LINK_ONLY
    assert result.canonical_url == "https://example.com/some/page"


def test_provider_detection(classifier):
    """Test provider rules."""
    test_cases = [
        ("https://open.spotify.com/album/1", MusicLinkProvider.SPOTIFY),
        ("https://www.youtube.com/watch?v=x", MusicLinkProvider.YOUTUBE),
        ("https://m.youtube.com/watch?v=x", MusicLinkProvider.YOUTUBE),
        ("https://www.youtube-nocookie.com/embed/x", MusicLinkProvider.YOUTUBE),
        ("https://notyoutu.be/x", MusicLinkProvider.LINK_ONLY),
        ("https://soundcloud.com/artist/track", MusicLinkProvider.SOUNDCLOUD),
        ("https://podcasts.apple.com/us/podcast/the-show/id123", MusicLinkProvider.APPLE_PODCASTS),
        ("https://itunes.apple.com/us/podcast/the-show/id123", MusicLinkProvider.APPLE_PODCASTS),
        ("https://itunes.apple.com/us/album/record/id123", MusicLinkProvider.APPLE_MUSIC),
        ("https://WWW.Tidal.com/browse/track/1", MusicLinkProvider.TIDAL),
        ("https://artist.bandcamp.com/album/x", MusicLinkProvider.BANDCAMP),
        ("https://example.org", MusicLinkProvider.LINK_ONLY),
    ]

    for url, expected in test_cases:
        assert classifier.detect_provider(url) == expected, f"Wrong provider for {url}"


def test_invalid_links(classifier):
    """Test strings that are not usable links."""
    invalid = [
        "",
        "   ",
        "not a url",
        "https://",
        "http://exa mple.com",
        "https://[::1",
        'https://example.com/"quoted"',
    ]

    for raw in invalid:
        assert classifier.classify(raw) is None, f"Should be rejected: {raw!r}"


def test_oembed_endpoints(classifier):
    """Test oEmbed endpoint construction."""
    youtube = classifier.oembed_url(
        MusicLinkProvider.YOUTUBE, "https://www.youtube.com/watch?v=abc"
    )
    assert youtube == (
        "https://www.youtube.com/oembed"
        "?url=https%3A%2F%2Fwww.youtube.com%2Fwatch%3Fv%3Dabc&format=json"
    )

    spotify = classifier.oembed_url(
        MusicLinkProvider.SPOTIFY, "https://open.spotify.com/playlist/abc"
    )
    assert spotify == "https://open.spotify.com/oembed?url=https%3A%2F%2Fopen.spotify.com%2Fplaylist%2Fabc"

    assert classifier.oembed_url(MusicLinkProvider.SOUNDCLOUD, "https://soundcloud.com/a/b").startswith(
        "https://soundcloud.com/oembed?url="
    )
    assert classifier.oembed_url(MusicLinkProvider.TIDAL, "https://tidal.com/track/1").startswith(
        "https://oembed.tidal.com/?url="
    )

    for provider in (
        MusicLinkProvider.APPLE_MUSIC,
        MusicLinkProvider.APPLE_PODCASTS,
        MusicLinkProvider.BANDCAMP,
        MusicLinkProvider.LINK_ONLY,
        MusicLinkProvider.UNKNOWN,
    ):
        assert classifier.oembed_url(provider, "https://example.com") is None
        assert not provider.supports_oembed


def test_title_inference_from_path(classifier):
    """Test fallback titles for generic links."""
    assert classifier.infer_title(
        MusicLinkProvider.LINK_ONLY, "https://example.com/lofi-focus-mix.html"
    ) == "Lofi Focus Mix"
    assert classifier.infer_title(
        MusicLinkProvider.BANDCAMP, "https://artist.bandcamp.com/track/sunset%20drive/"
    ) == "Sunset Drive"
    assert classifier.infer_title(
        MusicLinkProvider.UNKNOWN, "https://example.com/deep_WORK"
    ) == "Deep Work"


def test_title_inference_from_host(classifier):
    assert classifier.infer_title(MusicLinkProvider.LINK_ONLY, "https://www.example.com") == "Example.com"
    assert classifier.infer_title(MusicLinkProvider.TIDAL, "https://tidal.com/") == "Tidal.com"


def test_title_inference_apple(classifier):
    """Test Apple paths skip locale, kind and id segments."""
    assert classifier.infer_title(
        MusicLinkProvider.APPLE_MUSIC, "https://music.apple.com/us/playlist/calm/pl.u-123"
    ) == "Calm"
    assert classifier.infer_title(
        MusicLinkProvider.APPLE_MUSIC, "https://music.apple.com/us/album/the_dark-side/id1234"
    ) == "The Dark Side"
    assert classifier.infer_title(
        MusicLinkProvider.APPLE_PODCASTS, "https://podcasts.apple.com/us/podcast/mindful-minutes/id99"
    ) == "Mindful Minutes"
    assert classifier.infer_title(
        MusicLinkProvider.APPLE_MUSIC, "https://music.apple.com/us/playlist/pl.u-123"
    ) is None


def test_no_local_title_for_oembed_providers(classifier):
    for provider, url in [
        (MusicLinkProvider.SPOTIFY, "https://open.spotify.com/playlist/deep-focus"),
        (MusicLinkProvider.YOUTUBE, "https://www.youtube.com/watch?v=abc"),
        (MusicLinkProvider.SOUNDCLOUD, "https://soundcloud.com/artist/some-track"),
    ]:
        assert classifier.infer_title(provider, url) is None


def test_provider_display_names():
    assert MusicLinkProvider.APPLE_MUSIC.display_name == "Apple Music"
    assert MusicLinkProvider.YOUTUBE.display_name == "YouTube"
    assert MusicLinkProvider("applePodcasts") is MusicLinkProvider.APPLE_PODCASTS
    assert MusicLinkProvider.SPOTIFY.supports_oembed


def test_oembed_support_matches_endpoints():
    supported = {provider for provider in MusicLinkProvider if provider.supports_oembed}
    assert supported == set(OEMBED_ENDPOINTS)
