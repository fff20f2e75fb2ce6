"""Test configuration and fixtures"""

import pytest
import tempfile
from pathlib import Path
from unittest.mock import Mock

from spotipy.exceptions import SpotifyException

from audiowarden.core.config import (
    BackoffConfig,
    ListenerConfig,
    SpotifyConfig,
    DEFAULT_CLIENT_ID,
    DEFAULT_MARKER_KEYWORD,
    DEFAULT_SCOPE,
)
from audiowarden.spotify.models import AccessToken


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def spotify_config():
    """Spotify settings with the default client and keyword"""
    return SpotifyConfig(
        client_id=DEFAULT_CLIENT_ID,
        scope=DEFAULT_SCOPE,
        redirect_uri="http://localhost:7185/callback",
        marker_keyword=DEFAULT_MARKER_KEYWORD,
        request_timeout=5.0
    )


@pytest.fixture
def listener_config():
    """Listener on an ephemeral loopback port"""
    return ListenerConfig(host="127.0.0.1", port=0)


@pytest.fixture
def backoff_config():
    return BackoffConfig(initial_delay=1.0, max_retries=4)


@pytest.fixture
def access_token():
    return AccessToken(
        access_token="access-1",
        token_type="Bearer",
        expires_in=3600,
        refresh_token="refresh-1"
    )


@pytest.fixture
def mock_spotify():
    """spotipy.Spotify stand-in handed out by the client's factory"""
    return Mock()


def spotify_exception(status: int) -> SpotifyException:
    """Build the exception spotipy raises for an HTTP error status"""
    return SpotifyException(status, -1, f"HTTP {status}", headers={})


def track_item(url, item_type="track", is_local=False):
    """Playlist track entry as returned with the audiowarden field projection"""
    return {
        "is_local": is_local,
        "track": {
            "uri": f"spotify:{item_type}:{url.rsplit('/', 1)[-1]}" if url else None,
            "external_urls": {"spotify": url} if url else {},
            "is_local": is_local,
            "type": item_type,
        },
    }


def playlist_listing_item(playlist_id, name, description, snapshot_id="snap-1"):
    """Entry of GET /me/playlists"""
    return {
        "id": playlist_id,
        "uri": f"spotify:playlist:{playlist_id}",
        "name": name,
        "description": description,
        "snapshot_id": snapshot_id,
    }


def playlist_payload(playlist_id, name, items, next_url=None, snapshot_id="snap-1"):
    """Response of GET /playlists/{id}?fields=..."""
    return {
        "id": playlist_id,
        "uri": f"spotify:playlist:{playlist_id}",
        "name": name,
        "description": "audiowarden:block_songs",
        "href": f"https://api.spotify.com/v1/playlists/{playlist_id}",
        "snapshot_id": snapshot_id,
        "tracks": {
            "items": items,
            "next": next_url,
            "offset": 0,
            "limit": 100,
            "total": len(items),
        },
    }


@pytest.fixture
def sample_playlist_payload():
    """Playlist with a track, an episode, a local file and a removed track"""
    return playlist_payload(
        "pl1",
        "Never Again",
        [
            track_item("https://open.spotify.com/track/aaa?si=123"),
            track_item("https://open.spotify.com/episode/eee", item_type="episode"),
            track_item(None, is_local=True),
            {"is_local": False, "track": None},
        ],
    )
