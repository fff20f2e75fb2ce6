"""Test enforcement of the deny-list against now-playing events"""

import logging
from unittest.mock import Mock

import pytest

from audiowarden.core.exceptions import (
    NotAuthenticatedError,
    PlayerError,
    RateLimitExceededError,
)
from audiowarden.core.models import BlockedSong, DenyListSnapshot, NowPlayingEvent
from audiowarden.enforcement.engine import EnforcementEngine
from audiowarden.storage.blocked_songs_file import BlockedSongsFile
from audiowarden.storage.cache import DenyListCache


CACHED_URL = "https://open.spotify.com/track/cached"
NEW_URL = "https://open.spotify.com/track/new"
LOCAL_URL = "https://open.spotify.com/track/local"
OTHER_URL = "https://open.spotify.com/track/other"


class CountingRefresh:
    """Refresh stand-in that writes a fixed snapshot to the cache"""

    def __init__(self, cache, songs=(), error=None):
        self.cache = cache
        self.songs = tuple(songs)
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        self.cache.replace(DenyListSnapshot(blocked_songs=self.songs))


@pytest.fixture
def cache(temp_dir):
    cache = DenyListCache(temp_dir / "cache")
    cache.replace(DenyListSnapshot(blocked_songs=(BlockedSong(CACHED_URL, "Gym"),)))
    return cache


@pytest.fixture
def local_file(temp_dir):
    path = temp_dir / "blocked_songs.conf"
    path.write_text(f"# mine\n{LOCAL_URL}?si=abc\n", encoding="utf-8")
    return BlockedSongsFile(path)


@pytest.fixture
def player():
    return Mock()


def event(url, artist="Artist", title="Title"):
    return NowPlayingEvent(url=url, artist=artist, title=title)


def enforcement_records(caplog):
    return [r for r in caplog.records if hasattr(r, "enforcement_blocked")]


class TestHandleEvent:

    def test_cached_song_is_skipped_without_refresh(self, cache, player, local_file, caplog):
        refresh = CountingRefresh(cache)
        engine = EnforcementEngine(cache, player, local_file, refresh)

        with caplog.at_level(logging.INFO):
            verdict = engine.handle_event(event(CACHED_URL))

        assert verdict.blocked
        assert verdict.blocked_by.playlist_name == "Gym"
        assert not verdict.refreshed
        assert refresh.calls == 0
        player.play_next.assert_called_once()

        records = enforcement_records(caplog)
        assert len(records) == 1
        assert records[0].enforcement_blocked is True
        assert records[0].enforcement_playlist == "Gym"
        assert "[BLOCKED]" in records[0].getMessage()

    def test_song_added_to_playlist_is_caught_by_one_refresh(self, cache, player, local_file):
        refresh = CountingRefresh(cache, songs=[BlockedSong(CACHED_URL, "Gym"), BlockedSong(NEW_URL, "Gym")])
        engine = EnforcementEngine(cache, player, local_file, refresh)

        verdict = engine.handle_event(event(NEW_URL))

        assert verdict.blocked
        assert verdict.refreshed
        assert refresh.calls == 1
        player.play_next.assert_called_once()

    def test_unknown_song_plays_after_one_refresh(self, cache, player, local_file, caplog):
        refresh = CountingRefresh(cache, songs=[BlockedSong(CACHED_URL, "Gym")])
        engine = EnforcementEngine(cache, player, local_file, refresh)

        with caplog.at_level(logging.INFO):
            verdict = engine.handle_event(event(OTHER_URL))

        assert not verdict.blocked
        assert verdict.refreshed
        assert refresh.calls == 1
        player.play_next.assert_not_called()

        records = enforcement_records(caplog)
        assert len(records) == 1
        assert records[0].enforcement_blocked is False
        assert "[NOT BLOCKED]" in records[0].getMessage()

    def test_local_file_entry_is_skipped(self, cache, player, local_file):
        refresh = CountingRefresh(cache)
        engine = EnforcementEngine(cache, player, local_file, refresh)

        verdict = engine.handle_event(event(LOCAL_URL))

        assert verdict.blocked
        assert verdict.blocked_by.playlist_name == "blocked_songs.conf"
        assert refresh.calls == 0

    def test_query_of_reported_url_is_ignored(self, cache, player):
        engine = EnforcementEngine(cache, player)

        assert engine.handle_event(event(CACHED_URL + "?si=xyz")).blocked

    def test_refresh_failure_keeps_stale_data(self, cache, player, local_file):
        refresh = CountingRefresh(cache, error=RateLimitExceededError("slow down", http_status=429))
        engine = EnforcementEngine(cache, player, local_file, refresh)

        verdict = engine.handle_event(event(OTHER_URL))

        assert not verdict.blocked
        assert not verdict.refreshed
        assert refresh.calls == 1
        assert engine.handle_event(event(CACHED_URL)).blocked

    def test_not_logged_in(self, cache, player):
        refresh = CountingRefresh(cache, error=NotAuthenticatedError("Not logged in"))
        engine = EnforcementEngine(cache, player, refresh=refresh)

        assert not engine.handle_event(event(OTHER_URL)).blocked
        assert refresh.calls == 1

    def test_without_refresh(self, cache, player):
        engine = EnforcementEngine(cache, player)

        verdict = engine.handle_event(event(OTHER_URL))

        assert not verdict.blocked
        assert not verdict.refreshed

    def test_skip_failure_is_logged(self, cache, player, caplog):
        player.play_next.side_effect = PlayerError("Spotify is gone")
        engine = EnforcementEngine(cache, player)

        with caplog.at_level(logging.ERROR):
            verdict = engine.handle_event(event(CACHED_URL))

        assert verdict.blocked
        assert "Unable to skip song" in caplog.text


class TestLoadSnapshot:

    def test_merges_cache_and_local_file(self, cache, player, local_file):
        snapshot = EnforcementEngine(cache, player, local_file).load_snapshot()

        assert [s.spotify_url for s in snapshot.blocked_songs] == [CACHED_URL, LOCAL_URL]

    def test_corrupt_cache_counts_as_empty(self, cache, player, local_file):
        cache.snapshot_path.write_bytes(b"not gzip")

        snapshot = EnforcementEngine(cache, player, local_file).load_snapshot()

        assert [s.spotify_url for s in snapshot.blocked_songs] == [LOCAL_URL]

    def test_local_edits_are_picked_up(self, cache, player, local_file):
        engine = EnforcementEngine(cache, player, local_file)
        assert not engine.handle_event(event(OTHER_URL)).blocked

        local_file.path.write_text(f"{OTHER_URL}\n", encoding="utf-8")

        assert engine.handle_event(event(OTHER_URL)).blocked

    def test_garbled_local_file_does_not_stop_enforcement(self, cache, player, local_file):
        local_file.path.write_bytes(b"\xff\xfe\nhttp://[broken\n" + f"{LOCAL_URL}\n".encode())
        engine = EnforcementEngine(cache, player, local_file)

        assert engine.handle_event(event(CACHED_URL)).blocked
        assert engine.handle_event(event(LOCAL_URL)).blocked
        assert not engine.handle_event(event("http://[open.spotify.com/track/x")).blocked
