"""Test the deny-list cache"""

import gzip
import json

import pytest

from audiowarden.core.exceptions import StorageError
from audiowarden.core.models import BlockedSong, DenyListSnapshot
from audiowarden.storage.cache import DenyListCache


def song(track_id, playlist="Never Again"):
    return BlockedSong(spotify_url=f"https://open.spotify.com/track/{track_id}", playlist_name=playlist)


class TestDenyListCache:
    """Test the global snapshot file"""

    def test_missing_cache_is_empty(self, temp_dir):
        snapshot = DenyListCache(temp_dir).load()

        assert len(snapshot) == 0

    def test_round_trip(self, temp_dir):
        """Writing then reading yields the same set of blocked songs"""
        cache = DenyListCache(temp_dir / "cache")
        original = DenyListSnapshot(blocked_songs=(song("a"), song("b", "Gym"), song("c")))

        cache.replace(original)
        loaded = cache.load()

        assert set(loaded.blocked_songs) == set(original.blocked_songs)
        assert loaded.version == 1
        assert loaded.find("https://open.spotify.com/track/b").playlist_name == "Gym"

    def test_file_is_gzip_json_with_version(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.replace(DenyListSnapshot(blocked_songs=(song("a"),)))

        data = json.loads(gzip.decompress(cache.snapshot_path.read_bytes()))

        assert data == {
            "version": 1,
            "blocked_songs": [
                {"spotify_url": "https://open.spotify.com/track/a", "playlist_name": "Never Again"}
            ],
        }

    def test_replace_overwrites(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.replace(DenyListSnapshot(blocked_songs=(song("a"),)))
        cache.replace(DenyListSnapshot(blocked_songs=(song("b"),)))

        loaded = cache.load()

        assert loaded.find("https://open.spotify.com/track/a") is None
        assert loaded.find("https://open.spotify.com/track/b") is not None

    def test_no_temp_files_left(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.replace(DenyListSnapshot(blocked_songs=(song("a"),)))

        assert [p.name for p in temp_dir.iterdir()] == ["blocked_songs.json.gz"]

    def test_corrupted_cache(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.snapshot_path.write_bytes(b"not gzip")

        with pytest.raises(StorageError):
            cache.load()

    def test_unknown_version(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.snapshot_path.write_bytes(gzip.compress(b'{"version": 7, "blocked_songs": []}'))

        with pytest.raises(StorageError, match="Unsupported"):
            cache.load()


class TestPlaylistSnapshots:
    """Test per-playlist cache files"""

    def test_unknown_snapshot(self, temp_dir):
        assert DenyListCache(temp_dir).load_playlist_songs("spotify:playlist:x", "s1") is None

    def test_store_and_load(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.store_playlist_songs("spotify:playlist:x", "s1", [song("a"), song("b")])

        loaded = cache.load_playlist_songs("spotify:playlist:x", "s1")

        assert loaded == [song("a"), song("b")]

    def test_older_snapshots_removed(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.store_playlist_songs("spotify:playlist:x", "s1", [song("a")])
        cache.store_playlist_songs("spotify:playlist:x", "s2", [song("b")])

        assert cache.load_playlist_songs("spotify:playlist:x", "s1") is None
        assert cache.load_playlist_songs("spotify:playlist:x", "s2") == [song("b")]

    def test_snapshot_id_with_slash(self, temp_dir):
        cache = DenyListCache(temp_dir)
        cache.store_playlist_songs("spotify:playlist:x", "AAA/BBB+", [song("a")])

        assert cache.load_playlist_songs("spotify:playlist:x", "AAA/BBB+") == [song("a")]
