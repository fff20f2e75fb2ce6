"""
On-disk cache of the deny-list.

Two kinds of files live in the cache directory:

    blocked_songs.json.gz
        The global snapshot used by the enforcement engine. Written in full
        by every successful refresh.

    <playlist_uri>/<snapshot_id>.json.gz
        Blocked songs of one playlist at one Spotify snapshot_id. A refresh
        that sees an unchanged snapshot_id reuses this file instead of
        fetching the playlist's tracks again.

Persisted Format:
    gzip-compressed JSON of a private, version-suffixed wire struct:

        {"version": 1,
         "blocked_songs": [{"spotify_url": "...", "playlist_name": "..."}]}

    Domain objects (BlockedSong, DenyListSnapshot) are converted explicitly
    to and from the wire struct; they are never serialized directly.

Thread Safety:
    Files are replaced atomically, so the event thread can load the snapshot
    while a refresh on another thread writes it.
"""

import gzip
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from audiowarden.core.exceptions import StorageError
from audiowarden.core.logger import get_logger
from audiowarden.core.models import BlockedSong, DenyListSnapshot
from audiowarden.storage.files import atomic_write_bytes

logger = get_logger(__name__)


CACHE_FILE_VERSION = 1
BLOCKED_SONGS_FILENAME = "blocked_songs.json.gz"
PLAYLIST_CACHE_SUFFIX = ".json.gz"


@dataclass(frozen=True)
class _BlockedSongV1:
    spotify_url: str
    playlist_name: str

    @classmethod
    def from_domain(cls, song: BlockedSong) -> "_BlockedSongV1":
        return cls(spotify_url=song.spotify_url, playlist_name=song.playlist_name)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "_BlockedSongV1":
        return cls(spotify_url=str(data["spotify_url"]), playlist_name=str(data["playlist_name"]))

    def to_json(self) -> dict[str, Any]:
        return {"spotify_url": self.spotify_url, "playlist_name": self.playlist_name}

    def to_domain(self) -> BlockedSong:
        return BlockedSong(spotify_url=self.spotify_url, playlist_name=self.playlist_name)


@dataclass(frozen=True)
class _CacheV1:
    version: int
    blocked_songs: tuple[_BlockedSongV1, ...]

    @classmethod
    def from_domain(cls, songs: Iterable[BlockedSong]) -> "_CacheV1":
        return cls(version=1, blocked_songs=tuple(_BlockedSongV1.from_domain(s) for s in songs))

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "_CacheV1":
        return cls(
            version=1,
            blocked_songs=tuple(_BlockedSongV1.from_json(s) for s in data["blocked_songs"])
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "blocked_songs": [s.to_json() for s in self.blocked_songs],
        }

    def to_domain(self) -> DenyListSnapshot:
        return DenyListSnapshot(
            blocked_songs=tuple(s.to_domain() for s in self.blocked_songs),
            version=self.version
        )


def encode_snapshot(songs: Iterable[BlockedSong]) -> bytes:
    """Serialize blocked songs as gzip-compressed JSON in the current format."""
    payload = json.dumps(_CacheV1.from_domain(songs).to_json())
    return gzip.compress(payload.encode("utf-8"))


def decode_snapshot(raw: bytes) -> DenyListSnapshot:
    """
    Deserialize a cache file.

    Raises:
        StorageError: If the content is not gzip/JSON, the version is
                      unknown, or entries are malformed.
    """
    try:
        data = json.loads(gzip.decompress(raw).decode("utf-8"))
    except (OSError, EOFError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageError(
            f"Cache file is not valid gzip-compressed JSON: {e}",
            details={"original_error": str(e)}
        ) from e

    if not isinstance(data, dict):
        raise StorageError("Cache file does not contain a JSON object")

    version = data.get("version")
    if version != CACHE_FILE_VERSION:
        raise StorageError(
            f"Unsupported cache file version: {version}",
            details={"version": version, "supported": [CACHE_FILE_VERSION]}
        )

    try:
        return _CacheV1.from_json(data).to_domain()
    except (KeyError, TypeError) as e:
        raise StorageError(
            f"Cache file has invalid entries: {e}",
            details={"original_error": str(e)}
        ) from e


class DenyListCache:
    """
    Versioned, compressed deny-list snapshots in the cache directory.

    Attributes:
        cache_dir: Root directory of all cache files.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    @property
    def snapshot_path(self) -> Path:
        return self.cache_dir / BLOCKED_SONGS_FILENAME

    # =========================================================================
    # Global snapshot
    # =========================================================================

    def load(self) -> DenyListSnapshot:
        """
        Load the global snapshot.

        Returns:
            The cached snapshot, or an empty one when nothing was cached yet
            (first start, or never logged in).

        Raises:
            StorageError: If the file exists but cannot be read or decoded.
        """
        raw = self._read(self.snapshot_path)
        if raw is None:
            return DenyListSnapshot()
        return decode_snapshot(raw)

    def replace(self, snapshot: DenyListSnapshot) -> None:
        """
        Replace the global snapshot in full.

        Raises:
            StorageError: If the file cannot be written; the previous
                          snapshot stays in place.
        """
        self._write(self.snapshot_path, snapshot.blocked_songs)
        logger.debug(f"Stored {len(snapshot)} blocked songs in {self.snapshot_path}")

    # =========================================================================
    # Per-playlist snapshots
    # =========================================================================

    def playlist_path(self, playlist_uri: str, snapshot_id: str) -> Path:
        # snapshot ids are base64 and may contain '/'
        safe_snapshot = snapshot_id.replace("/", "_")
        return self.cache_dir / playlist_uri / f"{safe_snapshot}{PLAYLIST_CACHE_SUFFIX}"

    def load_playlist_songs(self, playlist_uri: str, snapshot_id: str) -> list[BlockedSong] | None:
        """
        Load the cached songs of one playlist at one snapshot.

        Returns:
            The songs, or None when this playlist/snapshot is not cached.

        Raises:
            StorageError: If the file exists but cannot be read or decoded.
        """
        raw = self._read(self.playlist_path(playlist_uri, snapshot_id))
        if raw is None:
            return None
        return list(decode_snapshot(raw).blocked_songs)

    def store_playlist_songs(
        self,
        playlist_uri: str,
        snapshot_id: str,
        songs: Iterable[BlockedSong]
    ) -> None:
        """
        Cache the songs of one playlist at one snapshot.

        Files of older snapshots of the same playlist are removed afterwards,
        they can never match again.

        Raises:
            StorageError: If the file cannot be written.
        """
        path = self.playlist_path(playlist_uri, snapshot_id)
        self._write(path, songs)
        for stale in path.parent.glob(f"*{PLAYLIST_CACHE_SUFFIX}"):
            if stale != path:
                try:
                    stale.unlink()
                except OSError as e:
                    logger.warning(f"Unable to remove outdated cache file {stale}: {e}")

    # =========================================================================
    # IO helpers
    # =========================================================================

    def _read(self, path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(
                f"Failed to read cache file: {e}",
                details={"path": str(path), "original_error": str(e)}
            ) from e

    def _write(self, path: Path, songs: Iterable[BlockedSong]) -> None:
        try:
            atomic_write_bytes(path, encode_snapshot(songs))
        except OSError as e:
            raise StorageError(
                f"Failed to write cache file: {e}",
                details={"path": str(path), "original_error": str(e)}
            ) from e
