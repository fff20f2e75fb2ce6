"""
Domain models shared by the cache, the Spotify client and the enforcement engine.

All dataclasses are frozen. None of them is ever written to disk directly:
the storage package converts them to private, version-suffixed wire formats.
"""

from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit


SPOTIFY_OPEN_HOST = "open.spotify.com"

# Version of the deny-list snapshot produced by this release
SNAPSHOT_VERSION = 1


def canonical_spotify_url(url: str) -> str:
    """
    Strip the query string from a Spotify URL.

    URLs copied via "Share" carry a tracking parameter (?si=7764fc...) that
    the URLs reported by the player never have, so both sides are compared
    without query.

    Example:
        canonical_spotify_url("https://open.spotify.com/track/abc?si=123")
        # "https://open.spotify.com/track/abc"
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        # Malformed netloc, nothing to strip reliably
        return url.strip()
    return urlunsplit(parts._replace(query=""))


@dataclass(frozen=True)
class BlockedSong:
    """
    A song the user never wants to hear again.

    Attributes:
        spotify_url: Canonical track URL, the identity of the entry.
        playlist_name: Playlist (or file) the entry came from. Only used
                       for attribution in the log, not part of equality.
    """
    spotify_url: str
    playlist_name: str = field(compare=False)


@dataclass(frozen=True)
class DenyListSnapshot:
    """
    Complete deny-list as produced by one refresh.

    Snapshots are replaced in full, never edited in place.

    Attributes:
        blocked_songs: Entries in the order they were collected.
        version: Snapshot format version the data was produced with.
    """
    blocked_songs: tuple[BlockedSong, ...] = ()
    version: int = SNAPSHOT_VERSION

    def __len__(self) -> int:
        return len(self.blocked_songs)

    def find(self, spotify_url: str) -> BlockedSong | None:
        """Return the first entry matching the given URL, if any."""
        wanted = canonical_spotify_url(spotify_url)
        for song in self.blocked_songs:
            if song.spotify_url == wanted:
                return song
        return None

    def merged_with(self, songs: "tuple[BlockedSong, ...] | list[BlockedSong]") -> "DenyListSnapshot":
        """Return a new snapshot with the given entries appended."""
        return DenyListSnapshot(blocked_songs=self.blocked_songs + tuple(songs), version=self.version)


@dataclass(frozen=True)
class NowPlayingEvent:
    """
    One "now playing" notification of the player.

    Attributes:
        url: Track URL as reported by the player (xesam:url).
        artist: Comma-joined artist names, if reported.
        title: Track title, if reported.
    """
    url: str
    artist: str | None = None
    title: str | None = None

    def __str__(self) -> str:
        return (
            f"Artist: {self.artist or 'Unknown'}, "
            f"Title: {self.title or 'Unknown'}, "
            f"URL: {self.url}"
        )
