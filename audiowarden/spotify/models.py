"""
Data models for Spotify Web API responses and OAuth tokens.

These are projections of the API payloads, reduced to the fields the deny-list
refresh needs. They live only while a refresh runs and are never persisted;
the deny-list cache stores BlockedSong entries instead.

Every model is built with a from_spotify_api() class method. Those methods
index the payload directly, so a malformed response surfaces as KeyError /
TypeError / ValueError, which the API client turns into a SpotifyError.

Usage:
    from audiowarden.spotify.models import PagingObject, SimplifiedPlaylist

    page = PagingObject.from_spotify_api(response, SimplifiedPlaylist.from_spotify_api)
    for playlist in page.items:
        print(playlist.name, playlist.snapshot_id)
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from audiowarden.core.models import canonical_spotify_url


T = TypeVar("T")

TRACK_TYPE = "track"


@dataclass(frozen=True)
class AccessToken:
    """
    OAuth token as returned by the Spotify token endpoint.

    Attributes:
        access_token: Bearer credential sent with every API call.
        token_type: Always "Bearer" for Spotify.
        expires_in: Lifetime in seconds at issue time. Informational only:
                    expiry is detected when the API answers 401.
        refresh_token: Credential used to obtain the next access token.
    """
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"

    @classmethod
    def from_token_response(
        cls,
        data: dict[str, Any],
        previous_refresh_token: str | None = None
    ) -> "AccessToken":
        """
        Build a token from a token endpoint response.

        Spotify may omit refresh_token on a refresh grant; the previous one
        stays valid in that case.

        Raises:
            KeyError, TypeError, ValueError: If the payload is malformed.
        """
        refresh_token = data.get("refresh_token") or previous_refresh_token
        if not refresh_token:
            raise KeyError("refresh_token")
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data.get("token_type", "Bearer")),
            expires_in=int(data.get("expires_in", 3600)),
            refresh_token=str(refresh_token)
        )

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        return f"AccessToken(token_type={self.token_type!r}, expires_in={self.expires_in})"


@dataclass(frozen=True)
class PagingObject(Generic[T]):
    """
    One page of a paginated Spotify endpoint.

    Attributes:
        items: Parsed items of this page.
        next: Absolute URL of the following page, None on the last page.
        total: Total number of items across all pages.
    """
    items: tuple[T, ...]
    next: str | None
    total: int

    @classmethod
    def from_spotify_api(
        cls,
        data: dict[str, Any],
        parse_item: Callable[[dict[str, Any]], T]
    ) -> "PagingObject[T]":
        return cls(
            items=tuple(parse_item(item) for item in data["items"]),
            next=data.get("next"),
            total=int(data.get("total", 0))
        )

    @classmethod
    def parser(cls, parse_item: Callable[[dict[str, Any]], T]) -> Callable[[dict[str, Any]], "PagingObject[T]"]:
        """Bind parse_item, for use as the parser of call_with_auth()."""
        return lambda data: cls.from_spotify_api(data, parse_item)


@dataclass(frozen=True)
class SimplifiedPlaylist:
    """
    Playlist entry of the /me/playlists listing.

    Attributes:
        id: Spotify playlist ID.
        uri: spotify:playlist:<id>, used as the per-playlist cache key.
        name: Display name, used for attribution of blocked songs.
        description: Playlist description, searched for the marker keyword.
        snapshot_id: Version token of the playlist contents.
    """
    id: str
    uri: str
    name: str
    description: str | None
    snapshot_id: str

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "SimplifiedPlaylist":
        return cls(
            id=data["id"],
            uri=data["uri"],
            name=data["name"],
            description=data.get("description"),
            snapshot_id=data["snapshot_id"]
        )

    def has_keyword(self, keyword: str) -> bool:
        return bool(self.description) and keyword in self.description


@dataclass(frozen=True)
class PlaylistTrackItem:
    """
    One entry of a playlist's track list, reduced to what identifies it.

    Attributes:
        item_type: "track" or "episode".
        is_local: True for files the user added from disk; those have no URL.
        spotify_url: external_urls.spotify, None for local tracks.
    """
    item_type: str
    is_local: bool
    spotify_url: str | None

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "PlaylistTrackItem | None":
        """
        Parse a playlist track object.

        Returns None when the track itself is null, which Spotify reports
        for entries that were removed from the catalogue.
        """
        track = data.get("track")
        if track is None:
            return None
        external_urls = track.get("external_urls") or {}
        return cls(
            item_type=track["type"],
            is_local=bool(data.get("is_local") or track.get("is_local")),
            spotify_url=external_urls.get("spotify")
        )

    @property
    def blockable_url(self) -> str | None:
        """
        Canonical URL of a streamable music track, None for anything else.

        Podcast episodes are not supported, and local tracks have no URL
        in the Web API.
        """
        if self.item_type != TRACK_TYPE or self.is_local or not self.spotify_url:
            return None
        return canonical_spotify_url(self.spotify_url)


@dataclass(frozen=True)
class Playlist:
    """
    Full playlist as returned by GET /playlists/{id} with field projection.

    Attributes:
        tracks: First page of the track list, embedded in the response.
    """
    id: str
    uri: str
    name: str
    description: str | None
    snapshot_id: str
    tracks: PagingObject["PlaylistTrackItem | None"]

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Playlist":
        return cls(
            id=data["id"],
            uri=data["uri"],
            name=data["name"],
            description=data.get("description"),
            snapshot_id=data["snapshot_id"],
            tracks=PagingObject.from_spotify_api(data["tracks"], PlaylistTrackItem.from_spotify_api)
        )
