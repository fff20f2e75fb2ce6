"""
Authenticated Spotify Web API client.

Every API call goes through SpotifyApiClient.call_with_auth(), which wraps a
spotipy call with the recovery rules of audiowarden:

    401 Unauthorized:
        Refresh the token through the TokenManager and retry exactly once.
        A second 401 raises AuthError. A rejected refresh raises
        RefreshFailedError: the user must log in again.

    429 Too Many Requests:
        Sleep according to the backoff policy and retry. When the policy is
        exhausted, RateLimitExceededError is raised.

    Anything else:
        SpotifyError, no retry. A response that cannot be parsed into the
        expected model is a SpotifyError as well.

spotipy is given a plain requests.Session, so its own urllib3 retry adapter
is not installed and every 429 reaches the backoff policy here.

Usage:
    client = SpotifyApiClient(token_manager, config.spotify, config.backoff)
    snapshot = client.refresh_deny_list(cache)
"""

import time
from typing import Any, Callable, TypeVar

import requests
import spotipy
from spotipy.exceptions import SpotifyException
from tqdm import tqdm

from audiowarden.core.config import BackoffConfig, SpotifyConfig
from audiowarden.core.exceptions import (
    AuthError,
    RateLimitExceededError,
    SpotifyError,
    StorageError,
)
from audiowarden.core.logger import get_logger
from audiowarden.core.models import BlockedSong, DenyListSnapshot
from audiowarden.spotify.backoff import BackoffState, next_backoff
from audiowarden.spotify.models import (
    AccessToken,
    PagingObject,
    Playlist,
    PlaylistTrackItem,
    SimplifiedPlaylist,
)
from audiowarden.spotify.pagination import collect_items, fetch_all_pages
from audiowarden.spotify.session import TokenManager
from audiowarden.storage.cache import DenyListCache

logger = get_logger(__name__)


T = TypeVar("T")

API_BASE_URL = "https://api.spotify.com/v1/"
PLAYLISTS_PAGE_SIZE = 50
PLAYLIST_FIELDS = (
    "id,uri,name,description,href,snapshot_id,"
    "tracks(next,offset,limit,total),"
    "tracks.items(is_local,track(uri,external_urls,is_local,type))"
)

SpotifyRequest = Callable[[spotipy.Spotify], Any]
SpotifyFactory = Callable[[AccessToken], spotipy.Spotify]


class SpotifyApiClient:
    """
    Spotify Web API access with automatic re-authentication and backoff.

    Thread Safety:
        The client holds no token of its own. Every call asks the shared
        TokenManager for the current token, so the event thread and the IPC
        thread can use one instance concurrently.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        config: SpotifyConfig,
        backoff: BackoffConfig | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        spotify_factory: SpotifyFactory | None = None
    ) -> None:
        """
        Args:
            token_manager: Shared owner of the OAuth token.
            config: Spotify settings (marker keyword, timeout).
            backoff: Retry policy for 429 responses, defaults to 1 s / 4 retries.
            session: HTTP session shared by all API calls.
            sleep: Blocking wait used between rate-limited retries.
            spotify_factory: Builds the spotipy client for a token. Tests
                             replace it with a fake.
        """
        self.token_manager = token_manager
        self.config = config
        self.backoff = backoff or BackoffConfig(initial_delay=1.0, max_retries=4)
        self._session = session or requests.Session()
        self._sleep = sleep
        self._spotify_factory = spotify_factory or self._create_spotify

    def _create_spotify(self, token: AccessToken) -> spotipy.Spotify:
        return spotipy.Spotify(
            auth=token.access_token,
            requests_session=self._session,
            requests_timeout=self.config.request_timeout
        )

    # =========================================================================
    # Request execution
    # =========================================================================

    def call_with_auth(
        self,
        request: SpotifyRequest,
        parser: Callable[[Any], T] | None = None,
        retried_after_401: bool = False,
        backoff: BackoffState | None = None
    ) -> Any:
        """
        Execute an API request with the current token.

        Args:
            request: Performs one spotipy call and returns its JSON payload.
            parser: Converts the payload into the expected model.
            retried_after_401: True when the 401 retry is already used up.
            backoff: Current position in the 429 retry sequence.

        Returns:
            The parsed model, or the raw payload when no parser is given.

        Raises:
            NotAuthenticatedError: If the user never logged in.
            AuthError: If the API answers 401 again after a refresh.
            RefreshFailedError: If the token refresh was rejected.
            RateLimitExceededError: If 429 outlasts the backoff policy.
            SpotifyError: For every other failure, including parse errors.
        """
        if backoff is None:
            backoff = BackoffState.initial(self.backoff.initial_delay, self.backoff.max_retries)

        while True:
            token = self.token_manager.authorize()
            try:
                data = request(self._spotify_factory(token))
                break
            except SpotifyException as e:
                if e.http_status == 401:
                    if retried_after_401:
                        raise AuthError(
                            "Spotify rejected the access token even after a refresh",
                            details={"original_error": str(e)},
                            http_status=401
                        ) from e
                    logger.debug("Spotify token expired, attempting refresh...")
                    self.token_manager.refresh(token)
                    retried_after_401 = True
                    continue

                if e.http_status == 429:
                    step = next_backoff(backoff)
                    if step is None:
                        raise RateLimitExceededError(
                            "Spotify rate limit exceeded, giving up",
                            details={"retries": backoff.attempt},
                            http_status=429
                        ) from e
                    delay, backoff = step
                    logger.warning(f"Rate limited by Spotify, waiting {delay:g} seconds...")
                    self._sleep(delay)
                    continue

                raise SpotifyError(
                    f"Spotify API request failed: {e.msg}",
                    details={"original_error": str(e)},
                    http_status=e.http_status
                ) from e
            except requests.RequestException as e:
                raise SpotifyError(
                    f"Unable to reach the Spotify API: {e}",
                    details={"original_error": str(e)}
                ) from e

        if parser is None:
            return data
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SpotifyError(
                f"Unexpected response from Spotify: {e}",
                details={"original_error": repr(e)}
            ) from e

    # =========================================================================
    # Accessors
    # =========================================================================

    def _fetch_page(self, url: str, parse_item: Callable[[dict[str, Any]], T]) -> PagingObject[T]:
        return self.call_with_auth(
            lambda sp: sp.next({"next": url}),
            PagingObject.parser(parse_item)
        )

    def list_relevant_playlists(self) -> list[SimplifiedPlaylist]:
        """
        List the user's playlists whose description contains the marker keyword.

        Returns:
            Matching playlists in the order Spotify lists them.
        """
        first_page = f"{API_BASE_URL}me/playlists?limit={PLAYLISTS_PAGE_SIZE}&offset=0"
        pages = fetch_all_pages(
            first_page,
            lambda url: self._fetch_page(url, SimplifiedPlaylist.from_spotify_api)
        )
        playlists = collect_items(pages)
        relevant = [p for p in playlists if p.has_keyword(self.config.marker_keyword)]
        logger.debug(
            f"{len(relevant)} of {len(playlists)} playlists contain "
            f"'{self.config.marker_keyword}'"
        )
        return relevant

    def fetch_playlist(self, playlist_id: str) -> Playlist:
        """Fetch one playlist with the first page of its tracks embedded."""
        return self.call_with_auth(
            lambda sp: sp.playlist(playlist_id, fields=PLAYLIST_FIELDS),
            Playlist.from_spotify_api
        )

    def fetch_playlist_tracks(self, playlist: Playlist) -> list[str]:
        """
        Collect the canonical URLs of all music tracks of a playlist.

        The first page comes embedded in the playlist; the remaining pages
        are fetched along the next chain. Podcast episodes, local files and
        removed tracks are skipped.
        """
        pages: list[PagingObject[PlaylistTrackItem | None]] = [playlist.tracks]
        if playlist.tracks.next:
            pages.extend(fetch_all_pages(
                playlist.tracks.next,
                lambda url: self._fetch_page(url, PlaylistTrackItem.from_spotify_api)
            ))

        urls = []
        for item in collect_items(pages):
            if item is None:
                continue
            url = item.blockable_url
            if url is None:
                logger.debug(f"Skipping {item.item_type} without Spotify URL in '{playlist.name}'")
                continue
            urls.append(url)
        return urls

    def _blocked_songs_of(
        self,
        listed: SimplifiedPlaylist,
        cache: DenyListCache | None
    ) -> list[BlockedSong]:
        if cache is not None:
            try:
                cached = cache.load_playlist_songs(listed.uri, listed.snapshot_id)
            except StorageError as e:
                logger.warning(f"Ignoring unreadable cache of playlist '{listed.name}': {e}")
                cached = None
            if cached is not None:
                logger.debug(f"Playlist '{listed.name}' unchanged, using cached songs")
                return cached

        playlist = self.fetch_playlist(listed.id)
        songs = [
            BlockedSong(spotify_url=url, playlist_name=playlist.name)
            for url in self.fetch_playlist_tracks(playlist)
        ]

        if cache is not None:
            try:
                cache.store_playlist_songs(playlist.uri, playlist.snapshot_id, songs)
            except StorageError as e:
                logger.warning(f"Unable to cache playlist '{playlist.name}': {e}")
        return songs

    def refresh_deny_list(
        self,
        cache: DenyListCache | None = None,
        show_progress: bool = False
    ) -> DenyListSnapshot:
        """
        Build a complete deny-list snapshot from the user's marked playlists.

        Args:
            cache: Per-playlist cache; playlists whose snapshot_id did not
                   change are taken from it without fetching their tracks.
            show_progress: Display a tqdm progress bar (interactive startup).

        Returns:
            All blocked songs, first occurrence of each URL wins.

        Raises:
            AuthError, RateLimitExceededError: The refresh as a whole failed.
            SpotifyError: If the playlist listing itself failed.

        Note:
            A failure fetching a single playlist is logged and that playlist
            contributes no entries; the remaining playlists are still used.
        """
        playlists = self.list_relevant_playlists()

        iterator = playlists
        if show_progress:
            iterator = tqdm(playlists, desc="Playlists", unit="playlist")

        seen: set[str] = set()
        blocked: list[BlockedSong] = []
        for listed in iterator:
            try:
                songs = self._blocked_songs_of(listed, cache)
            except (AuthError, RateLimitExceededError):
                raise
            except SpotifyError as e:
                logger.error(f"Unable to fetch playlist '{listed.name}': {e}")
                if e.details:
                    logger.debug(f"Details: {e.details}")
                continue

            logger.debug(f"Playlist '{listed.name}': {len(songs)} blocked songs")
            for song in songs:
                if song.spotify_url not in seen:
                    seen.add(song.spotify_url)
                    blocked.append(song)

        return DenyListSnapshot(blocked_songs=tuple(blocked))
