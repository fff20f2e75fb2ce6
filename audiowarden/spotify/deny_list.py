"""
Refresh of the cached deny-list.

The updater is the only writer of the global snapshot. It is triggered at
startup, after a completed login, by the enforcement engine when it sees an
unknown song, and by the refresh_blocked_songs IPC command. A lock makes
sure two of those never run at the same time.
"""

import threading

from audiowarden.core.logger import get_logger
from audiowarden.core.models import DenyListSnapshot
from audiowarden.spotify.client import SpotifyApiClient
from audiowarden.storage.cache import DenyListCache

logger = get_logger(__name__)


class DenyListUpdater:
    """
    Fetches the deny-list from Spotify and replaces the cached snapshot.

    Attributes:
        client: Authenticated API client.
        cache: Target of the refreshed snapshot.
    """

    def __init__(self, client: SpotifyApiClient, cache: DenyListCache) -> None:
        self.client = client
        self.cache = cache
        self._lock = threading.Lock()

    def update(self, show_progress: bool = False) -> DenyListSnapshot:
        """
        Refresh the cache from Spotify.

        Returns:
            The new snapshot, already persisted.

        Raises:
            SpotifyError: If the refresh failed; the prior cache is untouched.
            StorageError: If the new snapshot could not be written.
        """
        with self._lock:
            logger.debug("Updating blocked songs from Spotify")
            snapshot = self.client.refresh_deny_list(self.cache, show_progress=show_progress)
            self.cache.replace(snapshot)
        logger.info(f"Blocked songs updated: {len(snapshot)} songs from Spotify playlists")
        return snapshot


def update_blocked_songs_in_cache(client: SpotifyApiClient, cache: DenyListCache) -> DenyListSnapshot:
    """One-off refresh without a shared updater (CLI, tests)."""
    return DenyListUpdater(client, cache).update()
