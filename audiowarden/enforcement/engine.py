"""
Enforcement of the deny-list against now-playing events.

Every event runs through at most two evaluations:

    Evaluate   Load the cached snapshot plus the local blocked songs file
               and look the URL up.
               found                      -> skip, [BLOCKED]
               not found, cache refreshed -> [NOT BLOCKED]
               not found, not refreshed   -> Reconcile

    Reconcile  Refresh the deny-list from Spotify once.
               failed     -> [NOT BLOCKED] with the stale data
               succeeded  -> Evaluate again, marked as refreshed

A song that is already in the cache is skipped without any network call.
A song that was only just added to a Spotify playlist is caught by the single
reconciliation, and no event can trigger more than one refresh.
"""

from dataclasses import dataclass
from typing import Callable

from audiowarden.core.exceptions import AudioWardenError, NotAuthenticatedError, StorageError
from audiowarden.core.logger import get_logger, log_enforcement
from audiowarden.core.models import BlockedSong, DenyListSnapshot, NowPlayingEvent
from audiowarden.player.mpris import MprisPlayer
from audiowarden.storage.blocked_songs_file import BlockedSongsFile
from audiowarden.storage.cache import DenyListCache

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnforcementVerdict:
    """
    Outcome of one event.

    Attributes:
        event: The event that was evaluated.
        blocked_by: Matching deny-list entry, None if the song may play.
        refreshed: Whether the deny-list was refreshed for this event.
    """
    event: NowPlayingEvent
    blocked_by: BlockedSong | None
    refreshed: bool

    @property
    def blocked(self) -> bool:
        return self.blocked_by is not None


class EnforcementEngine:
    """
    Decides for each now-playing event whether to skip the track.

    Attributes:
        cache: Source of the Spotify deny-list snapshot.
        local_file: The user's blocked_songs.conf, re-read for every event.
        player: Receives the skip command.
    """

    def __init__(
        self,
        cache: DenyListCache,
        player: MprisPlayer,
        local_file: BlockedSongsFile | None = None,
        refresh: Callable[[], object] | None = None
    ) -> None:
        """
        Args:
            cache: Deny-list cache.
            player: Player to skip tracks on.
            local_file: Local blocked songs, merged into every snapshot.
            refresh: Refreshes the cached deny-list from Spotify; raises
                     AudioWardenError on failure. None disables reconciliation.
        """
        self.cache = cache
        self.player = player
        self.local_file = local_file
        self._refresh = refresh

    def load_snapshot(self) -> DenyListSnapshot:
        """Cached snapshot merged with the local file. Unreadable parts count as empty."""
        try:
            snapshot = self.cache.load()
        except StorageError as e:
            logger.error(f"Unable to get blocked songs: {e}")
            snapshot = DenyListSnapshot()

        if self.local_file is not None:
            snapshot = snapshot.merged_with(self.local_file.load())

        logger.debug(f"{len(snapshot)} songs are blocked.")
        return snapshot

    def _reconcile(self) -> bool:
        if self._refresh is None:
            return False
        try:
            self._refresh()
        except NotAuthenticatedError:
            logger.debug("Not logged in to Spotify, using local blocked songs only")
            return False
        except AudioWardenError as e:
            logger.warning(f"Unable to update blocked songs: {e}")
            if e.details:
                logger.debug(f"Details: {e.details}")
            return False
        return True

    def _skip(self) -> None:
        try:
            self.player.play_next()
        except AudioWardenError as e:
            logger.error(f"Unable to skip song: {e}")

    def handle_event(self, event: NowPlayingEvent) -> EnforcementVerdict:
        """
        Evaluate one event, skip the track if it is blocked and log the verdict.

        Never raises for errors of the deny-list refresh or the player.
        """
        cache_already_refreshed = False

        while True:
            match = self.load_snapshot().find(event.url)

            if match is not None:
                self._skip()
                log_enforcement(logger, str(event), True, match.playlist_name)
                return EnforcementVerdict(event, match, cache_already_refreshed)

            if cache_already_refreshed or not self._reconcile():
                log_enforcement(logger, str(event), False)
                return EnforcementVerdict(event, None, cache_already_refreshed)

            cache_already_refreshed = True
