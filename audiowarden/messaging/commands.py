"""
Commands accepted by the running daemon over its Unix socket.

    block_current_song      add the current song to blocked_songs.conf and skip it
    login_to_spotify        start (or reuse) a Spotify login, reply with the URL
    refresh_blocked_songs   refresh the deny-list now, reply with the count

Every command produces one line of text for the client. Failures are logged
and reported in the reply; they never reach the socket server.
"""

from typing import Callable

from audiowarden.core.exceptions import AudioWardenError
from audiowarden.core.logger import get_logger
from audiowarden.core.models import DenyListSnapshot
from audiowarden.player.mpris import MprisPlayer
from audiowarden.storage.blocked_songs_file import BlockedSongsFile

logger = get_logger(__name__)


BLOCK_CURRENT_SONG = "block_current_song"
LOGIN_TO_SPOTIFY = "login_to_spotify"
REFRESH_BLOCKED_SONGS = "refresh_blocked_songs"

UNKNOWN_COMMAND_REPLY = "unknown command"


class CommandDispatcher:
    """
    Executes IPC commands against the daemon's shared components.

    Attributes:
        player: Player for block_current_song.
        local_file: Target of blocked songs added via IPC.
    """

    def __init__(
        self,
        player: MprisPlayer,
        local_file: BlockedSongsFile,
        login: Callable[[], str] | None = None,
        refresh: Callable[[], DenyListSnapshot] | None = None
    ) -> None:
        self.player = player
        self.local_file = local_file
        self._login = login
        self._refresh = refresh

    def dispatch(self, command: str) -> str:
        """Run command and return the reply text."""
        command = command.strip()
        if command == BLOCK_CURRENT_SONG:
            return self.block_current_song()
        if command == LOGIN_TO_SPOTIFY:
            return self.login_to_spotify()
        if command == REFRESH_BLOCKED_SONGS:
            return self.refresh_blocked_songs()

        logger.warning(f"ClientMessage not recognized: {command!r}")
        return UNKNOWN_COMMAND_REPLY

    def block_current_song(self) -> str:
        try:
            song = self.player.current_song()
        except AudioWardenError as e:
            logger.warning(f"Unable to determine current song: {e}")
            return f"Unable to determine current song: {e}"

        if song is None:
            logger.warning("Unable to determine current song")
            return "Unable to determine current song"

        logger.info(f"Currently playing: {song}")
        try:
            self.local_file.append(song)
        except OSError as e:
            logger.warning(f"Unable to add entry to {self.local_file.path}: {e}")
            return f"Unable to add entry to {self.local_file.path}: {e}"

        try:
            self.player.play_next()
        except AudioWardenError as e:
            logger.error(f"Unable to skip song: {e}")
            return f"Blocked {song}, but unable to skip it: {e}"
        return f"Blocked {song}"

    def login_to_spotify(self) -> str:
        if self._login is None:
            return "Spotify login is not available"
        try:
            url = self._login()
        except OSError as e:
            logger.error(f"Unable to start the login process: {e}")
            return f"Unable to start the login process: {e}"
        return f"Please visit the following URL in your browser: {url}"

    def refresh_blocked_songs(self) -> str:
        if self._refresh is None:
            return "Refreshing blocked songs is not available"
        try:
            snapshot = self._refresh()
        except AudioWardenError as e:
            logger.error(f"Unable to update blocked songs: {e}")
            return f"Unable to update blocked songs: {e}"
        return f"{len(snapshot)} songs blocked via Spotify playlists"
