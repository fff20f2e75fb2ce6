"""
Wiring of the audiowarden daemon.

AudioWarden builds every component once and shares it between the three
threads of the process:

    main thread      D-Bus signal loop -> EnforcementEngine
    ipc-server       Unix socket commands -> CommandDispatcher
    oauth-callback   one-shot login listener (only while a login is pending)

All of them use the same TokenManager, SpotifyApiClient and DenyListUpdater.

Startup:
    1. Create blocked_songs.conf if missing
    2. Load the token; with a token refresh the deny-list, without one
       start a login and log the URL to visit
    3. Open the IPC socket
    4. Enter the D-Bus loop (blocks)
"""

import sys

import requests

from audiowarden.core.config import Config
from audiowarden.core.exceptions import AudioWardenError, MessagingError, StorageError
from audiowarden.core.logger import get_logger
from audiowarden.enforcement.engine import EnforcementEngine
from audiowarden.messaging.commands import CommandDispatcher
from audiowarden.messaging.server import CommandServer
from audiowarden.player.mpris import MprisPlayer, listen_for_events
from audiowarden.spotify.auth import refresh_access_token
from audiowarden.spotify.bootstrap import LoginCoordinator
from audiowarden.spotify.client import SpotifyApiClient
from audiowarden.spotify.deny_list import DenyListUpdater
from audiowarden.spotify.models import AccessToken
from audiowarden.spotify.session import TokenManager
from audiowarden.storage.blocked_songs_file import BlockedSongsFile
from audiowarden.storage.cache import DenyListCache
from audiowarden.storage.token_store import TokenStore

logger = get_logger(__name__)


class AudioWarden:
    """
    The running daemon.

    Example:
        config = load_config()
        AudioWarden(config).run()
    """

    def __init__(self, config: Config, player: MprisPlayer | None = None) -> None:
        self.config = config
        self.http = requests.Session()

        self.token_manager = TokenManager(
            TokenStore(config.paths.token_file),
            refresh_fn=self._refresh_token
        )
        self.client = SpotifyApiClient(
            self.token_manager,
            config.spotify,
            config.backoff,
            session=self.http
        )
        self.cache = DenyListCache(config.paths.cache_dir)
        self.local_file = BlockedSongsFile(config.paths.blocked_songs_file)
        self.updater = DenyListUpdater(self.client, self.cache)
        self.player = player or MprisPlayer()

        self.login = LoginCoordinator(
            config.spotify,
            config.listener,
            self.token_manager,
            on_authorized=self.updater.update
        )
        self.engine = EnforcementEngine(
            self.cache,
            self.player,
            local_file=self.local_file,
            refresh=self.updater.update
        )
        self.dispatcher = CommandDispatcher(
            self.player,
            self.local_file,
            login=self.login.login,
            refresh=self.updater.update
        )
        self.command_server: CommandServer | None = None

    def _refresh_token(self, refresh_token: str) -> AccessToken:
        return refresh_access_token(refresh_token, self.config.spotify, self.http)

    def start(self) -> None:
        """Run the startup sequence. Errors are logged, never raised."""
        try:
            self.local_file.ensure_exists()
        except OSError as e:
            logger.warning(f"Unable to create {self.local_file.path}: {e}")

        if self.token_manager.load() is not None:
            try:
                self.updater.update(show_progress=sys.stderr.isatty())
            except AudioWardenError as e:
                logger.error(f"Unable to update blocked songs: {e}")
                if e.details:
                    logger.debug(f"Details: {e.details}")
        else:
            logger.info("No token exists yet, the user must log in first.")
            try:
                url = self.login.login()
                logger.info(f"Please visit the following URL in your browser: {url}")
            except OSError as e:
                logger.error(f"Unable to start the login process: {e}")

        try:
            logger.debug(f"{len(self.cache.load())} songs from Spotify playlists are blocked.")
        except StorageError as e:
            logger.error(f"Unable to get blocked songs: {e}")

        socket_path = self.config.paths.socket_file
        if socket_path is None:
            logger.warning(
                "Neither RUNTIME_DIRECTORY nor XDG_RUNTIME_DIR is set, IPC commands are disabled."
            )
            return
        try:
            self.command_server = CommandServer(socket_path, self.dispatcher)
            self.command_server.start()
        except MessagingError as e:
            logger.error(f"{e}")

    def stop(self) -> None:
        if self.command_server is not None:
            self.command_server.stop()
            self.command_server = None
        active = self.login.active
        if active is not None and active.is_running:
            active.stop()
        self.http.close()

    def run(self) -> None:
        """
        Start the daemon and process player events until interrupted.

        Raises:
            PlayerError: If the D-Bus session bus cannot be used.
        """
        self.start()
        try:
            listen_for_events(self.engine.handle_event)
        finally:
            self.stop()
