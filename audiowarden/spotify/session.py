"""
Token lifecycle management.

TokenManager is the single owner of the OAuth token of the process. The
event thread, the IPC thread and the callback listener all share one
instance and never keep tokens of their own.

Locking:
    _lock guards reading the current token and replacing it. It is never
    held across network calls, so authorize() never waits for a refresh.

    _refresh_lock serializes the refresh network call. A caller that hit a
    401 while another caller was refreshing waits here, then notices that
    the token it saw is no longer current and reuses the new one instead of
    refreshing again. If the refresh failed, waiters get RefreshFailedError
    without a second network call.

Usage:
    manager = TokenManager(store, refresh_fn=lambda rt: refresh_access_token(rt, config.spotify))
    manager.load()
    token = manager.authorize()
    ...  # API answered 401
    manager.refresh(token)
"""

import threading
from typing import TYPE_CHECKING, Callable

from audiowarden.core.exceptions import NotAuthenticatedError, RefreshFailedError, StorageError
from audiowarden.core.logger import get_logger
from audiowarden.spotify.models import AccessToken

if TYPE_CHECKING:
    from audiowarden.storage.token_store import TokenStore

logger = get_logger(__name__)


RefreshFunction = Callable[[str], AccessToken]


class TokenManager:
    """
    Holds the current AccessToken and refreshes it at most once at a time.

    Attributes:
        store: Persistent token storage, written after every change.
    """

    def __init__(
        self,
        store: "TokenStore",
        refresh_fn: RefreshFunction,
        token: AccessToken | None = None
    ) -> None:
        """
        Args:
            store: Where tokens are persisted.
            refresh_fn: Exchanges a refresh token for a new AccessToken.
                        Raises RefreshFailedError when the token is rejected.
            token: Initial token, usually None and loaded with load().
        """
        self.store = store
        self._refresh_fn = refresh_fn
        self._token = token
        self._failed_token: AccessToken | None = None
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    def load(self) -> AccessToken | None:
        """
        Load the persisted token into memory.

        Returns:
            The loaded token, or None if the user never logged in or the
            token file is unreadable (logged).
        """
        try:
            token = self.store.load()
        except StorageError as e:
            logger.error(f"Unable to load Spotify token, you need to log in again: {e}")
            token = None

        with self._lock:
            self._token = token
            self._failed_token = None
        return token

    def current(self) -> AccessToken | None:
        with self._lock:
            return self._token

    @property
    def is_authenticated(self) -> bool:
        return self.current() is not None

    def authorize(self) -> AccessToken:
        """
        Return the current token without blocking on a refresh.

        Raises:
            NotAuthenticatedError: If no token exists yet.
        """
        token = self.current()
        if token is None:
            raise NotAuthenticatedError(
                "Not logged in to Spotify",
                details={"hint": "run 'audiowarden login'"}
            )
        return token

    def set_token(self, token: AccessToken) -> None:
        """
        Replace the current token (e.g. after a completed login) and persist it.

        A persistence failure is logged; the new token stays in use for the
        lifetime of the process.
        """
        with self._lock:
            self._token = token
            self._failed_token = None
        self._persist(token)

    def refresh(self, stale: AccessToken) -> None:
        """
        Replace stale with a fresh token.

        Args:
            stale: The token that was rejected with 401.

        Behavior:
            - Another caller already replaced stale: return immediately,
              the caller retries with current().
            - The refresh of stale already failed: raise RefreshFailedError
              without contacting Spotify again.
            - Otherwise call the token endpoint; on success replace and
              persist the token, on failure keep the prior token.

        Raises:
            NotAuthenticatedError: If there is no token to refresh.
            RefreshFailedError: If Spotify rejected the refresh token. The
                                user must log in again.
            SpotifyError: On transport failures of the token endpoint.
        """
        with self._refresh_lock:
            with self._lock:
                current = self._token
                failed = self._failed_token

            if current is None:
                raise NotAuthenticatedError("Not logged in to Spotify")

            if current.access_token != stale.access_token:
                logger.debug("Token was already refreshed by another caller")
                return

            if failed is current:
                raise RefreshFailedError(
                    "Spotify token refresh failed, log in again",
                    details={"reused_outcome": True}
                )

            logger.debug("Refreshing Spotify access token")
            try:
                new_token = self._refresh_fn(current.refresh_token)
            except RefreshFailedError:
                with self._lock:
                    self._failed_token = current
                logger.error("Spotify rejected the refresh token, you need to log in again")
                raise

            with self._lock:
                self._token = new_token
                self._failed_token = None

            self._persist(new_token)
        logger.info("Spotify access token refreshed")

    def _persist(self, token: AccessToken) -> None:
        try:
            self.store.save(token)
        except StorageError as e:
            logger.error(f"Unable to store Spotify token: {e}")
            if e.details:
                logger.debug(f"Details: {e.details}")
