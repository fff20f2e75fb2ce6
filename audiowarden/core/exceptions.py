"""
Exception classes for audiowarden.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, so callers can log the message and dump the details at DEBUG.

Exception Hierarchy:
    AudioWardenError (base)
        ConfigError - Configuration file or directory resolution issues
        StorageError - Token store / deny-list cache IO and decoding issues
        SpotifyError - Spotify Web API issues
            AuthError - The API rejected our credentials
                NotAuthenticatedError - No token exists yet (user never logged in)
                RefreshFailedError - Token refresh failed, user must log in again
            RateLimitExceededError - 429 responses outlasted the backoff policy
        CallbackProtocolError - Malformed request on the OAuth callback listener
        PlayerError - D-Bus / MPRIS communication issues
        MessagingError - Unix socket IPC issues
"""


class AudioWardenError(Exception):
    """
    Base exception for all audiowarden errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all audiowarden errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., URLs, paths).

    Example:
        try:
            client.refresh_deny_list()
        except AudioWardenError as e:
            logger.error(f"Unable to update blocked songs: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': URL that caused the error
                     - 'path': File involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(AudioWardenError):
    """
    Raised when there's an issue with the configuration.

    This is a CRITICAL error that should stop program execution. It is the
    only error raised before the enforcement loop is entered.

    Common causes:
        - config.yaml has invalid YAML syntax
        - Field values of the wrong type (e.g., negative port)
        - None of HOME / XDG_* / systemd directory variables is set
    """
    pass


class StorageError(AudioWardenError):
    """
    Raised when persisted state cannot be read or written.

    NON-CRITICAL: callers log it and keep the previous in-memory state.

    Common causes:
        - Permission denied on the state or cache directory
        - Disk full
        - Corrupted gzip/JSON content
        - Unknown version tag in a persisted file
    """
    pass


class SpotifyError(AudioWardenError):
    """
    Raised when a Spotify Web API call fails.

    Covers non-retryable HTTP statuses, transport failures and responses
    that cannot be parsed into the expected shape. Never retried.

    Attributes:
        http_status: HTTP status code of the failed response, if there was one.

    Example:
        raise SpotifyError(
            "Failed to fetch playlist: not found",
            details={'playlist_id': playlist_id},
            http_status=404
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        http_status: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.http_status = http_status


class AuthError(SpotifyError):
    """
    Raised when the API keeps answering 401 after a successful token refresh.
    """
    pass


class NotAuthenticatedError(AuthError):
    """
    Raised when an API call is attempted before any token exists.

    This is the expected state on the very first start, until the user
    completes the login in the browser.
    """
    pass


class RefreshFailedError(AuthError):
    """
    Raised when the token endpoint rejects our refresh token.

    This is TERMINAL for the current session: the refresh token is no
    longer usable and the user must log in again.
    """
    pass


class RateLimitExceededError(SpotifyError):
    """
    Raised when Spotify keeps answering 429 after all backoff retries.

    Surfaced as a failed refresh; the previously cached deny-list stays in use.
    """
    pass


class CallbackProtocolError(AudioWardenError):
    """
    Raised when the OAuth callback listener receives data that is not a
    usable HTTP request. Only the offending connection is dropped.
    """
    pass


class PlayerError(AudioWardenError):
    """
    Raised when the media player cannot be reached over D-Bus.

    Common causes:
        - No session bus available
        - Spotify is not running (no org.mpris.MediaPlayer2.spotify name)
        - The player does not answer within the timeout
    """
    pass


class MessagingError(AudioWardenError):
    """
    Raised when the Unix socket used for IPC commands cannot be set up
    or reached.
    """
    pass
