"""
Core module for audiowarden.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and directory resolution
    - logger: Logging system with console and optional file outputs
    - models: Domain models (BlockedSong, DenyListSnapshot, NowPlayingEvent)

Usage:
    from audiowarden.core import (
        Config, load_config,
        setup_logging, get_logger,
        AudioWardenError, ConfigError, SpotifyError
    )
"""

from audiowarden.core.config import (
    BackoffConfig,
    Config,
    ListenerConfig,
    LoggingConfig,
    PathsConfig,
    SpotifyConfig,
    load_config,
    resolve_paths,
)
from audiowarden.core.exceptions import (
    AudioWardenError,
    AuthError,
    CallbackProtocolError,
    ConfigError,
    MessagingError,
    NotAuthenticatedError,
    PlayerError,
    RateLimitExceededError,
    RefreshFailedError,
    SpotifyError,
    StorageError,
)
from audiowarden.core.logger import (
    get_logger,
    log_enforcement,
    setup_logging,
    shutdown_logging,
)
from audiowarden.core.models import (
    BlockedSong,
    DenyListSnapshot,
    NowPlayingEvent,
    canonical_spotify_url,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "ListenerConfig",
    "BackoffConfig",
    "LoggingConfig",
    "PathsConfig",
    "load_config",
    "resolve_paths",
    # Exceptions
    "AudioWardenError",
    "ConfigError",
    "StorageError",
    "SpotifyError",
    "AuthError",
    "NotAuthenticatedError",
    "RefreshFailedError",
    "RateLimitExceededError",
    "CallbackProtocolError",
    "PlayerError",
    "MessagingError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_enforcement",
    "shutdown_logging",
    # Models
    "BlockedSong",
    "DenyListSnapshot",
    "NowPlayingEvent",
    "canonical_spotify_url",
]
