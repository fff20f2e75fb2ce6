"""
Configuration management for audiowarden.

This module handles resolving the application directories, loading the
optional config.yaml and providing access to the resulting settings.

Directories follow the systemd / XDG conventions. When audiowarden runs as
a systemd user service, the *_DIRECTORY variables set by systemd win:

    config:   $CONFIGURATION_DIRECTORY | $XDG_CONFIG_HOME/audiowarden | ~/.config/audiowarden
    state:    $STATE_DIRECTORY | $XDG_STATE_HOME/audiowarden | ~/.local/state/audiowarden
    cache:    $CACHE_DIRECTORY | $XDG_CACHE_HOME/audiowarden | ~/.cache/audiowarden
    runtime:  $RUNTIME_DIRECTORY | $XDG_RUNTIME_DIR/audiowarden

Configuration File Location:
    {config_dir}/config.yaml. The file is optional, every field has a default.

Example config.yaml:
    spotify:
      client_id: "a9cc0c11a3944da8a4f97ecfc92a972d"
      marker_keyword: "audiowarden:block_songs"
      request_timeout: 10

    listener:
      host: "127.0.0.1"
      port: 7185

    backoff:
      initial_delay: 1.0
      max_retries: 4

    logging:
      level: "INFO"
      to_file: false
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from audiowarden.core.exceptions import ConfigError


APPLICATION_NAME = "audiowarden"
CONFIG_FILENAME = "config.yaml"

# Public client of the audiowarden Spotify app. PKCE needs no client secret.
DEFAULT_CLIENT_ID = "a9cc0c11a3944da8a4f97ecfc92a972d"
DEFAULT_SCOPE = "playlist-read-private"
DEFAULT_MARKER_KEYWORD = "audiowarden:block_songs"
DEFAULT_LISTEN_HOST = "127.0.0.1"
DEFAULT_LISTEN_PORT = 7185

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify Web API settings.

    Attributes:
        client_id: Client ID of the Spotify application used for the PKCE flow.
        scope: OAuth scopes requested at login.
        redirect_uri: Redirect URI registered for the application. Must point
                      at the local callback listener.
        marker_keyword: Playlists whose description contains this keyword
                        are treated as deny-lists.
        request_timeout: Timeout in seconds for every HTTP request.
    """
    client_id: str
    scope: str
    redirect_uri: str
    marker_keyword: str
    request_timeout: float


@dataclass(frozen=True)
class ListenerConfig:
    """
    Address of the one-shot OAuth callback listener.

    Attributes:
        host: Loopback address to bind.
        port: Fixed port; must match the port of redirect_uri.
    """
    host: str
    port: int


@dataclass(frozen=True)
class BackoffConfig:
    """
    Retry policy for 429 responses.

    Attributes:
        initial_delay: Delay in seconds before the first retry.
        max_retries: Number of retries before giving up.
    """
    initial_delay: float
    max_retries: int


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        level: Console log level.
        to_file: Also write log_full.log / log_errors.log to the state directory.
    """
    level: str
    to_file: bool


@dataclass(frozen=True)
class PathsConfig:
    """
    Resolved application directories.

    runtime_dir is None when neither RUNTIME_DIRECTORY nor XDG_RUNTIME_DIR
    is set; the IPC socket is unavailable in that case.
    """
    config_dir: Path
    state_dir: Path
    cache_dir: Path
    runtime_dir: Path | None

    @property
    def blocked_songs_file(self) -> Path:
        return self.config_dir / "blocked_songs.conf"

    @property
    def token_file(self) -> Path:
        return self.state_dir / "spotify_token.json"

    @property
    def socket_file(self) -> Path | None:
        if self.runtime_dir is None:
            return None
        return self.runtime_dir / f"{APPLICATION_NAME}.sock"


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Token stored at: {config.paths.token_file}")
        print(f"Listening on port {config.listener.port}")
    """
    spotify: SpotifyConfig
    listener: ListenerConfig
    backoff: BackoffConfig
    logging: LoggingConfig
    paths: PathsConfig


def resolve_paths(environ: Mapping[str, str] | None = None) -> PathsConfig:
    """
    Resolve all application directories from the environment.

    Args:
        environ: Environment mapping, defaults to os.environ.

    Returns:
        PathsConfig with absolute directories. Nothing is created here.

    Raises:
        ConfigError: If HOME and the XDG/systemd variables are all unset.
    """
    env = os.environ if environ is None else environ

    config_dir = _resolve_dir(env, "CONFIGURATION_DIRECTORY", "XDG_CONFIG_HOME", (".config",))
    state_dir = _resolve_dir(env, "STATE_DIRECTORY", "XDG_STATE_HOME", (".local", "state"))
    cache_dir = _resolve_dir(env, "CACHE_DIRECTORY", "XDG_CACHE_HOME", (".cache",))

    if env.get("RUNTIME_DIRECTORY"):
        runtime_dir: Path | None = Path(env["RUNTIME_DIRECTORY"])
    elif env.get("XDG_RUNTIME_DIR"):
        runtime_dir = Path(env["XDG_RUNTIME_DIR"]) / APPLICATION_NAME
    else:
        runtime_dir = None

    return PathsConfig(
        config_dir=config_dir,
        state_dir=state_dir,
        cache_dir=cache_dir,
        runtime_dir=runtime_dir
    )


def _resolve_dir(
    env: Mapping[str, str],
    systemd_var: str,
    xdg_var: str,
    home_parts: tuple[str, ...]
) -> Path:
    # systemd sets the *_DIRECTORY variables for services, they are used as-is
    if env.get(systemd_var):
        return Path(env[systemd_var])
    if env.get(xdg_var):
        return Path(env[xdg_var]) / APPLICATION_NAME
    if env.get("HOME"):
        return Path(env["HOME"]).joinpath(*home_parts, APPLICATION_NAME)
    raise ConfigError(
        f"None of the environment vars {systemd_var}, {xdg_var} or HOME is set.",
        details={"missing": [systemd_var, xdg_var, "HOME"]}
    )


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None
) -> Config:
    """
    Load and validate the configuration.

    Args:
        config_path: Optional explicit path to a config file. If None,
                     {config_dir}/config.yaml is used when it exists.
        environ: Environment used for directory resolution (tests).

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If directories cannot be resolved, an explicit
                     config_path does not exist, the YAML is invalid,
                     or a field has an invalid value.

    Behavior:
        1. Resolve directories from the environment
        2. Locate config file (explicit path or {config_dir}/config.yaml)
        3. A missing default file means "all defaults"
        4. Parse YAML and validate every section
        5. Return frozen Config object

    Thread Safety:
        Call once at startup before starting any thread.
    """
    paths = resolve_paths(environ)

    if config_path is None:
        config_path = paths.config_dir / CONFIG_FILENAME
        raw_config: Any = _read_yaml(config_path) if config_path.exists() else {}
    else:
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        raw_config = _read_yaml(config_path)

    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    listener = _parse_listener_config(_section(raw_config, "listener"))

    return Config(
        spotify=_parse_spotify_config(_section(raw_config, "spotify"), listener),
        listener=listener,
        backoff=_parse_backoff_config(_section(raw_config, "backoff")),
        logging=_parse_logging_config(_section(raw_config, "logging")),
        paths=paths
    )


def _read_yaml(config_path: Path) -> Any:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _non_empty_string(section: dict[str, Any], key: str, field: str, default: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field}' must be a non-empty string",
            details={"field": field}
        )
    return value.strip()


def _positive_number(section: dict[str, Any], key: str, field: str, default: float) -> float:
    value = section.get(key, default)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{field}' must be a positive number",
            details={"field": field, "value": value}
        )
    return float(value)


def _parse_spotify_config(section: dict[str, Any], listener: ListenerConfig) -> SpotifyConfig:
    default_redirect = f"http://localhost:{listener.port}/callback"
    return SpotifyConfig(
        client_id=_non_empty_string(section, "client_id", "spotify.client_id", DEFAULT_CLIENT_ID),
        scope=_non_empty_string(section, "scope", "spotify.scope", DEFAULT_SCOPE),
        redirect_uri=_non_empty_string(
            section, "redirect_uri", "spotify.redirect_uri", default_redirect
        ),
        marker_keyword=_non_empty_string(
            section, "marker_keyword", "spotify.marker_keyword", DEFAULT_MARKER_KEYWORD
        ),
        request_timeout=_positive_number(section, "request_timeout", "spotify.request_timeout", 10)
    )


def _parse_listener_config(section: dict[str, Any]) -> ListenerConfig:
    host = _non_empty_string(section, "host", "listener.host", DEFAULT_LISTEN_HOST)
    port = section.get("port", DEFAULT_LISTEN_PORT)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(
            "'listener.port' must be an integer between 1 and 65535",
            details={"field": "listener.port", "value": port}
        )
    return ListenerConfig(host=host, port=port)


def _parse_backoff_config(section: dict[str, Any]) -> BackoffConfig:
    initial_delay = _positive_number(section, "initial_delay", "backoff.initial_delay", 1.0)
    max_retries = section.get("max_retries", 4)
    if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 0:
        raise ConfigError(
            "'backoff.max_retries' must be a non-negative integer",
            details={"field": "backoff.max_retries", "value": max_retries}
        )
    return BackoffConfig(initial_delay=initial_delay, max_retries=max_retries)


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    level = _non_empty_string(section, "level", "logging.level", "INFO").upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(VALID_LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )
    to_file = section.get("to_file", False)
    if not isinstance(to_file, bool):
        raise ConfigError(
            "'logging.to_file' must be true or false",
            details={"field": "logging.to_file", "value": to_file}
        )
    return LoggingConfig(level=level, to_file=to_file)
