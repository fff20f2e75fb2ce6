"""Test directory resolution and config.yaml loading"""

from pathlib import Path

import pytest

from audiowarden.core.config import (
    DEFAULT_CLIENT_ID,
    DEFAULT_MARKER_KEYWORD,
    load_config,
    resolve_paths,
)
from audiowarden.core.exceptions import ConfigError


class TestResolvePaths:

    def test_home_fallback(self):
        paths = resolve_paths({"HOME": "/home/alice"})

        assert paths.config_dir == Path("/home/alice/.config/audiowarden")
        assert paths.state_dir == Path("/home/alice/.local/state/audiowarden")
        assert paths.cache_dir == Path("/home/alice/.cache/audiowarden")
        assert paths.runtime_dir is None
        assert paths.socket_file is None

    def test_xdg_variables(self):
        paths = resolve_paths({
            "HOME": "/home/alice",
            "XDG_CONFIG_HOME": "/xdg/config",
            "XDG_STATE_HOME": "/xdg/state",
            "XDG_CACHE_HOME": "/xdg/cache",
            "XDG_RUNTIME_DIR": "/run/user/1000",
        })

        assert paths.blocked_songs_file == Path("/xdg/config/audiowarden/blocked_songs.conf")
        assert paths.token_file == Path("/xdg/state/audiowarden/spotify_token.json")
        assert paths.cache_dir == Path("/xdg/cache/audiowarden")
        assert paths.socket_file == Path("/run/user/1000/audiowarden/audiowarden.sock")

    def test_systemd_directories_win(self):
        paths = resolve_paths({
            "HOME": "/home/alice",
            "XDG_CONFIG_HOME": "/xdg/config",
            "CONFIGURATION_DIRECTORY": "/etc/audiowarden",
            "STATE_DIRECTORY": "/var/lib/audiowarden",
            "CACHE_DIRECTORY": "/var/cache/audiowarden",
            "RUNTIME_DIRECTORY": "/run/audiowarden",
            "XDG_RUNTIME_DIR": "/run/user/1000",
        })

        assert paths.config_dir == Path("/etc/audiowarden")
        assert paths.state_dir == Path("/var/lib/audiowarden")
        assert paths.cache_dir == Path("/var/cache/audiowarden")
        assert paths.runtime_dir == Path("/run/audiowarden")

    def test_nothing_set(self):
        with pytest.raises(ConfigError, match="CONFIGURATION_DIRECTORY"):
            resolve_paths({})


class TestLoadConfig:

    def env(self, temp_dir):
        return {"HOME": str(temp_dir)}

    def write_config(self, temp_dir, content):
        config_dir = temp_dir / ".config" / "audiowarden"
        config_dir.mkdir(parents=True)
        (config_dir / "config.yaml").write_text(content, encoding="utf-8")

    def test_defaults_without_file(self, temp_dir):
        config = load_config(environ=self.env(temp_dir))

        assert config.spotify.client_id == DEFAULT_CLIENT_ID
        assert config.spotify.marker_keyword == DEFAULT_MARKER_KEYWORD
        assert config.spotify.redirect_uri == "http://localhost:7185/callback"
        assert config.listener.port == 7185
        assert config.backoff.initial_delay == 1.0
        assert config.backoff.max_retries == 4
        assert config.logging.level == "INFO"
        assert config.logging.to_file is False

    def test_empty_file(self, temp_dir):
        self.write_config(temp_dir, "")

        assert load_config(environ=self.env(temp_dir)).listener.port == 7185

    def test_overrides(self, temp_dir):
        self.write_config(temp_dir, """
spotify:
  marker_keyword: "never:again"
listener:
  port: 8000
backoff:
  max_retries: 2
logging:
  level: debug
  to_file: true
""")

        config = load_config(environ=self.env(temp_dir))

        assert config.spotify.marker_keyword == "never:again"
        assert config.listener.port == 8000
        assert config.spotify.redirect_uri == "http://localhost:8000/callback"
        assert config.backoff.max_retries == 2
        assert config.logging.level == "DEBUG"
        assert config.logging.to_file is True

    def test_explicit_path(self, temp_dir):
        path = temp_dir / "custom.yaml"
        path.write_text("listener:\n  port: 9000\n", encoding="utf-8")

        assert load_config(path, environ=self.env(temp_dir)).listener.port == 9000

    def test_explicit_path_missing(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "nope.yaml", environ=self.env(temp_dir))

    def test_invalid_yaml(self, temp_dir):
        self.write_config(temp_dir, "spotify: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(environ=self.env(temp_dir))

    @pytest.mark.parametrize("content", [
        "- just\n- a list\n",
        "listener: 5\n",
        "listener:\n  port: 70000\n",
        "listener:\n  port: true\n",
        "backoff:\n  initial_delay: 0\n",
        "backoff:\n  max_retries: -1\n",
        "spotify:\n  marker_keyword: ''\n",
        "logging:\n  level: LOUD\n",
        "logging:\n  to_file: maybe\n",
    ])
    def test_invalid_values(self, temp_dir, content):
        self.write_config(temp_dir, content)

        with pytest.raises(ConfigError):
            load_config(environ=self.env(temp_dir))
