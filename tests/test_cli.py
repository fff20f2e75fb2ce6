"""Test the command-line interface"""

import pytest
from click.testing import CliRunner

from audiowarden import __version__
from audiowarden.cli import cli
from audiowarden.core.models import BlockedSong, DenyListSnapshot
from audiowarden.storage.cache import DenyListCache
from audiowarden.storage.token_store import TokenStore


@pytest.fixture
def env(temp_dir):
    return {
        "HOME": str(temp_dir),
        "XDG_CONFIG_HOME": None,
        "XDG_STATE_HOME": None,
        "XDG_CACHE_HOME": None,
        "XDG_RUNTIME_DIR": str(temp_dir / "run"),
        "CONFIGURATION_DIRECTORY": None,
        "STATE_DIRECTORY": None,
        "CACHE_DIRECTORY": None,
        "RUNTIME_DIRECTORY": None,
    }


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_status_fresh_install(env):
    result = CliRunner().invoke(cli, ["status"], env=env)

    assert result.exit_code == 0
    assert "Logged in:        no" in result.output
    assert "0 blocked songs (cached)" in result.output
    assert "blocked_songs.conf: not created yet" in result.output
    assert "not running" in result.output


def test_status_logged_in(env, temp_dir, access_token):
    TokenStore(temp_dir / ".local" / "state" / "audiowarden" / "spotify_token.json").save(access_token)
    DenyListCache(temp_dir / ".cache" / "audiowarden").replace(DenyListSnapshot(blocked_songs=(
        BlockedSong("https://open.spotify.com/track/a", "Gym"),
    )))

    result = CliRunner().invoke(cli, ["status"], env=env)

    assert result.exit_code == 0
    assert "Logged in:        yes" in result.output
    assert "1 blocked songs (cached)" in result.output


def test_command_without_daemon(env):
    result = CliRunner().invoke(cli, ["refresh"], env=env)

    assert result.exit_code == 2
    assert "Is the daemon running?" in result.output


def test_invalid_config(env, temp_dir):
    config_dir = temp_dir / ".config" / "audiowarden"
    config_dir.mkdir(parents=True)
    (config_dir / "config.yaml").write_text("listener:\n  port: 0\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["status"], env=env)

    assert result.exit_code == 1
    assert "Configuration error" in result.output
