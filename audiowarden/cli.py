"""
Command-line interface for audiowarden.

This module implements the CLI using Click; rich-click is used for the
output colors.

Commands:
    audiowarden run              Run the daemon (usually via systemd)
    audiowarden login            Ask the running daemon for a Spotify login URL
    audiowarden refresh          Ask the running daemon to refresh the blocked songs
    audiowarden block-current    Block and skip the song that is playing right now
    audiowarden status           Show login state and blocked song counts (offline)

Options:
    --config <path>              Use another config.yaml
    --version                    Show version and exit

Exit Codes:
    0   success
    1   configuration error
    2   the daemon could not be reached
    3   player (D-Bus) error
    4   any other audiowarden error
    130 interrupted
"""

import sys
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100

from audiowarden import __version__
from audiowarden.core import (
    AudioWardenError,
    Config,
    ConfigError,
    MessagingError,
    PlayerError,
    StorageError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from audiowarden.daemon import AudioWarden
from audiowarden.messaging import (
    BLOCK_CURRENT_SONG,
    LOGIN_TO_SPOTIFY,
    REFRESH_BLOCKED_SONGS,
    send_command,
)
from audiowarden.storage import BlockedSongsFile, DenyListCache, TokenStore

logger = get_logger(__name__)


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Path to config.yaml (default: $XDG_CONFIG_HOME/audiowarden/config.yaml)"
)
@click.version_option(__version__, prog_name="audiowarden")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path]) -> None:
    """
    audiowarden: skip the songs you never want to hear again.

    Watches the Spotify desktop player and skips every track that is listed
    in blocked_songs.conf or in one of your Spotify playlists whose
    description contains [bold]audiowarden:block_songs[/bold].

    \b
    USAGE:
        audiowarden run              # start the daemon
        audiowarden login            # log in to Spotify
        audiowarden block-current    # never play the current song again
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _load_configuration(ctx: click.Context) -> Config:
    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Run the daemon in the foreground."""
    config = _load_configuration(ctx)
    log_dir = config.paths.state_dir if config.logging.to_file else None
    setup_logging(config.logging.level, log_dir)

    try:
        logger.info(f"audiowarden {__version__} starting")
        AudioWarden(config).run()

    except PlayerError as e:
        logger.error(f"Player error: {e.message}")
        if e.details:
            logger.debug(f"Details: {e.details}")
        sys.exit(3)

    except AudioWardenError as e:
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    finally:
        shutdown_logging()


def _send(ctx: click.Context, command: str) -> None:
    config = _load_configuration(ctx)
    socket_path = config.paths.socket_file
    if socket_path is None:
        click.echo("Neither RUNTIME_DIRECTORY nor XDG_RUNTIME_DIR is set.", err=True)
        sys.exit(2)

    try:
        click.echo(send_command(socket_path, command))
    except MessagingError as e:
        click.echo(f"{e.message}", err=True)
        click.echo("Is the daemon running? Start it with 'audiowarden run'.", err=True)
        sys.exit(2)


@cli.command()
@click.pass_context
def login(ctx: click.Context) -> None:
    """Start a Spotify login and print the URL to open."""
    _send(ctx, LOGIN_TO_SPOTIFY)


@cli.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Refresh the blocked songs from your Spotify playlists now."""
    _send(ctx, REFRESH_BLOCKED_SONGS)


@cli.command("block-current")
@click.pass_context
def block_current(ctx: click.Context) -> None:
    """Add the song playing right now to blocked_songs.conf and skip it."""
    _send(ctx, BLOCK_CURRENT_SONG)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show login state and the number of blocked songs."""
    config = _load_configuration(ctx)
    paths = config.paths

    try:
        logged_in = TokenStore(paths.token_file).load() is not None
    except StorageError as e:
        click.echo(f"Token file:       unreadable ({e.message})")
        logged_in = False
    else:
        click.echo(f"Token file:       {paths.token_file}")
    click.echo(f"Logged in:        {'yes' if logged_in else 'no'}")

    try:
        cached = len(DenyListCache(paths.cache_dir).load())
        click.echo(f"Spotify playlists: {cached} blocked songs (cached)")
    except StorageError as e:
        click.echo(f"Spotify playlists: cache unreadable ({e.message})")

    local_file = BlockedSongsFile(paths.blocked_songs_file)
    if local_file.path.exists():
        click.echo(f"{local_file.path.name}: {len(local_file.load())} blocked songs")
    else:
        click.echo(f"{local_file.path.name}: not created yet")

    socket_path = paths.socket_file
    running = socket_path is not None and socket_path.exists()
    click.echo(f"Daemon socket:    {socket_path if running else 'not running'}")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `audiowarden` from the command line.
    It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
