"""
IPC between the CLI and the running daemon over a Unix stream socket.

Usage:
    from audiowarden.messaging import send_command, BLOCK_CURRENT_SONG

    print(send_command(config.paths.socket_file, BLOCK_CURRENT_SONG))
"""

from audiowarden.messaging.client import send_command
from audiowarden.messaging.commands import (
    BLOCK_CURRENT_SONG,
    LOGIN_TO_SPOTIFY,
    REFRESH_BLOCKED_SONGS,
    UNKNOWN_COMMAND_REPLY,
    CommandDispatcher,
)
from audiowarden.messaging.server import CommandServer

__all__ = [
    "BLOCK_CURRENT_SONG",
    "LOGIN_TO_SPOTIFY",
    "REFRESH_BLOCKED_SONGS",
    "UNKNOWN_COMMAND_REPLY",
    "CommandDispatcher",
    "CommandServer",
    "send_command",
]
