"""
Persistence for audiowarden.

    - token_store: the OAuth token (versioned JSON, mode 600)
    - cache: deny-list snapshots (versioned, gzip-compressed JSON)
    - blocked_songs_file: the user's blocked_songs.conf
"""

from audiowarden.storage.blocked_songs_file import BlockedSongsFile, append_blocked_song
from audiowarden.storage.cache import DenyListCache
from audiowarden.storage.token_store import TokenStore

__all__ = [
    "BlockedSongsFile",
    "append_blocked_song",
    "DenyListCache",
    "TokenStore",
]
