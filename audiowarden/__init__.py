"""
audiowarden: skip Spotify songs you never want to hear again.

The daemon watches the Spotify desktop player over MPRIS (D-Bus) and skips
every track that appears in the local blocked_songs.conf or in a Spotify
playlist whose description contains the marker keyword.
"""

__version__ = "0.3.0"
