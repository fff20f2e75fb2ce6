"""
Spotify module for audiowarden.

This module handles all interaction with the Spotify accounts service and
Web API:
    - auth: PKCE helpers and the token endpoint
    - session: TokenManager, the single owner of the OAuth token
    - bootstrap: interactive login through a local callback listener
    - client: authenticated API client with 401 refresh and 429 backoff
    - deny_list: refresh of the cached deny-list

Usage:
    from audiowarden.spotify import SpotifyApiClient, TokenManager
"""

from audiowarden.spotify.backoff import BackoffState, next_backoff
from audiowarden.spotify.bootstrap import AuthorizationBootstrap, LoginCoordinator
from audiowarden.spotify.client import SpotifyApiClient
from audiowarden.spotify.deny_list import DenyListUpdater, update_blocked_songs_in_cache
from audiowarden.spotify.models import AccessToken, PagingObject, Playlist, SimplifiedPlaylist
from audiowarden.spotify.pagination import fetch_all_pages
from audiowarden.spotify.session import TokenManager

__all__ = [
    "AccessToken",
    "AuthorizationBootstrap",
    "BackoffState",
    "DenyListUpdater",
    "LoginCoordinator",
    "PagingObject",
    "Playlist",
    "SimplifiedPlaylist",
    "SpotifyApiClient",
    "TokenManager",
    "fetch_all_pages",
    "next_backoff",
    "update_blocked_songs_in_cache",
]
