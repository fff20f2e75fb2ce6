"""MPRIS (D-Bus) access to the Spotify desktop player."""

from audiowarden.player.mpris import MprisPlayer, decode_properties_changed, listen_for_events

__all__ = ["MprisPlayer", "decode_properties_changed", "listen_for_events"]
