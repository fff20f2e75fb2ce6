"""
MPRIS access to the Spotify desktop player over the D-Bus session bus.

Spotify announces every track change with an
org.freedesktop.DBus.Properties.PropertiesChanged signal on
/org/mpris/MediaPlayer2. The signal body is

    (interface_name, {property: (signature, value)}, invalidated_properties)

and the Metadata property holds the track attributes we care about:

    xesam:url       ('s', 'https://open.spotify.com/track/...')
    xesam:title     ('s', 'Bicycle Race')
    xesam:artist    ('as', ['Queen'])

jeepney decodes variants as (signature, value) tuples, so decoding is a pure
function over plain Python data and can be tested without a bus.

The only command ever sent to the player is org.mpris.MediaPlayer2.Player.Next.
"""

from typing import Any, Callable

from jeepney import DBusAddress, DBusErrorResponse, Properties, new_method_call
from jeepney.bus_messages import MatchRule, message_bus
from jeepney.io.blocking import DBusConnection, open_dbus_connection
from jeepney.wrappers import unwrap_msg

from audiowarden.core.exceptions import PlayerError
from audiowarden.core.logger import get_logger
from audiowarden.core.models import SPOTIFY_OPEN_HOST, NowPlayingEvent

logger = get_logger(__name__)


MPRIS_PATH = "/org/mpris/MediaPlayer2"
SPOTIFY_BUS_NAME = "org.mpris.MediaPlayer2.spotify"
PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

# Seconds to wait for the player to answer a method call
CALL_TIMEOUT = 5.0

PROPERTIES_CHANGED_RULE = MatchRule(
    type="signal",
    interface=PROPERTIES_INTERFACE,
    member="PropertiesChanged",
    path=MPRIS_PATH
)


def _unwrap_variant(value: Any) -> Any:
    # A variant arrives as (signature, value); nested variants are peeled too
    while isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str):
        value = value[1]
    return value


def _string_attribute(metadata: dict, key: str) -> str | None:
    if key not in metadata:
        return None
    value = _unwrap_variant(metadata[key])
    if not isinstance(value, str):
        logger.warning(f"Unable to parse {key} from {value!r}")
        return None
    return value


def _artist_attribute(metadata: dict) -> str | None:
    if "xesam:artist" not in metadata:
        return None
    value = _unwrap_variant(metadata["xesam:artist"])
    if isinstance(value, str):
        return value
    if not isinstance(value, (list, tuple)) or not all(isinstance(a, str) for a in value):
        logger.warning(f"Unable to parse artists from {value!r}")
        return None
    return ", ".join(value)


def decode_metadata(metadata: Any) -> NowPlayingEvent | None:
    """
    Build an event from an MPRIS Metadata dictionary.

    Returns:
        The event, or None when the metadata has no URL or the URL is not
        a Spotify URL (the notification came from another player).
    """
    metadata = _unwrap_variant(metadata)
    if not isinstance(metadata, dict):
        return None

    url = _string_attribute(metadata, "xesam:url")
    if url is None or SPOTIFY_OPEN_HOST not in url:
        return None

    return NowPlayingEvent(
        url=url,
        artist=_artist_attribute(metadata),
        title=_string_attribute(metadata, "xesam:title")
    )


def decode_properties_changed(body: Any) -> NowPlayingEvent | None:
    """
    Decode the body of a PropertiesChanged signal.

    Never raises: anything that is not a Spotify track change yields None.

    Example:
        decode_properties_changed((
            "org.mpris.MediaPlayer2.Player",
            {"Metadata": ("a{sv}", {"xesam:url": ("s", "https://open.spotify.com/track/x")})},
            [],
        ))
        # NowPlayingEvent(url="https://open.spotify.com/track/x")
    """
    if not isinstance(body, (tuple, list)) or len(body) < 2:
        return None
    changed = body[1]
    if not isinstance(changed, dict) or "Metadata" not in changed:
        return None
    return decode_metadata(changed["Metadata"])


class MprisPlayer:
    """
    Commands for the Spotify player.

    A new session bus connection is opened per call when none is given, so
    the IPC thread and the event thread never share a connection.
    """

    def __init__(
        self,
        connection_factory: Callable[[], DBusConnection] | None = None,
        bus_name: str = SPOTIFY_BUS_NAME
    ) -> None:
        self._connection_factory = connection_factory or (lambda: open_dbus_connection(bus="SESSION"))
        self.address = DBusAddress(MPRIS_PATH, bus_name=bus_name, interface=PLAYER_INTERFACE)

    def _call(self, message, action: str) -> Any:
        try:
            conn = self._connection_factory()
        except (OSError, KeyError) as e:
            raise PlayerError(
                f"Unable to open D-Bus connection: {e}",
                details={"original_error": str(e)}
            ) from e

        try:
            reply = conn.send_and_get_reply(message, timeout=CALL_TIMEOUT)
            return unwrap_msg(reply)
        except DBusErrorResponse as e:
            raise PlayerError(
                f"Player rejected {action}: {e.name}",
                details={"action": action, "name": e.name, "data": e.data}
            ) from e
        except (OSError, TimeoutError) as e:
            raise PlayerError(
                f"Unable to talk to the player: {e}",
                details={"original_error": str(e)}
            ) from e
        finally:
            conn.close()

    def play_next(self) -> None:
        """
        Skip to the next track.

        Raises:
            PlayerError: If Spotify is not running or does not answer.
        """
        self._call(new_method_call(self.address, "Next"), "Next")
        logger.debug("Sent Next to the player")

    def current_song(self) -> NowPlayingEvent | None:
        """
        Read the track currently loaded in the player.

        Returns:
            The current song, or None if the player reports no Spotify track.

        Raises:
            PlayerError: If Spotify is not running or does not answer.
        """
        body = self._call(Properties(self.address).get("Metadata"), "Get Metadata")
        return decode_metadata(body[0] if body else None)


def listen_for_events(
    callback: Callable[[NowPlayingEvent], None],
    connection: DBusConnection | None = None,
    should_stop: Callable[[], bool] = lambda: False
) -> None:
    """
    Subscribe to player notifications and call callback for every track change.

    Blocks until should_stop() returns True after a message, or the
    connection fails.

    Raises:
        PlayerError: If the bus cannot be reached or the subscription fails.
    """
    try:
        conn = connection or open_dbus_connection(bus="SESSION")
    except (OSError, KeyError) as e:
        raise PlayerError(
            f"Unable to open D-Bus connection: {e}",
            details={"original_error": str(e)}
        ) from e

    try:
        with conn.filter(PROPERTIES_CHANGED_RULE, bufsize=64) as queue:
            try:
                unwrap_msg(conn.send_and_get_reply(
                    message_bus.AddMatch(PROPERTIES_CHANGED_RULE), timeout=CALL_TIMEOUT
                ))
            except DBusErrorResponse as e:
                raise PlayerError(
                    f"Unable to subscribe to player notifications: {e.name}",
                    details={"name": e.name, "data": e.data}
                ) from e

            logger.info("Waiting for player events")
            while not should_stop():
                try:
                    message = conn.recv_until_filtered(queue)
                except OSError as e:
                    raise PlayerError(
                        f"D-Bus connection lost: {e}",
                        details={"original_error": str(e)}
                    ) from e

                event = decode_properties_changed(message.body)
                if event is None:
                    logger.debug("Ignoring PropertiesChanged without Spotify track")
                    continue
                callback(event)
    finally:
        if connection is None:
            conn.close()
