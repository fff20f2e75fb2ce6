"""Test decoding of MPRIS notifications and player commands"""

from types import SimpleNamespace
from unittest.mock import MagicMock, Mock

import pytest

from audiowarden.core.exceptions import PlayerError
from audiowarden.core.models import NowPlayingEvent
from audiowarden.player.mpris import (
    MprisPlayer,
    decode_metadata,
    decode_properties_changed,
    listen_for_events,
)


TRACK_URL = "https://open.spotify.com/track/2Hky3cFzTHXkGtBCbtmoWl"


def metadata(**overrides):
    data = {
        "mpris:trackid": ("s", "spotify:track:2Hky3cFzTHXkGtBCbtmoWl"),
        "xesam:url": ("s", TRACK_URL),
        "xesam:title": ("s", "Bicycle Race"),
        "xesam:artist": ("as", ["Queen"]),
    }
    data.update(overrides)
    return data


def properties_changed(meta):
    return ("org.mpris.MediaPlayer2.Player", {"Metadata": ("a{sv}", meta)}, [])


class TestDecode:

    def test_track_change(self):
        event = decode_properties_changed(properties_changed(metadata()))

        assert event == NowPlayingEvent(url=TRACK_URL, artist="Queen", title="Bicycle Race")

    def test_multiple_artists(self):
        event = decode_metadata(metadata(**{"xesam:artist": ("as", ["Queen", "David Bowie"])}))

        assert event.artist == "Queen, David Bowie"

    def test_missing_artist_and_title(self):
        meta = {"xesam:url": ("s", TRACK_URL)}

        assert decode_metadata(meta) == NowPlayingEvent(url=TRACK_URL)

    def test_malformed_title_is_dropped(self):
        event = decode_metadata(metadata(**{"xesam:title": ("i", 42)}))

        assert event.url == TRACK_URL
        assert event.title is None

    def test_no_url(self):
        meta = metadata()
        del meta["xesam:url"]

        assert decode_metadata(meta) is None

    def test_other_player(self):
        assert decode_metadata(metadata(**{"xesam:url": ("s", "file:///music/song.mp3")})) is None

    @pytest.mark.parametrize("body", [
        None,
        (),
        ("org.mpris.MediaPlayer2.Player",),
        ("org.mpris.MediaPlayer2.Player", {"PlaybackStatus": ("s", "Playing")}, []),
        ("org.mpris.MediaPlayer2.Player", {"Metadata": ("s", "garbage")}, []),
    ])
    def test_irrelevant_signals(self, body):
        assert decode_properties_changed(body) is None


class TestMprisPlayer:

    def test_play_next(self):
        conn = Mock()
        player = MprisPlayer(connection_factory=lambda: conn)

        player.play_next()

        message = conn.send_and_get_reply.call_args.args[0]
        assert message.header.fields  # a real jeepney message
        assert conn.send_and_get_reply.call_args.kwargs["timeout"] == 5.0
        conn.close.assert_called_once()

    def test_current_song(self):
        conn = Mock()
        conn.send_and_get_reply.return_value = SimpleNamespace(
            header=SimpleNamespace(message_type=None),
            body=(("a{sv}", metadata()),)
        )
        player = MprisPlayer(connection_factory=lambda: conn)

        assert player.current_song().url == TRACK_URL

    def test_no_bus(self):
        def factory():
            raise OSError("no session bus")

        with pytest.raises(PlayerError, match="Unable to open D-Bus connection"):
            MprisPlayer(connection_factory=factory).play_next()

    def test_timeout(self):
        conn = Mock()
        conn.send_and_get_reply.side_effect = TimeoutError("no reply")

        with pytest.raises(PlayerError):
            MprisPlayer(connection_factory=lambda: conn).play_next()
        conn.close.assert_called_once()


class TestListenForEvents:

    def test_callback_per_track_change(self):
        conn = MagicMock()
        conn.send_and_get_reply.return_value = SimpleNamespace(
            header=SimpleNamespace(message_type=None), body=()
        )
        conn.recv_until_filtered.side_effect = [
            SimpleNamespace(body=properties_changed(metadata())),
            SimpleNamespace(body=("org.mpris.MediaPlayer2.Player", {"Volume": ("d", 0.5)}, [])),
            SimpleNamespace(body=properties_changed(metadata(**{"xesam:title": ("s", "Other")}))),
        ]
        events = []

        listen_for_events(events.append, connection=conn, should_stop=lambda: len(events) >= 2)

        assert [e.title for e in events] == ["Bicycle Race", "Other"]
        conn.close.assert_not_called()

    def test_connection_lost(self):
        conn = MagicMock()
        conn.send_and_get_reply.return_value = SimpleNamespace(
            header=SimpleNamespace(message_type=None), body=()
        )
        conn.recv_until_filtered.side_effect = ConnectionResetError("bus gone")

        with pytest.raises(PlayerError, match="D-Bus connection lost"):
            listen_for_events(lambda event: None, connection=conn)
