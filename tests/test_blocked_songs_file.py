"""Test the local blocked songs file"""

from audiowarden.core.models import NowPlayingEvent
from audiowarden.storage.blocked_songs_file import (
    DEMO_SONG_URL,
    BlockedSongsFile,
    append_blocked_song,
    format_entry,
    parse_blocked_songs,
)


class TestParseBlockedSongs:
    """Test parse_blocked_songs"""

    def test_comments_and_blank_lines(self):
        content = "# comment\n\n   \nhttps://open.spotify.com/track/a\n  # indented comment\n"
        songs = parse_blocked_songs(content)

        assert [s.spotify_url for s in songs] == ["https://open.spotify.com/track/a"]
        assert songs[0].playlist_name == "blocked_songs.conf"

    def test_query_is_stripped(self):
        songs = parse_blocked_songs("https://open.spotify.com/track/a?si=7764fc\n")

        assert songs[0].spotify_url == "https://open.spotify.com/track/a"

    def test_invalid_lines_are_skipped(self, caplog):
        content = "not a url\nhttps://open.spotify.com/track/a\n"
        songs = parse_blocked_songs(content)

        assert len(songs) == 1
        assert "Error in line 1" in caplog.text

    def test_malformed_host_is_skipped(self, caplog):
        content = "http://[not-ipv6/track\nhttps://open.spotify.com/track/a\n"
        songs = parse_blocked_songs(content)

        assert [s.spotify_url for s in songs] == ["https://open.spotify.com/track/a"]
        assert "Error in line 1" in caplog.text

    def test_duplicates_dropped(self):
        content = "https://open.spotify.com/track/a\nhttps://open.spotify.com/track/a?si=1\n"

        assert len(parse_blocked_songs(content)) == 1


class TestBlockedSongsFile:
    """Test file creation and appending"""

    def test_created_with_demo_entry(self, temp_dir):
        blocked = BlockedSongsFile(temp_dir / "config" / "blocked_songs.conf")
        songs = blocked.load()

        assert blocked.path.exists()
        assert blocked.path.read_text().startswith("# Enter all songs")
        assert [s.spotify_url for s in songs] == [DEMO_SONG_URL]

    def test_existing_file_not_overwritten(self, temp_dir):
        path = temp_dir / "blocked_songs.conf"
        path.write_text("https://open.spotify.com/track/mine\n")

        songs = BlockedSongsFile(path).load()

        assert [s.spotify_url for s in songs] == ["https://open.spotify.com/track/mine"]

    def test_undecodable_bytes_are_skipped(self, temp_dir, caplog):
        path = temp_dir / "blocked_songs.conf"
        path.write_bytes(b"# mine\n\xff\xfe broken\nhttps://open.spotify.com/track/a\n")

        songs = BlockedSongsFile(path).load()

        assert [s.spotify_url for s in songs] == ["https://open.spotify.com/track/a"]
        assert "Error in line 2" in caplog.text

    def test_append(self, temp_dir):
        path = temp_dir / "blocked_songs.conf"
        path.write_text("")
        event = NowPlayingEvent(
            url="https://open.spotify.com/track/b",
            artist="Queen",
            title="Bicycle Race"
        )

        BlockedSongsFile(path).append(event)

        assert path.read_text() == (
            "\n# Artist: Queen, Title: Bicycle Race\nhttps://open.spotify.com/track/b\n"
        )
        assert BlockedSongsFile(path).load()[0].spotify_url == "https://open.spotify.com/track/b"

    def test_entry_without_attributes(self):
        event = NowPlayingEvent(url="https://open.spotify.com/track/b")

        assert format_entry(event) == "\nhttps://open.spotify.com/track/b\n"

    def test_append_creates_missing_file(self, temp_dir):
        path = temp_dir / "config" / "blocked_songs.conf"

        append_blocked_song(path, NowPlayingEvent(url="https://open.spotify.com/track/c"))

        urls = [s.spotify_url for s in BlockedSongsFile(path).load()]
        assert urls == [DEMO_SONG_URL, "https://open.spotify.com/track/c"]
