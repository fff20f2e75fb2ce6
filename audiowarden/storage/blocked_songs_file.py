"""
The user's local deny-list: blocked_songs.conf in the config directory.

One Spotify track URL per line. Lines starting with '#' and blank lines are
ignored. The file is created on first use with a short explanation and one
demonstration entry.

Example file:
    # Artist: Rick Astley, Title: Never Gonna Give You Up
    https://open.spotify.com/track/4PTG3Z6ehGkBFwjybzWkR8?si=7764fc
"""

from pathlib import Path
from urllib.parse import urlsplit

from audiowarden.core.logger import get_logger
from audiowarden.core.models import BlockedSong, NowPlayingEvent, canonical_spotify_url

logger = get_logger(__name__)


BLOCKED_SONGS_FILENAME = "blocked_songs.conf"
DEMO_SONG_URL = "https://open.spotify.com/track/6CE6xXEI29e6X0noaNugIW"

INITIAL_CONTENT = f"""\
# Enter all songs that you don't want to listen to anymore here.
# Make sure to enter valid spotify URLs only: You can get them from the Spotify app
# via the 'share' functionality. For example, if you use the desktop version of
# Spotify, right-click a song, click share, and then 'Copy Song Link'.
# You can also select multiple songs and copy them with Ctrl + c to have multiple
# URLs in your clipboard.

# The following line is included for testing and demonstration purposes: Feel free
# to remove this line (and everything else in this file) to replace it by your
# own song URLs.
{DEMO_SONG_URL}
"""


def _is_absolute_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc) and " " not in value


def parse_blocked_songs(content: str) -> list[BlockedSong]:
    """
    Parse the content of a blocked songs file.

    Invalid lines are logged with their 1-based line number and skipped.
    Duplicates are dropped, the first occurrence wins.

    Returns:
        Entries in file order, attributed to blocked_songs.conf.
    """
    songs: list[BlockedSong] = []
    seen: set[str] = set()

    for line_number, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if not _is_absolute_url(line):
            logger.error(f"Error in line {line_number}: the following is not a valid URL: {line}")
            continue

        url = canonical_spotify_url(line)
        if url in seen:
            continue
        seen.add(url)
        songs.append(BlockedSong(spotify_url=url, playlist_name=BLOCKED_SONGS_FILENAME))

    return songs


def format_entry(event: NowPlayingEvent) -> str:
    """
    Format the lines appended for a song blocked via IPC.

    Example:
        "\\n# Artist: Queen, Title: Bicycle Race\\nhttps://open.spotify.com/track/...\\n"
    """
    attributes = []
    if event.artist:
        attributes.append(f"Artist: {event.artist}")
    if event.title:
        attributes.append(f"Title: {event.title}")

    comment = f"# {', '.join(attributes)}\n" if attributes else ""
    return f"\n{comment}{event.url}\n"


class BlockedSongsFile:
    """
    Reads and extends blocked_songs.conf.

    The file is re-read on every load() so edits made by the user while the
    daemon runs are picked up with the next player event.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def ensure_exists(self) -> None:
        """
        Create the file with its explanatory header if it does not exist yet.

        Raises:
            OSError: If the directory or file cannot be created.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.path, "x", encoding="utf-8") as f:
                f.write(INITIAL_CONTENT)
            logger.info(f"Created {self.path}")
        except FileExistsError:
            logger.debug(f"File {self.path} already exists.")

    def load(self) -> list[BlockedSong]:
        """
        Read all entries.

        An unreadable file is logged and treated as empty, enforcement
        continues with the Spotify deny-list alone. Bytes that are not
        UTF-8 are replaced, so their line is reported as invalid.
        """
        try:
            self.ensure_exists()
            content = self.path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Unable to read {self.path}: {e}")
            return []
        return parse_blocked_songs(content)

    def append(self, event: NowPlayingEvent) -> None:
        """
        Append the song of event, with artist and title as a comment.

        Raises:
            OSError: If the file cannot be written.
        """
        self.ensure_exists()
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(format_entry(event))
        logger.info(f"Added to {self.path.name}: {event}")


def append_blocked_song(path: Path, event: NowPlayingEvent) -> None:
    """Convenience wrapper: append event to the blocked songs file at path."""
    BlockedSongsFile(path).append(event)
