"""
Logging configuration for audiowarden.

This module sets up the logging system with up to three outputs:
    - Console: colored, timestamped lines written through tqdm so that the
      progress bar of a manual refresh is not torn apart
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages

File output is optional (logging.to_file in config.yaml) because the daemon
usually runs under systemd, where the journal already keeps the console output.

Usage:
    from audiowarden.core.logger import setup_logging, get_logger

    setup_logging(level="INFO")  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Waiting for player events")
"""

import logging
import sys
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


LOG_FULL_FILENAME = "log_full.log"
LOG_ERRORS_FILENAME = "log_errors.log"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_DATE_FORMAT = "%H:%M:%S"

# Third-party loggers that are far too chatty at INFO/DEBUG
NOISY_LOGGERS = ("spotipy.client", "urllib3", "requests.packages.urllib3")

BLOCKED_MARKER = "[BLOCKED]"
NOT_BLOCKED_MARKER = "[NOT BLOCKED]"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that adds colors to console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__(datefmt=CONSOLE_DATE_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as "HH:MM:SS LEVEL: message".

        Exception info, if attached, is appended on the following lines.
        """
        timestamp = self.formatTime(record, self.datefmt)
        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
            levelname = f"{color}{record.levelname}{Colors.RESET}"
        else:
            levelname = record.levelname

        message = f"{timestamp} {levelname}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    tqdm progress bars write to stderr and use carriage returns to update in-place.
    This handler uses tqdm.write() which properly coordinates with active progress
    bars, so messages appear above the bar instead of through it.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any thread is started.

    Args:
        level: Console log level name ("DEBUG", "INFO", ...).
        log_dir: If given, log_full.log and log_errors.log are written there.
                 The directory is created if needed.

    Behavior:
        1. Configure root logger level to DEBUG
        2. Replace existing handlers with a TqdmLoggingHandler at `level`
           (colors only when stderr is a terminal)
        3. Optionally add the full and error-only file handlers
        4. Silence noisy third-party loggers
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredConsoleFormatter(use_colors=sys.stderr.isatty()))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        full_handler = logging.FileHandler(log_dir / LOG_FULL_FILENAME, mode="a", encoding="utf-8")
        full_handler.setLevel(logging.DEBUG)
        full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        root_logger.addHandler(full_handler)

        error_handler = logging.FileHandler(
            log_dir / LOG_ERRORS_FILENAME, mode="a", encoding="utf-8"
        )
        error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
        error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        error_handler.addFilter(ErrorOnlyFilter())
        root_logger.addHandler(error_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.
              This creates a hierarchy like 'audiowarden.spotify.client'.

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own and propagate to whatever the root logger has.
    """
    return logging.getLogger(name)


def format_enforcement_message(song: str, blocked: bool, playlist_name: str | None = None) -> str:
    """
    Format the verdict line logged for every now-playing event.

    Args:
        song: Display form of the event ("Artist: ..., Title: ..., URL: ...").
        blocked: Whether the song was skipped.
        playlist_name: Where the matching entry came from (blocked songs only).

    Returns:
        Message string, e.g. "Artist: X, Title: Y, URL: Z [BLOCKED] via playlist Gym".
    """
    if blocked:
        suffix = f"{Colors.RED}{BLOCKED_MARKER}{Colors.RESET}"
        if playlist_name:
            suffix = f"{suffix} via playlist {Colors.CYAN}{playlist_name}{Colors.RESET}"
    else:
        suffix = f"{Colors.GREEN}{NOT_BLOCKED_MARKER}{Colors.RESET}"
    return f"{song} {suffix}"


def log_enforcement(
    logger: logging.Logger,
    song: str,
    blocked: bool,
    playlist_name: str | None = None
) -> None:
    """
    Log an enforcement verdict at INFO level.

    The plain verdict and playlist are attached as extra fields
    ('enforcement_blocked', 'enforcement_playlist') for handlers and tests.
    """
    logger.info(
        format_enforcement_message(song, blocked, playlist_name),
        extra={
            "enforcement_blocked": blocked,
            "enforcement_playlist": playlist_name,
        }
    )


def shutdown_logging() -> None:
    """
    Flush and close all handlers of the root logger.

    Called from the CLI in a finally block. After this call nothing is logged.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)
