"""
Unix socket server for IPC commands.

Protocol: the client connects, writes one newline-terminated command and
reads the reply until the server closes the connection. Each connection is
handled on its own thread.
"""

import socketserver
import threading
from pathlib import Path

from audiowarden.core.exceptions import MessagingError
from audiowarden.core.logger import get_logger
from audiowarden.messaging.commands import CommandDispatcher

logger = get_logger(__name__)


MAX_COMMAND_LENGTH = 1024


class CommandRequestHandler(socketserver.StreamRequestHandler):
    """Reads one command, writes the dispatcher's reply."""

    server: "CommandServer"

    def handle(self) -> None:
        try:
            raw = self.rfile.readline(MAX_COMMAND_LENGTH)
        except OSError as e:
            logger.error(f"Unable to read message from socket: {e}")
            return

        command = raw.decode("utf-8", errors="replace").strip()
        logger.debug(f"Received command {command!r}")
        reply = self.server.dispatcher.dispatch(command)

        try:
            self.wfile.write(f"{reply}\n".encode("utf-8"))
        except OSError as e:
            logger.error(f"Unable to send message via Unix socket: {e}")


class CommandServer(socketserver.ThreadingUnixStreamServer):
    """
    Threading Unix stream server bound to the daemon's socket file.

    A stale socket file left behind by a previous run is removed before
    binding, otherwise bind() fails with "Address already in use".
    """

    daemon_threads = True

    def __init__(self, socket_path: Path, dispatcher: CommandDispatcher) -> None:
        self.socket_path = socket_path
        self.dispatcher = dispatcher
        try:
            socket_path.parent.mkdir(parents=True, exist_ok=True)
            socket_path.unlink(missing_ok=True)
            super().__init__(str(socket_path), CommandRequestHandler)
        except OSError as e:
            raise MessagingError(
                f"Unable to open unix socket: {e}",
                details={"path": str(socket_path), "original_error": str(e)}
            ) from e
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Serve in a background daemon thread."""
        self._thread = threading.Thread(target=self.serve_forever, name="ipc-server", daemon=True)
        self._thread.start()
        logger.debug(f"Listening for commands on {self.socket_path}")

    def stop(self) -> None:
        """Stop serving and remove the socket file."""
        if self._thread is not None:
            self.shutdown()
            self._thread.join()
        self.server_close()
        try:
            self.socket_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Unable to remove {self.socket_path}: {e}")
