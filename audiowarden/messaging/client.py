"""Client side of the IPC socket, used by the CLI subcommands."""

import socket
from pathlib import Path

from audiowarden.core.exceptions import MessagingError


# A login or refresh reply may wait for a full deny-list refresh
DEFAULT_TIMEOUT = 120.0
RECV_BUFFER_SIZE = 4096


def send_command(socket_path: Path, command: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Send one command to the running daemon and return its reply.

    Raises:
        MessagingError: If the daemon is not running or does not answer.
    """
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            sock.connect(str(socket_path))
            sock.sendall(f"{command}\n".encode("utf-8"))
            sock.shutdown(socket.SHUT_WR)

            chunks = []
            while True:
                chunk = sock.recv(RECV_BUFFER_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
    except OSError as e:
        raise MessagingError(
            f"Unable to reach the audiowarden daemon at {socket_path}: {e}",
            details={"path": str(socket_path), "command": command, "original_error": str(e)}
        ) from e

    return b"".join(chunks).decode("utf-8", errors="replace").strip()
