"""
File helpers shared by the token store and the deny-list cache.

Persisted files are read by other threads while a refresh may be writing
them, so every write goes to a temporary file in the same directory and is
then moved over the target with os.replace(), which is atomic on POSIX.
Readers see either the old or the new content, never a partial file.
"""

import os
import tempfile
from pathlib import Path


def atomic_write_bytes(path: Path, data: bytes, mode: int | None = None) -> None:
    """
    Replace the file at path with data.

    Args:
        path: Target file. Parent directories are created when missing.
        data: Complete new content.
        mode: Optional permission bits applied before the rename
              (e.g. 0o600 for credentials).

    Raises:
        OSError: If the directory cannot be created or the write fails.
                 The target is left untouched in that case.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            tmp_file.write(data)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
