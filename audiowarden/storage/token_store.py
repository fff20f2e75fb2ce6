"""
Durable storage of the Spotify OAuth token.

The token lives in {state_dir}/spotify_token.json, readable by the owner only.

Persisted Format:
    The file content is a private wire struct, never the AccessToken domain
    model itself. Each wire struct carries its version and converts explicitly
    to and from the domain model, so renaming a domain field can never break
    files that already exist on users' disks.

    Version 1 (current):
        {"version": 1, "access_token": "...", "token_type": "Bearer",
         "expires_in": 3600, "refresh_token": "...", "saved_at": "2024-...Z"}

    Unversioned (legacy, read-only):
        {"access_token": "...", "token_type": "Bearer",
         "expires_in": 3600, "refresh_token": "..."}

Usage:
    store = TokenStore(config.paths.token_file)
    token = store.load()       # None before the first login
    store.save(new_token)
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from audiowarden.core.exceptions import StorageError
from audiowarden.core.logger import get_logger
from audiowarden.spotify.models import AccessToken
from audiowarden.storage.files import atomic_write_bytes

logger = get_logger(__name__)


TOKEN_FILE_VERSION = 1
TOKEN_FILE_MODE = 0o600


@dataclass(frozen=True)
class _TokenV0:
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "_TokenV0":
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data["token_type"]),
            expires_in=int(data["expires_in"]),
            refresh_token=str(data["refresh_token"])
        )

    def to_domain(self) -> AccessToken:
        return AccessToken(
            access_token=self.access_token,
            token_type=self.token_type,
            expires_in=self.expires_in,
            refresh_token=self.refresh_token
        )


@dataclass(frozen=True)
class _TokenV1:
    version: int
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str
    saved_at: str

    @classmethod
    def from_domain(cls, token: AccessToken) -> "_TokenV1":
        return cls(
            version=1,
            access_token=token.access_token,
            token_type=token.token_type,
            expires_in=token.expires_in,
            refresh_token=token.refresh_token,
            saved_at=datetime.now(timezone.utc).isoformat()
        )

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "_TokenV1":
        return cls(
            version=1,
            access_token=str(data["access_token"]),
            token_type=str(data["token_type"]),
            expires_in=int(data["expires_in"]),
            refresh_token=str(data["refresh_token"]),
            saved_at=str(data.get("saved_at", ""))
        )

    def to_domain(self) -> AccessToken:
        return AccessToken(
            access_token=self.access_token,
            token_type=self.token_type,
            expires_in=self.expires_in,
            refresh_token=self.refresh_token
        )


def decode_token(data: Any) -> AccessToken:
    """
    Convert the parsed JSON of a token file into an AccessToken.

    Raises:
        StorageError: If the version is unknown or fields are missing.
    """
    if not isinstance(data, dict):
        raise StorageError("Token file does not contain a JSON object")

    version = data.get("version")
    try:
        if version is None:
            return _TokenV0.from_json(data).to_domain()
        if version == 1:
            return _TokenV1.from_json(data).to_domain()
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(
            f"Token file is missing or has invalid fields: {e}",
            details={"version": version, "original_error": str(e)}
        ) from e

    raise StorageError(
        f"Unsupported token file version: {version}",
        details={"version": version, "supported": [None, TOKEN_FILE_VERSION]}
    )


def encode_token(token: AccessToken) -> bytes:
    """Serialize a token in the current wire format."""
    return json.dumps(asdict(_TokenV1.from_domain(token)), indent=2).encode("utf-8")


class TokenStore:
    """
    Reads and writes the token file.

    The store has no in-memory state of its own; TokenManager owns the
    authoritative token and calls save() after every change.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> AccessToken | None:
        """
        Load the persisted token.

        Returns:
            The token, or None when no file exists yet (first start).

        Raises:
            StorageError: If the file cannot be read or decoded.
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            raise StorageError(
                f"Token file is not valid JSON: {e}",
                details={"path": str(self.path), "original_error": str(e)}
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to read token file: {e}",
                details={"path": str(self.path), "original_error": str(e)}
            ) from e

        return decode_token(data)

    def save(self, token: AccessToken) -> None:
        """
        Persist the token, replacing the file atomically with mode 600.

        Raises:
            StorageError: If the file cannot be written.
        """
        try:
            atomic_write_bytes(self.path, encode_token(token), mode=TOKEN_FILE_MODE)
        except OSError as e:
            raise StorageError(
                f"Failed to write token file: {e}",
                details={"path": str(self.path), "original_error": str(e)}
            ) from e
        logger.debug(f"Token stored at {self.path}")
