from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from msgraph_cli.config.settings import TOKEN_CACHE_NAME, config_dir
from msgraph_cli.utils import get_logger


logger = get_logger(__name__)

CACHE_FILE_MODE = 0o600


@runtime_checkable
class CredentialStore(Protocol):
    """Persistence backend for the serialized MSAL token cache."""

    def load(self) -> bytes | None: ...

    def save(self, data: bytes) -> None: ...

    def clear(self) -> bool: ...


class FileCredentialStore:
    """Keeps the token cache in a single owner-only file.

    On Windows the file keeps the default ACLs of the profile directory.
    """

    def __init__(self, cache_path: Optional[Path] = None) -> None:
        self._path = cache_path or config_dir() / TOKEN_CACHE_NAME

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> bytes | None:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None

    def save(self, data: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(data)
        if _is_posix():
            os.chmod(self._path, CACHE_FILE_MODE)
        logger.debug("Persisted token cache", path=str(self._path), size=len(data))

    def clear(self) -> bool:
        """Delete the cache file; returns False when there was nothing to delete."""

        if not self._path.exists():
            return False
        try:
            self._path.unlink()
        except FileNotFoundError:  # pragma: no cover - removed by another process
            return False
        logger.info("Cleared token cache", path=str(self._path))
        return True


def _is_posix() -> bool:
    return os.name == "posix" and not sys.platform.startswith("win")


__all__ = ["CACHE_FILE_MODE", "CredentialStore", "FileCredentialStore"]
