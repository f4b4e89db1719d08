from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict


class StorageBackend(ABC):
    """
    Abstract interface for small key/value blobs (session token, client preferences).
    """

    @abstractmethod
    def write_bytes(self, path: str, data: bytes) -> None:
        pass

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove a blob; missing paths are ignored."""
        pass


class LocalFileSystemStorage(StorageBackend):
    """
    Stores blobs as files below a root directory.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        # Prevent path traversal attacks
        full_path = (self.root / path).resolve()
        if not full_path.is_relative_to(self.root):
            raise ValueError(f"Access denied: {path}")
        return full_path

    def write_bytes(self, path: str, data: bytes) -> None:
        p = self._resolve(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def read_bytes(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def delete(self, path: str) -> None:
        self._resolve(path).unlink(missing_ok=True)


class InMemoryStorage(StorageBackend):
    """Process-local storage, used for tests and for sessions that should not touch disk."""

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}

    def write_bytes(self, path: str, data: bytes) -> None:
        self._blobs[path] = bytes(data)

    def read_bytes(self, path: str) -> bytes:
        try:
            return self._blobs[path]
        except KeyError:
            raise FileNotFoundError(path)

    def exists(self, path: str) -> bool:
        return path in self._blobs

    def delete(self, path: str) -> None:
        self._blobs.pop(path, None)
