"""Blob storage for rendered credential artifacts."""
import os
from pathlib import Path
from typing import Protocol


class ImageStorage(Protocol):
    """Minimal blob store interface used by the credential store."""

    def put(self, key: str, data: bytes) -> str: ...

    def read(self, key: str) -> bytes: ...

    def exists(self, key: str) -> bool: ...

    def delete(self, key: str) -> bool: ...


class LocalImageStorage:
    """Stores artifacts as files below a root directory.

    Keys are relative POSIX paths such as ``credentials/REG-AB12CD34-x9f2k1qz.png``.
    """

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        # Keys come from our own code, but never let one escape the root
        if self.root not in path.parents:
            raise ValueError(f"Storage key escapes storage root: {key!r}")
        return path

    def put(self, key: str, data: bytes) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
        return key

    def read(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns False when there was nothing to delete."""
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True
