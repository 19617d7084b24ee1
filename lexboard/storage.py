"""
Blob Storage
============

Opaque byte store for uploaded case documents and generated reports.
Keys follow `<resource-type>/<owner-or-job-id>/<filename-or-id>.<ext>`.
Objects are immutable once written; deletion is the only mutation.
"""

import hashlib
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(Exception):
    """Raised when the blob store cannot complete an operation."""


@dataclass
class StoredObject:
    key: str
    size_bytes: int
    sha256: str
    content_type: Optional[str] = None


def safe_filename(filename: str, default: str = "file") -> str:
    """Strip directories and anything outside [A-Za-z0-9._-] from a client filename."""
    base = os.path.basename((filename or "").replace("\\", "/"))
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned[:150] or default


class BlobStore:
    """Interface every storage backend implements."""

    @staticmethod
    def generate_key(resource_type: str, owner_id: str, filename: str) -> str:
        return f"{safe_filename(resource_type)}/{safe_filename(owner_id)}/{safe_filename(filename)}"

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> StoredObject:
        raise NotImplementedError

    def get(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError


class LocalStorage(BlobStore):
    """Filesystem-backed blob store rooted at `base_path`."""

    def __init__(self, base_path: str = "./storage"):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/") or "\x00" in key:
            raise StorageError(f"Invalid storage key: {key!r}")
        path = (self.base_path / key).resolve()
        if path != self.base_path and self.base_path not in path.parents:
            raise StorageError(f"Storage key escapes base path: {key!r}")
        return path

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> StoredObject:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".part")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {key}: {e}") from e
        logger.debug("Stored %s (%d bytes)", key, len(data))
        return StoredObject(
            key=key,
            size_bytes=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
        )

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise StorageError(f"Object not found: {key}")
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e
        return True

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()
