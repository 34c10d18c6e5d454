from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from logitrack.core.config import settings

logger = logging.getLogger(__name__)

_SAFE_EXT = re.compile(r"^[a-z0-9]{1,10}$")


class DocumentStorageError(Exception):
    pass


def build_storage_key(shipment_id: str, filename: str | None) -> str:
    """`shipments/<shipment_id>/<utc timestamp>.<ext>`; the client file name is not trusted."""
    ext = ""
    if filename and "." in filename:
        candidate = filename.rsplit(".", 1)[-1].strip().lower()
        if _SAFE_EXT.match(candidate):
            ext = f".{candidate}"
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    return f"shipments/{shipment_id}/{stamp}{ext}"


class LocalDocumentStorage:
    """Stores document bytes under a root directory, addressed by storage key."""

    def __init__(self, root_dir: str | os.PathLike):
        self.root = Path(root_dir)

    def path_for(self, storage_key: str) -> Path:
        root = self.root.resolve()
        path = (root / storage_key).resolve()
        if root != path and root not in path.parents:
            raise DocumentStorageError(f"Invalid storage key: {storage_key}")
        return path

    def save(self, storage_key: str, payload: bytes) -> None:
        path = self.path_for(storage_key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(payload)
        except OSError as exc:
            raise DocumentStorageError(f"Failed to store {storage_key}: {exc}") from exc

    def exists(self, storage_key: str) -> bool:
        return self.path_for(storage_key).is_file()

    def delete(self, storage_key: str) -> None:
        path = self.path_for(storage_key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise DocumentStorageError(f"Failed to delete {storage_key}: {exc}") from exc


@lru_cache(maxsize=4)
def _build_storage(root_dir: str) -> LocalDocumentStorage:
    return LocalDocumentStorage(root_dir)


def get_document_storage() -> LocalDocumentStorage:
    return _build_storage(settings.DOCUMENT_STORAGE_DIR)
