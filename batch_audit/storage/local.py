# batch_audit/storage/local.py
from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from batch_audit.errors import StorageError
from batch_audit.schemas import FileInfo, FolderInfo
from batch_audit.storage.base import (
    Content,
    StorageBackend,
    as_bytes,
    group_folders,
    newest_first,
    normalize_key,
)

logger = logging.getLogger(__name__)

FILES_ENDPOINT = "/api/files"


def _created(st: os.stat_result) -> datetime:
    # mtime == upload time: every write replaces the whole file
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)


def _scan(path) -> List[os.DirEntry]:
    with os.scandir(path) as it:
        return sorted(it, key=lambda e: e.name)


class LocalStorage(StorageBackend):
    """Artifacts on the local filesystem, served back through the /api/files route."""

    name = "local"

    def __init__(self, root: str = ".", prefix: str = "reports"):
        super().__init__(prefix)
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        full = (self.root / normalize_key(path)).resolve()
        if full != self.root and self.root not in full.parents:
            raise StorageError(f"Path escapes storage root: {path!r}")
        return full

    def location(self, key: str, download: bool = False) -> str:
        url = f"{FILES_ENDPOINT}?file={quote(key, safe='/')}"
        return f"{url}&download=true" if download else url

    def write_file(self, path: str, content: Content) -> str:
        key = normalize_key(path)
        full = self._resolve(key)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_bytes(as_bytes(content))
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        logger.info("Saved %s (%d bytes)", key, full.stat().st_size)
        return self.location(key)

    def read_file(self, path: str) -> bytes:
        full = self._resolve(path)
        if not full.is_file():
            raise StorageError(f"File not found: {path}")
        try:
            return full.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def list_folders(self, prefix: Optional[str] = None) -> List[FolderInfo]:
        base = self._resolve(self._list_prefix(prefix))
        if not base.is_dir():
            return []

        try:
            entries = []
            empty: List[FolderInfo] = []
            for folder in _scan(base):
                if not folder.is_dir():
                    continue
                files = [f for f in _scan(folder.path) if f.is_file()]
                if not files:
                    empty.append(FolderInfo(name=folder.name, created=_created(folder.stat())))
                    continue
                for f in files:
                    st = f.stat()
                    entries.append((folder.name, st.st_size, _created(st)))
        except OSError as e:
            raise StorageError(f"Failed to list {base}: {e}") from e

        return newest_first(list(group_folders(entries).values()) + empty)

    def list_files(self, folder: str) -> List[FileInfo]:
        folder_key = self.folder_key(folder)
        path = self._resolve(folder_key)
        if not path.is_dir():
            return []

        files: List[FileInfo] = []
        for entry in _scan(path):
            if not entry.is_file():
                continue
            st = entry.stat()
            key = f"{folder_key}{entry.name}"
            files.append(FileInfo(
                name=entry.name,
                size=st.st_size,
                created=_created(st),
                url=self.location(key),
                download_url=self.location(key, download=True),
            ))
        return files

    def delete_folder(self, folder: str) -> bool:
        path = self._resolve(self.folder_key(folder))
        if not path.exists():
            return True
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise StorageError(f"Failed to delete folder {folder}: {e}") from e
        logger.info("Deleted folder %s", folder)
        return True
