# batch_audit/storage/base.py
from __future__ import annotations

import mimetypes
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

from batch_audit.errors import StorageError
from batch_audit.schemas import FileInfo, FolderInfo

Content = Union[str, bytes]

_FOLDER_RE = re.compile(r"^[A-Za-z0-9._ -]+$")


def normalize_key(path: str) -> str:
    """Turn a storage path into a clean relative key, rejecting anything that escapes the root."""
    key = (path or "").replace("\\", "/").strip()
    if not key or key.startswith("/"):
        raise StorageError(f"Invalid storage path: {path!r}")
    parts = [p for p in key.split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        raise StorageError(f"Invalid storage path: {path!r}")
    return "/".join(parts)


def validate_folder_name(folder: str) -> str:
    name = (folder or "").strip()
    if not name or name in (".", "..") or not _FOLDER_RE.match(name):
        raise StorageError(f"Invalid folder name: {folder!r}")
    return name


def content_type_for(key: str) -> str:
    return mimetypes.guess_type(key)[0] or "application/octet-stream"


def as_bytes(content: Content) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else bytes(content)


def group_folders(entries: Iterable[Tuple[str, int, datetime]]) -> Dict[str, FolderInfo]:
    """
    Aggregate (folder, size, created) file entries into FolderInfo records.
    created is the earliest file timestamp seen for the folder.
    """
    folders: Dict[str, FolderInfo] = {}
    for folder, size, created in entries:
        info = folders.get(folder)
        if info is None:
            folders[folder] = FolderInfo(name=folder, created=created, file_count=1, size=size)
            continue
        info.file_count += 1
        info.size += size
        if created < info.created:
            info.created = created
    return folders


def newest_first(folders: Iterable[FolderInfo]) -> List[FolderInfo]:
    return sorted(folders, key=lambda f: f.created, reverse=True)


class StorageBackend(ABC):
    """
    Uniform artifact persistence. Every variant returns the same shapes so callers
    never need to know which one is active.
    """

    name = "base"

    def __init__(self, prefix: str = "reports"):
        self.prefix = prefix.strip("/")

    def folder_key(self, folder: str) -> str:
        return f"{self.prefix}/{validate_folder_name(folder)}/"

    def report_path(self, folder: str, filename: str) -> str:
        return normalize_key(f"{self.folder_key(folder)}{filename}")

    def _list_prefix(self, prefix: Optional[str]) -> str:
        return (prefix if prefix is not None else self.prefix).strip("/") + "/"

    @abstractmethod
    def write_file(self, path: str, content: Content) -> str:
        """Store content under path (overwriting) and return a dereferenceable location."""

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        ...

    @abstractmethod
    def list_folders(self, prefix: Optional[str] = None) -> List[FolderInfo]:
        """Top-level folders under prefix, most recent first. Missing prefix -> []."""

    @abstractmethod
    def list_files(self, folder: str) -> List[FileInfo]:
        ...

    @abstractmethod
    def delete_folder(self, folder: str) -> bool:
        """Remove every artifact in folder. An absent folder counts as success."""
