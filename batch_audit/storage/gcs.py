# batch_audit/storage/gcs.py
from __future__ import annotations

import logging
from typing import List, Optional

import requests
from google.api_core import exceptions as gcs_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from batch_audit.errors import StorageError
from batch_audit.schemas import FileInfo, FolderInfo
from batch_audit.storage.base import (
    Content,
    StorageBackend,
    as_bytes,
    content_type_for,
    group_folders,
    newest_first,
    normalize_key,
)

logger = logging.getLogger(__name__)

# API errors plus the transport failures that do not subclass GoogleAPIError
BACKEND_ERRORS = (
    gcs_exceptions.GoogleAPIError,
    auth_exceptions.TransportError,
    requests.exceptions.RequestException,
)


class GCSStorage(StorageBackend):
    """
    Artifacts in a Google Cloud Storage bucket.

    Folders are not real objects: they are derived from the first key segment
    under the prefix, so an empty folder cannot exist here.
    """

    name = "gcs"

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "reports",
        *,
        client: Optional[storage.Client] = None,
        project: Optional[str] = None,
        credentials=None,
    ):
        super().__init__(prefix)
        self.client = client or storage.Client(project=project, credentials=credentials)
        self.bucket = self.client.bucket(bucket_name)

    def _list(self, prefix: str):
        try:
            return list(self.client.list_blobs(self.bucket, prefix=prefix))
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to list gs://{self.bucket.name}/{prefix}: {e}") from e

    def write_file(self, path: str, content: Content) -> str:
        key = normalize_key(path)
        blob = self.bucket.blob(key)
        data = as_bytes(content)
        try:
            blob.upload_from_string(data, content_type=content_type_for(key))
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e
        logger.info("Uploaded gs://%s/%s (%d bytes)", self.bucket.name, key, len(data))
        return blob.public_url

    def read_file(self, path: str) -> bytes:
        key = normalize_key(path)
        try:
            return self.bucket.blob(key).download_as_bytes()
        except gcs_exceptions.NotFound as e:
            raise StorageError(f"File not found: {key}") from e
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    def list_folders(self, prefix: Optional[str] = None) -> List[FolderInfo]:
        list_prefix = self._list_prefix(prefix)
        entries = []
        for blob in self._list(list_prefix):
            parts = blob.name[len(list_prefix):].split("/")
            # only direct children: {prefix}/{folder}/{file}
            if len(parts) != 2 or not parts[0] or not parts[1]:
                continue
            entries.append((parts[0], int(blob.size or 0), blob.time_created))
        return newest_first(group_folders(entries).values())

    def list_files(self, folder: str) -> List[FileInfo]:
        folder_key = self.folder_key(folder)
        files: List[FileInfo] = []
        for blob in self._list(folder_key):
            name = blob.name[len(folder_key):]
            if not name or "/" in name:
                continue
            files.append(FileInfo(
                name=name,
                size=int(blob.size or 0),
                created=blob.time_created,
                url=blob.public_url,
                download_url=blob.media_link or blob.public_url,
            ))
        return sorted(files, key=lambda f: f.name)

    def delete_folder(self, folder: str) -> bool:
        folder_key = self.folder_key(folder)
        for blob in self._list(folder_key):
            try:
                blob.delete()
            except gcs_exceptions.NotFound:
                continue
            except BACKEND_ERRORS as e:
                raise StorageError(f"Failed to delete {blob.name}: {e}") from e
        logger.info("Deleted folder gs://%s/%s", self.bucket.name, folder_key)
        return True
