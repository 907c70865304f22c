from batch_audit.settings import Settings
from batch_audit.storage.base import StorageBackend
from batch_audit.storage.local import LocalStorage

__all__ = ["StorageBackend", "LocalStorage", "build_storage"]


def build_storage(settings: Settings) -> StorageBackend:
    """Pick the storage variant once, from configuration."""
    if settings.STORAGE_BACKEND == "gcs":
        from batch_audit.storage.gcs import GCSStorage

        return GCSStorage(
            settings.GCS_BUCKET,
            settings.REPORTS_PREFIX,
            project=settings.GCS_PROJECT,
            credentials=settings.gcp_credentials,
        )
    return LocalStorage(settings.LOCAL_STORAGE_ROOT, settings.REPORTS_PREFIX)
