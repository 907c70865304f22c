# batch_audit/settings.py
import json
import logging
import shlex
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Settings for the Lighthouse batch auditor.
    Automatically loaded from environment variables and .env.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Lighthouse Batch Auditor"
    LOG_LEVEL: str = "INFO"

    # ── STORAGE ──────────────────────────────────────────────────────────────
    # Chosen once at startup; "gcs" needs GCS_BUCKET.
    STORAGE_BACKEND: Literal["local", "gcs"] = "local"
    LOCAL_STORAGE_ROOT: str = "."
    REPORTS_PREFIX: str = "reports"
    GCS_BUCKET: Optional[str] = None
    GCS_PROJECT: Optional[str] = None

    # Google Cloud Credentials JSON (service account). Falls back to default credentials.
    GOOGLE_APPLICATION_CREDENTIALS_JSON: Optional[str] = None

    # ── BROWSER & LIGHTHOUSE ─────────────────────────────────────────────────
    # None uses the Chromium bundled with Playwright (`playwright install chromium`)
    CHROME_PATH: Optional[str] = None
    CHROME_FLAGS: str = "--no-sandbox --disable-gpu --disable-dev-shm-usage"
    CHROME_STARTUP_TIMEOUT: float = 15.0
    LIGHTHOUSE_PATH: str = "lighthouse"
    AUDIT_TIMEOUT: float = Field(default=120.0, gt=0)

    # ── PRESETS ──────────────────────────────────────────────────────────────
    AUDIT_SITES_DIR: str = "audit-sites"

    # ── TASK RETENTION ───────────────────────────────────────────────────────
    # 0 keeps finished tasks for the whole process lifetime.
    TASK_TTL_SECONDS: int = Field(default=0, ge=0)
    TASK_SWEEP_INTERVAL_SECONDS: int = Field(default=300, gt=0)

    @field_validator("STORAGE_BACKEND", mode="before")
    @classmethod
    def normalize_backend(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("REPORTS_PREFIX")
    @classmethod
    def strip_prefix_slashes(cls, v: str) -> str:
        v = v.strip().strip("/")
        if not v:
            raise ValueError("REPORTS_PREFIX must not be empty")
        return v

    @model_validator(mode="after")
    def require_bucket_for_gcs(self) -> "Settings":
        if self.STORAGE_BACKEND == "gcs" and not self.GCS_BUCKET:
            raise ValueError("GCS_BUCKET is required when STORAGE_BACKEND=gcs")
        return self

    @property
    def chrome_flags(self) -> List[str]:
        return shlex.split(self.CHROME_FLAGS or "")

    @property
    def gcp_credentials(self) -> Optional[service_account.Credentials]:
        """
        Returns Google Cloud credentials object from JSON environment variable.
        Handles double-backslash issues in private_key.
        """
        creds_json = self.GOOGLE_APPLICATION_CREDENTIALS_JSON
        if not creds_json:
            return None

        try:
            creds_dict = json.loads(creds_json)
        except json.JSONDecodeError:
            logger.error("Failed to decode GOOGLE_APPLICATION_CREDENTIALS_JSON")
            return None

        if "private_key" in creds_dict:
            # Fix formatting issues with the private key
            creds_dict["private_key"] = creds_dict["private_key"].replace("\\\\n", "\n").replace("\\n", "\n")
        return service_account.Credentials.from_service_account_info(creds_dict)


# Cached singleton to avoid repeated instantiation
@lru_cache()
def get_settings() -> Settings:
    return Settings()
