from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TaskStatus = Literal["running", "completed", "error"]


class CamelModel(BaseModel):
    # JSON keys match the browser UI (taskId, folderName, downloadUrl, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuditConfig(BaseModel):
    """A validated batch: one base URL plus the ordered paths to audit under it."""

    base: str = Field(validation_alias=AliasChoices("base", "baseURL", "base_url"))
    paths: Tuple[str, ...] = Field(min_length=1)
    name: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("base")
    @classmethod
    def absolute_http_url(cls, v: str) -> str:
        u = (v or "").strip()
        parsed = urlparse(u)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("base must be an absolute http(s) URL")
        return u

    def full_url(self, path: str) -> str:
        return f"{self.base}{path}"


class PerPageResult(CamelModel):
    url: str
    device_profile_name: str
    success: bool
    artifact_path: Optional[str] = None
    filename: Optional[str] = None
    error: Optional[str] = None
    scores: Optional[Dict[str, float]] = None

    model_config = ConfigDict(frozen=True)


class Task(CamelModel):
    id: str
    status: TaskStatus = "running"
    message: str = "Starting audit..."
    progress: float = 0.0
    total: int = 0
    completed: int = 0
    folder_name: Optional[str] = None
    results: List[PerPageResult] = Field(default_factory=list)
    created_at: datetime
    finished_at: Optional[datetime] = None

    @property
    def finished(self) -> bool:
        return self.status != "running"


class FolderInfo(CamelModel):
    name: str
    created: datetime
    file_count: int = 0
    size: int = 0


class FileInfo(CamelModel):
    name: str
    size: int
    created: datetime
    url: str
    download_url: str


class SiteSummary(CamelModel):
    name: str
    filename: str
    display_name: str
    base: Optional[str] = None
    path_count: int = 0
    created: datetime
    size: int = 0


class SubmitResponse(CamelModel):
    task_id: str
    message: str = "Audit started"


class FolderList(BaseModel):
    folders: List[FolderInfo]


class FileList(BaseModel):
    files: List[FileInfo]


class SiteList(BaseModel):
    sites: List[SiteSummary]


class DeleteResponse(BaseModel):
    success: bool
    message: str = "Folder deleted successfully"
