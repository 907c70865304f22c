# batch_audit/api/router.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response

from batch_audit.errors import StorageError, ValidationError
from batch_audit.schemas import (
    DeleteResponse,
    FileList,
    FolderList,
    SiteList,
    SubmitResponse,
    Task,
)
from batch_audit.services.batches import AuditService
from batch_audit.services.sites import SiteCatalog
from batch_audit.storage.base import content_type_for, normalize_key

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> AuditService:
    return request.app.state.audit_service


def get_sites(request: Request) -> SiteCatalog:
    return request.app.state.site_catalog


@router.get("/healthz")
async def healthz(service: AuditService = Depends(get_service)):
    return {"ok": True, "app": "batch-audit", "storage": service.storage.name, "running": service.running}


# ---------------------------
# Batches
# ---------------------------
@router.post("/api/audit", response_model=SubmitResponse)
async def submit_audit(body: Dict[str, Any] = Body(...), service: AuditService = Depends(get_service)):
    """Start a batch from a JSON config: {"base": ..., "paths": [...], "configName": ...}."""
    task_id = service.submit(body)
    return SubmitResponse(task_id=task_id)


@router.post("/api/audit/upload", response_model=SubmitResponse)
async def upload_audit(config: UploadFile = File(...), service: AuditService = Depends(get_service)):
    """Start a batch from an uploaded config file; the file name becomes the config name."""
    raw = await config.read()
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError(f"Config file is not valid JSON: {e}") from e

    name = Path(config.filename).stem if config.filename else None
    task_id = service.submit(data, name)
    return SubmitResponse(task_id=task_id)


@router.post("/api/audit/sites/{filename}", response_model=SubmitResponse)
async def audit_site(
    filename: str,
    service: AuditService = Depends(get_service),
    sites: SiteCatalog = Depends(get_sites),
):
    data = sites.load_site(filename)
    task_id = service.submit(data, Path(filename).stem)
    return SubmitResponse(task_id=task_id)


@router.get("/api/audit/{task_id}", response_model=Task)
async def audit_status(task_id: str, service: AuditService = Depends(get_service)):
    task = service.status(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


# ---------------------------
# Report folders & files
# ---------------------------
@router.get("/api/folders", response_model=FolderList)
def list_folders(service: AuditService = Depends(get_service)):
    return FolderList(folders=service.list_folders())


@router.get("/api/folders/{folder}/files", response_model=FileList)
def list_files(folder: str, service: AuditService = Depends(get_service)):
    return FileList(files=service.list_files(folder))


@router.delete("/api/folders/{folder}", response_model=DeleteResponse)
def delete_folder(folder: str, service: AuditService = Depends(get_service)):
    return DeleteResponse(success=service.delete_folder(folder))


@router.get("/api/files")
def serve_file(
    file: str = Query(...),
    download: bool = Query(False),
    service: AuditService = Depends(get_service),
):
    """Serve a stored report. This is what local-storage locations point at."""
    try:
        key = normalize_key(file)
    except StorageError as e:
        raise ValidationError(str(e)) from e
    if not key.startswith(f"{service.storage.prefix}/"):
        raise HTTPException(status_code=404, detail="File not found")

    try:
        content = service.storage.read_file(key)
    except StorageError as e:
        logger.info("File request for %s failed: %s", key, e)
        raise HTTPException(status_code=404, detail="File not found") from e

    headers = {}
    if download:
        headers["Content-Disposition"] = f'attachment; filename="{key.rsplit("/", 1)[-1]}"'
    return Response(content=content, media_type=content_type_for(key), headers=headers)


# ---------------------------
# Pre-configured sites
# ---------------------------
@router.get("/api/audit-sites", response_model=SiteList)
def list_audit_sites(sites: SiteCatalog = Depends(get_sites)):
    return SiteList(sites=sites.list_sites())


@router.get("/api/audit-sites/{filename}")
def get_audit_site(filename: str, sites: SiteCatalog = Depends(get_sites)):
    return sites.load_site(filename)
