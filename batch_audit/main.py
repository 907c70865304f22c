# batch_audit/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from batch_audit import __version__
from batch_audit.api.router import router
from batch_audit.audit.executor import AuditExecutor
from batch_audit.audit.runner import BatchRunner
from batch_audit.errors import SiteNotFound, StorageError, ValidationError
from batch_audit.services.batches import AuditService
from batch_audit.services.logger import setup_logging
from batch_audit.services.scheduler import start_task_sweeper
from batch_audit.services.sites import SiteCatalog
from batch_audit.services.tasks import TaskRegistry
from batch_audit.settings import Settings, get_settings
from batch_audit.storage import StorageBackend, build_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = start_task_sweeper(app.state.registry, app.state.settings)
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.shutdown(wait=False)


def create_app(
    settings: Optional[Settings] = None,
    *,
    storage: Optional[StorageBackend] = None,
    executor: Optional[AuditExecutor] = None,
) -> FastAPI:
    """
    Build the app with one storage backend, one task registry and one executor,
    all chosen here and injected downwards.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    storage = storage or build_storage(settings)
    registry = TaskRegistry()
    executor = executor or AuditExecutor(storage, settings)
    runner = BatchRunner(executor, registry)

    app = FastAPI(title=settings.APP_NAME, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.audit_service = AuditService(storage, registry, runner)
    app.state.site_catalog = SiteCatalog(settings.AUDIT_SITES_DIR)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"message": str(exc)})

    @app.exception_handler(SiteNotFound)
    async def _site_not_found(request: Request, exc: SiteNotFound):
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        logger.error("Storage error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"message": "Storage operation failed", "error": str(exc)})

    app.include_router(router)
    logger.info("%s ready (storage=%s)", settings.APP_NAME, storage.name)
    return app


# ---------------------------
# Run Uvicorn (local dev)
# ---------------------------
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("batch_audit.main:create_app", factory=True, host="0.0.0.0", port=port)
