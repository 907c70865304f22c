# batch_audit/services/batches.py
import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from batch_audit.audit.runner import BatchRunner
from batch_audit.errors import StorageError, ValidationError
from batch_audit.schemas import AuditConfig, FileInfo, FolderInfo, Task
from batch_audit.services.tasks import TaskRegistry
from batch_audit.storage.base import StorageBackend, validate_folder_name

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "audit"


def parse_config(data: Any) -> AuditConfig:
    """Validate raw JSON into an AuditConfig, or raise ValidationError with a readable message."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid configuration format: expected a JSON object")
    try:
        return AuditConfig.model_validate(data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid configuration format: {details}") from e


def resolve_config_name(data: Dict[str, Any], config: AuditConfig, explicit: Optional[str] = None) -> str:
    name = explicit or data.get("configName") or config.name or DEFAULT_CONFIG_NAME
    if not isinstance(name, str):
        raise ValidationError("configName must be a string")
    if name.endswith(".json"):
        name = name[: -len(".json")]
    try:
        return validate_folder_name(name)
    except StorageError as e:
        raise ValidationError(f"Invalid config name: {name!r}") from e


class AuditService:
    """
    Business logic behind the HTTP boundary: submit batches, poll them, and manage
    the report folders they produce.
    """

    def __init__(self, storage: StorageBackend, registry: TaskRegistry, runner: BatchRunner):
        self.storage = storage
        self.registry = registry
        self.runner = runner
        # strong refs so running batches are not garbage collected
        self._futures: Dict[str, asyncio.Task] = {}

    def submit(self, data: Any, config_name: Optional[str] = None) -> str:
        """
        Validate, register and start a batch. Returns the task id immediately;
        the batch itself runs as its own asyncio task. Must be called from a running loop.
        """
        config = parse_config(data)
        name = resolve_config_name(data, config, config_name)

        task = self.registry.create()
        future = asyncio.create_task(self.runner.run(config, task.id, name), name=f"batch-{task.id}")
        self._futures[task.id] = future
        future.add_done_callback(lambda _f, tid=task.id: self._futures.pop(tid, None))

        logger.info("Audit %s queued: %s (%d paths) as %s", task.id, config.base, len(config.paths), name)
        return task.id

    def status(self, task_id: str) -> Optional[Task]:
        return self.registry.get(task_id)

    async def wait(self, task_id: str) -> Optional[Task]:
        future = self._futures.get(task_id)
        if future is not None:
            await future
        return self.registry.get(task_id)

    @property
    def running(self) -> int:
        return len(self._futures)

    def list_folders(self) -> List[FolderInfo]:
        return self.storage.list_folders()

    def list_files(self, folder: str) -> List[FileInfo]:
        return self.storage.list_files(self._folder(folder))

    def delete_folder(self, folder: str) -> bool:
        ok = self.storage.delete_folder(self._folder(folder))
        logger.info("Folder %s deleted", folder)
        return ok

    @staticmethod
    def _folder(folder: str) -> str:
        try:
            return validate_folder_name(folder)
        except StorageError as e:
            raise ValidationError(str(e)) from e
