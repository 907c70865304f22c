# batch_audit/audit/runner.py
import asyncio
import logging
from datetime import date
from typing import Callable, Sequence

from batch_audit.audit.devices import DEVICE_PROFILES, DeviceProfile
from batch_audit.audit.executor import AuditExecutor
from batch_audit.audit.naming import folder_name_for
from batch_audit.errors import FatalBatchError
from batch_audit.schemas import AuditConfig
from batch_audit.services.tasks import TaskRegistry

logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Walks the paths × device profiles matrix of one AuditConfig, one audit at a time.

    It never returns anything useful: all progress and results go through the
    TaskRegistry, which is what status polling reads.
    """

    def __init__(
        self,
        executor: AuditExecutor,
        registry: TaskRegistry,
        profiles: Sequence[DeviceProfile] = DEVICE_PROFILES,
        today: Callable[[], date] = date.today,
    ):
        self.executor = executor
        self.registry = registry
        self.profiles = tuple(profiles)
        self.today = today

    async def run(self, config: AuditConfig, task_id: str, config_name: str = "audit") -> None:
        try:
            await self._run(config, task_id, config_name)
        except asyncio.CancelledError:
            self.registry.fail(task_id, "Audit cancelled")
            raise
        except FatalBatchError as e:
            logger.exception("Batch %s failed", task_id)
            self.registry.fail(task_id, str(e))

    async def _run(self, config: AuditConfig, task_id: str, config_name: str) -> None:
        try:
            await self._walk(config, task_id, config_name)
        except Exception as e:
            # anything escaping the per-page scope ends the batch
            raise FatalBatchError(str(e) or e.__class__.__name__) from e

    async def _walk(self, config: AuditConfig, task_id: str, config_name: str) -> None:
        folder_name = folder_name_for(config_name, self.today())
        total = len(config.paths) * len(self.profiles)
        self.registry.begin(task_id, total=total, folder_name=folder_name)
        logger.info("Batch %s started: %d audits into %s", task_id, total, folder_name)

        completed = 0
        succeeded = 0
        for path in config.paths:
            url = config.full_url(path)
            for profile in self.profiles:
                result = await self.executor.audit_page(url, profile, folder_name)
                completed += 1
                succeeded += int(result.success)
                if completed < total:
                    self.registry.record(
                        task_id,
                        result,
                        progress=completed / total * 100,
                        message=f"Processing {completed}/{total} pages...",
                    )
                else:
                    # 100% is only ever published together with "completed"
                    self.registry.record(task_id, result)

        self.registry.complete(
            task_id,
            f"Audit completed successfully! Generated {succeeded}/{total} reports.",
        )
        logger.info("Batch %s completed: %d/%d reports in %s", task_id, succeeded, total, folder_name)
