# batch_audit/services/tasks.py
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from batch_audit.schemas import PerPageResult, Task

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskRegistry:
    """
    Task id -> Task, for the lifetime of the process.

    Only the owning batch writes a task; status polls read copies. A single lock
    covers every access because batches write from the event loop while list/poll
    handlers may run in the threadpool.
    """

    def __init__(self):
        self._tasks: Dict[str, Task] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def _new_id(self) -> str:
        # millisecond timestamp, bumped on collision
        tid = int(time.time() * 1000)
        while str(tid) in self._tasks:
            tid += 1
        return str(tid)

    def create(self) -> Task:
        with self._lock:
            task = Task(id=self._new_id(), created_at=_now())
            self._tasks[task.id] = task
            return task.model_copy(deep=True)

    def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task else None

    def _running(self, task_id: str) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None:
            logger.warning("Update for unknown task %s ignored", task_id)
            return None
        if task.finished:
            # error/completed are permanent
            logger.warning("Update for finished task %s (%s) ignored", task_id, task.status)
            return None
        return task

    def begin(self, task_id: str, *, total: int, folder_name: str) -> None:
        with self._lock:
            task = self._running(task_id)
            if task:
                task.total = total
                task.folder_name = folder_name

    def record(
        self,
        task_id: str,
        result: PerPageResult,
        *,
        progress: Optional[float] = None,
        message: Optional[str] = None,
    ) -> None:
        with self._lock:
            task = self._running(task_id)
            if not task:
                return
            task.results.append(result)
            task.completed = len(task.results)
            if progress is not None:
                task.progress = max(task.progress, min(float(progress), 100.0))
            if message is not None:
                task.message = message

    def complete(self, task_id: str, message: str = "Audit completed successfully!") -> None:
        with self._lock:
            task = self._running(task_id)
            if task:
                task.status = "completed"
                task.progress = 100.0
                task.message = message
                task.finished_at = _now()

    def fail(self, task_id: str, message: str) -> None:
        with self._lock:
            task = self._running(task_id)
            if task:
                task.status = "error"
                task.message = message
                task.finished_at = _now()

    def purge_finished(self, max_age_seconds: float, now: Optional[datetime] = None) -> int:
        """Drop completed/errored tasks that finished more than max_age_seconds ago."""
        cutoff = (now or _now()) - timedelta(seconds=max_age_seconds)
        with self._lock:
            stale: List[str] = [
                tid for tid, t in self._tasks.items()
                if t.finished and t.finished_at and t.finished_at <= cutoff
            ]
            for tid in stale:
                del self._tasks[tid]
        if stale:
            logger.info("Purged %d finished task(s)", len(stale))
        return len(stale)
