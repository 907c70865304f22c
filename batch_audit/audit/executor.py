# batch_audit/audit/executor.py
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict

from batch_audit.audit.chrome import launch_chrome
from batch_audit.audit.devices import DeviceProfile
from batch_audit.audit.lighthouse import run_lighthouse
from batch_audit.audit.naming import report_filename
from batch_audit.errors import ExecutionError, StorageError
from batch_audit.schemas import PerPageResult
from batch_audit.settings import Settings
from batch_audit.storage.base import StorageBackend

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditArtifact:
    location: str
    filename: str
    scores: Dict[str, float] = field(default_factory=dict)


class AuditExecutor:
    """
    Runs one (url, device profile) audit and persists the HTML report.

    `launcher` is an async context manager factory yielding an object with a `port`;
    `tool` is the coroutine that drives Lighthouse. Both are swappable so the batch
    logic can run without a real browser.
    """

    def __init__(
        self,
        storage: StorageBackend,
        settings: Settings,
        *,
        launcher: Callable = launch_chrome,
        tool: Callable = run_lighthouse,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.storage = storage
        self.settings = settings
        self.launcher = launcher
        self.tool = tool
        self.clock = clock

    async def run_one(self, url: str, profile: DeviceProfile, folder_name: str) -> AuditArtifact:
        try:
            async with self.launcher(self.settings) as chrome:
                report = await self.tool(url, profile, chrome.port, self.settings)
                if not report or not report.html:
                    raise ExecutionError("Lighthouse returned no report", url, profile.name)

                filename = report_filename(url, profile.name, self.clock())
                path = self.storage.report_path(folder_name, filename)
                location = await asyncio.to_thread(self.storage.write_file, path, report.html)
        except ExecutionError:
            raise
        except StorageError as e:
            raise ExecutionError(f"Failed to store report: {e}", url, profile.name) from e
        except Exception as e:
            # CancelledError is not an Exception and still propagates
            raise ExecutionError(f"{e.__class__.__name__}: {e}", url, profile.name) from e

        return AuditArtifact(location=location, filename=filename, scores=report.scores)

    async def audit_page(self, url: str, profile: DeviceProfile, folder_name: str) -> PerPageResult:
        """Like run_one, but a failed audit comes back as a failed result instead of an exception."""
        logger.info("Running %s audit for %s", profile.name, url)
        try:
            artifact = await self.run_one(url, profile, folder_name)
        except ExecutionError as e:
            logger.warning("Error auditing %s with %s: %s", url, profile.name, e)
            return PerPageResult(url=url, device_profile_name=profile.name, success=False, error=str(e))

        logger.info("Saved %s report for %s -> %s", profile.name, url, artifact.location)
        return PerPageResult(
            url=url,
            device_profile_name=profile.name,
            success=True,
            artifact_path=artifact.location,
            filename=artifact.filename,
            scores=artifact.scores or None,
        )
