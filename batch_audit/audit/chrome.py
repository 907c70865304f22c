# batch_audit/audit/chrome.py
import asyncio
import logging
import shutil
import socket
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from batch_audit.errors import ExecutionError
from batch_audit.settings import Settings

logger = logging.getLogger(__name__)

BASE_FLAGS = [
    "--disable-extensions",
    "--no-first-run",
    "--no-default-browser-check",
]


@dataclass(frozen=True)
class ChromeInstance:
    port: int
    user_data_dir: str


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@asynccontextmanager
async def launch_chrome(settings: Settings) -> AsyncIterator[ChromeInstance]:
    """
    Start a throwaway headless Chromium for exactly one audit.

    Every launch gets its own user-data-dir so no cookies, cache or storage leak
    between device profiles. Lighthouse attaches over the remote debugging port.
    The browser is closed and the profile removed on exit, whether the audit
    succeeded or not.
    """
    port = _free_port()
    playwright = await async_playwright().start()
    profile_dir = None
    context = None
    try:
        profile_dir = await asyncio.to_thread(tempfile.mkdtemp, prefix="lh-chrome-")
        try:
            context = await playwright.chromium.launch_persistent_context(
                user_data_dir=profile_dir,
                headless=True,
                executable_path=settings.CHROME_PATH or None,
                args=[f"--remote-debugging-port={port}", *BASE_FLAGS, *settings.chrome_flags],
                timeout=settings.CHROME_STARTUP_TIMEOUT * 1000,
            )
        except PlaywrightError as e:
            raise ExecutionError(f"Failed to launch Chrome: {e}") from e

        logger.debug("Chrome ready on port %s (profile %s)", port, profile_dir)
        yield ChromeInstance(port=port, user_data_dir=profile_dir)
    finally:
        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.warning("Error closing Chrome on port %s: %s", port, e)
        await playwright.stop()
        if profile_dir:
            await asyncio.to_thread(shutil.rmtree, profile_dir, True)
