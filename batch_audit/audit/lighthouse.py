# batch_audit/audit/lighthouse.py
import asyncio
import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from batch_audit.audit.devices import DeviceProfile
from batch_audit.errors import ExecutionError
from batch_audit.settings import Settings

logger = logging.getLogger(__name__)

CATEGORIES = ("performance", "accessibility", "best-practices", "seo")


def _clamp_score(v: Optional[float]) -> Optional[float]:
    """Lighthouse category scores are 0..1 (or null). Convert to 0..100."""
    if v is None:
        return None
    try:
        return max(0.0, min(100.0, float(v) * 100.0))
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class LighthouseReport:
    html: str
    lhr: Dict[str, Any] = field(default_factory=dict)

    @property
    def scores(self) -> Dict[str, float]:
        categories = self.lhr.get("categories") or {}
        out: Dict[str, float] = {}
        for name in CATEGORIES:
            score = _clamp_score((categories.get(name) or {}).get("score"))
            if score is not None:
                out[name] = round(score, 1)
        return out


def build_command(url: str, profile: DeviceProfile, port: int, output_base: str, settings: Settings):
    return [
        settings.LIGHTHOUSE_PATH,
        url,
        f"--port={port}",
        "--output=html",
        "--output=json",
        f"--output-path={output_base}",
        f"--only-categories={','.join(CATEGORIES)}",
        "--disable-storage-reset",
        "--quiet",
        *profile.lighthouse_flags(),
    ]


def _load_lhr(path: str) -> Dict[str, Any]:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:
        logger.warning("Unreadable Lighthouse JSON %s: %s", path, e)
        return {}


def _read_outputs(output_base: str) -> Optional[LighthouseReport]:
    # With several --output values Lighthouse writes <base>.report.<ext>
    html_path = f"{output_base}.report.html"
    if not os.path.isfile(html_path):
        return None
    with open(html_path, encoding="utf-8", errors="replace") as fh:
        html = fh.read()
    return LighthouseReport(html=html, lhr=_load_lhr(f"{output_base}.report.json"))


async def run_lighthouse(url: str, profile: DeviceProfile, port: int, settings: Settings) -> LighthouseReport:
    """
    Run the Lighthouse CLI against an already running Chrome on `port`.
    Raises ExecutionError when the tool cannot start, times out, fails, or writes no report.
    """
    tmp = await asyncio.to_thread(tempfile.mkdtemp, prefix="lh-report-")
    try:
        output_base = os.path.join(tmp, "report")
        cmd = build_command(url, profile, port, output_base, settings)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionError(f"Failed to start Lighthouse ({settings.LIGHTHOUSE_PATH}): {e}", url, profile.name) from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=settings.AUDIT_TIMEOUT)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise ExecutionError(f"Lighthouse timed out after {settings.AUDIT_TIMEOUT:.0f}s", url, profile.name)

        if proc.returncode != 0:
            tail = (stderr or b"").decode("utf-8", errors="replace").strip()[-500:]
            raise ExecutionError(f"Lighthouse exited with code {proc.returncode}: {tail}", url, profile.name)

        report = await asyncio.to_thread(_read_outputs, output_base)
    finally:
        await asyncio.to_thread(shutil.rmtree, tmp, True)

    if report is None:
        raise ExecutionError("Lighthouse returned no report", url, profile.name)

    runtime_error = report.lhr.get("runtimeError") or {}
    if runtime_error.get("code"):
        raise ExecutionError(f"{runtime_error.get('code')}: {runtime_error.get('message', '')}".strip(), url, profile.name)

    return report
