# batch_audit/audit/naming.py
"""
Artifact naming. The on-disk / in-bucket layout is

    reports/{configName}-{YYYY-MM-DD}/{pathSlug}-{device}-{timestamp}.html

and existing report folders depend on it, so keep these formats stable.
"""
import re
from datetime import date, datetime, timezone
from urllib.parse import urlparse

_NON_WORD = re.compile(r"[^A-Za-z0-9_]+")


def page_slug(url: str) -> str:
    path = urlparse(url).path or "/"
    if path == "/":
        return "home"
    return _NON_WORD.sub("-", path).strip("-") or "home"


def report_timestamp(now: datetime) -> str:
    """ISO-8601 UTC with milliseconds, ':' and '.' swapped for '-' (2026-10-17T21-41-00-123Z)."""
    utc = now.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H-%M-%S-") + f"{utc.microsecond // 1000:03d}Z"


def report_filename(url: str, device: str, now: datetime) -> str:
    return f"{page_slug(url)}-{device}-{report_timestamp(now)}.html"


def folder_name_for(config_name: str, day: date) -> str:
    # Same name + same day share a folder.
    return f"{config_name}-{day:%Y-%m-%d}"
