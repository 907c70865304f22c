# batch_audit/services/sites.py
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List
from urllib.parse import urlparse

from batch_audit.errors import SiteNotFound, ValidationError
from batch_audit.schemas import SiteSummary

logger = logging.getLogger(__name__)


class SiteCatalog:
    """Pre-configured audit sites: one JSON config per file in a directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def list_sites(self) -> List[SiteSummary]:
        if not self.directory.is_dir():
            return []

        sites: List[SiteSummary] = []
        for path in self.directory.glob("*.json"):
            try:
                content = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Skipping unreadable site config %s: %s", path.name, e)
                continue

            st = path.stat()
            base = content.get("base") if isinstance(content, dict) else None
            paths = content.get("paths") if isinstance(content, dict) else None
            sites.append(SiteSummary(
                name=path.stem,
                filename=path.name,
                display_name=(urlparse(base).hostname if base else None) or path.stem,
                base=base,
                path_count=len(paths) if isinstance(paths, list) else 0,
                created=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                size=st.st_size,
            ))
        return sorted(sites, key=lambda s: s.created, reverse=True)

    def load_site(self, filename: str) -> Dict[str, Any]:
        if not filename or not filename.endswith(".json"):
            raise ValidationError("Valid filename required")

        # basename only: no directory traversal
        path = self.directory / Path(filename).name
        if not path.is_file():
            raise SiteNotFound(f"File not found: {filename}")

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {path.name}: {e}") from e
