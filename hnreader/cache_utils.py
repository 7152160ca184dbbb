from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from hnreader.logging_config import get_logger

logger = get_logger(__name__)


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON atomically using a temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "w") as f:
            json.dump(data, f)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def read_json(path: Path) -> Optional[Any]:
    """Load a JSON file, returning None when it is missing or unreadable."""
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning("cache_snapshot_unreadable", path=str(path), error=str(e))
        return None
