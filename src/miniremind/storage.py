"""Key-value JSON blob storage for persistent data files."""

import json
import logging
import os
import tempfile
from pathlib import Path

from miniremind.config import TZ as TZ

DATA_DIR = Path.home() / ".miniremind"
STATE_DIR = DATA_DIR / "state"

log = logging.getLogger(__name__)


def blob_path(key: str) -> Path:
    return DATA_DIR / f"{key}.json"


def read_blob(key: str) -> object | None:
    """None when the blob is missing or unreadable; corrupt blobs are logged, not raised."""
    filepath = blob_path(key)
    if not filepath.exists():
        return None
    try:
        return json.loads(filepath.read_text())
    except (OSError, ValueError):
        log.warning("Skipping corrupt blob: %s", filepath)
        return None


def write_blob(key: str, data: object) -> None:
    """Atomic write via tempfile + os.replace."""
    filepath = blob_path(key)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=filepath.parent, suffix=".tmp")
    try:
        os.write(fd, json.dumps(data, ensure_ascii=False, indent=2).encode())
    finally:
        os.close(fd)
    os.replace(tmp, filepath)


def blob_mtime(key: str) -> float | None:
    filepath = blob_path(key)
    try:
        return filepath.stat().st_mtime
    except FileNotFoundError:
        return None
