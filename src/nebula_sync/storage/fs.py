from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


# Windows may briefly hold the target open (indexers, AV scanners).
@retry(
    wait=wait_fixed(0.05),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type(PermissionError),
    reraise=True,
)
def _replace(src: str, dst: Path) -> None:
    os.replace(src, dst)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically write bytes to a path using a temporary file and replace.

    Ensures that either the old file remains or the new file fully replaces it.
    """
    ensure_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        _replace(tmp_name, path)
    finally:
        try:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
        except OSError:
            logger.debug("Could not remove temp file %s", tmp_name, exc_info=True)


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))
