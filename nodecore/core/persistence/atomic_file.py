"""
Atomic file replacement.

Writes go to a temp file in the target's directory, then ``os.replace``
onto the target, so a crash mid-write never leaves a half-written file.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` atomically.

    The permission bits of an existing file are carried over to the
    replacement.

    Args:
        path: Target file path.
        content: Full new content (UTF-8).
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    mode: int | None = None
    if path.exists():
        mode = stat.S_IMODE(path.stat().st_mode)

    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, path)
        logger.debug("Wrote %s (%d bytes)", path, len(content))
    except Exception:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to write %s", path)
        raise
