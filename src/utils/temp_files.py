"""Scoped temporary workspaces for extraction helpers.

Ingestion runs at upload volume, so a leaked temp file per failed upload
adds up quickly.  Every temp file the extractors create lives inside a
:func:`temporary_workspace`, which removes the whole directory when the
``with`` block exits, whether it returns, raises or is cancelled.
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

logger = structlog.get_logger(logger_name=__name__)


@contextmanager
def temporary_workspace(prefix: str = "docvault-", root: str | Path | None = None) -> Iterator[Path]:
    """Yield a fresh temporary directory and delete it on exit.

    Args:
        prefix: Directory name prefix, handy when inspecting ``/tmp``.
        root: Parent directory; the system temp dir when ``None``.
    """
    path = Path(tempfile.mkdtemp(prefix=prefix, dir=str(root) if root is not None else None))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():
            logger.warning("temp_workspace_cleanup_failed", path=str(path))
