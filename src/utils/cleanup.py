#!/usr/bin/env python3
"""
Job workspace lifecycle and stale-workspace cleanup.

Every render job owns one working directory (downloaded sources, the
intermediate base render, the subtitle file). job_workspace() creates it
and removes it on every exit path. sweep_stale_workspaces() catches the
directories left behind when a process was killed before its context
manager could run.

Usage:
    with job_workspace(temp_root, "script_42") as workdir:
        ...

    python run.py cleanup              # Remove workspaces older than 6 hours
    python run.py cleanup --hours 1    # Remove workspaces older than 1 hour
    python run.py cleanup --dry-run    # Preview what would be deleted
"""

import os
import re
import shutil
import tempfile
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger

WORKSPACE_PREFIX = "job_"


def default_temp_root() -> Path:
    """Workspace root: RENDER_TEMP_DIR or <system temp>/narration_renders."""
    return Path(os.getenv("RENDER_TEMP_DIR") or Path(tempfile.gettempdir()) / "narration_renders")


def _safe_job_id(job_id: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", str(job_id)) or "job"


@contextmanager
def job_workspace(root: Optional[Path] = None, job_id: str = "render") -> Iterator[Path]:
    """
    Create a private working directory for one job and always remove it.

    Args:
        root: Parent directory (default: default_temp_root())
        job_id: Identifier embedded in the directory name

    Yields:
        Path to the job directory
    """
    root = Path(root) if root else default_temp_root()
    root.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    workdir = Path(tempfile.mkdtemp(prefix=f"{WORKSPACE_PREFIX}{_safe_job_id(job_id)}_{stamp}_", dir=root))
    logger.debug(f"Created job workspace: {workdir}")

    try:
        yield workdir
    finally:
        shutil.rmtree(workdir, ignore_errors=True)
        if workdir.exists():
            logger.warning(f"Job workspace could not be fully removed: {workdir}")
        else:
            logger.debug(f"Removed job workspace: {workdir}")


def format_size(bytes_size: int) -> str:
    """Format bytes to human readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_size < 1024:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024
    return f"{bytes_size:.2f} PB"


def _directory_size(path: Path) -> int:
    total = 0
    for file in path.rglob("*"):
        try:
            if file.is_file():
                total += file.stat().st_size
        except OSError:
            continue
    return total


def sweep_stale_workspaces(
    root: Optional[Path] = None,
    max_age_hours: float = 6.0,
    dry_run: bool = False
) -> Dict[str, Any]:
    """
    Remove job workspaces older than max_age_hours.

    Args:
        root: Workspace root (default: default_temp_root())
        max_age_hours: Age threshold based on directory modification time
        dry_run: If True, only report what would be deleted

    Returns:
        dict with cleanup statistics:
            - removed: Paths removed (or that would be removed)
            - space_freed_bytes: Total bytes freed
            - errors: List of any errors encountered
            - dry_run: Whether this was a dry run
    """
    root = Path(root) if root else default_temp_root()
    removed: List[str] = []
    errors: List[str] = []
    freed = 0

    if not root.exists():
        return {"removed": removed, "space_freed_bytes": 0, "errors": errors, "dry_run": dry_run}

    cutoff = time.time() - max_age_hours * 3600

    for entry in root.iterdir():
        if not entry.is_dir() or not entry.name.startswith(WORKSPACE_PREFIX):
            continue

        try:
            if entry.stat().st_mtime > cutoff:
                continue

            size = _directory_size(entry)
            action = "Would delete" if dry_run else "Deleting"
            logger.info(f"  {action}: {entry} ({format_size(size)})")

            if not dry_run:
                shutil.rmtree(entry)

            removed.append(str(entry))
            freed += size
        except OSError as e:
            errors.append(f"Error removing {entry}: {e}")
            logger.warning(f"Error removing {entry}: {e}")

    if removed:
        logger.info(f"Stale workspaces: {len(removed)} removed, {format_size(freed)} freed")

    return {"removed": removed, "space_freed_bytes": freed, "errors": errors, "dry_run": dry_run}
