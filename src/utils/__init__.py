# Utils module

from src.utils.cleanup import (
    job_workspace,
    sweep_stale_workspaces,
    format_size,
)

__all__ = [
    "job_workspace",
    "sweep_stale_workspaces",
    "format_size",
]
