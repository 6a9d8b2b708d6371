"""
Tests for job workspace lifecycle and stale-workspace cleanup.
"""

import os
import time
from unittest.mock import patch

import pytest

from src.utils.cleanup import (
    WORKSPACE_PREFIX,
    default_temp_root,
    format_size,
    job_workspace,
    sweep_stale_workspaces,
)


def _age(path, hours):
    stamp = time.time() - hours * 3600
    os.utime(path, (stamp, stamp))


class TestJobWorkspace:
    """Tests for the job_workspace context manager."""

    def test_created_and_removed(self, temp_dir):
        with job_workspace(temp_dir, "episode 7") as workdir:
            assert workdir.exists()
            assert workdir.parent == temp_dir
            assert workdir.name.startswith(f"{WORKSPACE_PREFIX}episode_7_")
            (workdir / "base_render.mp4").write_bytes(b"x")

        assert not workdir.exists()

    def test_removed_on_error(self, temp_dir):
        with pytest.raises(RuntimeError):
            with job_workspace(temp_dir) as workdir:
                (workdir / "captions.ass").write_text("x")
                raise RuntimeError("render failed")

        assert not workdir.exists()

    def test_concurrent_jobs_get_separate_directories(self, temp_dir):
        with job_workspace(temp_dir, "same") as first, job_workspace(temp_dir, "same") as second:
            assert first != second

    def test_default_root_from_env(self, temp_dir):
        with patch.dict(os.environ, {"RENDER_TEMP_DIR": str(temp_dir)}):
            assert default_temp_root() == temp_dir


class TestSweepStaleWorkspaces:
    """Tests for sweep_stale_workspaces."""

    def test_removes_only_old_job_directories(self, temp_dir):
        old = temp_dir / "job_a_20260101_000000_x"
        old.mkdir()
        (old / "base_render.mp4").write_bytes(b"0" * 2048)
        fresh = temp_dir / "job_b_20260101_000000_y"
        fresh.mkdir()
        other = temp_dir / "keep_me"
        other.mkdir()
        _age(old, 12)
        _age(other, 12)

        result = sweep_stale_workspaces(temp_dir, max_age_hours=6)

        assert result["removed"] == [str(old)]
        assert result["space_freed_bytes"] == 2048
        assert result["errors"] == []
        assert not old.exists()
        assert fresh.exists()
        assert other.exists()

    def test_dry_run_keeps_files(self, temp_dir):
        old = temp_dir / "job_c"
        old.mkdir()
        _age(old, 24)

        result = sweep_stale_workspaces(temp_dir, max_age_hours=1, dry_run=True)

        assert result["dry_run"] is True
        assert result["removed"] == [str(old)]
        assert old.exists()

    def test_missing_root(self, temp_dir):
        result = sweep_stale_workspaces(temp_dir / "nope")
        assert result["removed"] == []


class TestFormatSize:
    """Tests for format_size."""

    @pytest.mark.parametrize("size,expected", [(512, "512.00 B"), (2048, "2.00 KB"), (3 * 1024 ** 3, "3.00 GB")])
    def test_units(self, size, expected):
        assert format_size(size) == expected
