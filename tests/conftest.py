"""
Pytest configuration and fixtures for the renderer tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_render_env():
    """Clear render-related environment overrides."""
    keys = ["RENDER_PRESET", "RENDER_CRF", "RENDER_TEMP_DIR", "RENDER_FONTS_DIR"]
    saved = {key: os.environ.pop(key) for key in keys if key in os.environ}
    yield
    os.environ.update(saved)


@pytest.fixture
def short_profile(clean_render_env):
    """Vertical Ken Burns profile from the built-in defaults."""
    from src.render.profile import load_profile
    return load_profile("short", config_path=Path("/nonexistent/render.yaml"))


@pytest.fixture
def long_profile(clean_render_env):
    """Horizontal pan profile from the built-in defaults."""
    from src.render.profile import load_profile
    return load_profile("long", config_path=Path("/nonexistent/render.yaml"))


@pytest.fixture
def make_file(temp_dir):
    """Create an (empty) file under temp_dir and return its path as str."""
    def _make(name: str, content: bytes = b"\x00") -> str:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return str(path)
    return _make


@pytest.fixture
def make_segment():
    """Factory for MediaSegments."""
    from src.render.media import MediaKind, MediaSegment

    def _make(index: int, kind: str = "image", native: float = None, path: str = None):
        media_kind = MediaKind.CLIP if kind == "clip" else MediaKind.IMAGE
        suffix = ".mp4" if media_kind is MediaKind.CLIP else ".jpg"
        return MediaSegment(
            kind=media_kind,
            source_path=path or f"/media/segment_{index}{suffix}",
            index=index,
            scene=index + 1,
            native_duration=native,
        )
    return _make


@pytest.fixture
def make_words():
    """Factory for evenly spaced Words (0.5s each, back to back)."""
    from src.captions.timeline import Word

    def _make(count: int, length: float = 0.5):
        return [
            Word(text=f"word{i}", start=round(i * length, 3), end=round((i + 1) * length, 3))
            for i in range(count)
        ]
    return _make


@pytest.fixture
def fake_engine():
    """
    MediaEngine stand-in.

    probe_duration returns values from probe_durations (keyed by file name)
    and run() records commands, creating the output file like ffmpeg would.
    """
    from src.render.errors import ProbeError

    engine = MagicMock()
    engine.probe_durations = {}
    engine.commands = []

    def _probe(path):
        name = Path(path).name
        if name not in engine.probe_durations:
            raise ProbeError(f"no duration for {name}")
        return engine.probe_durations[name]

    def _run(cmd, stage, expected_duration=0.0, output_path=None, progress_callback=None):
        engine.commands.append((stage, list(cmd)))
        if output_path:
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
            Path(output_path).write_bytes(b"video")
        if progress_callback:
            progress_callback(stage, 100.0)

    engine.probe_duration.side_effect = _probe
    engine.run.side_effect = _run
    engine.require_ffmpeg.return_value = "ffmpeg"
    return engine


@pytest.fixture
def mock_logger():
    """Mock loguru logger."""
    with patch("loguru.logger") as mock:
        yield mock
