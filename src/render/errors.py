"""
Render error types.

MissingAssetError and EngineFailureError always abort a job. ProbeError is
fatal for the narration only: clip probe failures and duration divergence
are logged and absorbed where they occur.
"""

from typing import List, Optional


class RenderError(Exception):
    """Base class for all render job failures."""


class MissingAssetError(RenderError):
    """A referenced source file does not exist at render time."""

    def __init__(self, path: str, role: str = "media"):
        self.path = str(path)
        self.role = role
        super().__init__(f"{role} file not found: {self.path}")


class UnsupportedMediaError(RenderError):
    """File extension is neither a known image nor a known video type."""

    def __init__(self, path: str):
        self.path = str(path)
        super().__init__(f"Unsupported media type: {self.path}")


class ProbeError(RenderError):
    """ffprobe could not measure a media duration."""


class EngineNotFoundError(RenderError):
    """No ffmpeg/ffprobe executable could be located."""


class EngineFailureError(RenderError):
    """The media engine exited non-zero during a render pass."""

    def __init__(
        self,
        stage: str,
        returncode: Optional[int],
        stderr: str = "",
        stdout: str = "",
        command: Optional[List[str]] = None
    ):
        self.stage = stage
        self.returncode = returncode
        self.stderr = stderr or ""
        self.stdout = stdout or ""
        self.command = command or []
        super().__init__(f"ffmpeg failed during {stage} (exit code {returncode})")

    @property
    def diagnostics(self) -> str:
        """Captured engine output for operator visibility."""
        parts = []
        if self.stderr:
            parts.append(f"STDERR:\n{self.stderr}")
        if self.stdout:
            parts.append(f"STDOUT:\n{self.stdout}")
        return "\n\n".join(parts) or "No diagnostic output captured"
