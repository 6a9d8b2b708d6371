"""
FFmpeg Engine Wrapper

Locates ffmpeg/ffprobe, probes media durations and runs blocking render
passes while streaming a progress percentage to an optional callback.

Progress is advisory only. A pass either completes or raises
EngineFailureError; any partially written output file is removed first.

Usage:
    engine = MediaEngine()
    duration = engine.probe_duration("clip.mp4")
    engine.run(cmd, stage="base", expected_duration=42.0,
               output_path="out.mp4", progress_callback=on_progress)
"""

import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from loguru import logger

from .errors import EngineFailureError, EngineNotFoundError, ProbeError

ProgressCallback = Callable[[str, float], None]

_TIME_PATTERN = re.compile(r"time=(\d+):(\d+):(\d+(?:\.\d+)?)")


def parse_progress_time(line: str) -> Optional[float]:
    """Extract the elapsed output time (seconds) from an ffmpeg stats line."""
    match = _TIME_PATTERN.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class MediaEngine:
    """Thin wrapper around the ffmpeg and ffprobe executables."""

    PROBE_TIMEOUT = 30

    def __init__(
        self,
        ffmpeg: Optional[str] = None,
        ffprobe: Optional[str] = None
    ):
        """
        Args:
            ffmpeg: Explicit ffmpeg path (default: FFMPEG_PATH env or PATH lookup)
            ffprobe: Explicit ffprobe path (default: FFPROBE_PATH env or derived)
        """
        self.ffmpeg = ffmpeg or self._find_ffmpeg()
        self.ffprobe = ffprobe or self._find_ffprobe()

        if not self.ffmpeg:
            logger.error("FFmpeg not found! Install FFmpeg to render videos.")

    def _find_ffmpeg(self) -> Optional[str]:
        """Find FFmpeg executable."""
        env_path = os.getenv("FFMPEG_PATH")
        if env_path and os.path.exists(env_path):
            return env_path

        if shutil.which("ffmpeg"):
            return "ffmpeg"

        # Check common Windows locations
        common_paths = [
            os.path.expanduser("~\\AppData\\Local\\Microsoft\\WinGet\\Packages"),
            "C:\\ffmpeg\\bin",
            "C:\\Program Files\\ffmpeg\\bin",
        ]

        for base_path in common_paths:
            if os.path.exists(base_path):
                for root, dirs, files in os.walk(base_path):
                    if "ffmpeg.exe" in files:
                        return os.path.join(root, "ffmpeg.exe")

        return None

    def _find_ffprobe(self) -> Optional[str]:
        """Find FFprobe executable."""
        env_path = os.getenv("FFPROBE_PATH")
        if env_path and os.path.exists(env_path):
            return env_path

        if shutil.which("ffprobe"):
            return "ffprobe"

        if self.ffmpeg:
            # Only replace the executable name, not directory names
            ffprobe = self.ffmpeg.replace("ffmpeg.exe", "ffprobe.exe")
            if ffprobe == self.ffmpeg and self.ffmpeg.endswith("ffmpeg"):
                ffprobe = self.ffmpeg[:-6] + "ffprobe"
            if os.path.exists(ffprobe):
                return ffprobe

        return None

    def require_ffmpeg(self) -> str:
        if not self.ffmpeg:
            raise EngineNotFoundError("ffmpeg executable not found (set FFMPEG_PATH or add it to PATH)")
        return self.ffmpeg

    def probe_duration(self, media_path: str) -> float:
        """
        Read a media file's container duration with ffprobe.

        Raises:
            ProbeError: ffprobe is missing, failed, or returned no duration
        """
        if not self.ffprobe:
            raise ProbeError("ffprobe executable not found")

        cmd = [
            self.ffprobe, '-v', 'error',
            '-show_entries', 'format=duration',
            '-of', 'default=noprint_wrappers=1:nokey=1',
            str(media_path)
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.PROBE_TIMEOUT)
        except (subprocess.TimeoutExpired, subprocess.SubprocessError, OSError) as e:
            raise ProbeError(f"ffprobe failed for {media_path}: {e}") from e

        output = result.stdout.strip()
        if result.returncode != 0 or not output:
            raise ProbeError(
                f"ffprobe returned no duration for {media_path}: {result.stderr.strip()[:200]}"
            )

        try:
            duration = float(output.splitlines()[0])
        except ValueError as e:
            raise ProbeError(f"Unparseable duration '{output}' for {media_path}") from e

        if duration <= 0:
            raise ProbeError(f"Non-positive duration {duration} for {media_path}")
        return duration

    def run(
        self,
        cmd: List[str],
        stage: str,
        expected_duration: float = 0.0,
        output_path: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> None:
        """
        Run one blocking ffmpeg pass.

        If anything raises while the pass is running (including a progress
        callback or KeyboardInterrupt), ffmpeg is killed and the partial
        output removed before the exception propagates.

        Args:
            cmd: Full command line (executable first)
            stage: Pass name used in logs, progress reports and errors
            expected_duration: Output length used to compute percentages
            output_path: File this pass writes; deleted if the pass fails
            progress_callback: Optional callback(stage, percent 0-100)

        Raises:
            EngineFailureError: ffmpeg could not start or exited non-zero
        """
        logger.debug(f"[{stage}] ffmpeg command: {subprocess.list2cmdline(cmd)}")

        output_lines: List[str] = []
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True
            )
        except OSError as e:
            self._discard_partial(output_path)
            raise EngineFailureError(stage, None, stderr=str(e), command=cmd) from e

        last_percent = -1.0
        with process:
            try:
                for line in process.stdout:
                    line = line.rstrip()
                    if not line:
                        continue

                    elapsed = parse_progress_time(line)
                    if elapsed is None:
                        output_lines.append(line)
                        continue

                    if progress_callback and expected_duration > 0:
                        percent = max(0.0, min(100.0, elapsed / expected_duration * 100))
                        if percent - last_percent >= 1.0 or percent >= 100.0:
                            last_percent = percent
                            progress_callback(stage, percent)

                returncode = process.wait()
            except BaseException:
                logger.error(f"[{stage}] Pass interrupted, stopping ffmpeg")
                process.kill()
                process.wait()
                self._discard_partial(output_path)
                raise

        output_text = "\n".join(output_lines)

        if returncode != 0:
            self._discard_partial(output_path)
            logger.error(f"[{stage}] ffmpeg exited with code {returncode}")
            logger.error(f"[{stage}] ffmpeg output tail:\n{output_text[-1500:]}")
            raise EngineFailureError(stage, returncode, stderr=output_text, command=cmd)

        if progress_callback and last_percent < 100.0:
            progress_callback(stage, 100.0)

    @staticmethod
    def _discard_partial(output_path: Optional[str]) -> None:
        if not output_path:
            return
        path = Path(output_path)
        if path.exists():
            try:
                path.unlink()
                logger.debug(f"Removed partial output: {path}")
            except OSError as e:
                logger.warning(f"Could not remove partial output {path}: {e}")
