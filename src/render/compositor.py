"""
Two-pass compositor.

Pass 1 (base render) runs the filter graph over every segment source plus
the narration and caps the output at the narration duration. Pass 2
(caption overlay) burns the ASS file into the base render and copies the
audio stream untouched. Without captions the base render is renamed into
place and pass 2 never runs.
"""

import os
import shutil
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .engine import MediaEngine, ProgressCallback
from .filter_graph import FilterGraph, subtitle_overlay_filter
from .media import NarrationTrack
from .profile import RenderProfile

BASE_STAGE = "base render"
OVERLAY_STAGE = "caption overlay"


def move_into_place(source: Path, target: Path) -> None:
    """Rename source to target, falling back to a move across filesystems."""
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.replace(source, target)
    except OSError:
        shutil.move(str(source), str(target))


class Compositor:
    """Drives the base render and the optional caption overlay."""

    BASE_FILENAME = "base_render.mp4"

    def __init__(self, profile: RenderProfile, engine: MediaEngine):
        self.profile = profile
        self.engine = engine

    def _video_codec_args(self) -> List[str]:
        enc = self.profile.encoder
        return [
            '-c:v', enc.codec,
            '-preset', enc.preset,
            '-crf', str(enc.crf),
            '-pix_fmt', enc.pixel_format,
        ]

    def base_command(
        self,
        graph: FilterGraph,
        narration: NarrationTrack,
        output_path: str
    ) -> List[str]:
        """Build the pass 1 command line."""
        cmd = [self.engine.require_ffmpeg(), '-y']
        for graph_input in graph.inputs:
            cmd.extend(graph_input.to_args())
        cmd.extend(['-i', narration.path])

        audio_input = len(graph.inputs)
        enc = self.profile.encoder
        cmd.extend([
            '-filter_complex', graph.serialize(),
            '-map', f'[{graph.output_label}]',
            '-map', f'{audio_input}:a',
            *self._video_codec_args(),
            '-c:a', enc.audio_codec,
            '-b:a', enc.audio_bitrate,
            '-t', f'{narration.duration:.3f}',
            str(output_path)
        ])
        return cmd

    def overlay_command(
        self,
        base_path: str,
        subtitle_path: str,
        output_path: str,
        fonts_dir: Optional[str] = None
    ) -> List[str]:
        """Build the pass 2 command line."""
        overlay = subtitle_overlay_filter(subtitle_path, fonts_dir)
        return [
            self.engine.require_ffmpeg(), '-y',
            '-i', str(base_path),
            '-vf', overlay.serialize(),
            *self._video_codec_args(),
            '-c:a', 'copy',
            str(output_path)
        ]

    def compose(
        self,
        graph: FilterGraph,
        narration: NarrationTrack,
        output_path: str,
        workdir: Path,
        subtitle_path: Optional[str] = None,
        fonts_dir: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        """
        Run pass 1 and, when a subtitle file is given, pass 2.

        Args:
            graph: Base-render filter graph
            narration: Narration track (its duration caps the output)
            output_path: Final video path
            workdir: Job working directory for the intermediate render
            subtitle_path: ASS file, or None to skip the overlay pass
            fonts_dir: Directory holding caption font files
            progress_callback: Optional callback(stage, percent)

        Returns:
            Path to the final video

        Raises:
            EngineFailureError: either pass failed
        """
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        base_path = Path(workdir) / self.BASE_FILENAME

        logger.info(
            f"Pass 1/{2 if subtitle_path else 1}: rendering {len(graph.inputs)} segments "
            f"({graph.visual_duration:.2f}s of visuals, capped at {narration.duration:.2f}s)"
        )
        self.engine.run(
            self.base_command(graph, narration, str(base_path)),
            stage=BASE_STAGE,
            expected_duration=narration.duration,
            output_path=str(base_path),
            progress_callback=progress_callback,
        )
        logger.success("Base render complete")

        if not subtitle_path:
            move_into_place(base_path, output)
            logger.info(f"No captions: base render moved to {output}")
            return str(output)

        logger.info("Pass 2/2: burning in captions")
        self.engine.run(
            self.overlay_command(str(base_path), subtitle_path, str(output), fonts_dir),
            stage=OVERLAY_STAGE,
            expected_duration=narration.duration,
            output_path=str(output),
            progress_callback=progress_callback,
        )

        base_path.unlink(missing_ok=True)
        logger.success(f"Captions burned in: {output}")
        return str(output)
