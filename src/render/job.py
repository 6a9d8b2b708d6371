"""
Render Job

Runs one narration-driven render end to end:

    narration probe -> media classification -> duration reconciliation
    -> motion synthesis -> filter graph -> captions (optional)
    -> two-pass composite

The job owns a private working directory for the subtitle file and the
intermediate base render; it is removed on every exit path.

Usage:
    request = RenderRequest(
        media=[MediaReference("scene1.jpg", 1), MediaReference("scene2.mp4", 2)],
        narration_path="narration.mp3",
        output_path="output/short.mp4",
        words=load_transcript("words.json"),
    )
    result = RenderJob(load_profile("short")).run(request)
    if not result.success:
        print(result.error, result.diagnostics)

    # Or from a manifest file
    request = load_manifest("job.yaml")
"""

import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml
from loguru import logger

from src.captions.ass_renderer import CaptionRenderer, CaptionSelection, CaptionStyle
from src.captions.fonts import FontCatalog
from src.captions.timeline import Word, build_timeline, load_transcript
from src.utils.cleanup import job_workspace

from .compositor import Compositor
from .durations import DurationReconciler
from .engine import MediaEngine, ProgressCallback
from .errors import EngineFailureError, MissingAssetError, RenderError
from .filter_graph import FilterGraphBuilder
from .media import MediaClassifier, MediaReference, NarrationTrack, classify_path
from .motion import MotionSynthesizer
from .profile import RenderProfile

SUBTITLE_FILENAME = "captions.ass"


@dataclass
class RenderRequest:
    """Everything the caller hands over for one render."""
    media: List[MediaReference]
    narration_path: str
    output_path: str
    words: Optional[List[Word]] = None
    profile_name: str = "short"
    job_id: str = "render"
    seed: Optional[int] = None
    style: Optional[CaptionStyle] = None
    selection: Optional[CaptionSelection] = None

    @property
    def has_captions(self) -> bool:
        return bool(self.words)


@dataclass
class RenderResult:
    """Outcome of a render job."""
    success: bool
    output_path: Optional[str] = None
    duration: float = 0.0
    error: Optional[str] = None
    diagnostics: Optional[str] = None
    elapsed_seconds: float = 0.0


def load_manifest(manifest_path: str) -> RenderRequest:
    """
    Build a RenderRequest from a YAML manifest.

    Relative paths are resolved against the manifest's directory.

    Manifest keys:
        narration: audio file
        media: list of {path, scene}
        transcript: optional word-level JSON transcript
        profile: optional profile name (default "short")
        output: optional output path (default output/<manifest name>.mp4)
    """
    manifest = Path(manifest_path)
    with open(manifest, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    base_dir = manifest.parent

    def resolve(value: str) -> str:
        path = Path(value)
        return str(path if path.is_absolute() else base_dir / path)

    if "narration" not in data:
        raise ValueError(f"Manifest {manifest} has no 'narration' entry")

    media = []
    for item in data.get("media") or []:
        if isinstance(item, str):
            media.append(MediaReference(resolve(item)))
        else:
            scene = item.get("scene")
            media.append(MediaReference(resolve(item["path"]), int(scene) if scene is not None else None))
    if not media:
        raise ValueError(f"Manifest {manifest} lists no media")

    words = load_transcript(resolve(data["transcript"])) if data.get("transcript") else None
    output = data.get("output") or f"output/{manifest.stem}.mp4"

    return RenderRequest(
        media=media,
        narration_path=resolve(data["narration"]),
        output_path=output,
        words=words,
        profile_name=data.get("profile", "short"),
        job_id=manifest.stem,
    )


class RenderJob:
    """Drives one render request through every stage."""

    def __init__(
        self,
        profile: RenderProfile,
        engine: Optional[MediaEngine] = None,
        font_catalog: Optional[FontCatalog] = None,
        temp_root: Optional[str] = None
    ):
        """
        Args:
            profile: Render profile used by every stage
            engine: ffmpeg wrapper (default: located from env/PATH)
            font_catalog: Caption fonts (default: assets/fonts)
            temp_root: Parent of the job working directory
        """
        self.profile = profile
        self.engine = engine or MediaEngine()
        self.font_catalog = font_catalog or FontCatalog()
        self.temp_root = temp_root

    def validate(self, request: RenderRequest) -> None:
        """
        Check every input up front so a bad job fails before any work.

        Raises:
            MissingAssetError: narration or a media file does not exist
            UnsupportedMediaError: a media file has an unknown extension
        """
        if not Path(request.narration_path).exists():
            raise MissingAssetError(request.narration_path, role="narration")
        if not request.media:
            raise ValueError("At least one media reference is required")
        for reference in request.media:
            if not Path(reference.path).exists():
                raise MissingAssetError(reference.path)
            classify_path(reference.path)

    def select_captions(self, request: RenderRequest) -> CaptionSelection:
        """Resolve the job's caption style, colour and font."""
        if request.selection:
            return request.selection
        rng = random.Random(request.seed)
        return CaptionSelection.choose(rng, self.font_catalog.available(), style=request.style)

    def _fonts_dir(self, selection: CaptionSelection) -> Optional[str]:
        if selection.font.fonts_dir:
            return selection.font.fonts_dir
        if self.font_catalog.fonts_dir.exists():
            return str(self.font_catalog.fonts_dir)
        return None

    def render(
        self,
        request: RenderRequest,
        progress_callback: Optional[ProgressCallback] = None
    ) -> str:
        """
        Render the request to its output path.

        Returns:
            Path to the final video

        Raises:
            RenderError: any fatal failure (missing asset, engine failure, ...)
        """
        self.validate(request)
        profile = self.profile
        logger.info(
            f"Render job '{request.job_id}': {len(request.media)} media, "
            f"profile {profile.name} ({profile.width}x{profile.height})"
        )

        with job_workspace(self.temp_root, request.job_id) as workdir:
            narration = NarrationTrack.from_file(request.narration_path, self.engine)

            segments = MediaClassifier(self.engine).classify_all(request.media, narration.duration)
            DurationReconciler().reconcile(segments, narration.duration)
            descriptors = MotionSynthesizer(profile).synthesize_all(segments)
            graph = FilterGraphBuilder(profile).build(descriptors, narration.duration)

            subtitle_path = None
            fonts_dir = None
            if request.has_captions:
                cues = build_timeline(request.words, profile.captions.words_per_cue)
                selection = self.select_captions(request)
                subtitle_path = CaptionRenderer(profile).write(
                    cues, selection, str(workdir / SUBTITLE_FILENAME)
                )
                fonts_dir = self._fonts_dir(selection)
            else:
                logger.info("No transcript words, skipping caption overlay")

            output = Compositor(profile, self.engine).compose(
                graph,
                narration,
                request.output_path,
                workdir,
                subtitle_path=subtitle_path,
                fonts_dir=fonts_dir,
                progress_callback=progress_callback,
            )

        logger.success(f"Render complete: {output}")
        return output

    def run(
        self,
        request: RenderRequest,
        progress_callback: Optional[ProgressCallback] = None
    ) -> RenderResult:
        """Render and report the outcome instead of raising."""
        started = time.time()
        try:
            output = self.render(request, progress_callback)
        except EngineFailureError as e:
            logger.error(f"Render job '{request.job_id}' failed: {e}")
            return RenderResult(
                success=False,
                error=str(e),
                diagnostics=e.diagnostics,
                elapsed_seconds=time.time() - started,
            )
        except (RenderError, ValueError) as e:
            logger.error(f"Render job '{request.job_id}' failed: {e}")
            return RenderResult(success=False, error=str(e), elapsed_seconds=time.time() - started)

        duration = 0.0
        try:
            duration = self.engine.probe_duration(output)
        except RenderError as e:
            logger.warning(f"Could not measure rendered output: {e}")

        return RenderResult(
            success=True,
            output_path=output,
            duration=duration,
            elapsed_seconds=time.time() - started,
        )
