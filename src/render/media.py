"""
Media classification and ordering.

Turns externally supplied media references (path + scene number) into
ordered MediaSegments, classifying each as a still image or a motion clip
and probing clip durations.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from .errors import MissingAssetError, ProbeError, UnsupportedMediaError

VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".flv", ".m4v"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp"}


class MediaKind(Enum):
    """Visual asset type."""
    IMAGE = "image"
    CLIP = "clip"


@dataclass
class MediaReference:
    """A media file as handed over by the caller, with its scene number."""
    path: str
    scene: Optional[int] = None


@dataclass
class MediaSegment:
    """One visual input unit of a render job."""
    kind: MediaKind
    source_path: str
    index: int
    scene: Optional[int] = None
    native_duration: Optional[float] = None
    allocated_duration: float = 0.0
    trimmed: bool = False
    probe_failed: bool = False

    @property
    def is_image(self) -> bool:
        return self.kind is MediaKind.IMAGE

    @property
    def is_clip(self) -> bool:
        return self.kind is MediaKind.CLIP


def classify_path(path: str) -> MediaKind:
    """
    Determine the media kind from the file extension.

    Raises:
        UnsupportedMediaError: extension is not a known image or video type
    """
    extension = Path(path).suffix.lower()
    if extension in VIDEO_EXTENSIONS:
        return MediaKind.CLIP
    if extension in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE
    raise UnsupportedMediaError(path)


def order_references(references: Sequence[MediaReference]) -> List[MediaReference]:
    """
    Sort references by scene number.

    References without a scene keep their relative order and go last.
    """
    for ref in references:
        if ref.scene is None:
            logger.warning(f"Media {ref.path} has no scene number, placing it last")

    return sorted(
        references,
        key=lambda ref: (ref.scene is None, ref.scene if ref.scene is not None else 0)
    )


class MediaClassifier:
    """Builds MediaSegments from references, probing clip durations."""

    def __init__(self, engine):
        """
        Args:
            engine: Object exposing probe_duration(path) -> float
        """
        self.engine = engine

    def classify(
        self,
        reference: MediaReference,
        index: int,
        nominal_duration: float
    ) -> MediaSegment:
        """
        Classify one reference.

        A clip whose duration cannot be probed is treated as if its native
        duration equalled the nominal per-segment duration.

        Raises:
            MissingAssetError: the file does not exist
            UnsupportedMediaError: unknown extension
        """
        if not Path(reference.path).exists():
            raise MissingAssetError(reference.path)

        kind = classify_path(reference.path)
        segment = MediaSegment(
            kind=kind,
            source_path=str(reference.path),
            index=index,
            scene=reference.scene,
        )

        if kind is MediaKind.CLIP:
            try:
                segment.native_duration = self.engine.probe_duration(reference.path)
            except ProbeError as e:
                logger.warning(
                    f"Could not probe clip {Path(reference.path).name}: {e}. "
                    f"Falling back to nominal duration {nominal_duration:.2f}s"
                )
                segment.native_duration = nominal_duration
                segment.probe_failed = True

        return segment

    def classify_all(
        self,
        references: Sequence[MediaReference],
        narration_duration: float
    ) -> List[MediaSegment]:
        """
        Order references by scene and classify each one.

        Args:
            references: Media references in any order
            narration_duration: Authoritative total duration in seconds

        Returns:
            MediaSegments with index set to their position after ordering
        """
        if not references:
            raise ValueError("At least one media reference is required")

        ordered = order_references(references)
        nominal = narration_duration / len(ordered)

        segments = []
        for index, reference in enumerate(ordered):
            segment = self.classify(reference, index, nominal)
            if segment.is_clip:
                logger.info(
                    f"  [{index}] CLIP  {Path(segment.source_path).name} "
                    f"(native {segment.native_duration:.2f}s)"
                )
            else:
                logger.info(f"  [{index}] IMAGE {Path(segment.source_path).name}")
            segments.append(segment)

        return segments


@dataclass(frozen=True)
class NarrationTrack:
    """The narration audio and its measured duration (the render target)."""
    path: str
    duration: float

    @classmethod
    def from_file(cls, path: str, engine) -> "NarrationTrack":
        """
        Measure a narration file.

        Raises:
            MissingAssetError: the file does not exist
            ProbeError: the duration cannot be measured
        """
        if not Path(path).exists():
            raise MissingAssetError(path, role="narration")
        duration = engine.probe_duration(path)
        logger.info(f"Narration duration: {duration:.2f}s ({Path(path).name})")
        return cls(path=str(path), duration=duration)
