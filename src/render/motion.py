"""
Motion Synthesis (Ken Burns)

Produces per-segment motion descriptors. Nothing in here touches files or
the media engine; the filter graph builder turns descriptors into ffmpeg
stages.

Short-form (vertical) images get a two-phase zoom: a contraction from
zoom_max to zoom_min over the first half of the segment and an expansion
back to zoom_max over the second half. Both phases use a power-8 easing
curve, so nearly all visible motion sits in the first and last ~15% of
each phase with a near-static hold in the middle. Pan offsets use the same
curve so pan and zoom stay synchronized.

Long-form (horizontal) images get no zoom, only a linear horizontal pan
across the whole segment, alternating direction by index.

Clips keep their native motion and are only scaled to cover and centre
cropped.
"""

from dataclasses import dataclass
from typing import List, Union

from loguru import logger

from .media import MediaSegment
from .profile import MOTION_HORIZONTAL_PAN, PanPattern, RenderProfile


@dataclass(frozen=True)
class KenBurnsMotion:
    """Two-phase eased zoom with a synchronized pan."""
    index: int
    source_path: str
    duration: float
    frame_count: int
    pattern: PanPattern
    zoom_max: float = 1.7
    zoom_min: float = 1.0
    power: int = 8

    @property
    def midpoint(self) -> float:
        return self.frame_count / 2

    @property
    def zoom_span(self) -> float:
        return self.zoom_max - self.zoom_min

    def ease(self, frame: float) -> float:
        """
        Eased progress at a frame.

        Rises 0 -> 1 during contraction (ease-out), then 0 -> 1 again during
        expansion (ease-in).
        """
        mid = self.midpoint
        if frame <= mid:
            return 1 - (1 - frame / mid) ** self.power
        return ((frame - mid) / mid) ** self.power

    def zoom_at(self, frame: float) -> float:
        """Zoom factor at a frame; exactly zoom_min at the midpoint."""
        mid = self.midpoint
        if frame <= mid:
            return self.zoom_min + self.zoom_span * (1 - frame / mid) ** self.power
        return self.zoom_min + self.zoom_span * ((frame - mid) / mid) ** self.power

    def offset_at(self, frame: float) -> float:
        """
        Pan offset from the centred crop, as a fraction of the input size
        along the pattern's axis.
        """
        zoom = self.zoom_at(frame)
        travel = abs(self.pattern.factor) * 2
        return (self.pattern.factor + travel * self.pattern.direction * self.ease(frame)) * (1 - 1 / zoom)


@dataclass(frozen=True)
class HorizontalPanMotion:
    """Linear horizontal pan with no zoom, used by the long-form profile."""
    index: int
    source_path: str
    duration: float
    frame_count: int
    travel: int  # pixels
    left_to_right: bool

    def offset_at(self, frame: float) -> float:
        """Crop x position in pixels at a frame."""
        step = self.travel / self.frame_count
        if self.left_to_right:
            return min(frame * step, self.travel)
        return max(self.travel - frame * step, 0)


@dataclass(frozen=True)
class ClipNormalization:
    """Pass-through for motion clips: scale to cover, centre crop, optional cap."""
    index: int
    source_path: str
    duration: float
    trimmed: bool = False


MotionDescriptor = Union[KenBurnsMotion, HorizontalPanMotion, ClipNormalization]


class MotionSynthesizer:
    """Builds a motion descriptor for each segment under one profile."""

    def __init__(self, profile: RenderProfile):
        self.profile = profile

    def frame_count(self, duration: float, start: float = 0.0) -> int:
        """
        Whole frames between the rounded boundaries of [start, start + duration].

        Consecutive segments share boundaries, so a timeline's frames always
        total its rounded end time.
        """
        fps = self.profile.fps
        return max(1, int(round((start + duration) * fps)) - int(round(start * fps)))

    def pattern_for(self, index: int) -> PanPattern:
        """Pan pattern for a segment index, cycling through the catalogue."""
        patterns = self.profile.pan_patterns
        return patterns[index % len(patterns)]

    def synthesize(self, segment: MediaSegment, start: float = 0.0) -> MotionDescriptor:
        if segment.is_clip:
            return ClipNormalization(
                index=segment.index,
                source_path=segment.source_path,
                duration=segment.allocated_duration,
                trimmed=segment.trimmed,
            )

        frames = self.frame_count(segment.allocated_duration, start)

        if self.profile.motion == MOTION_HORIZONTAL_PAN:
            return HorizontalPanMotion(
                index=segment.index,
                source_path=segment.source_path,
                duration=segment.allocated_duration,
                frame_count=frames,
                travel=int(round(self.profile.width * self.profile.pan_travel_ratio)),
                left_to_right=segment.index % 2 == 0,
            )

        kb = self.profile.ken_burns
        return KenBurnsMotion(
            index=segment.index,
            source_path=segment.source_path,
            duration=segment.allocated_duration,
            frame_count=frames,
            pattern=self.pattern_for(segment.index),
            zoom_max=kb.zoom_max,
            zoom_min=kb.zoom_min,
            power=kb.ease_power,
        )

    def synthesize_all(self, segments: List[MediaSegment]) -> List[MotionDescriptor]:
        descriptors = []
        elapsed = 0.0
        for segment in sorted(segments, key=lambda s: s.index):
            motion = self.synthesize(segment, start=elapsed)
            elapsed += segment.allocated_duration
            if isinstance(motion, KenBurnsMotion):
                logger.debug(
                    f"  [{segment.index}] Ken Burns + pan {motion.pattern.name} "
                    f"({motion.duration:.2f}s, {motion.frame_count} frames)"
                )
            elif isinstance(motion, HorizontalPanMotion):
                direction = "L->R" if motion.left_to_right else "R->L"
                logger.debug(f"  [{segment.index}] Horizontal pan {direction} ({motion.duration:.2f}s)")
            else:
                cap = " (capped)" if motion.trimmed else ""
                logger.debug(f"  [{segment.index}] Clip scale + crop {motion.duration:.2f}s{cap}")
            descriptors.append(motion)
        return descriptors
