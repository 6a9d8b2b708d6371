"""
Hybrid duration reconciliation.

Clips keep their native timing (capped at the nominal slot) while still
images stretch or shrink so the visual total matches the narration.
"""

from dataclasses import dataclass
from typing import List

from loguru import logger

from .media import MediaSegment


@dataclass
class ReconciliationResult:
    """Outcome of fitting segment durations to the narration length."""
    narration_duration: float
    nominal_duration: float
    total_duration: float
    adjustment_per_image: float = 0.0
    clamped_images: int = 0

    @property
    def divergence(self) -> float:
        """Narration minus visual total (positive means visuals run short)."""
        return self.narration_duration - self.total_duration


class DurationReconciler:
    """Allocates a display duration to every segment."""

    TOLERANCE = 0.1   # seconds
    MIN_IMAGE_DURATION = 0.5

    def __init__(self, tolerance: float = TOLERANCE, min_image_duration: float = MIN_IMAGE_DURATION):
        self.tolerance = tolerance
        self.min_image_duration = min_image_duration

    def reconcile(self, segments: List[MediaSegment], narration_duration: float) -> ReconciliationResult:
        """
        Set allocated_duration and trimmed on every segment in place.

        Args:
            segments: Classified segments in index order
            narration_duration: Authoritative target duration in seconds

        Returns:
            ReconciliationResult describing the final fit
        """
        if not segments:
            raise ValueError("Cannot reconcile durations for zero segments")
        if narration_duration <= 0:
            raise ValueError(f"Narration duration must be positive, got {narration_duration}")

        nominal = narration_duration / len(segments)

        for segment in segments:
            if segment.is_clip:
                native = segment.native_duration if segment.native_duration else nominal
                segment.allocated_duration = min(native, nominal)
                segment.trimmed = native > nominal
            else:
                segment.allocated_duration = nominal
                segment.trimmed = False

        images = [s for s in segments if s.is_image]
        deficit = narration_duration - sum(s.allocated_duration for s in segments)
        result = ReconciliationResult(
            narration_duration=narration_duration,
            nominal_duration=nominal,
            total_duration=0.0,
        )

        if abs(deficit) > self.tolerance and images:
            result.adjustment_per_image = deficit / len(images)
            logger.info(
                f"Adjusting {len(images)} image(s) by {result.adjustment_per_image:+.2f}s each "
                f"(deficit {deficit:+.2f}s)"
            )
            for image in images:
                image.allocated_duration += result.adjustment_per_image

        for image in images:
            if image.allocated_duration < self.min_image_duration:
                image.allocated_duration = self.min_image_duration
                result.clamped_images += 1

        result.total_duration = sum(s.allocated_duration for s in segments)

        if abs(result.divergence) > self.tolerance:
            logger.warning(
                f"Visual total {result.total_duration:.2f}s diverges from narration "
                f"{narration_duration:.2f}s by {result.divergence:+.2f}s; "
                f"output will be forced to the narration length"
            )
        else:
            logger.info(
                f"Segment durations reconciled: {result.total_duration:.2f}s "
                f"for {narration_duration:.2f}s narration"
            )

        return result
