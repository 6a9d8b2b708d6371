"""
Render Module - narration-driven video assembly.

- MediaClassifier / DurationReconciler: order, classify and time the visuals
- MotionSynthesizer: Ken Burns and horizontal pan descriptors for images
- FilterGraphBuilder: structured ffmpeg filter graph
- Compositor: two-pass render (base render, caption overlay)
- RenderJob: end-to-end orchestration with a scoped working directory
"""

from .compositor import Compositor
from .durations import DurationReconciler, ReconciliationResult
from .engine import MediaEngine
from .errors import (
    EngineFailureError,
    EngineNotFoundError,
    MissingAssetError,
    ProbeError,
    RenderError,
    UnsupportedMediaError,
)
from .filter_graph import FilterGraph, FilterGraphBuilder
from .job import RenderJob, RenderRequest, RenderResult, load_manifest
from .media import MediaClassifier, MediaKind, MediaReference, MediaSegment, NarrationTrack
from .motion import MotionSynthesizer
from .profile import RenderProfile, load_profile

__all__ = [
    "Compositor",
    "DurationReconciler",
    "ReconciliationResult",
    "MediaEngine",
    "EngineFailureError",
    "EngineNotFoundError",
    "MissingAssetError",
    "ProbeError",
    "RenderError",
    "UnsupportedMediaError",
    "FilterGraph",
    "FilterGraphBuilder",
    "RenderJob",
    "RenderRequest",
    "RenderResult",
    "load_manifest",
    "MediaClassifier",
    "MediaKind",
    "MediaReference",
    "MediaSegment",
    "NarrationTrack",
    "MotionSynthesizer",
    "RenderProfile",
    "load_profile",
]
