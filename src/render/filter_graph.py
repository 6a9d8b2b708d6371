"""
Filter Graph Builder

Turns ordered motion descriptors plus the profile's colour grade into a
structured graph: one normalization/motion stage per segment, a single
concatenation stage, an optional tail-fill stage, then one global colour
grade. The graph is only rendered to ffmpeg's textual syntax by
FilterGraph.serialize(), at the invocation boundary.

Usage:
    builder = FilterGraphBuilder(profile)
    graph = builder.build(descriptors, narration_duration=42.0)
    graph.serialize()     # "[0:v]scale=...[v0];...;[v_concat]eq=...[outv]"
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from .motion import ClipNormalization, HorizontalPanMotion, KenBurnsMotion, MotionDescriptor
from .profile import TAIL_FILL_BLACK, RenderProfile

OptionValue = Union[str, int, float]


def _fmt(value: OptionValue) -> str:
    if isinstance(value, float):
        text = f"{value:.6f}".rstrip("0").rstrip(".")
        return text if text not in ("", "-0") else "0"
    return str(value)


def escape_filter_path(path: str) -> str:
    """Escape a file path for use as a quoted filter option value."""
    return str(path).replace("\\", "/").replace(":", "\\:").replace("'", "\\'")


@dataclass
class Filter:
    """A single ffmpeg filter with ordered named options."""
    name: str
    options: List[Tuple[str, OptionValue]] = field(default_factory=list)

    def option(self, key: str) -> Optional[OptionValue]:
        for name, value in self.options:
            if name == key:
                return value
        return None

    def serialize(self) -> str:
        if not self.options:
            return self.name
        args = ":".join(f"{key}={_fmt(value)}" for key, value in self.options)
        return f"{self.name}={args}"


@dataclass
class FilterStage:
    """A chain of filters between labelled input and output pads."""
    kind: str
    inputs: List[str]
    filters: List[Filter]
    outputs: List[str]

    def filter_names(self) -> List[str]:
        return [f.name for f in self.filters]

    def serialize(self) -> str:
        ins = "".join(f"[{label}]" for label in self.inputs)
        outs = "".join(f"[{label}]" for label in self.outputs)
        chain = ",".join(f.serialize() for f in self.filters)
        return f"{ins}{chain}{outs}"


@dataclass
class EngineInput:
    """A file input with the options that must precede its -i flag."""
    path: str
    options: List[str] = field(default_factory=list)

    def to_args(self) -> List[str]:
        return [*self.options, "-i", self.path]


@dataclass
class FilterGraph:
    """Ordered stages plus the file inputs they reference."""
    inputs: List[EngineInput]
    stages: List[FilterStage]
    output_label: str
    visual_duration: float = 0.0

    def stages_of_kind(self, kind: str) -> List[FilterStage]:
        return [stage for stage in self.stages if stage.kind == kind]

    def serialize(self) -> str:
        return ";".join(stage.serialize() for stage in self.stages)


class FilterGraphBuilder:
    """Builds the base-render filter graph for one profile."""

    OUTPUT_LABEL = "outv"
    TOLERANCE = 0.1

    def __init__(self, profile: RenderProfile):
        self.profile = profile

    # ------------------------------------------------------------------
    # Per-segment stages
    # ------------------------------------------------------------------

    def _cover_filters(self, width: int, height: int) -> List[Filter]:
        return [
            Filter("scale", [("w", width), ("h", height), ("force_original_aspect_ratio", "increase")]),
            Filter("crop", [("w", width), ("h", height)]),
        ]

    def _ken_burns_filters(self, motion: KenBurnsMotion) -> List[Filter]:
        p = self.profile
        mid = _fmt(motion.midpoint)
        power = motion.power
        zmin = _fmt(motion.zoom_min)
        span = _fmt(motion.zoom_span)

        zoom_expr = (
            f"if(lte(on,{mid}),"
            f"{zmin}+{span}*pow(1-on/{mid},{power}),"
            f"{zmin}+{span}*pow((on-{mid})/{mid},{power}))"
        )
        ease_expr = f"if(lte(on,{mid}),(1-pow(1-on/{mid},{power})),pow((on-{mid})/{mid},{power}))"

        pattern = motion.pattern
        start = _fmt(pattern.factor)
        travel = _fmt(abs(pattern.factor) * 2)
        if pattern.axis == "x":
            x_expr = f"iw/2-(iw/zoom/2)+iw*{start}*(1-1/zoom)+iw*{travel}*{pattern.direction}*(1-1/zoom)*{ease_expr}"
            y_expr = "ih/2-(ih/zoom/2)"
        else:
            x_expr = "iw/2-(iw/zoom/2)"
            y_expr = f"ih/2-(ih/zoom/2)+ih*{start}*(1-1/zoom)+ih*{travel}*{pattern.direction}*(1-1/zoom)*{ease_expr}"

        return [
            *self._cover_filters(p.width, p.height),
            Filter("setsar", [("sar", 1)]),
            Filter("zoompan", [
                ("z", f"'{zoom_expr}'"),
                ("d", motion.frame_count),
                ("x", f"'{x_expr}'"),
                ("y", f"'{y_expr}'"),
                ("s", f"{p.width}x{p.height}"),
                ("fps", p.fps),
            ]),
            Filter("fps", [("fps", p.fps)]),
            Filter("setpts", [("expr", "PTS-STARTPTS")]),
        ]

    def _horizontal_pan_filters(self, motion: HorizontalPanMotion) -> List[Filter]:
        p = self.profile
        wide = p.width * 2
        step = _fmt(motion.travel / motion.frame_count)
        if motion.left_to_right:
            x_expr = f"min(n*{step},{motion.travel})"
        else:
            x_expr = f"max({motion.travel}-n*{step},0)"

        return [
            *self._cover_filters(wide, p.height),
            Filter("loop", [("loop", max(motion.frame_count - 1, 0)), ("size", 1), ("start", 0)]),
            Filter("setpts", [("expr", f"N/({p.fps}*TB)")]),
            Filter("crop", [("w", p.width), ("h", p.height), ("x", f"'{x_expr}'"), ("y", 0)]),
            Filter("fps", [("fps", p.fps)]),
            Filter("setsar", [("sar", 1)]),
            Filter("setpts", [("expr", "PTS-STARTPTS")]),
        ]

    def _clip_filters(self, motion: ClipNormalization) -> List[Filter]:
        p = self.profile
        return [
            *self._cover_filters(p.width, p.height),
            Filter("setsar", [("sar", 1)]),
            Filter("fps", [("fps", p.fps)]),
            Filter("setpts", [("expr", "PTS-STARTPTS")]),
        ]

    def segment_stage(self, input_index: int, motion: MotionDescriptor) -> FilterStage:
        if isinstance(motion, KenBurnsMotion):
            filters = self._ken_burns_filters(motion)
        elif isinstance(motion, HorizontalPanMotion):
            filters = self._horizontal_pan_filters(motion)
        elif isinstance(motion, ClipNormalization):
            filters = self._clip_filters(motion)
        else:
            raise TypeError(f"Unknown motion descriptor: {type(motion).__name__}")

        return FilterStage(
            kind="segment",
            inputs=[f"{input_index}:v"],
            filters=filters,
            outputs=[f"v{input_index}"],
        )

    @staticmethod
    def segment_input(motion: MotionDescriptor) -> EngineInput:
        if isinstance(motion, ClipNormalization) and motion.trimmed:
            return EngineInput(motion.source_path, ["-t", f"{motion.duration:.3f}"])
        return EngineInput(motion.source_path)

    # ------------------------------------------------------------------
    # Whole graph
    # ------------------------------------------------------------------

    def build(
        self,
        descriptors: Sequence[MotionDescriptor],
        narration_duration: Optional[float] = None
    ) -> FilterGraph:
        """
        Build the base-render graph.

        Args:
            descriptors: Motion descriptors in index order
            narration_duration: Target length; when the visuals run short a
                tail-fill stage pads them according to the profile policy

        Returns:
            FilterGraph whose final pad is OUTPUT_LABEL
        """
        if not descriptors:
            raise ValueError("Cannot build a filter graph with no segments")

        ordered = sorted(descriptors, key=lambda d: d.index)
        inputs = [self.segment_input(motion) for motion in ordered]
        stages = [self.segment_stage(i, motion) for i, motion in enumerate(ordered)]

        segment_labels = [stage.outputs[0] for stage in stages]
        stages.append(FilterStage(
            kind="concat",
            inputs=segment_labels,
            filters=[Filter("concat", [("n", len(segment_labels)), ("v", 1), ("a", 0)])],
            outputs=["v_concat"],
        ))
        current = "v_concat"

        visual_duration = sum(self.rendered_duration(motion) for motion in ordered)
        if narration_duration is not None and narration_duration - visual_duration > self.TOLERANCE:
            stages.append(self.tail_fill_stage(current, narration_duration - visual_duration))
            current = "v_padded"

        grade = self.profile.color_grade
        stages.append(FilterStage(
            kind="grade",
            inputs=[current],
            filters=[Filter("eq", [
                ("saturation", grade.saturation),
                ("brightness", grade.brightness),
                ("contrast", grade.contrast),
            ])],
            outputs=[self.OUTPUT_LABEL],
        ))

        return FilterGraph(
            inputs=inputs,
            stages=stages,
            output_label=self.OUTPUT_LABEL,
            visual_duration=visual_duration,
        )

    def rendered_duration(self, motion: MotionDescriptor) -> float:
        """Seconds a segment stage emits; image stages are whole frames long."""
        if isinstance(motion, ClipNormalization):
            return motion.duration
        return motion.frame_count / self.profile.fps

    def tail_fill_stage(self, input_label: str, gap: float) -> FilterStage:
        """Pad the concatenated stream by gap seconds (hold last frame or black)."""
        if self.profile.tail_fill == TAIL_FILL_BLACK:
            options = [("stop_mode", "add"), ("stop_duration", round(gap, 3)), ("color", "black")]
        else:
            options = [("stop_mode", "clone"), ("stop_duration", round(gap, 3))]
        return FilterStage(
            kind="tail_fill",
            inputs=[input_label],
            filters=[Filter("tpad", options)],
            outputs=["v_padded"],
        )


def subtitle_overlay_filter(subtitle_path: str, fonts_dir: Optional[str] = None) -> Filter:
    """Burn-in filter for the caption overlay pass."""
    options: List[Tuple[str, OptionValue]] = [("filename", f"'{escape_filter_path(subtitle_path)}'")]
    if fonts_dir:
        options.append(("fontsdir", f"'{escape_filter_path(fonts_dir)}'"))
    return Filter("ass", options)
