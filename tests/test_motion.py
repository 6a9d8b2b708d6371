"""
Tests for motion synthesis.
"""

import pytest

from src.render.motion import (
    ClipNormalization,
    HorizontalPanMotion,
    KenBurnsMotion,
    MotionSynthesizer,
)


def _allocated(segment, duration):
    segment.allocated_duration = duration
    return segment


class TestKenBurnsMotion:
    """Tests for the two-phase eased zoom."""

    @pytest.fixture
    def motion(self, short_profile, make_segment):
        segment = _allocated(make_segment(0), 3.0)
        return MotionSynthesizer(short_profile).synthesize(segment)

    def test_descriptor_type_and_frames(self, motion):
        assert isinstance(motion, KenBurnsMotion)
        assert motion.frame_count == 90
        assert motion.midpoint == 45

    def test_zoom_endpoints(self, motion):
        """Zoom starts and ends at 1.7 and is exactly 1.0 at the midpoint."""
        assert motion.zoom_at(0) == pytest.approx(1.7)
        assert motion.zoom_at(motion.frame_count) == pytest.approx(1.7)
        assert motion.zoom_at(motion.midpoint) == 1.0

    @pytest.mark.parametrize("seconds", [0.5, 1.0, 2.7, 3.3, 7.9])
    def test_midpoint_exact_for_any_length(self, short_profile, make_segment, seconds):
        motion = MotionSynthesizer(short_profile).synthesize(_allocated(make_segment(3), seconds))
        assert motion.zoom_at(motion.midpoint) == 1.0

    def test_power_eight_holds_in_the_middle(self, motion):
        """Almost all zoom change happens in the outer ~15% of each phase."""
        mid = motion.midpoint
        assert motion.zoom_at(mid * 0.15) < 1.0 + 0.7 * 0.3
        assert motion.zoom_at(mid * 0.5) == pytest.approx(1.0, abs=0.01)
        assert motion.zoom_at(mid * 1.5) == pytest.approx(1.0, abs=0.01)

    def test_zoom_monotonic_per_phase(self, motion):
        mid = int(motion.midpoint)
        contraction = [motion.zoom_at(n) for n in range(mid + 1)]
        expansion = [motion.zoom_at(n) for n in range(mid, motion.frame_count + 1)]
        assert contraction == sorted(contraction, reverse=True)
        assert expansion == sorted(expansion)

    def test_pan_is_centred_when_zoom_is_one(self, motion):
        """No pan offset is possible at zoom 1.0."""
        assert motion.offset_at(motion.midpoint) == pytest.approx(0.0)

    def test_pan_uses_same_ease(self, motion):
        """Ease is 0 at the phase starts and 1 at the phase ends."""
        assert motion.ease(0) == pytest.approx(0.0)
        assert motion.ease(motion.midpoint) == pytest.approx(1.0)
        assert motion.ease(motion.frame_count) == pytest.approx(1.0)


class TestPatternCycling:
    """Tests for pan pattern assignment."""

    def test_pattern_periodic(self, short_profile):
        synth = MotionSynthesizer(short_profile)
        count = len(short_profile.pan_patterns)
        for index in range(12):
            assert synth.pattern_for(index) == synth.pattern_for(index + count)

    def test_patterns_follow_index(self, short_profile, make_segment):
        synth = MotionSynthesizer(short_profile)
        segments = [_allocated(make_segment(i), 2.0) for i in range(5)]
        names = [m.pattern.name for m in synth.synthesize_all(segments)]
        assert names == ["left-right", "right-left", "top-bottom", "bottom-top", "left-right"]


class TestHorizontalPan:
    """Tests for the long-form linear pan."""

    def test_linear_and_alternating(self, long_profile, make_segment):
        synth = MotionSynthesizer(long_profile)
        first, second = synth.synthesize_all([
            _allocated(make_segment(0), 4.0),
            _allocated(make_segment(1), 4.0),
        ])

        assert isinstance(first, HorizontalPanMotion)
        assert first.travel == round(1920 * 0.33)
        assert first.left_to_right and not second.left_to_right

        frames = first.frame_count
        assert first.offset_at(0) == 0
        assert first.offset_at(frames / 2) == pytest.approx(first.travel / 2)
        assert first.offset_at(frames) == pytest.approx(first.travel)
        assert second.offset_at(0) == second.travel
        assert second.offset_at(frames) == pytest.approx(0)


class TestClipNormalization:
    """Tests for clip pass-through descriptors."""

    def test_clip_descriptor(self, short_profile, make_segment):
        clip = _allocated(make_segment(2, "clip", native=9.0), 4.0)
        clip.trimmed = True

        motion = MotionSynthesizer(short_profile).synthesize(clip)

        assert isinstance(motion, ClipNormalization)
        assert motion.duration == 4.0
        assert motion.trimmed

    def test_clips_do_not_consume_patterns(self, short_profile, make_segment):
        """Pattern choice depends on index only."""
        synth = MotionSynthesizer(short_profile)
        segments = [
            _allocated(make_segment(0, "clip", native=2.0), 2.0),
            _allocated(make_segment(1), 2.0),
        ]
        clip, image = synth.synthesize_all(segments)
        assert isinstance(clip, ClipNormalization)
        assert image.pattern == synth.pattern_for(1)


class TestFrameBoundaries:
    """Tests for whole-frame allocation across a timeline."""

    def test_frames_total_the_timeline(self, short_profile, make_segment):
        """Seven images sharing 10s at 30fps render exactly 300 frames."""
        segments = [_allocated(make_segment(i), 10.0 / 7) for i in range(7)]

        motions = MotionSynthesizer(short_profile).synthesize_all(segments)

        frames = [m.frame_count for m in motions]
        assert sum(frames) == 300
        assert set(frames) <= {42, 43}

    def test_clips_advance_the_boundary(self, short_profile, make_segment):
        segments = [
            _allocated(make_segment(0), 1.01),
            _allocated(make_segment(1, "clip", native=2.0), 1.02),
            _allocated(make_segment(2), 1.01),
        ]

        first, _, last = MotionSynthesizer(short_profile).synthesize_all(segments)

        # boundaries at 0, 30.3, 60.9 and 91.2 frames
        assert first.frame_count == 30
        assert last.frame_count == 30

    def test_single_segment_rounds_to_nearest(self, short_profile):
        synth = MotionSynthesizer(short_profile)
        assert synth.frame_count(1.99) == 60
        assert synth.frame_count(0.01) == 1
