"""
Tests for end-to-end render job orchestration (engine is faked).
"""

import json
from pathlib import Path

import pytest

from src.captions.ass_renderer import HIGHLIGHT_COLORS, CaptionSelection, CaptionStyle
from src.captions.fonts import FontCatalog, FontChoice
from src.render.compositor import BASE_STAGE, OVERLAY_STAGE
from src.render.errors import EngineFailureError, MissingAssetError, UnsupportedMediaError
from src.render.job import RenderJob, RenderRequest, load_manifest
from src.render.media import MediaReference


@pytest.fixture
def assets(make_file, fake_engine):
    """Narration (9s), two images and a 2s clip on disk."""
    paths = {
        "narration": make_file("narration.mp3"),
        "image1": make_file("scene1.jpg"),
        "clip2": make_file("scene2.mp4"),
        "image3": make_file("scene3.png"),
    }
    fake_engine.probe_durations = {"narration.mp3": 9.0, "scene2.mp4": 2.0, "final.mp4": 9.0}
    return paths


@pytest.fixture
def job(short_profile, fake_engine, temp_dir):
    fonts = FontCatalog(fonts_dir=str(temp_dir / "fonts"))
    return RenderJob(short_profile, engine=fake_engine, font_catalog=fonts, temp_root=str(temp_dir / "jobs"))


def _request(assets, temp_dir, words=None, **kwargs):
    return RenderRequest(
        media=[
            MediaReference(assets["image3"], 3),
            MediaReference(assets["image1"], 1),
            MediaReference(assets["clip2"], 2),
        ],
        narration_path=assets["narration"],
        output_path=str(temp_dir / "out" / "final.mp4"),
        words=words,
        **kwargs,
    )


class TestRenderJob:
    """Tests for RenderJob.render / run."""

    def test_render_without_transcript_is_single_pass(self, job, assets, fake_engine, temp_dir):
        output = job.render(_request(assets, temp_dir))

        assert output == str(temp_dir / "out" / "final.mp4")
        assert Path(output).exists()
        assert [stage for stage, _ in fake_engine.commands] == [BASE_STAGE]

    def test_render_graph_follows_scene_order(self, job, assets, fake_engine, temp_dir):
        job.render(_request(assets, temp_dir))
        cmd = fake_engine.commands[0][1]
        inputs = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"]

        assert inputs == [assets["image1"], assets["clip2"], assets["image3"], assets["narration"]]
        # 9s narration over 3 segments: clip keeps 2s, images share the remaining 7s
        graph = cmd[cmd.index("-filter_complex") + 1]
        assert "d=105" in graph
        assert cmd[cmd.index("-t") + 1] == "9.000"

    def test_render_with_transcript_is_two_pass(self, job, assets, fake_engine, temp_dir, make_words):
        selection = CaptionSelection(CaptionStyle.BOX, HIGHLIGHT_COLORS[1], FontChoice("Arial Black"))
        request = _request(assets, temp_dir, words=make_words(9), selection=selection)

        job.render(request)

        assert [stage for stage, _ in fake_engine.commands] == [BASE_STAGE, OVERLAY_STAGE]
        overlay = fake_engine.commands[1][1]
        vf = overlay[overlay.index("-vf") + 1]
        assert vf.startswith("ass=filename='")
        assert "captions.ass" in vf

    def test_seeded_captions_are_reproducible(self, job, assets, temp_dir, make_words):
        request = _request(assets, temp_dir, words=make_words(3), seed=11)
        assert job.select_captions(request) == job.select_captions(request)

    def test_explicit_style(self, job, assets, temp_dir, make_words):
        request = _request(assets, temp_dir, words=make_words(3), style=CaptionStyle.FILL)
        assert job.select_captions(request).style is CaptionStyle.FILL

    def test_workspace_removed_after_success(self, job, assets, temp_dir):
        job.render(_request(assets, temp_dir))
        assert list((temp_dir / "jobs").iterdir()) == []

    def test_workspace_removed_after_engine_failure(self, job, assets, fake_engine, temp_dir):
        fake_engine.run.side_effect = EngineFailureError(BASE_STAGE, 1, stderr="Error initializing filter")

        with pytest.raises(EngineFailureError):
            job.render(_request(assets, temp_dir))

        assert list((temp_dir / "jobs").iterdir()) == []
        assert not (temp_dir / "out" / "final.mp4").exists()

    def test_missing_media_fails_before_any_work(self, job, assets, fake_engine, temp_dir):
        request = _request(assets, temp_dir)
        request.media.append(MediaReference(str(temp_dir / "scene4.jpg"), 4))

        with pytest.raises(MissingAssetError):
            job.render(request)

        fake_engine.run.assert_not_called()
        fake_engine.probe_duration.assert_not_called()
        assert not (temp_dir / "jobs").exists()

    def test_missing_narration(self, job, assets, temp_dir):
        request = _request(assets, temp_dir)
        request.narration_path = str(temp_dir / "gone.mp3")
        with pytest.raises(MissingAssetError):
            job.render(request)

    def test_unsupported_media(self, job, assets, temp_dir, make_file):
        request = _request(assets, temp_dir)
        request.media.append(MediaReference(make_file("notes.txt"), 4))
        with pytest.raises(UnsupportedMediaError):
            job.render(request)

    def test_run_reports_success(self, job, assets, temp_dir):
        result = job.run(_request(assets, temp_dir))

        assert result.success
        assert result.output_path == str(temp_dir / "out" / "final.mp4")
        assert result.duration == 9.0
        assert result.error is None

    def test_run_reports_engine_diagnostics(self, job, assets, fake_engine, temp_dir):
        fake_engine.run.side_effect = EngineFailureError(BASE_STAGE, 1, stderr="No such filter: 'zoompan'")

        result = job.run(_request(assets, temp_dir))

        assert not result.success
        assert "base render" in result.error
        assert "No such filter" in result.diagnostics

    def test_run_reports_missing_asset(self, job, assets, temp_dir):
        request = _request(assets, temp_dir)
        request.media[0] = MediaReference(str(temp_dir / "missing.jpg"), 3)

        result = job.run(request)

        assert not result.success
        assert "missing.jpg" in result.error
        assert result.diagnostics is None


class TestLoadManifest:
    """Tests for YAML manifest loading."""

    def test_relative_paths_and_transcript(self, temp_dir):
        (temp_dir / "words.json").write_text(
            json.dumps([{"word": "hi", "start": 0.0, "end": 0.3}]), encoding="utf-8"
        )
        manifest = temp_dir / "episode7.yaml"
        manifest.write_text(
            "narration: audio/narration.mp3\n"
            "transcript: words.json\n"
            "profile: long\n"
            "media:\n"
            "  - {path: media/b.mp4, scene: 2}\n"
            "  - {path: media/a.jpg, scene: 1}\n"
            "  - media/c.jpg\n",
            encoding="utf-8",
        )

        request = load_manifest(str(manifest))

        assert request.narration_path == str(temp_dir / "audio" / "narration.mp3")
        assert request.media[0].path == str(temp_dir / "media" / "b.mp4")
        assert request.media[0].scene == 2
        assert request.media[2].scene is None
        assert request.profile_name == "long"
        assert request.job_id == "episode7"
        assert request.output_path == "output/episode7.mp4"
        assert [w.text for w in request.words] == ["hi"]

    def test_requires_narration(self, temp_dir):
        manifest = temp_dir / "bad.yaml"
        manifest.write_text("media:\n  - a.jpg\n", encoding="utf-8")
        with pytest.raises(ValueError, match="narration"):
            load_manifest(str(manifest))

    def test_requires_media(self, temp_dir):
        manifest = temp_dir / "bad.yaml"
        manifest.write_text("narration: n.mp3\nmedia: []\n", encoding="utf-8")
        with pytest.raises(ValueError, match="no media"):
            load_manifest(str(manifest))
