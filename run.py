#!/usr/bin/env python
"""
Render launcher.

Usage:
    python run.py render job.yaml
    python run.py render job.yaml --output out/final.mp4 --profile long
    python run.py render job.yaml --seed 7 --style box
    python run.py render job.yaml --no-captions
    python run.py captions words.json captions.ass --seed 7
    python run.py probe scene1.jpg scene2.mp4 narration.mp3
    python run.py fonts
    python run.py cleanup --hours 1
"""

import sys
import os
import argparse
import random

# Add project root
sys.path.insert(0, os.path.dirname(__file__))

from dotenv import load_dotenv
load_dotenv("config/.env")

from loguru import logger


def setup_logging():
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="INFO"
    )
    logger.add(
        "logs/render_{time:YYYY-MM-DD}.log",
        rotation="1 day",
        retention="7 days",
        level="DEBUG"
    )


STYLE_CHOICES = ["pulse", "box", "fill"]
PROFILE_CHOICES = ["short", "long"]


def print_progress(stage: str, percent: float):
    print(f"\r  {stage}: {percent:5.1f}%", end="", flush=True)
    if percent >= 100:
        print()


def cmd_render(argv):
    parser = argparse.ArgumentParser(prog="run.py render", add_help=False)
    parser.add_argument("manifest", help="Job manifest (YAML)")
    parser.add_argument("--output", "-o", help="Output video path")
    parser.add_argument("--profile", choices=PROFILE_CHOICES, help="Render profile override")
    parser.add_argument("--seed", type=int, help="Seed for caption style/colour/font selection")
    parser.add_argument("--style", choices=STYLE_CHOICES, help="Fixed caption style")
    parser.add_argument("--no-captions", action="store_true", help="Skip the caption overlay pass")
    args = parser.parse_args(argv)

    from src.captions.ass_renderer import CaptionStyle
    from src.render.job import RenderJob, load_manifest
    from src.render.profile import load_profile

    try:
        request = load_manifest(args.manifest)
    except (OSError, ValueError, KeyError) as e:
        print(f"\n[FAIL] Could not read manifest: {e}")
        return 1

    if args.output:
        request.output_path = args.output
    if args.profile:
        request.profile_name = args.profile
    if args.no_captions:
        request.words = None
    request.seed = args.seed
    if args.style:
        request.style = CaptionStyle.from_name(args.style)

    try:
        profile = load_profile(request.profile_name)
    except ValueError as e:
        print(f"\n[FAIL] {e}")
        return 1

    result = RenderJob(profile).run(request, progress_callback=print_progress)

    if result.success:
        print(f"\n[OK] Video rendered: {result.output_path}")
        print(f"    Format: {profile.width}x{profile.height} ({profile.name})")
        print(f"    Duration: {result.duration:.2f}s (took {result.elapsed_seconds:.1f}s)")
        return 0

    print(f"\n[FAIL] Render failed: {result.error}")
    if result.diagnostics:
        print(result.diagnostics[-2000:])
    return 1


def cmd_captions(argv):
    parser = argparse.ArgumentParser(prog="run.py captions", add_help=False)
    parser.add_argument("transcript", help="Word-level transcript (JSON)")
    parser.add_argument("output", help="Output .ass file")
    parser.add_argument("--profile", choices=PROFILE_CHOICES, default="short")
    parser.add_argument("--seed", type=int)
    parser.add_argument("--style", choices=STYLE_CHOICES)
    args = parser.parse_args(argv)

    from src.captions.ass_renderer import CaptionRenderer, CaptionSelection, CaptionStyle
    from src.captions.fonts import FontCatalog
    from src.captions.timeline import build_timeline, load_transcript
    from src.render.profile import load_profile

    profile = load_profile(args.profile)
    words = load_transcript(args.transcript)
    if not words:
        print("\n[FAIL] Transcript contains no words")
        return 1

    cues = build_timeline(words, profile.captions.words_per_cue)
    style = CaptionStyle.from_name(args.style) if args.style else None
    selection = CaptionSelection.choose(random.Random(args.seed), FontCatalog().available(), style=style)
    CaptionRenderer(profile).write(cues, selection, args.output)

    print(f"\n[OK] Captions written: {args.output}")
    print(f"    {len(cues)} cues, style {selection.style.value}, "
          f"color {selection.color.name}, font {selection.font.name}")
    return 0


def cmd_probe(argv):
    parser = argparse.ArgumentParser(prog="run.py probe", add_help=False)
    parser.add_argument("files", nargs="+")
    args = parser.parse_args(argv)

    from src.render.engine import MediaEngine
    from src.render.errors import RenderError
    from src.render.media import classify_path

    engine = MediaEngine()
    for path in args.files:
        try:
            kind = classify_path(path).value
        except RenderError:
            kind = "audio/other"
        try:
            duration = f"{engine.probe_duration(path):.2f}s"
        except RenderError as e:
            duration = f"unknown ({e})"
        print(f"  {path}: {kind}, {duration}")
    return 0


def cmd_fonts(argv):
    from src.captions.fonts import FontCatalog

    catalog = FontCatalog()
    present = catalog.ensure_downloaded()
    print(f"\n[OK] {len(present)}/{len(catalog.catalog)} caption fonts available in {catalog.fonts_dir}")
    for name in present:
        print(f"    - {name}")
    return 0


def cmd_cleanup(argv):
    parser = argparse.ArgumentParser(prog="run.py cleanup", add_help=False)
    parser.add_argument("--hours", type=float, default=6.0,
                        help="Remove job workspaces older than N hours (default: 6)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Preview what would be deleted without deleting")
    args = parser.parse_args(argv)

    from src.utils.cleanup import format_size, sweep_stale_workspaces

    print(f"\n{'='*60}")
    print("  WORKSPACE CLEANUP PREVIEW (DRY RUN)" if args.dry_run else "  WORKSPACE CLEANUP")
    print(f"{'='*60}")

    result = sweep_stale_workspaces(max_age_hours=args.hours, dry_run=args.dry_run)
    print(f"  Workspaces: {len(result['removed'])}")
    print(f"  Space freed: {format_size(result['space_freed_bytes'])}")
    for error in result["errors"]:
        print(f"  [WARN] {error}")
    return 0


COMMANDS = {
    "render": cmd_render,
    "captions": cmd_captions,
    "probe": cmd_probe,
    "fonts": cmd_fonts,
    "cleanup": cmd_cleanup,
}


def main():
    setup_logging()

    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        if len(sys.argv) >= 2:
            print(f"Unknown command: {sys.argv[1]}")
        print("""
Narration Video Renderer
========================

Commands:
  python run.py render <manifest.yaml>         Render a narrated video
      --output PATH        Output file (default: from manifest)
      --profile short|long Vertical 1080x1920 or horizontal 1920x1080
      --seed N             Reproducible caption style/colour/font
      --style pulse|box|fill  Fixed caption style
      --no-captions        Base render only (single pass)
  python run.py captions <words.json> <out.ass>  Write karaoke captions only
  python run.py probe <file>...                  Show media kind and duration
  python run.py fonts                            Download caption fonts
  python run.py cleanup [--hours N] [--dry-run]  Remove stale job workspaces

Manifest:
  narration: narration.mp3
  transcript: words.json        # optional
  profile: short                # optional
  output: output/video.mp4      # optional
  media:
    - {path: scene1.jpg, scene: 1}
    - {path: scene2.mp4, scene: 2}
        """)
        return 1

    return COMMANDS[sys.argv[1]](sys.argv[2:])


if __name__ == "__main__":
    sys.exit(main())
