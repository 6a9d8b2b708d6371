"""
Render Profiles

Immutable configuration for one render job: frame geometry, frame rate,
encoder quality, colour grade, motion parameters and the pan-pattern
catalogue.

Profiles are read from config/render.yaml (if present) on top of built-in
defaults, then a few encoder values may be overridden from the environment.
After loading, every component receives the RenderProfile explicitly.

Usage:
    from src.render.profile import load_profile

    profile = load_profile("short")      # 1080x1920 Ken Burns
    profile = load_profile("long")       # 1920x1080 horizontal pan
"""

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv
from loguru import logger

# Load environment variables from relative paths (portable)
_env_paths = [
    Path(__file__).parent.parent.parent / "config" / ".env",
    Path.cwd() / "config" / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "render.yaml"

MOTION_KEN_BURNS = "ken_burns"
MOTION_HORIZONTAL_PAN = "horizontal_pan"

TAIL_FILL_HOLD = "hold"
TAIL_FILL_BLACK = "black"

# Mirrors config/render.yaml so a missing config file still yields valid profiles
DEFAULT_CONFIG: Dict[str, Any] = {
    "defaults": {
        "fps": 30,
        "encoder": {
            "codec": "libx264",
            "preset": "medium",
            "crf": 23,
            "pixel_format": "yuv420p",
            "audio_codec": "aac",
            "audio_bitrate": "192k",
        },
        "color_grade": {"saturation": 1.3, "brightness": 0.05, "contrast": 1.1},
        "tail_fill": TAIL_FILL_HOLD,
        "captions": {"words_per_cue": 3, "ramp_ms": 50, "fade_ms": 150},
    },
    "profiles": {
        "short": {
            "width": 1080,
            "height": 1920,
            "motion": MOTION_KEN_BURNS,
            "ken_burns": {"zoom_max": 1.7, "zoom_min": 1.0, "ease_power": 8},
            "pan_patterns": [
                {"name": "left-right", "axis": "x", "factor": -0.3, "direction": 1},
                {"name": "right-left", "axis": "x", "factor": 0.3, "direction": -1},
                {"name": "top-bottom", "axis": "y", "factor": -0.3, "direction": 1},
                {"name": "bottom-top", "axis": "y", "factor": 0.3, "direction": -1},
            ],
            "captions": {"font_size": 85, "margin_v": 330},
        },
        "long": {
            "width": 1920,
            "height": 1080,
            "motion": MOTION_HORIZONTAL_PAN,
            "horizontal_pan": {"travel_ratio": 0.33},
            "captions": {"font_size": 64, "margin_v": 120},
        },
    },
}


@dataclass(frozen=True)
class PanPattern:
    """A named pan template, applied to Image segments by index."""
    name: str
    axis: str  # "x" or "y"
    factor: float
    direction: int

    def __post_init__(self):
        if self.axis not in ("x", "y"):
            raise ValueError(f"Pan axis must be 'x' or 'y', got {self.axis!r}")


@dataclass(frozen=True)
class EncoderSettings:
    codec: str = "libx264"
    preset: str = "medium"
    crf: int = 23
    pixel_format: str = "yuv420p"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"


@dataclass(frozen=True)
class ColorGrade:
    saturation: float = 1.3
    brightness: float = 0.05
    contrast: float = 1.1


@dataclass(frozen=True)
class KenBurnsSettings:
    zoom_max: float = 1.7
    zoom_min: float = 1.0
    ease_power: int = 8


@dataclass(frozen=True)
class CaptionSettings:
    words_per_cue: int = 3
    ramp_ms: int = 50
    fade_ms: int = 150
    font_size: int = 85
    margin_v: int = 330


@dataclass(frozen=True)
class RenderProfile:
    """Immutable configuration shared by every stage of one render job."""
    name: str
    width: int
    height: int
    fps: int = 30
    motion: str = MOTION_KEN_BURNS
    encoder: EncoderSettings = field(default_factory=EncoderSettings)
    color_grade: ColorGrade = field(default_factory=ColorGrade)
    ken_burns: KenBurnsSettings = field(default_factory=KenBurnsSettings)
    pan_patterns: Tuple[PanPattern, ...] = ()
    pan_travel_ratio: float = 0.33
    tail_fill: str = TAIL_FILL_HOLD
    captions: CaptionSettings = field(default_factory=CaptionSettings)

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def is_vertical(self) -> bool:
        return self.height > self.width


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the render configuration file merged over the built-in defaults.

    Args:
        config_path: YAML file path (default: config/render.yaml)

    Returns:
        Dict with "defaults" and "profiles" sections
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        logger.debug(f"Render config not found at {path}, using built-in defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return _deep_merge(DEFAULT_CONFIG, data)


def _build_profile(name: str, settings: Dict[str, Any]) -> RenderProfile:
    encoder = dict(settings.get("encoder", {}))
    if os.getenv("RENDER_PRESET"):
        encoder["preset"] = os.getenv("RENDER_PRESET")
    if os.getenv("RENDER_CRF"):
        encoder["crf"] = int(os.getenv("RENDER_CRF"))

    tail_fill = settings.get("tail_fill", TAIL_FILL_HOLD)
    if tail_fill not in (TAIL_FILL_HOLD, TAIL_FILL_BLACK):
        raise ValueError(f"tail_fill must be 'hold' or 'black', got {tail_fill!r}")

    motion = settings.get("motion", MOTION_KEN_BURNS)
    if motion not in (MOTION_KEN_BURNS, MOTION_HORIZONTAL_PAN):
        raise ValueError(f"Unknown motion type for profile '{name}': {motion!r}")

    patterns = tuple(PanPattern(**p) for p in settings.get("pan_patterns", []))
    if motion == MOTION_KEN_BURNS and not patterns:
        raise ValueError(f"Profile '{name}' uses Ken Burns motion but has no pan patterns")

    return RenderProfile(
        name=name,
        width=int(settings["width"]),
        height=int(settings["height"]),
        fps=int(settings.get("fps", 30)),
        motion=motion,
        encoder=EncoderSettings(**encoder),
        color_grade=ColorGrade(**settings.get("color_grade", {})),
        ken_burns=KenBurnsSettings(**settings.get("ken_burns", {})),
        pan_patterns=patterns,
        pan_travel_ratio=float(settings.get("horizontal_pan", {}).get("travel_ratio", 0.33)),
        tail_fill=tail_fill,
        captions=CaptionSettings(**settings.get("captions", {})),
    )


def load_profile(name: str = "short", config_path: Optional[Path] = None) -> RenderProfile:
    """
    Load a named render profile.

    Args:
        name: Profile name ("short" or "long" in the default config)
        config_path: Optional YAML config path

    Returns:
        Frozen RenderProfile
    """
    config = load_config(config_path)
    profiles = config.get("profiles", {})
    if name not in profiles:
        raise ValueError(f"Unknown render profile '{name}'. Available: {', '.join(profiles)}")

    settings = _deep_merge(config.get("defaults", {}), profiles[name])
    profile = _build_profile(name, settings)
    logger.debug(
        f"Loaded profile '{name}': {profile.width}x{profile.height} @ {profile.fps}fps, "
        f"motion={profile.motion}"
    )
    return profile
