"""
Karaoke Caption Renderer (ASS)

Serializes caption cues into an Advanced SubStation Alpha file. Every cue
is one Dialogue event; inside it each word carries two timed transforms,
one ramping into the highlight at the word's start and one ramping back to
neutral at its end, so the spoken word lights up as the narration reaches
it.

Three presentation variants share identical timing:
- highlight-pulse: highlight colour plus a small scale bump
- box-highlight:   opaque colour box behind the active word
- fill-highlight:  solid colour fill of the active word's glyphs

Usage:
    selection = CaptionSelection.choose(random.Random(7), catalog.available())
    renderer = CaptionRenderer(profile)
    renderer.write(cues, selection, "captions.ass")
"""

import math
import random
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple

from loguru import logger

from .fonts import FALLBACK_FONT, FontChoice
from .timeline import CaptionCue, WordTiming

NEUTRAL_COLOR = "&HFFFFFF&"


class CaptionStyle(Enum):
    """Presentation of the active word."""
    PULSE = "highlight-pulse"
    BOX = "box-highlight"
    FILL = "fill-highlight"

    @classmethod
    def from_name(cls, name: str) -> "CaptionStyle":
        aliases = {"pulse": cls.PULSE, "box": cls.BOX, "fill": cls.FILL}
        key = name.strip().lower()
        if key in aliases:
            return aliases[key]
        return cls(key)


@dataclass(frozen=True)
class HighlightColor:
    """Highlight colour in ASS BGR notation."""
    name: str
    code: str


HIGHLIGHT_COLORS = [
    HighlightColor("Yellow", "&H00FFFF&"),
    HighlightColor("Orange", "&H0080FF&"),
    HighlightColor("Neon green", "&H00FF00&"),
    HighlightColor("Sky blue", "&HFFFF00&"),
    HighlightColor("Purple", "&HFF00FF&"),
    HighlightColor("Red", "&H0000FF&"),
]


@dataclass(frozen=True)
class CaptionSelection:
    """Style, colour and font, chosen once and held for a whole job."""
    style: CaptionStyle
    color: HighlightColor
    font: FontChoice

    @classmethod
    def choose(
        cls,
        rng: random.Random,
        fonts: Sequence[FontChoice],
        style: Optional[CaptionStyle] = None,
        color: Optional[HighlightColor] = None
    ) -> "CaptionSelection":
        """
        Pick anything not given explicitly from the catalogues.

        Args:
            rng: Random source (seed it for reproducible renders)
            fonts: Usable fonts, see FontCatalog.available()
            style: Fixed style, or None to pick one
            color: Fixed colour, or None to pick one
        """
        chosen_style = style or rng.choice(list(CaptionStyle))
        chosen_color = color or rng.choice(HIGHLIGHT_COLORS)
        chosen_font = rng.choice(list(fonts)) if fonts else FontChoice(FALLBACK_FONT)
        return cls(style=chosen_style, color=chosen_color, font=chosen_font)


def format_ass_time(seconds: float) -> str:
    """Format seconds as H:MM:SS.cc (centiseconds, floored)."""
    total_cs = int(math.floor(max(0.0, seconds) * 100 + 1e-6))
    hours, rem = divmod(total_cs, 360000)
    minutes, rem = divmod(rem, 6000)
    secs, cs = divmod(rem, 100)
    return f"{hours}:{minutes:02d}:{secs:02d}.{cs:02d}"


def sanitize_ass_text(text: str) -> str:
    """Drop characters that would open or close ASS override tags."""
    return text.replace("{", "").replace("}", "").replace("\\", "")


def highlight_window(timing: WordTiming, ramp_ms: int) -> Tuple[int, int, int, int]:
    """
    Millisecond offsets (within the cue) of the ramp in and ramp out.

    Returns:
        (in_start, in_end, out_start, out_end)
    """
    start, end = timing.start_ms, timing.end_ms
    # Short words split their length between the two ramps
    in_end = min(start + ramp_ms, (start + end) // 2)
    out_start = max(in_end, end - ramp_ms)
    out_end = max(end, out_start)
    return start, in_end, out_start, out_end


class CaptionRenderer:
    """Builds the ASS overlay document for one profile."""

    STYLE_FORMAT = (
        "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, "
        "BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, "
        "BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding"
    )
    EVENT_FORMAT = "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"

    PULSE_SCALE = 120
    BOX_PADDING = 12

    def __init__(self, profile):
        """
        Args:
            profile: RenderProfile (frame size and caption settings)
        """
        self.width = profile.width
        self.height = profile.height
        self.settings = profile.captions

    def _style_line(self, selection: CaptionSelection) -> str:
        s = self.settings
        font = selection.font.name
        if selection.style is CaptionStyle.BOX:
            # Opaque box style; the box stays transparent until a word activates it
            return (
                f"Style: Default,{font},{s.font_size},&H00FFFFFF,&H000000FF,&HFF000000,&HFF000000,"
                f"-1,0,0,0,100,100,0,0,3,{self.BOX_PADDING},0,2,40,40,{s.margin_v},1"
            )
        return (
            f"Style: Default,{font},{s.font_size},&H00FFFFFF,&H000000FF,&H00000000,&HA0000000,"
            f"-1,0,0,0,100,100,0,0,1,4,2,2,40,40,{s.margin_v},1"
        )

    def header(self, selection: CaptionSelection) -> str:
        return "\n".join([
            "[Script Info]",
            "Title: Karaoke Captions",
            "ScriptType: v4.00+",
            f"PlayResX: {self.width}",
            f"PlayResY: {self.height}",
            "WrapStyle: 0",
            "ScaledBorderAndShadow: yes",
            "",
            "[V4+ Styles]",
            self.STYLE_FORMAT,
            self._style_line(selection),
            "",
            "[Events]",
            self.EVENT_FORMAT,
            "",
        ])

    def word_markup(self, timing: WordTiming, selection: CaptionSelection) -> str:
        """Override tags plus text for one word, reset afterwards."""
        in_start, in_end, out_start, out_end = highlight_window(timing, self.settings.ramp_ms)
        color = selection.color.code
        text = sanitize_ass_text(timing.word.text).upper()

        if selection.style is CaptionStyle.PULSE:
            scale = self.PULSE_SCALE
            on = f"\\c{color}\\fscx{scale}\\fscy{scale}"
            off = f"\\c{NEUTRAL_COLOR}\\fscx100\\fscy100"
        elif selection.style is CaptionStyle.BOX:
            on = f"\\3c{color}\\3a&H00&"
            off = "\\3a&HFF&"
        else:
            on = f"\\1c{color}"
            off = f"\\1c{NEUTRAL_COLOR}"

        return (
            f"{{\\t({in_start},{in_end},{on})}}"
            f"{{\\t({out_start},{out_end},{off})}}"
            f"{text}{{\\r}}"
        )

    def dialogue(self, cue: CaptionCue, selection: CaptionSelection) -> str:
        fade = self.settings.fade_ms
        body = " ".join(self.word_markup(timing, selection) for timing in cue.words)
        return (
            f"Dialogue: 0,{format_ass_time(cue.start)},{format_ass_time(cue.end)},"
            f"Default,,0,0,0,,{{\\fad({fade},{fade})}}{body}"
        )

    def render(self, cues: Sequence[CaptionCue], selection: CaptionSelection) -> str:
        lines = [self.dialogue(cue, selection) for cue in cues]
        return self.header(selection) + "\n".join(lines) + "\n"

    def write(self, cues: Sequence[CaptionCue], selection: CaptionSelection, output_path: str) -> str:
        """
        Write the ASS file.

        Returns:
            Path to the written file
        """
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.render(cues, selection))

        logger.info(
            f"Created ASS captions: {output_path} ({len(cues)} cues, "
            f"style={selection.style.value}, color={selection.color.name}, font={selection.font.name})"
        )
        return output_path

