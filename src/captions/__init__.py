"""
Captions Module - karaoke-style word highlighting.

- build_timeline: group word timestamps into short cues
- CaptionRenderer: write cues as an ASS overlay with per-word highlights
- FontCatalog: caption fonts (system font plus downloadable display fonts)
"""

from .ass_renderer import CaptionRenderer, CaptionSelection, CaptionStyle, HIGHLIGHT_COLORS
from .fonts import FontCatalog, FontChoice
from .timeline import CaptionCue, Word, build_timeline, load_transcript

__all__ = [
    "CaptionRenderer",
    "CaptionSelection",
    "CaptionStyle",
    "HIGHLIGHT_COLORS",
    "FontCatalog",
    "FontChoice",
    "CaptionCue",
    "Word",
    "build_timeline",
    "load_transcript",
]
