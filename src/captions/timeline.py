"""
Caption timeline: groups word-level timestamps into short display cues.

Usage:
    words = load_transcript("words.json")
    cues = build_timeline(words, words_per_cue=3)
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

from loguru import logger


@dataclass(frozen=True)
class Word:
    """A spoken word with offsets (seconds) from narration start."""
    text: str
    start: float
    end: float

    def to_dict(self) -> Dict:
        return {"text": self.text, "start": self.start, "end": self.end}


@dataclass(frozen=True)
class WordTiming:
    """A word plus its highlight window relative to the enclosing cue."""
    word: Word
    relative_start: float
    relative_end: float

    @property
    def start_ms(self) -> int:
        return int(round(self.relative_start * 1000))

    @property
    def end_ms(self) -> int:
        return int(round(self.relative_end * 1000))


@dataclass
class CaptionCue:
    """An ordered group of words shown together."""
    index: int
    words: List[WordTiming] = field(default_factory=list)

    @property
    def start(self) -> float:
        return self.words[0].word.start

    @property
    def end(self) -> float:
        return self.words[-1].word.end

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def text(self) -> str:
        return " ".join(w.word.text for w in self.words)


def build_timeline(words: Sequence[Word], words_per_cue: int = 3) -> List[CaptionCue]:
    """
    Chunk words into cues of at most words_per_cue words.

    Args:
        words: Words in spoken order
        words_per_cue: Maximum words per cue

    Returns:
        Ordered CaptionCues; ceil(len(words) / words_per_cue) of them
    """
    if words_per_cue < 1:
        raise ValueError(f"words_per_cue must be at least 1, got {words_per_cue}")

    cues = []
    for offset in range(0, len(words), words_per_cue):
        group = words[offset:offset + words_per_cue]
        cue_start = group[0].start
        timings = [
            WordTiming(
                word=word,
                relative_start=max(0.0, word.start - cue_start),
                relative_end=max(0.0, word.end - cue_start),
            )
            for word in group
        ]
        cues.append(CaptionCue(index=len(cues), words=timings))

    logger.info(f"Grouped {len(words)} words into {len(cues)} caption cues (max {words_per_cue} per cue)")
    return cues


def words_from_items(items: Sequence[Dict[str, Any]]) -> List[Word]:
    """
    Convert speech-to-text word items into Words.

    Accepts "word" or "text" keys. Blank words are skipped and an end
    before its start is clamped to the start.
    """
    words = []
    for item in items:
        text = str(item.get("word", item.get("text", ""))).strip()
        if not text:
            continue
        start = float(item["start"])
        end = max(float(item["end"]), start)
        words.append(Word(text=text, start=start, end=end))
    return words


def load_transcript(path: str) -> List[Word]:
    """
    Load a word-level transcript from JSON.

    The file may hold a bare list of word items or an object with a
    "words" key (verbose speech-to-text responses).
    """
    with open(Path(path), encoding="utf-8") as f:
        data = json.load(f)

    items = data.get("words", []) if isinstance(data, dict) else data
    words = words_from_items(items)
    logger.info(f"Loaded transcript: {len(words)} words from {path}")
    return words
