"""
Read-only static content: verse of the day and trending music.

The lists are configuration data shipped as ``data/static_content.json``;
``STATIC_CONTENT_PATH`` points the loader at another file.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Optional

DEFAULT_CONTENT_PATH = Path(__file__).parent / "data" / "static_content.json"


@dataclass(frozen=True)
class Verse:
    reference: str
    text: str
    translation: str = "KJV"

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Song:
    rank: int
    title: str
    artist: str

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class StaticContent:
    verses: tuple[Verse, ...]
    trending_music: tuple[Song, ...]

    def verse_for(self, day: date) -> Verse:
        """Same verse all day, cycling through the list one day at a time."""
        if not self.verses:
            raise ValueError("No verses configured.")
        return self.verses[day.toordinal() % len(self.verses)]


@lru_cache(maxsize=4)
def load_static_content(path: Optional[str] = None) -> StaticContent:
    content_path = Path(path) if path else DEFAULT_CONTENT_PATH
    with open(content_path, encoding="utf-8") as f:
        raw = json.load(f)
    verses = tuple(Verse(**item) for item in raw.get("verses", []))
    songs = sorted(
        (Song(**item) for item in raw.get("trending_music", [])),
        key=lambda s: s.rank,
    )
    return StaticContent(verses=verses, trending_music=tuple(songs))
