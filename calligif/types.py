"""
Core data structures shared by the frame pipeline.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterator

from PIL import Image

from calligif.exceptions import InvalidFontTypeError, RequestError

# High-quality resampling filter used for every frame resize.
RESAMPLE = Image.Resampling.LANCZOS

WHITE = (255, 255, 255, 255)

# Punctuation the front end is expected to strip before submitting content.
PUNCTUATION = frozenset("，。？！,?!")


class CalliFont(enum.Enum):
    """Supported calligraphic styles, valued by their storage name."""
    CLERICAL = "Clerical"
    CURSIVE = "Cursive"
    REGULAR = "Regular"
    SEAL = "Seal"
    SEMI_CURSIVE = "SemiCursive"

    @classmethod
    def parse(cls, name: str) -> CalliFont:
        """Map a display name (e.g. ``楷書``) or storage name to a style."""
        font = _DISPLAY_NAMES.get(name)
        if font is not None:
            return font
        for member in cls:
            if member.value == name:
                return member
        raise InvalidFontTypeError(name)

    def __str__(self) -> str:
        return self.value


_DISPLAY_NAMES = {
    "楷書": CalliFont.REGULAR,
    "草書": CalliFont.CURSIVE,
    "行書": CalliFont.SEMI_CURSIVE,
    "隸書": CalliFont.CLERICAL,
    "篆書": CalliFont.SEAL,
}


@dataclass(frozen=True)
class PlacementBox:
    """Target rectangle on the canvas for one character, in pixels."""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlacementBox:
        try:
            return cls(
                x=int(float(data["posX"])),
                y=int(float(data["posY"])),
                width=int(data["width"]),
                height=int(data["height"]),
            )
        except KeyError as exc:
            raise RequestError(f"Placement box is missing {exc.args[0]!r}") from exc
        except (TypeError, ValueError) as exc:
            raise RequestError(f"Placement box has a non-numeric field: {data!r}") from exc


@dataclass
class Frame:
    """One decoded stroke step of a character.

    ``image`` is always RGBA.  A zero-by-zero image marks the sentinel
    frame used when a character has no stroke data.
    """
    character: str
    index: int
    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def is_empty(self) -> bool:
        return self.width == 0 and self.height == 0

    def resize_to(self, width: int, height: int) -> None:
        """Resample the raster in place to exactly *width* x *height*."""
        width, height = max(width, 0), max(height, 0)
        if width == 0 or height == 0 or self.is_empty():
            self.image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            return
        if self.image.size != (width, height):
            self.image = self.image.resize((width, height), RESAMPLE)

    def resize_by_scale(self, scale: float) -> None:
        """Resample in place by a uniform factor; dimensions are truncated."""
        self.resize_to(int(self.width * scale), int(self.height * scale))


@dataclass
class FrameSet:
    """All frames of one character, ordered by stroke index."""
    character: str
    frames: list[Frame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    @property
    def is_available(self) -> bool:
        """False for the single-frame sentinel set."""
        return len(self.frames) > 1


def empty_frame_set(character: str) -> FrameSet:
    """Sentinel set for a character with no stroke archive."""
    return FrameSet(
        character=character,
        frames=[Frame(character=character, index=0,
                      image=Image.new("RGBA", (0, 0)))],
    )


@dataclass
class CompositionRequest:
    """Everything needed for one animation run."""
    font: CalliFont
    content: str
    boxes: list[PlacementBox]
    width: int
    height: int
    frame_delay_ms: int | None = None

    @property
    def characters(self) -> list[str]:
        return list(self.content)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompositionRequest:
        """Build a request from the service's camelCase JSON payload."""
        missing = [k for k in ("fontType", "content", "wordList", "width", "height")
                   if k not in data]
        if missing:
            raise RequestError(f"Request is missing required keys: {', '.join(missing)}")
        word_list = data["wordList"]
        if not isinstance(word_list, list):
            raise RequestError("'wordList' must be a list of placement boxes.")
        delay = data.get("frameDelayMs")
        try:
            width = int(data["width"])
            height = int(data["height"])
            delay = int(delay) if delay is not None else None
        except (TypeError, ValueError) as exc:
            raise RequestError(f"Request has a non-numeric dimension: {exc}") from exc
        return cls(
            font=CalliFont.parse(str(data["fontType"])),
            content=str(data["content"]),
            boxes=[PlacementBox.from_dict(b) for b in word_list],
            width=width,
            height=height,
            frame_delay_ms=delay,
        )
