"""
calligif -- stroke-by-stroke calligraphy animation pipeline.

Decodes per-character stroke frame archives, composites them in order
onto one shared canvas, and packages the result as an animated WebP or
a zip of PNG snapshots.
"""

__version__ = "0.1.0"

from calligif.exceptions import CalligifError
from calligif.types import (
    CalliFont,
    CompositionRequest,
    Frame,
    FrameSet,
    PlacementBox,
)

__all__ = [
    "CalliFont",
    "CalligifError",
    "CompositionRequest",
    "Frame",
    "FrameSet",
    "PlacementBox",
]
