"""
Sequential stroke compositing onto a shared canvas.

One canvas per run, opaque white, never cleared.  Characters are drawn
in content order and every frame of a character is resized to its
placement box and alpha-composited at the box origin.  Each overlay is
one output event::

    char 0: frame 0 -> event 0, frame 1 -> event 1, ...
    char 1: (sentinel, skipped)
    char 2: frame 0 -> event k, ...

Because nothing is cleared, the strokes of the whole poem are revealed
one after another rather than animating each character on its own.
Snapshot consumers receive copies of the canvas; streaming consumers
receive the live canvas plus a timestamp, over the same event sequence.
"""

from __future__ import annotations

import logging
from typing import Iterator, Protocol, Sequence

from PIL import Image

from calligif.exceptions import StructuralMismatchError
from calligif.types import WHITE, FrameSet, PlacementBox

logger = logging.getLogger(__name__)


class FrameSink(Protocol):
    """Anything that accepts timestamped canvas frames (e.g. AnimationEncoder)."""

    def add_frame(self, image: Image.Image, timestamp_ms: int) -> None: ...


def overlay(canvas: Image.Image, image: Image.Image, x: int, y: int) -> None:
    """Alpha-composite *image* onto *canvas* at (x, y), clipping at the edges."""
    left = max(x, 0)
    top = max(y, 0)
    right = min(x + image.width, canvas.width)
    bottom = min(y + image.height, canvas.height)
    if right <= left or bottom <= top:
        return
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    canvas.alpha_composite(
        image,
        dest=(left, top),
        source=(left - x, top - y, right - x, bottom - y),
    )


def check_structure(frame_sets: Sequence[FrameSet], boxes: Sequence[PlacementBox]) -> None:
    if len(frame_sets) != len(boxes):
        raise StructuralMismatchError(len(frame_sets), len(boxes))


def count_events(frame_sets: Sequence[FrameSet]) -> int:
    """Number of canvas states a run will emit."""
    return sum(len(fs) for fs in frame_sets if fs.is_available)


class FrameCompositor:
    """Owns the canvas for a single pipeline run."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.canvas = Image.new("RGBA", (width, height), WHITE)

    def overlay_events(
        self,
        frame_sets: Sequence[FrameSet],
        boxes: Sequence[PlacementBox],
    ) -> Iterator[Image.Image]:
        """Validate, then return an iterator that yields the live canvas
        after every overlay.

        The structure check runs before the first overlay, so a mismatch
        leaves the canvas untouched.
        """
        check_structure(frame_sets, boxes)
        logger.debug("Compositing %d frames onto a %dx%d canvas",
                     count_events(frame_sets), self.width, self.height)
        return self._run(frame_sets, boxes)

    def _run(self, frame_sets, boxes):
        n_events = 0
        for frame_set, box in zip(frame_sets, boxes):
            if not frame_set.is_available:
                logger.debug("Skipping %r: no stroke frames", frame_set.character)
                continue
            for frame in frame_set:
                frame.resize_to(box.width, box.height)
                overlay(self.canvas, frame.image, box.x, box.y)
                n_events += 1
                yield self.canvas
        logger.info("Composited %d frames over %d characters", n_events, len(frame_sets))

    def compose(
        self,
        frame_sets: Sequence[FrameSet],
        boxes: Sequence[PlacementBox],
    ) -> list[Image.Image]:
        """Return an independent snapshot of the canvas after each overlay."""
        return list(self.snapshots(frame_sets, boxes))

    def snapshots(
        self,
        frame_sets: Sequence[FrameSet],
        boxes: Sequence[PlacementBox],
    ) -> Iterator[Image.Image]:
        """Lazy form of ``compose``: one copy per event, produced on demand."""
        events = self.overlay_events(frame_sets, boxes)
        return (canvas.copy() for canvas in events)

    def stream(
        self,
        frame_sets: Sequence[FrameSet],
        boxes: Sequence[PlacementBox],
        sink: FrameSink,
        frame_delay_ms: int,
    ) -> int:
        """Forward every overlay to *sink* with a running timestamp.

        Returns the timestamp following the last frame, which is the
        total duration to declare when finalizing the animation.
        """
        timestamp = 0
        for canvas in self.overlay_events(frame_sets, boxes):
            sink.add_frame(canvas, timestamp)
            timestamp += frame_delay_ms
        return timestamp
