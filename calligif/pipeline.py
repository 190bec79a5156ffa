"""
Request-level entry points.

    request --> [fetch_frame_sets] --> [FrameCompositor] --> AnimationEncoder
                                                        \\-> ArchivePacker

Every run owns its canvas, encoder and packer.  Any error aborts the
run; nothing partial is returned.
"""

from __future__ import annotations

import io
import logging
import time
from dataclasses import dataclass

from PIL import Image

from calligif.assembly import (AnimationEncoder, ArchivePacker, OutputFormat,
                               encode_frames_to_webp, zip_frames_to_memory)
from calligif.compositor import FrameCompositor, check_structure
from calligif.config import PipelineConfig, validate_canvas_size
from calligif.exceptions import EmptyFramesError, RequestError
from calligif.layout import LayoutPlan, compose_static_layout
from calligif.sources import FrameSource, fetch_frame_sets, load_static_frames
from calligif.types import PUNCTUATION, CalliFont, CompositionRequest, FrameSet

logger = logging.getLogger(__name__)

__all__ = [
    "RenderResult",
    "compose_animation_frames",
    "encode_frames_to_webp",
    "generate_animation_webp",
    "generate_animation_zip",
    "generate_static_layout",
    "render_request",
    "zip_frames_to_memory",
]


@dataclass
class RenderResult:
    payload: bytes
    content_type: str
    frame_count: int
    elapsed_s: float = 0.0


def _validate_request(request: CompositionRequest) -> None:
    bad = sorted({ch for ch in request.content if ch in PUNCTUATION})
    if bad:
        raise RequestError(f"Content contains punctuation: {''.join(bad)}")
    # Checked before fetching so a mismatch never touches a canvas.
    check_structure(request.characters, request.boxes)


def _load(request: CompositionRequest, source: FrameSource,
          config: PipelineConfig) -> list[FrameSet]:
    _validate_request(request)
    return fetch_frame_sets(source, request.font, request.content,
                            max_workers=config.fetch_workers)


def compose_animation_frames(
    request: CompositionRequest,
    source: FrameSource,
    config: PipelineConfig | None = None,
) -> list[Image.Image]:
    """Composite the request and return one canvas snapshot per overlay."""
    config = config or PipelineConfig()
    frame_sets = _load(request, source, config)
    compositor = FrameCompositor(request.width, request.height)
    return compositor.compose(frame_sets, request.boxes)


def generate_animation_webp(
    request: CompositionRequest,
    source: FrameSource,
    frame_delay_ms: int | None = None,
    config: PipelineConfig | None = None,
) -> bytes:
    """Composite the request straight into an animated WebP.

    Canvas states are handed to the encoder as they are produced rather
    than collected into a snapshot list first.
    """
    payload, _ = _render_webp(request, source, frame_delay_ms, config or PipelineConfig())
    return payload


def _render_webp(request, source, frame_delay_ms, config):
    delay = _resolve_delay(frame_delay_ms, request, config)
    frame_sets = _load(request, source, config)

    compositor = FrameCompositor(request.width, request.height)
    encoder = AnimationEncoder((request.width, request.height), config.webp())
    end_timestamp = compositor.stream(frame_sets, request.boxes, encoder, delay)
    return encoder.finalize(end_timestamp), len(encoder.timestamps_ms)


def generate_animation_zip(
    request: CompositionRequest,
    source: FrameSource,
    config: PipelineConfig | None = None,
) -> bytes:
    """Composite the request into a zip of PNG canvas snapshots."""
    payload, _ = _render_zip(request, source, config or PipelineConfig())
    return payload


def _render_zip(request, source, config):
    frame_sets = _load(request, source, config)
    compositor = FrameCompositor(request.width, request.height)
    packer = ArchivePacker()
    for canvas in compositor.overlay_events(frame_sets, request.boxes):
        packer.add_frame(canvas)
    return packer.finalize(), len(packer.entry_names)


def _resolve_delay(explicit: int | None, request: CompositionRequest,
                   config: PipelineConfig) -> int:
    for candidate in (explicit, request.frame_delay_ms):
        if candidate is not None:
            if candidate < 0:
                raise RequestError(f"Frame delay must not be negative, got {candidate}")
            return candidate
    return config.frame_delay_ms


def render_request(
    request: CompositionRequest,
    source: FrameSource,
    fmt: OutputFormat = OutputFormat.WEBP,
    config: PipelineConfig | None = None,
    frame_delay_ms: int | None = None,
) -> RenderResult:
    """Boundary entry point: validate canvas size, render, tag content type.

    An explicit *frame_delay_ms* beats the request's own delay, which
    beats the configured default.
    """
    config = config or PipelineConfig()
    validate_canvas_size(request.width, request.height, config.max_canvas_size)
    t0 = time.perf_counter()

    if fmt == OutputFormat.WEBP:
        payload, frame_count = _render_webp(request, source, frame_delay_ms, config)
    elif fmt == OutputFormat.ZIP:
        payload, frame_count = _render_zip(request, source, config)
    else:
        raise ValueError(f"Unsupported output format: {fmt}")

    elapsed = time.perf_counter() - t0
    logger.info("Rendered %r as %s: %d frames, %d bytes in %.2fs",
                request.content, fmt.value, frame_count, len(payload), elapsed)
    return RenderResult(payload=payload, content_type=fmt.content_type,
                        frame_count=frame_count, elapsed_s=elapsed)


def generate_static_layout(
    font: CalliFont,
    content: str,
    source: FrameSource,
    canvas_width: int,
    canvas_height: int,
    columns: int | None = None,
) -> tuple[bytes, LayoutPlan]:
    """Lay whole-character stills out in columns and return PNG bytes."""
    validate_canvas_size(canvas_width, canvas_height)
    if columns is not None and columns < 1:
        raise RequestError(f"Column count must be at least 1, got {columns}")
    frames = load_static_frames(source, font, content)
    if not frames:
        raise EmptyFramesError("No characters to lay out.")
    canvas, plan = compose_static_layout(frames, canvas_width, canvas_height, columns)
    buf = io.BytesIO()
    canvas.save(buf, format="PNG")
    return buf.getvalue(), plan
