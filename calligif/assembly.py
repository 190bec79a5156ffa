"""
Output assembly: canvas frames --> animated WebP or a zip of PNG stills.

Two consumers of the compositor's frame sequence:

* ``AnimationEncoder`` -- feeds each timestamped canvas to libwebp's
  animation encoder as it arrives and assembles one animated WebP
  whose total duration is the timestamp passed to ``finalize``.
  Only timestamps are kept between frames.  An encoder that never
  received a frame refuses to finalize.
* ``ArchivePacker`` -- PNG-encodes each frame straight into a stored
  (uncompressed) zip entry ``frame_000.png``, ``frame_001.png``, ...
  PNG data is already deflated, so the container adds no second pass.
  Packing zero frames yields a valid, empty archive.

The two empty-input behaviours differ on purpose; see DESIGN.md.
"""

from __future__ import annotations

import enum
import io
import logging
import zipfile
from dataclasses import dataclass
from typing import Iterable

import webp
from PIL import Image

from calligif.exceptions import AnimationEncodeError, ArchiveError, EmptyFramesError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class OutputFormat(enum.Enum):
    """Supported payload kinds."""
    WEBP = "webp"
    ZIP = "zip"

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]


_CONTENT_TYPES = {
    OutputFormat.WEBP: "image/webp",
    OutputFormat.ZIP: "application/zip",
}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class WebpConfig:
    """WebP animation options."""
    quality: int = 80               # 0 -- 100
    lossless: bool = False
    loop_count: int = 0             # 0 = infinite
    method: int = 4                 # Compression effort 0 -- 6


# ===================================================================
#  SECTION 1 -- WEBP ANIMATION
# ===================================================================

class AnimationEncoder:
    """Timestamped animated-WebP writer for equally sized canvases.

    Usage::

        encoder = AnimationEncoder((800, 800))
        encoder.add_frame(canvas, 0)
        encoder.add_frame(canvas, 33)
        webp_bytes = encoder.finalize(66)

    Frame *i* is displayed from its own timestamp until the next one;
    the last frame lasts until the finalize timestamp.  Each canvas is
    handed to libwebp as soon as it arrives, so only the timestamps are
    kept between calls and the caller may keep drawing on the canvas.
    """

    def __init__(self, size: tuple[int, int], config: WebpConfig | None = None) -> None:
        width, height = size
        if width <= 0 or height <= 0:
            raise AnimationEncodeError(f"Cannot animate a {width}x{height} canvas")
        self.size = (width, height)
        self.config = config or WebpConfig()
        self._encoder = webp.WebPAnimEncoder.new(width, height, self._encoder_options())
        self._frame_config = webp.WebPConfig.new(
            quality=self.config.quality,
            lossless=self.config.lossless,
            method=self.config.method,
        )
        self.timestamps_ms: list[int] = []
        self.end_timestamp_ms: int | None = None

    def _encoder_options(self):
        options = webp.WebPAnimEncoderOptions.new()
        if self.config.loop_count:
            options.anim_params.loop_count = self.config.loop_count
        return options

    def __len__(self) -> int:
        return len(self.timestamps_ms)

    def add_frame(self, image: Image.Image, timestamp_ms: int) -> None:
        """Encode *image* as the frame shown from *timestamp_ms*."""
        if self.end_timestamp_ms is not None:
            raise AnimationEncodeError("Encoder has already been finalized")
        if self.timestamps_ms and timestamp_ms < self.timestamps_ms[-1]:
            raise AnimationEncodeError(
                f"Timestamp {timestamp_ms} precedes previous frame "
                f"({self.timestamps_ms[-1]})"
            )
        if image.size != self.size:
            raise AnimationEncodeError(
                f"Frame is {image.width}x{image.height}, "
                f"animation is {self.size[0]}x{self.size[1]}"
            )
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")
        try:
            picture = webp.WebPPicture.from_pil(image)
            self._encoder.encode_frame(picture, timestamp_ms, self._frame_config)
        except webp.WebPError as exc:
            raise AnimationEncodeError(f"WebP frame encoding failed: {exc}") from exc
        self.timestamps_ms.append(timestamp_ms)
        logger.debug("Encoded frame %d at %d ms", len(self.timestamps_ms) - 1, timestamp_ms)

    def durations(self, end_timestamp_ms: int) -> list[int]:
        """Per-frame display time derived from consecutive timestamps."""
        bounds = self.timestamps_ms[1:] + [end_timestamp_ms]
        return [end - start for start, end in zip(self.timestamps_ms, bounds)]

    def finalize(self, end_timestamp_ms: int) -> bytes:
        """Assemble the animation; *end_timestamp_ms* is its total duration."""
        if not self.timestamps_ms:
            raise EmptyFramesError()
        if self.end_timestamp_ms is not None:
            raise AnimationEncodeError("Encoder has already been finalized")
        if end_timestamp_ms < self.timestamps_ms[-1]:
            raise AnimationEncodeError(
                f"End timestamp {end_timestamp_ms} precedes last frame "
                f"({self.timestamps_ms[-1]})"
            )
        try:
            anim_data = self._encoder.assemble(end_timestamp_ms)
        except webp.WebPError as exc:
            raise AnimationEncodeError(f"WebP assembly failed: {exc}") from exc

        self.end_timestamp_ms = end_timestamp_ms
        payload = bytes(anim_data.buffer())
        logger.info("Encoded %d frames (%d ms) into %d bytes of WebP",
                    len(self.timestamps_ms), end_timestamp_ms, len(payload))
        return payload


def encode_frames_to_webp(
    frames: Iterable[Image.Image],
    frame_delay_ms: int,
    config: WebpConfig | None = None,
) -> bytes:
    """Encode frames shown ``frame_delay_ms`` apart into an animated WebP.

    The delay converts from a frame rate as ``1000 / fps`` (33 ms is
    roughly 30 fps).  The canvas size is taken from the first frame.
    """
    encoder: AnimationEncoder | None = None
    timestamp = 0
    for frame in frames:
        if encoder is None:
            encoder = AnimationEncoder(frame.size, config)
        encoder.add_frame(frame, timestamp)
        timestamp += frame_delay_ms
    if encoder is None:
        raise EmptyFramesError()
    return encoder.finalize(timestamp)


# ===================================================================
#  SECTION 2 -- ZIP OF PNG STILLS
# ===================================================================

def archive_entry_name(index: int) -> str:
    return f"frame_{index:03d}.png"


class ArchivePacker:
    """Streams PNG stills into an in-memory, store-only zip archive."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", compression=zipfile.ZIP_STORED)
        self.entry_names: list[str] = []

    def add_frame(self, image: Image.Image) -> str:
        """PNG-encode *image* directly into the next archive entry."""
        name = archive_entry_name(len(self.entry_names))
        info = zipfile.ZipInfo(name)
        info.compress_type = zipfile.ZIP_STORED
        info.external_attr = 0o755 << 16
        try:
            with self._zip.open(info, "w") as entry:
                image.save(entry, format="PNG")
        except (OSError, ValueError, zipfile.BadZipFile) as exc:
            raise ArchiveError(f"Cannot write {name}: {exc}") from exc
        self.entry_names.append(name)
        return name

    def finalize(self) -> bytes:
        try:
            self._zip.close()
        except (OSError, ValueError) as exc:
            raise ArchiveError(f"Cannot finish zip archive: {exc}") from exc
        payload = self._buffer.getvalue()
        logger.info("Packed %d frames into %d bytes of zip", len(self.entry_names), len(payload))
        return payload


def zip_frames_to_memory(frames: Iterable[Image.Image]) -> bytes:
    """Pack frames as ``frame_NNN.png`` entries in production order."""
    packer = ArchivePacker()
    for frame in frames:
        packer.add_frame(frame)
    return packer.finalize()
