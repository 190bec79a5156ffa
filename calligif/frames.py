"""
Frame set parsing: stroke archive bytes --> ordered FrameSet.

Each character's strokes ship as a zip archive whose entries are named
by frame number::

    安.zip
        0.png
        1.png
        ...
        10.jpg

Entries are validated by name, decoded by content (the extension only
gates which names are accepted), and ordered by their numeric index.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from pathlib import PurePosixPath

from PIL import Image

from calligif.exceptions import ArchiveError, FrameDecodeError, InvalidFileNameError
from calligif.types import Frame, FrameSet

logger = logging.getLogger(__name__)

RASTER_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})

_INDEX_RE = re.compile(r"[0-9]+")


def decode_raster(data: bytes, entry_name: str = "") -> Image.Image:
    """Decode JPEG/PNG bytes into an RGBA image, sniffing the format."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise FrameDecodeError(
            f"Cannot decode image {entry_name or '<bytes>'}: {exc}",
            entry_name=entry_name,
        ) from exc


def frame_index(entry_name: str) -> int:
    """Return the frame number encoded in an archive entry name.

    Raises InvalidFileNameError unless the name has a raster extension
    and a stem made only of decimal digits.
    """
    path = PurePosixPath(entry_name)
    if path.suffix.lower() not in RASTER_EXTENSIONS:
        raise InvalidFileNameError(entry_name)
    if not _INDEX_RE.fullmatch(path.stem):
        raise InvalidFileNameError(entry_name)
    return int(path.stem)


def parse_frame_archive(data: bytes, character: str) -> FrameSet:
    """Load every numbered frame from a character's zip archive.

    Any badly named entry or undecodable image fails the whole set.
    Frames are sorted by index; equal indices keep archive order.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as exc:
        raise ArchiveError(f"Stroke archive for {character!r} is not a zip file: {exc}") from exc

    indexed: list[tuple[int, Frame]] = []
    with archive:
        for info in archive.infolist():
            idx = frame_index(info.filename)
            try:
                raw = archive.read(info)
            except (zipfile.BadZipFile, OSError) as exc:
                raise ArchiveError(f"Cannot read {info.filename!r}: {exc}") from exc
            image = decode_raster(raw, entry_name=info.filename)
            indexed.append((idx, Frame(character=character, index=idx, image=image)))

    indexed.sort(key=lambda pair: pair[0])
    logger.debug("Parsed %d frames for %r", len(indexed), character)
    return FrameSet(character=character, frames=[frame for _, frame in indexed])


def load_static_frame(data: bytes, file_name: str) -> Frame:
    """Load a whole-character image named ``<character>.<png|jpg|jpeg>``."""
    path = PurePosixPath(file_name)
    if path.suffix.lower() not in RASTER_EXTENSIONS or len(path.stem) != 1:
        raise InvalidFileNameError(file_name)
    return Frame(character=path.stem, index=0,
                 image=decode_raster(data, entry_name=file_name))
