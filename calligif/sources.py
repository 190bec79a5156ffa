"""
Stroke-frame acquisition.

The pipeline never talks to a blob store directly.  It depends on a
FrameSource, whose single job is to turn ``(style, character)`` into the
raw bytes of that character's stroke archive, or None when the store
has no such archive.  Archives are laid out as ``<Style>/<char>.zip``
and whole-character stills as ``<Style>/<char>.png``.

Fetching is independent per character, so ``fetch_frame_sets`` resolves
characters concurrently and hands the results back in content order.
"""

from __future__ import annotations

import abc
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

from calligif.frames import load_static_frame, parse_frame_archive
from calligif.types import CalliFont, Frame, FrameSet, empty_frame_set

logger = logging.getLogger(__name__)


def frame_archive_name(font: CalliFont, character: str) -> str:
    return f"{font}/{character}.zip"


def static_image_name(font: CalliFont, character: str) -> str:
    return f"{font}/{character}.png"


# ---------------------------------------------------------------------------
# Source interface
# ---------------------------------------------------------------------------

class FrameSource(abc.ABC):
    """Resolves stroke archives by style and character."""

    @abc.abstractmethod
    def resolve(self, font: CalliFont, character: str) -> bytes | None:
        """Return the zip archive bytes, or None if the character is absent."""

    def resolve_static(self, font: CalliFont, character: str) -> bytes | None:
        """Return the whole-character PNG bytes, or None if absent."""
        return None


class InMemoryFrameSource(FrameSource):
    """Dictionary-backed source keyed by blob name."""

    def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
        self.blobs: dict[str, bytes] = dict(blobs or {})
        self.requests: list[str] = []

    def add_archive(self, font: CalliFont, character: str, data: bytes) -> None:
        self.blobs[frame_archive_name(font, character)] = data

    def add_static(self, font: CalliFont, character: str, data: bytes) -> None:
        self.blobs[static_image_name(font, character)] = data

    def resolve(self, font, character):
        name = frame_archive_name(font, character)
        self.requests.append(name)
        return self.blobs.get(name)

    def resolve_static(self, font, character):
        name = static_image_name(font, character)
        self.requests.append(name)
        return self.blobs.get(name)


class DirectoryFrameSource(FrameSource):
    """Reads the blob layout from a local directory tree."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _read(self, name: str) -> bytes | None:
        path = self.root / name
        if not path.is_file():
            return None
        return path.read_bytes()

    def resolve(self, font, character):
        return self._read(frame_archive_name(font, character))

    def resolve_static(self, font, character):
        return self._read(static_image_name(font, character))


# ---------------------------------------------------------------------------
# Fetch + parse
# ---------------------------------------------------------------------------

def load_frame_set(source: FrameSource, font: CalliFont, character: str) -> FrameSet:
    """Resolve and parse one character; missing archives give the sentinel set."""
    data = source.resolve(font, character)
    if data is None:
        logger.warning("No stroke archive for %r in %s; character will be skipped",
                       character, font)
        return empty_frame_set(character)
    return parse_frame_archive(data, character)


def load_static_frames(source: FrameSource, font: CalliFont, content: str) -> list[Frame]:
    """Whole-character stills for *content*; missing ones become empty frames."""
    frames = []
    for character in content:
        data = source.resolve_static(font, character)
        if data is None:
            logger.warning("No static image for %r in %s", character, font)
            frames.append(empty_frame_set(character).frames[0])
        else:
            frames.append(load_static_frame(data, f"{character}.png"))
    return frames


def _default_workers(n_items: int) -> int:
    return max(1, min(n_items, (os.cpu_count() or 1) + 4))


def fetch_frame_sets(
    source: FrameSource,
    font: CalliFont,
    content: str,
    max_workers: int = 0,
) -> list[FrameSet]:
    """Fetch every character of *content*, returning sets in content order.

    ``max_workers=0`` picks a worker count automatically; 1 fetches
    sequentially.  The first failure cancels pending fetches and is
    re-raised.
    """
    characters = list(content)
    if not characters:
        return []
    workers = max_workers or _default_workers(len(characters))

    if workers <= 1 or len(characters) == 1:
        return [load_frame_set(source, font, ch) for ch in characters]

    results: dict[int, FrameSet] = {}
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures: dict[Future, int] = {
            pool.submit(load_frame_set, source, font, ch): idx
            for idx, ch in enumerate(characters)
        }
        for future in as_completed(futures):
            idx = futures[future]
            try:
                results[idx] = future.result()
            except Exception:
                for pending in futures:
                    pending.cancel()
                raise

    logger.debug("Fetched %d frame sets with %d workers", len(results), workers)
    return [results[idx] for idx in range(len(characters))]
