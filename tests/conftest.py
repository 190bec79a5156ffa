"""
Shared fixtures for the calligif test suite.
"""

from __future__ import annotations

import io
import zipfile

import pytest
from PIL import Image

from calligif.sources import InMemoryFrameSource
from calligif.types import CalliFont


def encode_image(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    if fmt == "JPEG":
        img = img.convert("RGB")
    img.save(buf, format=fmt)
    return buf.getvalue()


def stroke_image(index: int, size: tuple[int, int] = (10, 10),
                 color: tuple[int, int, int, int] = (0, 0, 0, 255)) -> Image.Image:
    """Transparent frame with one opaque row painted at row *index*."""
    img = Image.new("RGBA", size, (0, 0, 0, 0))
    row = index % size[1]
    for x in range(size[0]):
        img.putpixel((x, row), color)
    return img


def build_archive(entries) -> bytes:
    """Zip ``(name, image_or_bytes)`` pairs in the given order."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, payload in entries:
            if isinstance(payload, Image.Image):
                payload = encode_image(payload)
            zf.writestr(name, payload)
    return buf.getvalue()


def stroke_archive(n_frames: int, size: tuple[int, int] = (10, 10)) -> bytes:
    """Archive of *n_frames* stroke steps named ``0.png`` .. ``n-1.png``."""
    return build_archive(
        (f"{i}.png", stroke_image(i, size)) for i in range(n_frames)
    )


@pytest.fixture
def make_archive():
    return build_archive


@pytest.fixture
def make_stroke_archive():
    return stroke_archive


@pytest.fixture
def make_stroke_image():
    return stroke_image


@pytest.fixture
def png_bytes():
    return encode_image


@pytest.fixture
def poem_source():
    """Source with 安 (3 frames) and 山 (2 frames); 靜 is missing."""
    source = InMemoryFrameSource()
    source.add_archive(CalliFont.REGULAR, "安", stroke_archive(3))
    source.add_archive(CalliFont.REGULAR, "山", stroke_archive(2))
    return source
