"""
Tests for output assembly: the timestamped WebP encoder and the
store-only PNG archive packer.
"""

from __future__ import annotations

import io
import zipfile

import numpy as np
import pytest
from PIL import Image

from calligif.assembly import (
    AnimationEncoder,
    ArchivePacker,
    OutputFormat,
    WebpConfig,
    archive_entry_name,
    encode_frames_to_webp,
    zip_frames_to_memory,
)
from calligif.exceptions import AnimationEncodeError, EmptyFramesError

# Suppress unclosed-file resource warnings from Pillow lazy loading.
pytestmark = pytest.mark.filterwarnings("ignore::pytest.PytestUnraisableExceptionWarning")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _solid(color, size=(24, 16)):
    return Image.new("RGBA", size, color)


@pytest.fixture
def three_frames():
    return [_solid((255, 0, 0, 255)), _solid((0, 255, 0, 255)), _solid((0, 0, 255, 255))]


def _read_webp(payload):
    img = Image.open(io.BytesIO(payload))
    frames, durations = [], []
    for i in range(getattr(img, "n_frames", 1)):
        img.seek(i)
        img.load()
        frames.append(img.convert("RGBA"))
        durations.append(img.info.get("duration"))
    return img, frames, durations


# ---------------------------------------------------------------------------
# OutputFormat
# ---------------------------------------------------------------------------

class TestOutputFormat:
    def test_content_types(self):
        assert OutputFormat.WEBP.content_type == "image/webp"
        assert OutputFormat.ZIP.content_type == "application/zip"

    def test_values(self):
        assert OutputFormat("webp") is OutputFormat.WEBP
        assert OutputFormat("zip") is OutputFormat.ZIP


# ---------------------------------------------------------------------------
# AnimationEncoder
# ---------------------------------------------------------------------------

class TestAnimationEncoder:
    def test_timestamps_and_durations(self, three_frames):
        encoder = AnimationEncoder((24, 16))
        for i, frame in enumerate(three_frames):
            encoder.add_frame(frame, i * 33)
        assert encoder.timestamps_ms == [0, 33, 66]
        assert encoder.durations(99) == [33, 33, 33]
        assert len(encoder) == 3

    def test_finalize_produces_webp(self, three_frames):
        encoder = AnimationEncoder((24, 16), WebpConfig(lossless=True))
        for i, frame in enumerate(three_frames):
            encoder.add_frame(frame, i * 33)
        payload = encoder.finalize(99)
        assert payload[:4] == b"RIFF"
        assert payload[8:12] == b"WEBP"
        assert encoder.end_timestamp_ms == 99

        img, frames, durations = _read_webp(payload)
        assert img.n_frames == 3
        assert img.size == (24, 16)
        assert durations == [33, 33, 33]
        assert frames[1].getpixel((5, 5))[:3] == (0, 255, 0)

    def test_canvas_may_change_after_add(self):
        canvas = _solid((255, 0, 0, 255))
        encoder = AnimationEncoder((24, 16), WebpConfig(lossless=True))
        encoder.add_frame(canvas, 0)
        canvas.paste((0, 0, 255, 255), (0, 0, 24, 16))
        encoder.add_frame(canvas, 50)
        _, frames, _ = _read_webp(encoder.finalize(100))
        assert frames[0].getpixel((0, 0))[:3] == (255, 0, 0)
        assert frames[1].getpixel((0, 0))[:3] == (0, 0, 255)

    def test_uneven_timestamps(self, three_frames):
        encoder = AnimationEncoder((24, 16))
        for frame, ts in zip(three_frames, (0, 10, 40)):
            encoder.add_frame(frame, ts)
        assert encoder.durations(100) == [10, 30, 60]

    def test_empty_encoder_refuses_to_finalize(self):
        with pytest.raises(EmptyFramesError, match="empty frames"):
            AnimationEncoder((10, 10)).finalize(0)

    def test_decreasing_timestamp_rejected(self, three_frames):
        encoder = AnimationEncoder((24, 16))
        encoder.add_frame(three_frames[0], 33)
        with pytest.raises(AnimationEncodeError):
            encoder.add_frame(three_frames[1], 0)

    def test_end_before_last_frame_rejected(self, three_frames):
        encoder = AnimationEncoder((24, 16))
        encoder.add_frame(three_frames[0], 0)
        encoder.add_frame(three_frames[1], 33)
        with pytest.raises(AnimationEncodeError):
            encoder.finalize(10)

    def test_add_after_finalize_rejected(self, three_frames):
        encoder = AnimationEncoder((24, 16))
        encoder.add_frame(three_frames[0], 0)
        encoder.finalize(33)
        with pytest.raises(AnimationEncodeError):
            encoder.add_frame(three_frames[1], 33)
        with pytest.raises(AnimationEncodeError):
            encoder.finalize(66)

    def test_keeps_no_frames_between_calls(self, three_frames):
        encoder = AnimationEncoder((24, 16))
        for i, frame in enumerate(three_frames):
            encoder.add_frame(frame, i * 33)

        def holds_image(value):
            if isinstance(value, Image.Image):
                return True
            if isinstance(value, (list, tuple, dict)):
                items = value.values() if isinstance(value, dict) else value
                return any(holds_image(v) for v in items)
            return False

        assert not any(holds_image(v) for v in vars(encoder).values())
        assert encoder.timestamps_ms == [0, 33, 66]

    def test_wrong_frame_size_rejected(self):
        encoder = AnimationEncoder((24, 16))
        with pytest.raises(AnimationEncodeError, match="10x10"):
            encoder.add_frame(_solid((0, 0, 0, 255), (10, 10)), 0)

    def test_zero_sized_canvas_rejected(self):
        with pytest.raises(AnimationEncodeError):
            AnimationEncoder((0, 16))

    def test_palette_frames_converted(self):
        frame = _solid((0, 0, 255, 255)).convert("P")
        encoder = AnimationEncoder((24, 16), WebpConfig(lossless=True))
        encoder.add_frame(frame, 0)
        _, frames, _ = _read_webp(encoder.finalize(33))
        assert frames[0].getpixel((3, 3))[:3] == (0, 0, 255)


class TestEncodeFramesToWebp:
    def test_basic(self, three_frames):
        payload = encode_frames_to_webp(three_frames, 40, WebpConfig(lossless=True))
        img, _, durations = _read_webp(payload)
        assert img.n_frames == 3
        assert durations == [40, 40, 40]

    def test_accepts_generator(self, three_frames):
        payload = encode_frames_to_webp((f for f in three_frames), 33)
        assert payload[8:12] == b"WEBP"

    def test_empty_input_raises(self):
        with pytest.raises(EmptyFramesError):
            encode_frames_to_webp([], 33)

    def test_single_frame(self):
        payload = encode_frames_to_webp([_solid((9, 9, 9, 255))], 33)
        assert Image.open(io.BytesIO(payload)).size == (24, 16)


# ---------------------------------------------------------------------------
# ArchivePacker
# ---------------------------------------------------------------------------

class TestArchivePacker:
    def test_entry_names(self):
        assert archive_entry_name(0) == "frame_000.png"
        assert archive_entry_name(42) == "frame_042.png"
        assert archive_entry_name(1234) == "frame_1234.png"

    def test_round_trip(self, three_frames):
        payload = zip_frames_to_memory(three_frames)
        with zipfile.ZipFile(io.BytesIO(payload)) as zf:
            infos = zf.infolist()
            assert [i.filename for i in infos] == [
                "frame_000.png", "frame_001.png", "frame_002.png",
            ]
            assert all(i.compress_type == zipfile.ZIP_STORED for i in infos)
            assert all((i.external_attr >> 16) & 0o777 == 0o755 for i in infos)
            for info, original in zip(infos, three_frames):
                decoded = Image.open(io.BytesIO(zf.read(info))).convert("RGBA")
                assert decoded.size == (24, 16)
                assert np.array_equal(np.asarray(decoded), np.asarray(original))

    def test_empty_input_gives_empty_archive(self):
        # Unlike the WebP encoder, packing nothing is not an error.
        payload = zip_frames_to_memory([])
        with zipfile.ZipFile(io.BytesIO(payload)) as zf:
            assert zf.namelist() == []

    def test_packer_tracks_names(self, three_frames):
        packer = ArchivePacker()
        assert packer.add_frame(three_frames[0]) == "frame_000.png"
        assert packer.add_frame(three_frames[1]) == "frame_001.png"
        assert packer.entry_names == ["frame_000.png", "frame_001.png"]
        with zipfile.ZipFile(io.BytesIO(packer.finalize())) as zf:
            assert zf.testzip() is None
