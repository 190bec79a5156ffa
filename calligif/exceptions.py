"""
Custom exception hierarchy for calligif.

All calligif exceptions inherit from CalligifError so callers can catch
the entire family with a single except clause.  Every one of them is
terminal for the current request; a character with no stroke data is
not an error and never raises.
"""

from __future__ import annotations


class CalligifError(Exception):
    """Base exception for all calligif errors."""


class FrameDecodeError(CalligifError):
    """Raised when a frame's bytes cannot be decoded into a raster."""

    def __init__(self, message: str, entry_name: str = "") -> None:
        super().__init__(message)
        self.entry_name = entry_name


class InvalidFileNameError(CalligifError):
    """Raised when an archive entry has a bad extension or frame index."""

    def __init__(self, file_name: str) -> None:
        super().__init__(
            f"Invalid file name extracted from zip archive: {file_name}"
        )
        self.file_name = file_name


class StructuralMismatchError(CalligifError):
    """Raised when content characters and placement boxes do not line up."""

    def __init__(self, n_characters: int, n_boxes: int) -> None:
        super().__init__(
            f"Content has {n_characters} characters but {n_boxes} "
            f"placement boxes were supplied."
        )
        self.n_characters = n_characters
        self.n_boxes = n_boxes


class EmptyFramesError(CalligifError):
    """Raised when an animation is requested from zero frames."""

    def __init__(self, message: str = "Cannot encode a list of empty frames.") -> None:
        super().__init__(message)


class ArchiveError(CalligifError):
    """Raised when reading or writing a zip container fails."""


class AnimationEncodeError(CalligifError):
    """Raised when the WebP animation writer fails."""


class InvalidFontTypeError(CalligifError):
    """Raised for a calligraphic style name outside the supported set."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid subject font type: {name}")
        self.name = name


class RequestError(CalligifError):
    """Raised when a composition request payload is malformed."""


class ConfigError(CalligifError):
    """Raised when configuration cannot be loaded or is invalid."""
