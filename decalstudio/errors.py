"""Error taxonomy and the value-returned ``Outcome`` wrapper.

Pipeline operations never raise these across their boundary; they hand them
back inside :class:`Outcome` (or a warnings list) so that one bad layer or
preset field does not abort the rest of the work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class DecalError(Exception):
    """Base class for every error reported by the pipeline."""


class InvalidDimensions(DecalError, ValueError):
    """A mask was requested for a zero or negative sized image."""


class ImageDecodeError(DecalError):
    """Source image bytes could not be decoded."""


class CropOutOfBounds(DecalError):
    """A crop extended past the target image and was clamped."""


class UnsupportedSchema(DecalError):
    """A preset was written by a newer schema than this build understands."""


class SettingsOnlyCannotLoad(DecalError):
    """A settings-only preset has no images; it must be applied, not loaded."""


class MissingActiveLayer(DecalError):
    """An active-layer update was requested with nothing selected."""


class PresetFormatError(DecalError):
    """A preset document or one of its payloads is malformed."""


@dataclass
class Outcome(Generic[T]):
    """Result of a pipeline call: a value or an error, plus warnings."""

    value: T | None = None
    error: DecalError | None = None
    warnings: list[DecalError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None
