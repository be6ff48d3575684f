"""CropResolver — crop descriptors and their resolution to pixel rectangles.

Two descriptor shapes exist in saved presets:

* :class:`NaturalCrop` (``format: "natural"``) stores the rectangle in the
  natural pixel space of the image it was measured on, together with that
  image's natural size.  Re-targeting it onto any image is exact.
* :class:`LegacyDisplayCrop` (no ``format``) stores the rectangle in the
  on-screen pixels of the cropping dialog.  The display size is gone once
  the dialog closes, so converting it is a known-lossy, best-effort path:
  the scale is taken from the previously cropped output when available and
  otherwise estimated from the dialog's fitting box.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Union

from decalstudio.config.constants import (
    CROP_FORMAT_NATURAL,
    LEGACY_DISPLAY_MAX_HEIGHT,
    LEGACY_DISPLAY_MAX_WIDTH,
    LEGACY_DISPLAY_OVERSHOOT,
)
from decalstudio.errors import PresetFormatError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PixelRect:
    """Integer rectangle in an image's natural pixel space.

    ``clamped`` records that the requested rectangle had to be cut back to
    fit the image; it is not part of equality.
    """

    x: int
    y: int
    width: int
    height: int
    clamped: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class NaturalCrop:
    x: float
    y: float
    width: float
    height: float
    natural_width: int
    natural_height: int

    @classmethod
    def from_pixel_rect(cls, rect: PixelRect, natural_width: int, natural_height: int) -> NaturalCrop:
        return cls(rect.x, rect.y, rect.width, rect.height, natural_width, natural_height)

    @classmethod
    def from_display(
        cls,
        x: float,
        y: float,
        width: float,
        height: float,
        display_width: float,
        display_height: float,
        natural_width: int,
        natural_height: int,
    ) -> NaturalCrop:
        """Convert a selection made on a scaled preview into natural pixels."""
        if display_width <= 0 or display_height <= 0:
            raise ValueError("display size must be positive")
        sx = natural_width / display_width
        sy = natural_height / display_height
        return cls(x * sx, y * sy, width * sx, height * sy, natural_width, natural_height)

    def to_dict(self) -> dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "unit": "px",
            "naturalWidth": self.natural_width,
            "naturalHeight": self.natural_height,
            "format": CROP_FORMAT_NATURAL,
        }


@dataclass(frozen=True)
class LegacyDisplayCrop:
    x: float
    y: float
    width: float
    height: float
    natural_width: int | None = None
    natural_height: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "unit": "px",
        }
        if self.natural_width is not None:
            data["naturalWidth"] = self.natural_width
        if self.natural_height is not None:
            data["naturalHeight"] = self.natural_height
        return data


CropInfo = Union[NaturalCrop, LegacyDisplayCrop]


def crop_from_dict(data: dict[str, Any] | None) -> CropInfo | None:
    """Parse a ``cropInfo`` object from a preset document."""
    if data is None:
        return None
    if not isinstance(data, dict):
        raise PresetFormatError(f"cropInfo must be an object, got {type(data).__name__}")
    try:
        x = float(data["x"])
        y = float(data["y"])
        width = float(data["width"])
        height = float(data["height"])
    except (KeyError, TypeError, ValueError) as exc:
        raise PresetFormatError(f"cropInfo is missing a coordinate: {exc}") from exc
    nat_w = _optional_int(data.get("naturalWidth"))
    nat_h = _optional_int(data.get("naturalHeight"))
    if data.get("format") == CROP_FORMAT_NATURAL:
        if nat_w is None or nat_h is None:
            raise PresetFormatError("natural cropInfo requires naturalWidth and naturalHeight")
        return NaturalCrop(x, y, width, height, nat_w, nat_h)
    return LegacyDisplayCrop(x, y, width, height, nat_w, nat_h)


def legacy_to_natural(
    crop: LegacyDisplayCrop,
    fallback_width: int,
    fallback_height: int,
    reference_size: tuple[int, int] | None = None,
) -> NaturalCrop:
    """Best-effort conversion of a display-space crop into natural pixels.

    *reference_size* is the natural size of the image previously produced by
    this crop.  That output was ``crop.size * display_scale`` pixels, so it
    yields the scale directly.  Without it, the dialog's fitted display size
    is estimated from the natural aspect ratio.
    """
    nat_w = crop.natural_width or fallback_width
    nat_h = crop.natural_height or fallback_height

    scale_x = scale_y = 0.0
    if reference_size is not None and crop.width > 0 and crop.height > 0:
        scale_x = reference_size[0] / crop.width
        scale_y = reference_size[1] / crop.height

    if scale_x <= 0 or scale_y <= 0:
        display_w, display_h = _estimate_display_size(crop, nat_w, nat_h)
        scale_x = nat_w / display_w
        scale_y = nat_h / display_h

    return NaturalCrop(
        crop.x * scale_x,
        crop.y * scale_y,
        crop.width * scale_x,
        crop.height * scale_y,
        nat_w,
        nat_h,
    )


def resolve_crop(
    crop: CropInfo | None,
    target_width: int,
    target_height: int,
    reference_size: tuple[int, int] | None = None,
) -> PixelRect | None:
    """Map *crop* onto an image of *target_width* x *target_height*.

    Returns ``None`` when there is no crop (use the full image).  The result
    is clamped into the target bounds with at least one pixel per axis.
    Resolving a natural crop against its own natural size reproduces the
    rectangle it was captured from.
    """
    if crop is None:
        return None
    if isinstance(crop, LegacyDisplayCrop):
        crop = legacy_to_natural(crop, target_width, target_height, reference_size)

    ref_w = crop.natural_width if crop.natural_width > 0 else target_width
    ref_h = crop.natural_height if crop.natural_height > 0 else target_height
    sx = target_width / ref_w
    sy = target_height / ref_h

    x, width, clamped_x = _clamp_span(crop.x * sx, crop.width * sx, target_width)
    y, height, clamped_y = _clamp_span(crop.y * sy, crop.height * sy, target_height)
    rect = PixelRect(x, y, width, height, clamped=clamped_x or clamped_y)
    if rect.clamped:
        log.debug(
            "Crop clamped to %dx%d target: %r -> %r", target_width, target_height, crop, rect
        )
    return rect


# ---- helpers ----


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp_span(origin: float, extent: float, limit: int) -> tuple[int, int, bool]:
    """Clamp a 1-D span to ``[0, limit]``; returns (origin, extent, clamped)."""
    start = _round_half_up(origin)
    size = _round_half_up(extent)
    clamped = False
    if start < 0:
        start = 0
        clamped = True
    elif start > limit - 1:
        start = max(0, limit - 1)
        clamped = True
    if start + size > limit:
        size = limit - start
        clamped = True
    if size < 1:
        size = 1
        clamped = True
    return start, size, clamped


def _estimate_display_size(crop: LegacyDisplayCrop, nat_w: int, nat_h: int) -> tuple[float, float]:
    aspect = nat_w / nat_h
    if aspect > LEGACY_DISPLAY_MAX_WIDTH / LEGACY_DISPLAY_MAX_HEIGHT:
        display_w = float(LEGACY_DISPLAY_MAX_WIDTH)
        display_h = display_w / aspect
    else:
        display_h = float(LEGACY_DISPLAY_MAX_HEIGHT)
        display_w = display_h * aspect

    # The crop must have fitted inside the displayed image
    right = crop.x + crop.width
    bottom = crop.y + crop.height
    if right > display_w:
        display_w = right * LEGACY_DISPLAY_OVERSHOOT
        display_h = display_w / aspect
    if bottom > display_h:
        display_h = bottom * LEGACY_DISPLAY_OVERSHOOT
        display_w = display_h * aspect
    return display_w, display_h


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        result = int(value)
    except (TypeError, ValueError):
        return None
    return result if result > 0 else None
