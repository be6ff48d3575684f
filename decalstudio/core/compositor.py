"""TextureCompositor — crop, mask and encode a layer's decal texture."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from PyQt6.QtCore import QBuffer, QIODevice, QRect, Qt
from PyQt6.QtGui import QColor, QImage, QPainter

from decalstudio.config.constants import TEXTURE_FORMAT
from decalstudio.core.crop import CropInfo, resolve_crop
from decalstudio.core.mask import ClipPath, compute_mask
from decalstudio.errors import (
    CropOutOfBounds,
    DecalError,
    ImageDecodeError,
    InvalidDimensions,
)

log = logging.getLogger(__name__)


@dataclass
class CompositeResult:
    """Output of :func:`compose`.

    ``data`` is always usable: the encoded RGBA texture, or the untouched
    source bytes when decoding failed (``error`` is then set).
    """

    data: bytes
    width: int = 0
    height: int = 0
    error: DecalError | None = None
    warnings: list[DecalError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_image(data: bytes) -> QImage:
    """Decode encoded image bytes, raising :class:`ImageDecodeError`."""
    img = QImage()
    if not data or not img.loadFromData(data) or img.isNull():
        raise ImageDecodeError(f"cannot decode {len(data or b'')} bytes of image data")
    return img


def image_size(data: bytes) -> tuple[int, int] | None:
    """Natural size of encoded image bytes, or None if unreadable."""
    try:
        img = decode_image(data)
    except ImageDecodeError:
        return None
    return img.width(), img.height()


def encode_png(img: QImage) -> bytes:
    buf = QBuffer()
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    img.save(buf, TEXTURE_FORMAT)
    data: bytes = buf.data().data()
    return data


def apply_mask(img: QImage, clip: ClipPath) -> QImage:
    """Clear every pixel of *img* whose centre lies outside *clip*.

    Antialiasing is off so pixels inside the shape are never rewritten;
    masking an already-masked image is a no-op.
    """
    out = img.convertToFormat(QImage.Format.Format_ARGB32)
    if clip.is_identity:
        return out
    painter = QPainter(out)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing, False)
    painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Clear)
    painter.setPen(Qt.PenStyle.NoPen)
    painter.fillPath(clip.outside_path(), QColor(0, 0, 0, 0))
    painter.end()
    return out


def compose(
    source: bytes,
    crop: CropInfo | None,
    radius_pct: float,
    reference: bytes | None = None,
) -> CompositeResult:
    """Produce the decal texture for *source* cut by *crop* and *radius_pct*.

    *reference* is an earlier output of the same crop; it only matters for
    legacy display-space crops whose scale must be reconstructed.
    """
    try:
        img = decode_image(source)
    except ImageDecodeError as exc:
        log.warning("Using raw image bytes: %s", exc)
        return CompositeResult(data=source, error=exc)

    warnings: list[DecalError] = []
    reference_size = image_size(reference) if reference else None
    rect = resolve_crop(crop, img.width(), img.height(), reference_size)
    if rect is not None:
        if rect.clamped:
            warnings.append(
                CropOutOfBounds(
                    f"crop clamped to {rect.width}x{rect.height} at ({rect.x}, {rect.y})"
                )
            )
        img = img.copy(QRect(rect.x, rect.y, rect.width, rect.height))

    try:
        clip = compute_mask(img.width(), img.height(), radius_pct)
    except InvalidDimensions as exc:
        log.warning("Skipping mask: %s", exc)
        warnings.append(exc)
        out = img.convertToFormat(QImage.Format.Format_ARGB32)
    else:
        out = apply_mask(img, clip)

    return CompositeResult(
        data=encode_png(out), width=out.width(), height=out.height(), warnings=warnings
    )


def derive_image(
    original: bytes,
    crop: CropInfo | None,
    radius_pct: float,
    reference: bytes | None = None,
) -> CompositeResult:
    """Derived layer texture: the original itself when neither crop nor mask apply."""
    if crop is None and radius_pct <= 0:
        return CompositeResult(data=original)
    return compose(original, crop, radius_pct, reference)
