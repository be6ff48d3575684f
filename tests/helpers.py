"""Image helpers shared by the test modules."""

from __future__ import annotations

from collections.abc import Callable

from PyQt6.QtCore import QBuffer, QIODevice
from PyQt6.QtGui import QImage

PngFactory = Callable[..., bytes]


def encode(img: QImage, fmt: str = "PNG") -> bytes:
    buf = QBuffer()
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    img.save(buf, fmt)
    data: bytes = buf.data().data()
    return data


def decode(data: bytes) -> QImage:
    img = QImage()
    assert img.loadFromData(data)
    return img


def opaque_pixels(img: QImage) -> int:
    """Number of pixels with alpha 255."""
    return sum(
        1
        for y in range(img.height())
        for x in range(img.width())
        if img.pixelColor(x, y).alpha() == 255
    )
