"""Shared pytest fixtures."""

from __future__ import annotations

import os

# Allow running the Qt-based suite on headless machines.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtGui import QColor, QImage
from PyQt6.QtWidgets import QApplication

from decalstudio.core.layer_store import LayerStore
from tests.helpers import PngFactory, encode


@pytest.fixture()
def make_png(qapp: QApplication) -> PngFactory:
    """Factory for in-memory PNG bytes.

    ``gradient=True`` paints a per-pixel pattern so crops are distinguishable;
    ``alpha=False`` writes an RGB image without an alpha channel.
    """

    def _make(
        width: int,
        height: int,
        color: str = "red",
        gradient: bool = False,
        alpha: bool = True,
    ) -> bytes:
        fmt = QImage.Format.Format_ARGB32 if alpha else QImage.Format.Format_RGB32
        img = QImage(width, height, fmt)
        img.fill(QColor(color))
        if gradient:
            for y in range(height):
                for x in range(width):
                    img.setPixelColor(x, y, QColor(x % 256, y % 256, (x + y) % 256))
        return encode(img)

    return _make


@pytest.fixture()
def store(qapp: QApplication) -> LayerStore:
    return LayerStore()
