"""GeometryMask — border-radius percentage to clip path."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from PyQt6.QtCore import QRectF, Qt
from PyQt6.QtGui import QPainterPath

from decalstudio.config.constants import BORDER_RADIUS_MAX
from decalstudio.errors import InvalidDimensions


class MaskShape(Enum):
    RECTANGLE = auto()
    ROUNDED_RECT = auto()
    ELLIPSE = auto()


@dataclass(frozen=True)
class ClipPath:
    """Pure description of the visible region of a *width* x *height* image.

    ``radius_x`` / ``radius_y`` are the corner radii in pixels; for an
    ellipse they are the semi-axes.
    """

    shape: MaskShape
    width: int
    height: int
    radius_x: float = 0.0
    radius_y: float = 0.0

    @property
    def is_identity(self) -> bool:
        """True when nothing is clipped away."""
        return self.shape is MaskShape.RECTANGLE

    def painter_path(self) -> QPainterPath:
        """Build the closed path that bounds the visible region."""
        rect = QRectF(0, 0, self.width, self.height)
        path = QPainterPath()
        if self.shape is MaskShape.ELLIPSE:
            path.addEllipse(rect)
        elif self.shape is MaskShape.ROUNDED_RECT:
            path.addRoundedRect(
                rect, self.radius_x, self.radius_y, Qt.SizeMode.AbsoluteSize
            )
        else:
            path.addRect(rect)
        return path

    def outside_path(self) -> QPainterPath:
        """Region of the image box that lies outside the clip shape.

        Uses the odd-even rule: the bounding rectangle plus the shape leaves
        exactly the ring between them filled.
        """
        path = QPainterPath()
        path.setFillRule(Qt.FillRule.OddEvenFill)
        path.addRect(QRectF(0, 0, self.width, self.height))
        if not self.is_identity:
            path.addPath(self.painter_path())
        return path


def compute_mask(width: int, height: int, radius_pct: float) -> ClipPath:
    """Return the clip path for an image of *width* x *height*.

    ``radius_pct`` 0 is the identity; 50 and above is the inscribed ellipse;
    anything in between is a rounded rectangle whose per-axis corner radius
    is ``radius_pct / 100 * side / 2``, never more than half the side.
    """
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"cannot mask a {width}x{height} image")
    if radius_pct <= 0:
        return ClipPath(MaskShape.RECTANGLE, width, height)
    if radius_pct >= BORDER_RADIUS_MAX:
        return ClipPath(MaskShape.ELLIPSE, width, height, width / 2, height / 2)
    rx = min(radius_pct / 100 * width / 2, width / 2)
    ry = min(radius_pct / 100 * height / 2, height / 2)
    return ClipPath(MaskShape.ROUNDED_RECT, width, height, rx, ry)
