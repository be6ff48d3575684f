"""DecalState — global placement and visibility of the non-layer decals."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any

log = logging.getLogger(__name__)


def _vec(x: float, y: float, z: float) -> Any:
    return field(default_factory=lambda: [x, y, z])


@dataclass
class DecalState:
    """Front/back logo, front/back text, full texture, color and garment.

    Attribute names map 1:1 onto the camelCase keys of a preset's ``data``
    object (see :data:`JSON_KEYS`).
    """

    color: str = "#EFBD48"
    selected_clothing: str = "tshirt"

    is_full_texture: bool = False
    full_decal: str | None = "./texture.jpeg"
    full_texture_position: list[float] = _vec(0, 0, 0)
    full_texture_rotation: list[float] = _vec(0, 0, 0)
    full_texture_scale: list[float] = _vec(1, 1, 1)

    is_front_logo_texture: bool = True
    front_logo_decal: str | None = "./threejs.png"
    front_logo_position: list[float] = _vec(0, 0.04, 0.15)
    front_logo_rotation: list[float] = _vec(0, 0, 0)
    front_logo_scale: list[float] = _vec(0.15, 0.15, 0.15)

    is_back_logo_texture: bool = True
    back_logo_decal: str | None = "./threejs.png"
    back_logo_position: list[float] = _vec(0, 0.04, -0.15)
    back_logo_rotation: list[float] = _vec(0, math.pi, 0)
    back_logo_scale: list[float] = _vec(0.15, 0.15, 0.15)

    is_front_text: bool = True
    front_text: str = "Front Text"
    front_text_position: list[float] = _vec(0, -0.04, 0.15)
    front_text_rotation: list[float] = _vec(0, 0, 0)
    front_text_scale: list[float] = _vec(0.15, 0.04, 0.1)
    front_text_font: str = "Arial"
    front_text_size: int = 64
    front_text_color: str = "black"

    is_back_text: bool = True
    back_text: str = "Back Text"
    back_text_position: list[float] = _vec(0, -0.04, -0.15)
    back_text_rotation: list[float] = _vec(0, math.pi, 0)
    back_text_scale: list[float] = _vec(0.15, 0.04, 0.1)
    back_text_font: str = "Arial"
    back_text_size: int = 64
    back_text_color: str = "white"

    def copy(self) -> DecalState:
        return DecalState.from_data(self.to_data())

    def to_data(self, include_images: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for name, key in JSON_KEYS.items():
            value = getattr(self, name)
            if name in IMAGE_FIELDS and not include_images:
                value = None
            data[key] = list(value) if isinstance(value, list) else value
        return data

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> DecalState:
        """Read every field independently; missing or malformed ones keep defaults."""
        state = cls()
        for name, key in JSON_KEYS.items():
            if key not in data:
                continue
            try:
                _assign(state, name, data[key])
            except (TypeError, ValueError):
                log.warning("Ignoring malformed preset field %s=%r", key, data[key])
        return state


def _assign(state: DecalState, name: str, value: Any) -> None:
    default = getattr(state, name)
    if isinstance(default, list):
        if isinstance(value, list) and len(value) == len(default):
            setattr(state, name, [float(v) for v in value])
    elif name in IMAGE_FIELDS:
        # A nulled image (settings-only preset) keeps the default
        if value:
            setattr(state, name, str(value))
    elif isinstance(default, bool):
        setattr(state, name, bool(value))
    elif isinstance(default, int):
        setattr(state, name, int(value))
    elif value is not None:
        setattr(state, name, str(value))


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


JSON_KEYS: dict[str, str] = {f.name: _camel(f.name) for f in fields(DecalState)}

# Standalone decal images stripped from settings-only presets
IMAGE_FIELDS = frozenset({"full_decal", "front_logo_decal", "back_logo_decal"})
