"""Layer data model."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from decalstudio.config.constants import (
    DEFAULT_BLEND_MODE,
    DEFAULT_LAYER_OPACITY,
    DEFAULT_LAYER_POSITION,
    DEFAULT_LAYER_ROTATION,
    DEFAULT_LAYER_SCALE,
    DEFAULT_TARGET_SURFACE_IDS,
    DUPLICATE_NAME_SUFFIX,
    SOURCE_ID_PREFIX,
)
from decalstudio.core.crop import CropInfo, crop_from_dict
from decalstudio.io.data_url import bytes_to_data_url, data_url_to_bytes


def new_source_image_id() -> str:
    return f"{SOURCE_ID_PREFIX}{time.time_ns() // 1_000_000}"


@dataclass
class Layer:
    """One positioned, maskable image contributing to the garment texture.

    ``original_image`` is the untouched upload; ``image`` is the texture
    derived from it through ``crop_info`` and ``border_radius``.  Only
    :class:`~decalstudio.core.layer_store.LayerStore` keeps the two in sync.
    """

    layer_id: int
    name: str
    original_image: bytes | None = None
    image: bytes | None = None
    source_image_id: str = field(default_factory=new_source_image_id)
    crop_info: CropInfo | None = None
    border_radius: int = 0
    opacity: float = DEFAULT_LAYER_OPACITY
    visible: bool = True
    blend_mode: str = DEFAULT_BLEND_MODE
    position: list[float] = field(default_factory=lambda: list(DEFAULT_LAYER_POSITION))
    rotation: list[float] = field(default_factory=lambda: list(DEFAULT_LAYER_ROTATION))
    scale: list[float] = field(default_factory=lambda: list(DEFAULT_LAYER_SCALE))
    target_surface_ids: list[int] = field(
        default_factory=lambda: list(DEFAULT_TARGET_SURFACE_IDS)
    )

    def clone(self, new_id: int | None = None) -> Layer:
        """Return a deep copy.  If *new_id* is given the copy is renamed too."""
        return Layer(
            layer_id=self.layer_id if new_id is None else new_id,
            name=self.name if new_id is None else f"{self.name}{DUPLICATE_NAME_SUFFIX}",
            original_image=self.original_image,
            image=self.image,
            source_image_id=self.source_image_id,
            crop_info=self.crop_info,
            border_radius=self.border_radius,
            opacity=self.opacity,
            visible=self.visible,
            blend_mode=self.blend_mode,
            position=list(self.position),
            rotation=list(self.rotation),
            scale=list(self.scale),
            target_surface_ids=list(self.target_surface_ids),
        )

    def serialize(self, include_images: bool = True) -> dict[str, Any]:
        return {
            "id": self.layer_id,
            "name": self.name,
            "image": bytes_to_data_url(self.image) if include_images else None,
            "originalImage": (
                bytes_to_data_url(self.original_image) if include_images else None
            ),
            "sourceImageId": self.source_image_id,
            "visible": self.visible,
            "opacity": self.opacity,
            "position": list(self.position),
            "rotation": list(self.rotation),
            "scale": list(self.scale),
            "borderRadius": self.border_radius,
            "blendMode": self.blend_mode,
            "cropInfo": self.crop_info.to_dict() if self.crop_info is not None else None,
            "targetMeshIndices": list(self.target_surface_ids),
        }

    @classmethod
    def deserialize(cls, data: dict[str, Any]) -> Layer:
        """Build a layer from a preset entry; every field but ``id`` is optional.

        Raises :class:`~decalstudio.errors.PresetFormatError` on unusable
        crop or image payloads.
        """
        layer = cls(layer_id=int(data["id"]), name=str(data.get("name", f"Layer {data['id']}")))
        image = data_url_to_bytes(data.get("image"))
        original = data_url_to_bytes(data.get("originalImage"))
        layer.image = image
        layer.original_image = original if original is not None else image
        if data.get("sourceImageId"):
            layer.source_image_id = str(data["sourceImageId"])
        layer.crop_info = crop_from_dict(data.get("cropInfo"))
        layer.border_radius = int(data.get("borderRadius", 0) or 0)
        layer.opacity = float(data.get("opacity", DEFAULT_LAYER_OPACITY))
        layer.visible = bool(data.get("visible", True))
        layer.blend_mode = str(data.get("blendMode", DEFAULT_BLEND_MODE))
        layer.position = _vector(data.get("position"), DEFAULT_LAYER_POSITION)
        layer.rotation = _vector(data.get("rotation"), DEFAULT_LAYER_ROTATION)
        layer.scale = _vector(data.get("scale"), DEFAULT_LAYER_SCALE)
        surfaces = data.get("targetMeshIndices", data.get("targetSurfaceIds"))
        if surfaces is not None:
            layer.target_surface_ids = normalize_surface_ids(surfaces)
        return layer


def normalize_surface_ids(ids: Any) -> list[int]:
    """Surface ids form a set; keep first-seen order for stable output."""
    seen: list[int] = []
    for value in ids:
        value = int(value)
        if value not in seen:
            seen.append(value)
    return seen


def _vector(value: Any, default: tuple[float, float, float]) -> list[float]:
    if not value or len(value) != 3:
        return list(default)
    return [float(v) for v in value]
