"""LayerStore — owns the ordered layer stack and emits change signals."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Literal

from PyQt6.QtCore import QObject, pyqtSignal

from decalstudio.config.constants import BORDER_RADIUS_MAX, BORDER_RADIUS_MIN
from decalstudio.core.compositor import CompositeResult, derive_image, image_size
from decalstudio.core.crop import LegacyDisplayCrop, NaturalCrop, crop_from_dict, legacy_to_natural
from decalstudio.core.decal_state import DecalState
from decalstudio.core.layer import Layer, new_source_image_id, normalize_surface_ids
from decalstudio.errors import DecalError, MissingActiveLayer, PresetFormatError

log = logging.getLogger(__name__)

Direction = Literal["up", "down"]

# Fields whose change invalidates the derived texture
IMAGE_INPUTS = frozenset({"crop_info", "border_radius", "original_image"})
VECTOR_KEYS = frozenset({"position", "rotation", "scale"})
PROPERTY_KEYS = frozenset(
    {
        "name",
        "visible",
        "opacity",
        "blend_mode",
        "source_image_id",
        "target_surface_ids",
    }
    | IMAGE_INPUTS
    | VECTOR_KEYS
)
_ALIASES = {
    "borderRadius": "border_radius",
    "cropInfo": "crop_info",
    "originalImage": "original_image",
    "blendMode": "blend_mode",
    "sourceImageId": "source_image_id",
    "targetSurfaceIds": "target_surface_ids",
    "targetMeshIndices": "target_surface_ids",
}


@dataclass
class LayerStoreSnapshot:
    """Self-contained copy of a store's state (layers, counters, global decals)."""

    layers: list[Layer] = field(default_factory=list)
    next_layer_id: int = 1
    active_layer_id: int | None = None
    decal_state: DecalState = field(default_factory=DecalState)


@dataclass(frozen=True)
class CompositeJob:
    """Inputs captured for one asynchronous composition of a layer."""

    layer_id: int
    ticket: int
    original_image: bytes
    crop_info: NaturalCrop | LegacyDisplayCrop | None
    border_radius: int


class LayerStore(QObject):
    """Ordered collection of :class:`Layer` objects plus the active selection.

    Index 0 is painted first.  Ids come from a counter that only ever grows,
    so an id is never reused after deletion.  Every mutation that touches a
    crop, mask or source image re-derives the layer's ``image`` before it
    returns.  Mutations are serialized by a re-entrant lock so that worker
    threads may commit compositions safely.

    Signals
    -------
    layer_added(Layer)
    layer_removed(int)
    layers_reordered()
    active_layer_changed(object)
        Emitted with the new active id, or None.
    layer_changed(int, str)
        Emitted with the layer id and the changed property name.
    layer_image_changed(int)
    store_reset()
        Emitted after :meth:`restore` replaced the whole state.
    """

    layer_added = pyqtSignal(object)
    layer_removed = pyqtSignal(int)
    layers_reordered = pyqtSignal()
    active_layer_changed = pyqtSignal(object)
    layer_changed = pyqtSignal(int, str)
    layer_image_changed = pyqtSignal(int)
    store_reset = pyqtSignal()

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._lock = threading.RLock()
        self._layers: list[Layer] = []
        self._active_id: int | None = None
        self._next_id: int = 1
        self._tickets: dict[int, int] = {}
        self._ticket_counter: int = 0
        self.decal_state = DecalState()

    # --- queries ---

    @property
    def layers(self) -> list[Layer]:
        """Return the layer list in paint order."""
        with self._lock:
            return list(self._layers)

    @property
    def count(self) -> int:
        return len(self._layers)

    @property
    def next_layer_id(self) -> int:
        return self._next_id

    @property
    def active_layer_id(self) -> int | None:
        return self._active_id

    @property
    def active_layer(self) -> Layer | None:
        if self._active_id is None:
            return None
        return self.layer_by_id(self._active_id)

    def layer_by_id(self, layer_id: int) -> Layer | None:
        with self._lock:
            for layer in self._layers:
                if layer.layer_id == layer_id:
                    return layer
        return None

    def index_of(self, layer_id: int) -> int:
        with self._lock:
            for i, layer in enumerate(self._layers):
                if layer.layer_id == layer_id:
                    return i
        return -1

    def layers_for_source(self, source_image_id: str) -> list[Layer]:
        with self._lock:
            return [layer for layer in self._layers if layer.source_image_id == source_image_id]

    # --- mutations ---

    def create(
        self,
        image: bytes,
        name: str | None = None,
        crop_info: NaturalCrop | LegacyDisplayCrop | None = None,
        source_image_id: str | None = None,
        target_surface_ids: list[int] | None = None,
    ) -> Layer:
        """Append a new layer built from *image* and make it active."""
        with self._lock:
            layer_id = self._next_id
            self._next_id += 1
            layer = Layer(
                layer_id=layer_id,
                name=name if name is not None else f"Layer {layer_id}",
                original_image=image,
                image=image,
                source_image_id=source_image_id or new_source_image_id(),
                crop_info=crop_info,
            )
            if target_surface_ids is not None:
                layer.target_surface_ids = normalize_surface_ids(target_surface_ids)
            if crop_info is not None:
                self._recompose(layer)
            self._layers.append(layer)
            self._active_id = layer_id
        self.layer_added.emit(layer)
        self.active_layer_changed.emit(layer_id)
        return layer

    def delete(self, layer_id: int) -> Layer | None:
        """Remove a layer by id.  Returns the removed layer, or None."""
        with self._lock:
            idx = self.index_of(layer_id)
            if idx < 0:
                return None
            layer = self._layers.pop(idx)
            self._tickets.pop(layer_id, None)
            active_changed = self._active_id == layer_id
            if active_changed:
                self._active_id = self._layers[0].layer_id if self._layers else None
        self.layer_removed.emit(layer_id)
        if active_changed:
            self.active_layer_changed.emit(self._active_id)
        return layer

    def reorder(self, layer_id: int, direction: Direction) -> bool:
        """Swap a layer with its neighbour; False at either end of the stack."""
        if direction not in ("up", "down"):
            raise ValueError(f"unknown direction {direction!r}")
        with self._lock:
            idx = self.index_of(layer_id)
            if idx < 0:
                return False
            new_idx = idx - 1 if direction == "up" else idx + 1
            if not 0 <= new_idx < len(self._layers):
                return False
            self._layers[idx], self._layers[new_idx] = self._layers[new_idx], self._layers[idx]
        self.layers_reordered.emit()
        return True

    def set_active(self, layer_id: int | None) -> None:
        """Make the layer with *layer_id* the active layer (None clears it)."""
        with self._lock:
            if layer_id is not None and self.layer_by_id(layer_id) is None:
                return
            if self._active_id == layer_id:
                return
            self._active_id = layer_id
        self.active_layer_changed.emit(layer_id)

    def set_property(self, layer_id: int, key: str, value: Any) -> list[DecalError]:
        """Set one layer property in place.

        Returns the warnings raised while re-deriving the texture.  Raises
        ``KeyError`` for unknown keys, including the derived ``image``.
        """
        key = _ALIASES.get(key, key)
        if key not in PROPERTY_KEYS:
            raise KeyError(f"unknown or read-only layer property {key!r}")
        warnings: list[DecalError] = []
        with self._lock:
            layer = self.layer_by_id(layer_id)
            if layer is None:
                return warnings
            try:
                value = _coerce(key, value)
            except PresetFormatError as exc:
                log.warning("Rejected %s for layer %d: %s", key, layer_id, exc)
                return [exc]
            if key in IMAGE_INPUTS and key != "crop_info":
                # The current texture still matches the old inputs
                self._pin_legacy_crop(layer, layer.image)
            setattr(layer, key, value)
            if key in IMAGE_INPUTS:
                warnings = self._recompose(layer)
        self.layer_changed.emit(layer_id, key)
        if key in IMAGE_INPUTS:
            self.layer_image_changed.emit(layer_id)
        return warnings

    def set_vector_component(
        self, layer_id: int, key: str, axis: int, value: float
    ) -> list[DecalError]:
        if key not in VECTOR_KEYS:
            raise KeyError(f"{key!r} is not a vector property")
        with self._lock:
            layer = self.layer_by_id(layer_id)
            if layer is None:
                return []
            vector = getattr(layer, key)
            vector[axis] = float(value)
        self.layer_changed.emit(layer_id, key)
        return []

    def update_active(self, key: str, value: Any) -> list[DecalError]:
        """Set a property on the active layer; a no-op if nothing is selected."""
        layer_id = self._active_id
        if layer_id is None:
            return [MissingActiveLayer(f"no active layer for {key!r}")]
        return self.set_property(layer_id, key, value)

    def update_active_component(self, key: str, axis: int, value: float) -> list[DecalError]:
        layer_id = self._active_id
        if layer_id is None:
            return [MissingActiveLayer(f"no active layer for {key}[{axis}]")]
        return self.set_vector_component(layer_id, key, axis, value)

    def toggle_visibility(self, layer_id: int) -> None:
        layer = self.layer_by_id(layer_id)
        if layer is not None:
            self.set_property(layer_id, "visible", not layer.visible)

    def recrop(
        self, layer_id: int, crop_info: NaturalCrop | LegacyDisplayCrop | None
    ) -> list[DecalError]:
        """Replace (or with None remove) a layer's crop, cutting from the original."""
        return self.set_property(layer_id, "crop_info", crop_info)

    def duplicate(self, layer_id: int) -> Layer | None:
        """Append a deep copy of a layer under a fresh id and make it active."""
        with self._lock:
            source = self.layer_by_id(layer_id)
            if source is None:
                return None
            layer = source.clone(new_id=self._next_id)
            self._next_id += 1
            self._layers.append(layer)
            self._active_id = layer.layer_id
        self.layer_added.emit(layer)
        self.active_layer_changed.emit(layer.layer_id)
        return layer

    def replace_source_image(
        self, source_image_id: str, new_original: bytes
    ) -> list[DecalError]:
        """Point every layer linked to *source_image_id* at a new upload."""
        warnings: list[DecalError] = []
        changed: list[int] = []
        with self._lock:
            for layer in self.layers_for_source(source_image_id):
                self._pin_legacy_crop(layer, layer.image)
                layer.original_image = new_original
                warnings.extend(self._recompose(layer))
                changed.append(layer.layer_id)
        for layer_id in changed:
            self.layer_changed.emit(layer_id, "original_image")
            self.layer_image_changed.emit(layer_id)
        return warnings

    # --- snapshots ---

    def snapshot(self) -> LayerStoreSnapshot:
        with self._lock:
            return LayerStoreSnapshot(
                layers=[layer.clone() for layer in self._layers],
                next_layer_id=self._next_id,
                active_layer_id=self._active_id,
                decal_state=self.decal_state.copy(),
            )

    def restore(self, snapshot: LayerStoreSnapshot) -> None:
        """Replace the whole store state in one step."""
        with self._lock:
            self._layers = [layer.clone() for layer in snapshot.layers]
            highest = max((layer.layer_id for layer in self._layers), default=0)
            self._next_id = max(snapshot.next_layer_id, highest + 1, self._next_id)
            active = snapshot.active_layer_id
            if active is None or self.layer_by_id(active) is None:
                active = self._layers[0].layer_id if self._layers else None
            self._active_id = active
            self._tickets.clear()
            self.decal_state = snapshot.decal_state.copy()
        self.store_reset.emit()
        self.active_layer_changed.emit(self._active_id)

    # --- asynchronous composition ---

    def begin_composite(self, layer_id: int) -> CompositeJob | None:
        """Capture a layer's composition inputs and issue a fresh ticket."""
        with self._lock:
            layer = self.layer_by_id(layer_id)
            if layer is None or layer.original_image is None:
                return None
            self._pin_legacy_crop(layer, layer.image)
            ticket = self._issue_ticket(layer_id)
            return CompositeJob(
                layer_id=layer_id,
                ticket=ticket,
                original_image=layer.original_image,
                crop_info=layer.crop_info,
                border_radius=layer.border_radius,
            )

    def commit_composite(self, job: CompositeJob, result: CompositeResult) -> bool:
        """Apply an asynchronous result unless the layer is gone or it is stale."""
        with self._lock:
            layer = self.layer_by_id(job.layer_id)
            if layer is None or self._tickets.get(job.layer_id) != job.ticket:
                log.debug("Discarding stale composition for layer %d", job.layer_id)
                return False
            layer.image = result.data
        self.layer_image_changed.emit(job.layer_id)
        return True

    # --- internal ---

    def _issue_ticket(self, layer_id: int) -> int:
        self._ticket_counter += 1
        self._tickets[layer_id] = self._ticket_counter
        return self._ticket_counter

    def _pin_legacy_crop(self, layer: Layer, reference: bytes | None) -> None:
        """Replace a legacy crop by the natural crop it resolves to right now.

        *reference* must be the texture derived from the layer's current
        original and crop, or None.  Once pinned, later edits to the mask or
        the source no longer depend on an output image whose size drifts.
        """
        crop = layer.crop_info
        if not isinstance(crop, LegacyDisplayCrop) or layer.original_image is None:
            return
        size = image_size(layer.original_image)
        if size is None:
            return
        reference_size = image_size(reference) if reference else None
        layer.crop_info = legacy_to_natural(crop, size[0], size[1], reference_size)
        log.debug("Pinned legacy crop of layer %d to %r", layer.layer_id, layer.crop_info)

    def _recompose(self, layer: Layer) -> list[DecalError]:
        """Re-derive ``layer.image``; supersedes any in-flight composition."""
        self._issue_ticket(layer.layer_id)
        if layer.original_image is None:
            layer.image = None
            return []
        # A freshly set legacy crop has no earlier output to measure against
        self._pin_legacy_crop(layer, None)
        result = derive_image(layer.original_image, layer.crop_info, layer.border_radius)
        layer.image = result.data
        warnings = list(result.warnings)
        if result.error is not None:
            warnings.insert(0, result.error)
        return warnings


def _coerce(key: str, value: Any) -> Any:
    if key == "opacity":
        return max(0.0, min(1.0, float(value)))
    if key == "border_radius":
        return max(BORDER_RADIUS_MIN, min(BORDER_RADIUS_MAX, int(value)))
    if key == "visible":
        return bool(value)
    if key == "crop_info" and isinstance(value, dict):
        return crop_from_dict(value)
    if key in VECTOR_KEYS:
        if len(value) != 3:
            raise PresetFormatError(f"{key} needs three components")
        return [float(v) for v in value]
    if key == "target_surface_ids":
        return normalize_surface_ids(value)
    if key in ("name", "blend_mode", "source_image_id"):
        return str(value)
    return value
