"""PresetCodec — save/load/apply versioned preset documents.

A preset document is a JSON object::

    {"id": 1718000000000, "name": "...", "date": "<ISO-8601>",
     "version": "2.0", "schemaVersion": "2.0", "settingsOnly": false,
     "data": {"layers": [...], "nextLayerId": 3, "activeLayerId": 1,
              "color": "#EFBD48", ...}}

Loading never mutates a store directly: :func:`load_preset` and
:func:`apply_with_new_image` build a complete :class:`LayerStoreSnapshot`
that the caller swaps in with :meth:`LayerStore.restore`, so a rejected
preset leaves everything untouched.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from decalstudio.config.constants import LEGACY_SCHEMA_VERSION, PRESET_SCHEMA_VERSION
from decalstudio.core.compositor import derive_image, image_size
from decalstudio.core.crop import LegacyDisplayCrop, legacy_to_natural
from decalstudio.core.decal_state import IMAGE_FIELDS, JSON_KEYS, DecalState
from decalstudio.core.layer import Layer
from decalstudio.core.layer_store import LayerStore, LayerStoreSnapshot
from decalstudio.errors import (
    DecalError,
    Outcome,
    PresetFormatError,
    SettingsOnlyCannotLoad,
    UnsupportedSchema,
)
from decalstudio.io.data_url import data_url_to_bytes

log = logging.getLogger(__name__)

_LAYER_IMAGE_KEYS = ("image", "originalImage")


@dataclass
class Preset:
    """A named snapshot; ``data`` is the JSON-shaped ``data`` object."""

    preset_id: int
    name: str
    created_at: str
    schema_version: str = PRESET_SCHEMA_VERSION
    settings_only: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.preset_id,
            "name": self.name,
            "date": self.created_at,
            "version": self.schema_version,
            "schemaVersion": self.schema_version,
            "settingsOnly": self.settings_only,
            "data": copy.deepcopy(self.data),
        }

    @classmethod
    def from_document(cls, doc: Any) -> Preset:
        """Parse a preset document.

        Also accepts the bare ``{"layers": [...], ...}`` file written by the
        old export button, which becomes an unversioned (1.0) preset.
        """
        if not isinstance(doc, dict):
            raise PresetFormatError("preset document must be a JSON object")
        if "data" not in doc:
            if "layers" not in doc:
                raise PresetFormatError("preset document has neither data nor layers")
            return cls(
                preset_id=_now_id(),
                name=str(doc.get("name", "Imported preset")),
                created_at=_now_iso(),
                schema_version=LEGACY_SCHEMA_VERSION,
                data=copy.deepcopy(doc),
            )
        data = doc["data"]
        if not isinstance(data, dict):
            raise PresetFormatError("preset data must be a JSON object")
        version = doc.get("schemaVersion") or doc.get("version") or LEGACY_SCHEMA_VERSION
        try:
            preset_id = int(doc.get("id", 0)) or _now_id()
        except (TypeError, ValueError) as exc:
            raise PresetFormatError(f"invalid preset id {doc.get('id')!r}") from exc
        return cls(
            preset_id=preset_id,
            name=str(doc.get("name", "Untitled")),
            created_at=str(doc.get("date", "")),
            schema_version=str(version),
            settings_only=bool(doc.get("settingsOnly", False)),
            data=copy.deepcopy(data),
        )


def preset_to_json(preset: Preset) -> str:
    return json.dumps(preset.to_document(), indent=2)


def preset_from_json(text: str) -> Preset:
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PresetFormatError(f"preset is not valid JSON: {exc}") from exc
    return Preset.from_document(doc)


# ---- save ----


def save_preset(
    name: str, snapshot: LayerStoreSnapshot, settings_only: bool = False
) -> Preset:
    """Deep-copy *snapshot* into a new preset.

    With *settings_only* every image payload is left out.
    """
    include_images = not settings_only
    data: dict[str, Any] = {
        "layers": [layer.serialize(include_images) for layer in snapshot.layers],
        "nextLayerId": snapshot.next_layer_id,
        "activeLayerId": snapshot.active_layer_id,
    }
    data.update(snapshot.decal_state.to_data(include_images))
    return Preset(
        preset_id=_now_id(),
        name=name,
        created_at=_now_iso(),
        settings_only=settings_only,
        data=data,
    )


def export_settings_only(preset: Preset) -> Preset:
    """Return a copy of *preset* with every image nulled out."""
    data = copy.deepcopy(preset.data)
    for entry in data.get("layers", []):
        if isinstance(entry, dict):
            for key in _LAYER_IMAGE_KEYS:
                entry[key] = None
    for name in IMAGE_FIELDS:
        if JSON_KEYS[name] in data:
            data[JSON_KEYS[name]] = None
    return Preset(
        preset_id=preset.preset_id,
        name=preset.name,
        created_at=preset.created_at,
        schema_version=preset.schema_version,
        settings_only=True,
        data=data,
    )


# ---- load / apply ----


def load_preset(preset: Preset) -> Outcome[LayerStoreSnapshot]:
    """Rebuild the store state saved in *preset*, images included."""
    error = check_schema(preset.schema_version)
    if error is not None:
        return Outcome(error=error)
    if preset.settings_only:
        return Outcome(
            error=SettingsOnlyCannotLoad(
                f"preset {preset.name!r} holds settings only; apply it with a new image"
            )
        )

    warnings: list[DecalError] = []
    layers: list[Layer] = []
    for entry in _layer_entries(preset.data, warnings):
        try:
            layers.append(Layer.deserialize(entry))
        except (PresetFormatError, KeyError, TypeError, ValueError) as exc:
            warnings.append(_as_format_error(entry, exc))
    return Outcome(value=_snapshot(preset.data, layers), warnings=warnings)


def apply_with_new_image(preset: Preset, new_image: bytes) -> Outcome[LayerStoreSnapshot]:
    """Re-target every layer of *preset* onto *new_image*.

    Crops are re-resolved against the new image's natural size; placement,
    opacity, mask radius and target surfaces are kept as saved.  Works for
    settings-only presets too.
    """
    error = check_schema(preset.schema_version)
    if error is not None:
        return Outcome(error=error)

    warnings: list[DecalError] = []
    layers: list[Layer] = []
    new_size = image_size(new_image)
    for entry in _layer_entries(preset.data, warnings):
        stripped = {k: v for k, v in entry.items() if k not in _LAYER_IMAGE_KEYS}
        try:
            layer = Layer.deserialize(stripped)
        except (PresetFormatError, KeyError, TypeError, ValueError) as exc:
            warnings.append(_as_format_error(entry, exc))
            continue

        if isinstance(layer.crop_info, LegacyDisplayCrop) and new_size is not None:
            # The old cropped output pins down the lost display scale; the
            # layer keeps the natural crop so later edits need no reference
            reference = None
            try:
                reference = data_url_to_bytes(entry.get("image"))
            except PresetFormatError as exc:
                warnings.append(exc)
            reference_size = image_size(reference) if reference else None
            layer.crop_info = legacy_to_natural(
                layer.crop_info, new_size[0], new_size[1], reference_size
            )

        result = derive_image(new_image, layer.crop_info, layer.border_radius)
        if result.error is not None:
            warnings.append(result.error)
        warnings.extend(result.warnings)
        layer.original_image = new_image
        layer.image = result.data
        layers.append(layer)
    return Outcome(value=_snapshot(preset.data, layers), warnings=warnings)


def load_into(store: LayerStore, preset: Preset) -> Outcome[LayerStoreSnapshot]:
    """Load *preset* and, if it succeeds, swap it into *store* in one step."""
    outcome = load_preset(preset)
    if outcome.value is not None:
        store.restore(outcome.value)
    return outcome


def apply_into(
    store: LayerStore, preset: Preset, new_image: bytes
) -> Outcome[LayerStoreSnapshot]:
    outcome = apply_with_new_image(preset, new_image)
    if outcome.value is not None:
        store.restore(outcome.value)
    return outcome


def check_schema(version: str) -> UnsupportedSchema | None:
    """Return an error if *version* is newer than (or unreadable by) this build."""
    parsed = _parse_version(version)
    if parsed is None:
        return UnsupportedSchema(f"unreadable preset version {version!r}")
    if parsed > _parse_version(PRESET_SCHEMA_VERSION):  # type: ignore[operator]
        return UnsupportedSchema(
            f"preset version {version} is newer than supported {PRESET_SCHEMA_VERSION}"
        )
    return None


# ---- helpers ----


def _layer_entries(data: dict[str, Any], warnings: list[DecalError]) -> list[dict[str, Any]]:
    entries = data.get("layers") or []
    if not isinstance(entries, list):
        warnings.append(PresetFormatError("preset layers must be a list"))
        return []
    result: list[dict[str, Any]] = []
    for entry in entries:
        if isinstance(entry, dict):
            result.append(entry)
        else:
            warnings.append(PresetFormatError(f"skipping non-object layer entry {entry!r}"))
    return result


def _snapshot(data: dict[str, Any], layers: list[Layer]) -> LayerStoreSnapshot:
    highest = max((layer.layer_id for layer in layers), default=0)
    next_id = _int_or(data.get("nextLayerId"), len(layers) + 1)
    active = _int_or(data.get("activeLayerId"), None)
    if active is None or all(layer.layer_id != active for layer in layers):
        active = layers[0].layer_id if layers else None
    return LayerStoreSnapshot(
        layers=layers,
        next_layer_id=max(next_id, highest + 1),
        active_layer_id=active,
        decal_state=DecalState.from_data(data),
    )


def _as_format_error(entry: dict[str, Any], exc: Exception) -> DecalError:
    if isinstance(exc, PresetFormatError):
        err: DecalError = exc
    else:
        err = PresetFormatError(f"skipping layer {entry.get('id')!r}: {exc}")
    log.warning("Preset layer %r unusable: %s", entry.get("id"), err)
    return err


def _parse_version(version: str) -> tuple[int, ...] | None:
    try:
        return tuple(int(part) for part in str(version).split("."))
    except ValueError:
        return None


def _int_or(value: Any, default: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _now_id() -> int:
    return int(datetime.now(tz=UTC).timestamp() * 1000)


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()
