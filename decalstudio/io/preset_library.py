"""PresetLibrary — the saved preset list and preset file import/export."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from PyQt6.QtCore import QObject, pyqtSignal

from decalstudio.config.settings import AppSettings
from decalstudio.errors import Outcome, PresetFormatError
from decalstudio.io.preset_codec import Preset, preset_from_json, preset_to_json

log = logging.getLogger(__name__)


class PresetLibrary(QObject):
    """Ordered list of saved presets, persisted as one JSON array.

    Signals
    -------
    presets_changed()
    """

    presets_changed = pyqtSignal()

    def __init__(self, settings: AppSettings, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._settings = settings
        self._presets: list[Preset] = []
        self.reload()

    @property
    def presets(self) -> list[Preset]:
        return list(self._presets)

    @property
    def count(self) -> int:
        return len(self._presets)

    def find(self, preset_id: int) -> Preset | None:
        for preset in self._presets:
            if preset.preset_id == preset_id:
                return preset
        return None

    def add(self, preset: Preset) -> None:
        self._presets.append(preset)
        self._persist()

    def remove(self, preset_id: int) -> Preset | None:
        preset = self.find(preset_id)
        if preset is None:
            return None
        self._presets.remove(preset)
        self._persist()
        return preset

    def reload(self) -> None:
        """Re-read the stored list; unreadable storage leaves the library empty."""
        self._presets = []
        text = self._settings.presets_json()
        if text is not None:
            try:
                docs = json.loads(text)
                if not isinstance(docs, list):
                    raise PresetFormatError("stored presets are not a list")
                for doc in docs:
                    self._presets.append(Preset.from_document(doc))
            except (json.JSONDecodeError, PresetFormatError) as exc:
                log.warning("Error loading presets: %s", exc)
                self._presets = []
        self.presets_changed.emit()

    # --- files ---

    def export_file(self, preset: Preset, path: Path) -> None:
        path.write_text(preset_to_json(preset), encoding="utf-8")

    def import_file(self, path: Path) -> Outcome[Preset]:
        """Read a preset file and add it to the library."""
        try:
            preset = preset_from_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            return Outcome(error=PresetFormatError(f"cannot read {path.name}: {exc}"))
        except PresetFormatError as exc:
            return Outcome(error=exc)
        self.add(preset)
        return Outcome(value=preset)

    # --- internal ---

    def _persist(self) -> None:
        docs = [preset.to_document() for preset in self._presets]
        self._settings.set_presets_json(json.dumps(docs))
        self.presets_changed.emit()
