"""Tests for AppSettings."""

from pathlib import Path

from PyQt6.QtCore import QSettings
from PyQt6.QtWidgets import QApplication

from decalstudio.config.settings import AppSettings


def test_presets_round_trip(qapp: QApplication, tmp_path: Path) -> None:
    path = str(tmp_path / "s.ini")
    settings = AppSettings(QSettings(path, QSettings.Format.IniFormat))
    assert settings.presets_json() is None
    settings.set_presets_json('[{"id": 1, "name": "a, b"}]')
    reopened = AppSettings(QSettings(path, QSettings.Format.IniFormat))
    assert reopened.presets_json() == '[{"id": 1, "name": "a, b"}]'
    reopened.clear_presets()
    assert reopened.presets_json() is None
