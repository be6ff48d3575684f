"""Persistent application settings backed by QSettings."""

from PyQt6.QtCore import QSettings

from decalstudio.config.constants import APP_NAME, ORG_NAME, PRESETS_SETTINGS_KEY


class AppSettings:
    """Thin wrapper around QSettings for typed access to application preferences.

    Pass an explicit *qsettings* (e.g. an INI file) to keep tests away from
    the user's real settings store.
    """

    def __init__(self, qsettings: QSettings | None = None) -> None:
        self._qs = qsettings if qsettings is not None else QSettings(ORG_NAME, APP_NAME)

    # --- presets ---

    def presets_json(self) -> str | None:
        """The saved preset list as stored (a JSON array), or None."""
        val = self._qs.value(PRESETS_SETTINGS_KEY)
        if isinstance(val, str) and val:
            return val
        return None

    def set_presets_json(self, text: str) -> None:
        self._qs.setValue(PRESETS_SETTINGS_KEY, text)
        self._qs.sync()

    def clear_presets(self) -> None:
        self._qs.remove(PRESETS_SETTINGS_KEY)
        self._qs.sync()
