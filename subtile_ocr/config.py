# subtile_ocr/config.py
# -*- coding: utf-8 -*-
import json
import logging
from pathlib import Path

from .models.settings import AppSettings

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILENAME = 'subtile_ocr_settings.json'


class AppConfig:
    """JSON settings file merged over the AppSettings defaults."""

    def __init__(self, settings_path: Path | str | None = None):
        if settings_path is None:
            settings_path = Path.cwd() / DEFAULT_SETTINGS_FILENAME
        self.settings_path = Path(settings_path)
        self.defaults = AppSettings().to_dict()
        self.settings: dict = {}
        self.load()

    def load(self):
        if self.settings_path.exists():
            try:
                with open(self.settings_path, 'r', encoding='utf-8') as f:
                    loaded_settings = json.load(f)
                if not isinstance(loaded_settings, dict):
                    raise ValueError('settings file does not hold an object')
                for key, default_value in self.defaults.items():
                    if key not in loaded_settings:
                        loaded_settings[key] = default_value
                self.settings = loaded_settings
                logger.debug(f"Loaded settings from {self.settings_path}")
            except (json.JSONDecodeError, ValueError, OSError) as e:
                logger.warning(f"Ignoring unreadable settings file {self.settings_path}: {e}")
                self.settings = self.defaults.copy()
        else:
            self.settings = self.defaults.copy()

    def save(self):
        keys_to_save = self.defaults.keys()
        settings_to_save = {k: self.settings.get(k) for k in keys_to_save if k in self.settings}
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.settings_path, 'w', encoding='utf-8') as f:
            json.dump(settings_to_save, f, indent=4, ensure_ascii=False)

    def get(self, key: str, default=None):
        return self.settings.get(key, default)

    def set(self, key: str, value):
        self.settings[key] = value

    def update(self, overrides: dict):
        """Apply overrides, ignoring ``None`` values (options not given on the CLI)."""
        for key, value in overrides.items():
            if value is not None:
                self.settings[key] = value

    def to_settings(self) -> AppSettings:
        return AppSettings.from_config(self.settings)
