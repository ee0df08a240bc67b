"""Persisted user preferences (selected model and feature toggles)."""

from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

LAST_MODEL_KEY = "pith-ai-last-model"
NOTIFICATIONS_KEY = "pith-notifications"
AUTOSAVE_KEY = "pith-autosave"
ANALYTICS_KEY = "pith-analytics"

DEFAULT_PREFERENCES: dict[str, Any] = {
    LAST_MODEL_KEY: None,
    NOTIFICATIONS_KEY: True,
    AUTOSAVE_KEY: True,
    ANALYTICS_KEY: False,
}

BOOLEAN_KEYS = (NOTIFICATIONS_KEY, AUTOSAVE_KEY, ANALYTICS_KEY)


def parse_value(key: str, raw: str) -> Any:
    """Parse a string from the command line or an HTTP body into the key's type."""
    if key not in DEFAULT_PREFERENCES:
        raise ValueError(f"Unknown preference key: {key}")
    if key in BOOLEAN_KEYS:
        lowered = raw.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"Preference {key} expects true or false, got: {raw}")
    return raw


class PreferencesStore:
    """YAML-backed preferences, read with fallback to defaults and written through on change."""

    def __init__(self, path: Path):
        self.path = path
        self._values = dict(DEFAULT_PREFERENCES)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("preferences_load_failed", path=str(self.path), error=str(e))
            return
        if not isinstance(data, dict):
            logger.warning("preferences_ignored_invalid_file", path=str(self.path))
            return
        for key, value in data.items():
            if key in DEFAULT_PREFERENCES:
                self._values[key] = value

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                yaml.safe_dump(self._values, f, default_flow_style=False)
        except OSError as e:
            # Storage unavailable: keep the in-memory value for this session
            logger.warning("preferences_save_failed", path=str(self.path), error=str(e))

    def get(self, key: str) -> Any:
        if key not in DEFAULT_PREFERENCES:
            raise KeyError(key)
        return self._values.get(key, DEFAULT_PREFERENCES[key])

    def set(self, key: str, value: Any) -> None:
        if key not in DEFAULT_PREFERENCES:
            raise KeyError(key)
        self._values[key] = value
        self._save()
        logger.debug("preference_set", key=key, value=value)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)
