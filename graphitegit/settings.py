"""Persisted key-value settings with a schema version tag."""

import json
from pathlib import Path
from typing import Optional

from graphitegit.constants import SETTINGS_VERSION
from graphitegit.errors import SettingsError, SettingsVersionError


class SettingsStore:
    """Flat string settings kept in a versioned JSON file.

    On disk: ``{"version": 1, "values": {"key": "value", ...}}``. A legacy
    file holding a bare ``{"key": "value"}`` object is migrated on load.
    """

    def __init__(self, path: Path):
        """Initialize store.

        Args:
            path: Location of the settings file
        """
        self.path = path
        self._values: dict[str, str] = {}
        self.migrated = False
        self.backup_path: Optional[Path] = None
        self.load()

    def load(self) -> None:
        """Read the file, migrating older layouts.

        Raises:
            SettingsError: If the file cannot be read
            SettingsVersionError: If the file comes from a newer version
        """
        self._values = {}
        self.migrated = False
        self.backup_path = None
        if not self.path.exists():
            return

        try:
            with open(self.path) as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raw = None
        except OSError as e:
            raise SettingsError(f"Cannot read settings file {self.path}: {e}")

        if not isinstance(raw, dict):
            # Keep the damaged file aside so the next save cannot destroy it
            self.backup_path = self.path.with_suffix(self.path.suffix + ".bak")
            self.path.replace(self.backup_path)
            return

        version = raw.get("version")
        if version is None:
            values = raw
            self.migrated = True
        elif isinstance(version, int) and version <= SETTINGS_VERSION:
            values = raw.get("values") or {}
        else:
            raise SettingsVersionError(
                f"Settings file {self.path} has version {version}; "
                f"this release understands up to {SETTINGS_VERSION}"
            )

        self._values = {
            str(k): str(v) for k, v in values.items() if isinstance(v, (str, int, float, bool))
        }
        if self.migrated:
            self.save()

    def save(self) -> None:
        """Write atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(temp_path, "w") as f:
            json.dump({"version": SETTINGS_VERSION, "values": self._values}, f, indent=2)
        temp_path.replace(self.path)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def get_bool(self, key: str, default: bool) -> bool:
        value = self._values.get(key)
        if value is None:
            return default
        return value.strip().lower() == "true"

    def set(self, key: str, value: Optional[str]) -> None:
        """Set a value; None removes the key. Does not save."""
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = str(value)

    def set_bool(self, key: str, value: bool) -> None:
        self._values[key] = "true" if value else "false"

    def to_dict(self) -> dict[str, str]:
        return dict(self._values)
