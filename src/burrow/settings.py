"""User settings stored as nested JSON under the XDG config home."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from burrow.utils import xdg_config_home

log = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "bridge.transport": "direct",
    "navigation.view_mode": "list",
    "navigation.sort_field": "name",
    "navigation.sort_order": "asc",
    "navigation.max_workers": 4,
}

_MISSING = object()


def settings_path() -> Path:
    return xdg_config_home() / "burrow" / "settings.json"


class Settings:
    """Dot-notation view over a JSON document.

    ``get("navigation.sort_field")`` reads ``data["navigation"]["sort_field"]``.
    Unset keys fall back to :data:`DEFAULTS`. Every change is written back
    immediately; a file that cannot be read or written only logs a warning.
    """

    _instance: Settings | None = None

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or settings_path()
        self._data = self._read()

    @classmethod
    def instance(cls) -> Settings:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _section(self, key: str, create: bool = False) -> tuple[dict[str, Any] | None, str]:
        """Return the dict holding the last component of *key*, and that component."""
        *parents, leaf = key.split(".")
        node = self._data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                if not create:
                    return None, leaf
                child = node[part] = {}
            node = child
        return node, leaf

    def get(self, key: str, default: Any = _MISSING) -> Any:
        section, leaf = self._section(key)
        if section is not None and leaf in section:
            return section[leaf]
        return DEFAULTS.get(key) if default is _MISSING else default

    def set(self, key: str, value: Any) -> None:
        section, leaf = self._section(key, create=True)
        section[leaf] = value
        self._write()

    def unset(self, key: str) -> bool:
        """Drop an explicit value so *key* falls back to its default."""
        section, leaf = self._section(key)
        if section is None or leaf not in section:
            return False
        del section[leaf]
        self._write()
        return True

    def _read(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring settings in %s: top level is not an object", self.path)
            return {}
        return data

    def _write(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self.path, e)
