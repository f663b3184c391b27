"""ISettingsStore implementations."""

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from ..api.exceptions import SettingsError
from ..sync.domain.ports import ISettingsStore

logger = logging.getLogger(__name__)


class InMemorySettingsStore(ISettingsStore):
    def __init__(self):
        self._data: dict[str, dict[str, Any]] = {}

    def load(self, key: str) -> Optional[dict[str, Any]]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def save(self, key: str, data: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(data)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JSONFileSettingsStore(ISettingsStore):
    """All settings documents in one JSON file, rewritten atomically on save.

    Raises:
        SettingsError: The file exists but is not a JSON object, or cannot be written
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(f"Cannot read settings file {self.path}: {e}", cause=e)
        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {self.path} does not contain a JSON object")
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise SettingsError(f"Cannot write settings file {self.path}: {e}", cause=e)

    def load(self, key: str) -> Optional[dict[str, Any]]:
        return self._read_all().get(key)

    def save(self, key: str, data: dict[str, Any]) -> None:
        all_data = self._read_all()
        all_data[key] = data
        self._write_all(all_data)
        logger.debug(f"Saved settings '{key}' to {self.path}")

    def delete(self, key: str) -> None:
        all_data = self._read_all()
        if all_data.pop(key, None) is not None:
            self._write_all(all_data)
