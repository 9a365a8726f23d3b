"""Local JSON file key-value store."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from nutrition_sync.services.storage import KeyValueStore

_logger = logging.getLogger(__name__)


@dataclass
class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store persisted as one JSON document, written on every change."""

    path: Path
    _values: dict[str, object] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self._values = self._read()

    def get(self, key: str) -> object | None:
        """Return the value for a key."""
        return self._values.get(key)

    def set(self, key: str, value: object) -> None:
        """Store a value and flush the file."""
        self._values[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        """Remove a key and flush the file."""
        if self._values.pop(key, None) is not None:
            self._flush()

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            _logger.exception("Failed to read storage file %s", self.path)
            return {}
        if not isinstance(data, dict):
            _logger.warning("Storage file %s is not a JSON object", self.path)
            return {}
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._values, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
