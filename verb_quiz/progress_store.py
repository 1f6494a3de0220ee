"""
Key-value persistence for quiz progress.
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional


class ProgressStore(ABC):
    """
    String-keyed, string-valued persistence surface.

    Implementations must return exactly the last-written values across a
    process restart. A missing key returns None.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value for ``key``, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; absent keys are ignored."""

    def set_many(self, values: Mapping[str, str]) -> None:
        """Store several values; file-backed stores write them together."""
        for key, value in values.items():
            self.set(key, value)

    def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.remove(key)


class InMemoryProgressStore(ProgressStore):
    """Dict-backed store for tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._data)


class JsonFileProgressStore(ProgressStore):
    """
    Store backed by a single JSON object on disk.

    Every write rewrites the whole file through a temporary file and
    ``os.replace`` so a crash never leaves a half-written file behind.
    An unreadable or corrupt file is treated as empty.
    """

    def __init__(self, progress_file: str = "./progress.json"):
        """
        Initialize the store.

        Args:
            progress_file: Path to the JSON file holding saved progress
        """
        self.logger = logging.getLogger(__name__)
        self.progress_file = Path(progress_file)
        self._data: Dict[str, str] = self._read()

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def remove(self, key: str) -> None:
        self.remove_many([key])

    def set_many(self, values: Mapping[str, str]) -> None:
        """Store all ``values`` in a single file write."""
        updated = dict(self._data)
        updated.update({key: str(value) for key, value in values.items()})
        self._commit(updated)

    def remove_many(self, keys: Iterable[str]) -> None:
        doomed = set(keys)
        updated = {key: value for key, value in self._data.items() if key not in doomed}
        if updated != self._data:
            self._commit(updated)

    def _commit(self, data: Dict[str, str]) -> None:
        # In-memory values only change once the file write succeeded
        self._write(data)
        self._data = data

    def _read(self) -> Dict[str, str]:
        if not self.progress_file.exists():
            return {}

        try:
            with open(self.progress_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.warning(f"Ignoring corrupt progress file {self.progress_file}: {e}")
            return {}
        except OSError as e:
            self.logger.warning(f"Failed to read progress file {self.progress_file}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring progress file {self.progress_file}: expected a JSON object")
            return {}

        # Values written by hand as JSON objects or numbers are kept as JSON text
        return {
            str(key): value if isinstance(value, str) else json.dumps(value)
            for key, value in data.items()
        }

    def _write(self, data: Dict[str, str]) -> None:
        self.progress_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.progress_file.parent),
            prefix=f".{self.progress_file.name}.",
            suffix=".tmp"
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.progress_file)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self.logger.debug(f"Saved progress to {self.progress_file}")
