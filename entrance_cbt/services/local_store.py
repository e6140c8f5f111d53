"""
services/local_store.py

Key-value persistence for progress snapshots and the offline queue.
Values are JSON text; callers serialise with pydantic and read back with
model_validate_json, so whatever is stored round-trips exactly.
"""

import logging
import os
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

OFFLINE_QUEUE_KEY = "offline_submissions"


def progress_key(exam_id: str, student_id: str) -> str:
    return f"exam_progress_{exam_id}_{student_id}"


class KeyValueStore(ABC):
    """get / set / remove of JSON text by key."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class InMemoryStore(KeyValueStore):
    """Process-local store. Shared by all sessions of one server process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One <key>.json file per key under `directory`. Writes go through a temp file."""

    _SAFE = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{self._SAFE.sub('_', key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with self._lock:
            try:
                return path.read_text(encoding="utf-8")
            except OSError as e:
                logger.error(f"Failed to read {path}: {e}")
                return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        with self._lock:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)

    def remove(self, key: str) -> None:
        with self._lock:
            try:
                self._path(key).unlink()
            except FileNotFoundError:
                pass
