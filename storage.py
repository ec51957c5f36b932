# storage.py
"""String-valued key-value storage, shaped after browser localStorage."""
import json
import logging
import os
import tempfile
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)

HISTORY_KEY = "chat-history"
TRANSCRIPT_KEY = "saved-chats"


class MemoryStorage:
    """In-process storage; nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStorage:
    """All keys in one JSON object on disk.

    The file is parsed once and kept in memory; every write rewrites the whole
    file through a temp file + os.replace, so a reader never sees a
    half-written document. A missing or unreadable file reads as an empty
    store.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._cache: Optional[Dict[str, str]] = None

    def _data(self) -> Dict[str, str]:
        if self._cache is None:
            self._cache = self._read()
        return self._cache

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: expected a JSON object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = dict(self._data())
            data[key] = value
            self._write(data)
            self._cache = data

    def remove(self, key: str) -> None:
        with self._lock:
            data = dict(self._data())
            if key in data:
                del data[key]
                self._write(data)
                self._cache = data

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data()
