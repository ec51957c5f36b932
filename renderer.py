# renderer.py
import json
import logging
from typing import List, Protocol

from pydantic import ValidationError

from models import TranscriptEntry
from storage import TRANSCRIPT_KEY

logger = logging.getLogger(__name__)

DEFAULT_TRANSCRIPT_LIMIT = 200


class Renderer(Protocol):
    def on_message_sent(self, text: str) -> None: ...

    def on_response_ready(self, text: str) -> None: ...

    def on_error(self, description: str) -> None: ...


class TranscriptRenderer:
    """Keeps the rendered chat list and caches it under the saved-chats key."""

    def __init__(self, storage, key: str = TRANSCRIPT_KEY, limit: int = DEFAULT_TRANSCRIPT_LIMIT):
        self.storage = storage
        self.key = key
        self.limit = limit
        self.entries: List[TranscriptEntry] = self._load()[-limit:]

    def _load(self) -> List[TranscriptEntry]:
        raw = self.storage.get(self.key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("expected a list of entries")
            return [TranscriptEntry(**item) for item in data]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Discarding saved chats: %s", e)
            return []

    def _add(self, kind: str, text: str) -> None:
        self.entries.append(TranscriptEntry(kind=kind, text=text))
        if len(self.entries) > self.limit:
            self.entries = self.entries[-self.limit:]

    def _save(self) -> None:
        try:
            self.storage.set(self.key, json.dumps([e.model_dump() for e in self.entries]))
        except OSError as e:
            logger.error("Error saving chats: %s", e)

    def on_message_sent(self, text: str) -> None:
        self._add("outgoing", text)

    def on_response_ready(self, text: str) -> None:
        self._add("incoming", text)
        self._save()

    def on_error(self, description: str) -> None:
        self._add("error", description)
        self._save()

    def clear(self) -> None:
        self.entries = []
        try:
            self.storage.remove(self.key)
        except OSError as e:
            logger.error("Error removing saved chats: %s", e)
