# history.py
import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from models import Turn
from storage import HISTORY_KEY

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20

# Sent ahead of every request, never stored.
PREAMBLE: List[Turn] = [
    Turn(
        role="user",
        text=(
            "You are a helpful and friendly AI assistant. "
            "Provide clear, concise, and accurate responses. "
            "Use appropriate formatting but avoid markdown."
        ),
    ),
    Turn(
        role="model",
        text=(
            "Understood! I'll provide helpful, friendly, and accurate responses "
            "with clear formatting when appropriate."
        ),
    ),
]


class HistoryStore:
    """Bounded, ordered chat history mirrored to a durable key."""

    def __init__(self, storage, limit: int = DEFAULT_HISTORY_LIMIT, key: str = HISTORY_KEY):
        if limit < 2:
            raise ValueError("history limit must hold at least one exchange")
        self.storage = storage
        self.limit = limit
        self.key = key
        self._turns: List[Turn] = []

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> List[Turn]:
        return list(self._turns)

    def _trim(self) -> None:
        if len(self._turns) > self.limit:
            self._turns = self._turns[-self.limit:]

    def append(self, user_text: str, model_text: str) -> None:
        self._turns.append(Turn(role="user", text=user_text))
        self._turns.append(Turn(role="model", text=model_text))
        self._trim()

    def as_context_list(self) -> List[Dict[str, Any]]:
        return [t.to_content() for t in PREAMBLE] + [t.to_content() for t in self._turns]

    def clear(self) -> None:
        self._turns = []
        try:
            self.storage.remove(self.key)
        except OSError as e:
            logger.error("Error removing chat history: %s", e)

    def save(self) -> bool:
        """Best-effort write; the in-memory history stays authoritative."""
        try:
            self.storage.set(self.key, json.dumps([t.to_content() for t in self._turns]))
        except OSError as e:
            logger.error("Error saving chat history: %s", e)
            return False
        return True

    def load(self) -> None:
        raw = self.storage.get(self.key)
        self._turns = []
        if not raw:
            return
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("expected a list of turns")
            turns = [Turn.from_content(item) for item in data]
        except (ValueError, TypeError, KeyError, IndexError, ValidationError) as e:
            logger.error("Error loading chat history: %s", e)
            return
        self._turns = turns
        self._trim()
