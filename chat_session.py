# chat_session.py
import logging
from typing import Optional

from google import genai
from google.genai import types

from history import HistoryStore
from model_selector import ModelSelector
from renderer import Renderer, TranscriptRenderer
from response_client import ErrorKind, ResponseClient, SendResult
from settings import Settings
from storage import HISTORY_KEY, TRANSCRIPT_KEY, JsonFileStorage

logger = logging.getLogger(__name__)


def build_genai_client(settings: Settings) -> genai.Client:
    return genai.Client(
        api_key=settings.API_KEY,
        http_options=types.HttpOptions(base_url=settings.BASE_URL, api_version=settings.API_VERSION),
    )


class ChatSession:
    """Single-flight chat session: input -> provider -> history -> renderer."""

    def __init__(self, client: ResponseClient, history: HistoryStore, renderer: Renderer, storage):
        self.client = client
        self.history = history
        self.renderer = renderer
        self.storage = storage
        self._in_flight = False

    @classmethod
    def create(
        cls,
        settings: Settings,
        storage=None,
        renderer: Optional[Renderer] = None,
        genai_client=None,
    ) -> "ChatSession":
        storage = storage if storage is not None else JsonFileStorage(settings.STORAGE_PATH)
        genai_client = genai_client if genai_client is not None else build_genai_client(settings)
        selector = ModelSelector(settings.MODEL_CANDIDATES, client=genai_client)
        history = HistoryStore(storage, limit=settings.HISTORY_LIMIT)
        history.load()
        renderer = renderer if renderer is not None else TranscriptRenderer(storage)
        logger.info("Chat session created with %d stored turns", len(history))
        return cls(ResponseClient(genai_client, selector), history, renderer, storage)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def selector(self) -> ModelSelector:
        return self.client.selector

    async def submit(self, user_text: Optional[str]) -> Optional[SendResult]:
        """Send one message.

        Blank input is rejected with an EMPTY_INPUT failure before any call;
        returns None while another request is in flight.
        """
        message = (user_text or "").strip()
        if not message:
            return SendResult.failure(ErrorKind.EMPTY_INPUT, "message is required")
        if self._in_flight:
            return None

        # no await between the check above and this assignment
        self._in_flight = True
        try:
            self.renderer.on_message_sent(message)
            try:
                result = await self.client.send(message, self.history, self.selector.preferred)
            except Exception as e:
                logger.exception("Unexpected error while generating a response")
                result = SendResult.failure(ErrorKind.PROVIDER_ERROR, str(e) or type(e).__name__)
            if result.ok:
                self.history.append(message, result.text)
                self.history.save()
                self.renderer.on_response_ready(result.text)
            else:
                self.renderer.on_error(result.describe())
            return result
        finally:
            self._in_flight = False

    def clear(self) -> None:
        self.history.clear()
        clear_renderer = getattr(self.renderer, "clear", None)
        if clear_renderer is not None:
            clear_renderer()

    def destroy(self) -> None:
        self.clear()
        for key in (HISTORY_KEY, TRANSCRIPT_KEY):
            try:
                self.storage.remove(key)
            except OSError as e:
                logger.error("Error removing %s: %s", key, e)
        self._in_flight = False
        logger.info("Chat session destroyed")
