# response_client.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx
from google.genai import errors, types

from history import HistoryStore
from model_selector import ModelSelector

logger = logging.getLogger(__name__)

GENERATION_CONFIG = types.GenerateContentConfig(
    temperature=0.7,
    top_k=40,
    top_p=0.95,
    max_output_tokens=2048,
    safety_settings=[
        types.SafetySetting(category=category, threshold="BLOCK_MEDIUM_AND_ABOVE")
        for category in (
            "HARM_CATEGORY_HARASSMENT",
            "HARM_CATEGORY_HATE_SPEECH",
            "HARM_CATEGORY_SEXUALLY_EXPLICIT",
            "HARM_CATEGORY_DANGEROUS_CONTENT",
        )
    ],
)

MODEL_UNAVAILABLE_MARKERS = ("not found", "not supported")


class ErrorKind(str, Enum):
    NETWORK_FAILURE = "NetworkFailure"
    MODEL_UNAVAILABLE = "ModelUnavailable"
    MALFORMED_RESPONSE = "MalformedResponse"
    EMPTY_INPUT = "EmptyInput"
    PROVIDER_ERROR = "ProviderError"


@dataclass(frozen=True)
class SendResult:
    text: Optional[str] = None
    model: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, text: str, model: Optional[str] = None) -> "SendResult":
        return cls(text=text, model=model)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, model: Optional[str] = None) -> "SendResult":
        return cls(model=model, error_kind=kind, error_message=message)

    def describe(self) -> str:
        if self.ok:
            return self.text or ""
        return f"Error: {self.error_message}. Please try again."


def is_model_unavailable(message: Optional[str]) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in MODEL_UNAVAILABLE_MARKERS)


def decode_response(response: Any, model: Optional[str] = None) -> SendResult:
    """Pull candidates[0].content.parts[0].text out of a generateContent reply."""
    candidates = getattr(response, "candidates", None)
    content = getattr(candidates[0], "content", None) if candidates else None
    parts = getattr(content, "parts", None) if content is not None else None
    text = getattr(parts[0], "text", None) if parts else None
    if not isinstance(text, str) or not text:
        logger.error("Invalid response format from model %s: %r", model, response)
        return SendResult.failure(
            ErrorKind.MALFORMED_RESPONSE, "Invalid response format from API", model=model
        )
    return SendResult.success(text, model=model)


class ResponseClient:
    """Sends one user message plus context, falling back across candidates."""

    def __init__(self, client, selector: ModelSelector, config: types.GenerateContentConfig = GENERATION_CONFIG):
        self.client = client
        self.selector = selector
        self.config = config

    @staticmethod
    def build_contents(user_text: str, history: HistoryStore):
        return [
            *history.as_context_list(),
            {"role": "user", "parts": [{"text": user_text}]},
        ]

    async def _attempt(self, contents, model: str) -> SendResult:
        logger.info("Using model: %s", model)
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=self.config,
            )
        except errors.APIError as e:
            message = e.message or f"HTTP error! status: {e.code}"
            logger.error("API Error from %s: %s %s", model, e.code, message)
            kind = ErrorKind.MODEL_UNAVAILABLE if is_model_unavailable(e.message) else ErrorKind.PROVIDER_ERROR
            return SendResult.failure(kind, message, model=model)
        except (httpx.HTTPError, OSError) as e:
            logger.error("Network error calling %s: %s", model, e)
            return SendResult.failure(ErrorKind.NETWORK_FAILURE, str(e) or type(e).__name__, model=model)
        return decode_response(response, model=model)

    async def send(self, user_text: str, history: HistoryStore, candidate: Optional[str] = None) -> SendResult:
        contents = self.build_contents(user_text, history)
        model = candidate or self.selector.preferred
        result = None
        # each candidate is tried at most once
        for _ in range(len(self.selector)):
            result = await self._attempt(contents, model)
            if result.error_kind is not ErrorKind.MODEL_UNAVAILABLE:
                return result
            next_model = self.selector.next_after(model)
            if next_model is None:
                break
            logger.info("Trying alternative model: %s", next_model)
            model = next_model
        return result
