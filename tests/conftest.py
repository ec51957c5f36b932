from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from google.genai import errors, types

from chat_session import ChatSession
from settings import Settings
from storage import MemoryStorage


def make_response(text):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[types.Part(text=text)]))]
    )


def api_error(message, code=404, status="NOT_FOUND"):
    return errors.ClientError(code, {"error": {"code": code, "message": message, "status": status}})


def make_genai_client(generate_side_effect=None, get_side_effect=None):
    models = SimpleNamespace(
        generate_content=AsyncMock(side_effect=generate_side_effect),
        get=AsyncMock(side_effect=get_side_effect),
    )
    return SimpleNamespace(aio=SimpleNamespace(models=models))


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def settings():
    return Settings(API_KEY="test-key", MODEL_CANDIDATES=["model-a", "model-b", "model-c"])


@pytest.fixture
def genai_client():
    return make_genai_client()


@pytest.fixture
def session(settings, storage, genai_client):
    return ChatSession.create(settings, storage=storage, genai_client=genai_client)
