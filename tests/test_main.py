import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_session import ChatSession
from conftest import api_error, make_genai_client, make_response
from main import app
from storage import HISTORY_KEY, TRANSCRIPT_KEY, JsonFileStorage, MemoryStorage


@pytest.fixture
def install_session():
    def install(settings, genai_client, storage=None):
        session = ChatSession.create(
            settings, storage=storage if storage is not None else MemoryStorage(), genai_client=genai_client
        )
        app.state.session = session
        return session

    yield install
    app.state.session = None


def client_for(install_session, settings, genai_client):
    session = install_session(settings, genai_client)
    return TestClient(app), session


def test_healthz(install_session, settings):
    client, _ = client_for(install_session, settings, make_genai_client())
    with client:
        assert client.get("/healthz").json() == {"ok": True}


def test_startup_probes_candidates(install_session, settings):
    genai_client = make_genai_client(get_side_effect=[api_error("not found"), object(), object()])
    client, _ = client_for(install_session, settings, genai_client)
    with client:
        pass
    assert genai_client.aio.models.get.await_count == 2


def test_chat_then_history_and_transcript(install_session, settings):
    genai_client = make_genai_client(generate_side_effect=[make_response("Hi there")])
    client, _ = client_for(install_session, settings, genai_client)
    with client:
        resp = client.post("/chat", json={"message": "Hello"})
        assert resp.status_code == 200
        assert resp.json() == {"text": "Hi there", "model": "model-a"}

        history = client.get("/history").json()
        assert history["messages"] == 2
        assert history["turns"][0] == {"role": "user", "text": "Hello"}

        transcript = client.get("/transcript").json()
        assert [e["kind"] for e in transcript] == ["outgoing", "incoming"]


def test_chat_rejects_blank_message(install_session, settings):
    genai_client = make_genai_client()
    client, _ = client_for(install_session, settings, genai_client)
    with client:
        resp = client.post("/chat", json={"message": "   "})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Error: message is required. Please try again."
    assert genai_client.aio.models.generate_content.await_count == 0


@pytest.mark.parametrize(
    "error, status",
    [
        (api_error("API key not valid", code=400), 502),
        (api_error("not found"), 502),
        (make_response(""), 502),
        (httpx.ConnectError("connection refused"), 503),
    ],
)
def test_chat_maps_failures_to_http_errors(install_session, settings, error, status):
    genai_client = make_genai_client(generate_side_effect=[error] * 3)
    client, session = client_for(install_session, settings, genai_client)
    with client:
        resp = client.post("/chat", json={"message": "Hello"})
        assert resp.status_code == status
        assert resp.json()["detail"].startswith("Error: ")
        assert client.get("/history").json()["messages"] == 0
    assert session.in_flight is False


def test_chat_busy_session_is_conflict(install_session, settings):
    client, session = client_for(install_session, settings, make_genai_client())
    with client:
        session._in_flight = True
        assert client.post("/chat", json={"message": "Hello"}).status_code == 409


def test_chat_storage_failure_still_answers(install_session, settings):
    class FullDiskStorage(MemoryStorage):
        def set(self, key, value):
            raise OSError("disk full")

    genai_client = make_genai_client(generate_side_effect=[make_response("Hi there")])
    install_session(settings, genai_client, storage=FullDiskStorage())
    with TestClient(app) as client:
        resp = client.post("/chat", json={"message": "Hello"})
        assert resp.status_code == 200
        assert resp.json()["text"] == "Hi there"


def test_clear(install_session, settings):
    genai_client = make_genai_client(generate_side_effect=[make_response("Hi there")])
    client, _ = client_for(install_session, settings, genai_client)
    with client:
        client.post("/chat", json={"message": "Hello"})
        assert client.post("/clear").json() == {"ok": True}
        assert client.get("/history").json() == {"messages": 0, "turns": []}
        assert client.get("/transcript").json() == []


@pytest.mark.asyncio
async def test_clear_during_in_flight_chat_keeps_storage_consistent(install_session, settings, tmp_path):
    release = asyncio.Event()

    async def slow_generate(**kwargs):
        await release.wait()
        return make_response("Hi there")

    path = str(tmp_path / "store.json")
    storage = JsonFileStorage(path)
    storage.set(HISTORY_KEY, json.dumps([{"role": "user", "parts": [{"text": "old"}]},
                                         {"role": "model", "parts": [{"text": "older"}]}]))
    session = install_session(settings, make_genai_client(generate_side_effect=slow_generate), storage=storage)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        pending = asyncio.create_task(client.post("/chat", json={"message": "Hello"}))
        while not session.in_flight:
            await asyncio.sleep(0)

        cleared = await client.post("/clear")
        assert cleared.status_code == 200
        assert session.in_flight is True

        release.set()
        resp = await pending

    assert resp.status_code == 200
    on_disk = JsonFileStorage(path)
    assert json.loads(on_disk.get(HISTORY_KEY)) == [t.to_content() for t in session.history.turns]
    assert json.loads(on_disk.get(TRANSCRIPT_KEY)) == [e.model_dump() for e in session.renderer.entries]
    assert [e.kind for e in session.renderer.entries] == ["incoming"]


def test_models_reports_probe_results(install_session, settings):
    genai_client = make_genai_client(get_side_effect=[object()] + [object(), api_error("not found"), object()])
    client, _ = client_for(install_session, settings, genai_client)
    with client:
        resp = client.get("/models")
    assert resp.json() == [
        {"model": "model-a", "reachable": True},
        {"model": "model-b", "reachable": False},
        {"model": "model-c", "reachable": True},
    ]
