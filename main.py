# main.py
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from chat_session import ChatSession
from models import ChatRequest, ChatResponse, HistorySummary, ModelStatus, TranscriptEntry
from response_client import ErrorKind
from settings import Settings, configure_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.NETWORK_FAILURE: 503,
    ErrorKind.MODEL_UNAVAILABLE: 502,
    ErrorKind.PROVIDER_ERROR: 502,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.EMPTY_INPUT: 400,
}

# --- Settings & logging ---
settings = Settings()
configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # a session may be installed up front (tests, embedding)
    if getattr(app.state, "session", None) is None:
        app.state.session = ChatSession.create(settings)
    # diagnostics only; requests still fall back on their own
    available = await app.state.session.selector.first_reachable()
    if available:
        logger.info("Using model: %s", available)
    else:
        logger.error("No Gemini models available. Please check your API key and region.")
    yield


app = FastAPI(title="Gemini Chat API", version="1.0.0", lifespan=lifespan)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every route is async so all session access stays on the event loop.
def get_session(request: Request) -> ChatSession:
    return request.app.state.session


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, request: Request):
    result = await get_session(request).submit(req.message)
    if result is None:
        raise HTTPException(status_code=409, detail="A response is already being generated")
    if not result.ok:
        raise HTTPException(status_code=ERROR_STATUS[result.error_kind], detail=result.describe())
    return ChatResponse(text=result.text, model=result.model)


@app.post("/clear")
async def clear(request: Request):
    get_session(request).clear()
    return {"ok": True}


@app.get("/history", response_model=HistorySummary)
async def history_summary(request: Request):
    turns = get_session(request).history.turns
    return HistorySummary(messages=len(turns), turns=turns)


@app.get("/transcript", response_model=List[TranscriptEntry])
async def transcript(request: Request):
    renderer = get_session(request).renderer
    return list(getattr(renderer, "entries", []))


@app.get("/models", response_model=List[ModelStatus])
async def models(request: Request):
    statuses = await get_session(request).selector.probe_all()
    return [ModelStatus(model=model, reachable=reachable) for model, reachable in statuses.items()]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
