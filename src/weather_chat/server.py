"""FastAPI application exposing weather chat sessions."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from .composer import ResponseComposer
from .config import load_config
from .errors import EmptyMessageError, SessionNotFoundError, TurnInProgressError
from .export import export_filename, export_session_pdf
from .models import Message, Session
from .orchestrator import Composer, ConversationOrchestrator, WeatherFetcher
from .store import SessionStore
from .weather import WeatherClient

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic request/response
# -----------------------------
class ChatRequest(BaseModel):
    message: str


class ThemeRequest(BaseModel):
    theme: Literal["light", "dark"]


class ThemeResponse(BaseModel):
    theme: str


class MessageOut(BaseModel):
    id: str
    role: str
    content: str
    timestamp: datetime
    liked: Optional[bool] = None
    disliked: Optional[bool] = None


class SessionSummary(BaseModel):
    id: str
    title: str
    created_at: datetime
    message_count: int


class SessionOut(BaseModel):
    id: str
    title: str
    created_at: datetime
    messages: List[MessageOut]


class TurnResponse(BaseModel):
    session: SessionOut
    busy: bool


# -----------------------------
# Utilities
# -----------------------------
def _message_out(m: Message) -> MessageOut:
    return MessageOut(
        id=m.id,
        role=m.role,
        content=m.content,
        timestamp=m.timestamp,
        liked=m.liked,
        disliked=m.disliked,
    )


def _session_out(s: Session) -> SessionOut:
    return SessionOut(
        id=s.id,
        title=s.title,
        created_at=s.created_at,
        messages=[_message_out(m) for m in s.messages],
    )


def _summary(s: Session) -> SessionSummary:
    return SessionSummary(id=s.id, title=s.title, created_at=s.created_at, message_count=len(s.messages))


def _configure_logging(cfg: Dict[str, Any]) -> None:
    level = str(cfg.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    store: Optional[SessionStore] = None,
    fetcher: Optional[WeatherFetcher] = None,
    composer: Optional[Composer] = None,
) -> FastAPI:
    cfg = load_config(config_path)
    _configure_logging(cfg)

    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])

    # Services
    store = store or SessionStore(cfg.get("storage", {}).get("data_dir", "data"))
    fetcher = fetcher or WeatherClient.from_config(cfg)
    composer = composer or ResponseComposer.from_config(cfg)
    orchestrator = ConversationOrchestrator(store, fetcher, composer)
    if isinstance(composer, ResponseComposer) and not composer.api_key:
        logger.warning("No Gemini API key configured; replies will fall back to canned text.")

    app = FastAPI(title="Weather Chat Server", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store
    app.state.orchestrator = orchestrator

    def _get(session_id: str) -> Session:
        try:
            return store.get(session_id)
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "data_dir": str(store.root),
            "api_key_configured": bool(getattr(composer, "api_key", None)),
        }

    # --------- sessions ----------
    @app.get("/sessions", response_model=List[SessionSummary])
    def list_sessions():
        return [_summary(s) for s in store.list()]

    @app.post("/sessions", response_model=SessionOut, status_code=201)
    def create_session():
        return _session_out(store.create())

    @app.get("/sessions/current", response_model=SessionOut)
    def current_session():
        session = store.current
        if session is None:
            raise HTTPException(status_code=404, detail="No session selected.")
        return _session_out(session)

    @app.get("/sessions/{session_id}", response_model=SessionOut)
    def get_session(session_id: str):
        return _session_out(_get(session_id))

    @app.post("/sessions/{session_id}/select", response_model=SessionOut)
    def select_session(session_id: str):
        _get(session_id)
        return _session_out(store.select(session_id))

    @app.delete("/sessions/{session_id}", status_code=204)
    def delete_session(session_id: str):
        if not store.delete(session_id):
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        return Response(status_code=204)

    # --------- turns ----------
    @app.post("/sessions/{session_id}/messages", response_model=TurnResponse)
    def send_message(session_id: str, req: ChatRequest):
        _get(session_id)
        try:
            session = orchestrator.handle_turn(session_id, req.message)
        except EmptyMessageError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except TurnInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return TurnResponse(session=_session_out(session), busy=orchestrator.is_busy(session_id))

    def _rate(session_id: str, message_id: str, *, liked: bool) -> MessageOut:
        _get(session_id)
        try:
            message = store.set_rating(session_id, message_id, liked=liked, disliked=not liked)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Message not found: {message_id}")
        return _message_out(message)

    @app.post("/sessions/{session_id}/messages/{message_id}/like", response_model=MessageOut)
    def like_message(session_id: str, message_id: str):
        return _rate(session_id, message_id, liked=True)

    @app.post("/sessions/{session_id}/messages/{message_id}/dislike", response_model=MessageOut)
    def dislike_message(session_id: str, message_id: str):
        return _rate(session_id, message_id, liked=False)

    # --------- export ----------
    @app.get("/sessions/{session_id}/export.pdf")
    def export_session(session_id: str):
        session = _get(session_id)
        try:
            pdf = export_session_pdf(session)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{export_filename(session)}"'},
        )

    # --------- preferences ----------
    @app.get("/preferences/theme", response_model=ThemeResponse)
    def get_theme():
        return ThemeResponse(theme=store.get_theme())

    @app.put("/preferences/theme", response_model=ThemeResponse)
    def put_theme(req: ThemeRequest):
        return ThemeResponse(theme=store.set_theme(req.theme))

    @app.post("/preferences/theme/toggle", response_model=ThemeResponse)
    def toggle_theme():
        return ThemeResponse(theme=store.toggle_theme())

    return app
