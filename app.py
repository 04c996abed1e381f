"""FastAPI service for the chat analytics engine.

The conversational UI calls ``POST /api/turns`` when the user submits a
message, then records the user text and the bot reply; dashboards read
``GET /api/data``.  All state lives in one ``AnalyticsEngine`` created at
startup and written through to a JSON file store.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import os
from datetime import datetime

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from analytics import AnalyticsEngine, message_to_payload, to_payload
from chat_export import format_transcript
from store import DEFAULT_STORE_DIR, JsonFileStore

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
STORE_DIR = DEFAULT_STORE_DIR
EXPORT_USERNAME = os.environ.get("CHAT_ANALYTICS_USER", "User")


class MessageIn(BaseModel):
    text: str


def get_engine(request: Request) -> AnalyticsEngine:
    return request.app.state.engine


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
def create_app(engine: AnalyticsEngine | None = None) -> FastAPI:
    """Build the service around *engine* (default: file-backed engine)."""
    if engine is None:
        engine = AnalyticsEngine.create(JsonFileStore(STORE_DIR))

    app = FastAPI(
        title="Chat Analytics",
        root_path=os.environ.get("CHAT_ANALYTICS_ROOT_PATH", ""),
    )
    app.state.engine = engine

    @app.get("/health")
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/api/data")
    def api_data(engine: AnalyticsEngine = Depends(get_engine)):
        """Return the full aggregate in the persisted JSON shape."""
        return to_payload(engine.snapshot())

    @app.post("/api/turns")
    def api_start_turn(engine: AnalyticsEngine = Depends(get_engine)):
        engine.start_turn()
        return {"status": "started"}

    @app.post("/api/messages/user")
    def api_user_message(body: MessageIn, engine: AnalyticsEngine = Depends(get_engine)):
        return message_to_payload(engine.record_user_message(body.text))

    @app.post("/api/messages/bot")
    def api_bot_message(body: MessageIn, engine: AnalyticsEngine = Depends(get_engine)):
        return message_to_payload(engine.record_bot_message(body.text))

    @app.post("/api/reset")
    def api_reset(engine: AnalyticsEngine = Depends(get_engine)):
        engine.reset()
        return {"status": "reset", "reset_at": datetime.now().isoformat()}

    @app.get("/api/export", response_class=PlainTextResponse)
    def api_export(
        username: str = EXPORT_USERNAME,
        engine: AnalyticsEngine = Depends(get_engine),
    ):
        """Return the message history as a plain-text transcript."""
        return PlainTextResponse(format_transcript(engine.history(), username=username))

    return app


app = create_app()
