"""FastAPI transport surface for the chat command engine."""

import logging
import threading
from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException

from . import __version__
from .auth import CurrentTransport
from .config import get_settings
from .engine import ChatEngine, InboundChatMessage, build_engine
from .logging_utils import log_info
from .metrics import get_metrics_collector, is_metrics_enabled
from .models import DependencyStatus, InboundMessage, MessageResponse, StatusResponse
from .store import StoreError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="PayChat Command API",
    version=__version__,
    description="Conversational command engine for a chat-based wallet",
)

_engine: ChatEngine | None = None
_engine_lock = threading.Lock()


def get_engine() -> ChatEngine:
    """Get or lazily build the process-wide engine."""
    global _engine
    with _engine_lock:
        if _engine is None:
            metrics = get_metrics_collector() if is_metrics_enabled() else None
            _engine = build_engine(get_settings(), metrics=metrics)
        return _engine


EngineDep = Annotated[ChatEngine, Depends(get_engine)]


@app.post("/v1/messages", response_model=MessageResponse)
def post_message(message: InboundMessage, transport_id: CurrentTransport, engine: EngineDep):
    """Handle one inbound chat message and return what to send back."""
    log_info(logger, "Inbound message", transport=transport_id, voice=message.is_voice)
    result = engine.handle_message(
        InboundChatMessage(
            sender_id=message.sender_id,
            conversation_id=message.conversation_id or message.sender_id,
            text=message.text,
            message_id=message.message_id,
            group_id=message.group_id,
            group_name=message.group_name,
            is_voice=message.is_voice,
            timestamp=message.timestamp.timestamp() if message.timestamp else None,
            display_name=message.display_name,
            locale=message.locale,
            instance_id=transport_id,
        )
    )
    return MessageResponse.from_result(result)


@app.get("/v1/status", response_model=StatusResponse)
def get_status(engine: EngineDep):
    """Service health and store backend readiness."""
    dependencies = []
    store = engine.store
    if store is not None:
        name = f"store:{store.backend}"
        try:
            store.exists("healthcheck")
            dependencies.append(DependencyStatus(name=name, status="ok", message="Store reachable"))
        except StoreError as e:
            logger.warning("Store health check failed: %s", e)
            dependencies.append(
                DependencyStatus(name=name, status="unavailable", message="Store unreachable")
            )

    overall = "degraded" if any(d.status != "ok" for d in dependencies) else "ok"
    return StatusResponse(
        status=overall,
        version=app.version,
        timestamp=datetime.now(UTC),
        dependencies=dependencies,
    )


@app.get("/v1/metrics")
def get_metrics():
    """In-process metrics snapshot (only when PAYCHAT_ENABLE_METRICS is set)."""
    if not is_metrics_enabled():
        raise HTTPException(status_code=404, detail="Metrics are disabled")
    return get_metrics_collector().get_snapshot()
