"""
FastAPI entrypoint for the Calculator Engine.
"""
import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import List, Optional
from pydantic import BaseModel, Field
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .config import (
    MAX_KEYS_PER_REQUEST, KEYS_RATE_LIMIT, LOG_FILE,
    SLOW_REQUEST_THRESHOLD_MS, LOG_MAX_BYTES, LOG_BACKUP_COUNT,
)
from .history import HistoryEntry, HistoryEntryNotFound
from .sessions import Session, SessionLimitExceeded, SessionNotFound, get_session_store

# Attributes present on every LogRecord — excluded from the JSON extras dict
_LOG_RECORD_BUILTIN_ATTRS = {
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno', 'message', 'module',
    'msecs', 'msg', 'name', 'pathname', 'process', 'processName',
    'relativeCreated', 'stack_info', 'thread', 'threadName', 'taskName',
}


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON for machine-readable file output."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        # Merge any extra={} fields passed by the caller
        for key, val in record.__dict__.items():
            if key not in _LOG_RECORD_BUILTIN_ATTRS and key not in entry:
                entry[key] = val
        return json.dumps(entry, default=str)


# Console handler — human-readable
_console_handler = logging.StreamHandler()
_console_handler.setFormatter(
    logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
)

# File handler — JSON, rotated at LOG_MAX_BYTES
_file_handler = RotatingFileHandler(
    LOG_FILE, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
)
_file_handler.setFormatter(JSONFormatter())

logging.basicConfig(level=logging.INFO, handlers=[_console_handler, _file_handler])
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    logger.info("Starting Calculator Engine")
    yield
    stats = get_session_store().get_stats()
    logger.info(
        f"Shutting down with {stats['active_sessions']} active sessions",
        extra=stats,
    )


# Rate limiter
limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title="Calculator Engine",
    description="Four-function calculator state engine with recallable history",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every HTTP request with method, path, status code, and duration."""
    start_time = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start_time) * 1000, 2)
    extra = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "duration_ms": duration_ms,
    }
    message = f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
    if duration_ms > SLOW_REQUEST_THRESHOLD_MS:
        logger.warning(f"Slow request: {message}", extra=extra)
    else:
        logger.info(message, extra=extra)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class KeysRequest(BaseModel):
    """Raw key tokens to apply in order."""
    keys: List[str] = Field(
        ..., min_length=1, max_length=MAX_KEYS_PER_REQUEST,
        description="Key names or button values, e.g. ['7', '×', '3', 'Enter']"
    )


class StateModel(BaseModel):
    """Calculator state as exposed to clients."""
    current_number: str
    previous_number: str
    operation: Optional[str]
    last_operand: str
    is_new_number: bool
    history_expression: str
    is_error: bool


class HistoryEntryModel(BaseModel):
    """A completed calculation."""
    id: str
    expression: str
    result: str
    operation: str
    operand: str
    created_at: datetime


class SessionResponse(BaseModel):
    """Full snapshot of one calculator session."""
    session_id: str
    display: str
    equation: str
    theme: str
    state: StateModel
    history: List[HistoryEntryModel]


class KeysResponse(SessionResponse):
    """Session snapshot after applying keys."""
    accepted: int
    ignored: int


class ThemeResponse(BaseModel):
    session_id: str
    theme: str


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    active_sessions: int
    max_sessions: int


def _entry_model(entry: HistoryEntry) -> HistoryEntryModel:
    return HistoryEntryModel(
        id=entry.id,
        expression=entry.expression,
        result=entry.result,
        operation=entry.operation.symbol,
        operand=entry.operand,
        created_at=entry.created_at,
    )


def _snapshot(session: Session) -> dict:
    state = session.calculator.state
    return {
        "session_id": session.id,
        "display": state.current_number,
        "equation": state.history_expression,
        "theme": session.theme,
        "state": StateModel(
            current_number=state.current_number,
            previous_number=state.previous_number,
            operation=state.operation.symbol if state.operation else None,
            last_operand=state.last_operand,
            is_new_number=state.is_new_number,
            history_expression=state.history_expression,
            is_error=state.is_error,
        ),
        "history": [_entry_model(e) for e in session.calculator.ledger],
    }


def _get_session(session_id: str) -> Session:
    try:
        return get_session_store().get(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


# Endpoints
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    stats = get_session_store().get_stats()
    return HealthResponse(status="healthy", **stats)


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session():
    """Start a new calculator in its initial state."""
    try:
        session = get_session_store().create()
    except SessionLimitExceeded as e:
        logger.warning(str(e))
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"[{session.id[:8]}] Session created", extra={"session_id": session.id})
    return SessionResponse(**_snapshot(session))


@app.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str):
    """Current display, equation line, state and history of a session."""
    session = _get_session(session_id)
    with session.lock:
        return SessionResponse(**_snapshot(session))


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    try:
        get_session_store().delete(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"[{session_id[:8]}] Session deleted", extra={"session_id": session_id})
    return {"message": f"Session {session_id} deleted"}


@app.post("/sessions/{session_id}/keys", response_model=KeysResponse)
@limiter.limit(KEYS_RATE_LIMIT)
def press_keys(request: Request, session_id: str, body: KeysRequest):
    """
    Apply raw key tokens to a session's calculator.

    Unrecognized tokens are ignored and counted, never rejected.
    """
    session = _get_session(session_id)
    with session.lock:
        history_before = len(session.calculator.ledger)
        accepted = session.calculator.press_many(body.keys)
        committed = len(session.calculator.ledger) - history_before
        snapshot = _snapshot(session)

    logger.info(
        f"[{session_id[:8]}] Applied {accepted}/{len(body.keys)} keys -> {snapshot['display']!r}",
        extra={
            "session_id": session_id,
            "keys_accepted": accepted,
            "keys_ignored": len(body.keys) - accepted,
            "history_committed": committed,
        },
    )
    return KeysResponse(**snapshot, accepted=accepted, ignored=len(body.keys) - accepted)


@app.get("/sessions/{session_id}/history", response_model=List[HistoryEntryModel])
def get_history(session_id: str):
    """Completed calculations, newest first."""
    session = _get_session(session_id)
    with session.lock:
        return [_entry_model(e) for e in session.calculator.ledger]


@app.post("/sessions/{session_id}/history/{entry_id}/recall", response_model=SessionResponse)
def recall_entry(session_id: str, entry_id: str):
    """
    Load a past result into the calculator.

    A following "=" repeats the recalled calculation's operation and operand.
    """
    session = _get_session(session_id)
    with session.lock:
        try:
            session.calculator.recall(entry_id)
        except HistoryEntryNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        snapshot = _snapshot(session)

    logger.info(
        f"[{session_id[:8]}] Recalled history entry {entry_id}",
        extra={"session_id": session_id, "entry_id": entry_id},
    )
    return SessionResponse(**snapshot)


@app.delete("/sessions/{session_id}/history")
def clear_history(session_id: str):
    session = _get_session(session_id)
    with session.lock:
        session.calculator.ledger.clear()
    logger.info(f"[{session_id[:8]}] Cleared history", extra={"session_id": session_id})
    return {"message": "History cleared"}


@app.post("/sessions/{session_id}/theme", response_model=ThemeResponse)
def toggle_theme(session_id: str):
    """Switch between the light and dark themes."""
    session = _get_session(session_id)
    theme = session.toggle_theme()
    return ThemeResponse(session_id=session_id, theme=theme)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
