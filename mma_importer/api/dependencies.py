"""
Shared dependencies and state for the API.

Import sessions live in an in-process registry between requests (in
production, use Redis or a database). Entries expire after
``settings.import_session_ttl_seconds`` of inactivity.
"""
import logging
import time
from typing import Any, Dict, Optional

from fastapi import HTTPException

from mma_importer.core.config import settings
from mma_importer.db.stores import FighterStore, FightStore
from mma_importer.domain.imports.orchestrator import ImportSession

logger = logging.getLogger(__name__)

# Key: session id, Value: dict with 'session' and 'timestamp' (last access)
import_sessions: Dict[str, Dict[str, Any]] = {}
SESSION_TTL_SECONDS = settings.import_session_ttl_seconds

_fighter_store: Optional[FighterStore] = None
_fight_store: Optional[FightStore] = None


def get_fighter_store() -> FighterStore:
    global _fighter_store
    if _fighter_store is None:
        _fighter_store = FighterStore()
    return _fighter_store


def get_fight_store() -> FightStore:
    global _fight_store
    if _fight_store is None:
        _fight_store = FightStore()
    return _fight_store


def evict_expired_sessions(now: Optional[float] = None) -> int:
    """Drop idle sessions past the TTL; sessions with a commit in flight are kept."""
    current_time = now if now is not None else time.time()
    expired = [
        session_id for session_id, entry in import_sessions.items()
        if current_time - entry["timestamp"] > SESSION_TTL_SECONDS and not entry["session"].is_committing
    ]
    for session_id in expired:
        del import_sessions[session_id]
    if expired:
        logger.info(f"Evicted {len(expired)} expired import session(s)")
    return len(expired)


def register_session(session: ImportSession) -> ImportSession:
    """
    Store a new session, evicting expired ones first.

    Raises:
        HTTPException: 429 if the active-session limit is reached
    """
    evict_expired_sessions()
    if len(import_sessions) >= settings.import_session_max_active:
        raise HTTPException(
            status_code=429,
            detail=f"Too many active import sessions (limit {settings.import_session_max_active}). Try again later.",
        )
    import_sessions[session.id] = {"session": session, "timestamp": time.time()}
    return session


def get_import_session(session_id: str) -> ImportSession:
    """Look up a live session and refresh its TTL, or raise 404."""
    entry = import_sessions.get(session_id)
    current_time = time.time()
    if entry is None or (
        current_time - entry["timestamp"] > SESSION_TTL_SECONDS and not entry["session"].is_committing
    ):
        import_sessions.pop(session_id, None)
        raise HTTPException(status_code=404, detail=f"Import session '{session_id}' not found or expired")
    entry["timestamp"] = current_time
    return entry["session"]


def drop_session(session_id: str) -> bool:
    return import_sessions.pop(session_id, None) is not None
