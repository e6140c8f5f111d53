"""
api/session.py — per-browser in-memory sessions (cookie based)

Every browser gets a UUID session id; each session holds at most one open
exam session state machine. Sessions expire after SESSION_TTL seconds of
inactivity and their timers are stopped on expiry.
"""

import threading
import time
import uuid
from typing import Any

import config

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}

SESSION_TTL = config.SESSION_TTL_SECONDS


def _new_state() -> dict[str, Any]:
    return {
        "student_id": "",
        "exam_session": None,
    }


def _close(state: dict[str, Any]) -> None:
    machine = state.get("exam_session")
    if machine is not None:
        machine.close()


def create_session() -> str:
    """Create a session and return its id."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """Session data by id. None when missing or expired."""
    expired = None
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            expired = _sessions.pop(sid)
            del _timestamps[sid]
        else:
            _timestamps[sid] = time.time()  # touch on access
            return _sessions[sid]
    _close(expired)
    return None


def get(sid: str, key: str, default=None):
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


def reset(sid: str) -> None:
    """Close the open exam session and start over (student id is kept)."""
    with _lock:
        if sid not in _sessions:
            return
        old = _sessions[sid]
        _sessions[sid] = _new_state()
        _sessions[sid]["student_id"] = old.get("student_id", "")
        _timestamps[sid] = time.time()
    _close(old)


def cleanup_expired() -> int:
    """Drop expired sessions. Returns how many were removed."""
    now = time.time()
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        states = [_sessions.pop(sid) for sid in expired]
        for sid in expired:
            del _timestamps[sid]
    for state in states:
        _close(state)
    return len(states)
