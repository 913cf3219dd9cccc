"""Persisted key-value state backed by the app_state table."""
import json
import logging
from datetime import datetime

from auralearn.db import get_connection
from auralearn.models import AppState, ChatMessage, Progress, StudyPlan

logger = logging.getLogger(__name__)

PLAN_KEY = "studyPlan"
PROGRESS_KEY = "progress"
CHAT_KEY = "chatHistory"


def load(db_path: str, key: str, default=None):
    """Return the decoded value for key, or default if absent or unreadable."""
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
    conn.close()
    if row is None or row["value"] is None:
        return default
    try:
        return json.loads(row["value"])
    except json.JSONDecodeError:
        logger.warning("Stored value for %r is not valid JSON, using default", key)
        return default


def save(db_path: str, key: str, value) -> None:
    encoded = json.dumps(value)
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO app_state (key, value, updated_at) VALUES (?, ?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
        (key, encoded, datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()


def load_state(db_path: str) -> AppState:
    state = AppState()
    plan_data = load(db_path, PLAN_KEY)
    if plan_data is not None:
        try:
            state.plan = StudyPlan.from_dict(plan_data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Stored study plan is malformed, starting without one")
    progress_data = load(db_path, PROGRESS_KEY)
    if progress_data is not None:
        try:
            state.progress = Progress.from_dict(progress_data)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Stored progress is malformed, starting from zero")
    chat_data = load(db_path, CHAT_KEY, [])
    try:
        state.chat_history = [ChatMessage.from_dict(m) for m in chat_data]
    except (KeyError, TypeError, ValueError):
        logger.warning("Stored chat history is malformed, starting empty")
    return state


def save_plan(db_path: str, plan: StudyPlan | None) -> None:
    save(db_path, PLAN_KEY, plan.to_dict() if plan is not None else None)


def save_progress(db_path: str, progress: Progress) -> None:
    save(db_path, PROGRESS_KEY, progress.to_dict())


def save_chat_history(db_path: str, messages: list) -> None:
    save(db_path, CHAT_KEY, [m.to_dict() for m in messages])


def save_state(db_path: str, state: AppState) -> None:
    save_plan(db_path, state.plan)
    save_progress(db_path, state.progress)
    save_chat_history(db_path, state.chat_history)
