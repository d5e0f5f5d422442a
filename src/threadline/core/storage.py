"""Session storage - YAML files of saved review sessions

The store never calls storage directly. SessionAutosaver watches the store
and saves the current session after a debounce.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional

import yaml
from pydantic import ValidationError

from threadline.core.store import ReviewStore
from threadline.models.session import ReviewSession
from threadline.models.state import ReviewState

logger = logging.getLogger(__name__)

MAX_SESSIONS = 10


class SessionStorage:
    """Key-value store of sessions, one YAML file per session ID"""

    def __init__(self, directory: Path, max_sessions: int = MAX_SESSIONS):
        self.directory = Path(directory)
        self.max_sessions = max_sessions

    def _path(self, session_id: str) -> Path:
        return self.directory / f"{session_id}.yaml"

    def save(self, session: ReviewSession) -> Path:
        """Save a session, keeping only the newest max_sessions on disk"""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(session.id)

        data = session.model_dump(mode="json")
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        self._prune()
        return path

    def load(self, session_id: str) -> Optional[ReviewSession]:
        """Load a session by ID, or None if it doesn't exist

        Raises:
            ValueError: If the session file is invalid
        """
        path = self._path(session_id)
        if not path.exists():
            return None
        return self._read(path)

    def load_all(self) -> List[ReviewSession]:
        """Load every readable session, newest first"""
        if not self.directory.exists():
            return []

        sessions = []
        for path in self.directory.glob("*.yaml"):
            try:
                sessions.append(self._read(path))
            except ValueError as e:
                logger.warning("Skipping unreadable session file %s: %s", path, e)

        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    def delete(self, session_id: str) -> bool:
        """Delete a session by ID"""
        path = self._path(session_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def clear_all(self) -> int:
        """Delete every saved session; returns how many were removed"""
        if not self.directory.exists():
            return 0
        removed = 0
        for path in self.directory.glob("*.yaml"):
            path.unlink()
            removed += 1
        return removed

    def _read(self, path: Path) -> ReviewSession:
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
            return ReviewSession.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise ValueError(f"Invalid session file: {e}")

    def _prune(self) -> None:
        for session in self.load_all()[self.max_sessions:]:
            logger.info("Dropping old session %s", session.id)
            self.delete(session.id)


class SessionAutosaver:
    """Saves the store's current session once changes settle.

    Inside a running event loop saves are debounced by ``delay`` seconds;
    without one they happen immediately. Sessions without code are skipped.
    """

    def __init__(self, storage: SessionStorage, delay: float = 1.0):
        self.storage = storage
        self.delay = delay
        self._pending: Optional[ReviewSession] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._last_seen: Optional[ReviewSession] = None

    def attach(self, store: ReviewStore) -> Callable[[], None]:
        """Start watching a store; returns the unsubscribe function"""
        return store.subscribe(self)

    def __call__(self, state: ReviewState) -> None:
        session = state.current_session
        if session is None or not session.code:
            return
        if session is self._last_seen:
            return
        self._last_seen = session
        self._pending = session
        self._schedule()

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return

        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self.flush)

    def flush(self) -> None:
        """Save the pending session now"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._pending is None:
            return
        session, self._pending = self._pending, None
        self.storage.save(session)
        logger.debug("Autosaved session %s", session.id)
