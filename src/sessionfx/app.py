"""App: hosts one isolated Session per connection.

An App pairs an InputMap (shared, read-only configuration) with a server
setup function that wires signals, derivations and effects into each new
session. Input events for a session are delivered under that session's lock,
so one event finishes its whole invalidation cascade before the next starts.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Mapping

from sessionfx.errors import UnknownSession
from sessionfx.inputs import InputBinding, InputMap
from sessionfx.session import Session

logger = logging.getLogger("sessionfx.app")

Server = Callable[[Session], object]


class App:
    def __init__(self, server: Server, inputs: Iterable[InputBinding] = (), **session_options) -> None:
        self._server = server
        self.inputs = InputMap(inputs)
        self._session_options = session_options
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def connect(self, session_id: str | None = None) -> Session:
        """Create, wire and register a new session."""
        session = Session(session_id, **self._session_options)
        with self._registry_lock:
            if session.id in self._sessions:
                raise ValueError(f"Session already connected: {session.id!r}")
            self._sessions[session.id] = session
            self._locks[session.id] = threading.RLock()

        try:
            self.inputs.install(session)
            self._server(session)
        except Exception:
            self._forget(session.id)
            session.close()
            raise

        logger.info("Session %s opened (%d sessions)", session.id, len(self._sessions))
        return session

    def session(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSession(session_id)
        return session

    def deliver(self, session_id: str, widget_id: str, value: object = None) -> None:
        """Apply one widget event to one session."""
        session = self.session(session_id)
        with self._locks[session_id]:
            self.inputs.deliver(session, widget_id, value)

    def deliver_many(self, session_id: str, events: Mapping[str, object]) -> None:
        """Apply several widget events to one session as a single batch."""
        session = self.session(session_id)
        with self._locks[session_id]:
            self.inputs.deliver_many(session, events)

    def disconnect(self, session_id: str) -> None:
        session = self.session(session_id)
        self._forget(session_id)
        session.close()
        logger.info("Session %s closed (%d sessions)", session_id, len(self._sessions))

    def close(self) -> None:
        for session_id in list(self._sessions):
            self.disconnect(session_id)

    def _forget(self, session_id: str) -> None:
        with self._registry_lock:
            self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)

    @property
    def sessions(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
