from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from inventory_viz.core.contracts import InventoryBackend
from inventory_viz.core.orchestrator import Orchestrator
from inventory_viz.services.api_client import InventoryApiClient
from inventory_viz.services.session_service import SessionService, TokenStore
from inventory_viz.services.storage import StorageBackend
from inventory_viz.ui.config import AppConfig
from inventory_viz.views import ComparisonChartWidget, ErrorMetricsWidget, TimelineChartWidget

logger = logging.getLogger(__name__)

BackendFactory = Callable[[TokenStore], InventoryBackend]


@dataclass
class UserSession:
    """Everything one browser tab owns: its orchestrator and the widgets listening to it."""
    session_id: str
    backend: InventoryBackend
    token_store: TokenStore
    orchestrator: Orchestrator
    timeline: TimelineChartWidget
    comparison: ComparisonChartWidget
    errors: ErrorMetricsWidget

    def widgets(self):
        return self.timeline, self.comparison, self.errors

    def close(self) -> None:
        for widget in self.widgets():
            widget.detach()
        close = getattr(self.backend, "close", None)
        if close is not None:
            close()


def new_session_id() -> str:
    return uuid.uuid4().hex


class SessionPool:
    """
    Lazily builds one UserSession per browser session id.

    Each session gets its own token, backend client and orchestrator; nothing is shared
    between users except the storage backend. At most config.max_sessions are kept;
    the least recently used one is dropped when a new one would exceed the limit.
    """

    def __init__(
            self,
            config: AppConfig,
            storage: StorageBackend,
            backend_factory: Optional[BackendFactory] = None,
    ):
        self.config = config
        self.storage = storage
        self._backend_factory = backend_factory or self._default_backend
        self._sessions: OrderedDict[str, UserSession] = OrderedDict()
        self._lock = threading.Lock()

    def _default_backend(self, token_store: TokenStore) -> InventoryApiClient:
        return InventoryApiClient(
            self.config.api_base_url,
            token_store,
            timeout=self.config.request_timeout,
        )

    def get(self, session_id: str) -> UserSession:
        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is not None:
                self._sessions.move_to_end(session_id)
                return existing

        # registration talks to the backend; other users must not wait on it
        session = self._build(session_id)

        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is None:
                self._sessions[session_id] = session
                evicted = self._evict_overflow()
            else:
                self._sessions.move_to_end(session_id)

        if existing is not None:
            # another request for the same tab got here first
            session.close()
            return existing

        for old in evicted:
            self._close(old)
        logger.info("Session created", extra={"session_id": session_id, "sessions": len(self)})
        return session

    def _build(self, session_id: str) -> UserSession:
        token_store = TokenStore(self.storage, session_id)
        backend = self._backend_factory(token_store)
        if isinstance(backend, InventoryApiClient):
            SessionService(backend, token_store).ensure_registered()

        orchestrator = Orchestrator(backend, page_size=self.config.page_size)
        session = UserSession(
            session_id=session_id,
            backend=backend,
            token_store=token_store,
            orchestrator=orchestrator,
            timeline=TimelineChartWidget(),
            comparison=ComparisonChartWidget(),
            errors=ErrorMetricsWidget(),
        )
        for widget in session.widgets():
            widget.attach(orchestrator.bus)
        return session

    def _evict_overflow(self):
        evicted = []
        while len(self._sessions) > self.config.max_sessions:
            _, old = self._sessions.popitem(last=False)
            evicted.append(old)
        return evicted

    def _close(self, session: UserSession) -> None:
        session.close()
        session.token_store.clear()
        logger.info("Session dropped", extra={"session_id": session.session_id})

    def drop(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            self._close(session)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
