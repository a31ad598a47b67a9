import asyncio
import contextlib

import structlog

from protracker.core.core import Service
from protracker.core.modules.sync.session import WorkspaceSession
from protracker.core.modules.workspace.service import WorkspaceService
from protracker.core.modules.workspace.store import DocumentStore

logger = structlog.get_logger(__name__)

# Upper bound on how often idle sessions are looked for
EVICTION_INTERVAL_SECONDS = 60.0


class SyncService(Service):
    """Keeps one live session per workspace in use.

    Sessions are shared by every client of the same access code, so a client
    leaving never closes one. A session is closed after it has been idle for
    ``session_idle_timeout`` seconds, and on shutdown.
    """

    def __init__(self, store: DocumentStore) -> None:
        super().__init__(store)
        self._sessions: dict[str, WorkspaceSession] = {}
        self._lock = asyncio.Lock()
        self._evictor: asyncio.Task[None] | None = None

    async def get_session(self, code: str) -> WorkspaceSession:
        """Return the session for a workspace, starting it on first use.

        Raises NotFoundError if the workspace does not exist.
        """
        code = WorkspaceService.validate_code(code)
        async with self._lock:
            session = self._sessions.get(code)
            if session is None:
                session = WorkspaceSession(
                    code,
                    self.core.services.workspace,
                    self.core.services.project,
                    self.core.services.template,
                )
                await session.start()
                self._sessions[code] = session
            session.mark_used()
            return session

    async def evict_idle_sessions(self, max_idle: float) -> int:
        """Close sessions with no work for at least ``max_idle`` seconds."""
        async with self._lock:
            idle = [
                code
                for code, session in self._sessions.items()
                if not session.busy and session.idle_seconds() >= max_idle
            ]
            evicted = [self._sessions.pop(code) for code in idle]
        for session in evicted:
            await session.close()
        if evicted:
            logger.info("idle_sessions_evicted", count=len(evicted))
        return len(evicted)

    async def on_start(self) -> None:
        timeout = self.core.config.session_idle_timeout
        if timeout > 0:
            self._evictor = asyncio.create_task(self._evict_periodically(timeout))

    async def on_stop(self) -> None:
        if self._evictor is not None:
            self._evictor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._evictor
        for session in list(self._sessions.values()):
            await session.close()
        logger.debug("sync_service_stopped", sessions=len(self._sessions))
        self._sessions.clear()

    def has_session(self, code: str) -> bool:
        return code.strip() in self._sessions

    async def _evict_periodically(self, timeout: float) -> None:
        while True:
            await asyncio.sleep(min(timeout, EVICTION_INTERVAL_SECONDS))
            await self.evict_idle_sessions(timeout)
