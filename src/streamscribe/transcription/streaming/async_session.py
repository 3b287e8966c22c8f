"""Asyncio wrapper around StreamingSession.

The session itself is synchronous; this wrapper offloads each blocking call
to an executor and serializes calls with a lock so at most one inference is
in flight per session.
"""

import asyncio
import logging
from concurrent.futures import Executor

from .session import StreamingSession
from .types import SessionMetrics, SessionState, StreamResult

logger = logging.getLogger(__name__)


class AsyncStreamingSession:
    """Awaitable facade for a StreamingSession.

    Example:
        async with AsyncStreamingSession(create_session("base")) as session:
            result = await session.submit(chunk)
            final = await session.flush()

    """

    def __init__(
        self,
        session: StreamingSession,
        executor: Executor | None = None,
        transcription_semaphore: asyncio.Semaphore | None = None,
    ):
        """Initialize the wrapper.

        Args:
            session: Session to drive
            executor: Executor for blocking calls (the loop default if None)
            transcription_semaphore: Optional semaphore shared between sessions
                to serialize work on one accelerator

        """
        self.session = session
        self.executor = executor
        self.transcription_semaphore = transcription_semaphore
        self._lock = asyncio.Lock()

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def metrics(self) -> SessionMetrics:
        return self.session.metrics

    async def _call(self, fn, *args):
        async with self._lock:
            if self.transcription_semaphore:
                async with self.transcription_semaphore:
                    return await self._run_in_executor(fn, *args)
            return await self._run_in_executor(fn, *args)

    async def _run_in_executor(self, fn, *args):
        """Run one blocking call; on cancellation, return only after the worker finished it.

        The worker thread cannot be interrupted, so the lock (and semaphore)
        must stay held until the call really ends.
        """
        future = asyncio.get_running_loop().run_in_executor(self.executor, fn, *args)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            logger.debug(f"Call on session {self.session_id} cancelled; waiting for the running call to finish")
            while not future.done():
                try:
                    await asyncio.wait({future})
                except asyncio.CancelledError:
                    continue
            raise

    async def submit(self, samples) -> StreamResult | None:
        return await self._call(self.session.submit, samples)

    async def flush(self) -> StreamResult | None:
        return await self._call(self.session.flush)

    async def set_language(self, code: str | None, auto_detect: bool = False) -> None:
        # Waits for any in-flight call so the change applies to the next window
        async with self._lock:
            self.session.set_language(code, auto_detect)

    async def close(self) -> StreamResult | None:
        result = await self._call(self.session.close)
        logger.debug(f"Async session {self.session_id} closed")
        return result

    async def __aenter__(self) -> "AsyncStreamingSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
